import os
import re
from typing import Any, Dict, List, Optional

import boto3
from botocore.client import Config
from botocore.exceptions import ClientError

S3_ENDPOINT = os.getenv("S3_ENDPOINT", "http://127.0.0.1:9000")
S3_REGION = os.getenv("S3_REGION", "us-east-1")
S3_ACCESS_KEY = os.getenv("S3_ACCESS_KEY", "minioadmin")
S3_SECRET_KEY = os.getenv("S3_SECRET_KEY", "minioadmin")
S3_BUCKET = os.getenv("S3_BUCKET", "shopfund-dev")
USE_PATH = os.getenv("S3_USE_PATH_STYLE", "true").lower() == "true"
DATASET_PREFIX = "datasets/"

_name_re = re.compile(r"[^A-Za-z0-9._-]+")


def _client():
    return boto3.client(
        "s3",
        endpoint_url=S3_ENDPOINT,
        region_name=S3_REGION,
        aws_access_key_id=S3_ACCESS_KEY,
        aws_secret_access_key=S3_SECRET_KEY,
        config=Config(s3={"addressing_style": "path" if USE_PATH else "virtual"}),
    )


def safe_filename(name: str) -> Optional[str]:
    """Flatten to a single path segment; None if nothing usable is left."""
    base = (name or "").replace("\\", "/").rsplit("/", 1)[-1].strip()
    base = _name_re.sub("-", base).strip("-.")
    return base or None


def dataset_key(filename: str) -> str:
    return f"{DATASET_PREFIX}{filename}"


def list_datasets() -> List[Dict[str, Any]]:
    s3 = _client()
    out = []
    paginator = s3.get_paginator("list_objects_v2")
    for page in paginator.paginate(Bucket=S3_BUCKET, Prefix=DATASET_PREFIX):
        for obj in page.get("Contents", []):
            out.append(
                {
                    "filename": obj["Key"][len(DATASET_PREFIX):],
                    "size_bytes": obj["Size"],
                    "updated_at": obj["LastModified"].isoformat(),
                }
            )
    return out


def dataset_exists(filename: str) -> bool:
    try:
        _client().head_object(Bucket=S3_BUCKET, Key=dataset_key(filename))
        return True
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
            return False
        raise


def put_dataset(filename: str, fileobj, content_type: str) -> None:
    _client().upload_fileobj(
        fileobj,
        S3_BUCKET,
        dataset_key(filename),
        ExtraArgs={"ContentType": content_type or "application/octet-stream"},
    )


def get_dataset(filename: str) -> Optional[Dict[str, Any]]:
    try:
        obj = _client().get_object(Bucket=S3_BUCKET, Key=dataset_key(filename))
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
            return None
        raise
    return {
        "body": obj["Body"].read(),
        "content_type": obj.get("ContentType") or "application/octet-stream",
    }


def delete_dataset(filename: str) -> None:
    _client().delete_object(Bucket=S3_BUCKET, Key=dataset_key(filename))
