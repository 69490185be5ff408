"""
Outgoing email through Amazon SES.

Configure via env:
- AWS_REGION (or SES_REGION), plus AWS credentials or the default chain
- FROM_EMAIL, FROM_NAME: the sender

Without a region nothing is sent; the message is logged instead so local
forgot-password links can be copied from the server log.
"""

from __future__ import annotations
import logging
import os
from typing import Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

log = logging.getLogger(__name__)

DEFAULT_FROM_EMAIL = os.getenv("FROM_EMAIL", "no-reply@shopfund.local")
DEFAULT_FROM_NAME = os.getenv("FROM_NAME", "shopfund")


def _region() -> Optional[str]:
    return os.getenv("SES_REGION") or os.getenv("AWS_REGION")


def send_email(
    *,
    to_email: str,
    subject: str,
    body_text: str,
    body_html: Optional[str] = None,
) -> Tuple[Optional[str], Optional[str]]:
    """
    Returns (provider, message_id) on success, or (None, reason) when the
    message was not sent.
    """
    region = _region()
    if not region:
        log.info("[mail] SES not configured; to=%s subject=%r\n%s", to_email, subject, body_text)
        return None, "SES is not configured"

    body = {"Text": {"Data": body_text, "Charset": "UTF-8"}}
    if body_html:
        body["Html"] = {"Data": body_html, "Charset": "UTF-8"}
    try:
        client = boto3.client("ses", region_name=region)
        response = client.send_email(
            Source=f"{DEFAULT_FROM_NAME} <{DEFAULT_FROM_EMAIL}>",
            Destination={"ToAddresses": [to_email]},
            Message={"Subject": {"Data": subject, "Charset": "UTF-8"}, "Body": body},
        )
    except ClientError as e:
        reason = e.response.get("Error", {}).get("Message", str(e))
        log.error("[mail] SES rejected message to %s: %s", to_email, reason)
        return None, reason
    except BotoCoreError as e:
        log.error("[mail] SES unavailable: %s", e)
        return None, str(e)
    return "ses", response.get("MessageId") or "unknown"
