import logging
from typing import Any, Dict, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from shopfund.models.campaign import count_by_status
from shopfund.models.campaign_comment import delete_comment, list_all_comments
from shopfund.models.donation import donations_over_time, platform_totals
from shopfund.models.user import count_supporters, delete_user, get_user, list_users, set_user_role
from shopfund.services.update_service import serialize_comment
from shopfund.utils import s3_helpers
from shopfund.utils.dates import iso
from shopfund.utils.money import to_float
from shopfund.utils.status import ASSIGNABLE_ROLES, ROOT

log = logging.getLogger(__name__)


def serialize_user(u: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": u["id"],
        "username": u["username"],
        "email": u["email"],
        "role": u["role"],
        "authProvider": u.get("auth_provider"),
        "createdAt": iso(u.get("created_at")),
    }


def users():
    return [serialize_user(u) for u in list_users()]


def change_role(actor, user_id: str, role: str) -> Tuple[int, Dict[str, Any]]:
    if role not in ASSIGNABLE_ROLES:
        return 400, {"error": "invalid role", "allowed": list(ASSIGNABLE_ROLES)}
    target = get_user(user_id)
    if not target:
        return 404, {"error": "user not found"}
    if target["role"] == ROOT:
        return 403, {"error": "root users cannot be modified"}
    updated = set_user_role(user_id, role)
    log.info("[admin] %s set role of %s to %s", actor["id"], user_id, role)
    return 200, serialize_user(updated)


def remove_user(actor, user_id: str) -> Tuple[int, Dict[str, Any]]:
    if str(actor["id"]) == str(user_id):
        return 400, {"error": "you cannot delete your own account"}
    target = get_user(user_id)
    if not target:
        return 404, {"error": "user not found"}
    if target["role"] == ROOT:
        return 403, {"error": "root users cannot be modified"}
    delete_user(user_id)
    log.info("[admin] %s deleted user %s", actor["id"], user_id)
    return 200, {"success": True}


def comments(limit: int = 200):
    return [serialize_comment(m) for m in list_all_comments(limit)]


def remove_comment(comment_id: str) -> bool:
    return delete_comment(comment_id)


def platform_stats(days: int = 30) -> Dict[str, Any]:
    by_status = count_by_status()
    totals = platform_totals()
    return {
        "campaigns": sum(by_status.values()),
        "donations": totals["donations"],
        "netVolume": to_float(totals["net_volume"]) or 0.0,
        "supporters": count_supporters(),
        "donationsOverTime": donations_over_time(days),
        "campaignStatus": by_status,
    }


# --- datasets ---

def datasets() -> Tuple[int, Any]:
    try:
        return 200, s3_helpers.list_datasets()
    except (BotoCoreError, ClientError) as e:
        log.error("[s3] list failed: %s", e)
        return 502, {"error": "storage unavailable"}


def upload_dataset(file_storage, overwrite: bool) -> Tuple[int, Dict[str, Any]]:
    if file_storage is None or not file_storage.filename:
        return 400, {"error": "no dataset file uploaded"}
    filename = s3_helpers.safe_filename(file_storage.filename)
    if not filename:
        return 400, {"error": "invalid filename"}
    try:
        exists = s3_helpers.dataset_exists(filename)
        if exists and not overwrite:
            return 409, {"error": "dataset already exists", "filename": filename}
        s3_helpers.put_dataset(filename, file_storage.stream, file_storage.mimetype)
    except (BotoCoreError, ClientError) as e:
        log.error("[s3] upload of %s failed: %s", filename, e)
        return 502, {"error": "storage unavailable"}
    log.info("[s3] stored dataset %s overwrite=%s", filename, exists)
    return (200 if exists else 201), {"filename": filename, "replaced": exists}


def fetch_dataset(filename: str) -> Tuple[int, Any]:
    safe = s3_helpers.safe_filename(filename)
    if not safe:
        return 400, {"error": "invalid filename"}
    try:
        obj = s3_helpers.get_dataset(safe)
    except (BotoCoreError, ClientError) as e:
        log.error("[s3] get of %s failed: %s", safe, e)
        return 502, {"error": "storage unavailable"}
    if obj is None:
        return 404, {"error": "dataset not found"}
    return 200, {"filename": safe, **obj}


def remove_dataset(filename: str) -> Tuple[int, Dict[str, Any]]:
    safe = s3_helpers.safe_filename(filename)
    if not safe:
        return 400, {"error": "invalid filename"}
    try:
        if not s3_helpers.dataset_exists(safe):
            return 404, {"error": "dataset not found"}
        s3_helpers.delete_dataset(safe)
    except (BotoCoreError, ClientError) as e:
        log.error("[s3] delete of %s failed: %s", safe, e)
        return 502, {"error": "storage unavailable"}
    return 200, {"success": True}
