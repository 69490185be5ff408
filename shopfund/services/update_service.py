"""
Campaign updates posted by shop owners, with likes and threaded comments.

An update may carry `scheduledFor`; until then only the campaign's managers
see it, and nobody else can like or comment on it.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from shopfund.models.campaign import get_campaign
from shopfund.models.campaign_comment import (
    create_comment,
    delete_comment,
    edit_comment as edit_comment_row,
    get_comment,
    list_comments,
)
from shopfund.models.campaign_update import (
    create_update,
    delete_update,
    edit_update as edit_update_row,
    get_update,
    list_updates,
    toggle_like,
)
from shopfund.utils.authz import can_manage_campaign, is_admin, owns_campaign
from shopfund.utils.dates import iso, parse_datetime
from shopfund.utils.status import CAMPAIGN_APPROVED

log = logging.getLogger(__name__)

MAX_COMMENT_LEN = 2000
_MISSING = object()


def serialize_update(u: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": u["id"],
        "campaignId": u["campaign_id"],
        "authorUserId": u["author_user_id"],
        "title": u["title"],
        "body": u["body"],
        "imageUrl": u.get("image_url"),
        "scheduledFor": iso(u.get("scheduled_for")),
        "likeCount": u.get("like_count", 0),
        "commentCount": u.get("comment_count", 0),
        "createdAt": iso(u.get("created_at")),
        "updatedAt": iso(u.get("updated_at")),
    }


def serialize_comment(m: Dict[str, Any]) -> Dict[str, Any]:
    out = {
        "id": m["id"],
        "updateId": m["update_id"],
        "userId": m["user_id"],
        "parentId": m.get("parent_id"),
        "body": m["body"],
        "author": m.get("author_username"),
        "authorPicture": m.get("author_picture"),
        "createdAt": iso(m.get("created_at")),
        "editedAt": iso(m.get("updated_at")),
    }
    if "campaign_id" in m:
        out["campaignId"] = m["campaign_id"]
        out["campaignName"] = m.get("campaign_name")
    return out


def _visible(user, campaign: Optional[Dict[str, Any]]) -> bool:
    if not campaign:
        return False
    return campaign["status"] == CAMPAIGN_APPROVED or can_manage_campaign(user, campaign)


def _is_published(update: Dict[str, Any]) -> bool:
    when = parse_datetime(update.get("scheduled_for"))
    return when is None or when <= datetime.now(timezone.utc)


def _readable_update(user, update_id: str):
    """(update, campaign) when the caller may see the update, else (None, None)."""
    update = get_update(update_id)
    if not update:
        return None, None
    camp = get_campaign(update["campaign_id"])
    if not _visible(user, camp):
        return None, None
    if not _is_published(update) and not can_manage_campaign(user, camp):
        return None, None
    return update, camp


def _schedule(raw: Any):
    """(value, error). None clears the schedule, which publishes the update now."""
    if raw is None or raw == "":
        return None, None
    when = parse_datetime(raw)
    if when is None:
        return None, "scheduledFor must be an ISO timestamp"
    return when, None


def _text(data: dict, key: str) -> Any:
    value = data.get(key, _MISSING)
    if value is _MISSING:
        return _MISSING
    return value.strip() if isinstance(value, str) else ""


def updates_for(user, campaign_id: str, include_scheduled: bool = False) -> Tuple[int, Any]:
    camp = get_campaign(campaign_id)
    if not _visible(user, camp):
        return 404, {"error": "campaign not found"}
    # scheduled updates stay private to the campaign's managers
    show_scheduled = include_scheduled and can_manage_campaign(user, camp)
    rows = list_updates(campaign_id, include_scheduled=show_scheduled)
    return 200, [serialize_update(u) for u in rows]


def post_update(user, campaign_id: str, data: dict) -> Tuple[int, Dict[str, Any]]:
    camp = get_campaign(campaign_id)
    if not camp:
        return 404, {"error": "campaign not found"}
    if not owns_campaign(user, camp):
        return 403, {"error": "forbidden"}
    title = data.get("title")
    title = title.strip() if isinstance(title, str) else ""
    body = data.get("body") or data.get("description")
    body = body.strip() if isinstance(body, str) else ""
    if not title or not body:
        return 400, {"error": "title and body are required"}
    scheduled_for, err = _schedule(data.get("scheduledFor", data.get("scheduled_for")))
    if err:
        return 400, {"error": err}
    image_url = data.get("imageUrl", data.get("image_url"))
    update = create_update(
        campaign_id,
        user["id"],
        title,
        body,
        image_url=image_url if isinstance(image_url, str) and image_url.strip() else None,
        scheduled_for=scheduled_for,
    )
    log.info("[update] %s posted on %s scheduled_for=%s", update["id"], campaign_id, scheduled_for)
    return 201, serialize_update(update)


def edit_update(user, update_id: str, data: dict) -> Tuple[int, Dict[str, Any]]:
    update = get_update(update_id)
    if not update:
        return 404, {"error": "update not found"}
    camp = get_campaign(update["campaign_id"])
    if not owns_campaign(user, camp):
        return 403, {"error": "forbidden"}

    changes: Dict[str, Any] = {}
    for key in ("title", "body"):
        value = _text(data, key)
        if value is _MISSING:
            continue
        if not value:
            return 400, {"error": f"{key} cannot be empty"}
        changes[key] = value
    if "imageUrl" in data or "image_url" in data:
        image_url = data.get("imageUrl", data.get("image_url"))
        changes["image_url"] = (image_url.strip() or None) if isinstance(image_url, str) else None
    if "scheduledFor" in data or "scheduled_for" in data:
        scheduled_for, err = _schedule(data.get("scheduledFor", data.get("scheduled_for")))
        if err:
            return 400, {"error": err}
        changes["scheduled_for"] = scheduled_for

    updated = edit_update_row(update_id, changes)
    if not updated:
        return 404, {"error": "update not found"}
    return 200, serialize_update(updated)


def remove_update(user, update_id: str) -> Tuple[int, Dict[str, Any]]:
    update = get_update(update_id)
    if not update:
        return 404, {"error": "update not found"}
    camp = get_campaign(update["campaign_id"])
    if not (is_admin(user) or owns_campaign(user, camp)):
        return 403, {"error": "forbidden"}
    if not delete_update(update_id):
        return 404, {"error": "update not found"}
    log.info("[update] %s deleted by %s", update_id, user["id"])
    return 200, {"success": True}


def like(user, update_id: str) -> Tuple[int, Dict[str, Any]]:
    update, _ = _readable_update(user, update_id)
    if not update:
        return 404, {"error": "update not found"}
    liked, count = toggle_like(update_id, user["id"])
    return 200, {"liked": liked, "likeCount": count}


def comments_for(user, update_id: str) -> Tuple[int, Any]:
    update, _ = _readable_update(user, update_id)
    if not update:
        return 404, {"error": "update not found"}
    return 200, [serialize_comment(m) for m in list_comments(update_id)]


def _comment_body(data: dict) -> Tuple[Optional[str], Optional[str]]:
    body = data.get("body")
    body = body.strip() if isinstance(body, str) else ""
    if not body:
        return None, "comment body is required"
    if len(body) > MAX_COMMENT_LEN:
        return None, f"comment must be at most {MAX_COMMENT_LEN} characters"
    return body, None


def post_comment(user, update_id: str, data: dict) -> Tuple[int, Dict[str, Any]]:
    update, _ = _readable_update(user, update_id)
    if not update:
        return 404, {"error": "update not found"}
    body, err = _comment_body(data)
    if err:
        return 400, {"error": err}

    parent_id = data.get("parent_id") or data.get("parentId")
    if parent_id:
        parent = get_comment(parent_id)
        if not parent or str(parent["update_id"]) != str(update_id):
            return 400, {"error": "parent comment not found on this update"}
    return 201, serialize_comment(create_comment(update_id, user["id"], body, parent_id))


def edit_comment(user, comment_id: str, data: dict) -> Tuple[int, Dict[str, Any]]:
    """Only the author rewrites a comment."""
    comment = get_comment(comment_id)
    if not comment:
        return 404, {"error": "comment not found"}
    if str(comment["user_id"]) != str(user["id"]):
        return 403, {"error": "forbidden"}
    body, err = _comment_body(data)
    if err:
        return 400, {"error": err}
    updated = edit_comment_row(comment_id, body)
    if not updated:
        return 404, {"error": "comment not found"}
    return 200, serialize_comment(updated)


def remove_comment(user, comment_id: str) -> Tuple[int, Dict[str, Any]]:
    """The author, the campaign's owner or an admin may delete; replies go too."""
    comment = get_comment(comment_id)
    if not comment:
        return 404, {"error": "comment not found"}
    allowed = str(comment["user_id"]) == str(user["id"]) or is_admin(user)
    if not allowed:
        update = get_update(comment["update_id"])
        allowed = bool(update) and owns_campaign(user, get_campaign(update["campaign_id"]))
    if not allowed:
        return 403, {"error": "forbidden"}
    if not delete_comment(comment_id):
        return 404, {"error": "comment not found"}
    log.info("[comment] %s deleted by %s", comment_id, user["id"])
    return 200, {"success": True}
