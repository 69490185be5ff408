import logging
import math
from typing import Any, Dict, Optional, Tuple

from psycopg2.errors import UniqueViolation

from shopfund.models.shop import (
    create_shop,
    delete_shop,
    get_shop,
    get_shop_by_owner,
    list_public_shops,
    list_shops,
    set_shop_status,
)
from shopfund.utils.dates import iso
from shopfund.utils.status import InvalidTransition, admin_shop_transition

log = logging.getLogger(__name__)


def _coord_out(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


def serialize_shop(s: Dict[str, Any]) -> Dict[str, Any]:
    out = {
        "id": s["id"],
        "ownerUserId": s["owner_user_id"],
        "name": s["name"],
        "description": s.get("description"),
        "address": s.get("address"),
        "category": s.get("category"),
        "latitude": _coord_out(s.get("latitude")),
        "longitude": _coord_out(s.get("longitude")),
        "status": s["status"],
        "createdAt": iso(s.get("created_at")),
    }
    if "campaign_id" in s:
        out["campaignId"] = s["campaign_id"]
        out["campaignName"] = s.get("campaign_name")
    return out


def _coordinate(raw: Any, bound: float) -> Tuple[Optional[float], bool]:
    """(value, ok); blank is allowed and means no pin on the map."""
    if raw is None or raw == "":
        return None, True
    if isinstance(raw, bool):
        return None, False
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None, False
    if not math.isfinite(value) or abs(value) > bound:
        return None, False
    return value, True


def _text(data: dict, *keys: str) -> Optional[str]:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def register_shop(user, data: dict) -> Tuple[int, Dict[str, Any]]:
    name = _text(data, "name", "shopName")
    if not name:
        return 400, {"error": "name is required"}
    latitude, lat_ok = _coordinate(data.get("latitude", data.get("lat")), 90)
    longitude, lng_ok = _coordinate(data.get("longitude", data.get("lng")), 180)
    if not (lat_ok and lng_ok):
        return 400, {"error": "latitude must be within -90..90 and longitude within -180..180"}
    if (latitude is None) != (longitude is None):
        return 400, {"error": "latitude and longitude go together"}
    if get_shop_by_owner(user["id"]):
        return 409, {"error": "you already have a shop"}
    try:
        shop = create_shop(
            user["id"],
            name,
            _text(data, "description"),
            _text(data, "address"),
            category=_text(data, "category"),
            latitude=latitude,
            longitude=longitude,
        )
    except UniqueViolation:
        return 409, {"error": "you already have a shop"}
    log.info("[shop] %s registered by %s", shop["id"], user["id"])
    return 201, serialize_shop(shop)


def my_shop(user) -> Tuple[int, Dict[str, Any]]:
    shop = get_shop_by_owner(user["id"])
    if not shop:
        return 404, {"error": "no shop registered"}
    return 200, serialize_shop(shop)


def shop_detail(shop_id: str) -> Tuple[int, Dict[str, Any]]:
    shop = get_shop(shop_id)
    if not shop:
        return 404, {"error": "shop not found"}
    return 200, serialize_shop(shop)


DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def public_page(limit: Any = None, page: Any = None, category: Optional[str] = None) -> Tuple[int, Dict[str, Any]]:
    """GET /shops: verified shops, `limit` per page (default 20, at most 100), pages from 1."""
    try:
        size = int(limit) if limit not in (None, "") else DEFAULT_PAGE_SIZE
        number = int(page) if page not in (None, "") else 1
    except (TypeError, ValueError):
        return 400, {"error": "limit and page must be whole numbers"}
    if size < 1 or number < 1:
        return 400, {"error": "limit and page must be at least 1"}
    size = min(size, MAX_PAGE_SIZE)
    rows, total = list_public_shops(
        limit=size, offset=(number - 1) * size, category=(category or "").strip() or None
    )
    return 200, {
        "shops": [serialize_shop(s) for s in rows],
        "page": number,
        "limit": size,
        "total": total,
    }


def shops_by_status(status=None):
    return [serialize_shop(s) for s in list_shops(status)]


def admin_set_status(shop_id: str, status: str) -> Tuple[int, Dict[str, Any]]:
    shop = get_shop(shop_id)
    if not shop:
        return 404, {"error": "shop not found"}
    try:
        admin_shop_transition(shop["status"], status)
    except ValueError as e:
        return 400, {"error": str(e)}
    except InvalidTransition:
        return 400, {"error": "status unchanged"}
    updated = set_shop_status(shop_id, status)
    if not updated:
        return 404, {"error": "shop not found"}
    log.info("[shop] %s %s -> %s", shop_id, shop["status"], status)
    return 200, serialize_shop(updated)


def remove(shop_id: str) -> bool:
    return delete_shop(shop_id)
