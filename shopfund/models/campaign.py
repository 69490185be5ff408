from shopfund.utils.db import get_db_connection, use_cursor
from typing import Any, Dict, List, Optional

COLS = [
    "id",
    "shop_id",
    "name",
    "description",
    "story",
    "goal",
    "amt_raised",
    "end_date",
    "status",
    "image_url",
    "created_at",
    "updated_at",
    "owner_user_id",
    "shop_name",
]

_SELECT = """
SELECT c.id, c.shop_id, c.name, c.description, c.story, c.goal, c.amt_raised,
       c.end_date, c.status, c.image_url, c.created_at, c.updated_at,
       s.owner_user_id, s.name
FROM campaigns c
JOIN shops s ON s.id = c.shop_id
"""

# columns a plain UPDATE may touch
EDITABLE = ("name", "description", "story", "goal", "end_date", "image_url")


def create_campaign(
    shop_id: str,
    *,
    name: str,
    description: Optional[str] = None,
    story: Optional[str] = None,
    goal=None,
    end_date=None,
    image_url: Optional[str] = None,
    status: str = "draft",
) -> Dict[str, Any]:
    sql = """
    INSERT INTO campaigns (shop_id, name, description, story, goal, end_date, image_url, status)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
    RETURNING id
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(
            sql, (shop_id, name, description, story, goal, end_date, image_url, status)
        )
        campaign_id = cur.fetchone()[0]
        conn.commit()
    return get_campaign(campaign_id)


def get_campaign(campaign_id: str) -> Optional[Dict[str, Any]]:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(f"{_SELECT} WHERE c.id = %s", (campaign_id,))
        row = cur.fetchone()
        return dict(zip(COLS, row)) if row else None


def list_campaigns(
    *, status: Optional[str] = None, owner_user_id: Optional[str] = None
) -> List[Dict[str, Any]]:
    where, params = [], []
    if status:
        where.append("c.status = %s")
        params.append(status)
    if owner_user_id:
        where.append("s.owner_user_id = %s")
        params.append(owner_user_id)
    sql = _SELECT
    if where:
        sql += " WHERE " + " AND ".join(where)
    sql += " ORDER BY c.created_at DESC"
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, tuple(params))
        return [dict(zip(COLS, r)) for r in cur.fetchall()]


def update_campaign(campaign_id: str, **fields) -> Optional[Dict[str, Any]]:
    sets, params = [], []
    for key in EDITABLE:
        if key in fields and fields[key] is not None:
            sets.append(f"{key} = %s")
            params.append(fields[key])
    if not sets:
        return get_campaign(campaign_id)
    sets.append("updated_at = now()")
    params.append(campaign_id)
    sql = f"UPDATE campaigns SET {', '.join(sets)} WHERE id = %s RETURNING id"
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, tuple(params))
        row = cur.fetchone()
        conn.commit()
    return get_campaign(campaign_id) if row else None


def set_campaign_status(
    campaign_id: str, status: str, expected: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    """
    Move a campaign to `status`. With `expected`, only if it is currently in that
    state; returns None when nothing was updated.
    """
    sql = "UPDATE campaigns SET status = %s, updated_at = now() WHERE id = %s"
    params: list = [status, campaign_id]
    if expected is not None:
        sql += " AND status = %s"
        params.append(expected)
    sql += " RETURNING id"
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, tuple(params))
        row = cur.fetchone()
        conn.commit()
    return get_campaign(campaign_id) if row else None


def delete_campaign(campaign_id: str) -> bool:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute("DELETE FROM campaigns WHERE id = %s", (campaign_id,))
        conn.commit()
        return cur.rowcount > 0


def recompute_amt_raised(campaign_id: str, cur=None) -> Dict[str, Any]:
    """
    Sets campaigns.amt_raised to SUM(donations.amount where completed).
    Returns {"amt_raised": Decimal(...)}.
    """
    sql = """
    UPDATE campaigns
    SET amt_raised = (
      SELECT COALESCE(SUM(amount), 0)
      FROM donations
      WHERE campaign_id = %s AND status = 'completed'
    ),
    updated_at = now()
    WHERE id = %s
    RETURNING amt_raised
    """
    with use_cursor(cur) as c:
        c.execute(sql, (campaign_id, campaign_id))
        row = c.fetchone()
    return {"amt_raised": row[0] if row else None}


def count_by_status() -> Dict[str, int]:
    sql = "SELECT status::text, COUNT(*)::int FROM campaigns GROUP BY status"
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql)
        return {r[0]: r[1] for r in cur.fetchall()}
