from typing import Any, Dict, List, Optional, Tuple
from shopfund.utils.db import get_db_connection

COLS = [
    "id",
    "owner_user_id",
    "name",
    "description",
    "address",
    "category",
    "latitude",
    "longitude",
    "status",
    "created_at",
    "updated_at",
]
_COLS_SQL = ", ".join(COLS)


def create_shop(
    owner_user_id: str,
    name: str,
    description: Optional[str] = None,
    address: Optional[str] = None,
    category: Optional[str] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
) -> Dict[str, Any]:
    sql = f"""
    INSERT INTO shops (owner_user_id, name, description, address, category, latitude, longitude)
    VALUES (%s, %s, %s, %s, %s, %s, %s)
    RETURNING {_COLS_SQL}
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, (owner_user_id, name, description, address, category, latitude, longitude))
        row = cur.fetchone()
        conn.commit()
        return dict(zip(COLS, row))


def get_shop(shop_id: str) -> Optional[Dict[str, Any]]:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(f"SELECT {_COLS_SQL} FROM shops WHERE id = %s", (shop_id,))
        row = cur.fetchone()
        return dict(zip(COLS, row)) if row else None


def get_shop_by_owner(owner_user_id: str) -> Optional[Dict[str, Any]]:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(f"SELECT {_COLS_SQL} FROM shops WHERE owner_user_id = %s", (owner_user_id,))
        row = cur.fetchone()
        return dict(zip(COLS, row)) if row else None


def list_shops(status: Optional[str] = None) -> List[Dict[str, Any]]:
    if status:
        sql = f"SELECT {_COLS_SQL} FROM shops WHERE status = %s ORDER BY created_at DESC"
        params: tuple = (status,)
    else:
        sql = f"SELECT {_COLS_SQL} FROM shops ORDER BY created_at DESC"
        params = ()
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, params)
        return [dict(zip(COLS, r)) for r in cur.fetchall()]


def list_public_shops(
    *, limit: int, offset: int, category: Optional[str] = None
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Verified shops for the directory and map, newest first, each with its most
    recent approved campaign. Returns (page, total).
    """
    where = "s.status = 'verified'"
    params: list = []
    if category:
        where += " AND lower(s.category) = lower(%s)"
        params.append(category)
    sql = f"""
    SELECT {", ".join("s." + c for c in COLS)}, lc.id, lc.name,
           COUNT(*) OVER ()::int
    FROM shops s
    LEFT JOIN LATERAL (
      SELECT c.id, c.name FROM campaigns c
      WHERE c.shop_id = s.id AND c.status = 'approved'
      ORDER BY c.created_at DESC
      LIMIT 1
    ) lc ON true
    WHERE {where}
    ORDER BY s.created_at DESC
    LIMIT %s OFFSET %s
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, (*params, limit, offset))
        rows = cur.fetchall()
    total = rows[0][-1] if rows else 0
    return [dict(zip(COLS + ["campaign_id", "campaign_name"], r[:-1])) for r in rows], total


def set_shop_status(shop_id: str, status: str) -> Optional[Dict[str, Any]]:
    sql = f"UPDATE shops SET status = %s, updated_at = now() WHERE id = %s RETURNING {_COLS_SQL}"
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, (status, shop_id))
        row = cur.fetchone()
        conn.commit()
        return dict(zip(COLS, row)) if row else None


def delete_shop(shop_id: str) -> bool:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute("DELETE FROM shops WHERE id = %s", (shop_id,))
        conn.commit()
        return cur.rowcount > 0
