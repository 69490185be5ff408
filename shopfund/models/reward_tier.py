from typing import Any, Dict, List, Optional, Sequence
from shopfund.utils.db import get_db_connection, use_cursor

COLS = ["id", "campaign_id", "amount", "title", "description", "quantity_available", "created_at"]
_COLS_SQL = ", ".join(COLS)


def _insert_many(cur, campaign_id: str, tiers: Sequence[Dict[str, Any]]) -> None:
    for t in tiers:
        cur.execute(
            """
            INSERT INTO reward_tiers (campaign_id, amount, title, description, quantity_available)
            VALUES (%s, %s, %s, %s, %s)
            """,
            (
                campaign_id,
                t["amount"],
                t["title"],
                t.get("description"),
                t.get("quantity_available"),
            ),
        )


def create_tiers(campaign_id: str, tiers: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    with get_db_connection() as conn, conn.cursor() as cur:
        _insert_many(cur, campaign_id, tiers)
        conn.commit()
    return list_tiers(campaign_id)


def replace_tiers(
    campaign_id: str, new_tiers: Sequence[Dict[str, Any]], deleted_ids: Sequence[str]
) -> List[Dict[str, Any]]:
    """
    Soft-delete `deleted_ids` and insert `new_tiers` in one transaction. Soft
    deletion keeps user_rewards pointing at tiers that no longer appear.
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        if deleted_ids:
            cur.execute(
                """
                UPDATE reward_tiers SET deleted_at = now()
                WHERE campaign_id = %s AND id = ANY(%s::uuid[]) AND deleted_at IS NULL
                """,
                (campaign_id, list(deleted_ids)),
            )
        _insert_many(cur, campaign_id, new_tiers)
        conn.commit()
    return list_tiers(campaign_id)


def list_tiers(campaign_id: str) -> List[Dict[str, Any]]:
    sql = f"""
    SELECT {_COLS_SQL} FROM reward_tiers
    WHERE campaign_id = %s AND deleted_at IS NULL
    ORDER BY amount ASC, created_at ASC
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, (campaign_id,))
        return [dict(zip(COLS, r)) for r in cur.fetchall()]


def get_tier(tier_id: str) -> Optional[Dict[str, Any]]:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(f"SELECT {_COLS_SQL} FROM reward_tiers WHERE id = %s", (tier_id,))
        row = cur.fetchone()
        return dict(zip(COLS, row)) if row else None


def claim_tier_unit(tier_id: str, cur=None) -> bool:
    """Take one unit of a limited tier; False when it is sold out."""
    sql = """
    UPDATE reward_tiers
    SET quantity_available = quantity_available - 1
    WHERE id = %s AND (quantity_available IS NULL OR quantity_available > 0)
    RETURNING id
    """
    with use_cursor(cur) as c:
        c.execute(sql, (tier_id,))
        row = c.fetchone()
    return row is not None


def release_tier_unit(tier_id: str, cur=None) -> None:
    """Give back a unit taken by claim_tier_unit. Unlimited tiers are left alone."""
    sql = """
    UPDATE reward_tiers
    SET quantity_available = quantity_available + 1
    WHERE id = %s AND quantity_available IS NOT NULL
    """
    with use_cursor(cur) as c:
        c.execute(sql, (tier_id,))


def tier_stats(tier_id: str) -> Dict[str, int]:
    sql = """
    SELECT
      COUNT(*) FILTER (WHERE status = 'pending')::int,
      COUNT(*) FILTER (WHERE status = 'completed')::int,
      COUNT(*) FILTER (WHERE status = 'redeemed')::int,
      COUNT(*) FILTER (WHERE status = 'revoked')::int,
      COUNT(*)::int
    FROM user_rewards
    WHERE reward_id = %s
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, (tier_id,))
        row = cur.fetchone()
        return dict(zip(["pending", "completed", "redeemed", "revoked", "total"], row))
