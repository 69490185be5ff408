from typing import Any, Dict, List, Optional
from shopfund.utils.db import get_db_connection, use_cursor

COLS = [
    "id",
    "campaign_id",
    "user_id",
    "amount",
    "currency",
    "status",
    "reward_id",
    "paypal_order_id",
    "paypal_capture_id",
    "donation_date",
    "updated_at",
]
_COLS_SQL = ", ".join(COLS)


def create_donation(
    *,
    campaign_id: str,
    user_id: Optional[str],
    amount,
    currency: str,
    paypal_order_id: str,
) -> Dict[str, Any]:
    sql = f"""
    INSERT INTO donations (campaign_id, user_id, amount, currency, paypal_order_id, status)
    VALUES (%s, %s, %s, %s, %s, 'pending')
    RETURNING {_COLS_SQL}
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, (campaign_id, user_id, amount, currency, paypal_order_id))
        row = cur.fetchone()
        conn.commit()
        return dict(zip(COLS, row))


def get_donation(donation_id: str) -> Optional[Dict[str, Any]]:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(f"SELECT {_COLS_SQL} FROM donations WHERE id = %s", (donation_id,))
        row = cur.fetchone()
        return dict(zip(COLS, row)) if row else None


def get_donation_by_order(order_id: str) -> Optional[Dict[str, Any]]:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(
            f"SELECT {_COLS_SQL} FROM donations WHERE paypal_order_id = %s", (order_id,)
        )
        row = cur.fetchone()
        return dict(zip(COLS, row)) if row else None


def mark_completed(donation_id: str, capture_id: Optional[str], cur=None) -> Optional[Dict[str, Any]]:
    """pending -> completed; None if the donation was not pending (already captured)."""
    sql = f"""
    UPDATE donations
    SET status = 'completed', paypal_capture_id = %s, donation_date = now(), updated_at = now()
    WHERE id = %s AND status = 'pending'
    RETURNING {_COLS_SQL}
    """
    with use_cursor(cur) as c:
        c.execute(sql, (capture_id, donation_id))
        row = c.fetchone()
    return dict(zip(COLS, row)) if row else None


def mark_refunded(donation_id: str, cur=None) -> Optional[Dict[str, Any]]:
    sql = f"""
    UPDATE donations SET status = 'refunded', updated_at = now()
    WHERE id = %s AND status = 'completed'
    RETURNING {_COLS_SQL}
    """
    with use_cursor(cur) as c:
        c.execute(sql, (donation_id,))
        row = c.fetchone()
    return dict(zip(COLS, row)) if row else None


def set_reward(donation_id: str, reward_id: str, cur=None) -> None:
    with use_cursor(cur) as c:
        c.execute(
            "UPDATE donations SET reward_id = %s, updated_at = now() WHERE id = %s",
            (reward_id, donation_id),
        )


def list_for_user(user_id: str) -> List[Dict[str, Any]]:
    sql = f"""
    SELECT {", ".join("d." + c for c in COLS)}, c.name
    FROM donations d JOIN campaigns c ON c.id = d.campaign_id
    WHERE d.user_id = %s AND d.status <> 'pending'
    ORDER BY d.donation_date DESC
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, (user_id,))
        return [dict(zip(COLS + ["campaign_name"], r)) for r in cur.fetchall()]


def list_for_campaign(campaign_id: str) -> List[Dict[str, Any]]:
    """Captured and refunded donations with the donor's username (None when anonymous)."""
    sql = f"""
    SELECT {", ".join("d." + c for c in COLS)}, u.username
    FROM donations d LEFT JOIN users u ON u.id = d.user_id
    WHERE d.campaign_id = %s AND d.status <> 'pending'
    ORDER BY d.donation_date DESC
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, (campaign_id,))
        return [dict(zip(COLS + ["donor_username"], r)) for r in cur.fetchall()]


def count_and_last_completed(campaign_id: str) -> tuple[int, Optional[str]]:
    sql = """
      SELECT COUNT(*)::int AS cnt, MAX(donation_date)::text AS last_dt
      FROM donations
      WHERE campaign_id = %s AND status = 'completed'
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, (campaign_id,))
        row = cur.fetchone()
        return (row[0], row[1])


def platform_totals() -> Dict[str, Any]:
    sql = """
      SELECT COUNT(*)::int, COALESCE(SUM(amount), 0)
      FROM donations
      WHERE status = 'completed'
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql)
        row = cur.fetchone()
        return {"donations": row[0], "net_volume": row[1]}


def donations_over_time(days: int = 30) -> List[Dict[str, Any]]:
    sql = """
      SELECT donation_date::date AS day, COUNT(*)::int, COALESCE(SUM(amount), 0)
      FROM donations
      WHERE status = 'completed' AND donation_date >= now() - (%s || ' days')::interval
      GROUP BY day
      ORDER BY day
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, (days,))
        return [
            {"date": r[0].isoformat(), "count": r[1], "total": float(r[2])}
            for r in cur.fetchall()
        ]
