from typing import Any, Dict, List, Optional
from shopfund.utils.db import get_db_connection, use_cursor

COLS = [
    "id",
    "user_id",
    "reward_id",
    "campaign_id",
    "donation_id",
    "status",
    "claimed_at",
    "approved_at",
    "redeemed_at",
]
_COLS_SQL = ", ".join(COLS)

DETAIL_COLS = COLS + [
    "reward_name",
    "reward_description",
    "campaign_name",
    "campaign_image",
    "shop_name",
    "owner_user_id",
    "username",
    "email",
]
_DETAIL_SELECT = f"""
SELECT {", ".join("ur." + c for c in COLS)},
       t.title, t.description, c.name, c.image_url, s.name, s.owner_user_id,
       u.username, u.email
FROM user_rewards ur
JOIN reward_tiers t ON t.id = ur.reward_id
JOIN campaigns c ON c.id = ur.campaign_id
JOIN shops s ON s.id = c.shop_id
JOIN users u ON u.id = ur.user_id
"""


def create_user_reward(
    *, user_id: str, reward_id: str, campaign_id: str, donation_id: str, cur=None
) -> Dict[str, Any]:
    sql = f"""
    INSERT INTO user_rewards (user_id, reward_id, campaign_id, donation_id, status)
    VALUES (%s, %s, %s, %s, 'pending')
    ON CONFLICT (donation_id) DO UPDATE SET donation_id = EXCLUDED.donation_id
    RETURNING {_COLS_SQL}
    """
    with use_cursor(cur) as c:
        c.execute(sql, (user_id, reward_id, campaign_id, donation_id))
        row = c.fetchone()
    return dict(zip(COLS, row))


def get_user_reward(user_reward_id: str) -> Optional[Dict[str, Any]]:
    """Joined view: tier, campaign, shop and supporter details."""
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(f"{_DETAIL_SELECT} WHERE ur.id = %s", (user_reward_id,))
        row = cur.fetchone()
        return dict(zip(DETAIL_COLS, row)) if row else None


def list_for_user(user_id: str) -> List[Dict[str, Any]]:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(f"{_DETAIL_SELECT} WHERE ur.user_id = %s ORDER BY ur.claimed_at DESC", (user_id,))
        return [dict(zip(DETAIL_COLS, r)) for r in cur.fetchall()]


def list_supporters(reward_id: str) -> List[Dict[str, Any]]:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(f"{_DETAIL_SELECT} WHERE ur.reward_id = %s ORDER BY ur.claimed_at ASC", (reward_id,))
        return [dict(zip(DETAIL_COLS, r)) for r in cur.fetchall()]


def mark_completed(user_reward_id: str) -> bool:
    """pending -> completed, stamping approved_at. False if it was not pending."""
    sql = """
    UPDATE user_rewards SET status = 'completed', approved_at = now()
    WHERE id = %s AND status = 'pending'
    RETURNING id
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, (user_reward_id,))
        row = cur.fetchone()
        conn.commit()
        return row is not None


def mark_redeemed(user_reward_id: str) -> bool:
    """completed -> redeemed. False if it was not completed, so a replay is a no-op."""
    sql = """
    UPDATE user_rewards SET status = 'redeemed', redeemed_at = now()
    WHERE id = %s AND status = 'completed'
    RETURNING id
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, (user_reward_id,))
        row = cur.fetchone()
        conn.commit()
        return row is not None


def revoke_for_donation(donation_id: str, cur=None) -> Optional[Dict[str, Any]]:
    """
    pending/completed -> revoked for the reward a refunded donation earned.
    None when there is no reward or it was already handed over (redeemed).
    """
    sql = f"""
    UPDATE user_rewards SET status = 'revoked', revoked_at = now()
    WHERE donation_id = %s AND status IN ('pending', 'completed')
    RETURNING {_COLS_SQL}
    """
    with use_cursor(cur) as c:
        c.execute(sql, (donation_id,))
        row = c.fetchone()
    return dict(zip(COLS, row)) if row else None
