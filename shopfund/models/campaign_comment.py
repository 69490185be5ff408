from typing import Any, List, Dict, Optional
from shopfund.utils.db import get_db_connection

COLS = [
    "id",
    "update_id",
    "user_id",
    "parent_id",
    "body",
    "created_at",
    "author_username",
    "author_picture",
    "updated_at",
]

_SELECT = """
SELECT m.id, m.update_id, m.user_id, m.parent_id, m.body, m.created_at,
       u.username, u.profile_picture, m.updated_at
FROM update_comments m
JOIN users u ON u.id = m.user_id
"""


def create_comment(
    update_id: str, user_id: str, body: str, parent_id: Optional[str] = None
) -> dict[str, Any]:
    sql = """
    INSERT INTO update_comments (update_id, user_id, parent_id, body)
    VALUES (%s, %s, %s, %s)
    RETURNING id
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, (update_id, user_id, parent_id, body))
        comment_id = cur.fetchone()[0]
        conn.commit()
    return get_comment(comment_id)


def get_comment(comment_id: str) -> Optional[Dict[str, Any]]:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(f"{_SELECT} WHERE m.id = %s", (comment_id,))
        row = cur.fetchone()
        return dict(zip(COLS, row)) if row else None


def list_comments(update_id: str) -> List[Dict[str, Any]]:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(f"{_SELECT} WHERE m.update_id = %s ORDER BY m.created_at ASC", (update_id,))
        return [dict(zip(COLS, r)) for r in cur.fetchall()]


def list_all_comments(limit: int = 200) -> List[Dict[str, Any]]:
    """Moderation view across every campaign, newest first."""
    sql = """
    SELECT m.id, m.update_id, m.user_id, m.parent_id, m.body, m.created_at,
           u.username, u.profile_picture, m.updated_at, cu.campaign_id, c.name
    FROM update_comments m
    JOIN users u ON u.id = m.user_id
    JOIN campaign_updates cu ON cu.id = m.update_id
    JOIN campaigns c ON c.id = cu.campaign_id
    ORDER BY m.created_at DESC
    LIMIT %s
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, (limit,))
        return [dict(zip(COLS + ["campaign_id", "campaign_name"], r)) for r in cur.fetchall()]


def edit_comment(comment_id: str, body: str) -> Optional[Dict[str, Any]]:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(
            "UPDATE update_comments SET body = %s, updated_at = now() WHERE id = %s",
            (body, comment_id),
        )
        conn.commit()
        if cur.rowcount == 0:
            return None
    return get_comment(comment_id)


def delete_comment(comment_id: str) -> bool:
    """Replies go with their parent (ON DELETE CASCADE)."""
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute("DELETE FROM update_comments WHERE id = %s", (comment_id,))
        conn.commit()
        return cur.rowcount > 0
