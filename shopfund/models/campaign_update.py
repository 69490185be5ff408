from typing import Any, List, Dict, Optional
from shopfund.utils.db import get_db_connection

COLS = [
    "id",
    "campaign_id",
    "author_user_id",
    "title",
    "body",
    "image_url",
    "scheduled_for",
    "created_at",
    "updated_at",
]
_COLS_SQL = ", ".join(COLS)

# an update is public once it has no schedule or its time has come
_PUBLISHED = "(u.scheduled_for IS NULL OR u.scheduled_for <= now())"


def create_update(
    campaign_id: str,
    author_user_id: str,
    title: str,
    body: str,
    image_url: Optional[str] = None,
    scheduled_for=None,
) -> dict[str, Any]:
    sql = f"""
    INSERT INTO campaign_updates (campaign_id, author_user_id, title, body, image_url, scheduled_for)
    VALUES (%s, %s, %s, %s, %s, %s)
    RETURNING {_COLS_SQL}
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, (campaign_id, author_user_id, title, body, image_url, scheduled_for))
        row = cur.fetchone()
        conn.commit()
        return {**dict(zip(COLS, row)), "like_count": 0, "comment_count": 0}


def get_update(update_id: str) -> Optional[Dict[str, Any]]:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(f"SELECT {_COLS_SQL} FROM campaign_updates WHERE id = %s", (update_id,))
        row = cur.fetchone()
        return dict(zip(COLS, row)) if row else None


def list_updates(campaign_id: str, limit: int = 50, include_scheduled: bool = False) -> List[Dict[str, Any]]:
    """Newest first by publish time; scheduled ones only with include_scheduled."""
    where = "u.campaign_id = %s" if include_scheduled else f"u.campaign_id = %s AND {_PUBLISHED}"
    sql = f"""
    SELECT {", ".join("u." + c for c in COLS)},
           (SELECT COUNT(*) FROM update_likes l WHERE l.update_id = u.id)::int,
           (SELECT COUNT(*) FROM update_comments m WHERE m.update_id = u.id)::int
    FROM campaign_updates u
    WHERE {where}
    ORDER BY COALESCE(u.scheduled_for, u.created_at) DESC
    LIMIT %s
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, (campaign_id, limit))
        return [
            dict(zip(COLS + ["like_count", "comment_count"], r)) for r in cur.fetchall()
        ]


_EDITABLE = ("title", "body", "image_url", "scheduled_for")


def edit_update(update_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Apply the given columns; a None value clears image_url or scheduled_for."""
    sets, params = [], []
    for col in _EDITABLE:
        if col in changes:
            sets.append(f"{col} = %s")
            params.append(changes[col])
    if not sets:
        return get_update(update_id)
    sets.append("updated_at = now()")
    params.append(update_id)
    sql = f"UPDATE campaign_updates SET {', '.join(sets)} WHERE id = %s RETURNING {_COLS_SQL}"
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, tuple(params))
        row = cur.fetchone()
        conn.commit()
        return dict(zip(COLS, row)) if row else None


def toggle_like(update_id: str, user_id: str) -> tuple[bool, int]:
    """Like if not liked, unlike otherwise. Returns (liked_now, like_count)."""
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(
            "DELETE FROM update_likes WHERE update_id = %s AND user_id = %s",
            (update_id, user_id),
        )
        liked = cur.rowcount == 0
        if liked:
            cur.execute(
                """
                INSERT INTO update_likes (update_id, user_id) VALUES (%s, %s)
                ON CONFLICT DO NOTHING
                """,
                (update_id, user_id),
            )
        cur.execute("SELECT COUNT(*)::int FROM update_likes WHERE update_id = %s", (update_id,))
        count = cur.fetchone()[0]
        conn.commit()
        return liked, count


def delete_update(update_id: str) -> bool:
    """Likes and comments go with it (ON DELETE CASCADE)."""
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute("DELETE FROM campaign_updates WHERE id = %s", (update_id,))
        conn.commit()
        return cur.rowcount > 0
