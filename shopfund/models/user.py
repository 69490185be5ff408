from shopfund.utils.db import get_db_connection, use_cursor
from typing import Optional, Dict, Any, List

PUBLIC_COLS = ["id", "username", "email", "role", "profile_picture", "auth_provider", "created_at"]
_SELECT = "SELECT id, username, email, role, profile_picture, auth_provider, created_at FROM users"


def get_user(user_id: str) -> Optional[Dict[str, Any]]:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(f"{_SELECT} WHERE id = %s", (user_id,))
        row = cur.fetchone()
        return dict(zip(PUBLIC_COLS, row)) if row else None


def get_user_for_login(login: str) -> Optional[Dict[str, Any]]:
    """Look up by username or email; includes password_hash."""
    sql = """
    SELECT id, username, email, role, profile_picture, auth_provider, created_at, password_hash
    FROM users
    WHERE username = %s OR email = lower(%s)
    ORDER BY (username = %s) DESC
    LIMIT 1
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, (login, login, login))
        row = cur.fetchone()
        if not row:
            return None
        return dict(zip(PUBLIC_COLS + ["password_hash"], row))


def username_taken(username: str) -> bool:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute("SELECT 1 FROM users WHERE username = %s", (username,))
        return cur.fetchone() is not None


def email_taken(email: str) -> bool:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute("SELECT 1 FROM users WHERE email = %s", (email,))
        return cur.fetchone() is not None


def create_user(
    username: str,
    email: str,
    password_hash: Optional[str],
    role: str,
    profile_picture: Optional[str] = None,
    auth_provider: str = "local",
    provider_subject: Optional[str] = None,
) -> Dict[str, Any]:
    sql = """
    INSERT INTO users (username, email, password_hash, role, profile_picture, auth_provider, provider_subject)
    VALUES (%s, %s, %s, %s, %s, %s, %s)
    RETURNING id, username, email, role, profile_picture, auth_provider, created_at
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(
            sql,
            (username, email, password_hash, role, profile_picture, auth_provider, provider_subject),
        )
        row = cur.fetchone()
        conn.commit()
        return dict(zip(PUBLIC_COLS, row))


def get_user_by_provider(provider: str, subject: str) -> Optional[Dict[str, Any]]:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(
            f"{_SELECT} WHERE auth_provider = %s AND provider_subject = %s",
            (provider, subject),
        )
        row = cur.fetchone()
        return dict(zip(PUBLIC_COLS, row)) if row else None


def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(f"{_SELECT} WHERE email = %s", (email,))
        row = cur.fetchone()
        return dict(zip(PUBLIC_COLS, row)) if row else None


def link_provider(user_id: str, provider: str, subject: str) -> None:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(
            "UPDATE users SET auth_provider = %s, provider_subject = %s, updated_at = now() WHERE id = %s",
            (provider, subject, user_id),
        )
        conn.commit()


def list_users() -> List[Dict[str, Any]]:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(f"{_SELECT} ORDER BY created_at DESC")
        return [dict(zip(PUBLIC_COLS, r)) for r in cur.fetchall()]


def set_user_role(user_id: str, role: str) -> Optional[Dict[str, Any]]:
    sql = f"""
    UPDATE users SET role = %s, updated_at = now() WHERE id = %s
    RETURNING {", ".join(PUBLIC_COLS)}
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, (role, user_id))
        row = cur.fetchone()
        conn.commit()
        return dict(zip(PUBLIC_COLS, row)) if row else None


def update_profile(
    user_id: str, *, username: Optional[str] = None, profile_picture: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    sets, params = [], []
    if username is not None:
        sets.append("username = %s")
        params.append(username)
    if profile_picture is not None:
        sets.append("profile_picture = %s")
        params.append(profile_picture)
    if not sets:
        return get_user(user_id)
    sets.append("updated_at = now()")
    params.append(user_id)
    sql = f"UPDATE users SET {', '.join(sets)} WHERE id = %s RETURNING {', '.join(PUBLIC_COLS)}"
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, tuple(params))
        row = cur.fetchone()
        conn.commit()
        return dict(zip(PUBLIC_COLS, row)) if row else None


def delete_user(user_id: str) -> bool:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute("DELETE FROM users WHERE id = %s", (user_id,))
        conn.commit()
        return cur.rowcount > 0


def count_supporters() -> int:
    """Distinct users with at least one completed donation."""
    sql = "SELECT COUNT(DISTINCT user_id)::int FROM donations WHERE status = 'completed' AND user_id IS NOT NULL"
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql)
        return cur.fetchone()[0]


def set_password(user_id: str, password_hash: str, cur=None) -> bool:
    with use_cursor(cur) as c:
        c.execute(
            "UPDATE users SET password_hash = %s, updated_at = now() WHERE id = %s",
            (password_hash, user_id),
        )
        return c.rowcount > 0
