"""Single-use forgot-password tokens. Only the SHA-256 of a token is stored."""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timezone, timedelta
from typing import Optional, Dict, Any

from shopfund.utils.db import get_db_connection, use_cursor

TOKEN_TTL_HOURS = 1

COLS = ["id", "user_id", "expires_at", "used_at", "created_at"]


def hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode()).hexdigest()


def create_reset_token(user_id: str) -> str:
    """
    Store a fresh token for the user and return the raw value for the email link.
    Earlier unused tokens for the same user stop working.
    """
    raw_token = secrets.token_urlsafe(32)
    expires_at = datetime.now(timezone.utc) + timedelta(hours=TOKEN_TTL_HOURS)

    with use_cursor() as cur:
        cur.execute(
            "UPDATE password_reset_tokens SET used_at = now() WHERE user_id = %s AND used_at IS NULL",
            (user_id,),
        )
        cur.execute(
            """
            INSERT INTO password_reset_tokens (user_id, token_hash, expires_at)
            VALUES (%s, %s, %s)
            """,
            (user_id, hash_token(raw_token), expires_at),
        )
    return raw_token


def get_valid_token(raw_token: str) -> Optional[Dict[str, Any]]:
    """The token row if it exists, has not expired and was never used."""
    sql = """
        SELECT id, user_id, expires_at, used_at, created_at
        FROM password_reset_tokens
        WHERE token_hash = %s
          AND expires_at > now()
          AND used_at IS NULL
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(sql, (hash_token(raw_token),))
        row = cur.fetchone()
        return dict(zip(COLS, row)) if row else None


def mark_token_used(token_id: str, cur=None) -> bool:
    """False when another request used the token first."""
    with use_cursor(cur) as c:
        c.execute(
            "UPDATE password_reset_tokens SET used_at = now() WHERE id = %s AND used_at IS NULL",
            (token_id,),
        )
        return c.rowcount > 0
