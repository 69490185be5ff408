from __future__ import annotations
import psycopg2
import os
from contextlib import contextmanager
from dotenv import load_dotenv

load_dotenv()


def get_db_connection():
    """
    Connect to PostgreSQL. Uses DATABASE_URL if set (e.g. for a managed instance);
    otherwise falls back to DB_HOST, DB_NAME, DB_USER, DB_PASSWORD, DB_PORT.
    """
    url = os.getenv("DATABASE_URL")
    if url:
        return psycopg2.connect(url)
    return psycopg2.connect(
        host=os.getenv("DB_HOST", "127.0.0.1"),
        database=os.getenv("DB_NAME", "shopfund_dev"),
        user=os.getenv("DB_USER", "dev"),
        password=os.getenv("DB_PASSWORD", "dev"),
        port=os.getenv("DB_PORT", "65432"),
    )


@contextmanager
def transaction():
    """A cursor on its own connection: commit when the block exits, roll back if it raises."""
    conn = get_db_connection()
    try:
        with conn:
            with conn.cursor() as cur:
                yield cur
    finally:
        conn.close()


@contextmanager
def use_cursor(cur=None):
    """Run on the caller's cursor (joining its transaction), or on a fresh transaction."""
    if cur is not None:
        yield cur
        return
    with transaction() as own:
        yield own


def rows_to_dicts(cur, rows) -> list[dict]:
    cols = [d[0] for d in cur.description]
    return [dict(zip(cols, r)) for r in rows]


def row_to_dict(cur, row) -> dict | None:
    if not row:
        return None
    cols = [d[0] for d in cur.description]
    return dict(zip(cols, row))
