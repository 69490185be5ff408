"""
Simple in-memory rate limiter.

Configure via RATE_LIMIT_ENABLED (default: 1) and RATE_LIMIT_AUTH_PER_MINUTE
(default: 10), which guards login and registration.
"""

from __future__ import annotations
import os
import time
from collections import defaultdict
from functools import wraps
from threading import Lock

from flask import jsonify, request

_lock = Lock()
_counts: dict[str, list[float]] = defaultdict(list)
_window = 60  # seconds


def _clean_old(ts_list: list[float], window: int) -> None:
    cutoff = time.time() - window
    while ts_list and ts_list[0] < cutoff:
        ts_list.pop(0)


def is_rate_limited(key: str, limit: int, window_seconds: int = _window) -> bool:
    """Return True if the key has exceeded the limit within the window."""
    if limit <= 0:
        return False
    with _lock:
        _clean_old(_counts[key], window_seconds)
        if len(_counts[key]) >= limit:
            return True
        _counts[key].append(time.time())
        return False


def reset() -> None:
    with _lock:
        _counts.clear()


def rate_limit_key() -> str:
    """Get rate limit key from request (IP)."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr or "unknown"


def auth_limit() -> int:
    return int(os.getenv("RATE_LIMIT_AUTH_PER_MINUTE", "10"))


def rate_limit_decorator(limit_per_minute, key_prefix: str = ""):
    """Decorator to rate limit a route. limit_per_minute may be an int or a callable."""

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if os.getenv("RATE_LIMIT_ENABLED", "1") != "1":
                return fn(*args, **kwargs)
            limit = limit_per_minute() if callable(limit_per_minute) else limit_per_minute
            prefix = key_prefix or fn.__name__
            key = f"{prefix}:{rate_limit_key()}"
            if is_rate_limited(key, limit):
                return jsonify({"error": "rate limit exceeded", "retry_after": _window}), 429
            return fn(*args, **kwargs)

        return wrapper

    return decorator
