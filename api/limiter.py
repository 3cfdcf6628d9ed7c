"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in api/main.py (to mount as middleware) and in
api/routes/v1/auth.py (to apply per-route limits with @limiter.limit()).

A single shared instance means every route shares one in-memory counter
store. Separate instances per module would each keep their own counters and
the limits would never trigger.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def login_limit() -> str:
    return get_settings().login_rate_limit


def reset_limit() -> str:
    return get_settings().reset_rate_limit
