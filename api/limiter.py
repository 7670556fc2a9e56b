"""
api/limiter.py -- Shared slowapi rate limiter for the login form.

api/main.py mounts SlowAPIMiddleware against this instance; web/routes.py
decorates POST /login with @limiter.limit(login_limit). One shared instance
means one in-memory counter store across every route that uses it.

The limit string is looked up per request through login_limit() rather than
frozen at import time, so LOGIN_RATE_LIMIT follows get_settings().
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def login_limit() -> str:
    return get_settings().login_rate_limit
