"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in both api/main.py (to mount as middleware) and the route
modules (to apply per-route limits with @limiter.limit()).

Using a single shared instance ensures all routes share the same in-memory
counter store. If this were instantiated in each module separately, each
module would get its own isolated counter and rate limits would never trigger.

default_limits applies RATE_LIMIT to every route through SlowAPIMiddleware;
LOGIN_RATE_LIMIT is the stricter per-route limit on login and register.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

_settings = get_settings()

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[_settings.rate_limit],
    storage_uri="memory://",
    enabled=_settings.rate_limit_enabled,
)

LOGIN_RATE_LIMIT = _settings.login_rate_limit
