"""
============================================================================
FILE: limiter.py
LOCATION: eduportal/limiter.py
============================================================================

PURPOSE:
    Shared SlowAPI limiter instance for the backend.

ROLE IN PROJECT:
    The app and the login route use the same limiter so that the
    per-address defaults and the stricter login limit share storage.

USAGE:
    from eduportal.limiter import limiter

    @limiter.limit(config.LOGIN_RATE_LIMIT)
    async def login(request: Request, ...):
        ...
============================================================================
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from eduportal import config


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[config.DEFAULT_RATE_LIMIT],
    enabled=config.RATE_LIMIT_ENABLED,
)
