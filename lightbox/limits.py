from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from lightbox.config import settings

# Write endpoints that accept credentials or file bodies
LOGIN_LIMIT = "5/minute"
UPLOAD_LIMIT = settings.UPLOAD_RATE_LIMIT

limiter = Limiter(key_func=get_remote_address)

__all__ = [
    "limiter",
    "LOGIN_LIMIT",
    "UPLOAD_LIMIT",
    "RateLimitExceeded",
    "SlowAPIMiddleware",
]
