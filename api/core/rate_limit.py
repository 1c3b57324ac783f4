"""
Rate limiting for unauthenticated endpoints, keyed by client address.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from api.config.settings import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

AUTH_LIMIT = settings.AUTH_RATE_LIMIT
