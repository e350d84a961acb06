"""Rate limiter shared by main.py and the routers.

Kept out of main.py so routers can import it without a circular import.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from models.config import settings

# Keyed by client address; the moderation test endpoint is the expensive one
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
