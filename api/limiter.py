"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in api/main.py (to mount as middleware) and in the route modules
that apply per-route limits with @limiter.limit(). A single shared instance
keeps one in-memory counter store for the whole app.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

# Applied to paste creation and paste login. Read once at import; tests set
# PASTE_RATE_LIMIT in the environment before importing the app.
PASTE_RATE_LIMIT = get_settings().paste_rate_limit
