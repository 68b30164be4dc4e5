from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import REDIS_URL

# per-IP request throttling; topic admission per user lives in app.moderation.rate_limit
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=REDIS_URL or "memory://",
)
