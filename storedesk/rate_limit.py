"""
Shared slowapi limiter.

Routes decorate handlers with ``@limiter.limit(get_rate_limit_xxx)`` and take
a ``request: Request`` argument so slowapi can resolve the key. The app wires
``app.state.limiter`` and the RateLimitExceeded handler in main.py.
"""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import RATE_LIMIT_ENABLED


def get_sender_id_or_ip(request: Request) -> str:
    """
    Get rate limit key from the widget sender (JSON body first, then query
    string) or fall back to the client IP. Widget visitors behind one NAT get
    separate buckets. The body is cached by JsonBodyCacheMiddleware.
    """
    sources = [getattr(request.state, "body_json", None) or {}, request.query_params]
    for field, prefix in (("sender_id", "sender"), ("conversation_id", "conversation")):
        for source in sources:
            value = source.get(field)
            if value and isinstance(value, str):
                return f"{prefix}:{value}"
    return get_remote_address(request)


# In-memory storage; for multiple workers use Limiter(..., storage_uri="redis://...")
limiter = Limiter(key_func=get_sender_id_or_ip, enabled=RATE_LIMIT_ENABLED)
