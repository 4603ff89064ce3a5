"""
Logging setup for StoreDesk.

main.py calls setup_logging() once at import. The level comes from the
argument, else the LOG_LEVEL env var, else INFO; unknown names fall back to
INFO. Records written through the stdout handler carry the current
X-Request-ID (``-`` outside a request), set by RequestIDMiddleware.

    2026-10-19 09:12:03 INFO    [3f0c...] storedesk.routes.chat: Opened conversation ...
"""
import logging
import os
import sys
from contextvars import ContextVar

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Client libraries that are only worth reading when debugging
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "urllib3", "sqlalchemy.engine")

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(request_id)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    """Stamp records with the request ID of the call that produced them."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


def resolve_level(level: str = None) -> str:
    name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    return name if name in VALID_LEVELS else "INFO"


def setup_logging(level: str = None) -> None:
    name = resolve_level(level)
    numeric_level = logging.getLevelName(name)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(RequestIdFilter())
    # No-op when the root logger already has handlers
    logging.basicConfig(level=numeric_level, handlers=[handler])

    logging.getLogger("storedesk").setLevel(numeric_level)
    if name != "DEBUG":
        for noisy in NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug("Logging configured at %s level", name)
