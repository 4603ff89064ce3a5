"""
Helper Functions for StoreDesk
==============================

Shared utilities used by the dashboard routes and the chat pipeline.

Key Functions:
--------------
- pagination_params: Lenient limit/offset dependency for list endpoints
- paginate: Apply limit/offset to a query and return (rows, total)
- valid_choice: Accept an enum filter value only when it is known
- icontains: Case-insensitive substring filter for Mongolian text
- generate_number: Time-based document numbers (ORD-..., DEAL-..., PAY-...)
- format_price: Tugrik price formatting used in bot replies and notifications

Pagination:
-----------
List endpoints never reject bad paging input. `limit` defaults to 20 and is
clamped to [1, 100]; a non-numeric or zero `limit` falls back to the
default. `offset` is floored at 0. The total is counted before paging.

Usage:
------
    from storedesk.services.helpers import Pagination, pagination_params, paginate

    @router.get("")
    def list_things(page: Pagination = Depends(pagination_params), ...):
        rows, total = paginate(query, page)
"""

import math
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Optional, Tuple

from fastapi import Query
from sqlalchemy import func

from .. import config


@dataclass
class Pagination:
    limit: int
    offset: int


def _to_int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_pagination(
    limit: Optional[str] = None,
    offset: Optional[str] = None,
    default_limit: int = None,
    max_limit: int = None,
) -> Pagination:
    default_limit = default_limit or config.DEFAULT_PAGE_LIMIT
    max_limit = max_limit or config.MAX_PAGE_LIMIT

    parsed_limit = _to_int(limit) or default_limit
    parsed_limit = min(max(parsed_limit, 1), max_limit)
    parsed_offset = max(_to_int(offset) or 0, 0)
    return Pagination(limit=parsed_limit, offset=parsed_offset)


def pagination_params(
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
) -> Pagination:
    """FastAPI dependency; query values arrive as raw strings so garbage is tolerated."""
    return parse_pagination(limit, offset)


def paginate(query, page: Pagination) -> Tuple[List[Any], int]:
    total = query.order_by(None).count()
    rows = query.offset(page.offset).limit(page.limit).all()
    return rows, total


def valid_choice(value: Optional[str], allowed: Iterable[str]) -> Optional[str]:
    """Return value if it is one of allowed, else None (invalid filters are ignored)."""
    if value and value in allowed:
        return value
    return None


def icontains(column, text: str):
    """Case-insensitive substring match that also folds Cyrillic."""
    return func.lower(column).contains(text.lower(), autoescape=True)


def epoch_ms() -> int:
    return int(time.time() * 1000)


def generate_number(prefix: str) -> str:
    return f"{prefix}-{epoch_ms()}"


def utcnow() -> datetime:
    return datetime.utcnow()


def round2(value: float) -> float:
    """Round to cents with halves going up (0.125 -> 0.13, -0.125 -> -0.12)."""
    return math.floor(value * 100 + 0.5) / 100


def format_price(value) -> str:
    """Format an amount the way mn-MN locale output does: 25,000₮ / 12.5₮."""
    amount = float(value or 0)
    if amount == int(amount):
        text = f"{int(amount):,}"
    else:
        text = f"{amount:,.3f}".rstrip("0").rstrip(".")
    return f"{text}₮"
