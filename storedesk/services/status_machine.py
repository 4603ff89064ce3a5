"""
Status transition tables for entity workflows.

Each machine maps a current status to the statuses it may move to. PATCH
handlers call validate_transition() and turn a returned error into a 400.
Staying in the same status is always allowed.
"""

from typing import Dict, List, Optional

TransitionMap = Dict[str, List[str]]


DEAL_TRANSITIONS: TransitionMap = {
    "lead": ["viewing", "lost"],
    "viewing": ["offer", "lost"],
    "offer": ["contract", "lost"],
    "contract": ["closed", "withdrawn"],
    "closed": [],
    "withdrawn": [],
    "lost": [],
}

ORDER_TRANSITIONS: TransitionMap = {
    "pending": ["confirmed", "cancelled"],
    "confirmed": ["processing", "cancelled"],
    "processing": ["shipped", "delivered", "cancelled"],
    "shipped": ["delivered"],
    "delivered": [],
    "cancelled": [],
}

VOUCHER_TRANSITIONS: TransitionMap = {
    "pending_approval": ["approved", "rejected"],
    "approved": ["redeemed"],
    "rejected": [],
    "redeemed": [],
    "expired": [],
}


def validate_transition(machine: TransitionMap, current: str, new: str) -> Optional[str]:
    """Return an error message if current -> new is not allowed, else None."""
    if current == new:
        return None
    if new not in machine.get(current, []):
        return f"Cannot transition from {current} to {new}"
    return None
