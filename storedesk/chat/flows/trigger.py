"""
Flow trigger matching.

Active flows are checked in ascending priority; the first flow whose
trigger matches the incoming message starts.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ...models import Flow
from ..intent import classify_intent_with_confidence, normalize_text
from .types import ButtonClickTriggerConfig, IntentMatchTriggerConfig, KeywordTriggerConfig

logger = logging.getLogger(__name__)

# A first message with one of these intents is a real question; welcome
# flows stay out of the way so the AI pipeline can answer it.
SUBSTANTIVE_INTENTS = frozenset([
    "product_search", "order_status", "size_info", "payment", "shipping",
    "complaint", "return_exchange", "table_reservation", "allergen_info",
    "menu_availability",
])


def pre_classify(message: str) -> Optional[str]:
    """Intent with at least one whole keyword hit, else None."""
    result = classify_intent_with_confidence(message)
    return result.intent if result.confidence >= 1 else None


def match_keyword_trigger(config: KeywordTriggerConfig, normalized_message: str) -> bool:
    keywords = [normalize_text(kw) for kw in config.keywords]
    keywords = [kw for kw in keywords if kw]
    if not keywords:
        return False
    words = normalized_message.split()

    def hit(kw: str) -> bool:
        return any(kw in w for w in words) or (" " in kw and kw in normalized_message)

    if config.match_mode == "all":
        return all(hit(kw) for kw in keywords)
    return any(hit(kw) for kw in keywords)


def matches_trigger(
    flow: Flow,
    normalized_message: str,
    is_new_conversation: bool = False,
    pre_intent: Optional[str] = None,
    quick_reply_payload: Optional[str] = None,
) -> bool:
    trigger_config = flow.trigger_config or {}

    if flow.trigger_type == "keyword":
        return match_keyword_trigger(KeywordTriggerConfig.model_validate(trigger_config), normalized_message)

    if flow.trigger_type == "new_conversation":
        if not is_new_conversation:
            return False
        return not (pre_intent and pre_intent in SUBSTANTIVE_INTENTS)

    if flow.trigger_type == "button_click":
        config = ButtonClickTriggerConfig.model_validate(trigger_config)
        return bool(config.payload) and quick_reply_payload == config.payload

    if flow.trigger_type == "intent_match":
        config = IntentMatchTriggerConfig.model_validate(trigger_config)
        return bool(pre_intent) and pre_intent in config.intents

    return False


def match_flow(
    flows: Iterable[Flow],
    message: str,
    is_new_conversation: bool = False,
    pre_intent: Optional[str] = None,
    quick_reply_payload: Optional[str] = None,
) -> Optional[Flow]:
    """Return the first active flow (lowest priority value) whose trigger matches."""
    if pre_intent is None:
        pre_intent = pre_classify(message)
    normalized = normalize_text(message)

    candidates = sorted((f for f in flows if f.status == "active"), key=lambda f: f.priority or 0)
    for flow in candidates:
        if matches_trigger(flow, normalized, is_new_conversation, pre_intent, quick_reply_payload):
            logger.info("Flow matched: %s (id=%s, trigger=%s)", flow.name, flow.id, flow.trigger_type)
            return flow
    return None


def find_matching_flow(
    db: Session,
    store_id: str,
    message: str,
    is_new_conversation: bool = False,
    quick_reply_payload: Optional[str] = None,
) -> Optional[Flow]:
    flows = (
        db.query(Flow)
        .filter(Flow.store_id == store_id, Flow.status == "active")
        .order_by(Flow.priority.asc())
        .all()
    )
    if not flows:
        return None
    return match_flow(flows, message, is_new_conversation, quick_reply_payload=quick_reply_payload)
