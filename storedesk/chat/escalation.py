"""
Conversation Escalation
=======================

Scores each incoming customer message against a set of signals and hands
the conversation to a human once the running score crosses the store's
threshold.

Signals and Weights:
--------------------
- complaint (25): complaint words ("гомдол", "эвдэрсэн", ...)
- frustration (20): frustrated phrasing ("яагаад", "залхсан", ...)
- return_exchange (20): return or exchange requests
- payment_dispute (25): double charges, missing refunds
- repeated_message (15): Jaccard word similarity >= 0.8 with one of the
  last five earlier customer messages
- ai_fail_to_resolve (15): five or more trailing customer messages with
  no reply in between
- long_unresolved (10): six or more customer messages and no human reply

The score only grows: new = min(100, previous + signal weights). A human
agent resets it by taking the conversation over.

Levels:
-------
    score >= 80  critical
    score >= 60  high
    score >= 30  medium
    otherwise    low

Escalation fires once, on the message that moves the score from below the
threshold to at or above it.

Compensation:
-------------
On escalation, if the conversation has a customer and the complaint
classifier is at least 50% sure of a category with an active
compensation policy, a voucher COMP-<ms> is issued. Auto-approved
vouchers are announced to the customer right away; the rest wait for the
owner.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from .. import config
from ..models import CompensationPolicy, Conversation, Message, Voucher
from ..services.helpers import format_price, generate_number, utcnow
from ..services.notifications import dispatch_notification
from .classifier import classify_complaint

logger = logging.getLogger(__name__)


COMPLAINT_KEYWORDS = [
    "гомдол", "асуудал", "муу", "буруу", "алдаа",
    "сэтгэл ханамжгүй", "чанар муу", "эвдэрсэн", "гэмтсэн",
    "хуурамч", "луйвар", "тохиромжгүй",
]

FRUSTRATION_KEYWORDS = [
    "яагаад", "яаж ийм", "битгий", "хэрэггүй",
    "уурласан", "бухимдсан", "залхсан", "ичмээр",
    "ямар ч", "хариулахгүй", "хэзээ ч",
]

RETURN_EXCHANGE_KEYWORDS = [
    "буцаах", "буцаалт", "солих", "солилцох",
    "буцааж өгөх", "мөнгө буцаах",
]

PAYMENT_DISPUTE_KEYWORDS = [
    "төлбөр буруу", "давхар төлсөн", "мөнгө ирээгүй",
    "залилсан", "хуурсан", "төлбөр төлсөн ч",
]

KEYWORD_SIGNALS = [
    ("complaint", COMPLAINT_KEYWORDS),
    ("frustration", FRUSTRATION_KEYWORDS),
    ("return_exchange", RETURN_EXCHANGE_KEYWORDS),
    ("payment_dispute", PAYMENT_DISPUTE_KEYWORDS),
]

WEIGHTS = {
    "complaint": 25,
    "frustration": 20,
    "return_exchange": 20,
    "payment_dispute": 25,
    "repeated_message": 15,
    "ai_fail_to_resolve": 15,
    "long_unresolved": 10,
}

REPEAT_SIMILARITY = 0.8
REPEAT_LOOKBACK = 5
AI_FAIL_STREAK = 5
LONG_UNRESOLVED_MESSAGES = 6
RECENT_MESSAGE_LIMIT = 10
MIN_CLASSIFICATION_CONFIDENCE = 0.5

DEFAULT_ESCALATION_MESSAGE = (
    "Таны хүсэлтийг бид хүлээн авлаа. Манай менежер тантай удахгүй холбогдоно. Түр хүлээнэ үү!"
)

COMPLAINT_CATEGORY_LABELS = {
    "food_quality": "Хоолны чанар",
    "wrong_item": "Буруу бараа",
    "delivery_delay": "Хүргэлт удсан",
    "service_quality": "Үйлчилгээний чанар",
    "damaged_item": "Гэмтэлтэй бараа",
    "pricing_error": "Үнийн алдаа",
    "staff_behavior": "Ажилтны зан",
    "other": "Бусад",
}

_WORD_RE = re.compile(r"[^\w\s]")


@dataclass
class EscalationEvaluation:
    score: int
    level: str
    should_escalate: bool
    signals: List[str] = field(default_factory=list)


@dataclass
class EscalationResult:
    escalated: bool
    score: int
    level: str
    signals: List[str] = field(default_factory=list)
    escalation_message: Optional[str] = None
    voucher_code: Optional[str] = None


# =============================================================================
# Scoring
# =============================================================================

def score_to_level(score: int) -> str:
    if score >= 80:
        return "critical"
    if score >= 60:
        return "high"
    if score >= 30:
        return "medium"
    return "low"


def _word_set(text: str) -> set:
    # \w without underscore: letters and digits in any script
    return set(_WORD_RE.sub("", text.lower()).replace("_", "").split())


def detect_repeated_message(message: str, previous_messages: List[str]) -> bool:
    words = _word_set(message)
    if not words:
        return False
    for previous in previous_messages:
        previous_words = _word_set(previous)
        if not previous_words:
            continue
        similarity = len(words & previous_words) / len(words | previous_words)
        if similarity >= REPEAT_SIMILARITY:
            return True
    return False


def count_trailing_customer_messages(messages: List[Dict[str, Any]]) -> int:
    """Customer messages at the end of the thread with no reply after them."""
    count = 0
    for message in reversed(messages):
        if not message["is_from_customer"]:
            break
        count += 1
    return count


def evaluate_escalation(
    current_score: int,
    message: str,
    recent_messages: List[Dict[str, Any]],
    threshold: int,
    enabled: bool = True,
) -> EscalationEvaluation:
    """
    Score one customer message.

    `recent_messages` is chronological and already contains the current
    message as its last customer entry.
    """
    if not enabled:
        return EscalationEvaluation(current_score, score_to_level(current_score), False)

    lower = message.lower()
    added = 0
    signals = []

    for signal, keywords in KEYWORD_SIGNALS:
        if any(kw in lower for kw in keywords):
            added += WEIGHTS[signal]
            signals.append(signal)

    customer_texts = [m["content"] for m in recent_messages if m["is_from_customer"]]
    earlier = customer_texts[:-1][-REPEAT_LOOKBACK:]
    if detect_repeated_message(message, earlier):
        added += WEIGHTS["repeated_message"]
        signals.append("repeated_message")

    if count_trailing_customer_messages(recent_messages) >= AI_FAIL_STREAK:
        added += WEIGHTS["ai_fail_to_resolve"]
        signals.append("ai_fail_to_resolve")

    has_human_reply = any(not m["is_from_customer"] and not m["is_ai_response"] for m in recent_messages)
    if len(customer_texts) >= LONG_UNRESOLVED_MESSAGES and not has_human_reply:
        added += WEIGHTS["long_unresolved"]
        signals.append("long_unresolved")

    new_score = min(current_score + added, 100)
    return EscalationEvaluation(
        score=new_score,
        level=score_to_level(new_score),
        should_escalate=current_score < threshold <= new_score,
        signals=signals,
    )


# =============================================================================
# Compensation
# =============================================================================

def compensation_label(compensation_type: str, value: float) -> str:
    if compensation_type == "percent_discount":
        return f"{value:g}% хөнгөлөлт"
    if compensation_type == "fixed_discount":
        return f"{format_price(value)} хөнгөлөлт"
    if compensation_type == "free_shipping":
        return "Үнэгүй хүргэлт"
    return "Үнэгүй бараа"


def compensation_message(label: str, voucher_code: str) -> str:
    """Customer-facing text for an approved voucher."""
    return f"Уучлаарай, дараагийн захиалгадаа {label} авах эрхтэй боллоо. Код: {voucher_code}"


def issue_compensation(
    db: Session,
    store_id: str,
    conversation: Conversation,
    complaint_text: str,
) -> Optional[Voucher]:
    """Classify the complaint and create a voucher when an active policy covers it."""
    classification = classify_complaint(complaint_text)
    if classification is None or classification.confidence < MIN_CLASSIFICATION_CONFIDENCE:
        return None

    policy = (
        db.query(CompensationPolicy)
        .filter(
            CompensationPolicy.store_id == store_id,
            CompensationPolicy.complaint_category == classification.category,
            CompensationPolicy.is_active.is_(True),
        )
        .first()
    )
    if policy is None:
        logger.info("No compensation policy for %s (store=%s)", classification.category, store_id)
        return None

    now = utcnow()
    voucher = Voucher(
        store_id=store_id,
        customer_id=conversation.customer_id,
        policy_id=policy.id,
        conversation_id=conversation.id,
        voucher_code=generate_number("COMP"),
        compensation_type=policy.compensation_type,
        compensation_value=policy.compensation_value,
        max_discount_amount=policy.max_discount_amount,
        complaint_category=classification.category,
        complaint_summary=classification.suggested_response,
        status="approved" if policy.auto_approve else "pending_approval",
        valid_until=now + timedelta(days=policy.valid_days or 30),
        approved_at=now if policy.auto_approve else None,
    )
    db.add(voucher)

    label = compensation_label(policy.compensation_type, policy.compensation_value)
    if policy.auto_approve:
        db.add(Message(
            conversation_id=conversation.id,
            content=compensation_message(label, voucher.voucher_code),
            is_from_customer=False,
            is_ai_response=True,
            extra_metadata={"type": "compensation", "voucher_code": voucher.voucher_code},
        ))
    db.commit()
    db.refresh(voucher)
    logger.info("Created voucher: %s (status=%s, category=%s)", voucher.voucher_code, voucher.status, voucher.complaint_category)

    dispatch_notification(db, store_id, "compensation_suggested", {
        "voucher_id": voucher.id,
        "voucher_code": voucher.voucher_code,
        "compensation_label": label,
        "complaint_category_label": COMPLAINT_CATEGORY_LABELS.get(classification.category, classification.category),
        "auto_approved": policy.auto_approve,
    })
    return voucher


# =============================================================================
# Route helper
# =============================================================================

def _recent_messages(db: Session, conversation_id: str) -> List[Dict[str, Any]]:
    rows = (
        db.query(Message)
        .filter(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.desc())
        .limit(RECENT_MESSAGE_LIMIT)
        .all()
    )
    return [
        {"content": m.content, "is_from_customer": m.is_from_customer, "is_ai_response": m.is_ai_response}
        for m in reversed(rows)
    ]


def process_escalation(
    db: Session,
    conversation_id: str,
    message: str,
    store_id: str,
    settings: Optional[Dict[str, Any]] = None,
) -> EscalationResult:
    """
    Score a saved customer message and escalate the conversation if needed.

    Called by the widget and chat routes after the customer message has
    been committed.
    """
    settings = settings or {}
    if settings.get("escalation_enabled") is False:
        return EscalationResult(escalated=False, score=0, level="low")

    conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if conversation is None:
        logger.warning("Escalation skipped: conversation %s not found", conversation_id)
        return EscalationResult(escalated=False, score=0, level="low")

    threshold = settings.get("escalation_threshold")
    if threshold is None:
        threshold = config.ESCALATION_DEFAULT_THRESHOLD

    recent = _recent_messages(db, conversation_id)
    evaluation = evaluate_escalation(conversation.escalation_score or 0, message, recent, threshold)

    conversation.escalation_score = evaluation.score
    conversation.escalation_level = evaluation.level
    if not evaluation.should_escalate:
        db.commit()
        return EscalationResult(
            escalated=False,
            score=evaluation.score,
            level=evaluation.level,
            signals=evaluation.signals,
        )

    escalation_message = settings.get("escalation_message") or DEFAULT_ESCALATION_MESSAGE
    conversation.status = "escalated"
    conversation.escalated_at = utcnow()
    db.add(Message(
        conversation_id=conversation_id,
        content=escalation_message,
        is_from_customer=False,
        is_ai_response=True,
        extra_metadata={
            "type": "escalation",
            "signals": evaluation.signals,
            "score": evaluation.score,
            "level": evaluation.level,
        },
    ))
    db.commit()
    logger.info(
        "Escalated conversation %s (score=%s, level=%s, signals=%s)",
        conversation_id, evaluation.score, evaluation.level, evaluation.signals,
    )

    dispatch_notification(db, store_id, "escalation", {
        "conversation_id": conversation_id,
        "level": evaluation.level,
        "score": evaluation.score,
        "signals": ", ".join(evaluation.signals),
    })

    voucher = None
    if conversation.customer_id:
        customer_texts = [m["content"] for m in recent if m["is_from_customer"]]
        try:
            voucher = issue_compensation(db, store_id, conversation, "\n".join(customer_texts))
        except Exception as e:
            db.rollback()
            logger.error("Compensation failed for conversation %s: %s", conversation_id, e)

    return EscalationResult(
        escalated=True,
        score=evaluation.score,
        level=evaluation.level,
        signals=evaluation.signals,
        escalation_message=escalation_message,
        voucher_code=voucher.voucher_code if voucher else None,
    )
