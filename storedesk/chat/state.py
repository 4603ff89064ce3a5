"""
Conversation Memory
===================

Lightweight per-conversation state kept in
`conversation.metadata["conversation_state"]`, plus the deterministic
follow-up detector that reads it. No AI calls are made here.

State:
------
- last_intent: Intent of the previous substantive turn
- last_products: Up to 10 {id, name, base_price} shown to the customer
- last_query: Search terms behind last_products
- turn_count: Number of bot turns so far
- order_draft: Open chat order, or None

Order Draft Steps:
------------------
    variant -> confirm -> address -> phone -> (order created)

A draft intercepts every message until the order is created or cancelled.

Follow-up Detection:
--------------------
resolve_follow_up() runs an ordered list of checks (number reference,
product name, price selection, order words, "this one", size question,
contextual topic, price question, refinement, emotional phrasing, repeated
low confidence). The first hit wins; None means "classify normally".
Size and contextual topics are checked before price words because
"хэмжээ хэд" asks for a size and "хүргэлт хэд хоног" asks for days.
"""

import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..models import Conversation
from .intent import neutralize_vowels, normalize_text

logger = logging.getLogger(__name__)

MAX_REMEMBERED_PRODUCTS = 10


# =============================================================================
# State
# =============================================================================

@dataclass
class ConversationState:
    last_intent: str = ""
    last_products: List[Dict[str, Any]] = field(default_factory=list)
    last_query: str = ""
    turn_count: int = 0
    order_draft: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Any) -> "ConversationState":
        if not isinstance(raw, dict):
            return cls()
        products = raw.get("last_products")
        draft = raw.get("order_draft")
        turn_count = raw.get("turn_count")
        return cls(
            last_intent=raw.get("last_intent") if isinstance(raw.get("last_intent"), str) else "",
            last_products=products[:MAX_REMEMBERED_PRODUCTS] if isinstance(products, list) else [],
            last_query=raw.get("last_query") if isinstance(raw.get("last_query"), str) else "",
            turn_count=turn_count if isinstance(turn_count, int) else 0,
            order_draft=draft if isinstance(draft, dict) else None,
        )


def stored_product(product: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce a product dict to what the state remembers."""
    return {"id": product["id"], "name": product["name"], "base_price": product.get("base_price") or 0}


def read_state(db: Session, conversation_id: str) -> ConversationState:
    conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if conversation is None:
        return ConversationState()
    meta = conversation.extra_metadata if isinstance(conversation.extra_metadata, dict) else {}
    return ConversationState.from_dict(meta.get("conversation_state"))


def write_state(db: Session, conversation_id: str, state: ConversationState, commit: bool = True) -> None:
    """Store the state, keeping the other metadata keys (flow_state, ...)."""
    conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if conversation is None:
        logger.warning("write_state: conversation %s not found", conversation_id)
        return
    meta = dict(conversation.extra_metadata or {})
    meta["conversation_state"] = state.to_dict()
    # Reassign so SQLAlchemy sees the JSON change
    conversation.extra_metadata = meta
    if commit:
        db.commit()


# =============================================================================
# Keyword tables
# =============================================================================

ORDINALS = {
    "эхнийх": 0, "эхний": 0, "нэг дэх": 0, "нэгдүгээр": 0, "1": 0,
    "хоёр дахь": 1, "хоёрдугаар": 1, "2": 1,
    "гурав дахь": 2, "гуравдугаар": 2, "3": 2,
    "дөрөв дэх": 3, "дөрөвдүгээр": 3, "4": 3,
    "тав дахь": 4, "тавдугаар": 4, "5": 4,
    "сүүлийнх": -1, "сүүлийн": -1,
}

NUMBER_SUFFIX_RE = re.compile(r"^(г|ийг|дугаарыг|дугаар|дэх|дахь|ыг)$")

ORDER_WORD_STEMS = ["захиал", "авъ", "авь"]
ORDER_EXACT_WORDS = [
    "авна", "авах", "авйа", "ави", "авмаар",
    "тийм", "за", "зүгээр", "болно",
]

SELECT_WORDS = [
    "энийг", "авъя", "авья", "энийг авъя", "энийг авья", "үүнийг",
    "энэ", "энийгээ", "үүнийгээ", "авна", "авах",
    "авйа",
    "энийг авч", "захиалъя", "захиалья",
]

PRICE_WORDS = [
    "үнэ", "хэд", "хэдтэй", "үнэтэй", "ямар үнэ", "үнийг",
    "хэдвэ", "хэд вэ", "үнэнь", "үнэ нь", "хэдэн төг", "хэдэн төгрөг",
    "ямар үнэтэй", "хямдруулна",
]

EMOTIONAL_WORDS = [
    "яагаад", "яагаа", "ойлгохгүй", "ойлгосонгүй", "бухимдсан", "бухимдаа",
    "уурласан", "уурлаа", "сэтгэл ханамжгүй",
    "хэцүү", "ядарсан", "итгэхгүй", "гомдсон", "гомдоо", "харамсалтай",
    "яаж ингэж", "яаж болж", "юу болсон", "ямар учиртай",
    "тусалж", "тусална уу", "гуйж", "гуйя",
    "юубэ", "юу бэ", "яавал", "ойлгохгуй", "ойлгсонгуй",
    "алга болчих", "хариу өг", "хариу огоч",
]

REFINEMENT_WORDS = [
    "улаан", "хөх", "ногоон", "хар", "цагаан", "шар", "ягаан", "бор", "саарал",
    "том", "жижиг", "дунд", "урт", "богино", "өргөн", "нарийн",
    "s", "m", "l", "xl", "xxl",
]

SIZE_QUESTION_WORDS = [
    "размер", "хэмжээ", "хэмжээг", "хэмжээ нь", "тохирох", "тохирно", "тохирох уу",
    "таарах", "таарна", "таарах уу",
    "али нь", "алинийг", "сайз", "сайзаа",
    "али ни",
    "size", "fit", "measurement",
    "хэмжээнь", "размераа", "сайзаар", "ямар размер",
    "багтах", "багтана", "багтах уу",
]

BODY_MEASUREMENT_RE = re.compile(r"\d+\s*(?:кг|см|kg|cm)", re.IGNORECASE)

# topic -> keywords, checked in this order
CONTEXT_KEYWORDS = [
    ("delivery", [
        "хүргэлт", "хүргэх", "хүргэнэ", "хэзээ ирэх", "хэдэн өдөр",
        "шуудан", "хаяг", "хүргүүлэх",
        "delivery", "deliver", "shipping",
        "аймаг", "сум", "дүүрэг", "хороо", "хөдөө", "орон нутаг",
        "хүргүүлмээр", "хүрч", "хүрнэ", "хүрэх",
    ]),
    ("order", [
        "захиалах", "захиалга", "захиалмаар", "захиалъя", "захиалья",
        "яаж авах", "хэрхэн авах", "худалдаж авах",
        "order", "buy", "purchase",
        "захялах", "захялга",
    ]),
    ("payment", [
        "төлбөр", "төлөх", "шилжүүлэг", "карт", "данс",
        "qpay", "монпэй", "socialpay", "дансаар",
        "payment", "pay",
        "кюпэй", "сошиал пэй", "хипэй", "hipay",
        "хуваалцаа", "хуваах", "хуваан", "зээлээр", "лизинг",
        "шилжүүлэх", "төлье", "төлъе",
    ]),
    ("material", [
        "материал", "даавуу", "бүтэц", "бүрдэл", "найрлага",
        "ноос", "торго", "арьс", "хөвөн", "ноолуур",
        "material", "fabric", "cotton", "cashmere",
        "кашемир", "тэмээний", "ноосон", "ноолууран",
        "чанар", "зэрэг", "хөөсөн", "нэхмэл",
    ]),
    ("warranty", [
        "баталгаа", "баталгаат", "буцаах боломж", "солих боломж",
        "warranty", "guarantee", "return policy",
        "буцаалт", "буцаах", "солих", "солилцоо",
    ]),
    ("stock", [
        "нөөц", "үлдэгдэл", "байгаа юу", "бий юу", "бэлэн байна",
        "stock", "available", "availability",
        "дууссан уу", "дуусчихсан уу",
    ]),
    ("detail", [
        "дэлгэрэнгүй", "мэдээлэл", "тайлбар", "илүү", "дэлгэрэнгүй мэдээлэл",
        "detail", "details", "info", "more info",
    ]),
]

ORDER_TRIGGER_INTENTS = ("product_detail", "product_search", "product_suggestions")

PRESERVE_INTENTS = (
    "greeting", "thanks", "size_info",
    "delivery_info", "order_info", "payment_info", "warranty_info", "stock_info",
)
SAVE_PRODUCT_INTENTS = ("product_search", "low_confidence", "product_suggestions", "product_detail")

PRICE_SELECTION_RE = re.compile(r"(\d[\d,]*)\s*(?:к|k|мянга|мянгын|ийнхийг|ынхийг|инхиг|ийг|ыг|₮)?", re.IGNORECASE)
PRICE_CONTEXT_RE = re.compile(
    r"сонирх|авъя|авья|авах|авна|энийг|үүнийг|ийнхийг|ынхийг|инхиг|ийг|₮|төгрөгийн|мянг", re.IGNORECASE
)
PRICE_CONTEXT_NORMALIZED_RE = re.compile(r"сонирх|авйа|авах|авна|энийг|үүнийг|мянг|тогрогийн")


# =============================================================================
# Follow-up detection
# =============================================================================

@dataclass
class FollowUp:
    type: str
    product: Optional[Dict[str, Any]] = None
    products: Optional[List[Dict[str, Any]]] = None
    refined_query: Optional[str] = None
    topic: Optional[str] = None
    reason: Optional[str] = None


def padded_includes(padded_normalized: str, keyword: str) -> bool:
    """Whole-word containment, with a vowel-neutral fallback for Latin-typed text."""
    norm_kw = normalize_text(keyword)
    if f" {norm_kw} " in padded_normalized:
        return True
    return f" {neutralize_vowels(norm_kw)} " in neutralize_vowels(padded_normalized)


def _any_word(padded: str, words: List[str]) -> bool:
    return any(padded_includes(padded, w) for w in words)


def _match_number(normalized: str, products: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    # Whole-message ordinals only, so "5 сартай хүүхэд" is not a selection
    for pattern, index in ORDINALS.items():
        if normalized == pattern:
            resolved = len(products) - 1 if index == -1 else index
            if 0 <= resolved < len(products):
                return products[resolved]

    match = re.match(r"^(\d+)", normalized)
    if match:
        rest = normalized[match.end():].strip()
        if rest == "" or NUMBER_SUFFIX_RE.match(rest):
            idx = int(match.group(1)) - 1
            if 0 <= idx < len(products):
                return products[idx]
    return None


def _match_name(message: str, products: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    lower = message.lower()
    for product in products:
        name_words = [w for w in product["name"].lower().split() if len(w) >= 3]
        hits = sum(1 for w in name_words if w in lower)
        if hits >= 2 or (len(name_words) == 1 and hits == 1):
            return product
    return None


def _match_price(message: str, normalized: str, products: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    match = PRICE_SELECTION_RE.search(message)
    if not match:
        return None
    raw = int(match.group(1).replace(",", ""))
    matched = next((p for p in products if p.get("base_price") == raw), None)
    if matched is None and raw < 10000:
        # "145" / "145к" / "20 мянгын" mean thousands
        matched = next((p for p in products if p.get("base_price") == raw * 1000), None)
    if matched is None:
        return None
    if PRICE_CONTEXT_RE.search(message) or PRICE_CONTEXT_NORMALIZED_RE.search(normalized):
        return matched
    return None


def _has_order_words(normalized: str) -> bool:
    stems = [normalize_text(s) for s in ORDER_WORD_STEMS]
    for word in normalized.split():
        if any(word.startswith(stem) for stem in stems):
            return True
        if any(padded_includes(f" {word} ", ew) for ew in ORDER_EXACT_WORDS):
            return True
    return False


def resolve_follow_up(message: str, state: ConversationState) -> Optional[FollowUp]:
    """
    Detect a follow-up to the previous turn.

    Returns None when the message should go through normal intent
    classification.
    """
    if state.turn_count == 0:
        return None

    if state.order_draft:
        return FollowUp(type="order_step_input")

    normalized = normalize_text(message).strip()
    padded = f" {normalized} "
    products = state.last_products

    if products:
        product = _match_number(normalized, products)
        if product:
            return FollowUp(type="number_reference", product=product)

    if len(products) > 1:
        product = _match_name(message, products)
        if product:
            return FollowUp(type="number_reference", product=product)

        product = _match_price(message, normalized, products)
        if product:
            return FollowUp(type="number_reference", product=product)

    if state.last_intent in ORDER_TRIGGER_INTENTS and products and _has_order_words(normalized):
        return FollowUp(type="order_intent", product=products[0])

    if len(products) == 1 and _any_word(padded, SELECT_WORDS):
        return FollowUp(type="select_single", product=products[0])

    if products:
        if BODY_MEASUREMENT_RE.search(normalized) or BODY_MEASUREMENT_RE.search(message):
            return FollowUp(type="size_question", products=products)
        if _any_word(padded, SIZE_QUESTION_WORDS):
            return FollowUp(type="size_question", products=products)

        for topic, words in CONTEXT_KEYWORDS:
            if _any_word(padded, words):
                return FollowUp(type="contextual_question", products=products, topic=topic)

        if _any_word(padded, PRICE_WORDS):
            return FollowUp(type="price_question", products=products)

    if state.last_intent == "product_search" and state.last_query and _any_word(padded, REFINEMENT_WORDS):
        return FollowUp(type="query_refinement", refined_query=f"{state.last_query} {normalized}")

    if _any_word(padded, EMOTIONAL_WORDS):
        return FollowUp(type="prefer_llm", reason="emotional")

    if state.last_intent == "low_confidence":
        return FollowUp(type="prefer_llm", reason="repeated_low_confidence")

    return None


# =============================================================================
# State update
# =============================================================================

def update_state(
    current: ConversationState,
    intent: str,
    products: List[Dict[str, Any]],
    query: str,
) -> ConversationState:
    """
    Next state after a turn.

    Greeting and thanks keep the remembered products so "thanks, show me #2"
    still resolves.
    """
    preserve = intent in PRESERVE_INTENTS
    save = intent in SAVE_PRODUCT_INTENTS

    if save and products:
        next_products = [stored_product(p) for p in products[:MAX_REMEMBERED_PRODUCTS]]
    elif preserve:
        next_products = current.last_products
    else:
        next_products = []

    if save and query:
        next_query = query
    elif preserve:
        next_query = current.last_query
    else:
        next_query = ""

    return ConversationState(
        last_intent=current.last_intent if preserve else intent,
        last_products=next_products,
        last_query=next_query,
        turn_count=current.turn_count + 1,
        order_draft=current.order_draft,
    )
