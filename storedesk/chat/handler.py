"""
AI Chat Handler
===============

process_ai_chat() produces the bot reply for one customer message in a
widget or messenger conversation. Flow interception and escalation run in
the routes before it; this module owns everything after.

Pipeline:
---------
1. Handoff keywords (when auto_handoff is on) hand the chat to a human.
2. Read the conversation state and resolve a follow-up to the previous
   turn (number reference, order step, price question, ...).
3. Without a follow-up, classify the intent. A lone prefix hit is treated
   as low_confidence.
4. Busy mode blocks product, table and menu requests.
5. Search products or orders for the intent.
6. A product list plus order words ("авъя") starts an order draft.
7. Response tiers: contextual LLM, recommendation writer, template.
8. Save the reply and the next conversation state.

Order Draft:
------------
    variant  -> "2" / "M" / "хар"       -> confirm
    confirm  -> "тийм"                   -> address   (anything else cancels)
    address  -> free text                -> phone
    phone    -> first 8 digits           -> order ORD-<ms> created

Comment Mode:
-------------
reply_to_comment() answers public post comments: classify, search and
render a template with no conversation state.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from .. import config
from ..models import Conversation, Message, Product, Store
from ..services.helpers import format_price, utcnow
from ..services.notifications import dispatch_notification
from ..services.orders import create_order
from .intent import classify_intent_with_confidence, extract_search_terms, is_low_confidence, normalize_text
from .responder import generate_ai_response
from .responses import generate_response, price_info_response, product_detail_response
from .search import (
    fetch_recent_messages,
    get_active_vouchers,
    load_products,
    order_to_dict,
    product_to_dict,
    search_orders,
    search_products,
)
from .state import ConversationState, FollowUp, read_state, resolve_follow_up, update_state, write_state

logger = logging.getLogger(__name__)


PRODUCT_SEARCH_INTENTS = ("product_search", "general", "menu_availability", "size_info", "low_confidence")
BUSY_BLOCKED_INTENTS = ("product_search", "table_reservation", "menu_availability")

ORDER_INTENT_WORDS = [
    "авъя", "авья", "авна", "авах", "авйа", "ави", "авь",
    "захиалъя", "захиалья", "захиалах", "захиалмаар",
]
AFFIRMATIVE_WORDS = ["тийм", "за", "зүгээр", "болно", "тийм ээ", "зөв", "ok", "ок", "yes"]

DEFAULT_AWAY_MESSAGE = "Таны хүсэлтийг менежерт шилжүүллээ. Удахгүй тантай холбогдоно. 🙏"

ORDER_NUMBER_RE = re.compile(r"(?:ord-?)?\d{4,}", re.IGNORECASE)
PHONE_RE = re.compile(r"\d{8}")

MSG_PICK_VARIANT = "Аль хувилбарыг сонгохоо дугаараар бичнэ үү:"
MSG_ASK_ADDRESS = "📍 Хүргэлтийн хаяг бичнэ үү (дүүрэг, хороо, байр, тоот):"
MSG_ASK_PHONE = "📱 Утасны дугаар бичнэ үү (жишээ: 99112233):"
MSG_PHONE_INVALID = "8 оронтой утасны дугаар бичнэ үү (жишээ: 99112233):"
MSG_CANCELLED = "❌ Захиалга цуцлагдлаа. Өөр асуух зүйл байвал бичнэ үү!"
MSG_ORDER_FAILED = "⚠️ Захиалга үүсгэхэд алдаа гарлаа. Дахин оролдоно уу."
MSG_BAD_STEP = "Захиалгын алхам алдаатай байна. Дахин оролдоно уу."


@dataclass
class ChatContext:
    conversation_id: str
    customer_message: str
    store: Store
    customer_id: Optional[str] = None


@dataclass
class ChatResult:
    response: str
    intent: str
    message_id: Optional[str] = None
    products: List[Dict[str, Any]] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    order_step: Optional[str] = None


@dataclass
class _Turn:
    """Working values of one pipeline run."""
    intent: str
    response: Optional[str] = None
    products: List[Dict[str, Any]] = field(default_factory=list)
    orders: List[Dict[str, Any]] = field(default_factory=list)
    query: str = ""


# =============================================================================
# Small matchers
# =============================================================================

def matches_handoff_keywords(message: str, settings: Dict[str, Any]) -> bool:
    if not settings.get("auto_handoff") or not settings.get("handoff_keywords"):
        return False
    raw = settings["handoff_keywords"]
    keywords = raw if isinstance(raw, list) else str(raw).split(",")
    normalized = normalize_text(message)
    for keyword in keywords:
        kw = normalize_text(str(keyword).strip())
        if kw and kw in normalized:
            return True
    return False


def has_order_intent(message: str) -> bool:
    padded = f" {normalize_text(message)} "
    return any(f" {normalize_text(word)} " in padded for word in ORDER_INTENT_WORDS)


def is_affirmative(message: str) -> bool:
    normalized = normalize_text(message)
    words = {normalize_text(w) for w in AFFIRMATIVE_WORDS}
    return normalized in words or normalized.startswith("w ")


def extract_phone(message: str) -> Optional[str]:
    match = PHONE_RE.search(re.sub(r"\s", "", message))
    return match.group(0) if match else None


def _extract_order_number(message: str) -> Optional[str]:
    match = ORDER_NUMBER_RE.search(message)
    return match.group(0).upper() if match else None


def busy_response(store: Store) -> str:
    if store.busy_message:
        return store.busy_message
    wait = f" Хүлээлтийн хугацаа: {store.estimated_wait_minutes} минут." if store.estimated_wait_minutes else ""
    return f"⚠️ Одоогоор захиалга түр хаасан байна.{wait} Тун удахгүй дахин оролдоно уу!"


# =============================================================================
# Order draft
# =============================================================================

def _in_stock(product: Product) -> list:
    return [v for v in product.variants if (v.stock_quantity or 0) > 0]


def _variant_label(variant) -> str:
    return "/".join(x for x in (variant.size, variant.color) if x)


def resolve_variant_from_message(message: str, variants: list):
    """Pick a variant by list number, size or colour mentioned in the message."""
    normalized = normalize_text(message)
    number = re.match(r"^(\d+)", normalized)
    if number and 0 < int(number.group(1)) <= len(variants):
        return variants[int(number.group(1)) - 1]

    padded = f" {normalized} "
    for variant in variants:
        size = normalize_text(variant.size or "")
        if size and f" {size} " in padded:
            return variant
    for variant in variants:
        color = normalize_text(variant.color or "")
        if color and color in normalized:
            return variant
    return None


def build_confirm_message(draft: Dict[str, Any]) -> str:
    lines = [f"📦 {draft['product_name']}"]
    if draft.get("variant_label"):
        lines.append(f"Хувилбар: {draft['variant_label']}")
    lines.append(f"Тоо: {draft['quantity']} ширхэг")
    lines.append(f"Үнэ: {format_price(draft['unit_price'] * draft['quantity'])}")
    lines.append("\nЗахиалга баталгаажуулах уу? (Тийм/Үгүй)")
    return "\n".join(lines)


def _variant_menu(product: Product, variants: list) -> str:
    lines = [f"📦 {product.name} захиалга", "", "Аль хувилбарыг сонгох вэ?"]
    for i, v in enumerate(variants, start=1):
        label = " / ".join(x for x in (v.size, v.color) if x) or "Үндсэн"
        lines.append(f"{i}. {label} — {format_price(v.price or product.base_price)}")
    lines.append("")
    lines.append("Дугаараа бичнэ үү:")
    return "\n".join(lines)


def _select_variant(draft: Dict[str, Any], variant, product: Product) -> None:
    draft["variant_id"] = variant.id
    draft["variant_label"] = _variant_label(variant)
    draft["unit_price"] = variant.price or draft.get("unit_price") or product.base_price
    draft["step"] = "confirm"


def start_order_draft(product: Product, message: str = "") -> Tuple[Dict[str, Any], str]:
    """New draft for a product; returns (draft, reply)."""
    draft = {
        "product_id": product.id,
        "product_name": product.name,
        "unit_price": product.base_price,
        "quantity": 1,
        "step": "confirm",
    }
    variants = _in_stock(product)
    if len(variants) > 1:
        chosen = resolve_variant_from_message(message, variants) if message else None
        if chosen is None:
            draft["step"] = "variant"
            return draft, _variant_menu(product, variants)
        _select_variant(draft, chosen, product)
    elif len(variants) == 1:
        _select_variant(draft, variants[0], product)
    return draft, build_confirm_message(draft)


def advance_order_draft(
    db: Session,
    ctx: ChatContext,
    draft: Dict[str, Any],
) -> Tuple[Optional[Dict[str, Any]], str, str]:
    """Apply the customer's message to the open draft; returns (draft, reply, intent)."""
    message = ctx.customer_message
    step = draft.get("step")

    if step == "variant":
        product = db.query(Product).filter(
            Product.id == draft.get("product_id"), Product.store_id == ctx.store.id, Product.status == "active",
        ).first()
        variants = _in_stock(product) if product else []
        if not variants:
            # Nothing left to choose from, so the draft can never complete
            logger.info("Dropping order draft for unavailable product %s", draft.get("product_id"))
            return None, MSG_CANCELLED, "order_collection"
        chosen = resolve_variant_from_message(message, variants)
        if chosen is None:
            return draft, MSG_PICK_VARIANT, "order_collection"
        _select_variant(draft, chosen, product)
        return draft, build_confirm_message(draft), "order_collection"

    if step == "confirm":
        if is_affirmative(message):
            draft["step"] = "address"
            return draft, MSG_ASK_ADDRESS, "order_collection"
        return None, MSG_CANCELLED, "order_collection"

    if step == "address":
        address = message.strip()
        if not address:
            return draft, MSG_ASK_ADDRESS, "order_collection"
        draft["address"] = address
        draft["step"] = "phone"
        return draft, MSG_ASK_PHONE, "order_collection"

    if step == "phone":
        phone = extract_phone(message)
        if not phone:
            return draft, MSG_PHONE_INVALID, "order_collection"
        draft["phone"] = phone
        try:
            order = create_order(
                db,
                ctx.store.id,
                items=[{
                    "product_id": draft.get("product_id"),
                    "variant_id": draft.get("variant_id"),
                    "quantity": draft.get("quantity") or 1,
                    "unit_price": draft.get("unit_price") or 0,
                    "variant_label": draft.get("variant_label"),
                }],
                customer_id=ctx.customer_id,
                shipping_address=draft.get("address"),
                customer_phone=phone,
                notes="Messenger захиалга",
            )
        except Exception as e:
            db.rollback()
            logger.error("Chat order failed for conversation %s: %s", ctx.conversation_id, e)
            return draft, MSG_ORDER_FAILED, "order_collection"

        dispatch_notification(db, ctx.store.id, "new_order", {
            "order_id": order.id,
            "order_number": order.order_number,
            "total_amount": order.total_amount,
            "payment_method": None,
        })
        label = f" ({draft['variant_label']})" if draft.get("variant_label") else ""
        reply = (
            "✅ Захиалга амжилттай!\n\n"
            f"📋 Захиалгын дугаар: {order.order_number}\n"
            f"📦 {draft['product_name']}{label} x{draft.get('quantity') or 1}\n"
            f"💰 Нийт: {format_price(order.total_amount)}\n"
            f"📍 Хаяг: {draft.get('address')}\n"
            f"📱 Утас: {phone}\n\n"
            "Менежер тантай холбогдож баталгаажуулна. Баярлалаа! 🙏"
        )
        return None, reply, "order_created"

    return None, MSG_BAD_STEP, "order_collection"


# =============================================================================
# Pipeline
# =============================================================================

def _search_for_intent(db: Session, ctx: ChatContext, turn: _Turn, query: str, max_products: int) -> None:
    if turn.intent in PRODUCT_SEARCH_INTENTS:
        turn.products = [product_to_dict(p) for p in search_products(db, query, ctx.store.id, max_products)]
        turn.query = extract_search_terms(query)
        if turn.intent == "product_search" and not turn.products:
            fallback = search_products(db, "", ctx.store.id, max_products)
            if fallback:
                turn.intent = "product_suggestions"
                turn.products = [product_to_dict(p) for p in fallback]
    elif turn.intent == "order_status":
        orders = search_orders(
            db, ctx.store.id,
            customer_id=ctx.customer_id,
            order_number=_extract_order_number(ctx.customer_message),
        )
        turn.orders = [order_to_dict(o) for o in orders]


def _remembered(db: Session, ctx: ChatContext, products: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    ids = [p["id"] for p in products if p.get("id")]
    return [product_to_dict(p) for p in load_products(db, ctx.store.id, ids)]


def _history(db: Session, conversation_id: str, message: str) -> List[Dict[str, str]]:
    history = fetch_recent_messages(db, conversation_id, limit=6)
    # The current message is usually saved already; it is sent separately
    if history and history[-1]["role"] == "user" and history[-1]["content"] == message:
        history = history[:-1]
    return history


def _public_products(products: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "name": p["name"],
            "base_price": p.get("base_price"),
            "description": p.get("description"),
            "images": p.get("images") or [],
        }
        for p in products
    ]


def _handoff(db: Session, ctx: ChatContext, settings: Dict[str, Any]) -> ChatResult:
    reply = settings.get("away_message") or DEFAULT_AWAY_MESSAGE
    conversation = db.query(Conversation).filter(Conversation.id == ctx.conversation_id).first()
    if conversation is not None:
        conversation.status = "pending"
    saved = Message(
        conversation_id=ctx.conversation_id,
        content=reply,
        is_from_customer=False,
        is_ai_response=True,
        extra_metadata={"intent": "handoff"},
    )
    db.add(saved)
    db.commit()
    db.refresh(saved)
    logger.info("Handoff keyword matched; conversation %s set to pending", ctx.conversation_id)
    return ChatResult(response=reply, intent="handoff", message_id=saved.id, metadata={"intent": "handoff"})


def process_ai_chat(db: Session, ctx: ChatContext) -> ChatResult:
    store = ctx.store
    settings = store.chatbot_settings or {}
    store_name = store.name or config.DEFAULT_STORE_NAME
    max_products = settings.get("max_products") or 5
    message = ctx.customer_message

    if matches_handoff_keywords(message, settings):
        return _handoff(db, ctx, settings)

    state = read_state(db, ctx.conversation_id)
    follow_up: Optional[FollowUp] = resolve_follow_up(message, state)
    draft = state.order_draft
    turn = _Turn(intent="general")
    use_ai_tiers = True

    if follow_up and follow_up.type == "order_step_input":
        draft, turn.response, turn.intent = advance_order_draft(db, ctx, dict(draft))
        use_ai_tiers = False

    elif follow_up and follow_up.type == "order_intent":
        product = db.query(Product).filter(
            Product.id == follow_up.product["id"], Product.store_id == store.id
        ).first()
        if product is None:
            turn.intent = "product_search"
            _search_for_intent(db, ctx, turn, state.last_query, max_products)
        else:
            draft, turn.response = start_order_draft(product)
            turn.intent = "order_collection"
            use_ai_tiers = False

    elif follow_up and follow_up.type in ("number_reference", "select_single"):
        turn.intent = "product_detail"
        turn.products = _remembered(db, ctx, [follow_up.product]) or [follow_up.product]
        turn.response = product_detail_response(turn.products[0])
        use_ai_tiers = False

    elif follow_up and follow_up.type == "price_question":
        turn.intent = "price_info"
        turn.products = follow_up.products
        turn.response = price_info_response(follow_up.products)
        use_ai_tiers = False

    elif follow_up and follow_up.type == "query_refinement":
        turn.intent = "product_search"
        _search_for_intent(db, ctx, turn, follow_up.refined_query, max_products)

    elif follow_up and follow_up.type in ("size_question", "contextual_question"):
        turn.intent = "size_info" if follow_up.type == "size_question" else f"{follow_up.topic}_info"
        turn.products = _remembered(db, ctx, follow_up.products)

    else:
        # No follow-up, or prefer_llm (still classified; the LLM tier answers)
        result = classify_intent_with_confidence(message)
        turn.intent = "low_confidence" if is_low_confidence(result) else result.intent

        if store.busy_mode and turn.intent in BUSY_BLOCKED_INTENTS:
            turn.intent = "busy_mode"
            turn.response = busy_response(store)
            use_ai_tiers = False
        else:
            _search_for_intent(db, ctx, turn, message, max_products)
            if turn.products and not draft and has_order_intent(message):
                product = db.query(Product).filter(Product.id == turn.products[0]["id"]).first()
                draft, turn.response = start_order_draft(product, message)
                turn.intent = "order_collection"
                use_ai_tiers = False

    if use_ai_tiers:
        vouchers = [
            {
                "voucher_code": v.voucher_code,
                "compensation_type": v.compensation_type,
                "compensation_value": v.compensation_value,
                "valid_until": v.valid_until,
            }
            for v in get_active_vouchers(db, ctx.customer_id, store.id)
        ]
        turn.response = generate_ai_response(
            turn.intent,
            turn.products,
            turn.orders,
            store_name,
            message,
            settings=settings,
            history=_history(db, ctx.conversation_id, message),
            vouchers=vouchers,
        )
    elif turn.response is None:
        turn.response = generate_response(turn.intent, turn.products, turn.orders, store_name, settings)

    return _save_turn(db, ctx, state, turn, draft, follow_up)


def _save_turn(
    db: Session,
    ctx: ChatContext,
    state: ConversationState,
    turn: _Turn,
    draft: Optional[Dict[str, Any]],
    follow_up: Optional[FollowUp],
) -> ChatResult:
    next_state = update_state(state, turn.intent, turn.products, turn.query)
    next_state.order_draft = draft
    write_state(db, ctx.conversation_id, next_state, commit=False)

    order_step = draft.get("step") if draft else None
    metadata = {
        "intent": turn.intent,
        "products_found": len(turn.products),
        "orders_found": len(turn.orders),
    }
    if follow_up:
        metadata["follow_up"] = follow_up.type
    if order_step:
        metadata["order_step"] = order_step

    saved = Message(
        conversation_id=ctx.conversation_id,
        content=turn.response,
        is_from_customer=False,
        is_ai_response=True,
        extra_metadata=metadata,
    )
    db.add(saved)
    conversation = db.query(Conversation).filter(Conversation.id == ctx.conversation_id).first()
    if conversation is not None:
        conversation.updated_at = utcnow()
    db.commit()
    db.refresh(saved)

    logger.info(
        "AI reply for conversation %s: intent=%s products=%d orders=%d step=%s",
        ctx.conversation_id, turn.intent, len(turn.products), len(turn.orders), order_step,
    )
    return ChatResult(
        response=turn.response,
        intent=turn.intent,
        message_id=saved.id,
        products=_public_products(turn.products),
        metadata=metadata,
        order_step=order_step,
    )


def reply_to_comment(db: Session, store: Store, message: str) -> ChatResult:
    """Stateless reply to a public post comment."""
    settings = store.chatbot_settings or {}
    ctx = ChatContext(conversation_id="", customer_message=message, store=store)
    result = classify_intent_with_confidence(message)
    turn = _Turn(intent="low_confidence" if is_low_confidence(result) else result.intent)
    _search_for_intent(db, ctx, turn, message, settings.get("max_products") or 5)
    response = generate_response(turn.intent, turn.products, turn.orders, store.name or config.DEFAULT_STORE_NAME, settings)
    return ChatResult(
        response=response,
        intent=turn.intent,
        products=_public_products(turn.products),
        metadata={"products_found": len(turn.products), "is_comment_reply": True},
    )
