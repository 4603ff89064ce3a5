"""
Chat Routes for StoreDesk
=========================

Public endpoints behind the embeddable chat widget and the channel
integrations (Messenger, Instagram, WhatsApp). None of them require owner
authentication; all are rate limited.

Endpoints:
----------
- GET /chat: Message history for a sender in a store
- POST /chat: Store a message (customer or assistant) without replying
- POST /chat/ai: Generate the bot reply for an existing conversation
- POST /chat/widget: Save, escalate, run flows and reply in one round trip

Conversation Resolution:
------------------------
A sender maps to one Customer per store. Widget senders look like
"web_<random>"; anything else is a Messenger PSID unless the caller says
otherwise. The customer's latest active or pending conversation is
reused, and a new one is opened when there is none.

Widget Round Trip:
------------------
1. Resolve the conversation and save the customer message
2. Score the message for escalation; an escalation reply ends the turn
3. Let an active or newly triggered flow answer
4. Otherwise run the AI pipeline (chat.handler.process_ai_chat)

Flow and notification failures are logged and never fail the request.
Only a failure of the AI pipeline itself surfaces as a 500.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ..chat.escalation import EscalationResult, process_escalation
from ..chat.flows import intercept_with_flow
from ..chat.handler import ChatContext, process_ai_chat, reply_to_comment
from ..config import get_rate_limit_chat, get_rate_limit_chat_ai
from ..db import get_db
from ..models import Conversation, Customer, Message, Store
from ..rate_limit import limiter
from ..schemas.chat import (
    ChatAIRequest,
    ChatAIResponse,
    ChatHistoryResponse,
    ChatMessageCreate,
    ChatMessageCreated,
    ChatMessageOut,
    ChatWidgetRequest,
    ChatWidgetResponse,
)
from ..services.helpers import parse_pagination, utcnow
from ..services.notifications import dispatch_notification

logger = logging.getLogger(__name__)

chat_router = APIRouter(prefix="/chat", tags=["Chat"])

CHANNEL_ID_FIELDS = {
    "web": "messenger_id",
    "messenger": "messenger_id",
    "instagram": "instagram_id",
    "whatsapp": "whatsapp_id",
}
OPEN_STATUSES = ("active", "pending")


# =============================================================================
# Helpers
# =============================================================================

def _get_store(db: Session, store_id: str) -> Store:
    store = db.query(Store).filter(Store.id == store_id).first()
    if not store:
        raise HTTPException(status_code=404, detail="Store not found")
    return store


def resolve_conversation(
    db: Session,
    sender_id: str,
    store_id: str,
    channel: Optional[str] = None,
) -> Tuple[Conversation, Customer]:
    """Find or create the sender's customer row and open conversation."""
    if channel is None:
        channel = "web" if sender_id.startswith("web_") else "messenger"
    id_field = getattr(Customer, CHANNEL_ID_FIELDS.get(channel, "messenger_id"))

    customer = db.query(Customer).filter(Customer.store_id == store_id, id_field == sender_id).first()
    if customer is None:
        customer = Customer(store_id=store_id, channel=channel)
        setattr(customer, id_field.key, sender_id)
        db.add(customer)
        db.commit()
        db.refresh(customer)
        logger.info("Created customer %s for sender %s (channel=%s)", customer.id, sender_id, channel)
        dispatch_notification(db, store_id, "new_customer", {
            "customer_id": customer.id,
            "name": customer.name,
            "channel": channel,
        })

    conversation = (
        db.query(Conversation)
        .filter(
            Conversation.store_id == store_id,
            Conversation.customer_id == customer.id,
            Conversation.status.in_(OPEN_STATUSES),
        )
        .order_by(Conversation.updated_at.desc())
        .first()
    )
    if conversation is None:
        conversation = Conversation(
            store_id=store_id,
            customer_id=customer.id,
            status="active",
            channel=channel,
            extra_metadata={},
        )
        db.add(conversation)
        db.commit()
        db.refresh(conversation)
        logger.info("Opened conversation %s for customer %s", conversation.id, customer.id)

    return conversation, customer


def _save_customer_message(
    db: Session,
    conversation: Conversation,
    customer: Optional[Customer],
    content: str,
    metadata: Optional[Dict[str, Any]] = None,
) -> Message:
    message = Message(
        conversation_id=conversation.id,
        content=content,
        is_from_customer=True,
        is_ai_response=False,
        extra_metadata=metadata or {},
    )
    db.add(message)
    conversation.unread_count = (conversation.unread_count or 0) + 1
    conversation.updated_at = utcnow()
    db.commit()
    db.refresh(message)

    dispatch_notification(db, conversation.store_id, "new_message", {
        "conversation_id": conversation.id,
        "customer_name": customer.name if customer else None,
        "message": content,
        "channel": conversation.channel,
    })
    return message


def _run_escalation(db: Session, conversation: Conversation, content: str, store: Store) -> Optional[EscalationResult]:
    try:
        return process_escalation(db, conversation.id, content, store.id, store.chatbot_settings or {})
    except Exception as e:
        db.rollback()
        logger.error("Escalation check failed for conversation %s: %s", conversation.id, e)
        return None


def _run_flow(db: Session, conversation_id: str, store_id: str, message: str, is_new: bool) -> Optional[Dict[str, Any]]:
    try:
        return intercept_with_flow(db, conversation_id, store_id, message, is_new_conversation=is_new)
    except Exception as e:
        db.rollback()
        logger.error("Flow interception failed for conversation %s: %s", conversation_id, e)
        return None


def _is_first_customer_message(db: Session, conversation_id: str) -> bool:
    count = (
        db.query(Message)
        .filter(Message.conversation_id == conversation_id, Message.is_from_customer.is_(True))
        .count()
    )
    return count <= 1


# =============================================================================
# Endpoints
# =============================================================================

@chat_router.get("", response_model=ChatHistoryResponse)
@limiter.limit(get_rate_limit_chat)
def chat_history(
    request: Request,
    sender_id: str = Query(..., min_length=1),
    store_id: str = Query(..., min_length=1),
    limit: Optional[str] = Query(None),
    db: Session = Depends(get_db),
) -> ChatHistoryResponse:
    """Return the latest messages of the sender's conversation, oldest first."""
    _get_store(db, store_id)
    conversation, _customer = resolve_conversation(db, sender_id, store_id)
    page = parse_pagination(limit)

    rows = (
        db.query(Message)
        .filter(Message.conversation_id == conversation.id)
        .order_by(Message.created_at.desc())
        .limit(page.limit)
        .all()
    )
    messages = [
        ChatMessageOut(
            role="user" if m.is_from_customer else "assistant",
            content=m.content,
            created_at=m.created_at,
            is_ai_response=bool(m.is_ai_response),
        )
        for m in reversed(rows)
    ]
    return ChatHistoryResponse(conversation_id=conversation.id, messages=messages)


@chat_router.post("", response_model=ChatMessageCreated, status_code=201)
@limiter.limit(get_rate_limit_chat)
def post_message(
    request: Request,
    payload: ChatMessageCreate,
    db: Session = Depends(get_db),
) -> ChatMessageCreated:
    """
    Store a message in the sender's conversation.

    Customer messages also notify the owner and are scored for escalation.
    """
    store = _get_store(db, payload.store_id)
    conversation, customer = resolve_conversation(db, payload.sender_id, store.id)

    if payload.role == "user":
        message = _save_customer_message(db, conversation, customer, payload.content, payload.metadata)
        _run_escalation(db, conversation, payload.content, store)
    else:
        message = Message(
            conversation_id=conversation.id,
            content=payload.content,
            is_from_customer=False,
            is_ai_response=True,
            extra_metadata=payload.metadata or {},
        )
        db.add(message)
        conversation.updated_at = utcnow()
        db.commit()
        db.refresh(message)

    return ChatMessageCreated(conversation_id=conversation.id, message_id=message.id, created_at=message.created_at)


@chat_router.post("/ai", response_model=ChatAIResponse)
@limiter.limit(get_rate_limit_chat_ai)
def chat_ai(
    request: Request,
    payload: ChatAIRequest,
    db: Session = Depends(get_db),
) -> ChatAIResponse:
    """
    Generate the bot reply for a conversation.

    In comment mode (is_comment) the reply is stateless and nothing is
    saved; conversation_id then carries the post or comment ID.
    """
    if payload.is_comment:
        if not payload.store_id:
            raise HTTPException(status_code=400, detail="store_id is required for comment replies")
        store = _get_store(db, payload.store_id)
        result = reply_to_comment(db, store, payload.customer_message)
        logger.info("Comment reply for %s: intent=%s", payload.conversation_id, result.intent)
        return ChatAIResponse(response=result.response, intent=result.intent, metadata=result.metadata)

    conversation = db.query(Conversation).filter(Conversation.id == payload.conversation_id).first()
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")
    store = _get_store(db, conversation.store_id)

    flow_reply = _run_flow(
        db, conversation.id, store.id, payload.customer_message,
        _is_first_customer_message(db, conversation.id),
    )
    if flow_reply:
        return ChatAIResponse(**flow_reply)

    try:
        result = process_ai_chat(db, ChatContext(
            conversation_id=conversation.id,
            customer_message=payload.customer_message,
            store=store,
            customer_id=conversation.customer_id,
        ))
    except Exception as e:
        db.rollback()
        logger.exception("AI processing failed for conversation %s: %s", conversation.id, e)
        raise HTTPException(status_code=500, detail="AI processing failed")

    return ChatAIResponse(
        response=result.response,
        intent=result.intent,
        message_id=result.message_id,
        products=result.products or None,
        order_step=result.order_step,
        metadata=result.metadata,
    )


@chat_router.post("/widget", response_model=ChatWidgetResponse)
@limiter.limit(get_rate_limit_chat)
def chat_widget(
    request: Request,
    payload: ChatWidgetRequest,
    db: Session = Depends(get_db),
) -> ChatWidgetResponse:
    """Single round trip for the embeddable widget."""
    store = _get_store(db, payload.store_id)
    conversation, customer = resolve_conversation(db, payload.sender_id, store.id)
    conversation_id = conversation.id
    _save_customer_message(db, conversation, customer, payload.message)

    escalation = _run_escalation(db, conversation, payload.message, store)
    if escalation and escalation.escalated:
        return ChatWidgetResponse(
            conversation_id=conversation_id,
            response=escalation.escalation_message,
            intent="escalation",
            escalated=True,
        )

    flow_reply = _run_flow(
        db, conversation_id, store.id, payload.message,
        _is_first_customer_message(db, conversation_id),
    )
    if flow_reply:
        return ChatWidgetResponse(
            conversation_id=conversation_id,
            response=flow_reply["response"],
            intent=flow_reply["intent"],
            quick_replies=flow_reply.get("quick_replies"),
            products=flow_reply.get("products"),
        )

    try:
        result = process_ai_chat(db, ChatContext(
            conversation_id=conversation_id,
            customer_message=payload.message,
            store=store,
            customer_id=customer.id,
        ))
    except Exception as e:
        db.rollback()
        logger.exception("AI processing failed for conversation %s: %s", conversation_id, e)
        raise HTTPException(status_code=500, detail="AI processing failed")

    return ChatWidgetResponse(
        conversation_id=conversation_id,
        response=result.response,
        intent=result.intent,
        products=result.products or None,
    )
