"""
Chat Schemas for StoreDesk
==========================

Pydantic models for the public chat endpoints used by the embeddable widget
and by channel integrations (Messenger, Instagram, WhatsApp).

Endpoint Coverage:
------------------
- GET /chat: Message history for a sender in a store
- POST /chat: Store a message (customer or assistant) without generating a reply
- POST /chat/ai: Generate the bot reply for an existing conversation
- POST /chat/widget: Save + escalate + flow + AI in a single round trip

Key Concepts:
-------------
1. **Sender IDs**: The widget sends "web_<random>" sender IDs; anything else
   is treated as a Messenger PSID. A sender maps to one Customer per store.

2. **Conversations**: The most recent active or pending conversation for the
   customer is reused; a new one is opened otherwise.

3. **Quick replies**: Flow button nodes return quick replies. The widget
   renders them as buttons and sends the chosen title back as a message.

Validation:
-----------
- Message length is constrained by MAX_MESSAGE_LENGTH (default: 2000 chars)
  to limit LLM token usage.
- Missing required fields yield a 400 (see main.py validation handler).
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from ..config import MAX_MESSAGE_LENGTH


class ChatMessageOut(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    created_at: datetime
    is_ai_response: bool = False


class ChatHistoryResponse(BaseModel):
    conversation_id: str
    messages: List[ChatMessageOut]


class ChatMessageCreate(BaseModel):
    """
    Request body for POST /chat.

    role "user" stores a customer message (bumps unread, notifies the
    owner and runs escalation); role "assistant" stores a bot/agent reply.
    """
    sender_id: str = Field(..., min_length=1, max_length=200)
    store_id: str = Field(..., min_length=1)
    role: Literal["user", "assistant"] = "user"
    content: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    metadata: Optional[Dict[str, Any]] = None


class ChatMessageCreated(BaseModel):
    conversation_id: str
    message_id: str
    created_at: datetime


class ChatAIRequest(BaseModel):
    """
    Request body for POST /chat/ai.

    Attributes:
        conversation_id: Conversation the reply belongs to (a post ID in comment mode)
        customer_message: The text to answer
        store_id: Required in comment mode; otherwise taken from the conversation
        is_comment: Reply to a public post comment (stateless, nothing saved)
        context: Optional post caption or other context for comment replies
    """
    conversation_id: str = Field(..., min_length=1)
    customer_message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    store_id: Optional[str] = None
    is_comment: bool = False
    context: Optional[str] = Field(None, max_length=MAX_MESSAGE_LENGTH)


class QuickReplyOut(BaseModel):
    title: str
    payload: str


class ChatAIResponse(BaseModel):
    response: str
    intent: str
    message_id: Optional[str] = None
    products: Optional[List[Dict[str, Any]]] = None
    quick_replies: Optional[List[QuickReplyOut]] = None
    order_step: Optional[str] = None
    flow_id: Optional[str] = None
    metadata: Dict[str, Any] = {}


class ChatWidgetRequest(BaseModel):
    sender_id: str = Field(..., min_length=1, max_length=200)
    store_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)


class ChatWidgetResponse(BaseModel):
    conversation_id: str
    response: str
    intent: str
    quick_replies: Optional[List[QuickReplyOut]] = None
    products: Optional[List[Dict[str, Any]]] = None
    escalated: bool = False
