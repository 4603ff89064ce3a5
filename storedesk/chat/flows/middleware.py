"""
Flow interception for the chat routes.

intercept_with_flow() runs before the AI pipeline. It continues the flow
the conversation is in, or starts a newly triggered one, saves the bot
reply and returns the widget payload. None means "no flow, let the AI
answer".
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ...models import Conversation, Flow, Message
from .executor import FlowContext, complete_flow_execution, execute_flow_step, flow_graph, start_flow
from .trigger import find_matching_flow
from .types import FlowState, FlowStepResult

logger = logging.getLogger(__name__)


def read_flow_state(db: Session, conversation_id: str) -> Optional[FlowState]:
    conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if conversation is None:
        return None
    raw = (conversation.extra_metadata or {}).get("flow_state")
    if not isinstance(raw, dict):
        return None
    return FlowState.model_validate(raw)


def write_flow_state(db: Session, conversation_id: str, state: Optional[FlowState]) -> None:
    """Store or clear flow_state, keeping the other metadata keys."""
    conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if conversation is None:
        return
    meta = dict(conversation.extra_metadata or {})
    if state is None:
        meta.pop("flow_state", None)
    else:
        meta["flow_state"] = state.model_dump(mode="json")
    conversation.extra_metadata = meta
    db.commit()


def _to_payload(result: FlowStepResult, flow_id: str) -> Dict[str, Any]:
    texts = [m.text for m in result.messages if m.text]
    quick_replies: List[Dict[str, str]] = []
    products: List[Dict[str, Any]] = []
    for message in result.messages:
        if message.quick_replies:
            quick_replies = [qr.model_dump() for qr in message.quick_replies]
        if message.products:
            products.extend(message.products)
    if not texts and products:
        texts = [f"{i}. {p['name']}" for i, p in enumerate(products, start=1)]

    payload = {"response": "\n\n".join(texts), "intent": "flow", "flow_id": flow_id}
    if quick_replies:
        payload["quick_replies"] = quick_replies
    if products:
        payload["products"] = products
    return payload


def _save_bot_message(db: Session, conversation_id: str, payload: Dict[str, Any]) -> Message:
    message = Message(
        conversation_id=conversation_id,
        content=payload["response"],
        is_from_customer=False,
        is_ai_response=True,
        extra_metadata={
            "type": "flow",
            "flow_id": payload["flow_id"],
            "quick_replies": payload.get("quick_replies"),
        },
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def intercept_with_flow(
    db: Session,
    conversation_id: str,
    store_id: str,
    message: str,
    is_new_conversation: bool = False,
) -> Optional[Dict[str, Any]]:
    if not conversation_id or not store_id:
        return None

    state = read_flow_state(db, conversation_id)
    if state is not None:
        flow = db.query(Flow).filter(Flow.id == state.flow_id, Flow.store_id == store_id).first()
        if flow is None or flow.status != "active":
            logger.info("Flow %s is gone or paused; clearing state for %s", state.flow_id, conversation_id)
            write_flow_state(db, conversation_id, None)
            return None

        ctx = FlowContext(db=db, store_id=store_id, conversation_id=conversation_id)
        result = execute_flow_step(flow_graph(flow), state, message, ctx)
        if result.completed:
            complete_flow_execution(db, state, result.exit_node_id, variables=result.variables)
    else:
        flow = find_matching_flow(db, store_id, message, is_new_conversation, quick_reply_payload=message)
        if flow is None:
            return None
        result = start_flow(db, flow, store_id, conversation_id, message)

    write_flow_state(db, conversation_id, None if result.completed else result.new_state)

    payload = _to_payload(result, flow.id)
    if not payload["response"]:
        return None
    saved = _save_bot_message(db, conversation_id, payload)
    payload["message_id"] = saved.id
    return payload
