"""
Flow Executor
=============

Walks a flow's node graph for one customer message and collects the bot
messages to send back.

Step Semantics:
---------------
1. If the current node is waiting for input, the message is processed as
   the answer. Invalid answers re-ask with the node's error message and the
   state does not move.
2. The walk then advances through non-input nodes (send_message,
   condition, api_action, delay, ...) until it reaches an input node
   (ask_question, button_choice, show_items with a selection variable),
   an end or handoff node, or a dead end.
3. At most FLOW_MAX_NODES nodes are visited per step so a cycle in the
   graph cannot hang the request.

Edges:
------
The default edge out of a node has no source handle. Branches use handles:
"button_<i>" after a button_choice, "condition_<i>" and "default" after a
condition.

Quick replies for a button_choice node carry the payload
"flow_btn_<i>_<value>".
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import requests
from sqlalchemy.orm import Session

from ... import config
from ...models import Conversation, Customer, Flow, FlowExecutionLog, Product
from ...services.helpers import format_price, icontains, utcnow
from ...services.orders import create_order
from .types import (
    ApiActionConfig,
    AskQuestionConfig,
    ButtonChoiceConfig,
    ConditionConfig,
    FlowGraph,
    FlowMessage,
    FlowNode,
    FlowState,
    FlowStepResult,
    QuickReply,
    ShowItemsConfig,
)

logger = logging.getLogger(__name__)


@dataclass
class FlowContext:
    """What a running flow may touch outside its own state."""
    db: Session
    store_id: str
    conversation_id: Optional[str] = None


HANDOFF_DEFAULT_MESSAGE = "Та түр хүлээнэ үү, оператор тантай холбогдоно."
EMPTY_LIST_MESSAGE = "Одоогоор жагсаалт хоосон байна."
SELECT_PROMPT = "Дугаар эсвэл нэрээр сонгоно уу."
SELECT_ERROR = "Жагсаалтаас дугаар эсвэл нэрээр сонгоно уу."

VALIDATION_ERRORS = {
    "phone": "Зөв утасны дугаар оруулна уу (жиш: 99001122).",
    "email": "Зөв имэйл хаяг оруулна уу.",
    "number": "Тоо оруулна уу.",
    "date": "Огноо оруулна уу (жиш: 2024-02-15).",
}
DEFAULT_VALIDATION_ERROR = "Хариу оруулна уу."

PHONE_RE = re.compile(r"^\+?[\d\s\-()]{6,15}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NUMBER_RE = re.compile(r"^\d+([.,]\d+)?$")
MONGOLIAN_DATE_WORDS = re.compile(
    r"^(өнөөдөр|маргааш|нөгөөдөр|даваа|мягмар|лхагва|пүрэв|баасан|бямба|ням"
    r"|дараа\s*долоо\s*хоног|энэ\s*долоо\s*хоног|ирэх\s*долоо\s*хоног)"
)
VARIABLE_RE = re.compile(r"\{\{(\w+)\}\}")

# Variables that are results of actions rather than customer answers
NOTES_SKIP = {
    "search_results", "appointment_id", "order_id", "order_number",
    "webhook_response", "webhook_error", "customer_id", "customer_name",
}


# =============================================================================
# Pure helpers
# =============================================================================

def interpolate_variables(text: str, variables: Dict[str, Any]) -> str:
    """Replace {{name}} with the variable value; unknown names stay as they are."""
    def replace(match):
        value = variables.get(match.group(1))
        return match.group(0) if value is None else str(value)

    return VARIABLE_RE.sub(replace, text or "")


def validate_input(value: str, rule: Optional[str] = None) -> bool:
    value = value.strip()
    if not rule or rule == "text":
        return len(value) > 0
    if rule == "phone":
        return bool(PHONE_RE.match(value))
    if rule == "email":
        return bool(EMAIL_RE.match(value))
    if rule == "number":
        return bool(NUMBER_RE.match(value))
    if rule == "date":
        # Numeric dates (2024-02-15, 3-р сарын 10) or Mongolian day words
        if len(value) < 2:
            return False
        if re.search(r"\d", value):
            return True
        return bool(MONGOLIAN_DATE_WORDS.match(value.lower()))
    return True


def next_node_id(graph: FlowGraph, node_id: str) -> Optional[str]:
    """Target of the default (handle-less) edge, else of any edge out of node_id."""
    outgoing = [e for e in graph.edges if e.source == node_id]
    for edge in outgoing:
        if not edge.source_handle:
            return edge.target
    return outgoing[0].target if outgoing else None


def _handle_target(graph: FlowGraph, node_id: str, handle: str) -> Optional[str]:
    for edge in graph.edges:
        if edge.source == node_id and edge.source_handle == handle:
            return edge.target
    return None


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(str(value).replace(",", "."))
    except (TypeError, ValueError):
        return None


def evaluate_condition(cfg: ConditionConfig, variables: Dict[str, Any], graph: FlowGraph, node_id: str) -> str:
    """Node id of the first matching branch, then the default branch, else ""."""
    for index, cond in enumerate(cfg.conditions):
        value = variables.get(cond.variable)
        text = "" if value is None else str(value)
        expected = cond.value or ""

        if cond.operator == "equals":
            matched = text.lower() == expected.lower()
        elif cond.operator == "contains":
            matched = expected.lower() in text.lower()
        elif cond.operator in ("greater_than", "less_than"):
            left, right = _to_float(text), _to_float(expected)
            if left is None or right is None:
                matched = False
            elif cond.operator == "greater_than":
                matched = left > right
            else:
                matched = left < right
        else:
            matched = len(text) > 0

        if matched:
            if cond.next_node_id:
                return cond.next_node_id
            target = _handle_target(graph, node_id, f"condition_{index}")
            if target:
                return target

    if cfg.default_node_id:
        return cfg.default_node_id
    return _handle_target(graph, node_id, "default") or ""


def build_notes(variables: Dict[str, Any]) -> str:
    return ", ".join(
        f"{key}: {value}"
        for key, value in variables.items()
        if key not in NOTES_SKIP and not key.startswith("_")
    )


# =============================================================================
# Input processing
# =============================================================================

def _match_button(cfg: ButtonChoiceConfig, message: str) -> Optional[int]:
    lower = message.lower()
    for i, button in enumerate(cfg.buttons):
        if lower in (button.label.lower(), button.value.lower()):
            return i

    # Quick reply payloads come back as flow_btn_<i>_<value>
    payload = re.match(r"^flow_btn_(\d+)_", message)
    if payload and int(payload.group(1)) < len(cfg.buttons):
        return int(payload.group(1))

    number = re.match(r"^(\d+)", message)
    if number and 0 < int(number.group(1)) <= len(cfg.buttons):
        return int(number.group(1)) - 1

    if lower:
        for i, button in enumerate(cfg.buttons):
            label = button.label.lower()
            if lower in label or label in lower:
                return i
    return None


def process_user_input(
    node: FlowNode,
    message: str,
    variables: Dict[str, Any],
) -> Tuple[Dict[str, Any], Optional[int], Optional[str]]:
    """
    Apply the customer's answer to an input node.

    Returns (new variables, selected button index, error text).
    """
    message = message.strip()
    cfg = node.typed_config()

    if isinstance(cfg, AskQuestionConfig):
        if not validate_input(message, cfg.validation):
            return {}, None, cfg.error_message or VALIDATION_ERRORS.get(cfg.validation, DEFAULT_VALIDATION_ERROR)
        return {cfg.variable_name: message}, None, None

    if isinstance(cfg, ButtonChoiceConfig):
        index = _match_button(cfg, message)
        if index is None:
            options = "\n".join(f"{i}. {b.label}" for i, b in enumerate(cfg.buttons, start=1))
            return {}, None, f"Дараах сонголтуудаас сонгоно уу:\n{options}"
        return {cfg.variable_name: cfg.buttons[index].value}, index, None

    if isinstance(cfg, ShowItemsConfig) and cfg.selection_variable:
        items = variables.get("_last_shown_items") or []
        number = re.match(r"^(\d+)", message)
        if number and 0 < int(number.group(1)) <= len(items):
            return {cfg.selection_variable: items[int(number.group(1)) - 1]["name"]}, None, None
        lower = message.lower()
        if lower:
            for item in items:
                if lower in item["name"].lower():
                    return {cfg.selection_variable: item["name"]}, None, None
        return {}, None, SELECT_ERROR

    return {}, None, None


# =============================================================================
# Side-effect nodes
# =============================================================================

def _query_products(ctx: FlowContext, category: Optional[str], limit: int) -> List[Dict[str, Any]]:
    query = ctx.db.query(Product).filter(Product.store_id == ctx.store_id, Product.status == "active")
    if category:
        query = query.filter(icontains(Product.category, category))
    return [
        {"id": p.id, "name": p.name, "base_price": p.base_price, "description": p.description}
        for p in query.order_by(Product.created_at.desc()).limit(limit).all()
    ]


def execute_api_action(cfg: ApiActionConfig, variables: Dict[str, Any], ctx: FlowContext) -> Dict[str, Any]:
    """Run an api_action node; returns variables to merge into the flow state."""
    action = cfg.action_type
    params = cfg.action_config or {}

    if action == "create_order":
        order = create_order(
            ctx.db,
            ctx.store_id,
            items=[],
            customer_id=variables.get("customer_id"),
            shipping_address=variables.get("address") or "",
            customer_phone=variables.get("phone") or "",
            notes=build_notes(variables),
        )
        return {"order_id": order.id, "order_number": order.order_number}

    if action == "search_products":
        category = params.get("filter_category") or variables.get("filter_category")
        if category:
            category = interpolate_variables(str(category), variables)
        return {"search_results": _query_products(ctx, category, 10)}

    if action == "lookup_customer":
        phone = str(variables.get("phone") or "").strip()
        if not phone:
            return {}
        customer = (
            ctx.db.query(Customer)
            .filter(Customer.store_id == ctx.store_id, Customer.phone == phone)
            .first()
        )
        if customer is None:
            return {}
        return {"customer_id": customer.id, "customer_name": customer.name}

    if action == "webhook":
        url = params.get("url")
        if not url:
            return {}
        try:
            resp = requests.post(
                url,
                json={"store_id": ctx.store_id, "variables": variables},
                timeout=config.WEBHOOK_TIMEOUT_SECONDS,
            )
            try:
                body = resp.json()
            except ValueError:
                body = {}
            return {"webhook_response": body}
        except requests.RequestException as e:
            logger.warning("Flow webhook to %s failed: %s", url, e)
            return {"webhook_error": True}

    # create_appointment / search_services: no appointment or service tables here
    logger.info("Flow action %s has no backing table; skipped", action)
    return {}


def show_items(cfg: ShowItemsConfig, variables: Dict[str, Any], ctx: FlowContext) -> List[FlowMessage]:
    """Render a show_items node. Stores the shown items in variables["_last_shown_items"]."""
    category = interpolate_variables(cfg.filter_category, variables) if cfg.filter_category else None

    if cfg.source == "variable" and cfg.variable_name:
        items = variables.get(cfg.variable_name) or []
        items = items[:cfg.max_items] if isinstance(items, list) else []
    elif cfg.source == "products":
        items = _query_products(ctx, category, cfg.max_items)
    else:
        items = []

    if not items:
        return [FlowMessage(type="text", text=EMPTY_LIST_MESSAGE)]

    variables["_last_shown_items"] = items

    if cfg.display_format == "cards":
        return [FlowMessage(
            type="product_cards",
            products=[
                {
                    "id": item.get("id"),
                    "name": item.get("name"),
                    "price": float(item.get("base_price") or 0),
                    "description": item.get("description"),
                }
                for item in items
            ],
        )]

    lines = [f"{i}. {item.get('name')} — {format_price(item.get('base_price'))}" for i, item in enumerate(items, start=1)]
    messages = [FlowMessage(type="text", text="\n".join(lines))]
    if cfg.selection_variable:
        messages.append(FlowMessage(type="text", text=SELECT_PROMPT))
    return messages


def _handoff(ctx: FlowContext) -> None:
    if not ctx.conversation_id:
        return
    conversation = ctx.db.query(Conversation).filter(Conversation.id == ctx.conversation_id).first()
    if conversation is not None:
        conversation.status = "pending"
        ctx.db.commit()
        logger.info("Flow handed conversation %s to a human", ctx.conversation_id)


# =============================================================================
# Walk
# =============================================================================

def _waiting(messages, state: FlowState, node_id: str, variables) -> FlowStepResult:
    return FlowStepResult(
        messages=messages,
        new_state=state.model_copy(update={
            "current_node_id": node_id,
            "variables": variables,
            "waiting_for_input": True,
        }),
    )


def execute_flow_step(graph: FlowGraph, state: FlowState, message: str, ctx: FlowContext) -> FlowStepResult:
    """Process one customer message against a running flow."""
    messages: List[FlowMessage] = []
    variables = dict(state.variables)
    node_id = state.current_node_id

    if state.waiting_for_input:
        node = graph.find_node(node_id)
        if node is None:
            return FlowStepResult(
                messages=[FlowMessage(type="text", text="Уучлаарай, алдаа гарлаа. Node not found")],
                completed=True,
                exit_node_id=node_id,
                variables=variables,
            )

        updates, button_index, error = process_user_input(node, message, variables)
        if error:
            return FlowStepResult(
                messages=[FlowMessage(type="text", text=error)],
                new_state=state.model_copy(update={"variables": variables}),
            )
        variables.update(updates)

        target = None
        if node.type == "button_choice" and button_index is not None:
            target = _handle_target(graph, node.id, f"button_{button_index}")
        node_id = target or next_node_id(graph, node.id) or ""

    last_node_id = node_id
    visited = 0
    while node_id and visited < config.FLOW_MAX_NODES:
        visited += 1
        node = graph.find_node(node_id)
        if node is None:
            break
        last_node_id = node_id
        cfg = node.typed_config()

        if node.type == "send_message":
            messages.append(FlowMessage(type="text", text=interpolate_variables(cfg.text, variables)))
            node_id = next_node_id(graph, node_id) or ""

        elif node.type == "ask_question":
            messages.append(FlowMessage(type="text", text=interpolate_variables(cfg.question_text, variables)))
            return _waiting(messages, state, node_id, variables)

        elif node.type == "button_choice":
            messages.append(FlowMessage(
                type="quick_replies",
                text=interpolate_variables(cfg.question_text, variables),
                quick_replies=[
                    QuickReply(title=b.label, payload=f"flow_btn_{i}_{b.value}")
                    for i, b in enumerate(cfg.buttons)
                ],
            ))
            return _waiting(messages, state, node_id, variables)

        elif node.type == "condition":
            node_id = evaluate_condition(cfg, variables, graph, node_id)

        elif node.type == "api_action":
            variables.update(execute_api_action(cfg, variables, ctx))
            node_id = next_node_id(graph, node_id) or ""

        elif node.type == "show_items":
            messages.extend(show_items(cfg, variables, ctx))
            if cfg.selection_variable and variables.get("_last_shown_items"):
                return _waiting(messages, state, node_id, variables)
            node_id = next_node_id(graph, node_id) or ""

        elif node.type == "handoff":
            text = interpolate_variables(cfg.message, variables) if cfg.message else HANDOFF_DEFAULT_MESSAGE
            messages.append(FlowMessage(type="text", text=text))
            _handoff(ctx)
            return FlowStepResult(messages=messages, completed=True, exit_node_id=node_id, variables=variables)

        elif node.type == "end":
            if cfg.message:
                messages.append(FlowMessage(type="text", text=interpolate_variables(cfg.message, variables)))
            return FlowStepResult(messages=messages, completed=True, exit_node_id=node_id, variables=variables)

        else:
            # trigger and delay just pass through; the widget shows typing itself
            node_id = next_node_id(graph, node_id) or ""

    if not node_id or graph.find_node(node_id) is None:
        # Dead end without an end node
        return FlowStepResult(messages=messages, completed=True, exit_node_id=last_node_id, variables=variables)

    logger.warning("Flow %s stopped after %d nodes at %s", graph.id, visited, node_id)
    return FlowStepResult(
        messages=messages,
        new_state=state.model_copy(update={
            "current_node_id": node_id,
            "variables": variables,
            "waiting_for_input": False,
        }),
    )


# =============================================================================
# Lifecycle
# =============================================================================

def flow_graph(flow: Flow) -> FlowGraph:
    return FlowGraph.model_validate({"id": flow.id, "nodes": flow.nodes or [], "edges": flow.edges or []})


def start_flow(
    db: Session,
    flow: Flow,
    store_id: str,
    conversation_id: Optional[str],
    message: str = "",
) -> FlowStepResult:
    """Open an execution log, bump the trigger count and walk from the trigger node."""
    log = FlowExecutionLog(store_id=store_id, flow_id=flow.id, conversation_id=conversation_id, status="running")
    db.add(log)
    flow.times_triggered = (flow.times_triggered or 0) + 1
    flow.last_triggered_at = utcnow()
    db.commit()
    db.refresh(log)
    logger.info("Started flow %s (log=%s, conversation=%s)", flow.id, log.id, conversation_id)

    graph = flow_graph(flow)
    trigger = next((n for n in graph.nodes if n.type == "trigger"), None)
    state = FlowState(flow_id=flow.id, current_node_id=trigger.id if trigger else "", log_id=log.id)
    if trigger is None:
        complete_flow_execution(db, state, None)
        return FlowStepResult(completed=True)

    ctx = FlowContext(db=db, store_id=store_id, conversation_id=conversation_id)
    result = execute_flow_step(graph, state, message, ctx)
    if result.completed:
        complete_flow_execution(db, state, result.exit_node_id, variables=result.variables)
    return result


def complete_flow_execution(
    db: Session,
    state: FlowState,
    exit_node_id: Optional[str],
    variables: Optional[Dict[str, Any]] = None,
) -> None:
    """Close the execution log and bump the completion count."""
    if state.log_id:
        log = db.query(FlowExecutionLog).filter(FlowExecutionLog.id == state.log_id).first()
        if log is not None:
            log.status = "completed"
            log.completed_at = utcnow()
            log.exit_node_id = exit_node_id
            log.variables_collected = {
                k: v for k, v in (variables if variables is not None else state.variables).items()
                if not k.startswith("_")
            }

    flow = db.query(Flow).filter(Flow.id == state.flow_id).first()
    if flow is not None:
        flow.times_completed = (flow.times_completed or 0) + 1
    db.commit()
    logger.info("Completed flow %s (log=%s, exit=%s)", state.flow_id, state.log_id, exit_node_id)
