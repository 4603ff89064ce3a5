"""
Flow Graph Types
================

Pydantic models for the visual flow builder. A flow is stored as a JSON
node/edge graph on the `flows` table; at runtime the executor walks that
graph, sending messages and collecting variables from the customer.

Graph:
------
- FlowNode: {id, type, position, data: {label, config}}
- FlowEdge: {id, source, target, source_handle?}
  Branching nodes label their outgoing edges with a handle:
  "button_0", "button_1", ... for button_choice,
  "condition_0", ..., "default" for condition.

Runtime State:
--------------
FlowState lives in conversation.metadata["flow_state"] while a flow is
running. `waiting_for_input` is True while the current node is an input
node (ask_question, button_choice, show_items with a selection variable).

Node configs are validated against the model registered for the node type
in NODE_CONFIG_MODELS; unknown keys are kept so the builder can store
layout hints next to the config.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


TriggerType = Literal["keyword", "new_conversation", "button_click", "intent_match"]

FlowNodeType = Literal[
    "trigger",
    "send_message",
    "ask_question",
    "button_choice",
    "condition",
    "api_action",
    "show_items",
    "handoff",
    "delay",
    "end",
]

ValidationRule = Literal["phone", "email", "number", "date", "text"]

ConditionOperator = Literal["equals", "contains", "greater_than", "less_than", "exists"]

ApiActionType = Literal[
    "create_appointment",
    "create_order",
    "search_products",
    "search_services",
    "lookup_customer",
    "webhook",
]


# =============================================================================
# Trigger configs
# =============================================================================

class KeywordTriggerConfig(BaseModel):
    keywords: List[str] = []
    match_mode: Literal["any", "all"] = "any"


class ButtonClickTriggerConfig(BaseModel):
    payload: str = ""


class IntentMatchTriggerConfig(BaseModel):
    intents: List[str] = []


# =============================================================================
# Node configs
# =============================================================================

class _NodeConfig(BaseModel):
    model_config = ConfigDict(extra="allow")


class TriggerNodeConfig(_NodeConfig):
    pass


class SendMessageConfig(_NodeConfig):
    text: str = ""
    delay_ms: Optional[int] = None


class AskQuestionConfig(_NodeConfig):
    question_text: str = ""
    variable_name: str
    validation: Optional[ValidationRule] = None
    error_message: Optional[str] = None


class ButtonOption(BaseModel):
    label: str
    value: str


class ButtonChoiceConfig(_NodeConfig):
    question_text: str = ""
    variable_name: str
    buttons: List[ButtonOption] = []


class ConditionRule(BaseModel):
    variable: str
    operator: ConditionOperator = "equals"
    value: str = ""
    next_node_id: Optional[str] = None


class ConditionConfig(_NodeConfig):
    conditions: List[ConditionRule] = []
    default_node_id: Optional[str] = None


class ApiActionConfig(_NodeConfig):
    action_type: ApiActionType
    action_config: Dict[str, Any] = {}


class ShowItemsConfig(_NodeConfig):
    source: Literal["products", "services", "variable"] = "products"
    variable_name: Optional[str] = None
    filter_category: Optional[str] = None
    max_items: int = 8
    display_format: Literal["list", "cards"] = "list"
    selection_variable: Optional[str] = None


class HandoffConfig(_NodeConfig):
    message: Optional[str] = None


class DelayConfig(_NodeConfig):
    seconds: float = 0
    typing_indicator: bool = False


class EndConfig(_NodeConfig):
    message: Optional[str] = None


NODE_CONFIG_MODELS = {
    "trigger": TriggerNodeConfig,
    "send_message": SendMessageConfig,
    "ask_question": AskQuestionConfig,
    "button_choice": ButtonChoiceConfig,
    "condition": ConditionConfig,
    "api_action": ApiActionConfig,
    "show_items": ShowItemsConfig,
    "handoff": HandoffConfig,
    "delay": DelayConfig,
    "end": EndConfig,
}


# =============================================================================
# Graph
# =============================================================================

class Position(BaseModel):
    x: float = 0
    y: float = 0


class FlowNodeData(BaseModel):
    label: str = ""
    config: Dict[str, Any] = {}


class FlowNode(BaseModel):
    id: str
    type: FlowNodeType
    position: Position = Position()
    data: FlowNodeData = FlowNodeData()

    @model_validator(mode="after")
    def _check_config(self):
        # Raises ValidationError when the config does not fit the node type
        NODE_CONFIG_MODELS[self.type].model_validate(self.data.config)
        return self

    def typed_config(self):
        """Return the node config parsed into its per-type model."""
        return NODE_CONFIG_MODELS[self.type].model_validate(self.data.config)


class FlowEdge(BaseModel):
    id: str
    source: str
    target: str
    source_handle: Optional[str] = Field(None, alias="sourceHandle")
    label: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class FlowGraph(BaseModel):
    """The executable part of a flow row."""
    id: str
    nodes: List[FlowNode] = []
    edges: List[FlowEdge] = []

    def find_node(self, node_id: str) -> Optional[FlowNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


# =============================================================================
# Runtime
# =============================================================================

class FlowState(BaseModel):
    flow_id: str
    current_node_id: str = ""
    variables: Dict[str, Any] = {}
    waiting_for_input: bool = False
    started_at: datetime = Field(default_factory=datetime.utcnow)
    log_id: Optional[str] = None


class QuickReply(BaseModel):
    title: str
    payload: str


class FlowMessage(BaseModel):
    type: Literal["text", "quick_replies", "product_cards"] = "text"
    text: Optional[str] = None
    quick_replies: Optional[List[QuickReply]] = None
    products: Optional[List[Dict[str, Any]]] = None


class FlowStepResult(BaseModel):
    messages: List[FlowMessage] = []
    new_state: Optional[FlowState] = None  # None once the flow has completed
    completed: bool = False
    exit_node_id: Optional[str] = None
    variables: Dict[str, Any] = {}  # final variables of a completed flow
