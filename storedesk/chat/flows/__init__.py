"""
Visual flow builder runtime: graph types, trigger matching, the executor
and the chat-route interceptor.
"""

from .executor import (
    FlowContext,
    complete_flow_execution,
    evaluate_condition,
    execute_flow_step,
    flow_graph,
    interpolate_variables,
    start_flow,
    validate_input,
)
from .middleware import intercept_with_flow, read_flow_state, write_flow_state
from .trigger import find_matching_flow, match_flow
from .types import FlowEdge, FlowGraph, FlowNode, FlowState, FlowStepResult

__all__ = [
    "FlowContext",
    "FlowEdge",
    "FlowGraph",
    "FlowNode",
    "FlowState",
    "FlowStepResult",
    "complete_flow_execution",
    "evaluate_condition",
    "execute_flow_step",
    "find_matching_flow",
    "flow_graph",
    "intercept_with_flow",
    "interpolate_variables",
    "match_flow",
    "read_flow_state",
    "start_flow",
    "validate_input",
    "write_flow_state",
]
