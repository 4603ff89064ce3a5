"""
Flow Management Schemas
=======================

Request/response models for the owner's flow builder endpoints. The graph
itself (nodes and edges) is validated with the runtime types from
storedesk.chat.flows.types so a flow that saves is a flow that runs.

Flow Status:
------------
- "draft": Being edited, never triggered
- "active": Eligible for triggering (lower priority number wins)
- "paused": Kept but not triggered; running executions stop on next message
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..chat.flows.types import FlowEdge, FlowNode, TriggerType


FlowStatus = Literal["draft", "active", "paused"]


class FlowCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    status: FlowStatus = "draft"
    trigger_type: TriggerType
    trigger_config: Dict[str, Any] = {}
    nodes: List[FlowNode] = []
    edges: List[FlowEdge] = []
    priority: int = 0


class FlowUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    status: Optional[FlowStatus] = None
    trigger_type: Optional[TriggerType] = None
    trigger_config: Optional[Dict[str, Any]] = None
    nodes: Optional[List[FlowNode]] = None
    edges: Optional[List[FlowEdge]] = None
    priority: Optional[int] = None


class FlowOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    status: str
    trigger_type: str
    trigger_config: Dict[str, Any] = {}
    nodes: List[Dict[str, Any]] = []
    edges: List[Dict[str, Any]] = []
    priority: int
    times_triggered: int
    times_completed: int
    last_triggered_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class FlowListResponse(BaseModel):
    data: List[FlowOut]
    total: int
