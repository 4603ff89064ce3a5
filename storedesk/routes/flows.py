"""
Flow Builder Routes for StoreDesk
=================================

CRUD for the owner's conversation flows. Nodes and edges are validated
with the runtime graph types before they are stored, so a saved flow can
always be loaded by the executor.

Endpoints:
----------
- GET /flows: List flows (filter: status), lowest priority value first
- POST /flows: Create a flow
- GET /flows/{id}: Get a flow
- PATCH /flows/{id}: Update a flow
- DELETE /flows/{id}: Delete a flow (execution logs keep a null flow_id)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..auth import get_current_store
from ..config import get_rate_limit_update, get_rate_limit_write
from ..db import get_db
from ..models import Flow, FlowExecutionLog, Store
from ..rate_limit import limiter
from ..schemas.common import SuccessResponse
from ..schemas.flows import FlowCreate, FlowListResponse, FlowOut, FlowUpdate
from ..services.helpers import Pagination, paginate, pagination_params, valid_choice

logger = logging.getLogger(__name__)

flows_router = APIRouter(prefix="/flows", tags=["Flows"])

FLOW_STATUSES = ("draft", "active", "paused")


def _get_flow(db: Session, store: Store, flow_id: str) -> Flow:
    flow = db.query(Flow).filter(Flow.id == flow_id, Flow.store_id == store.id).first()
    if not flow:
        raise HTTPException(status_code=404, detail="Flow not found")
    return flow


def _graph_json(items) -> list:
    return [item.model_dump(mode="json", by_alias=True, exclude_none=True) for item in items]


@flows_router.get("", response_model=FlowListResponse)
def list_flows(
    status: Optional[str] = None,
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> FlowListResponse:
    query = db.query(Flow).filter(Flow.store_id == store.id)
    status = valid_choice(status, FLOW_STATUSES)
    if status:
        query = query.filter(Flow.status == status)

    rows, total = paginate(query.order_by(Flow.priority.asc(), Flow.created_at.desc()), page)
    return FlowListResponse(data=[FlowOut.model_validate(f) for f in rows], total=total)


@flows_router.post("", response_model=FlowOut, status_code=201)
@limiter.limit(get_rate_limit_write)
def create_flow(
    request: Request,
    payload: FlowCreate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> FlowOut:
    flow = Flow(
        store_id=store.id,
        name=payload.name,
        description=payload.description,
        status=payload.status,
        trigger_type=payload.trigger_type,
        trigger_config=payload.trigger_config,
        nodes=_graph_json(payload.nodes),
        edges=_graph_json(payload.edges),
        priority=payload.priority,
    )
    db.add(flow)
    db.commit()
    db.refresh(flow)
    logger.info("Created flow: %s (id=%s, trigger=%s)", flow.name, flow.id, flow.trigger_type)
    return FlowOut.model_validate(flow)


@flows_router.get("/{flow_id}", response_model=FlowOut)
def get_flow(
    flow_id: str,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> FlowOut:
    return FlowOut.model_validate(_get_flow(db, store, flow_id))


@flows_router.patch("/{flow_id}", response_model=FlowOut)
@limiter.limit(get_rate_limit_update)
def update_flow(
    request: Request,
    flow_id: str,
    payload: FlowUpdate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> FlowOut:
    flow = _get_flow(db, store, flow_id)
    updates = payload.model_dump(exclude_unset=True, exclude={"nodes", "edges"})
    if not updates and payload.nodes is None and payload.edges is None:
        raise HTTPException(status_code=400, detail="No valid fields to update")

    for field, value in updates.items():
        setattr(flow, field, value)
    if payload.nodes is not None:
        flow.nodes = _graph_json(payload.nodes)
    if payload.edges is not None:
        flow.edges = _graph_json(payload.edges)

    db.commit()
    db.refresh(flow)
    logger.info("Updated flow: %s (id=%s, status=%s)", flow.name, flow.id, flow.status)
    return FlowOut.model_validate(flow)


@flows_router.delete("/{flow_id}", response_model=SuccessResponse)
def delete_flow(
    flow_id: str,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> SuccessResponse:
    flow = _get_flow(db, store, flow_id)
    logger.info("Deleting flow: %s (id=%s)", flow.name, flow.id)
    db.query(FlowExecutionLog).filter(FlowExecutionLog.flow_id == flow.id).update(
        {FlowExecutionLog.flow_id: None}, synchronize_session=False,
    )
    db.delete(flow)
    db.commit()
    return SuccessResponse()
