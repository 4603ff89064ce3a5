"""
Permit Routes for StoreDesk
===========================

Construction permits and the projects they belong to.

Endpoints:
----------
- GET /projects: List projects
- POST /projects: Create a project
- GET /permits: List permits (filters: status, permit_type, project_id)
- POST /permits: Apply for a permit on one of the store's projects
- PATCH /permits/{id}: Update a permit (approval, expiry, cost, ...)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..auth import get_current_store
from ..config import get_rate_limit_update, get_rate_limit_write
from ..db import get_db
from ..models import Permit, Project, Store
from ..rate_limit import limiter
from ..schemas.permits import (
    PermitCreate,
    PermitListResponse,
    PermitOut,
    PermitUpdate,
    ProjectCreate,
    ProjectListResponse,
    ProjectOut,
)
from ..services.helpers import Pagination, paginate, pagination_params, valid_choice

logger = logging.getLogger(__name__)

permits_router = APIRouter(prefix="/permits", tags=["Permits"])
projects_router = APIRouter(prefix="/projects", tags=["Permits"])

PERMIT_STATUSES = ("applied", "approved", "expired", "rejected")
PERMIT_TYPES = ("building", "electrical", "plumbing", "demolition", "environmental", "other")


# =============================================================================
# Projects
# =============================================================================

@projects_router.get("", response_model=ProjectListResponse)
def list_projects(
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> ProjectListResponse:
    query = db.query(Project).filter(Project.store_id == store.id).order_by(Project.created_at.desc())
    rows, total = paginate(query, page)
    return ProjectListResponse(data=[ProjectOut.model_validate(p) for p in rows], total=total)


@projects_router.post("", response_model=ProjectOut, status_code=201)
@limiter.limit(get_rate_limit_write)
def create_project(
    request: Request,
    payload: ProjectCreate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> ProjectOut:
    project = Project(store_id=store.id, name=payload.name, status=payload.status)
    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info("Created project: %s (id=%s)", project.name, project.id)
    return ProjectOut.model_validate(project)


# =============================================================================
# Permits
# =============================================================================

@permits_router.get("", response_model=PermitListResponse)
def list_permits(
    status: Optional[str] = None,
    permit_type: Optional[str] = None,
    project_id: Optional[str] = None,
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> PermitListResponse:
    query = db.query(Permit).filter(Permit.store_id == store.id)
    status = valid_choice(status, PERMIT_STATUSES)
    if status:
        query = query.filter(Permit.status == status)
    permit_type = valid_choice(permit_type, PERMIT_TYPES)
    if permit_type:
        query = query.filter(Permit.permit_type == permit_type)
    if project_id:
        query = query.filter(Permit.project_id == project_id)

    rows, total = paginate(query.order_by(Permit.created_at.desc()), page)
    return PermitListResponse(data=[PermitOut.model_validate(p) for p in rows], total=total)


@permits_router.post("", response_model=PermitOut, status_code=201)
@limiter.limit(get_rate_limit_write)
def create_permit(
    request: Request,
    payload: PermitCreate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> PermitOut:
    project = db.query(Project).filter(Project.id == payload.project_id, Project.store_id == store.id).first()
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")

    permit = Permit(store_id=store.id, status="applied", **payload.model_dump())
    db.add(permit)
    db.commit()
    db.refresh(permit)
    logger.info("Created permit: %s for project %s (id=%s)", permit.permit_type, project.name, permit.id)
    return PermitOut.model_validate(permit)


@permits_router.patch("/{permit_id}", response_model=PermitOut)
@limiter.limit(get_rate_limit_update)
def update_permit(
    request: Request,
    permit_id: str,
    payload: PermitUpdate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> PermitOut:
    permit = db.query(Permit).filter(Permit.id == permit_id, Permit.store_id == store.id).first()
    if not permit:
        raise HTTPException(status_code=404, detail="Permit not found")

    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")
    for field, value in updates.items():
        setattr(permit, field, value)

    db.commit()
    db.refresh(permit)
    logger.info("Updated permit: %s (status=%s)", permit.id, permit.status)
    return PermitOut.model_validate(permit)
