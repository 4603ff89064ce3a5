"""
Student routes for education stores: list (with name search), create,
get, partial update and delete.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..auth import get_current_store
from ..config import get_rate_limit_update, get_rate_limit_write
from ..db import get_db
from ..models import Store, Student
from ..rate_limit import limiter
from ..schemas.common import SuccessResponse
from ..schemas.students import StudentCreate, StudentListResponse, StudentOut, StudentUpdate
from ..services.helpers import Pagination, icontains, paginate, pagination_params

logger = logging.getLogger(__name__)

students_router = APIRouter(prefix="/students", tags=["Students"])


def _get_student(db: Session, store: Store, student_id: str) -> Student:
    student = db.query(Student).filter(Student.id == student_id, Student.store_id == store.id).first()
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


@students_router.get("", response_model=StudentListResponse)
def list_students(
    search: Optional[str] = None,
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> StudentListResponse:
    query = db.query(Student).filter(Student.store_id == store.id)
    if search and search.strip():
        term = search.strip()
        query = query.filter(or_(icontains(Student.first_name, term), icontains(Student.last_name, term)))

    rows, total = paginate(query.order_by(Student.created_at.desc()), page)
    return StudentListResponse(data=[StudentOut.model_validate(s) for s in rows], total=total)


@students_router.post("", response_model=StudentOut, status_code=201)
@limiter.limit(get_rate_limit_write)
def create_student(
    request: Request,
    payload: StudentCreate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> StudentOut:
    student = Student(store_id=store.id, **payload.model_dump())
    db.add(student)
    db.commit()
    db.refresh(student)
    logger.info("Created student: %s %s (id=%s)", student.first_name, student.last_name, student.id)
    return StudentOut.model_validate(student)


@students_router.get("/{student_id}", response_model=StudentOut)
def get_student(
    student_id: str,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> StudentOut:
    return StudentOut.model_validate(_get_student(db, store, student_id))


@students_router.patch("/{student_id}", response_model=StudentOut)
@limiter.limit(get_rate_limit_update)
def update_student(
    request: Request,
    student_id: str,
    payload: StudentUpdate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> StudentOut:
    student = _get_student(db, store, student_id)
    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")
    for field, value in updates.items():
        setattr(student, field, value)

    db.commit()
    db.refresh(student)
    logger.info("Updated student: %s", student.id)
    return StudentOut.model_validate(student)


@students_router.delete("/{student_id}", response_model=SuccessResponse)
def delete_student(
    student_id: str,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> SuccessResponse:
    student = _get_student(db, store, student_id)
    logger.info("Deleting student: %s", student.id)
    db.delete(student)
    db.commit()
    return SuccessResponse()
