"""
Attendance routes. Recording attendance twice for the same course session
and student updates the existing record.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..auth import get_current_store
from ..config import get_rate_limit_write
from ..db import get_db
from ..models import AttendanceRecord, CourseSession, Store, Student
from ..rate_limit import limiter
from ..schemas.attendance import AttendanceCreate, AttendanceListResponse, AttendanceOut
from ..services.helpers import Pagination, paginate, pagination_params, utcnow

logger = logging.getLogger(__name__)

attendance_router = APIRouter(prefix="/attendance", tags=["Education"])


@attendance_router.get("", response_model=AttendanceListResponse)
def list_attendance(
    session_id: Optional[str] = None,
    student_id: Optional[str] = None,
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> AttendanceListResponse:
    query = db.query(AttendanceRecord).filter(AttendanceRecord.store_id == store.id)
    if session_id:
        query = query.filter(AttendanceRecord.session_id == session_id)
    if student_id:
        query = query.filter(AttendanceRecord.student_id == student_id)

    rows, total = paginate(query.order_by(AttendanceRecord.created_at.desc()), page)
    return AttendanceListResponse(data=[AttendanceOut.model_validate(r) for r in rows], total=total)


@attendance_router.post("", response_model=AttendanceOut, status_code=201)
@limiter.limit(get_rate_limit_write)
def record_attendance(
    request: Request,
    payload: AttendanceCreate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> AttendanceOut:
    session = (
        db.query(CourseSession)
        .filter(CourseSession.id == payload.session_id, CourseSession.store_id == store.id)
        .first()
    )
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    student = db.query(Student).filter(Student.id == payload.student_id, Student.store_id == store.id).first()
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")

    record = (
        db.query(AttendanceRecord)
        .filter(AttendanceRecord.session_id == session.id, AttendanceRecord.student_id == student.id)
        .first()
    )
    if record:
        record.status = payload.status
        record.notes = payload.notes
        record.updated_at = utcnow()
        action = "Updated"
    else:
        record = AttendanceRecord(
            store_id=store.id,
            session_id=session.id,
            student_id=student.id,
            status=payload.status,
            notes=payload.notes,
        )
        db.add(record)
        action = "Created"

    db.commit()
    db.refresh(record)
    logger.info("%s attendance: %s for student %s in session %s", action, record.status, student.id, session.id)
    return AttendanceOut.model_validate(record)
