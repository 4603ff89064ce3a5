"""
Education Routes for StoreDesk
==============================

Programs, their scheduled class sessions, and student enrollments.

Endpoints:
----------
- GET /programs: List programs (filters: is_active, program_type)
- POST /programs: Create a program
- PATCH /programs/{id}: Partial update
- GET /course-sessions: List sessions (filter: program_id)
- POST /course-sessions: Schedule a session for a program
- GET /enrollments: List enrollments (filters: student_id, program_id)
- POST /enrollments: Enroll a student in a program

Enrollment Rules:
-----------------
- The student and the program must belong to the store (404)
- A student has at most one active enrollment per program (409)
- A program with max_students active enrollments is full (400)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..auth import get_current_store
from ..config import get_rate_limit_update, get_rate_limit_write
from ..db import get_db
from ..models import CourseSession, Enrollment, Program, Store, Student
from ..rate_limit import limiter
from ..schemas.programs import (
    CourseSessionCreate,
    CourseSessionListResponse,
    CourseSessionOut,
    EnrollmentCreate,
    EnrollmentListResponse,
    EnrollmentOut,
    ProgramCreate,
    ProgramListResponse,
    ProgramOut,
    ProgramUpdate,
)
from ..services.helpers import Pagination, paginate, pagination_params, valid_choice

logger = logging.getLogger(__name__)

programs_router = APIRouter(prefix="/programs", tags=["Education"])
course_sessions_router = APIRouter(prefix="/course-sessions", tags=["Education"])
enrollments_router = APIRouter(prefix="/enrollments", tags=["Education"])

PROGRAM_TYPES = ("course", "workshop", "seminar", "certification", "tutoring")


def _get_program(db: Session, store: Store, program_id: str) -> Program:
    program = db.query(Program).filter(Program.id == program_id, Program.store_id == store.id).first()
    if not program:
        raise HTTPException(status_code=404, detail="Program not found")
    return program


# =============================================================================
# Programs
# =============================================================================

@programs_router.get("", response_model=ProgramListResponse)
def list_programs(
    is_active: Optional[str] = None,
    program_type: Optional[str] = None,
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> ProgramListResponse:
    query = db.query(Program).filter(Program.store_id == store.id)
    if is_active in ("true", "false"):
        query = query.filter(Program.is_active == (is_active == "true"))
    program_type = valid_choice(program_type, PROGRAM_TYPES)
    if program_type:
        query = query.filter(Program.program_type == program_type)

    rows, total = paginate(query.order_by(Program.created_at.desc()), page)
    return ProgramListResponse(data=[ProgramOut.model_validate(p) for p in rows], total=total)


@programs_router.post("", response_model=ProgramOut, status_code=201)
@limiter.limit(get_rate_limit_write)
def create_program(
    request: Request,
    payload: ProgramCreate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> ProgramOut:
    program = Program(store_id=store.id, **payload.model_dump())
    db.add(program)
    db.commit()
    db.refresh(program)
    logger.info("Created program: %s (id=%s)", program.name, program.id)
    return ProgramOut.model_validate(program)


@programs_router.patch("/{program_id}", response_model=ProgramOut)
@limiter.limit(get_rate_limit_update)
def update_program(
    request: Request,
    program_id: str,
    payload: ProgramUpdate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> ProgramOut:
    program = _get_program(db, store, program_id)
    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")
    for field, value in updates.items():
        setattr(program, field, value)

    db.commit()
    db.refresh(program)
    logger.info("Updated program: %s (id=%s)", program.name, program.id)
    return ProgramOut.model_validate(program)


# =============================================================================
# Course sessions
# =============================================================================

@course_sessions_router.get("", response_model=CourseSessionListResponse)
def list_course_sessions(
    program_id: Optional[str] = None,
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> CourseSessionListResponse:
    query = db.query(CourseSession).filter(CourseSession.store_id == store.id)
    if program_id:
        query = query.filter(CourseSession.program_id == program_id)

    rows, total = paginate(query.order_by(CourseSession.scheduled_at.desc()), page)
    return CourseSessionListResponse(data=[CourseSessionOut.model_validate(s) for s in rows], total=total)


@course_sessions_router.post("", response_model=CourseSessionOut, status_code=201)
@limiter.limit(get_rate_limit_write)
def create_course_session(
    request: Request,
    payload: CourseSessionCreate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> CourseSessionOut:
    program = _get_program(db, store, payload.program_id)
    session = CourseSession(store_id=store.id, **payload.model_dump())
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info("Scheduled session for %s at %s (id=%s)", program.name, session.scheduled_at, session.id)
    return CourseSessionOut.model_validate(session)


# =============================================================================
# Enrollments
# =============================================================================

@enrollments_router.get("", response_model=EnrollmentListResponse)
def list_enrollments(
    student_id: Optional[str] = None,
    program_id: Optional[str] = None,
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> EnrollmentListResponse:
    query = db.query(Enrollment).filter(Enrollment.store_id == store.id)
    if student_id:
        query = query.filter(Enrollment.student_id == student_id)
    if program_id:
        query = query.filter(Enrollment.program_id == program_id)

    rows, total = paginate(query.order_by(Enrollment.enrolled_at.desc()), page)
    return EnrollmentListResponse(data=[EnrollmentOut.model_validate(e) for e in rows], total=total)


@enrollments_router.post("", response_model=EnrollmentOut, status_code=201)
@limiter.limit(get_rate_limit_write)
def enroll_student(
    request: Request,
    payload: EnrollmentCreate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> EnrollmentOut:
    student = db.query(Student).filter(Student.id == payload.student_id, Student.store_id == store.id).first()
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    program = _get_program(db, store, payload.program_id)

    active = db.query(Enrollment).filter(Enrollment.program_id == program.id, Enrollment.status == "active")
    if active.filter(Enrollment.student_id == student.id).first():
        raise HTTPException(status_code=409, detail="Student is already enrolled")
    if program.max_students and active.count() >= program.max_students:
        raise HTTPException(status_code=400, detail="Program is full")

    enrollment = Enrollment(store_id=store.id, student_id=student.id, program_id=program.id, status="active")
    db.add(enrollment)
    db.commit()
    db.refresh(enrollment)
    logger.info("Enrolled student %s in %s (id=%s)", student.id, program.name, enrollment.id)
    return EnrollmentOut.model_validate(enrollment)
