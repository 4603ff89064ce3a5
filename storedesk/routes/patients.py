"""
Patient Routes for StoreDesk
============================

Patient records for medical stores (clinics, dental, pharmacies).

Endpoints:
----------
- GET /patients: List patients (?search= matches first or last name)
- POST /patients: Register a patient
- GET /patients/{id}: Get a patient
- PATCH /patients/{id}: Partial update
- DELETE /patients/{id}: Delete a patient
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..auth import get_current_store
from ..config import get_rate_limit_update, get_rate_limit_write
from ..db import get_db
from ..models import Patient, Store
from ..rate_limit import limiter
from ..schemas.common import SuccessResponse
from ..schemas.patients import PatientCreate, PatientListResponse, PatientOut, PatientUpdate
from ..services.helpers import Pagination, icontains, paginate, pagination_params

logger = logging.getLogger(__name__)

patients_router = APIRouter(prefix="/patients", tags=["Patients"])


def _get_patient(db: Session, store: Store, patient_id: str) -> Patient:
    patient = db.query(Patient).filter(Patient.id == patient_id, Patient.store_id == store.id).first()
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")
    return patient


@patients_router.get("", response_model=PatientListResponse)
def list_patients(
    search: Optional[str] = None,
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> PatientListResponse:
    query = db.query(Patient).filter(Patient.store_id == store.id)
    if search and search.strip():
        term = search.strip()
        query = query.filter(or_(icontains(Patient.first_name, term), icontains(Patient.last_name, term)))

    rows, total = paginate(query.order_by(Patient.created_at.desc()), page)
    return PatientListResponse(data=[PatientOut.model_validate(p) for p in rows], total=total)


@patients_router.post("", response_model=PatientOut, status_code=201)
@limiter.limit(get_rate_limit_write)
def create_patient(
    request: Request,
    payload: PatientCreate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> PatientOut:
    data = payload.model_dump()
    data["allergies"] = data.get("allergies") or []
    patient = Patient(store_id=store.id, **data)
    db.add(patient)
    db.commit()
    db.refresh(patient)
    logger.info("Created patient: %s %s (id=%s)", patient.first_name, patient.last_name, patient.id)
    return PatientOut.model_validate(patient)


@patients_router.get("/{patient_id}", response_model=PatientOut)
def get_patient(
    patient_id: str,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> PatientOut:
    return PatientOut.model_validate(_get_patient(db, store, patient_id))


@patients_router.patch("/{patient_id}", response_model=PatientOut)
@limiter.limit(get_rate_limit_update)
def update_patient(
    request: Request,
    patient_id: str,
    payload: PatientUpdate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> PatientOut:
    patient = _get_patient(db, store, patient_id)
    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")
    for field, value in updates.items():
        setattr(patient, field, value)

    db.commit()
    db.refresh(patient)
    logger.info("Updated patient: %s", patient.id)
    return PatientOut.model_validate(patient)


@patients_router.delete("/{patient_id}", response_model=SuccessResponse)
def delete_patient(
    patient_id: str,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> SuccessResponse:
    patient = _get_patient(db, store, patient_id)
    logger.info("Deleting patient: %s", patient.id)
    db.delete(patient)
    db.commit()
    return SuccessResponse()
