from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.api.deps import Subject, get_current_subject
from app.core.exceptions import ValidationError
from app.infrastructure.database import get_db
from app.domain.pharmacy.service import PrescriptionService
from app.api.v1.pharmacy.schemas import (
    MedicineResponse, PrescriptionCreate, PrescriptionCreated, PrescriptionView,
    PrescriptionSummary, StatusUpdate, StatusUpdateResponse
)

router = APIRouter(tags=["Pharmacy"])


@router.get("/medicines", response_model=List[MedicineResponse])
async def list_medicines(db: AsyncSession = Depends(get_db)):
    service = PrescriptionService(db)
    return await service.list_medicines()


@router.post("/prescriptions", response_model=PrescriptionCreated, status_code=status.HTTP_201_CREATED)
async def create_prescription(
    prescription_in: PrescriptionCreate,
    db: AsyncSession = Depends(get_db),
    subject: Subject = Depends(get_current_subject),
):
    service = PrescriptionService(db)
    prescription_id = await service.create_prescription(prescription_in, subject.id)
    return PrescriptionCreated(id=prescription_id)


@router.get("/prescriptions/{prescription_id}", response_model=PrescriptionView)
async def get_prescription(
    prescription_id: str,
    db: AsyncSession = Depends(get_db),
    subject: Subject = Depends(get_current_subject),
):
    service = PrescriptionService(db)
    return await service.get_by_id(prescription_id)


@router.patch("/prescriptions/{prescription_id}/status", response_model=StatusUpdateResponse)
async def update_prescription_status(
    prescription_id: str,
    body: StatusUpdate,
    db: AsyncSession = Depends(get_db),
    subject: Subject = Depends(get_current_subject),
):
    if not body.status:
        raise ValidationError(message="Missing status")
    service = PrescriptionService(db)
    return await service.update_status(prescription_id, body.status)


@router.get("/patients/{patient_id}/prescriptions/latest", response_model=PrescriptionView)
async def get_latest_for_patient(
    patient_id: str,
    db: AsyncSession = Depends(get_db),
    subject: Subject = Depends(get_current_subject),
):
    service = PrescriptionService(db)
    return await service.get_latest_for_patient(patient_id)


@router.get("/patients/{patient_id}/prescriptions", response_model=List[PrescriptionSummary])
async def list_for_patient(
    patient_id: str,
    limit: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    subject: Subject = Depends(get_current_subject),
):
    service = PrescriptionService(db)
    return await service.list_for_patient(patient_id, limit)
