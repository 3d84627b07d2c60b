from typing import Iterable, Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from app.core.exceptions import handle_database_error
from app.domain.identity.models import Doctor, Patient
from app.domain.pharmacy.models import Medication, Prescription, PrescriptionItem, PrescriptionStatus


def _with_relations(query):
    """Eager-load everything the composed view reads"""
    return query.options(
        selectinload(Prescription.items).selectinload(PrescriptionItem.medication),
        selectinload(Prescription.doctor).selectinload(Doctor.user),
        selectinload(Prescription.patient).selectinload(Patient.user_by_id),
        selectinload(Prescription.patient).selectinload(Patient.user_by_hospital_number),
    ).execution_options(populate_existing=True)


def _newest_first(query):
    return query.order_by(Prescription.created_at.desc(), Prescription.id.desc())


class MedicationRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_by_name(self) -> List[Medication]:
        result = await self.db.execute(select(Medication).order_by(Medication.name.asc(), Medication.id.asc()))
        return list(result.scalars().all())

    async def get_by_ids(self, ids: Iterable[str]) -> List[Medication]:
        ids = list(ids)
        if not ids:
            return []
        result = await self.db.execute(select(Medication).where(Medication.id.in_(ids)))
        return list(result.scalars().all())


class IdentityRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def doctor_exists(self, doctor_id: str) -> bool:
        result = await self.db.execute(select(Doctor.id).where(Doctor.id == doctor_id))
        return result.scalar_one_or_none() is not None

    async def patient_exists(self, patient_id: str) -> bool:
        result = await self.db.execute(select(Patient.id).where(Patient.id == patient_id))
        return result.scalar_one_or_none() is not None

    async def patient_linked_to_user(self, patient_id: str, user_id: str) -> Optional[Patient]:
        """Patient ``patient_id`` if its by-id user link points at ``user_id``"""
        result = await self.db.execute(
            select(Patient).where(Patient.id == patient_id, Patient.user_id == user_id)
        )
        return result.scalar_one_or_none()


class PrescriptionRepository:
    """Repository for prescription data access operations"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_with_items(self, prescription_data: dict, items: List[dict]) -> Prescription:
        """Persist the header and every item in one transaction"""
        prescription = Prescription(**prescription_data)
        for position, item_data in enumerate(items):
            prescription.items.append(PrescriptionItem(position=position, **item_data))

        self.db.add(prescription)
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise handle_database_error(e, "create prescription") from e
        except Exception:
            await self.db.rollback()
            raise
        return prescription

    async def get(self, prescription_id: str) -> Optional[Prescription]:
        result = await self.db.execute(select(Prescription).where(Prescription.id == prescription_id))
        return result.scalar_one_or_none()

    async def get_with_relations(self, prescription_id: str) -> Optional[Prescription]:
        result = await self.db.execute(
            _with_relations(select(Prescription)).where(Prescription.id == prescription_id)
        )
        return result.scalar_one_or_none()

    async def get_latest_for_patient(self, patient_id: str) -> Optional[Prescription]:
        query = _newest_first(
            _with_relations(select(Prescription)).where(Prescription.patient_id == patient_id)
        ).limit(1)
        result = await self.db.execute(query)
        return result.scalars().first()

    async def list_for_patient(self, patient_id: str, limit: int) -> List[Prescription]:
        query = _newest_first(
            select(Prescription)
            .options(selectinload(Prescription.items).selectinload(PrescriptionItem.medication))
            .where(Prescription.patient_id == patient_id)
        ).limit(limit).execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def set_status(self, prescription: Prescription, status: PrescriptionStatus) -> Prescription:
        """Write the status column only; no version check, last commit wins"""
        prescription.status = status
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise handle_database_error(e, "update prescription status") from e
        except Exception:
            await self.db.rollback()
            raise
        return prescription
