from typing import Any, List, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.domain.pharmacy.catalog import MedicineCatalogReader
from app.domain.pharmacy.factory import PrescriptionFactory
from app.domain.pharmacy.ownership import OwnershipValidator, build_ownership_policy
from app.domain.pharmacy.repository import IdentityRepository, MedicationRepository, PrescriptionRepository
from app.domain.pharmacy.status import StatusTransitionValidator, build_transition_policy
from app.domain.pharmacy.views import ViewComposer, clamp_limit

logger = logging.getLogger(__name__)


class PrescriptionService:
    """Prescription lifecycle and read views for one database session"""

    def __init__(
        self,
        db: AsyncSession,
        ownership_policy: Optional[str] = None,
        status_policy: Optional[str] = None,
        quantity_policy: Optional[str] = None,
    ):
        self.db = db
        self.medication_repo = MedicationRepository(db)
        self.identity_repo = IdentityRepository(db)
        self.prescription_repo = PrescriptionRepository(db)

        self.catalog = MedicineCatalogReader(self.medication_repo)
        self.ownership = OwnershipValidator(
            build_ownership_policy(ownership_policy or settings.PRESCRIPTION_OWNERSHIP_POLICY, self.identity_repo)
        )
        self.factory = PrescriptionFactory(
            self.ownership,
            self.catalog,
            self.prescription_repo,
            self.identity_repo,
            quantity_policy=quantity_policy or settings.PRESCRIPTION_QUANTITY_POLICY,
        )
        self.status_validator = StatusTransitionValidator(
            self.prescription_repo,
            build_transition_policy(status_policy or settings.PRESCRIPTION_STATUS_POLICY),
        )
        self.composer = ViewComposer()

    async def list_medicines(self) -> List[dict]:
        return await self.catalog.list_medicines()

    async def create_prescription(self, data, subject_id: str) -> str:
        return await self.factory.create(data, subject_id)

    async def get_by_id(self, prescription_id: str) -> dict:
        prescription = await self.prescription_repo.get_with_relations(prescription_id)
        if not prescription:
            raise NotFoundError(message="Prescription not found")
        return self.composer.compose(prescription)

    async def get_latest_for_patient(self, patient_id: str) -> dict:
        prescription = await self.prescription_repo.get_latest_for_patient(patient_id)
        if not prescription:
            raise NotFoundError(message="No prescription for this patient")
        return self.composer.compose(prescription)

    async def list_for_patient(self, patient_id: str, limit: Any = None) -> List[dict]:
        limit = clamp_limit(
            limit,
            default=settings.PRESCRIPTION_LIST_DEFAULT_LIMIT,
            maximum=settings.PRESCRIPTION_LIST_MAX_LIMIT,
        )
        prescriptions = await self.prescription_repo.list_for_patient(patient_id, limit)
        return [self.composer.summarize(p) for p in prescriptions]

    async def update_status(self, prescription_id: str, status) -> dict:
        return await self.status_validator.update_status(prescription_id, status)
