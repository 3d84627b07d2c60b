"""
Ownership policies for prescription creation.

Exactly one policy is active per process, chosen from
``PRESCRIPTION_OWNERSHIP_POLICY``:

- ``doctor``: the authenticated subject must be the prescribing doctor.
- ``patient_user``: the patient record must be linked (by user id) to the
  authenticated subject.
"""

import logging
from typing import Optional

from app.core.exceptions import AuthorizationError
from app.domain.pharmacy.repository import IdentityRepository

logger = logging.getLogger(__name__)


class DoctorOwnershipPolicy:
    name = "doctor"

    async def allows(self, subject_id: str, doctor_id: Optional[str], patient_id: Optional[str]) -> bool:
        return bool(subject_id) and subject_id == doctor_id


class PatientUserOwnershipPolicy:
    name = "patient_user"

    def __init__(self, identity_repo: IdentityRepository):
        self.identity_repo = identity_repo

    async def allows(self, subject_id: str, doctor_id: Optional[str], patient_id: Optional[str]) -> bool:
        if not subject_id or not patient_id:
            return False
        patient = await self.identity_repo.patient_linked_to_user(patient_id, subject_id)
        return patient is not None


def build_ownership_policy(name: str, identity_repo: IdentityRepository):
    if name == DoctorOwnershipPolicy.name:
        return DoctorOwnershipPolicy()
    if name == PatientUserOwnershipPolicy.name:
        return PatientUserOwnershipPolicy(identity_repo)
    raise ValueError(f"Unknown ownership policy: {name!r}")


class OwnershipValidator:
    def __init__(self, policy):
        self.policy = policy

    async def authorize_create(self, subject_id: str, doctor_id: Optional[str], patient_id: Optional[str]) -> None:
        if not await self.policy.allows(subject_id, doctor_id, patient_id):
            logger.warning(
                f"Subject {subject_id} denied prescription for doctor={doctor_id} "
                f"patient={patient_id} (policy {self.policy.name})"
            )
            raise AuthorizationError(
                message="You are not allowed to create this prescription",
                details={"policy": self.policy.name},
            )
