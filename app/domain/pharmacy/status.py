"""
Prescription status changes.

Two transition policies exist. ``open`` accepts any recognized status from
any recognized status. ``strict`` only accepts the moves listed in
``STRICT_TRANSITIONS``. Neither uses a concurrency token: two updates to the
same prescription race and the last commit wins.
"""

import logging
from typing import Dict, FrozenSet, Optional

from app.core.exceptions import NotFoundError, ValidationError
from app.domain.pharmacy.mappers import status_to_text
from app.domain.pharmacy.models import PrescriptionStatus
from app.domain.pharmacy.repository import PrescriptionRepository

logger = logging.getLogger(__name__)

RECOGNIZED_STATUSES = frozenset(s.value for s in PrescriptionStatus)

STRICT_TRANSITIONS: Dict[PrescriptionStatus, FrozenSet[PrescriptionStatus]] = {
    PrescriptionStatus.READY: frozenset({PrescriptionStatus.AWAITING_PAYMENT, PrescriptionStatus.CANCELLED}),
    PrescriptionStatus.AWAITING_PAYMENT: frozenset({
        PrescriptionStatus.PAID,
        PrescriptionStatus.READY,
        PrescriptionStatus.CANCELLED,
    }),
    PrescriptionStatus.PAID: frozenset(),
    PrescriptionStatus.CANCELLED: frozenset(),
}


class OpenTransitionPolicy:
    name = "open"

    def allows(self, current: Optional[PrescriptionStatus], target: PrescriptionStatus) -> bool:
        return True


class StrictTransitionPolicy:
    name = "strict"

    def __init__(self, transitions: Dict[PrescriptionStatus, FrozenSet[PrescriptionStatus]] = STRICT_TRANSITIONS):
        self.transitions = transitions

    def allows(self, current: Optional[PrescriptionStatus], target: PrescriptionStatus) -> bool:
        if current is None:
            current = PrescriptionStatus.READY
        return target in self.transitions.get(PrescriptionStatus(current), frozenset())


def build_transition_policy(name: str):
    if name == OpenTransitionPolicy.name:
        return OpenTransitionPolicy()
    if name == StrictTransitionPolicy.name:
        return StrictTransitionPolicy()
    raise ValueError(f"Unknown status policy: {name!r}")


class StatusTransitionValidator:
    def __init__(self, prescription_repo: PrescriptionRepository, policy=None):
        self.prescription_repo = prescription_repo
        self.policy = policy or OpenTransitionPolicy()

    async def update_status(self, prescription_id: str, new_status) -> dict:
        text = status_to_text(new_status, default="")
        if text not in RECOGNIZED_STATUSES:
            raise ValidationError(
                message="Invalid status",
                details={"status": text, "allowed": sorted(RECOGNIZED_STATUSES)},
                error_code="INVALID_STATUS",
            )
        target = PrescriptionStatus(text)

        prescription = await self.prescription_repo.get(prescription_id)
        if not prescription:
            raise NotFoundError(message="Prescription not found")

        current = prescription.status
        if not self.policy.allows(current, target):
            raise ValidationError(
                message=f"Cannot change status from {status_to_text(current)} to {target.value}",
                details={"from": status_to_text(current), "to": target.value, "policy": self.policy.name},
                error_code="INVALID_STATUS_TRANSITION",
            )

        await self.prescription_repo.set_status(prescription, target)
        logger.info(f"Prescription {prescription_id} status {status_to_text(current)} -> {target.value}")
        return {"ok": True, "id": prescription_id, "status": target.value}
