from datetime import datetime, timezone
import logging
import math
import uuid
from typing import Any, List, Optional

from app.core.exceptions import ValidationError
from app.domain.pharmacy.catalog import MedicineCatalogReader
from app.domain.pharmacy.models import PrescriptionStatus
from app.domain.pharmacy.ownership import OwnershipValidator
from app.domain.pharmacy.repository import IdentityRepository, PrescriptionRepository

logger = logging.getLogger(__name__)

QUANTITY_REJECT = "reject"
QUANTITY_COERCE = "coerce"

# Upper bound of the 32-bit integer amount column
MAX_QUANTITY = 2**31 - 1


def _is_valid_quantity(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if isinstance(value, float) and (not math.isfinite(value) or not value.is_integer()):
        return False
    return 1 <= value <= MAX_QUANTITY


def _coerce_quantity(value: Any) -> int:
    """Legacy clamp into ``[1, MAX_QUANTITY]``; unusable values become 1"""
    if isinstance(value, bool):
        return 1
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 1
    if not math.isfinite(number):
        return 1
    return min(MAX_QUANTITY, max(1, int(number)))


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


class PrescriptionFactory:
    """Validates a creation request and persists the prescription aggregate"""

    def __init__(
        self,
        ownership: OwnershipValidator,
        catalog: MedicineCatalogReader,
        prescription_repo: PrescriptionRepository,
        identity_repo: IdentityRepository,
        quantity_policy: str = QUANTITY_REJECT,
    ):
        if quantity_policy not in (QUANTITY_REJECT, QUANTITY_COERCE):
            raise ValueError(f"Unknown quantity policy: {quantity_policy!r}")
        self.ownership = ownership
        self.catalog = catalog
        self.prescription_repo = prescription_repo
        self.identity_repo = identity_repo
        self.quantity_policy = quantity_policy

    async def create(self, data, subject_id: str) -> str:
        """
        Create a prescription and return its id.

        ``data`` carries ``doctor_id``, ``patient_id``, optional ``note`` and
        ``items`` (each with ``medicine_id``, ``qty`` and optional ``note``).
        Nothing is written unless every check passes.
        """
        doctor_id = data.doctor_id
        patient_id = data.patient_id

        await self.ownership.authorize_create(subject_id, doctor_id, patient_id)

        if _blank(doctor_id) or _blank(patient_id):
            raise ValidationError(
                message="doctor_id and patient_id are required",
                details={"doctor_id": doctor_id, "patient_id": patient_id},
            )
        doctor_id = str(doctor_id).strip()
        patient_id = str(patient_id).strip()

        items = data.items or []
        if not items:
            raise ValidationError(message="items must be a non-empty array", error_code="ITEMS_REQUIRED")

        item_rows = self._validate_items(items)
        await self._check_catalog(item_rows)
        await self._check_parties(doctor_id, patient_id)

        prescription_id = str(uuid.uuid4())
        prescription_data = {
            "id": prescription_id,
            "doctor_id": doctor_id,
            "patient_id": patient_id,
            "status": PrescriptionStatus.READY,
            "note": data.note,
            "created_at": datetime.now(timezone.utc).replace(tzinfo=None),
        }
        await self.prescription_repo.create_with_items(prescription_data, item_rows)

        logger.info(
            f"Prescription {prescription_id} created by {subject_id} "
            f"for patient {patient_id} with {len(item_rows)} item(s)"
        )
        return prescription_id

    def _validate_items(self, items: List[Any]) -> List[dict]:
        rows = []
        bad_quantities = []
        missing_ids = []
        for index, item in enumerate(items):
            medicine_id = item.medicine_id
            qty = item.qty
            if _blank(medicine_id):
                missing_ids.append(index)
            if self.quantity_policy == QUANTITY_COERCE:
                qty = _coerce_quantity(qty)
            elif not _is_valid_quantity(qty):
                bad_quantities.append(index)
            rows.append({
                "id": str(uuid.uuid4()),
                "medication_id": None if _blank(medicine_id) else str(medicine_id).strip(),
                "amount": int(qty) if _is_valid_quantity(qty) else qty,
                "note": item.note,
            })

        if missing_ids:
            raise ValidationError(
                message="Every item needs a medicine_id",
                details={"items": missing_ids},
            )
        if bad_quantities:
            raise ValidationError(
                message=f"Item quantity must be a whole number between 1 and {MAX_QUANTITY}",
                details={"items": bad_quantities},
                error_code="INVALID_QUANTITY",
            )
        return rows

    async def _check_catalog(self, rows: List[dict]) -> None:
        wanted = {row["medication_id"] for row in rows}
        known = {m.id for m in await self.catalog.find_by_ids(wanted)}
        unknown = sorted(wanted - known)
        if unknown:
            positions = [i for i, row in enumerate(rows) if row["medication_id"] not in known]
            logger.warning(f"Prescription rejected, unknown medicine id(s): {unknown}")
            raise ValidationError(
                message=f"Unknown medicine id(s): {', '.join(unknown)}",
                details={"unknown_medicine_ids": unknown, "items": positions},
                error_code="UNKNOWN_MEDICINE",
            )

    async def _check_parties(self, doctor_id: str, patient_id: str) -> None:
        unknown = {}
        if not await self.identity_repo.doctor_exists(doctor_id):
            unknown["doctor_id"] = doctor_id
        if not await self.identity_repo.patient_exists(patient_id):
            unknown["patient_id"] = patient_id
        if unknown:
            raise ValidationError(
                message="Unknown " + " and ".join(f.replace("_id", "") for f in unknown),
                details=unknown,
            )
