"""
Composed prescription views.

A view is built at read time from the prescription, its items, the catalog
rows they reference and the doctor/patient user records. Prices come from the
catalog as it is now, so a price change shows up in every later read of an
older prescription.
"""

from typing import Any, List, Optional

from app.domain.pharmacy.mappers import (
    form_from_description,
    price_or_zero,
    status_to_text,
    strength_to_text,
    timestamp_to_text,
    unit_to_text,
)
from app.domain.pharmacy.models import Prescription, PrescriptionItem


def clamp_limit(raw: Any, default: int = 10, maximum: int = 100) -> int:
    """Page size clamped into ``[1, maximum]``; missing or non-numeric gives ``default``"""
    if raw is None or isinstance(raw, bool):
        value = default
    else:
        try:
            value = int(float(raw))
        except (TypeError, ValueError, OverflowError):
            value = default
    return max(1, min(maximum, value))


def _item_total(item: dict) -> float:
    return (item["price"] or 0) * (item["qty"] or 0)


class ViewComposer:
    def compose_item(self, item: PrescriptionItem) -> dict:
        medication = item.medication
        return {
            "medicine_id": item.medication_id or "",
            "qty": item.amount or 0,
            "name": medication.name if medication else None,
            "strength": strength_to_text(medication.strength) if medication else None,
            "form": form_from_description(medication.description) if medication else None,
            "unit": unit_to_text(medication.unit) if medication else None,
            "price": price_or_zero(medication.price) if medication else 0.0,
            "note": item.note,
        }

    def compose(self, prescription: Prescription) -> dict:
        items = [self.compose_item(it) for it in prescription.items]

        doctor_user = prescription.doctor.user if prescription.doctor else None
        patient = prescription.patient
        patient_user = patient.user_by_id if patient else None
        patient_user_by_hn = patient.user_by_hospital_number if patient else None

        patient_username: Optional[str] = None
        if patient_user and patient_user.username is not None:
            patient_username = patient_user.username
        elif patient_user_by_hn:
            patient_username = patient_user_by_hn.username

        return {
            "id": prescription.id,
            "doctor_id": prescription.doctor_id or "",
            "patient_id": prescription.patient_id or "",
            "doctor_name": doctor_user.name if doctor_user else None,
            "doctor_lastname": doctor_user.lastname if doctor_user else None,
            "patient_name": patient_user.name if patient_user else None,
            "patient_lastname": patient_user.lastname if patient_user else None,
            "patient_username": patient_username,
            "note": prescription.note,
            "status": status_to_text(prescription.status),
            "total": sum((_item_total(it) for it in items), 0.0),
            "created_at": timestamp_to_text(prescription.created_at),
            "items": items,
        }

    def summarize(self, prescription: Prescription) -> dict:
        items: List[dict] = [self.compose_item(it) for it in prescription.items]
        return {
            "id": prescription.id,
            "status": status_to_text(prescription.status),
            "created_at": timestamp_to_text(prescription.created_at),
            "total": sum((_item_total(it) for it in items), 0.0),
            "item_count": len(items),
        }
