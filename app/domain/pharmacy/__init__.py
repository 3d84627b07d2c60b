# Pharmacy domain module: medicine catalog and prescriptions
from app.domain.pharmacy.models import (
    Medication,
    MedicationUnit,
    Prescription,
    PrescriptionStatus,
    PrescriptionItem,
)

__all__ = [
    "Medication",
    "MedicationUnit",
    "Prescription",
    "PrescriptionStatus",
    "PrescriptionItem",
]
