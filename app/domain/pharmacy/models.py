from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey, Text, Enum, CheckConstraint
from sqlalchemy.orm import relationship
import uuid
import enum

from app.infrastructure.database import Base
from app.domain.identity.models import Doctor, Patient


def gen_uuid():
    return str(uuid.uuid4())


class PrescriptionStatus(str, enum.Enum):
    """Recognized prescription statuses"""
    READY = "ready"
    AWAITING_PAYMENT = "awaiting_payment"
    PAID = "paid"
    CANCELLED = "cancelled"


class MedicationUnit(str, enum.Enum):
    """Dispensing unit of a catalog entry"""
    TABLET = "tab"
    CAPSULE = "cap"
    MILLILITRE = "ml"
    MILLIGRAM = "mg"
    GRAM = "g"
    SACHET = "sachet"
    BOTTLE = "bottle"
    TUBE = "tube"


class Medication(Base):
    """Catalog entry. Read-only for this service."""
    __tablename__ = "medications"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)  # shown as the dosage form
    price = Column(Float, nullable=True)
    strength = Column(String(64), nullable=True)
    unit = Column(Enum(MedicationUnit, values_callable=lambda e: [m.value for m in e], native_enum=False), nullable=True)


class Prescription(Base):
    __tablename__ = "prescriptions"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    doctor_id = Column(String(36), ForeignKey("doctors.id"), nullable=False, index=True)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=False, index=True)
    status = Column(
        Enum(PrescriptionStatus, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False,
        default=PrescriptionStatus.READY,
    )
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=True, index=True)

    doctor = relationship(Doctor)
    patient = relationship(Patient)
    items = relationship(
        "PrescriptionItem",
        back_populates="prescription",
        cascade="all, delete-orphan",
        order_by="PrescriptionItem.position",
    )


class PrescriptionItem(Base):
    __tablename__ = "prescription_items"
    __table_args__ = (
        CheckConstraint("amount >= 1", name="ck_prescription_items_amount_positive"),
    )

    id = Column(String(36), primary_key=True, default=gen_uuid)
    prescription_id = Column(String(36), ForeignKey("prescriptions.id", ondelete="CASCADE"), nullable=False, index=True)
    medication_id = Column(String(36), ForeignKey("medications.id"), nullable=False)
    amount = Column(Integer, nullable=False, default=1)
    note = Column(Text, nullable=True)
    position = Column(Integer, nullable=False, default=0)

    prescription = relationship("Prescription", back_populates="items")
    medication = relationship("Medication")
