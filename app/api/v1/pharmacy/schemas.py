from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Optional


class MedicineResponse(BaseModel):
    id: str
    name: Optional[str] = None
    strength: Optional[str] = None
    form: Optional[str] = None
    unit: Optional[str] = None
    price: float = 0


# Creation payloads accept loose input; PrescriptionFactory validates ids
# and quantities.
class PrescriptionItemCreate(BaseModel):
    medicine_id: Optional[str] = None
    qty: Any = None
    note: Optional[str] = None


class PrescriptionCreate(BaseModel):
    doctor_id: Optional[str] = None
    patient_id: Optional[str] = None
    note: Optional[str] = None
    items: Optional[List[PrescriptionItemCreate]] = None


class PrescriptionCreated(BaseModel):
    ok: bool = True
    id: str


class PrescriptionItemView(BaseModel):
    medicine_id: str
    qty: int
    name: Optional[str] = None
    strength: Optional[str] = None
    form: Optional[str] = None
    unit: Optional[str] = None
    price: float = 0
    note: Optional[str] = None


class PrescriptionView(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    doctor_id: str
    patient_id: str
    doctor_name: Optional[str] = None
    doctor_lastname: Optional[str] = None
    patient_name: Optional[str] = None
    patient_lastname: Optional[str] = None
    patient_username: Optional[str] = None
    note: Optional[str] = None
    status: str
    total: float
    created_at: Optional[str] = Field(default=None, serialization_alias="createdAt")
    items: List[PrescriptionItemView]


class PrescriptionSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    status: str
    created_at: Optional[str] = Field(default=None, serialization_alias="createdAt")
    total: float
    item_count: int


class StatusUpdate(BaseModel):
    status: Optional[str] = None


class StatusUpdateResponse(BaseModel):
    ok: bool = True
    id: str
    status: str
