import math

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.pharmacy.schemas import PrescriptionItemCreate
from app.core.exceptions import AuthorizationError, DatabaseError, ValidationError
from app.domain.pharmacy.factory import MAX_QUANTITY
from app.domain.pharmacy.models import Prescription, PrescriptionItem, PrescriptionStatus
from app.domain.pharmacy.repository import PrescriptionRepository
from app.domain.pharmacy.service import PrescriptionService
from tests.conftest import DOCTOR_ID, PATIENT_ID, count_rows, make_request


def item(medicine_id="M1", qty=1, note=None):
    return PrescriptionItemCreate(medicine_id=medicine_id, qty=qty, note=note)


async def assert_nothing_stored(session: AsyncSession):
    assert await count_rows(session, Prescription) == 0
    assert await count_rows(session, PrescriptionItem) == 0


@pytest.mark.asyncio
async def test_create_prescription_and_read_total(service: PrescriptionService):
    """M1 at 5.5 times two reads back as 11.0"""
    prescription_id = await service.create_prescription(make_request([item("M1", 2)]), DOCTOR_ID)

    view = await service.get_by_id(prescription_id)
    assert view["id"] == prescription_id
    assert view["status"] == "ready"
    assert view["total"] == 11.0
    assert view["items"][0]["medicine_id"] == "M1"
    assert view["items"][0]["qty"] == 2
    assert view["created_at"].endswith("Z")


@pytest.mark.asyncio
async def test_create_stores_header_and_items(service: PrescriptionService, seeded: AsyncSession):
    prescription_id = await service.create_prescription(
        make_request([item("M2", 3, note="after meals"), item("M1", 1)], note="follow up in a week"),
        DOCTOR_ID,
    )

    assert await count_rows(seeded, Prescription) == 1
    assert await count_rows(seeded, PrescriptionItem) == 2

    view = await service.get_by_id(prescription_id)
    assert [i["medicine_id"] for i in view["items"]] == ["M2", "M1"]
    assert view["items"][0]["note"] == "after meals"
    assert view["note"] == "follow up in a week"
    assert view["total"] == 3 * 2.5 + 5.5


@pytest.mark.asyncio
async def test_create_generates_fresh_ids(service: PrescriptionService):
    first = await service.create_prescription(make_request([item()]), DOCTOR_ID)
    second = await service.create_prescription(make_request([item()]), DOCTOR_ID)
    assert first != second


@pytest.mark.asyncio
async def test_create_empty_items(service: PrescriptionService, seeded: AsyncSession):
    with pytest.raises(ValidationError) as exc_info:
        await service.create_prescription(make_request([]), DOCTOR_ID)

    assert "items" in exc_info.value.message
    assert "non-empty" in exc_info.value.message
    await assert_nothing_stored(seeded)


@pytest.mark.asyncio
async def test_create_without_items_field(service: PrescriptionService, seeded: AsyncSession):
    with pytest.raises(ValidationError):
        await service.create_prescription(make_request(None), DOCTOR_ID)
    await assert_nothing_stored(seeded)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "qty", [0, -1, 1.5, math.inf, -math.inf, math.nan, "2", None, True, 10**20, 1e300, MAX_QUANTITY + 1]
)
async def test_create_rejects_bad_quantity(service: PrescriptionService, seeded: AsyncSession, qty):
    with pytest.raises(ValidationError) as exc_info:
        await service.create_prescription(make_request([item("M1", 1), item("M2", qty)]), DOCTOR_ID)

    assert exc_info.value.details["items"] == [1]
    assert exc_info.value.error_code == "INVALID_QUANTITY"
    await assert_nothing_stored(seeded)


@pytest.mark.asyncio
async def test_create_accepts_integral_float_quantity(service: PrescriptionService):
    prescription_id = await service.create_prescription(make_request([item("M1", 2.0)]), DOCTOR_ID)
    view = await service.get_by_id(prescription_id)
    assert view["items"][0]["qty"] == 2


@pytest.mark.asyncio
async def test_create_accepts_largest_quantity(service: PrescriptionService):
    prescription_id = await service.create_prescription(make_request([item("M2", MAX_QUANTITY)]), DOCTOR_ID)
    view = await service.get_by_id(prescription_id)
    assert view["items"][0]["qty"] == MAX_QUANTITY


@pytest.mark.asyncio
async def test_create_unknown_medicine(service: PrescriptionService, seeded: AsyncSession):
    with pytest.raises(ValidationError) as exc_info:
        await service.create_prescription(
            make_request([item("M1", 1), item("NOPE", 1), item("M2", 1)]),
            DOCTOR_ID,
        )

    assert "NOPE" in exc_info.value.message
    assert exc_info.value.details["unknown_medicine_ids"] == ["NOPE"]
    assert exc_info.value.details["items"] == [1]
    await assert_nothing_stored(seeded)


@pytest.mark.asyncio
async def test_create_item_without_medicine_id(service: PrescriptionService, seeded: AsyncSession):
    with pytest.raises(ValidationError):
        await service.create_prescription(make_request([item("  ", 1)]), DOCTOR_ID)
    await assert_nothing_stored(seeded)


@pytest.mark.asyncio
async def test_create_missing_patient_id(service: PrescriptionService, seeded: AsyncSession):
    with pytest.raises(ValidationError) as exc_info:
        await service.create_prescription(make_request([item()], patient_id=""), DOCTOR_ID)

    assert "patient_id" in exc_info.value.message
    await assert_nothing_stored(seeded)


@pytest.mark.asyncio
async def test_create_missing_doctor_id_under_patient_policy(seeded: AsyncSession):
    service = PrescriptionService(seeded, ownership_policy="patient_user")
    with pytest.raises(ValidationError):
        await service.create_prescription(make_request([item()], doctor_id=None), "u-pat")
    await assert_nothing_stored(seeded)


@pytest.mark.asyncio
async def test_create_unknown_patient(service: PrescriptionService, seeded: AsyncSession):
    with pytest.raises(ValidationError) as exc_info:
        await service.create_prescription(make_request([item()], patient_id="p-missing"), DOCTOR_ID)

    assert exc_info.value.details == {"patient_id": "p-missing"}
    await assert_nothing_stored(seeded)


@pytest.mark.asyncio
async def test_create_unknown_doctor_under_patient_policy(seeded: AsyncSession):
    """Ownership passes on the patient link, the doctor row is still required"""
    service = PrescriptionService(seeded, ownership_policy="patient_user")
    with pytest.raises(ValidationError) as exc_info:
        await service.create_prescription(make_request([item()], doctor_id="d-missing"), "u-pat")

    assert exc_info.value.message == "Unknown doctor"
    assert exc_info.value.details == {"doctor_id": "d-missing"}
    await assert_nothing_stored(seeded)


@pytest.mark.asyncio
async def test_create_checks_ownership_first(service: PrescriptionService, seeded: AsyncSession):
    """A foreign subject is refused even when the payload is also invalid"""
    with pytest.raises(AuthorizationError):
        await service.create_prescription(make_request([]), "u-stranger")
    await assert_nothing_stored(seeded)


@pytest.mark.asyncio
async def test_create_coerce_quantity_policy(seeded: AsyncSession):
    service = PrescriptionService(seeded, quantity_policy="coerce")
    prescription_id = await service.create_prescription(
        make_request([item("M1", 0), item("M2", 2.7), item("M3", "abc")]),
        DOCTOR_ID,
    )

    view = await service.get_by_id(prescription_id)
    assert [i["qty"] for i in view["items"]] == [1, 2, 1]


@pytest.mark.asyncio
async def test_create_coerce_caps_huge_quantities(seeded: AsyncSession):
    service = PrescriptionService(seeded, quantity_policy="coerce")
    prescription_id = await service.create_prescription(
        make_request([item("M1", 10**20), item("M2", 1e300), item("M3", 10**400)]),
        DOCTOR_ID,
    )

    view = await service.get_by_id(prescription_id)
    assert [i["qty"] for i in view["items"]] == [MAX_QUANTITY, MAX_QUANTITY, 1]


@pytest.mark.asyncio
async def test_repository_create_is_atomic(seeded: AsyncSession):
    """A failing item row takes the header down with it"""
    repo = PrescriptionRepository(seeded)
    header = {
        "id": "rx-atomic",
        "doctor_id": DOCTOR_ID,
        "patient_id": PATIENT_ID,
        "status": PrescriptionStatus.READY,
    }
    items = [
        {"id": "it-1", "medication_id": "M1", "amount": 1},
        {"id": "it-2", "medication_id": "M2", "amount": 0},
    ]

    with pytest.raises(DatabaseError):
        await repo.create_with_items(header, items)

    await assert_nothing_stored(seeded)


@pytest.mark.asyncio
async def test_repository_rolls_back_on_driver_error(seeded: AsyncSession):
    """An amount the driver cannot bind leaves the session usable and nothing stored"""
    repo = PrescriptionRepository(seeded)
    header = {
        "id": "rx-overflow",
        "doctor_id": DOCTOR_ID,
        "patient_id": PATIENT_ID,
        "status": PrescriptionStatus.READY,
    }
    items = [{"id": "it-1", "medication_id": "M1", "amount": 10**20}]

    with pytest.raises((OverflowError, DatabaseError)):
        await repo.create_with_items(header, items)

    await assert_nothing_stored(seeded)
