import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from typing import AsyncGenerator
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.core.security import create_access_token
from app.infrastructure.database import get_db, Base
from app.domain.identity.models import User, Doctor, Patient
from app.domain.pharmacy.models import (
    Medication, MedicationUnit, Prescription, PrescriptionItem, PrescriptionStatus
)
from app.domain.pharmacy.service import PrescriptionService


DOCTOR_ID = "u-doc"
PATIENT_USER_ID = "u-pat"
PATIENT_ID = "p-1"
HN_ONLY_PATIENT_ID = "p-2"


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database for each test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture(scope="function")
async def seeded(db_session: AsyncSession) -> AsyncSession:
    """Catalog plus one doctor and two patients."""
    db_session.add_all([
        User(id=DOCTOR_ID, username="ghouse", name="Gregory", lastname="House", role="doctor"),
        User(id=PATIENT_USER_ID, username="lcuddy", name="Lisa", lastname="Cuddy",
             hospital_number="HN-001", role="patient"),
        User(id="u-hn", username="hn_only", name="Hana", lastname="Number", hospital_number="HN-002"),
        User(id="u-stranger", username="stranger", name="Some", lastname="One"),
        Doctor(id=DOCTOR_ID, specialization="Diagnostics"),
        Patient(id=PATIENT_ID, user_id=PATIENT_USER_ID, hospital_number="HN-001"),
        Patient(id=HN_ONLY_PATIENT_ID, user_id=None, hospital_number="HN-002"),
        Medication(id="M1", name="Amoxicillin", description="capsule", price=5.5,
                   strength="500", unit=MedicationUnit.CAPSULE),
        Medication(id="M2", name="Paracetamol", description="tablet", price=2.5,
                   strength="500 mg", unit=MedicationUnit.TABLET),
        Medication(id="M3", name="Cetirizine", description=None, price=None,
                   strength=None, unit=None),
    ])
    await db_session.commit()
    return db_session


@pytest.fixture(scope="function")
def service(seeded: AsyncSession) -> PrescriptionService:
    return PrescriptionService(seeded, ownership_policy="doctor", status_policy="open", quantity_policy="reject")


@pytest.fixture(scope="function")
async def client(seeded: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Test client bound to the seeded session."""

    async def override_get_db():
        yield seeded

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def doctor_token() -> str:
    return create_access_token(subject=DOCTOR_ID, data={"role": "doctor"})


@pytest.fixture(scope="function")
async def authenticated_client(client: AsyncClient, doctor_token: str) -> AsyncGenerator[AsyncClient, None]:
    client.headers.update({"Authorization": f"Bearer {doctor_token}"})
    yield client


def make_request(items=None, doctor_id=DOCTOR_ID, patient_id=PATIENT_ID, note=None):
    from app.api.v1.pharmacy.schemas import PrescriptionCreate
    return PrescriptionCreate(doctor_id=doctor_id, patient_id=patient_id, note=note, items=items)


async def count_rows(session: AsyncSession, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


async def add_prescription(
    session: AsyncSession,
    prescription_id: str,
    created_at,
    patient_id: str = PATIENT_ID,
    status: PrescriptionStatus = PrescriptionStatus.READY,
    items=(("M1", 1),),
) -> Prescription:
    """Insert a prescription directly, bypassing the factory."""
    prescription = Prescription(
        id=prescription_id,
        doctor_id=DOCTOR_ID,
        patient_id=patient_id,
        status=status,
        created_at=created_at,
    )
    for position, (medication_id, amount) in enumerate(items):
        prescription.items.append(
            PrescriptionItem(medication_id=medication_id, amount=amount, position=position)
        )
    session.add(prescription)
    await session.commit()
    return prescription


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "prescriptions: mark test as prescription lifecycle related"
    )
