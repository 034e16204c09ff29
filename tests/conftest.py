"""Shared fixtures: a fresh SQLite database and application per test."""
import uuid
from datetime import date, datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from app.core.config import Settings
from app.core.passwords import hash_password
from app.core.security import Role
from app.main import create_app
from app.modules.audit.models import AuditEntry
from app.modules.consent.models import ConsentRecord
from app.modules.mood_entries.models import MoodEntry
from app.modules.patients.models import Patient, PatientAssignment
from app.modules.prescriptions.models import Prescription
from app.modules.users.models import User

PASSWORD = "Str0ng!Pass"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        ENV="dev",
        POSTGRES_DSN=f"sqlite+aiosqlite:///{tmp_path / 'records.db'}",
        JWT_SECRET="test-secret",
        BCRYPT_ROUNDS=4,
        AUDIT_DEAD_LETTER_PATH=str(tmp_path / "audit-deadletter.jsonl"),
        LOGIN_RATE_LIMIT=100,
        RETENTION_SWEEP_ENABLED=False,
    )


@pytest.fixture
async def application(settings):
    app = create_app(settings)
    await app.state.db.init_models()
    yield app
    await app.state.db.dispose()


@pytest.fixture
async def client(application):
    async with AsyncClient(transport=ASGITransport(app=application), base_url="http://test") as c:
        yield c


class Factory:
    """Writes fixtures straight to the database, bypassing the API and its audit trail."""

    def __init__(self, app):
        self.app = app
        self.sessionmaker = app.state.db.sessionmaker

    async def user(self, role: Role, *, email: str | None = None, **extra) -> User:
        async with self.sessionmaker() as s:
            user = User(
                email=email or f"{role.value}-{uuid.uuid4().hex[:8]}@example.com",
                password_hash=hash_password(PASSWORD, 4),
                name=f"Test {role.value.title()}",
                role=role.value,
                **extra,
            )
            s.add(user)
            await s.commit()
            return user

    async def patient(self, **extra) -> tuple[User, Patient]:
        user = await self.user(Role.PATIENT, **extra)
        async with self.sessionmaker() as s:
            patient = Patient(user_id=user.id, cpf="123.456.789-09", medical_history=["anxiety"], allergies=[])
            s.add(patient)
            await s.commit()
            return user, patient

    async def assign(self, patient: Patient, doctor: User) -> PatientAssignment:
        async with self.sessionmaker() as s:
            a = PatientAssignment(patient_id=patient.id, doctor_id=doctor.id, started_at=datetime.now().astimezone())
            s.add(a)
            await s.commit()
            return a

    async def prescription(self, patient: Patient, doctor: User) -> Prescription:
        async with self.sessionmaker() as s:
            p = Prescription(
                patient_id=patient.id,
                doctor_id=doctor.id,
                medications=[{"name": "Sertraline", "dosage": "50mg", "frequency": "daily"}],
                instructions="Take in the morning",
            )
            s.add(p)
            await s.commit()
            return p

    async def mood(self, patient: Patient, entry_date: date, mood_level: int, **extra) -> MoodEntry:
        async with self.sessionmaker() as s:
            entry = MoodEntry(patient_id=patient.id, entry_date=entry_date, mood_level=mood_level, **extra)
            s.add(entry)
            await s.commit()
            return entry

    async def grant(self, user: User, category: str):
        async with self.sessionmaker() as s:
            now = datetime.now().astimezone()
            s.add(ConsentRecord(user_id=user.id, category=category, granted=True, granted_at=now,
                                policy_version="1.0", created_at=now))
            await s.commit()

    async def reload(self, model, obj_id):
        async with self.sessionmaker() as s:
            return await s.get(model, obj_id)

    def token(self, user: User) -> str:
        return self.app.state.tokens.issue(user.id, user.role, user.token_generation)

    def headers(self, user: User) -> dict:
        return {"Authorization": f"Bearer {self.token(user)}"}

    async def audit(self, action: str | None = None) -> list[AuditEntry]:
        async with self.sessionmaker() as s:
            q = select(AuditEntry).order_by(AuditEntry.seq.asc())
            if action:
                q = q.where(AuditEntry.action == action)
            return list((await s.execute(q)).scalars().all())


@pytest.fixture
def factory(application) -> Factory:
    return Factory(application)
