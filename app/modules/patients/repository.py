import uuid
from datetime import datetime
from typing import Sequence
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.patients.models import Patient, PatientAssignment

class PatientRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> Patient:
        obj = Patient(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, patient_id: uuid.UUID) -> Patient | None:
        res = await self.session.execute(select(Patient).where(Patient.id == patient_id))
        return res.scalar_one_or_none()

    async def get_by_user(self, user_id: uuid.UUID) -> Patient | None:
        res = await self.session.execute(select(Patient).where(Patient.user_id == user_id))
        return res.scalar_one_or_none()

    async def list(self, *, doctor_id: uuid.UUID | None = None, limit: int = 50, offset: int = 0) -> Sequence[Patient]:
        q = select(Patient).where(Patient.anonymized_at.is_(None))
        if doctor_id is not None:
            q = q.join(PatientAssignment, PatientAssignment.patient_id == Patient.id).where(
                PatientAssignment.doctor_id == doctor_id,
                PatientAssignment.ended_at.is_(None),
            )
        q = q.order_by(Patient.created_at.desc()).limit(limit).offset(offset)
        res = await self.session.execute(q)
        return res.scalars().all()

    async def update(self, patient: Patient, **data) -> Patient:
        for k, v in data.items():
            setattr(patient, k, v)
        await self.session.flush()
        return patient

    async def count(self) -> int:
        res = await self.session.execute(select(func.count()).select_from(Patient).where(Patient.anonymized_at.is_(None)))
        return res.scalar_one()


class AssignmentRepository:
    """Relationship store. Lookups always hit the database; nothing is cached."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def active(self, patient_id: uuid.UUID) -> PatientAssignment | None:
        q = select(PatientAssignment).where(
            PatientAssignment.patient_id == patient_id,
            PatientAssignment.ended_at.is_(None),
        ).order_by(PatientAssignment.started_at.desc()).limit(1)
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def is_assigned(self, doctor_id: uuid.UUID, patient_id: uuid.UUID) -> bool:
        q = select(PatientAssignment.id).where(
            PatientAssignment.patient_id == patient_id,
            PatientAssignment.doctor_id == doctor_id,
            PatientAssignment.ended_at.is_(None),
        ).limit(1)
        res = await self.session.execute(q)
        return res.first() is not None

    async def start(self, patient_id: uuid.UUID, doctor_id: uuid.UUID, assigned_by: uuid.UUID | None,
                    at: datetime) -> PatientAssignment:
        obj = PatientAssignment(patient_id=patient_id, doctor_id=doctor_id, assigned_by=assigned_by, started_at=at)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def end(self, assignment: PatientAssignment, at: datetime) -> PatientAssignment:
        assignment.ended_at = at
        await self.session.flush()
        return assignment

    async def history(self, patient_id: uuid.UUID) -> Sequence[PatientAssignment]:
        q = select(PatientAssignment).where(PatientAssignment.patient_id == patient_id).order_by(
            PatientAssignment.started_at.asc())
        res = await self.session.execute(q)
        return res.scalars().all()
