import uuid
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.errors import NotFoundFailure
from app.core.security import Role
from app.modules.access import operations as ops
from app.modules.access.engine import ResourceRef
from app.modules.access.guard import AccessGuard
from app.modules.patients.models import Patient
from app.modules.patients.repository import PatientRepository
from app.modules.users.models import User
from app.modules.users.repository import UserRepository

class DoctorService:
    def __init__(self, session: AsyncSession, guard: AccessGuard):
        self.session = session
        self.guard = guard
        self.users = UserRepository(session)

    async def list(self, limit: int = 50, offset: int = 0) -> Sequence[User]:
        await self.guard.require(ops.DOCTORS_LIST)
        return await self.users.list(role=Role.DOCTOR.value, limit=limit, offset=offset)

    async def get(self, doctor_id: uuid.UUID) -> User:
        await self.guard.require(ops.DOCTORS_READ)
        return await self._doctor(doctor_id)

    async def patients(self, doctor_id: uuid.UUID, limit: int = 50, offset: int = 0) -> Sequence[Patient]:
        # a doctor sees only their own panel; admins see anyone's
        ref = ResourceRef("doctor_patients", doctor_id, owner_principal_id=doctor_id)
        await self.guard.require(ops.DOCTOR_PATIENTS, ref)
        doctor = await self._doctor(doctor_id)
        rows = await PatientRepository(self.session).list(doctor_id=doctor.id, limit=limit, offset=offset)
        self.guard.accessed(ops.DOCTOR_PATIENTS, ref, count=len(rows))
        return rows

    async def _doctor(self, doctor_id: uuid.UUID) -> User:
        doctor = await self.users.get(doctor_id)
        if not doctor or doctor.role != Role.DOCTOR.value:
            raise NotFoundFailure("Doctor not found")
        return doctor
