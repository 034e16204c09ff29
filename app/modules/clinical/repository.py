import uuid
from typing import Generic, Sequence, TypeVar
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.clinical.models import ClinicalRecordMixin

M = TypeVar("M", bound=ClinicalRecordMixin)

class ClinicalRepository(Generic[M]):
    def __init__(self, session: AsyncSession, model: type[M]):
        self.session = session
        self.model = model

    async def create(self, **data) -> M:
        obj = self.model(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, record_id: uuid.UUID) -> M | None:
        res = await self.session.execute(select(self.model).where(self.model.id == record_id))
        return res.scalar_one_or_none()

    async def list_for_patient(self, patient_id: uuid.UUID, limit: int = 50, offset: int = 0) -> Sequence[M]:
        q = select(self.model).where(self.model.patient_id == patient_id).order_by(
            self.model.created_at.desc()).limit(limit).offset(offset)
        res = await self.session.execute(q)
        return res.scalars().all()

    async def all_for_patient(self, patient_id: uuid.UUID) -> Sequence[M]:
        q = select(self.model).where(self.model.patient_id == patient_id).order_by(self.model.created_at.asc())
        res = await self.session.execute(q)
        return res.scalars().all()

    async def update(self, obj: M, **data) -> M:
        for k, v in data.items():
            setattr(obj, k, v)
        await self.session.flush()
        return obj

    async def count_for_patient(self, patient_id: uuid.UUID) -> int:
        q = select(func.count()).select_from(self.model).where(self.model.patient_id == patient_id)
        res = await self.session.execute(q)
        return res.scalar_one()

    async def count(self) -> int:
        res = await self.session.execute(select(func.count()).select_from(self.model))
        return res.scalar_one()
