import uuid
from datetime import datetime
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.modules.consent.models import ConsentRecord

class ConsentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(self, **data) -> ConsentRecord:
        obj = ConsentRecord(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def latest(self, user_id: uuid.UUID, category: str) -> ConsentRecord | None:
        q = select(ConsentRecord).where(
            ConsentRecord.user_id == user_id,
            ConsentRecord.category == category,
        ).order_by(ConsentRecord.seq.desc()).limit(1)
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def history(self, user_id: uuid.UUID, category: str | None = None) -> Sequence[ConsentRecord]:
        q = select(ConsentRecord).where(ConsentRecord.user_id == user_id)
        if category:
            q = q.where(ConsentRecord.category == category)
        q = q.order_by(ConsentRecord.seq.asc())
        res = await self.session.execute(q)
        return res.scalars().all()

    async def between(self, start: datetime | None = None, end: datetime | None = None) -> Sequence[ConsentRecord]:
        q = select(ConsentRecord)
        if start:
            q = q.where(ConsentRecord.created_at >= start)
        if end:
            q = q.where(ConsentRecord.created_at <= end)
        q = q.order_by(ConsentRecord.seq.asc())
        res = await self.session.execute(q)
        return res.scalars().all()
