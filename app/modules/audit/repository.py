import uuid
from datetime import datetime
from typing import Sequence
from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.audit.models import AuditEntry


class AuditRepository:
    """Append and read only. The single delete path is the retention purge."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(self, **data) -> AuditEntry:
        obj = AuditEntry(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def query(self, *,
                    actor_user_id: uuid.UUID | None = None,
                    action: str | None = None,
                    resource_type: str | None = None,
                    start: datetime | None = None,
                    end: datetime | None = None,
                    before_seq: int | None = None,
                    limit: int = 50) -> Sequence[AuditEntry]:
        q = select(AuditEntry)
        if actor_user_id:
            q = q.where(AuditEntry.actor_user_id == actor_user_id)
        if action:
            q = q.where(AuditEntry.action == action)
        if resource_type:
            q = q.where(AuditEntry.resource_type == resource_type)
        if start:
            q = q.where(AuditEntry.created_at >= start)
        if end:
            q = q.where(AuditEntry.created_at <= end)
        if before_seq is not None:
            q = q.where(AuditEntry.seq < before_seq)
        q = q.order_by(AuditEntry.seq.desc()).limit(limit)
        res = await self.session.execute(q)
        return res.scalars().all()

    async def for_actor(self, actor_user_id: uuid.UUID, since: datetime) -> Sequence[AuditEntry]:
        q = select(AuditEntry).where(
            AuditEntry.actor_user_id == actor_user_id,
            AuditEntry.created_at >= since,
        ).order_by(AuditEntry.seq.asc())
        res = await self.session.execute(q)
        return res.scalars().all()

    async def count(self, action: str | None = None) -> int:
        q = select(func.count()).select_from(AuditEntry)
        if action:
            q = q.where(AuditEntry.action == action)
        return (await self.session.execute(q)).scalar_one()

    async def purge_older_than(self, cutoff: datetime) -> int:
        res = await self.session.execute(delete(AuditEntry).where(AuditEntry.created_at < cutoff))
        await self.session.flush()
        return res.rowcount or 0
