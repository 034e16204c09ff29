import uuid
from datetime import datetime
from typing import Sequence
from sqlalchemy import select, func, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.security import Role
from app.modules.auth.tokens import RotationMarker
from app.modules.users.models import User

class UserRepository:
    """Credential store: lookups by id and by login identifier, atomic create/update."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> User:
        obj = User(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, user_id: uuid.UUID) -> User | None:
        q = select(User).where(User.id == user_id, User.anonymized_at.is_(None))
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        q = select(User).where(func.lower(User.email) == email.lower(), User.anonymized_at.is_(None))
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def email_taken(self, email: str) -> bool:
        q = select(User.id).where(func.lower(User.email) == email.lower())
        res = await self.session.execute(q)
        return res.first() is not None

    async def list(self, *, role: str | None = None, limit: int = 50, offset: int = 0) -> Sequence[User]:
        q = select(User).where(User.anonymized_at.is_(None))
        if role:
            q = q.where(User.role == role)
        q = q.order_by(User.created_at.desc()).limit(limit).offset(offset)
        res = await self.session.execute(q)
        return res.scalars().all()

    async def update(self, user: User, **data) -> User:
        for k, v in data.items():
            setattr(user, k, v)
        await self.session.flush()
        return user

    async def rotation_marker(self, user_id: uuid.UUID) -> RotationMarker | None:
        q = select(User.role, User.token_generation).where(User.id == user_id, User.anonymized_at.is_(None))
        row = (await self.session.execute(q)).first()
        if row is None:
            return None
        return RotationMarker(role=row.role, generation=row.token_generation)

    async def list_inactive(self, cutoff: datetime) -> Sequence[User]:
        # never logged in counts as inactive from account creation
        q = select(User).where(
            User.anonymized_at.is_(None),
            User.deletion_scheduled.is_(False),
            User.role != Role.ADMIN.value,
            or_(
                User.last_login_at < cutoff,
                and_(User.last_login_at.is_(None), User.created_at < cutoff),
            ),
        ).order_by(User.created_at.asc())
        res = await self.session.execute(q)
        return res.scalars().all()

    async def list_due_for_deletion(self, now: datetime) -> Sequence[User]:
        q = select(User).where(
            User.deletion_scheduled.is_(True),
            User.deletion_date <= now,
            User.anonymized_at.is_(None),
        ).order_by(User.deletion_date.asc())
        res = await self.session.execute(q)
        return res.scalars().all()

    async def count_by_role(self) -> dict[str, int]:
        q = select(User.role, func.count()).where(User.anonymized_at.is_(None)).group_by(User.role)
        res = await self.session.execute(q)
        return {role: n for role, n in res.all()}

    async def list_all(self) -> Sequence[User]:
        q = select(User).where(User.anonymized_at.is_(None)).order_by(User.created_at.asc())
        res = await self.session.execute(q)
        return res.scalars().all()

    async def list_pending_deletion(self) -> Sequence[User]:
        q = select(User).where(
            User.deletion_scheduled.is_(True),
            User.anonymized_at.is_(None),
        ).order_by(User.deletion_date.asc())
        res = await self.session.execute(q)
        return res.scalars().all()
