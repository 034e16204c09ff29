import uuid
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import Settings
from app.core.errors import ConflictFailure, NotFoundFailure, ValidationFailure
from app.core.passwords import hash_password, password_problems
from app.core.security import Role
from app.modules.access import operations as ops
from app.modules.access.engine import ResourceRef
from app.modules.access.guard import AccessGuard
from app.modules.audit.models import AuditAction
from app.modules.patients.repository import PatientRepository
from app.modules.users.models import User
from app.modules.users.repository import UserRepository
from app.modules.users.schemas import UserCreate, RoleUpdate, UserOut


def check_password(password: str):
    problems = password_problems(password)
    if problems:
        raise ValidationFailure("Password does not meet the policy",
                                errors=[{"field": "password", "message": p} for p in problems])


class UserService:
    def __init__(self, session: AsyncSession, settings: Settings, guard: AccessGuard):
        self.session = session
        self.settings = settings
        self.guard = guard
        self.repo = UserRepository(session)

    async def create(self, payload: UserCreate) -> User:
        actor = await self.guard.require(ops.USERS_CREATE)
        check_password(payload.password)
        if await self.repo.email_taken(payload.email):
            raise ConflictFailure("Email already registered")
        user = await self.repo.create(
            email=payload.email.lower(),
            password_hash=hash_password(payload.password, self.settings.BCRYPT_ROUNDS),
            name=payload.name,
            phone=payload.phone,
            role=payload.role.value,
        )
        if payload.role is Role.PATIENT:
            await PatientRepository(self.session).create(user_id=user.id)
        await self.session.commit()
        self.guard.audit.defer(AuditAction.DATA_MODIFICATION, actor.user_id, resource_type="user",
                               resource_id=user.id,
                               details={"before": None, "after": UserOut.model_validate(user).model_dump(mode="json")})
        return user

    async def list(self, role: Role | None = None, limit: int = 50, offset: int = 0) -> Sequence[User]:
        await self.guard.require(ops.USERS_LIST)
        return await self.repo.list(role=role.value if role else None, limit=limit, offset=offset)

    async def change_role(self, user_id: uuid.UUID, payload: RoleUpdate) -> User:
        actor = await self.guard.require(ops.USERS_ROLE_CHANGE, ResourceRef("user", user_id, owner_principal_id=user_id))
        user = await self.repo.get(user_id)
        if not user:
            raise NotFoundFailure("User not found")
        before = user.role
        if before == payload.role.value:
            return user
        # tokens carry the role, so the old ones must stop verifying
        await self.repo.update(user, role=payload.role.value, token_generation=user.token_generation + 1)
        if payload.role is Role.PATIENT and not await PatientRepository(self.session).get_by_user(user.id):
            await PatientRepository(self.session).create(user_id=user.id)
        await self.session.commit()
        self.guard.audit.defer(AuditAction.ROLE_CHANGE, actor.user_id, resource_type="user", resource_id=user.id,
                               details={"before": {"role": before}, "after": {"role": user.role}})
        return user
