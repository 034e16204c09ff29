import logging
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.base import utcnow
from app.core.config import Settings
from app.core.errors import AuthenticationFailure, ConflictFailure, ErrorCode, NotFoundFailure, RateLimited
from app.core.passwords import hash_password, verify_password
from app.core.security import Principal, Role
from app.modules.access import operations as ops
from app.modules.access.engine import ResourceRef
from app.modules.access.guard import AccessGuard
from app.modules.audit.models import AuditAction
from app.modules.auth.schemas import RegisterRequest, LoginRequest, ChangePasswordRequest, TokenOut
from app.modules.auth.tokens import TokenService
from app.modules.consent.service import ConsentLedger, Origin
from app.modules.patients.repository import PatientRepository
from app.modules.users.models import User
from app.modules.users.repository import UserRepository
from app.modules.users.schemas import ProfileUpdate, UserOut
from app.modules.users.service import check_password
from app.platform.ports.rate_limiter import RateLimiterPort

log = logging.getLogger("auth")


class AuthService:
    def __init__(self, session: AsyncSession, settings: Settings, tokens: TokenService, guard: AccessGuard,
                 ledger: ConsentLedger, limiter: RateLimiterPort):
        self.session = session
        self.settings = settings
        self.tokens = tokens
        self.guard = guard
        self.audit = guard.audit
        self.ledger = ledger
        self.limiter = limiter
        self.users = UserRepository(session)

    def _token_for(self, user: User, **extra) -> TokenOut:
        token = self.tokens.issue(user.id, user.role, user.token_generation)
        return TokenOut(token=token, expires_at=utcnow() + self.tokens.ttl,
                        user=UserOut.model_validate(user), **extra)

    def _self_ref(self, principal: Principal | None) -> ResourceRef:
        user_id = principal.user_id if principal else None
        return ResourceRef("user", user_id, owner_principal_id=user_id)

    async def register(self, payload: RegisterRequest) -> TokenOut:
        await self.guard.require(ops.AUTH_REGISTER)
        check_password(payload.password)
        for category in payload.consents:
            self.ledger.check_category(category)
        if await self.users.email_taken(payload.email):
            raise ConflictFailure("Email already registered")
        user = await self.users.create(
            email=payload.email.lower(),
            password_hash=hash_password(payload.password, self.settings.BCRYPT_ROUNDS),
            name=payload.name,
            phone=payload.phone,
            role=Role.PATIENT.value,
        )
        patient = await PatientRepository(self.session).create(
            user_id=user.id, date_of_birth=payload.date_of_birth, cpf=payload.cpf)
        await self.session.commit()
        log.info(f"Registered patient user={user.id}")
        self.audit.defer(AuditAction.DATA_MODIFICATION, user.id, resource_type="patient", resource_id=patient.id,
                         details={"before": None, "after": {"user_id": str(user.id), "role": user.role}})

        origin = Origin(self.audit.client_ip, self.audit.user_agent)
        for category in dict.fromkeys(payload.consents):
            await self.ledger.grant(user.id, category, origin)
        return self._token_for(user)

    async def login(self, payload: LoginRequest) -> TokenOut:
        await self.guard.require(ops.AUTH_LOGIN)
        key = f"login:{self.audit.client_ip or 'unknown'}"
        if not await self.limiter.hit(key, self.settings.LOGIN_RATE_LIMIT, self.settings.LOGIN_RATE_WINDOW_SECONDS):
            raise RateLimited("Too many login attempts, try again later")

        user = await self.users.get_by_email(payload.email)
        if user is None or not verify_password(payload.password, user.password_hash):
            await self.audit.now(AuditAction.FAILED_LOGIN, user.id if user else None, resource_type="user",
                                 resource_id=user.id if user else None,
                                 details={"email": payload.email.lower(),
                                          "reason": "unknown_identifier" if user is None else "bad_password"})
            raise AuthenticationFailure("Invalid credentials", code=ErrorCode.AUTH_INVALID_CREDENTIALS)

        now = utcnow()
        cancelled = user.deletion_scheduled
        changes = {"last_login_at": now}
        if cancelled:
            # logging in during the grace period withdraws the deletion request
            changes.update(deletion_scheduled=False, deletion_date=None, deletion_requested_at=None,
                           deletion_reason=None)
        await self.users.update(user, **changes)
        await self.session.commit()
        await self.limiter.reset(key)

        self.audit.defer(AuditAction.LOGIN, user.id, resource_type="user", resource_id=user.id)
        if cancelled:
            self.audit.defer(AuditAction.ACCOUNT_DELETION_CANCELLED, user.id, resource_type="user",
                             resource_id=user.id, details={"trigger": "login"})
        return self._token_for(user, deletion_cancelled=cancelled)

    async def logout(self) -> None:
        principal = await self.guard.require(ops.AUTH_LOGOUT)
        self.audit.defer(AuditAction.LOGOUT, principal.user_id, resource_type="user", resource_id=principal.user_id)

    async def profile(self) -> User:
        principal = await self.guard.require(ops.PROFILE_READ, self._self_ref(self.guard.principal))
        user = await self.users.get(principal.user_id)
        if not user:
            raise NotFoundFailure("User not found")
        return user

    async def update_profile(self, payload: ProfileUpdate) -> User:
        principal = await self.guard.require(ops.PROFILE_UPDATE, self._self_ref(self.guard.principal))
        user = await self.users.get(principal.user_id)
        if not user:
            raise NotFoundFailure("User not found")
        data = payload.model_dump(exclude_unset=True)
        before = {k: getattr(user, k) for k in data}
        await self.users.update(user, **data)
        await self.session.commit()
        self.audit.defer(AuditAction.DATA_MODIFICATION, principal.user_id, resource_type="user",
                         resource_id=user.id, details={"before": before, "after": data})
        return user

    async def change_password(self, payload: ChangePasswordRequest) -> TokenOut:
        principal = await self.guard.require(ops.PASSWORD_CHANGE, self._self_ref(self.guard.principal))
        user = await self.users.get(principal.user_id)
        if not user:
            raise NotFoundFailure("User not found")
        if not verify_password(payload.current_password, user.password_hash):
            raise AuthenticationFailure("Current password is incorrect", code=ErrorCode.AUTH_INVALID_CREDENTIALS)
        check_password(payload.new_password)
        await self.users.update(
            user,
            password_hash=hash_password(payload.new_password, self.settings.BCRYPT_ROUNDS),
            token_generation=user.token_generation + 1,
        )
        await self.session.commit()
        self.audit.defer(AuditAction.PASSWORD_CHANGE, user.id, resource_type="user", resource_id=user.id,
                         details={"token_generation": user.token_generation})
        return self._token_for(user)
