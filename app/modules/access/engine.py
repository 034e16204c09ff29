"""Access decision engine.

``authorize`` is a pure decision function over (principal, operation,
resource): it returns a :class:`Decision` and never raises or audits. The
only I/O it does is the assignment and consent lookups, both bounded by a
timeout; a lookup that fails or times out is a denial, never an allow.

Rules, first match wins:

1. no principal: deny ``unauthenticated`` unless the operation is public
2. admin: allow
3. secretary on a medical operation: deny ``secretary_medical_restricted``
4. role not in the operation's role set: deny ``insufficient_role``
5. self-scoped: allow only on the principal's own account, else ``not_self``
6. patient data: patients need their own record (``not_own_data``), doctors
   an active assignment (``doctor_not_assigned``), secretaries pass because
   medical operations were already refused in step 3; then the data
   subject's consent is checked when the operation requires one
7. administrative or authenticated-only operations: allow
8. otherwise deny ``no_matching_rule``
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Protocol
from app.core.security import Principal, Role
from app.modules.access.operations import Operation, Scope

log = logging.getLogger("access")


class DenyReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    INSUFFICIENT_ROLE = "insufficient_role"
    NOT_SELF = "not_self"
    NOT_OWN_DATA = "not_own_data"
    DOCTOR_NOT_ASSIGNED = "doctor_not_assigned"
    SECRETARY_MEDICAL_RESTRICTED = "secretary_medical_restricted"
    CONSENT_REQUIRED = "consent_required"
    LOOKUP_FAILED = "lookup_failed"
    MISCONFIGURED = "misconfigured"
    NO_MATCHING_RULE = "no_matching_rule"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: DenyReason | None = None

    @classmethod
    def deny(cls, reason: DenyReason) -> "Decision":
        return cls(allowed=False, reason=reason)

ALLOW = Decision(allowed=True)


@dataclass(frozen=True)
class ResourceRef:
    """What the engine needs to know about a target resource.

    ``owner_principal_id`` is the account the resource belongs to (the
    patient's user for clinical data). A reference to a resource that does
    not exist carries no owner, which denies everyone but admins.
    """
    resource_type: str
    resource_id: uuid.UUID | str | None = None
    owner_principal_id: uuid.UUID | None = None
    patient_id: uuid.UUID | None = None
    author_doctor_id: uuid.UUID | None = None


class RelationshipStore(Protocol):
    async def is_assigned(self, doctor_id: uuid.UUID, patient_id: uuid.UUID) -> bool: ...


class ConsentStore(Protocol):
    async def consent_granted(self, user_id: uuid.UUID, category: str) -> bool: ...


class AccessDecisionEngine:
    def __init__(self, relationships: RelationshipStore, consents: ConsentStore, timeout: float = 3.0):
        self.relationships = relationships
        self.consents = consents
        self.timeout = timeout

    async def authorize(self, principal: Principal | None, operation: Operation,
                        ref: ResourceRef | None = None) -> Decision:
        try:
            return await self._evaluate(principal, operation, ref)
        except Exception:
            log.exception(f"Access evaluation crashed for {getattr(operation, 'name', operation)!r}")
            return Decision.deny(DenyReason.MISCONFIGURED)

    async def _evaluate(self, principal: Principal | None, op: Operation, ref: ResourceRef | None) -> Decision:
        if not isinstance(op, Operation):
            log.error(f"Not an operation descriptor: {op!r}")
            return Decision.deny(DenyReason.MISCONFIGURED)

        if principal is None:
            return ALLOW if op.scope is Scope.PUBLIC else Decision.deny(DenyReason.UNAUTHENTICATED)

        problem = _misconfiguration(op, ref)
        if problem:
            log.error(f"Operation {op.name} is misconfigured: {problem}")
            return Decision.deny(DenyReason.MISCONFIGURED)

        if op.scope is Scope.PUBLIC or principal.role is Role.ADMIN:
            return ALLOW

        if op.medical and principal.role is Role.SECRETARY:
            return Decision.deny(DenyReason.SECRETARY_MEDICAL_RESTRICTED)

        if op.allowed_roles is not None and principal.role not in op.allowed_roles:
            return Decision.deny(DenyReason.INSUFFICIENT_ROLE)

        if op.scope is Scope.SELF:
            if ref.owner_principal_id is not None and ref.owner_principal_id == principal.user_id:
                return ALLOW
            return Decision.deny(DenyReason.NOT_SELF)

        if op.scope is Scope.PATIENT_DATA:
            decision = await self._patient_data(principal, ref)
            if not decision.allowed:
                return decision
            if op.consent_category:
                return await self._consent(ref, op.consent_category)
            return ALLOW

        if op.scope in (Scope.ADMINISTRATIVE, Scope.AUTHENTICATED):
            return ALLOW

        return Decision.deny(DenyReason.NO_MATCHING_RULE)

    async def _patient_data(self, principal: Principal, ref: ResourceRef) -> Decision:
        if principal.role is Role.PATIENT:
            if ref.owner_principal_id is not None and ref.owner_principal_id == principal.user_id:
                return ALLOW
            return Decision.deny(DenyReason.NOT_OWN_DATA)
        if principal.role is Role.DOCTOR:
            if ref.patient_id is None:
                return Decision.deny(DenyReason.DOCTOR_NOT_ASSIGNED)
            assigned = await self._lookup(self.relationships.is_assigned(principal.user_id, ref.patient_id),
                                          what="assignment")
            if assigned is None:
                return Decision.deny(DenyReason.LOOKUP_FAILED)
            return ALLOW if assigned else Decision.deny(DenyReason.DOCTOR_NOT_ASSIGNED)
        if principal.role is Role.SECRETARY:
            return ALLOW
        return Decision.deny(DenyReason.NO_MATCHING_RULE)

    async def _consent(self, ref: ResourceRef, category: str) -> Decision:
        if ref.owner_principal_id is None:
            return Decision.deny(DenyReason.CONSENT_REQUIRED)
        granted = await self._lookup(self.consents.consent_granted(ref.owner_principal_id, category),
                                     what="consent")
        if granted is None:
            return Decision.deny(DenyReason.LOOKUP_FAILED)
        return ALLOW if granted else Decision.deny(DenyReason.CONSENT_REQUIRED)

    async def _lookup(self, pending: Awaitable[bool], *, what: str) -> bool | None:
        try:
            return bool(await asyncio.wait_for(pending, timeout=self.timeout))
        except Exception as exc:  # timeouts included; the caller denies
            log.warning(f"{what} lookup failed, denying: {exc.__class__.__name__}: {exc}")
            return None


def _misconfiguration(op: Operation, ref: ResourceRef | None) -> str | None:
    if op.scope in (Scope.PATIENT_DATA, Scope.ADMINISTRATIVE) and not op.allowed_roles:
        return "missing allowed role set"
    if op.scope in (Scope.PATIENT_DATA, Scope.SELF) and ref is None:
        return "no target resource"
    return None
