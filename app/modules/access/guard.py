import logging
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.errors import AuthenticationFailure, AuthorizationFailure, ComplianceFailure
from app.core.security import Principal
from app.modules.access.engine import AccessDecisionEngine, Decision, DenyReason, ResourceRef
from app.modules.access.operations import Operation
from app.modules.audit.models import AuditAction
from app.modules.audit.service import RequestAudit, get_request_audit
from app.modules.auth.deps import get_principal
from app.modules.consent.service import ConsentLedger
from app.modules.patients.repository import AssignmentRepository

log = logging.getLogger("access")


class AccessGuard:
    """Runs the engine for one request and turns a denial into an audited error.

    Denials are audited before the error is raised: unauthenticated callers
    as FAILED_ACCESS with no actor, everyone else as ACCESS_DENIED with the
    reason in the details. The reason is never sent to the client.
    """

    def __init__(self, engine: AccessDecisionEngine, audit: RequestAudit, principal: Principal | None):
        self.engine = engine
        self.audit = audit
        self.principal = principal

    async def require(self, operation: Operation, ref: ResourceRef | None = None) -> Principal:
        decision = await self.engine.authorize(self.principal, operation, ref)
        if decision.allowed:
            return self.principal
        await self._deny(operation, ref, decision)

    def accessed(self, operation: Operation, ref: ResourceRef, **details) -> None:
        """Queue the SENSITIVE_DATA_ACCESS entry for a successful read."""
        if not operation.sensitive:
            return
        self.audit.defer(AuditAction.SENSITIVE_DATA_ACCESS, self.principal.user_id,
                         resource_type=ref.resource_type, resource_id=ref.resource_id,
                         details={"operation": operation.name, "role": self.principal.role.value, **details})

    async def _deny(self, operation: Operation, ref: ResourceRef | None, decision: Decision):
        reason = decision.reason
        details = {"operation": operation.name, "reason": reason.value}
        resource_type = ref.resource_type if ref else None
        resource_id = ref.resource_id if ref else None
        if reason is DenyReason.UNAUTHENTICATED:
            await self.audit.now(AuditAction.FAILED_ACCESS, None, resource_type=resource_type,
                                 resource_id=resource_id, details=details)
            raise AuthenticationFailure(reason=reason.value)

        details["role"] = self.principal.role.value
        await self.audit.now(AuditAction.ACCESS_DENIED, self.principal.user_id, resource_type=resource_type,
                             resource_id=resource_id, details=details)
        if reason in (DenyReason.MISCONFIGURED, DenyReason.LOOKUP_FAILED):
            log.warning(f"Denied {operation.name} for {self.principal.user_id}: {reason.value}")
        if reason is DenyReason.CONSENT_REQUIRED:
            raise ComplianceFailure(f"Consent required for category {operation.consent_category}",
                                    reason=reason.value)
        raise AuthorizationFailure(reason=reason.value)


def get_ledger(request: Request, session: AsyncSession = Depends(get_session)) -> ConsentLedger:
    settings = request.app.state.settings
    return ConsentLedger(session, request.app.state.audit, categories=settings.CONSENT_CATEGORIES,
                         policy_version=settings.CONSENT_POLICY_VERSION)


def get_engine(
    request: Request,
    session: AsyncSession = Depends(get_session),
    ledger: ConsentLedger = Depends(get_ledger),
) -> AccessDecisionEngine:
    return AccessDecisionEngine(AssignmentRepository(session), ledger,
                                timeout=request.app.state.settings.STORE_TIMEOUT_SECONDS)


def get_guard(
    engine: AccessDecisionEngine = Depends(get_engine),
    audit: RequestAudit = Depends(get_request_audit),
    principal: Principal | None = Depends(get_principal),
) -> AccessGuard:
    return AccessGuard(engine, audit, principal)
