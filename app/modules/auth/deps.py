import asyncio
import logging
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.errors import AuthenticationFailure, ErrorCode
from app.core.security import http_bearer, Principal, Role
from app.modules.audit.models import AuditAction
from app.modules.audit.service import RequestAudit, get_request_audit
from app.modules.auth.tokens import TokenService, TokenError, TokenExpired
from app.modules.users.repository import UserRepository

log = logging.getLogger("auth")


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


async def get_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    session: AsyncSession = Depends(get_session),
    tokens: TokenService = Depends(get_token_service),
    audit: RequestAudit = Depends(get_request_audit),
) -> Principal | None:
    """Principal for the bearer token, or None when no token was sent.

    A token that was sent but does not verify is a failed access attempt:
    it is audited with no actor and rejected here, before any handler runs.
    """
    if creds is None or not creds.credentials:
        return None
    timeout = request.app.state.settings.STORE_TIMEOUT_SECONDS
    try:
        verified = await asyncio.wait_for(tokens.verify(creds.credentials, UserRepository(session)), timeout=timeout)
        return Principal(user_id=verified.principal_id, role=Role(verified.role))
    except (TokenError, ValueError, asyncio.TimeoutError) as exc:
        reason = exc.__class__.__name__
        await audit.now(AuditAction.FAILED_ACCESS, None, resource_type="session",
                        details={"reason": reason, "path": request.url.path})
        if isinstance(exc, TokenExpired):
            raise AuthenticationFailure("Token expired", code=ErrorCode.AUTH_TOKEN_EXPIRED, reason=reason)
        raise AuthenticationFailure("Invalid token", code=ErrorCode.AUTH_TOKEN_INVALID, reason=reason)
