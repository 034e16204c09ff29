from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.responses import Envelope, ok
from app.modules.access.guard import AccessGuard, get_guard, get_ledger
from app.modules.auth.deps import get_token_service
from app.modules.auth.schemas import RegisterRequest, LoginRequest, ChangePasswordRequest, TokenOut
from app.modules.auth.service import AuthService
from app.modules.auth.tokens import TokenService
from app.modules.consent.service import ConsentLedger
from app.modules.users.schemas import ProfileUpdate, UserOut

router = APIRouter()

def svc(
    request: Request,
    session: AsyncSession = Depends(get_session),
    tokens: TokenService = Depends(get_token_service),
    guard: AccessGuard = Depends(get_guard),
    ledger: ConsentLedger = Depends(get_ledger),
) -> AuthService:
    return AuthService(session, request.app.state.settings, tokens, guard, ledger,
                       request.app.state.providers.rate_limiter())

@router.post("/register", response_model=Envelope[TokenOut], status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, service: AuthService = Depends(svc)):
    return ok(await service.register(payload), "Account created")

@router.post("/login", response_model=Envelope[TokenOut])
async def login(payload: LoginRequest, service: AuthService = Depends(svc)):
    out = await service.login(payload)
    return ok(out, "Scheduled account deletion cancelled" if out.deletion_cancelled else None)

@router.post("/logout", response_model=Envelope[None])
async def logout(service: AuthService = Depends(svc)):
    await service.logout()
    return ok(None, "Logged out")

@router.get("/profile", response_model=Envelope[UserOut])
async def get_profile(service: AuthService = Depends(svc)):
    return ok(UserOut.model_validate(await service.profile()))

@router.patch("/profile", response_model=Envelope[UserOut])
async def update_profile(payload: ProfileUpdate, service: AuthService = Depends(svc)):
    return ok(UserOut.model_validate(await service.update_profile(payload)), "Profile updated")

@router.post("/change-password", response_model=Envelope[TokenOut])
async def change_password(payload: ChangePasswordRequest, service: AuthService = Depends(svc)):
    return ok(await service.change_password(payload), "Password changed")
