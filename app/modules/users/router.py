import uuid
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.paging import OffsetPage, offset_page
from app.core.responses import Envelope, ok
from app.core.security import Role
from app.modules.access.guard import AccessGuard, get_guard
from app.modules.users.schemas import UserCreate, RoleUpdate, UserOut
from app.modules.users.service import UserService

router = APIRouter()

def svc(request: Request, session: AsyncSession = Depends(get_session),
        guard: AccessGuard = Depends(get_guard)) -> UserService:
    return UserService(session, request.app.state.settings, guard)

@router.post("", response_model=Envelope[UserOut], status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserCreate, service: UserService = Depends(svc)):
    return ok(UserOut.model_validate(await service.create(payload)), "User created")

@router.get("", response_model=Envelope[list[UserOut]])
async def list_users(role: Role | None = None, page: OffsetPage = Depends(offset_page),
                     service: UserService = Depends(svc)):
    rows = await service.list(role, page.limit, page.offset)
    return ok([UserOut.model_validate(u) for u in rows])

@router.patch("/{user_id}/role", response_model=Envelope[UserOut])
async def change_role(user_id: uuid.UUID, payload: RoleUpdate, service: UserService = Depends(svc)):
    return ok(UserOut.model_validate(await service.change_role(user_id, payload)), "Role updated")
