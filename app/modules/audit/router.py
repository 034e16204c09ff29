import uuid
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from app.core.responses import Envelope, Page, ok
from app.modules.access import operations as ops
from app.modules.access.guard import AccessGuard, get_guard
from app.modules.audit.models import AuditAction
from app.modules.audit.schemas import AuditEntryOut
from app.modules.audit.service import AuditRecorder, get_recorder

router = APIRouter()

@router.get("/audit-logs", response_model=Envelope[Page[AuditEntryOut]])
async def list_audit_logs(
    user_id: uuid.UUID | None = Query(default=None),
    action: AuditAction | None = Query(default=None),
    resource_type: str | None = Query(default=None, max_length=64),
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    cursor: str | None = Query(default=None),
    limit: int = Query(50, ge=1, le=200),
    guard: AccessGuard = Depends(get_guard),
    recorder: AuditRecorder = Depends(get_recorder),
):
    await guard.require(ops.ADMIN_AUDIT_LOGS)
    rows, next_cursor = await recorder.query(
        actor_user_id=user_id,
        action=action.value if action else None,
        resource_type=resource_type,
        start=start_date,
        end=end_date,
        cursor=cursor,
        limit=limit,
    )
    return ok(Page[AuditEntryOut](items=[AuditEntryOut.model_validate(r) for r in rows], next_cursor=next_cursor))
