import json
from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.base import utcnow
from app.core.db import get_session
from app.core.responses import Envelope, ok
from app.modules.access.guard import AccessGuard, get_guard, get_ledger
from app.modules.audit.service import AuditRecorder, get_recorder
from app.modules.consent.schemas import ConsentRequest, ConsentRecordOut, ConsentSummaryOut, RevokeOut
from app.modules.consent.service import ConsentLedger, RevokeStatus
from app.modules.lgpd.schemas import DeletionRequest, DeletionScheduleOut, CancelDeletionOut
from app.modules.lgpd.service import LgpdService

router = APIRouter()

def svc(
    request: Request,
    session: AsyncSession = Depends(get_session),
    guard: AccessGuard = Depends(get_guard),
    ledger: ConsentLedger = Depends(get_ledger),
    recorder: AuditRecorder = Depends(get_recorder),
) -> LgpdService:
    return LgpdService(session, request.app.state.settings, guard, ledger, recorder)

_REVOKE_MESSAGES = {
    RevokeStatus.REVOKED: "Consent revoked",
    RevokeStatus.ALREADY_REVOKED: "Consent already revoked",
    RevokeStatus.NOT_FOUND: "No consent found for this category",
}

@router.get("/my-data")
async def my_data(service: LgpdService = Depends(svc)):
    return ok(await service.export())

@router.post("/data-portability")
async def data_portability(service: LgpdService = Depends(svc)):
    data = await service.export()
    filename = f"my-data-{utcnow().date().isoformat()}.json"
    return Response(
        content=json.dumps(data, indent=2, ensure_ascii=False),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

@router.delete("/delete-account", response_model=Envelope[DeletionScheduleOut])
async def delete_account(payload: DeletionRequest | None = None, service: LgpdService = Depends(svc)):
    out = await service.schedule_deletion(payload.reason if payload else None)
    msg = "Account deletion already scheduled" if out["already_scheduled"] else "Account deletion scheduled"
    return ok(out, msg)

@router.post("/cancel-deletion", response_model=Envelope[CancelDeletionOut])
async def cancel_deletion(service: LgpdService = Depends(svc)):
    out = await service.cancel_deletion()
    return ok(out, "Account deletion cancelled" if out["cancelled"] else "No account deletion scheduled")

@router.get("/consents", response_model=Envelope[list[ConsentSummaryOut]])
async def list_consents(service: LgpdService = Depends(svc)):
    return ok(await service.consents())

@router.post("/grant-consent", response_model=Envelope[ConsentRecordOut])
async def grant_consent(payload: ConsentRequest, service: LgpdService = Depends(svc)):
    record = await service.grant_consent(payload.category, payload.version)
    return ok(ConsentRecordOut.model_validate(record), "Consent granted")

@router.post("/revoke-consent", response_model=Envelope[RevokeOut])
async def revoke_consent(payload: ConsentRequest, service: LgpdService = Depends(svc)):
    result = await service.revoke_consent(payload.category)
    out = RevokeOut(
        category=result.category,
        revoked=result.revoked,
        status=result.status.value,
        revoked_at=result.record.revoked_at if result.record else None,
    )
    return ok(out, _REVOKE_MESSAGES[result.status])

@router.get("/data-usage")
async def data_usage(service: LgpdService = Depends(svc)):
    return ok(await service.data_usage())

@router.get("/dpo-contact")
async def dpo_contact(service: LgpdService = Depends(svc)):
    return ok(await service.dpo_contact())
