import csv
import io
import json
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.base import utcnow
from app.core.db import get_session
from app.core.responses import ok
from app.modules.access.guard import AccessGuard, get_guard
from app.modules.admin.schemas import ComplianceExportRequest, ExportFormat, ExportType
from app.modules.admin.service import AdminService
from app.modules.audit.service import AuditRecorder, get_recorder

router = APIRouter()

CSV_COLUMNS = {
    ExportType.USERS: ["id", "email", "name", "phone", "role", "created_at", "last_login_at"],
    ExportType.AUDIT_LOGS: ["seq", "created_at", "action", "actor_user_id", "resource_type", "resource_id",
                            "client_ip", "details"],
}

def svc(request: Request, session: AsyncSession = Depends(get_session), guard: AccessGuard = Depends(get_guard),
        recorder: AuditRecorder = Depends(get_recorder)) -> AdminService:
    return AdminService(session, guard, recorder, request.app.state.retention)

def _csv(rows: list[dict], columns: list[str]) -> str:
    out = io.StringIO(); w = csv.writer(out); w.writerow(columns)
    for r in rows:
        w.writerow([json.dumps(r[c]) if isinstance(r[c], dict) else ("" if r[c] is None else r[c]) for c in columns])
    return out.getvalue()

@router.get("/stats")
async def stats(service: AdminService = Depends(svc)):
    return ok(await service.stats())

@router.post("/retention/run")
async def run_retention(service: AdminService = Depends(svc)):
    return ok(await service.run_retention(), "Retention sweeps completed")

@router.post("/export-data")
async def export_data(payload: ComplianceExportRequest, service: AdminService = Depends(svc)):
    export = await service.export(payload)
    filename = f"export_{payload.export_type.value}_{utcnow().strftime('%Y%m%dT%H%M%SZ')}"
    if payload.format is ExportFormat.CSV:
        rows = export[payload.export_type.value]["data"]
        return StreamingResponse(
            iter([_csv(rows, CSV_COLUMNS[payload.export_type])]),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}.csv"'},
        )
    return JSONResponse(
        content=ok(export, "Data exported"),
        headers={"Content-Disposition": f'attachment; filename="{filename}.json"'},
    )
