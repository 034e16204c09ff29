import logging
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.base import utcnow
from app.modules.access import operations as ops
from app.modules.access.guard import AccessGuard
from app.modules.admin.schemas import ComplianceExportRequest, ConsentLedgerRowOut, ExportType
from app.modules.audit.models import AuditAction
from app.modules.audit.schemas import AuditEntryOut
from app.modules.audit.service import AuditRecorder
from app.modules.clinical.repository import ClinicalRepository
from app.modules.consent.repository import ConsentRepository
from app.modules.patients.repository import PatientRepository
from app.modules.retention.records import MEDICAL_RECORDS
from app.modules.retention.service import RetentionService
from app.modules.users.repository import UserRepository
from app.modules.users.schemas import UserOut

log = logging.getLogger("admin")

EXPORT_PAGE_SIZE = 500

class AdminService:
    def __init__(self, session: AsyncSession, guard: AccessGuard, recorder: AuditRecorder,
                 retention: RetentionService):
        self.session = session
        self.guard = guard
        self.recorder = recorder
        self.retention = retention

    async def stats(self) -> dict:
        await self.guard.require(ops.ADMIN_STATS)
        records = {}
        for key, _, model, _ in MEDICAL_RECORDS:
            records[key] = await ClinicalRepository(self.session, model).count()
        return {
            "users_by_role": await UserRepository(self.session).count_by_role(),
            "patients": await PatientRepository(self.session).count(),
            "medical_records": records,
            "audit": {
                "total": await self.recorder.count(),
                "access_denied": await self.recorder.count(AuditAction.ACCESS_DENIED.value),
                "failed_logins": await self.recorder.count(AuditAction.FAILED_LOGIN.value),
                "dead_lettered": self.recorder.dead_letter.failures,
            },
        }

    async def run_retention(self) -> dict:
        principal = await self.guard.require(ops.ADMIN_RETENTION_RUN)
        summary = await self.retention.run_all()
        self.guard.audit.defer(AuditAction.DATA_ACCESS, principal.user_id, resource_type="retention",
                               details={"operation": ops.ADMIN_RETENTION_RUN.name, "summary": summary})
        return summary

    async def export(self, request: ComplianceExportRequest) -> dict:
        """Compliance export for regulators and the DPO; the caller is audited as DATA_EXPORT."""
        principal = await self.guard.require(ops.ADMIN_EXPORT)
        start, end = request.start_date, request.end_date
        kind = request.export_type
        out = {
            "export_type": kind.value,
            "export_date": utcnow().isoformat(),
            "period": {"start_date": start.isoformat() if start else "all",
                       "end_date": end.isoformat() if end else "all"},
        }
        if kind in (ExportType.USERS, ExportType.ALL):
            out["users"] = _section(await self._users())
        if kind in (ExportType.AUDIT_LOGS, ExportType.ALL):
            out["audit_logs"] = _section(await self._audit_entries(start, end))
        if kind in (ExportType.COMPLIANCE, ExportType.ALL):
            out["compliance"] = await self._compliance(start, end)

        self.guard.audit.defer(AuditAction.DATA_EXPORT, principal.user_id, resource_type="system",
                               details={"export_type": kind.value, "format": request.format.value,
                                        "period": out["period"]})
        log.info(f"Compliance export {kind.value}/{request.format.value} by {principal.user_id}")
        return out

    async def _users(self) -> list[dict]:
        return [UserOut.model_validate(u).model_dump(mode="json")
                for u in await UserRepository(self.session).list_all()]

    async def _audit_entries(self, start: datetime | None, end: datetime | None,
                             action: AuditAction | None = None) -> list[dict]:
        entries, cursor = [], None
        while True:
            rows, cursor = await self.recorder.query(action=action.value if action else None, start=start, end=end,
                                                     cursor=cursor, limit=EXPORT_PAGE_SIZE)
            entries.extend(AuditEntryOut.model_validate(r).model_dump(mode="json") for r in rows)
            if cursor is None:
                return entries

    async def _compliance(self, start: datetime | None, end: datetime | None) -> dict:
        consents = await ConsentRepository(self.session).between(start, end)
        sensitive = await self._audit_entries(start, end, AuditAction.SENSITIVE_DATA_ACCESS)
        pending = await UserRepository(self.session).list_pending_deletion()
        return {
            "summary": {
                "total_consents": len(consents),
                "granted_consents": sum(1 for c in consents if c.granted),
                "revoked_consents": sum(1 for c in consents if not c.granted),
                "sensitive_data_access": len(sensitive),
                "pending_deletions": len(pending),
            },
            "consents": [ConsentLedgerRowOut.model_validate(c).model_dump(mode="json") for c in consents],
            "sensitive_data_access": sensitive,
            "pending_deletions": [
                {"user_id": str(u.id), "email": u.email,
                 "deletion_date": u.deletion_date.isoformat() if u.deletion_date else None,
                 "reason": u.deletion_reason}
                for u in pending
            ],
        }


def _section(rows: list[dict]) -> dict:
    return {"count": len(rows), "data": rows}
