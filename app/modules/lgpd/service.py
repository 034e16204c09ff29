"""Data-subject rights: access/portability, deletion scheduling, consent management."""
import logging
from datetime import timedelta
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.base import utcnow
from app.core.config import Settings
from app.core.errors import NotFoundFailure
from app.core.security import Principal, Role
from app.modules.access import operations as ops
from app.modules.access.engine import ResourceRef
from app.modules.access.guard import AccessGuard
from app.modules.audit.models import AuditAction
from app.modules.audit.schemas import AuditEntryOut
from app.modules.audit.service import AuditRecorder
from app.modules.clinical.repository import ClinicalRepository
from app.modules.consent.schemas import ConsentRecordOut, ConsentSummaryOut
from app.modules.consent.service import ConsentLedger, Origin, RevokeResult
from app.modules.appointments.models import Appointment
from app.modules.appointments.schemas import AppointmentOut
from app.modules.patients.repository import PatientRepository
from app.modules.patients.schemas import PatientOut
from app.modules.retention.policy import RetentionPolicy
from app.modules.retention.records import MEDICAL_RECORDS
from app.modules.users.models import User
from app.modules.users.repository import UserRepository
from app.modules.users.schemas import UserOut

log = logging.getLogger("lgpd")

PROCESSING_PURPOSES = [
    {"purpose": "Provision of psychiatric and psychological care", "legal_basis": "LGPD Art. 11, II, f (health protection)"},
    {"purpose": "Appointment scheduling and reminders", "legal_basis": "LGPD Art. 7, V (contract execution)"},
    {"purpose": "Keeping medical records", "legal_basis": "LGPD Art. 7, II (legal obligation); CFM Resolution 1.821/2007"},
    {"purpose": "Security and audit trail", "legal_basis": "LGPD Art. 7, IX (legitimate interest)"},
    {"purpose": "Marketing communications", "legal_basis": "LGPD Art. 7, I (consent)"},
]


class LgpdService:
    def __init__(self, session: AsyncSession, settings: Settings, guard: AccessGuard, ledger: ConsentLedger,
                 recorder: AuditRecorder):
        self.session = session
        self.settings = settings
        self.guard = guard
        self.audit = guard.audit
        self.ledger = ledger
        self.recorder = recorder
        self.users = UserRepository(session)
        self.policy = RetentionPolicy.from_settings(settings)

    @property
    def origin(self) -> Origin:
        return Origin(self.audit.client_ip, self.audit.user_agent)

    async def _self(self, operation) -> tuple[Principal, User]:
        principal = self.guard.principal
        user_id = principal.user_id if principal else None
        principal = await self.guard.require(operation, ResourceRef("user", user_id, owner_principal_id=user_id))
        user = await self.users.get(principal.user_id)
        if not user:
            raise NotFoundFailure("User not found")
        return principal, user

    async def export(self) -> dict:
        principal, user = await self._self(ops.LGPD_EXPORT)
        now = utcnow()
        data = {
            "export_info": {
                "export_date": now.isoformat(),
                "user_id": str(user.id),
                "format": "JSON",
                "legal_basis": "LGPD Art. 18, II and V (access and portability)",
            },
            "personal_data": UserOut.model_validate(user).model_dump(mode="json"),
        }
        if principal.role is Role.PATIENT:
            data["health_data"] = await self._health_data(user)
        elif principal.role is Role.DOCTOR:
            data["professional_data"] = await self._professional_data(user)

        data["consents"] = [ConsentRecordOut.model_validate(r).model_dump(mode="json")
                            for r in await self.ledger.history(user.id)]
        since = now - timedelta(days=self.settings.EXPORT_AUDIT_WINDOW_DAYS)
        data["audit_logs"] = [AuditEntryOut.model_validate(r).model_dump(mode="json")
                              for r in await self.recorder.for_actor(user.id, since)]

        self.audit.defer(AuditAction.DATA_EXPORT, user.id, resource_type="user", resource_id=user.id,
                         details={"sections": sorted(data.keys())})
        log.info(f"Exported personal data for user={user.id}")
        return data

    async def _health_data(self, user: User) -> dict:
        patient = await PatientRepository(self.session).get_by_user(user.id)
        if patient is None:
            return {}
        out = {"patient_profile": PatientOut.model_validate(patient).model_dump(mode="json")}
        for key, _, model, schema in MEDICAL_RECORDS:
            rows = await ClinicalRepository(self.session, model).all_for_patient(patient.id)
            if key == "clinical_notes":
                rows = [r for r in rows if r.is_visible_to_patient]
            items = [schema.model_validate(r).model_dump(mode="json") for r in rows]
            if key == "exams":
                for item in items:
                    item["file_url"] = "[file available in the system]" if item["file_url"] else None
            out[key] = items
        return out

    async def _professional_data(self, user: User) -> dict:
        res = await self.session.execute(
            select(Appointment).where(Appointment.doctor_id == user.id).order_by(Appointment.starts_at.asc()))
        return {"appointments": [AppointmentOut.model_validate(r).model_dump(mode="json") for r in res.scalars()]}

    async def schedule_deletion(self, reason: str | None = None) -> dict:
        principal, user = await self._self(ops.LGPD_DELETE_ACCOUNT)
        if user.deletion_scheduled:
            return self._schedule_out(user, already=True)
        now = utcnow()
        await self.users.update(user, deletion_scheduled=True, deletion_date=self.policy.deletion_date(now),
                                deletion_requested_at=now, deletion_reason=reason or "user_request")
        await self.session.commit()
        self.audit.defer(AuditAction.ACCOUNT_DELETION_REQUESTED, user.id, resource_type="user", resource_id=user.id,
                         details={"scheduled_date": user.deletion_date.isoformat(),
                                  "grace_period_days": self.policy.grace_days, "reason": user.deletion_reason})
        return self._schedule_out(user, already=False)

    def _schedule_out(self, user: User, *, already: bool) -> dict:
        return {
            "scheduled": True,
            "already_scheduled": already,
            "deletion_date": user.deletion_date,
            "grace_period_days": self.policy.grace_days,
            "retained": {
                "medical_records": f"anonymized and kept for {self.policy.medical_years} years",
                "audit_logs": f"kept for {self.policy.audit_years} years",
            },
        }

    async def cancel_deletion(self) -> dict:
        principal, user = await self._self(ops.LGPD_CANCEL_DELETION)
        if not user.deletion_scheduled:
            return {"cancelled": False}
        await self.users.update(user, deletion_scheduled=False, deletion_date=None, deletion_requested_at=None,
                                deletion_notified_at=None, deletion_reason=None)
        await self.session.commit()
        self.audit.defer(AuditAction.ACCOUNT_DELETION_CANCELLED, user.id, resource_type="user", resource_id=user.id,
                         details={"trigger": "request"})
        return {"cancelled": True}

    async def consents(self) -> list[ConsentSummaryOut]:
        principal, user = await self._self(ops.LGPD_CONSENTS_READ)
        return [ConsentSummaryOut(**{**s, "history": [ConsentRecordOut.model_validate(r) for r in s["history"]]})
                for s in await self.ledger.summary(user.id)]

    async def grant_consent(self, category: str, version: str | None = None):
        principal, user = await self._self(ops.LGPD_CONSENT_GRANT)
        return await self.ledger.grant(user.id, category, self.origin, version)

    async def revoke_consent(self, category: str) -> RevokeResult:
        principal, user = await self._self(ops.LGPD_CONSENT_REVOKE)
        return await self.ledger.revoke(user.id, category, self.origin)

    async def data_usage(self) -> dict:
        await self.guard.require(ops.LGPD_DATA_USAGE)
        return {
            "controller": self.settings.APP_NAME,
            "purposes": PROCESSING_PURPOSES,
            "consent_categories": self.settings.CONSENT_CATEGORIES,
            "policy_version": self.settings.CONSENT_POLICY_VERSION,
            "retention": self.policy.describe(),
            "rights": ["access", "correction", "portability", "deletion", "consent revocation"],
        }

    async def dpo_contact(self) -> dict:
        await self.guard.require(ops.LGPD_DPO_CONTACT)
        return {"name": self.settings.DPO_NAME, "email": self.settings.DPO_EMAIL, "phone": self.settings.DPO_PHONE}
