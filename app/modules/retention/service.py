"""Retention sweeps: inactive-account scan, scheduled-deletion executor, audit purge.

Each sweep is idempotent. The scan skips principals already scheduled, the
executor skips principals already anonymized, and the purge only ever
removes entries past the audit retention period.
"""
import logging
import uuid
from datetime import datetime
from typing import Callable
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from app.core.base import utcnow
from app.core.passwords import UNUSABLE_PASSWORD
from app.modules.audit.models import AuditAction
from app.modules.audit.repository import AuditRepository
from app.modules.audit.service import AuditEvent, AuditRecorder
from app.modules.clinical.repository import ClinicalRepository
from app.modules.patients.repository import PatientRepository, AssignmentRepository
from app.modules.retention.policy import RetentionPolicy, Disposition
from app.modules.retention.records import MEDICAL_RECORDS
from app.modules.users.models import User
from app.modules.users.repository import UserRepository
from app.platform.ports.notifier import NotifierPort

log = logging.getLogger("retention")

# identifying profile fields stripped on anonymization; clinical fields are kept
PATIENT_IDENTIFIERS = ("date_of_birth", "cpf", "emergency_contact_name", "emergency_contact_phone",
                       "insurance_provider", "insurance_number")


async def anonymize_account(session: AsyncSession, user: User, now: datetime) -> dict:
    """Strip identifying data from the account and patient profile.

    Medical records are left untouched: they still point at the (now
    anonymous) patient profile and stay retained for the statutory period.
    Returns the number of retained records per type.
    """
    await UserRepository(session).update(
        user,
        email=f"deleted-{user.id.hex}@anonymized.invalid",
        name="Anonymized user",
        phone=None,
        password_hash=UNUSABLE_PASSWORD,
        token_generation=user.token_generation + 1,
        anonymized_at=now,
    )
    retained: dict[str, int] = {}
    patient = await PatientRepository(session).get_by_user(user.id)
    if patient is not None:
        await PatientRepository(session).update(patient, anonymized_at=now, **{f: None for f in PATIENT_IDENTIFIERS})
        assignments = AssignmentRepository(session)
        current = await assignments.active(patient.id)
        if current is not None:
            await assignments.end(current, now)
        for _, resource_type, model, _ in MEDICAL_RECORDS:
            retained[resource_type] = await ClinicalRepository(session, model).count_for_patient(patient.id)
    return retained


class RetentionService:
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession], recorder: AuditRecorder,
                 notifier: NotifierPort, policy: RetentionPolicy, clock: Callable[[], datetime] = utcnow):
        self.sessionmaker = sessionmaker
        self.recorder = recorder
        self.notifier = notifier
        self.policy = policy
        self.clock = clock

    async def scan_inactive(self) -> list[uuid.UUID]:
        now = self.clock()
        cutoff = self.policy.inactive_cutoff(now)
        scheduled = []
        async with self.sessionmaker() as session:
            repo = UserRepository(session)
            for user in await repo.list_inactive(cutoff):
                deletion_date = self.policy.deletion_date(now)
                await repo.update(user, deletion_scheduled=True, deletion_date=deletion_date,
                                  deletion_requested_at=now, deletion_notified_at=now, deletion_reason="inactivity")
                await session.commit()
                await self.notifier.notify(
                    user.email,
                    "Your account is scheduled for deletion",
                    f"Your account has been inactive for {self.policy.inactive_days} days and will be deleted "
                    f"on {deletion_date.date().isoformat()}. Log in before then to keep it.",
                    meta={"user_id": str(user.id), "deletion_date": deletion_date.isoformat()},
                )
                await self.recorder.record(AuditEvent(
                    action=AuditAction.ACCOUNT_DELETION_REQUESTED,
                    actor_user_id=None,
                    resource_type="user",
                    resource_id=str(user.id),
                    details={"trigger": "inactivity", "scheduled_date": deletion_date.isoformat()},
                ))
                scheduled.append(user.id)
        if scheduled:
            log.info(f"Inactive-account scan scheduled {len(scheduled)} deletion(s)")
        return scheduled

    async def execute_due(self) -> list[uuid.UUID]:
        now = self.clock()
        executed = []
        async with self.sessionmaker() as session:
            for user in await UserRepository(session).list_due_for_deletion(now):
                retained = await anonymize_account(session, user, now)
                await session.commit()
                await self.recorder.record(AuditEvent(
                    action=AuditAction.ACCOUNT_DELETION_EXECUTED,
                    actor_user_id=None,
                    resource_type="user",
                    resource_id=str(user.id),
                    details={"disposition": Disposition.ANONYMIZE.value, "retained_medical_records": retained,
                             "reason": user.deletion_reason},
                ))
                executed.append(user.id)
        if executed:
            log.info(f"Deletion executor anonymized {len(executed)} account(s)")
        return executed

    async def purge_audit(self) -> int:
        now = self.clock()
        cutoff = self.policy.audit_cutoff(now)
        async with self.sessionmaker() as session:
            purged = await AuditRepository(session).purge_older_than(cutoff)
            await session.commit()
        if purged:
            log.info(f"Purged {purged} audit entries older than {cutoff.isoformat()}")
            await self.recorder.record(AuditEvent(
                action=AuditAction.AUDIT_PURGE,
                actor_user_id=None,
                resource_type="audit",
                details={"purged": purged, "cutoff": cutoff.isoformat()},
            ))
        return purged

    async def run_all(self) -> dict:
        return {
            "inactive_scheduled": [str(u) for u in await self.scan_inactive()],
            "deletions_executed": [str(u) for u in await self.execute_due()],
            "audit_entries_purged": await self.purge_audit(),
        }
