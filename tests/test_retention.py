from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from app.core.base import utcnow
from app.core.config import Settings
from app.core.passwords import UNUSABLE_PASSWORD
from app.core.security import Role
from app.modules.audit.models import AuditAction
from app.modules.audit.service import AuditEvent
from app.modules.patients.models import Patient
from app.modules.prescriptions.models import Prescription
from app.modules.retention.policy import (Disposition, MEDICAL_RECORD_TYPES, RetentionPolicy, is_retained,
                                          on_deletion_request, years_before)
from app.modules.retention.service import RetentionService
from app.modules.users.models import User


class RecordingNotifier:
    def __init__(self):
        self.sent: list[dict] = []

    async def notify(self, recipient: str, subject: str, body: str, meta: dict | None = None) -> None:
        self.sent.append({"recipient": recipient, "subject": subject, "body": body, "meta": meta or {}})


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def retention(application, notifier) -> RetentionService:
    return RetentionService(application.state.db.sessionmaker, application.state.audit, notifier,
                            RetentionPolicy(), clock=utcnow)


class TestPolicy:
    @pytest.mark.parametrize("resource_type", sorted(MEDICAL_RECORD_TYPES))
    def test_medical_records_outrank_deletion(self, resource_type):
        assert on_deletion_request(resource_type) is Disposition.RETAIN
        assert is_retained(resource_type)

    def test_accounts_are_anonymized(self):
        assert on_deletion_request("user") is Disposition.ANONYMIZE
        assert on_deletion_request("patient") is Disposition.ANONYMIZE

    def test_audit_retention_floor(self):
        with pytest.raises(ValueError):
            RetentionPolicy(audit_years=4)
        with pytest.raises(ValidationError):
            Settings(AUDIT_RETENTION_YEARS=3)

    def test_deletion_date_is_after_grace_period(self):
        now = utcnow()
        assert RetentionPolicy(grace_days=30).deletion_date(now) == now + timedelta(days=30)

    def test_audit_cutoff_counts_calendar_years(self):
        now = datetime(2029, 3, 1, 12, 0, tzinfo=timezone.utc)
        cutoff = RetentionPolicy().audit_cutoff(now)
        assert cutoff == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        # five calendar years spanning a leap day are longer than 5 * 365 days
        assert now - cutoff == timedelta(days=365 * 5 + 1)

    def test_leap_day_falls_back_to_february_28(self):
        assert years_before(datetime(2028, 2, 29, tzinfo=timezone.utc), 5) == datetime(2023, 2, 28, tzinfo=timezone.utc)


class TestDeletionExecutor:
    async def test_due_account_is_anonymized_and_records_kept(self, retention, factory):
        doctor = await factory.user(Role.DOCTOR)
        user, patient = await factory.patient(deletion_scheduled=True, deletion_date=utcnow() - timedelta(days=1),
                                              deletion_reason="user_request")
        prescription = await factory.prescription(patient, doctor)

        assert await retention.execute_due() == [user.id]

        account = await factory.reload(User, user.id)
        assert account.email.startswith("deleted-")
        assert account.password_hash == UNUSABLE_PASSWORD
        assert account.anonymized_at is not None
        assert account.token_generation == 1
        profile = await factory.reload(Patient, patient.id)
        assert profile.cpf is None
        assert profile.medical_history == ["anxiety"]
        kept = await factory.reload(Prescription, prescription.id)
        assert kept.patient_id == patient.id
        assert kept.medications == prescription.medications

        [entry] = await factory.audit(AuditAction.ACCOUNT_DELETION_EXECUTED.value)
        assert entry.resource_id == str(user.id)
        assert entry.details["retained_medical_records"]["prescription"] == 1

    async def test_executor_is_idempotent(self, retention, factory):
        await factory.patient(deletion_scheduled=True, deletion_date=utcnow() - timedelta(days=1))
        assert len(await retention.execute_due()) == 1
        assert await retention.execute_due() == []
        assert len(await factory.audit(AuditAction.ACCOUNT_DELETION_EXECUTED.value)) == 1

    async def test_grace_period_is_respected(self, retention, factory):
        await factory.patient(deletion_scheduled=True, deletion_date=utcnow() + timedelta(days=10))
        assert await retention.execute_due() == []


class TestInactiveScan:
    async def test_inactive_account_is_scheduled_and_notified(self, retention, factory, notifier):
        user = await factory.user(Role.PATIENT, last_login_at=utcnow() - timedelta(days=800))
        await factory.user(Role.PATIENT, last_login_at=utcnow() - timedelta(days=3))

        assert await retention.scan_inactive() == [user.id]
        assert [n["recipient"] for n in notifier.sent] == [user.email]
        account = await factory.reload(User, user.id)
        assert account.deletion_scheduled
        assert account.deletion_reason == "inactivity"

        # second pass: nothing new, no second notice
        assert await retention.scan_inactive() == []
        assert len(notifier.sent) == 1

    async def test_admins_are_never_scheduled(self, retention, factory):
        await factory.user(Role.ADMIN, last_login_at=utcnow() - timedelta(days=2000))
        assert await retention.scan_inactive() == []


class TestAuditPurge:
    async def test_only_entries_past_retention_are_removed(self, retention, application, factory):
        recorder = application.state.audit
        await recorder.record(AuditEvent(action=AuditAction.LOGIN, actor_user_id=None,
                                         occurred_at=utcnow() - timedelta(days=365 * 5 + 10)))
        await recorder.record(AuditEvent(action=AuditAction.LOGOUT, actor_user_id=None,
                                         occurred_at=utcnow() - timedelta(days=365 * 4)))

        assert await retention.purge_audit() == 1
        remaining = [e.action for e in await factory.audit()]
        assert "LOGIN" not in remaining
        assert "LOGOUT" in remaining
        assert "AUDIT_PURGE" in remaining

        assert await retention.purge_audit() == 0

    async def test_entries_inside_five_calendar_years_survive(self, retention, application, factory):
        recorder = application.state.audit
        now = utcnow()
        await recorder.record(AuditEvent(action=AuditAction.LOGIN, actor_user_id=None,
                                         occurred_at=now - timedelta(days=365 * 5, hours=12)))
        await recorder.record(AuditEvent(action=AuditAction.LOGOUT, actor_user_id=None,
                                         occurred_at=years_before(now, 5) - timedelta(hours=1)))

        assert await retention.purge_audit() == 1
        remaining = [e.action for e in await factory.audit()]
        assert "LOGIN" in remaining
        assert "LOGOUT" not in remaining

    async def test_run_all(self, retention):
        summary = await retention.run_all()
        assert summary == {"inactive_scheduled": [], "deletions_executed": [], "audit_entries_purged": 0}
