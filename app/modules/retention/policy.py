"""What may be deleted, and when.

Statutory retention outranks a data subject's deletion request: medical
records (CFM Resolution 1.821/2007, 20 years) and audit entries (at least 5
years) survive account deletion. The account and patient profile are
anonymized instead of deleted so the retained records stay consistent but
no longer identify anyone.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from app.core.config import Settings


class Disposition(str, Enum):
    DELETE = "delete"
    ANONYMIZE = "anonymize"
    RETAIN = "retain"


MEDICAL_RECORD_TYPES = frozenset({"prescription", "exam", "mood_entry", "clinical_note", "appointment"})

_ON_DELETION_REQUEST = {
    "user": Disposition.ANONYMIZE,
    "patient": Disposition.ANONYMIZE,
    "consent": Disposition.RETAIN,  # proof of what was consented to
    "audit": Disposition.RETAIN,
    **{t: Disposition.RETAIN for t in MEDICAL_RECORD_TYPES},
}


def on_deletion_request(resource_type: str) -> Disposition:
    return _ON_DELETION_REQUEST.get(resource_type, Disposition.DELETE)


def is_retained(resource_type: str) -> bool:
    return on_deletion_request(resource_type) is not Disposition.DELETE


def years_before(moment: datetime, years: int) -> datetime:
    """Same calendar day ``years`` earlier; Feb 29 falls back to Feb 28."""
    try:
        return moment.replace(year=moment.year - years)
    except ValueError:
        return moment.replace(year=moment.year - years, day=28)


@dataclass(frozen=True)
class RetentionPolicy:
    medical_years: int = 20
    audit_years: int = 5
    grace_days: int = 30
    inactive_days: int = 730

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetentionPolicy":
        return cls(
            medical_years=settings.MEDICAL_RETENTION_YEARS,
            audit_years=settings.AUDIT_RETENTION_YEARS,
            grace_days=settings.DELETION_GRACE_DAYS,
            inactive_days=settings.INACTIVE_ACCOUNT_DAYS,
        )

    def __post_init__(self):
        if self.audit_years < 5:
            raise ValueError("audit entries must be kept for at least 5 years")

    def deletion_date(self, requested_at: datetime) -> datetime:
        return requested_at + timedelta(days=self.grace_days)

    def inactive_cutoff(self, now: datetime) -> datetime:
        return now - timedelta(days=self.inactive_days)

    def audit_cutoff(self, now: datetime) -> datetime:
        return years_before(now, self.audit_years)

    def describe(self) -> dict:
        return {
            "medical_records": f"{self.medical_years} years (CFM Resolution 1.821/2007)",
            "audit_logs": f"{self.audit_years} years",
            "account_deletion_grace_period": f"{self.grace_days} days",
            "inactive_account_threshold": f"{self.inactive_days} days",
        }
