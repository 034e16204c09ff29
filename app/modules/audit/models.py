import uuid
from enum import Enum
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, JSON
from app.core.base import Base, AppendOnlyMixin


class AuditAction(str, Enum):
    DATA_ACCESS = "DATA_ACCESS"
    SENSITIVE_DATA_ACCESS = "SENSITIVE_DATA_ACCESS"
    DATA_MODIFICATION = "DATA_MODIFICATION"
    DATA_DELETION = "DATA_DELETION"
    DATA_EXPORT = "DATA_EXPORT"
    CONSENT_GRANTED = "CONSENT_GRANTED"
    CONSENT_REVOKED = "CONSENT_REVOKED"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    FAILED_LOGIN = "FAILED_LOGIN"
    FAILED_ACCESS = "FAILED_ACCESS"
    ACCESS_DENIED = "ACCESS_DENIED"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"
    ROLE_CHANGE = "ROLE_CHANGE"
    ACCOUNT_DELETION_REQUESTED = "ACCOUNT_DELETION_REQUESTED"
    ACCOUNT_DELETION_CANCELLED = "ACCOUNT_DELETION_CANCELLED"
    ACCOUNT_DELETION_EXECUTED = "ACCOUNT_DELETION_EXECUTED"
    AUDIT_PURGE = "AUDIT_PURGE"


class AuditEntry(Base, AppendOnlyMixin):
    # who (null for unauthenticated attempts)
    actor_user_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True, index=True)
    # what happened
    action: Mapped[str] = mapped_column(String(48), index=True)
    resource_type: Mapped[str | None] = mapped_column(String(48), nullable=True)  # prescription | exam | consent | user | ...
    resource_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    client_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(256), nullable=True)
    details: Mapped[dict] = mapped_column(JSON, default=dict)
