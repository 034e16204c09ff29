import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Boolean, Index
from app.core.base import Base, AppendOnlyMixin

class ConsentRecord(Base, AppendOnlyMixin):
    """One grant or revoke event. Rows are never updated; the newest row per
    (user, category) is the current state."""
    __table_args__ = (Index("ix_consent_user_category", "user_id", "category"),)

    user_id: Mapped[uuid.UUID] = mapped_column()
    category: Mapped[str] = mapped_column(String(64))  # data_processing | sensitive_health_data | marketing_communications | ...
    granted: Mapped[bool] = mapped_column(Boolean)
    granted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(nullable=True)
    client_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(256), nullable=True)
    policy_version: Mapped[str] = mapped_column(String(32))
    language: Mapped[str] = mapped_column(String(10), default="pt-BR")
