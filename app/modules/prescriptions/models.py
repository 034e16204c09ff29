from datetime import date, datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, JSON, Date
from app.core.base import Base
from app.modules.clinical.models import ClinicalRecordMixin

class Prescription(Base, ClinicalRecordMixin):
    medications: Mapped[list] = mapped_column(JSON, default=list)  # [{name, dosage, frequency, duration, instructions}]
    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="active")  # active | completed | discontinued
    valid_until: Mapped[date | None] = mapped_column(Date, nullable=True)
    discontinued_at: Mapped[datetime | None] = mapped_column(nullable=True)
    discontinued_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
