from datetime import date
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Date
from app.core.base import Base
from app.modules.clinical.models import ClinicalRecordMixin

class Exam(Base, ClinicalRecordMixin):
    exam_type: Mapped[str] = mapped_column(String(80))
    exam_name: Mapped[str] = mapped_column(String(200))
    exam_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="requested")  # requested | completed | cancelled
    results: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
