from datetime import date
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, Float, Text, Date, JSON
from app.core.base import Base
from app.modules.clinical.models import ClinicalRecordMixin

class MoodEntry(Base, ClinicalRecordMixin):
    """Patient self-report; ``doctor_id`` stays empty."""
    __tablename__ = "mood_entry"

    entry_date: Mapped[date] = mapped_column(Date)
    mood_level: Mapped[int] = mapped_column(Integer)  # 1..5
    stress_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    anxiety_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sleep_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    exercise_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    activities: Mapped[list] = mapped_column(JSON, default=list)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
