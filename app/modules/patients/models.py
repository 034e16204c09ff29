import uuid
from datetime import date, datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, JSON, Date, Index
from app.core.base import Base, TimestampedMixin

class Patient(Base, TimestampedMixin):
    user_id: Mapped[uuid.UUID] = mapped_column(unique=True, index=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    cpf: Mapped[str | None] = mapped_column(String(14), nullable=True)
    emergency_contact_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    emergency_contact_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    insurance_provider: Mapped[str | None] = mapped_column(String(120), nullable=True)
    insurance_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # medical-sensitive
    blood_type: Mapped[str | None] = mapped_column(String(4), nullable=True)
    medical_history: Mapped[list] = mapped_column(JSON, default=list)
    allergies: Mapped[list] = mapped_column(JSON, default=list)
    health_status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    anonymized_at: Mapped[datetime | None] = mapped_column(nullable=True)


class PatientAssignment(Base, TimestampedMixin):
    """Doctor-patient assignment history; the active row has no ``ended_at``."""
    __tablename__ = "patient_assignment"
    __table_args__ = (Index("ix_assignment_patient_active", "patient_id", "ended_at"),)

    patient_id: Mapped[uuid.UUID] = mapped_column(index=True)
    doctor_id: Mapped[uuid.UUID] = mapped_column(index=True)
    assigned_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    started_at: Mapped[datetime] = mapped_column()
    ended_at: Mapped[datetime | None] = mapped_column(nullable=True)
