import uuid
from sqlalchemy.orm import Mapped, mapped_column
from app.core.base import TimestampedMixin

class ClinicalRecordMixin(TimestampedMixin):
    """Every clinical record belongs to exactly one patient; doctor-authored
    ones also name the doctor who was assigned when it was created."""
    patient_id: Mapped[uuid.UUID] = mapped_column(index=True)
    doctor_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True, index=True)
