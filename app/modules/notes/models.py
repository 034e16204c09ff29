from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Boolean
from app.core.base import Base
from app.modules.clinical.models import ClinicalRecordMixin

class ClinicalNote(Base, ClinicalRecordMixin):
    __tablename__ = "clinical_note"

    title: Mapped[str] = mapped_column(String(200))
    content: Mapped[str] = mapped_column(Text)
    note_type: Mapped[str] = mapped_column(String(32), default="session")  # session | evaluation | follow_up | other
    is_visible_to_patient: Mapped[bool] = mapped_column(Boolean, default=False)
