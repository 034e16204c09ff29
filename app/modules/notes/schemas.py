import uuid
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field

NoteType = Literal["session", "evaluation", "follow_up", "other"]

class NoteCreate(BaseModel):
    patient_id: uuid.UUID
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=20000)
    note_type: NoteType = "session"
    is_visible_to_patient: bool = False

class NoteUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    content: str | None = Field(default=None, min_length=1, max_length=20000)
    note_type: NoteType | None = None
    is_visible_to_patient: bool | None = None

class NoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    patient_id: uuid.UUID
    doctor_id: uuid.UUID | None
    title: str
    content: str
    note_type: str
    is_visible_to_patient: bool
    created_at: datetime
    updated_at: datetime
