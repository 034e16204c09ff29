import uuid
from datetime import date, datetime
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field

class ExamCreate(BaseModel):
    patient_id: uuid.UUID
    exam_type: str = Field(..., min_length=1, max_length=80)
    exam_name: str = Field(..., min_length=1, max_length=200)
    exam_date: date | None = None
    notes: str | None = Field(default=None, max_length=2000)

class ExamUpdate(BaseModel):
    exam_date: date | None = None
    status: Literal["requested", "completed", "cancelled"] | None = None
    results: str | None = Field(default=None, max_length=10000)
    file_url: str | None = Field(default=None, max_length=500)
    notes: str | None = Field(default=None, max_length=2000)

class ExamOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    patient_id: uuid.UUID
    doctor_id: uuid.UUID | None
    exam_type: str
    exam_name: str
    exam_date: date | None
    status: str
    results: str | None
    file_url: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime
