import uuid
from datetime import date, datetime
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field

class MedicationItem(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    dosage: str = Field(..., min_length=1, max_length=100)
    frequency: str = Field(..., min_length=1, max_length=100)
    duration: str | None = Field(default=None, max_length=100)
    instructions: str | None = Field(default=None, max_length=500)

class PrescriptionCreate(BaseModel):
    patient_id: uuid.UUID
    medications: list[MedicationItem] = Field(..., min_length=1)
    instructions: str | None = Field(default=None, max_length=2000)
    valid_until: date | None = None

class PrescriptionUpdate(BaseModel):
    medications: list[MedicationItem] | None = Field(default=None, min_length=1)
    instructions: str | None = Field(default=None, max_length=2000)
    valid_until: date | None = None
    status: Literal["active", "completed"] | None = None

class PrescriptionDiscontinue(BaseModel):
    reason: str = Field(..., min_length=3, max_length=500)

class PrescriptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    patient_id: uuid.UUID
    doctor_id: uuid.UUID | None
    medications: list[MedicationItem]
    instructions: str | None
    status: str
    valid_until: date | None
    discontinued_at: datetime | None
    discontinued_reason: str | None
    created_at: datetime
    updated_at: datetime
