import uuid
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field

AppointmentType = Literal["consultation", "follow_up", "evaluation", "emergency"]

class AppointmentCreate(BaseModel):
    patient_id: uuid.UUID
    doctor_id: uuid.UUID
    starts_at: datetime
    duration_minutes: int = Field(default=50, ge=10, le=480)
    appointment_type: AppointmentType = "consultation"
    location: str | None = Field(default=None, max_length=120)
    reason: str | None = Field(default=None, max_length=200)

class AppointmentUpdate(BaseModel):
    starts_at: datetime | None = None
    duration_minutes: int | None = Field(default=None, ge=10, le=480)
    status: Literal["scheduled", "confirmed", "completed", "no_show"] | None = None
    appointment_type: AppointmentType | None = None
    location: str | None = Field(default=None, max_length=120)
    reason: str | None = Field(default=None, max_length=200)

class AppointmentCancel(BaseModel):
    reason: str = Field(..., min_length=3, max_length=500)

class AppointmentClinicalUpdate(BaseModel):
    notes: str | None = Field(default=None, max_length=20000)
    symptoms: str | None = Field(default=None, max_length=5000)
    diagnosis: str | None = Field(default=None, max_length=5000)
    treatment: str | None = Field(default=None, max_length=5000)

class AppointmentAdminOut(BaseModel):
    """Allow-listed scheduling fields; the only view a secretary gets."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    patient_id: uuid.UUID
    doctor_id: uuid.UUID | None
    starts_at: datetime
    ends_at: datetime
    duration_minutes: int
    status: str
    appointment_type: str
    location: str | None
    reason: str | None
    cancelled_at: datetime | None
    cancellation_reason: str | None
    created_at: datetime
    updated_at: datetime

class AppointmentOut(AppointmentAdminOut):
    notes: str | None
    symptoms: str | None
    diagnosis: str | None
    treatment: str | None
