import uuid
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, Field

class PatientUpdate(BaseModel):
    date_of_birth: date | None = None
    cpf: str | None = Field(default=None, max_length=14)
    emergency_contact_name: str | None = Field(default=None, max_length=255)
    emergency_contact_phone: str | None = Field(default=None, max_length=32)
    insurance_provider: str | None = Field(default=None, max_length=120)
    insurance_number: str | None = Field(default=None, max_length=64)

class PatientMedicalUpdate(BaseModel):
    blood_type: str | None = Field(default=None, pattern=r"^(A|B|AB|O)[+-]$")
    medical_history: list[str] | None = None
    allergies: list[str] | None = None
    health_status: str | None = Field(default=None, max_length=64)

class PatientSummaryOut(BaseModel):
    """Administrative fields only; what a secretary is allowed to see."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    date_of_birth: date | None
    cpf: str | None
    emergency_contact_name: str | None
    emergency_contact_phone: str | None
    insurance_provider: str | None
    insurance_number: str | None
    created_at: datetime

class PatientOut(PatientSummaryOut):
    blood_type: str | None
    medical_history: list
    allergies: list
    health_status: str | None

class AssignmentRequest(BaseModel):
    doctor_id: uuid.UUID

class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    patient_id: uuid.UUID
    doctor_id: uuid.UUID
    assigned_by: uuid.UUID | None
    started_at: datetime
    ended_at: datetime | None
