import uuid
from pydantic import BaseModel, ConfigDict

class DoctorOut(BaseModel):
    """Directory card; contact details only, nothing about the doctor's patients."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    phone: str | None
