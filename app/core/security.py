import uuid
from enum import Enum
from fastapi.security import HTTPBearer
from pydantic import BaseModel

http_bearer = HTTPBearer(auto_error=False)


class Role(str, Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"
    SECRETARY = "secretary"
    ADMIN = "admin"


class Principal(BaseModel):
    user_id: uuid.UUID
    role: Role
