import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from app.core.security import Role

class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    name: str = Field(..., min_length=2, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    role: Role

class RoleUpdate(BaseModel):
    role: Role

class ProfileUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=255)
    phone: str | None = Field(default=None, max_length=32)

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    name: str
    phone: str | None
    role: Role
    created_at: datetime
    last_login_at: datetime | None
    deletion_scheduled: bool
    deletion_date: datetime | None
