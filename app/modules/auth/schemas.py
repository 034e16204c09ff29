from datetime import date, datetime
from pydantic import BaseModel, EmailStr, Field
from app.modules.users.schemas import UserOut

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    name: str = Field(..., min_length=2, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    date_of_birth: date | None = None
    cpf: str | None = Field(default=None, max_length=14)
    consents: list[str] = Field(default_factory=list)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=1, max_length=128)

class TokenOut(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserOut
    deletion_cancelled: bool = False
