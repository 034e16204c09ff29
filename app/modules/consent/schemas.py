import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, AliasChoices

class ConsentRequest(BaseModel):
    category: str = Field(..., min_length=1, max_length=64,
                          validation_alias=AliasChoices("category", "consent_type", "consentType"))
    version: str | None = Field(default=None, max_length=32)

class ConsentRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    category: str
    granted: bool
    granted_at: datetime | None
    revoked_at: datetime | None
    policy_version: str
    created_at: datetime

class ConsentSummaryOut(BaseModel):
    category: str
    current_status: str  # granted | revoked
    since: datetime
    history: list[ConsentRecordOut]

class RevokeOut(BaseModel):
    category: str
    revoked: bool
    status: str  # revoked | already_revoked | not_found
    revoked_at: datetime | None = None
