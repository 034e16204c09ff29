import uuid
from datetime import datetime
from typing import Any
from pydantic import BaseModel, ConfigDict

class AuditEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    seq: int
    id: uuid.UUID
    actor_user_id: uuid.UUID | None
    action: str
    resource_type: str | None
    resource_id: str | None
    client_ip: str | None
    user_agent: str | None
    details: dict[str, Any]
    created_at: datetime
