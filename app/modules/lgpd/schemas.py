from datetime import datetime
from pydantic import BaseModel, Field

class DeletionRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=200)

class DeletionScheduleOut(BaseModel):
    scheduled: bool
    already_scheduled: bool = False
    deletion_date: datetime | None
    grace_period_days: int
    retained: dict[str, str]

class CancelDeletionOut(BaseModel):
    cancelled: bool
