import uuid
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, Field

class MoodEntryCreate(BaseModel):
    entry_date: date
    mood_level: int = Field(..., ge=1, le=5)
    stress_level: int | None = Field(default=None, ge=1, le=5)
    anxiety_level: int | None = Field(default=None, ge=1, le=5)
    sleep_hours: float | None = Field(default=None, ge=0, le=24)
    exercise_minutes: int | None = Field(default=None, ge=0, le=1440)
    activities: list[str] = Field(default_factory=list)
    notes: str | None = Field(default=None, max_length=2000)

class MoodEntryUpdate(BaseModel):
    mood_level: int | None = Field(default=None, ge=1, le=5)
    stress_level: int | None = Field(default=None, ge=1, le=5)
    anxiety_level: int | None = Field(default=None, ge=1, le=5)
    sleep_hours: float | None = Field(default=None, ge=0, le=24)
    exercise_minutes: int | None = Field(default=None, ge=0, le=1440)
    activities: list[str] | None = None
    notes: str | None = Field(default=None, max_length=2000)

class MoodEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    patient_id: uuid.UUID
    entry_date: date
    mood_level: int
    stress_level: int | None
    anxiety_level: int | None
    sleep_hours: float | None
    exercise_minutes: int | None
    activities: list[str]
    notes: str | None
    created_at: datetime
    updated_at: datetime

class MoodTrendPoint(BaseModel):
    entry_date: date
    mood_level: int

class MoodStatisticsOut(BaseModel):
    total_entries: int
    average_mood: float | None
    average_stress: float | None
    average_anxiety: float | None
    average_sleep_hours: float | None
    average_exercise_minutes: float | None
    mood_trend: list[MoodTrendPoint]
