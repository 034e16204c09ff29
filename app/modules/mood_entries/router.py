import uuid
from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.paging import OffsetPage, offset_page
from app.core.responses import Envelope, ok
from app.modules.access.guard import AccessGuard, get_guard
from app.modules.mood_entries.schemas import MoodEntryCreate, MoodEntryUpdate, MoodEntryOut, MoodStatisticsOut
from app.modules.mood_entries.service import MoodEntryService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session), guard: AccessGuard = Depends(get_guard)) -> MoodEntryService:
    return MoodEntryService(session, guard)

@router.post("", response_model=Envelope[MoodEntryOut], status_code=status.HTTP_201_CREATED)
async def create_mood_entry(payload: MoodEntryCreate, service: MoodEntryService = Depends(svc)):
    return ok(MoodEntryOut.model_validate(await service.create(payload)), "Mood entry recorded")

@router.get("", response_model=Envelope[list[MoodEntryOut]])
async def list_mood_entries(patient_id: uuid.UUID | None = Query(default=None),
                            page: OffsetPage = Depends(offset_page), service: MoodEntryService = Depends(svc)):
    rows = await service.list(patient_id, page.limit, page.offset)
    return ok([MoodEntryOut.model_validate(r) for r in rows])

@router.get("/patient/{patient_id}/statistics", response_model=Envelope[MoodStatisticsOut])
async def mood_statistics(patient_id: uuid.UUID, start_date: date | None = Query(default=None),
                          end_date: date | None = Query(default=None), service: MoodEntryService = Depends(svc)):
    return ok(await service.statistics(patient_id, start_date, end_date))

@router.get("/{entry_id}", response_model=Envelope[MoodEntryOut])
async def get_mood_entry(entry_id: uuid.UUID, service: MoodEntryService = Depends(svc)):
    return ok(MoodEntryOut.model_validate(await service.get(entry_id)))

@router.patch("/{entry_id}", response_model=Envelope[MoodEntryOut])
async def update_mood_entry(entry_id: uuid.UUID, payload: MoodEntryUpdate, service: MoodEntryService = Depends(svc)):
    return ok(MoodEntryOut.model_validate(await service.update(entry_id, payload)), "Mood entry updated")

@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_mood_entry(entry_id: uuid.UUID, service: MoodEntryService = Depends(svc)):
    await service.delete(entry_id)
