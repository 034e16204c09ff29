import uuid
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.paging import OffsetPage, offset_page
from app.core.responses import Envelope, ok
from app.modules.access.guard import AccessGuard, get_guard
from app.modules.notes.schemas import NoteCreate, NoteUpdate, NoteOut
from app.modules.notes.service import NoteService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session), guard: AccessGuard = Depends(get_guard)) -> NoteService:
    return NoteService(session, guard)

@router.post("", response_model=Envelope[NoteOut], status_code=status.HTTP_201_CREATED)
async def create_note(payload: NoteCreate, service: NoteService = Depends(svc)):
    return ok(NoteOut.model_validate(await service.create(payload)), "Note created")

@router.get("", response_model=Envelope[list[NoteOut]])
async def list_notes(patient_id: uuid.UUID | None = Query(default=None), page: OffsetPage = Depends(offset_page),
                     service: NoteService = Depends(svc)):
    rows = await service.list(patient_id, page.limit, page.offset)
    return ok([NoteOut.model_validate(r) for r in rows])

@router.get("/{note_id}", response_model=Envelope[NoteOut])
async def get_note(note_id: uuid.UUID, service: NoteService = Depends(svc)):
    return ok(NoteOut.model_validate(await service.get(note_id)))

@router.patch("/{note_id}", response_model=Envelope[NoteOut])
async def update_note(note_id: uuid.UUID, payload: NoteUpdate, service: NoteService = Depends(svc)):
    return ok(NoteOut.model_validate(await service.update(note_id, payload)), "Note updated")

@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(note_id: uuid.UUID, service: NoteService = Depends(svc)):
    await service.delete(note_id)
