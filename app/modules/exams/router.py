import uuid
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.paging import OffsetPage, offset_page
from app.core.responses import Envelope, ok
from app.modules.access.guard import AccessGuard, get_guard
from app.modules.exams.schemas import ExamCreate, ExamUpdate, ExamOut
from app.modules.exams.service import ExamService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session), guard: AccessGuard = Depends(get_guard)) -> ExamService:
    return ExamService(session, guard)

@router.post("", response_model=Envelope[ExamOut], status_code=status.HTTP_201_CREATED)
async def create_exam(payload: ExamCreate, service: ExamService = Depends(svc)):
    return ok(ExamOut.model_validate(await service.create(payload)), "Exam created")

@router.get("", response_model=Envelope[list[ExamOut]])
async def list_exams(patient_id: uuid.UUID | None = Query(default=None), page: OffsetPage = Depends(offset_page),
                     service: ExamService = Depends(svc)):
    rows = await service.list(patient_id, page.limit, page.offset)
    return ok([ExamOut.model_validate(r) for r in rows])

@router.get("/{exam_id}", response_model=Envelope[ExamOut])
async def get_exam(exam_id: uuid.UUID, service: ExamService = Depends(svc)):
    return ok(ExamOut.model_validate(await service.get(exam_id)))

@router.patch("/{exam_id}", response_model=Envelope[ExamOut])
async def update_exam(exam_id: uuid.UUID, payload: ExamUpdate, service: ExamService = Depends(svc)):
    return ok(ExamOut.model_validate(await service.update(exam_id, payload)), "Exam updated")

@router.delete("/{exam_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_exam(exam_id: uuid.UUID, service: ExamService = Depends(svc)):
    await service.delete(exam_id)
