import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.paging import OffsetPage, offset_page
from app.core.responses import Envelope, ok
from app.modules.access.guard import AccessGuard, get_guard
from app.modules.doctors.schemas import DoctorOut
from app.modules.doctors.service import DoctorService
from app.modules.patients.schemas import PatientOut

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session), guard: AccessGuard = Depends(get_guard)) -> DoctorService:
    return DoctorService(session, guard)

@router.get("", response_model=Envelope[list[DoctorOut]])
async def list_doctors(page: OffsetPage = Depends(offset_page), service: DoctorService = Depends(svc)):
    return ok([DoctorOut.model_validate(d) for d in await service.list(page.limit, page.offset)])

@router.get("/{doctor_id}", response_model=Envelope[DoctorOut])
async def get_doctor(doctor_id: uuid.UUID, service: DoctorService = Depends(svc)):
    return ok(DoctorOut.model_validate(await service.get(doctor_id)))

@router.get("/{doctor_id}/patients", response_model=Envelope[list[PatientOut]])
async def doctor_patients(doctor_id: uuid.UUID, page: OffsetPage = Depends(offset_page),
                          service: DoctorService = Depends(svc)):
    rows = await service.patients(doctor_id, page.limit, page.offset)
    return ok([PatientOut.model_validate(p) for p in rows])
