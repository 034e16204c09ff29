import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.paging import OffsetPage, offset_page
from app.core.responses import Envelope, ok
from app.modules.access.guard import AccessGuard, get_guard
from app.modules.patients.schemas import (PatientUpdate, PatientMedicalUpdate, PatientOut, PatientSummaryOut,
                                          AssignmentRequest, AssignmentOut)
from app.modules.patients.service import PatientService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session), guard: AccessGuard = Depends(get_guard)) -> PatientService:
    return PatientService(session, guard)

@router.get("", response_model=Envelope[list[PatientSummaryOut]])
async def list_patients(page: OffsetPage = Depends(offset_page), service: PatientService = Depends(svc)):
    rows = await service.list(page.limit, page.offset)
    return ok([PatientSummaryOut.model_validate(p) for p in rows])

# response shape depends on the caller role, so no response_model here
@router.get("/{patient_id}")
async def get_patient(patient_id: uuid.UUID, service: PatientService = Depends(svc)):
    return ok(service.view(await service.get(patient_id)))

@router.patch("/{patient_id}")
async def update_patient(patient_id: uuid.UUID, payload: PatientUpdate, service: PatientService = Depends(svc)):
    return ok(service.view(await service.update(patient_id, payload)), "Patient updated")

@router.patch("/{patient_id}/medical", response_model=Envelope[PatientOut])
async def update_patient_medical(patient_id: uuid.UUID, payload: PatientMedicalUpdate,
                                 service: PatientService = Depends(svc)):
    return ok(PatientOut.model_validate(await service.update_medical(patient_id, payload)), "Patient updated")

@router.put("/{patient_id}/assignment", response_model=Envelope[AssignmentOut])
async def assign_doctor(patient_id: uuid.UUID, payload: AssignmentRequest, service: PatientService = Depends(svc)):
    return ok(service.assignment_out(await service.assign(patient_id, payload.doctor_id)), "Doctor assigned")

@router.delete("/{patient_id}/assignment", response_model=Envelope[AssignmentOut])
async def unassign_doctor(patient_id: uuid.UUID, service: PatientService = Depends(svc)):
    return ok(service.assignment_out(await service.unassign(patient_id)), "Doctor unassigned")

@router.get("/{patient_id}/assignments", response_model=Envelope[list[AssignmentOut]])
async def assignment_history(patient_id: uuid.UUID, service: PatientService = Depends(svc)):
    return ok([service.assignment_out(a) for a in await service.assignment_history(patient_id)])
