import uuid
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.paging import OffsetPage, offset_page
from app.core.responses import ok
from app.modules.access.guard import AccessGuard, get_guard
from app.modules.appointments.schemas import (AppointmentCreate, AppointmentUpdate, AppointmentCancel,
                                              AppointmentClinicalUpdate)
from app.modules.appointments.service import AppointmentService

# responses are AppointmentOut or the secretary's AppointmentAdminOut depending on the caller
router = APIRouter()

def svc(session: AsyncSession = Depends(get_session), guard: AccessGuard = Depends(get_guard)) -> AppointmentService:
    return AppointmentService(session, guard)

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_appointment(payload: AppointmentCreate, service: AppointmentService = Depends(svc)):
    return ok(service.view(await service.create(payload)), "Appointment scheduled")

@router.get("")
async def list_appointments(patient_id: uuid.UUID | None = Query(default=None),
                            page: OffsetPage = Depends(offset_page), service: AppointmentService = Depends(svc)):
    rows = await service.list(patient_id, page.limit, page.offset)
    return ok([service.view(r) for r in rows])

@router.get("/{appointment_id}")
async def get_appointment(appointment_id: uuid.UUID, service: AppointmentService = Depends(svc)):
    return ok(service.view(await service.get(appointment_id)))

@router.patch("/{appointment_id}")
async def update_appointment(appointment_id: uuid.UUID, payload: AppointmentUpdate,
                             service: AppointmentService = Depends(svc)):
    return ok(service.view(await service.update(appointment_id, payload)), "Appointment updated")

@router.post("/{appointment_id}/cancel")
async def cancel_appointment(appointment_id: uuid.UUID, payload: AppointmentCancel,
                             service: AppointmentService = Depends(svc)):
    return ok(service.view(await service.cancel(appointment_id, payload)), "Appointment cancelled")

@router.patch("/{appointment_id}/clinical")
async def update_appointment_clinical(appointment_id: uuid.UUID, payload: AppointmentClinicalUpdate,
                                      service: AppointmentService = Depends(svc)):
    return ok(service.view(await service.update_clinical(appointment_id, payload)), "Appointment updated")

@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_appointment(appointment_id: uuid.UUID, service: AppointmentService = Depends(svc)):
    await service.delete(appointment_id)
