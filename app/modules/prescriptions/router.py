import uuid
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.paging import OffsetPage, offset_page
from app.core.responses import Envelope, ok
from app.modules.access.guard import AccessGuard, get_guard
from app.modules.prescriptions.schemas import (PrescriptionCreate, PrescriptionUpdate, PrescriptionDiscontinue,
                                               PrescriptionOut)
from app.modules.prescriptions.service import PrescriptionService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session), guard: AccessGuard = Depends(get_guard)) -> PrescriptionService:
    return PrescriptionService(session, guard)

@router.post("", response_model=Envelope[PrescriptionOut], status_code=status.HTTP_201_CREATED)
async def create_prescription(payload: PrescriptionCreate, service: PrescriptionService = Depends(svc)):
    return ok(PrescriptionOut.model_validate(await service.create(payload)), "Prescription created")

@router.get("", response_model=Envelope[list[PrescriptionOut]])
async def list_prescriptions(patient_id: uuid.UUID | None = Query(default=None),
                             page: OffsetPage = Depends(offset_page), service: PrescriptionService = Depends(svc)):
    rows = await service.list(patient_id, page.limit, page.offset)
    return ok([PrescriptionOut.model_validate(r) for r in rows])

@router.get("/{prescription_id}", response_model=Envelope[PrescriptionOut])
async def get_prescription(prescription_id: uuid.UUID, service: PrescriptionService = Depends(svc)):
    return ok(PrescriptionOut.model_validate(await service.get(prescription_id)))

@router.patch("/{prescription_id}", response_model=Envelope[PrescriptionOut])
async def update_prescription(prescription_id: uuid.UUID, payload: PrescriptionUpdate,
                              service: PrescriptionService = Depends(svc)):
    return ok(PrescriptionOut.model_validate(await service.update(prescription_id, payload)), "Prescription updated")

@router.post("/{prescription_id}/discontinue", response_model=Envelope[PrescriptionOut])
async def discontinue_prescription(prescription_id: uuid.UUID, payload: PrescriptionDiscontinue,
                                   service: PrescriptionService = Depends(svc)):
    obj = await service.discontinue(prescription_id, payload.reason)
    return ok(PrescriptionOut.model_validate(obj), "Prescription discontinued")

@router.delete("/{prescription_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_prescription(prescription_id: uuid.UUID, service: PrescriptionService = Depends(svc)):
    await service.delete(prescription_id)
