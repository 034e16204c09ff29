import uuid
from datetime import datetime, timedelta
from app.core.base import utcnow
from app.core.errors import ConflictFailure, ValidationFailure
from app.core.security import Role
from app.modules.access import operations as ops
from app.modules.appointments.models import Appointment
from app.modules.appointments.repository import AppointmentRepository, FREE_STATUSES
from app.modules.appointments.schemas import (AppointmentCreate, AppointmentOut, AppointmentAdminOut,
                                              AppointmentCancel, AppointmentClinicalUpdate)
from app.modules.audit.models import AuditAction
from app.modules.clinical.service import ClinicalRecordService, ClinicalOps
from app.modules.patients.service import patient_ref
from app.modules.users.repository import UserRepository

SCHEDULING_FIELDS = {"starts_at", "duration_minutes", "status", "appointment_type", "location", "reason",
                     "cancellation_reason"}

VALID_NEXT = {
    "scheduled": {"confirmed", "cancelled", "no_show", "completed"},
    "confirmed": {"completed", "cancelled", "no_show"},
    "no_show": {"scheduled"},
    "completed": set(),
    "cancelled": set(),
}


class AppointmentService(ClinicalRecordService):
    model = Appointment
    repository_class = AppointmentRepository
    out_schema = AppointmentOut
    resource_type = "appointment"
    ops = ClinicalOps(read=ops.APPOINTMENTS_READ, create=ops.APPOINTMENTS_CREATE,
                      update=ops.APPOINTMENTS_UPDATE, delete=ops.APPOINTMENTS_DELETE)

    def view(self, obj: Appointment) -> AppointmentAdminOut:
        if self.guard.principal.role is Role.SECRETARY:
            return AppointmentAdminOut.model_validate(obj)
        return AppointmentOut.model_validate(obj)

    async def _check_slot(self, doctor_id: uuid.UUID, starts_at: datetime, duration: int,
                          exclude_id: uuid.UUID | None = None) -> datetime:
        ends_at = starts_at + timedelta(minutes=duration)
        clash = await self.repo.overlapping(doctor_id, starts_at, ends_at, exclude_id)
        if clash is not None:
            raise ConflictFailure("Doctor already has an appointment in this time slot",
                                  errors=[{"field": "starts_at", "message": f"overlaps appointment {clash.id}"}])
        return ends_at

    async def create(self, payload: AppointmentCreate) -> Appointment:
        patient = await self.patients.get(payload.patient_id)
        principal = await self.guard.require(self.ops.create, patient_ref(patient, self.resource_type))
        patient = self._require_subject(patient, payload.patient_id)
        doctor = await UserRepository(self.session).get(payload.doctor_id)
        if not doctor or doctor.role != Role.DOCTOR.value:
            raise ValidationFailure("Invalid doctor", errors=[{"field": "doctor_id", "message": "not a doctor"}])

        ends_at = await self._check_slot(doctor.id, payload.starts_at, payload.duration_minutes)
        obj = await self.repo.create(
            patient_id=patient.id,
            doctor_id=doctor.id,
            starts_at=payload.starts_at,
            ends_at=ends_at,
            duration_minutes=payload.duration_minutes,
            appointment_type=payload.appointment_type,
            location=payload.location,
            reason=payload.reason,
            status="scheduled",
            created_by=principal.user_id,
        )
        await self.session.commit()
        self.guard.audit.defer(AuditAction.DATA_MODIFICATION, principal.user_id, resource_type=self.resource_type,
                               resource_id=obj.id, details={"before": None, "after": self.snapshot(obj)})
        return obj

    async def before_update(self, obj: Appointment, data: dict) -> None:
        status = data.get("status")
        if status and status != obj.status:
            if status not in VALID_NEXT.get(obj.status, set()):
                raise ConflictFailure(f"Invalid status transition {obj.status} -> {status}")
        elif obj.status in ("cancelled", "completed") and SCHEDULING_FIELDS & data.keys():
            # clinical fields stay editable after the visit
            raise ConflictFailure(f"Appointment is {obj.status}")
        reoccupies = obj.status in FREE_STATUSES and status is not None and status not in FREE_STATUSES
        if reoccupies or "starts_at" in data or "duration_minutes" in data:
            starts_at = data.get("starts_at") or obj.starts_at
            duration = data.get("duration_minutes") or obj.duration_minutes
            data["ends_at"] = await self._check_slot(obj.doctor_id, starts_at, duration, exclude_id=obj.id)

    async def cancel(self, record_id: uuid.UUID, payload: AppointmentCancel) -> Appointment:
        return await self._apply(ops.APPOINTMENTS_CANCEL, record_id, {
            "status": "cancelled",
            "cancelled_at": utcnow(),
            "cancelled_by": self.guard.principal.user_id if self.guard.principal else None,
            "cancellation_reason": payload.reason,
        })

    async def update_clinical(self, record_id: uuid.UUID, payload: AppointmentClinicalUpdate) -> Appointment:
        return await self._apply(ops.APPOINTMENTS_CLINICAL_UPDATE, record_id, payload.model_dump(exclude_unset=True))
