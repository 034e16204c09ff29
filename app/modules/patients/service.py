import uuid
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.base import utcnow
from app.core.errors import NotFoundFailure, ValidationFailure
from app.core.security import Role
from app.modules.access import operations as ops
from app.modules.access.engine import ResourceRef
from app.modules.access.guard import AccessGuard
from app.modules.audit.models import AuditAction
from app.modules.patients.models import Patient, PatientAssignment
from app.modules.patients.repository import PatientRepository, AssignmentRepository
from app.modules.patients.schemas import (PatientUpdate, PatientMedicalUpdate, PatientOut, PatientSummaryOut,
                                          AssignmentOut)
from app.modules.users.repository import UserRepository


def patient_ref(patient: Patient | None, resource_type: str = "patient", resource_id=None,
                author_doctor_id: uuid.UUID | None = None) -> ResourceRef:
    """Reference to something owned by ``patient``; a missing patient yields an ownerless ref."""
    if patient is None:
        return ResourceRef(resource_type, resource_id)
    return ResourceRef(
        resource_type,
        resource_id,
        owner_principal_id=patient.user_id,
        patient_id=patient.id,
        author_doctor_id=author_doctor_id,
    )


def _snapshot(obj, fields) -> dict:
    return {f: getattr(obj, f) for f in fields}


def _writable(patient: Patient | None) -> Patient:
    # anonymized profiles only back retained records and never take new identifiers
    if patient is None or patient.anonymized_at is not None:
        raise NotFoundFailure("Patient not found")
    return patient


class PatientService:
    def __init__(self, session: AsyncSession, guard: AccessGuard):
        self.session = session
        self.guard = guard
        self.repo = PatientRepository(session)
        self.assignments = AssignmentRepository(session)

    def view(self, patient: Patient) -> PatientSummaryOut:
        if self.guard.principal.role is Role.SECRETARY:
            return PatientSummaryOut.model_validate(patient)
        return PatientOut.model_validate(patient)

    async def list(self, limit: int = 50, offset: int = 0) -> Sequence[Patient]:
        principal = await self.guard.require(ops.PATIENTS_LIST)
        doctor_id = principal.user_id if principal.role is Role.DOCTOR else None
        return await self.repo.list(doctor_id=doctor_id, limit=limit, offset=offset)

    async def get(self, patient_id: uuid.UUID) -> Patient:
        patient = await self.repo.get(patient_id)
        ref = patient_ref(patient, resource_id=patient_id)
        principal = await self.guard.require(ops.PATIENTS_READ, ref)
        if not patient:
            raise NotFoundFailure("Patient not found")
        if principal.role is not Role.SECRETARY:
            self.guard.accessed(ops.PATIENTS_READ, ref)
        return patient

    async def update(self, patient_id: uuid.UUID, payload: PatientUpdate) -> Patient:
        return await self._modify(ops.PATIENTS_UPDATE, patient_id, payload.model_dump(exclude_unset=True))

    async def update_medical(self, patient_id: uuid.UUID, payload: PatientMedicalUpdate) -> Patient:
        return await self._modify(ops.PATIENTS_MEDICAL_UPDATE, patient_id, payload.model_dump(exclude_unset=True))

    async def _modify(self, operation, patient_id: uuid.UUID, data: dict) -> Patient:
        patient = await self.repo.get(patient_id)
        principal = await self.guard.require(operation, patient_ref(patient, resource_id=patient_id))
        patient = _writable(patient)
        before = _snapshot(patient, data)
        await self.repo.update(patient, **data)
        await self.session.commit()
        self.guard.audit.defer(AuditAction.DATA_MODIFICATION, principal.user_id, resource_type="patient",
                               resource_id=patient.id, details={"before": before, "after": data})
        return patient

    async def assign(self, patient_id: uuid.UUID, doctor_id: uuid.UUID) -> PatientAssignment:
        patient = await self.repo.get(patient_id)
        principal = await self.guard.require(ops.PATIENTS_ASSIGN, patient_ref(patient, resource_id=patient_id))
        patient = _writable(patient)
        doctor = await UserRepository(self.session).get(doctor_id)
        if not doctor or doctor.role != Role.DOCTOR.value:
            raise ValidationFailure("Invalid doctor", errors=[{"field": "doctor_id", "message": "not a doctor"}])

        current = await self.assignments.active(patient.id)
        if current and current.doctor_id == doctor_id:
            return current
        now = utcnow()
        if current:
            await self.assignments.end(current, now)
        assignment = await self.assignments.start(patient.id, doctor_id, principal.user_id, now)
        await self.session.commit()
        self.guard.audit.defer(
            AuditAction.DATA_MODIFICATION, principal.user_id, resource_type="patient_assignment",
            resource_id=patient.id,
            details={"before": {"doctor_id": str(current.doctor_id)} if current else None,
                     "after": {"doctor_id": str(doctor_id)}},
        )
        return assignment

    async def unassign(self, patient_id: uuid.UUID) -> PatientAssignment:
        patient = await self.repo.get(patient_id)
        principal = await self.guard.require(ops.PATIENTS_ASSIGN, patient_ref(patient, resource_id=patient_id))
        if not patient:
            raise NotFoundFailure("Patient not found")
        current = await self.assignments.active(patient.id)
        if not current:
            raise NotFoundFailure("Patient has no assigned doctor")
        await self.assignments.end(current, utcnow())
        await self.session.commit()
        self.guard.audit.defer(AuditAction.DATA_MODIFICATION, principal.user_id, resource_type="patient_assignment",
                               resource_id=patient.id,
                               details={"before": {"doctor_id": str(current.doctor_id)}, "after": None})
        return current

    async def assignment_history(self, patient_id: uuid.UUID) -> Sequence[PatientAssignment]:
        patient = await self.repo.get(patient_id)
        ref = patient_ref(patient, resource_type="patient_assignment", resource_id=patient_id)
        await self.guard.require(ops.PATIENTS_READ, ref)
        if not patient:
            raise NotFoundFailure("Patient not found")
        return await self.assignments.history(patient.id)

    def assignment_out(self, assignment: PatientAssignment) -> AssignmentOut:
        return AssignmentOut.model_validate(assignment)
