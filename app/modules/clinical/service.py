"""Shared create/read/update flow for clinical record types.

Each record type subclasses :class:`ClinicalRecordService` and names its
model, output schema and operations. Every path asks the access guard first,
reads are audited as SENSITIVE_DATA_ACCESS and writes as DATA_MODIFICATION
with before/after snapshots. Deletion always ends in ``RetentionBlocked``.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Sequence
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.errors import NotFoundFailure, RetentionBlocked, ValidationFailure
from app.core.security import Principal, Role
from app.modules.access.engine import ResourceRef
from app.modules.access.guard import AccessGuard
from app.modules.access.operations import Operation
from app.modules.audit.models import AuditAction
from app.modules.clinical.repository import ClinicalRepository
from app.modules.patients.models import Patient
from app.modules.patients.repository import PatientRepository, AssignmentRepository
from app.modules.patients.service import patient_ref
from app.modules.retention.policy import is_retained

log = logging.getLogger("clinical")


@dataclass(frozen=True)
class ClinicalOps:
    read: Operation
    create: Operation
    update: Operation
    delete: Operation


class ClinicalRecordService:
    model: type = None
    repository_class: type[ClinicalRepository] = ClinicalRepository
    out_schema: type[BaseModel] = None
    resource_type: str = None
    ops: ClinicalOps = None
    doctor_authored: bool = True

    def __init__(self, session: AsyncSession, guard: AccessGuard):
        self.session = session
        self.guard = guard
        self.repo = self.repository_class(session, self.model)
        self.patients = PatientRepository(session)

    def visible_to(self, principal: Principal, obj) -> bool:
        return True

    async def before_update(self, obj, data: dict) -> None:
        """Hook for type-specific state rules; runs after authorization."""

    def snapshot(self, obj) -> dict:
        return self.out_schema.model_validate(obj).model_dump(mode="json")

    async def _load(self, record_id: uuid.UUID) -> tuple[Any, ResourceRef]:
        obj = await self.repo.get(record_id)
        patient = await self.patients.get(obj.patient_id) if obj else None
        ref = patient_ref(patient, self.resource_type, record_id, author_doctor_id=obj.doctor_id if obj else None)
        return obj, ref

    async def _subject(self, patient_id: uuid.UUID | None) -> Patient | None:
        # patients default to their own record
        principal = self.guard.principal
        if patient_id is None and principal is not None and principal.role is Role.PATIENT:
            return await self.patients.get_by_user(principal.user_id)
        if patient_id is None:
            return None
        return await self.patients.get(patient_id)

    def _require_subject(self, patient: Patient | None, patient_id: uuid.UUID | None) -> Patient:
        if patient_id is None and patient is None:
            raise ValidationFailure("patient_id is required", errors=[{"field": "patient_id", "message": "required"}])
        if patient is None or patient.anonymized_at is not None:
            raise NotFoundFailure("Patient not found")
        return patient

    async def get(self, record_id: uuid.UUID):
        obj, ref = await self._load(record_id)
        principal = await self.guard.require(self.ops.read, ref)
        if obj is None or not self.visible_to(principal, obj):
            raise NotFoundFailure(f"{self.resource_type.replace('_', ' ').capitalize()} not found")
        self.guard.accessed(self.ops.read, ref)
        return obj

    async def list(self, patient_id: uuid.UUID | None = None, limit: int = 50, offset: int = 0) -> Sequence:
        patient = await self._subject(patient_id)
        ref = patient_ref(patient, self.resource_type)
        principal = await self.guard.require(self.ops.read, ref)
        patient = self._require_subject(patient, patient_id)
        rows = [r for r in await self.repo.list_for_patient(patient.id, limit, offset) if self.visible_to(principal, r)]
        self.guard.accessed(self.ops.read, ref, patient_id=str(patient.id), count=len(rows))
        return rows

    async def create(self, payload: BaseModel):
        patient_id = getattr(payload, "patient_id", None)
        patient = await self._subject(patient_id)
        principal = await self.guard.require(self.ops.create, patient_ref(patient, self.resource_type))
        patient = self._require_subject(patient, patient_id)
        doctor_id = await self._author(principal, patient) if self.doctor_authored else None

        obj = await self.repo.create(patient_id=patient.id, doctor_id=doctor_id,
                                     **payload.model_dump(exclude={"patient_id"}))
        await self.session.commit()
        after = self.snapshot(obj)
        self.guard.audit.defer(AuditAction.DATA_MODIFICATION, principal.user_id, resource_type=self.resource_type,
                               resource_id=obj.id, details={"before": None, "after": after})
        return obj

    async def _author(self, principal: Principal, patient: Patient) -> uuid.UUID:
        if principal.role is Role.DOCTOR:
            # the engine already checked the assignment for this request
            return principal.user_id
        assignment = await AssignmentRepository(self.session).active(patient.id)
        if assignment is None:
            raise ValidationFailure("Patient has no assigned doctor",
                                    errors=[{"field": "patient_id", "message": "no assigned doctor"}])
        return assignment.doctor_id

    async def update(self, record_id: uuid.UUID, payload: BaseModel):
        return await self._apply(self.ops.update, record_id, payload.model_dump(exclude_unset=True))

    async def _apply(self, operation: Operation, record_id: uuid.UUID, data: dict):
        obj, ref = await self._load(record_id)
        principal = await self.guard.require(operation, ref)
        if obj is None or not self.visible_to(principal, obj):
            raise NotFoundFailure(f"{self.resource_type.replace('_', ' ').capitalize()} not found")
        await self.before_update(obj, data)
        before = self.snapshot(obj)
        await self.repo.update(obj, **data)
        await self.session.commit()
        self.guard.audit.defer(AuditAction.DATA_MODIFICATION, principal.user_id, resource_type=self.resource_type,
                               resource_id=obj.id,
                               details={"operation": operation.name, "before": before, "after": self.snapshot(obj)})
        return obj

    async def delete(self, record_id: uuid.UUID):
        obj, ref = await self._load(record_id)
        principal = await self.guard.require(self.ops.delete, ref)
        if obj is None:
            raise NotFoundFailure(f"{self.resource_type.replace('_', ' ').capitalize()} not found")
        if is_retained(self.resource_type):
            log.info(f"Refused deletion of {self.resource_type} {record_id} by {principal.user_id}: retained record")
            raise RetentionBlocked(reason="medical_record_retention")
        before = self.snapshot(obj)
        await self.session.delete(obj)
        await self.session.commit()
        self.guard.audit.defer(AuditAction.DATA_DELETION, principal.user_id, resource_type=self.resource_type,
                               resource_id=record_id, details={"before": before})
