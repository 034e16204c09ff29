import uuid
from app.core.base import utcnow
from app.core.errors import ConflictFailure
from app.modules.access import operations as ops
from app.modules.clinical.service import ClinicalRecordService, ClinicalOps
from app.modules.prescriptions.models import Prescription
from app.modules.prescriptions.schemas import PrescriptionOut

class PrescriptionService(ClinicalRecordService):
    model = Prescription
    out_schema = PrescriptionOut
    resource_type = "prescription"
    ops = ClinicalOps(read=ops.PRESCRIPTIONS_READ, create=ops.PRESCRIPTIONS_CREATE,
                      update=ops.PRESCRIPTIONS_UPDATE, delete=ops.PRESCRIPTIONS_DELETE)

    async def before_update(self, obj: Prescription, data: dict) -> None:
        if obj.status == "discontinued":
            raise ConflictFailure("Prescription already discontinued")

    async def discontinue(self, record_id: uuid.UUID, reason: str) -> Prescription:
        """Prescriptions are retained, so they are discontinued rather than deleted."""
        return await self._apply(self.ops.update, record_id, {
            "status": "discontinued",
            "discontinued_at": utcnow(),
            "discontinued_reason": reason,
        })
