from app.core.security import Principal, Role
from app.modules.access import operations as ops
from app.modules.clinical.service import ClinicalRecordService, ClinicalOps
from app.modules.notes.models import ClinicalNote
from app.modules.notes.schemas import NoteOut

class NoteService(ClinicalRecordService):
    model = ClinicalNote
    out_schema = NoteOut
    resource_type = "clinical_note"
    ops = ClinicalOps(read=ops.NOTES_READ, create=ops.NOTES_CREATE, update=ops.NOTES_UPDATE, delete=ops.NOTES_DELETE)

    def visible_to(self, principal: Principal, obj: ClinicalNote) -> bool:
        # a doctor's working notes stay private unless shared with the patient
        return principal.role is not Role.PATIENT or obj.is_visible_to_patient
