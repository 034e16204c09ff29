from app.modules.access import operations as ops
from app.modules.clinical.service import ClinicalRecordService, ClinicalOps
from app.modules.exams.models import Exam
from app.modules.exams.schemas import ExamOut

class ExamService(ClinicalRecordService):
    model = Exam
    out_schema = ExamOut
    resource_type = "exam"
    ops = ClinicalOps(read=ops.EXAMS_READ, create=ops.EXAMS_CREATE, update=ops.EXAMS_UPDATE, delete=ops.EXAMS_DELETE)
