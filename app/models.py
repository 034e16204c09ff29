# Imported for side effects: every table registers itself on Base.metadata.
from app.modules.users.models import User  # noqa: F401
from app.modules.patients.models import Patient, PatientAssignment  # noqa: F401
from app.modules.consent.models import ConsentRecord  # noqa: F401
from app.modules.audit.models import AuditEntry  # noqa: F401
from app.modules.prescriptions.models import Prescription  # noqa: F401
from app.modules.exams.models import Exam  # noqa: F401
from app.modules.mood_entries.models import MoodEntry  # noqa: F401
from app.modules.notes.models import ClinicalNote  # noqa: F401
from app.modules.appointments.models import Appointment  # noqa: F401
