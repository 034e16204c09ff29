from app.modules.appointments.models import Appointment
from app.modules.appointments.schemas import AppointmentOut
from app.modules.exams.models import Exam
from app.modules.exams.schemas import ExamOut
from app.modules.mood_entries.models import MoodEntry
from app.modules.mood_entries.schemas import MoodEntryOut
from app.modules.notes.models import ClinicalNote
from app.modules.notes.schemas import NoteOut
from app.modules.prescriptions.models import Prescription
from app.modules.prescriptions.schemas import PrescriptionOut

# (export key, resource type, model, output schema) for every retained medical record type
MEDICAL_RECORDS = (
    ("appointments", "appointment", Appointment, AppointmentOut),
    ("prescriptions", "prescription", Prescription, PrescriptionOut),
    ("exams", "exam", Exam, ExamOut),
    ("mood_entries", "mood_entry", MoodEntry, MoodEntryOut),
    ("clinical_notes", "clinical_note", ClinicalNote, NoteOut),
)
