from fastapi import APIRouter, Request
from app.modules.auth.router import router as auth_router
from app.modules.users.router import router as users_router
from app.modules.patients.router import router as patients_router
from app.modules.prescriptions.router import router as prescriptions_router
from app.modules.exams.router import router as exams_router
from app.modules.mood_entries.router import router as mood_entries_router
from app.modules.notes.router import router as notes_router
from app.modules.appointments.router import router as appointments_router
from app.modules.doctors.router import router as doctors_router
from app.modules.lgpd.router import router as lgpd_router
from app.modules.audit.router import router as audit_router
from app.modules.admin.router import router as admin_router

api_router = APIRouter()
api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(users_router, prefix="/users", tags=["users"])
api_router.include_router(patients_router, prefix="/patients", tags=["patients"])
api_router.include_router(prescriptions_router, prefix="/prescriptions", tags=["prescriptions"])
api_router.include_router(exams_router, prefix="/exams", tags=["exams"])
api_router.include_router(mood_entries_router, prefix="/mood-entries", tags=["mood-entries"])
api_router.include_router(notes_router, prefix="/doctor-notes", tags=["doctor-notes"])
api_router.include_router(appointments_router, prefix="/appointments", tags=["appointments"])
api_router.include_router(doctors_router, prefix="/doctors", tags=["doctors"])
api_router.include_router(lgpd_router, prefix="/lgpd", tags=["lgpd"])
api_router.include_router(audit_router, prefix="/admin", tags=["admin"])
api_router.include_router(admin_router, prefix="/admin", tags=["admin"])

@api_router.get("/health", tags=["health"])
async def health(request: Request):
    return {
        "status": "ok",
        "env": request.app.state.settings.ENV,
        "audit_dead_letters": request.app.state.audit.dead_letter.failures,
    }
