"""Operation descriptors consulted by the access decision engine.

Every handler names the operation it performs; the descriptor says who may
perform it and on what terms. ``allowed_roles=None`` means any authenticated
role (admin is always allowed and does not need to be listed).
"""
from dataclasses import dataclass
from enum import Enum
from app.core.security import Role


class Scope(str, Enum):
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    SELF = "self"
    PATIENT_DATA = "patient_data"
    ADMINISTRATIVE = "administrative"


@dataclass(frozen=True)
class Operation:
    name: str
    scope: Scope
    allowed_roles: frozenset[Role] | None = None
    sensitive: bool = False
    medical: bool = False
    consent_category: str | None = None


def _roles(*roles: Role) -> frozenset[Role]:
    return frozenset(roles)

P, D, S, A = Role.PATIENT, Role.DOCTOR, Role.SECRETARY, Role.ADMIN

# auth / accounts
AUTH_REGISTER = Operation("auth.register", Scope.PUBLIC)
AUTH_LOGIN = Operation("auth.login", Scope.PUBLIC)
AUTH_LOGOUT = Operation("auth.logout", Scope.AUTHENTICATED)
PROFILE_READ = Operation("auth.profile.read", Scope.SELF)
PROFILE_UPDATE = Operation("auth.profile.update", Scope.SELF)
PASSWORD_CHANGE = Operation("auth.password.change", Scope.SELF, sensitive=True)

USERS_CREATE = Operation("users.create", Scope.ADMINISTRATIVE, _roles(A))
USERS_LIST = Operation("users.list", Scope.ADMINISTRATIVE, _roles(A))
USERS_ROLE_CHANGE = Operation("users.role.change", Scope.ADMINISTRATIVE, _roles(A), sensitive=True)

# patients
PATIENTS_LIST = Operation("patients.list", Scope.ADMINISTRATIVE, _roles(D, S))
PATIENTS_READ = Operation("patients.read", Scope.PATIENT_DATA, _roles(P, D, S), sensitive=True)
PATIENTS_UPDATE = Operation("patients.update", Scope.PATIENT_DATA, _roles(P, S))
PATIENTS_MEDICAL_UPDATE = Operation("patients.medical.update", Scope.PATIENT_DATA, _roles(D), sensitive=True, medical=True)
PATIENTS_ASSIGN = Operation("patients.assign", Scope.ADMINISTRATIVE, _roles(S))

# clinical records
PRESCRIPTIONS_READ = Operation("prescriptions.read", Scope.PATIENT_DATA, _roles(P, D), sensitive=True, medical=True)
PRESCRIPTIONS_CREATE = Operation("prescriptions.create", Scope.PATIENT_DATA, _roles(D), sensitive=True, medical=True)
PRESCRIPTIONS_UPDATE = Operation("prescriptions.update", Scope.PATIENT_DATA, _roles(D), sensitive=True, medical=True)
PRESCRIPTIONS_DELETE = Operation("prescriptions.delete", Scope.PATIENT_DATA, _roles(D), sensitive=True, medical=True)

EXAMS_READ = Operation("exams.read", Scope.PATIENT_DATA, _roles(P, D), sensitive=True, medical=True)
EXAMS_CREATE = Operation("exams.create", Scope.PATIENT_DATA, _roles(D), sensitive=True, medical=True)
EXAMS_UPDATE = Operation("exams.update", Scope.PATIENT_DATA, _roles(D), sensitive=True, medical=True)
EXAMS_DELETE = Operation("exams.delete", Scope.PATIENT_DATA, _roles(D), sensitive=True, medical=True)

MOOD_READ = Operation("mood.read", Scope.PATIENT_DATA, _roles(P, D), sensitive=True, medical=True)
MOOD_CREATE = Operation("mood.create", Scope.PATIENT_DATA, _roles(P), sensitive=True, medical=True,
                        consent_category="sensitive_health_data")
MOOD_UPDATE = Operation("mood.update", Scope.PATIENT_DATA, _roles(P), sensitive=True, medical=True,
                        consent_category="sensitive_health_data")
MOOD_DELETE = Operation("mood.delete", Scope.PATIENT_DATA, _roles(P), sensitive=True, medical=True)
MOOD_STATISTICS = Operation("mood.statistics", Scope.PATIENT_DATA, _roles(P, D), sensitive=True, medical=True)

NOTES_READ = Operation("notes.read", Scope.PATIENT_DATA, _roles(P, D), sensitive=True, medical=True)
NOTES_CREATE = Operation("notes.create", Scope.PATIENT_DATA, _roles(D), sensitive=True, medical=True)
NOTES_UPDATE = Operation("notes.update", Scope.PATIENT_DATA, _roles(D), sensitive=True, medical=True)
NOTES_DELETE = Operation("notes.delete", Scope.PATIENT_DATA, _roles(D), sensitive=True, medical=True)

APPOINTMENTS_CREATE = Operation("appointments.create", Scope.ADMINISTRATIVE, _roles(S))
APPOINTMENTS_READ = Operation("appointments.read", Scope.PATIENT_DATA, _roles(P, D, S))
APPOINTMENTS_UPDATE = Operation("appointments.update", Scope.PATIENT_DATA, _roles(S))
APPOINTMENTS_CANCEL = Operation("appointments.cancel", Scope.PATIENT_DATA, _roles(P, D, S))
APPOINTMENTS_DELETE = Operation("appointments.delete", Scope.PATIENT_DATA, _roles(S))
APPOINTMENTS_CLINICAL_UPDATE = Operation("appointments.clinical.update", Scope.PATIENT_DATA, _roles(D),
                                         sensitive=True, medical=True)

# doctors directory
DOCTORS_LIST = Operation("doctors.list", Scope.AUTHENTICATED)
DOCTORS_READ = Operation("doctors.read", Scope.AUTHENTICATED)
DOCTOR_PATIENTS = Operation("doctors.patients", Scope.SELF, _roles(D), sensitive=True)

# data-subject rights
LGPD_DATA_USAGE = Operation("lgpd.data_usage", Scope.PUBLIC)
LGPD_DPO_CONTACT = Operation("lgpd.dpo_contact", Scope.PUBLIC)
LGPD_EXPORT = Operation("lgpd.export", Scope.SELF, sensitive=True)
LGPD_DELETE_ACCOUNT = Operation("lgpd.delete_account", Scope.SELF, sensitive=True)
LGPD_CANCEL_DELETION = Operation("lgpd.cancel_deletion", Scope.SELF, sensitive=True)
LGPD_CONSENTS_READ = Operation("lgpd.consents.read", Scope.SELF)
LGPD_CONSENT_GRANT = Operation("lgpd.consent.grant", Scope.SELF, sensitive=True)
LGPD_CONSENT_REVOKE = Operation("lgpd.consent.revoke", Scope.SELF, sensitive=True)

# admin
ADMIN_AUDIT_LOGS = Operation("admin.audit_logs", Scope.ADMINISTRATIVE, _roles(A))
ADMIN_STATS = Operation("admin.stats", Scope.ADMINISTRATIVE, _roles(A))
ADMIN_RETENTION_RUN = Operation("admin.retention.run", Scope.ADMINISTRATIVE, _roles(A), sensitive=True)
ADMIN_EXPORT = Operation("admin.export", Scope.ADMINISTRATIVE, _roles(A), sensitive=True)
