"""End-to-end flows through the HTTP API."""
import uuid
from datetime import date, timedelta

from app.core.base import utcnow
from app.core.security import Role
from app.modules.patients.models import Patient


class TestUnauthenticatedRead:
    async def test_prescription_read_without_token(self, client, factory):
        doctor = await factory.user(Role.DOCTOR)
        _, patient = await factory.patient()
        prescription = await factory.prescription(patient, doctor)

        resp = await client.get(f"/api/prescriptions/{prescription.id}")

        assert resp.status_code == 401
        body = resp.json()
        assert body["success"] is False
        assert body["code"] == "AUTH_004"
        entries = await factory.audit()
        assert [(e.action, e.actor_user_id) for e in entries] == [("FAILED_ACCESS", None)]
        assert entries[0].resource_id == str(prescription.id)
        assert entries[0].details["reason"] == "unauthenticated"

    async def test_bad_token(self, client, factory):
        resp = await client.get(f"/api/prescriptions/{uuid.uuid4()}", headers={"Authorization": "Bearer junk"})
        assert resp.status_code == 401
        assert resp.json()["code"] == "AUTH_003"
        [entry] = await factory.audit("FAILED_ACCESS")
        assert entry.actor_user_id is None


class TestDoctorAssignment:
    async def test_access_follows_the_active_assignment(self, client, factory):
        doctor = await factory.user(Role.DOCTOR)
        secretary = await factory.user(Role.SECRETARY)
        _, patient = await factory.patient()
        await factory.assign(patient, doctor)

        resp = await client.post("/api/prescriptions", headers=factory.headers(doctor), json={
            "patient_id": str(patient.id),
            "medications": [{"name": "Fluoxetine", "dosage": "20mg", "frequency": "daily"}],
        })
        assert resp.status_code == 201
        created = resp.json()["data"]
        assert created["doctor_id"] == str(doctor.id)

        [write] = await factory.audit("DATA_MODIFICATION")
        assert write.actor_user_id == doctor.id
        assert write.resource_id == created["id"]
        assert write.details["before"] is None
        assert write.details["after"]["medications"][0]["name"] == "Fluoxetine"

        resp = await client.delete(f"/api/patients/{patient.id}/assignment", headers=factory.headers(secretary))
        assert resp.status_code == 200
        history = (await client.get(f"/api/patients/{patient.id}/assignments",
                                    headers=factory.headers(secretary))).json()["data"]
        assert [a["doctor_id"] for a in history] == [str(doctor.id)]
        assert history[0]["ended_at"] is not None

        resp = await client.get(f"/api/prescriptions/{created['id']}", headers=factory.headers(doctor))
        assert resp.status_code == 403
        assert resp.json()["code"] == "AUTHZ_001"
        assert "doctor_not_assigned" not in resp.text
        denied = (await factory.audit("ACCESS_DENIED"))[-1]
        assert denied.actor_user_id == doctor.id
        assert denied.details["reason"] == "doctor_not_assigned"

    async def test_reads_are_audited_as_sensitive(self, client, factory):
        doctor = await factory.user(Role.DOCTOR)
        _, patient = await factory.patient()
        await factory.assign(patient, doctor)
        prescription = await factory.prescription(patient, doctor)

        resp = await client.get(f"/api/prescriptions/{prescription.id}", headers=factory.headers(doctor))
        assert resp.status_code == 200
        [entry] = await factory.audit("SENSITIVE_DATA_ACCESS")
        assert entry.actor_user_id == doctor.id
        assert entry.resource_id == str(prescription.id)


class TestConsentRevocation:
    async def test_revoke_twice(self, client, factory):
        resp = await client.post("/api/auth/register", json={
            "email": "maria@example.com",
            "password": "Str0ng!Pass",
            "name": "Maria Silva",
            "date_of_birth": "1990-04-12",
            "consents": ["data_processing", "marketing_communications"],
        })
        assert resp.status_code == 201
        headers = {"Authorization": f"Bearer {resp.json()['data']['token']}"}

        first = await client.post("/api/lgpd/revoke-consent", headers=headers,
                                  json={"consent_type": "marketing_communications"})
        assert first.status_code == 200
        assert first.json()["data"]["revoked"] is True
        assert first.json()["data"]["status"] == "revoked"

        second = await client.post("/api/lgpd/revoke-consent", headers=headers,
                                   json={"consent_type": "marketing_communications"})
        assert second.status_code == 200
        assert second.json()["data"]["revoked"] is False
        assert second.json()["data"]["status"] == "already_revoked"

        consents = (await client.get("/api/lgpd/consents", headers=headers)).json()["data"]
        marketing = next(c for c in consents if c["category"] == "marketing_communications")
        assert marketing["current_status"] == "revoked"
        assert len(marketing["history"]) == 2
        assert len(await factory.audit("CONSENT_REVOKED")) == 1


class TestSecretaryRestrictions:
    async def test_no_prescriptions(self, client, factory):
        secretary = await factory.user(Role.SECRETARY)
        doctor = await factory.user(Role.DOCTOR)
        _, patient = await factory.patient()
        prescription = await factory.prescription(patient, doctor)

        resp = await client.get(f"/api/prescriptions/{prescription.id}", headers=factory.headers(secretary))
        assert resp.status_code == 403
        denied = (await factory.audit("ACCESS_DENIED"))[-1]
        assert denied.details["reason"] == "secretary_medical_restricted"

    async def test_patient_view_hides_medical_fields(self, client, factory):
        secretary = await factory.user(Role.SECRETARY)
        _, patient = await factory.patient()
        resp = await client.get(f"/api/patients/{patient.id}", headers=factory.headers(secretary))
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["id"] == str(patient.id)
        assert "medical_history" not in data
        assert "allergies" not in data


class TestSensitiveHealthConsent:
    async def test_mood_entry_needs_consent(self, client, factory):
        user, patient = await factory.patient()
        entry = {"entry_date": date.today().isoformat(), "mood_level": 3}

        resp = await client.post("/api/mood-entries", headers=factory.headers(user), json=entry)
        assert resp.status_code == 403
        assert resp.json()["code"] == "LGPD_001"

        await factory.grant(user, "sensitive_health_data")
        resp = await client.post("/api/mood-entries", headers=factory.headers(user), json=entry)
        assert resp.status_code == 201
        assert resp.json()["data"]["patient_id"] == str(patient.id)


class TestMissingResources:
    async def test_admin_gets_not_found(self, client, factory):
        admin = await factory.user(Role.ADMIN)
        resp = await client.get(f"/api/prescriptions/{uuid.uuid4()}", headers=factory.headers(admin))
        assert resp.status_code == 404

    async def test_patient_gets_forbidden(self, client, factory):
        user, _ = await factory.patient()
        resp = await client.get(f"/api/prescriptions/{uuid.uuid4()}", headers=factory.headers(user))
        assert resp.status_code == 403

    async def test_medical_records_cannot_be_deleted(self, client, factory):
        doctor = await factory.user(Role.DOCTOR)
        _, patient = await factory.patient()
        await factory.assign(patient, doctor)
        prescription = await factory.prescription(patient, doctor)

        resp = await client.delete(f"/api/prescriptions/{prescription.id}", headers=factory.headers(doctor))
        assert resp.status_code == 409
        assert resp.json()["code"] == "LGPD_002"


class TestAnonymizedProfiles:
    async def test_identifiers_cannot_be_written_back(self, client, factory, application):
        secretary = await factory.user(Role.SECRETARY)
        admin = await factory.user(Role.ADMIN)
        doctor = await factory.user(Role.DOCTOR)
        user, patient = await factory.patient(deletion_scheduled=True, deletion_date=utcnow() - timedelta(days=1))
        assert await application.state.retention.execute_due() == [user.id]

        resp = await client.patch(f"/api/patients/{patient.id}", headers=factory.headers(secretary),
                                  json={"cpf": "987.654.321-00", "date_of_birth": "1990-04-12"})
        assert resp.status_code == 404
        resp = await client.patch(f"/api/patients/{patient.id}/medical", headers=factory.headers(admin),
                                  json={"allergies": ["penicillin"]})
        assert resp.status_code == 404
        resp = await client.put(f"/api/patients/{patient.id}/assignment", headers=factory.headers(secretary),
                                json={"doctor_id": str(doctor.id)})
        assert resp.status_code == 404

        stored = await factory.reload(Patient, patient.id)
        assert stored.cpf is None
        assert stored.date_of_birth is None
        assert stored.allergies == []
