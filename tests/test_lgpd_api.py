import json

from app.core.security import Role
from app.modules.exams.models import Exam
from app.modules.notes.models import ClinicalNote
from app.modules.users.models import User


async def add(factory, *objs):
    async with factory.sessionmaker() as s:
        s.add_all(objs)
        await s.commit()


class TestExport:
    async def test_patient_export(self, client, factory):
        doctor = await factory.user(Role.DOCTOR)
        user, patient = await factory.patient()
        await factory.prescription(patient, doctor)
        await factory.grant(user, "data_processing")
        await add(factory,
                  ClinicalNote(patient_id=patient.id, doctor_id=doctor.id, title="Shared", content="ok",
                               is_visible_to_patient=True),
                  ClinicalNote(patient_id=patient.id, doctor_id=doctor.id, title="Private", content="hidden"),
                  Exam(patient_id=patient.id, doctor_id=doctor.id, exam_type="blood", exam_name="CBC",
                       file_url="https://files.example.com/cbc.pdf"))

        resp = await client.get("/api/lgpd/my-data", headers=factory.headers(user))
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["personal_data"]["email"] == user.email
        health = data["health_data"]
        assert len(health["prescriptions"]) == 1
        assert [n["title"] for n in health["clinical_notes"]] == ["Shared"]
        assert health["exams"][0]["file_url"] == "[file available in the system]"
        assert [c["category"] for c in data["consents"]] == ["data_processing"]
        assert "professional_data" not in data

        [entry] = await factory.audit("DATA_EXPORT")
        assert entry.actor_user_id == user.id

    async def test_export_includes_recent_audit_trail(self, client, factory):
        user, _ = await factory.patient()
        await client.post("/api/auth/logout", headers=factory.headers(user))
        data = (await client.get("/api/lgpd/my-data", headers=factory.headers(user))).json()["data"]
        assert "LOGOUT" in [e["action"] for e in data["audit_logs"]]

    async def test_doctor_export(self, client, factory):
        doctor = await factory.user(Role.DOCTOR)
        data = (await client.get("/api/lgpd/my-data", headers=factory.headers(doctor))).json()["data"]
        assert data["professional_data"] == {"appointments": []}
        assert "health_data" not in data

    async def test_portability_download(self, client, factory):
        user, _ = await factory.patient()
        resp = await client.post("/api/lgpd/data-portability", headers=factory.headers(user))
        assert resp.status_code == 200
        assert resp.headers["content-disposition"].startswith("attachment; filename=\"my-data-")
        assert json.loads(resp.content)["export_info"]["user_id"] == str(user.id)

    async def test_requires_login(self, client):
        assert (await client.get("/api/lgpd/my-data")).status_code == 401


class TestDeletion:
    async def test_schedule_is_idempotent(self, client, factory):
        user, _ = await factory.patient()
        headers = factory.headers(user)
        first = await client.request("DELETE", "/api/lgpd/delete-account", headers=headers,
                                     json={"reason": "moving abroad"})
        assert first.status_code == 200
        assert first.json()["data"]["grace_period_days"] == 30
        second = await client.delete("/api/lgpd/delete-account", headers=headers)
        assert second.json()["data"]["already_scheduled"] is True
        assert second.json()["data"]["deletion_date"] == first.json()["data"]["deletion_date"]
        assert len(await factory.audit("ACCOUNT_DELETION_REQUESTED")) == 1

        account = await factory.reload(User, user.id)
        assert account.deletion_scheduled
        assert account.deletion_reason == "moving abroad"

    async def test_cancel(self, client, factory):
        user, _ = await factory.patient()
        headers = factory.headers(user)
        await client.delete("/api/lgpd/delete-account", headers=headers)
        resp = await client.post("/api/lgpd/cancel-deletion", headers=headers)
        assert resp.json()["data"] == {"cancelled": True}
        assert not (await factory.reload(User, user.id)).deletion_scheduled

        resp = await client.post("/api/lgpd/cancel-deletion", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["data"] == {"cancelled": False}


class TestConsents:
    async def test_grant_and_list(self, client, factory):
        user, _ = await factory.patient()
        headers = factory.headers(user)
        resp = await client.post("/api/lgpd/grant-consent", headers=headers,
                                 json={"consentType": "sensitive_health_data", "version": "2.0"})
        assert resp.status_code == 200
        assert resp.json()["data"]["policy_version"] == "2.0"

        consents = (await client.get("/api/lgpd/consents", headers=headers)).json()["data"]
        assert [(c["category"], c["current_status"]) for c in consents] == [("sensitive_health_data", "granted")]

    async def test_revoke_never_granted(self, client, factory):
        user, _ = await factory.patient()
        resp = await client.post("/api/lgpd/revoke-consent", headers=factory.headers(user),
                                 json={"category": "marketing_communications"})
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "not_found"
        assert resp.json()["data"]["revoked"] is False

    async def test_unknown_category(self, client, factory):
        user, _ = await factory.patient()
        resp = await client.post("/api/lgpd/grant-consent", headers=factory.headers(user),
                                 json={"category": "palm_reading"})
        assert resp.status_code == 400


class TestPublicInformation:
    async def test_data_usage(self, client):
        resp = await client.get("/api/lgpd/data-usage")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert "sensitive_health_data" in data["consent_categories"]
        assert data["retention"]["audit_logs"] == "5 years"

    async def test_dpo_contact(self, client, settings):
        resp = await client.get("/api/lgpd/dpo-contact")
        assert resp.json()["data"]["email"] == settings.DPO_EMAIL
