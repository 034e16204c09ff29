from app.core.security import Role


class TestDirectory:
    async def test_any_user_lists_doctors(self, client, factory):
        doctor = await factory.user(Role.DOCTOR, phone="+55 11 99999-0000")
        await factory.user(Role.SECRETARY)
        user, _ = await factory.patient()
        resp = await client.get("/api/doctors", headers=factory.headers(user))
        assert resp.status_code == 200
        cards = resp.json()["data"]
        assert [c["id"] for c in cards] == [str(doctor.id)]
        assert set(cards[0]) == {"id", "name", "email", "phone"}

    async def test_get_doctor(self, client, factory):
        doctor = await factory.user(Role.DOCTOR)
        secretary = await factory.user(Role.SECRETARY)
        resp = await client.get(f"/api/doctors/{doctor.id}", headers=factory.headers(secretary))
        assert resp.json()["data"]["email"] == doctor.email
        resp = await client.get(f"/api/doctors/{secretary.id}", headers=factory.headers(secretary))
        assert resp.status_code == 404

    async def test_requires_authentication(self, client):
        resp = await client.get("/api/doctors")
        assert resp.status_code == 401


class TestDoctorPatients:
    async def test_doctor_sees_own_panel(self, client, factory):
        doctor = await factory.user(Role.DOCTOR)
        _, mine = await factory.patient()
        await factory.patient()
        await factory.assign(mine, doctor)

        resp = await client.get(f"/api/doctors/{doctor.id}/patients", headers=factory.headers(doctor))
        assert resp.status_code == 200
        assert [p["id"] for p in resp.json()["data"]] == [str(mine.id)]
        [entry] = await factory.audit("SENSITIVE_DATA_ACCESS")
        assert entry.resource_type == "doctor_patients"

    async def test_other_doctor_is_denied(self, client, factory):
        doctor = await factory.user(Role.DOCTOR)
        colleague = await factory.user(Role.DOCTOR)
        resp = await client.get(f"/api/doctors/{doctor.id}/patients", headers=factory.headers(colleague))
        assert resp.status_code == 403
        [entry] = await factory.audit("ACCESS_DENIED")
        assert entry.details["reason"] == "not_self"

    async def test_admin_sees_any_panel(self, client, factory):
        admin = await factory.user(Role.ADMIN)
        doctor = await factory.user(Role.DOCTOR)
        resp = await client.get(f"/api/doctors/{doctor.id}/patients", headers=factory.headers(admin))
        assert resp.status_code == 200
        assert resp.json()["data"] == []
