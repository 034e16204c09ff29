from datetime import date, timedelta

import pytest

from app.core.security import Role
from app.modules.mood_entries.service import TREND_LENGTH

DAY = date(2030, 3, 1)


@pytest.fixture
async def diary(factory):
    doctor = await factory.user(Role.DOCTOR)
    user, patient = await factory.patient()
    await factory.assign(patient, doctor)
    await factory.mood(patient, DAY, 2, stress_level=4, sleep_hours=5.0)
    await factory.mood(patient, DAY + timedelta(days=1), 3, stress_level=3)
    await factory.mood(patient, DAY + timedelta(days=2), 5, exercise_minutes=30)
    return {"doctor": doctor, "user": user, "patient": patient}


def url(patient) -> str:
    return f"/api/mood-entries/patient/{patient.id}/statistics"


class TestMoodStatistics:
    async def test_patient_sees_own_averages(self, client, factory, diary):
        resp = await client.get(url(diary["patient"]), headers=factory.headers(diary["user"]))
        assert resp.status_code == 200
        stats = resp.json()["data"]
        assert stats["total_entries"] == 3
        assert stats["average_mood"] == 3.33
        # averages only count entries that report the measure
        assert stats["average_stress"] == 3.5
        assert stats["average_sleep_hours"] == 5.0
        assert stats["average_exercise_minutes"] == 30.0
        assert stats["average_anxiety"] is None
        assert [p["mood_level"] for p in stats["mood_trend"]] == [5, 3, 2]

    async def test_date_range(self, client, factory, diary):
        resp = await client.get(url(diary["patient"]), headers=factory.headers(diary["doctor"]),
                                params={"start_date": (DAY + timedelta(days=1)).isoformat(),
                                        "end_date": (DAY + timedelta(days=1)).isoformat()})
        assert resp.status_code == 200
        stats = resp.json()["data"]
        assert stats["total_entries"] == 1
        assert stats["average_mood"] == 3.0

    async def test_inverted_range(self, client, factory, diary):
        resp = await client.get(url(diary["patient"]), headers=factory.headers(diary["user"]),
                                params={"start_date": "2030-03-05", "end_date": "2030-03-01"})
        assert resp.status_code == 400
        assert resp.json()["code"] == "VAL_001"

    async def test_no_entries(self, client, factory):
        user, patient = await factory.patient()
        stats = (await client.get(url(patient), headers=factory.headers(user))).json()["data"]
        assert stats["total_entries"] == 0
        assert stats["average_mood"] is None
        assert stats["mood_trend"] == []

    async def test_trend_is_capped(self, client, factory):
        user, patient = await factory.patient()
        for n in range(TREND_LENGTH + 5):
            await factory.mood(patient, DAY + timedelta(days=n), 3)
        stats = (await client.get(url(patient), headers=factory.headers(user))).json()["data"]
        assert stats["total_entries"] == TREND_LENGTH + 5
        assert len(stats["mood_trend"]) == TREND_LENGTH
        assert stats["mood_trend"][0]["entry_date"] == (DAY + timedelta(days=TREND_LENGTH + 4)).isoformat()

    async def test_read_is_audited(self, client, factory, diary):
        await client.get(url(diary["patient"]), headers=factory.headers(diary["doctor"]))
        [entry] = await factory.audit("SENSITIVE_DATA_ACCESS")
        assert entry.actor_user_id == diary["doctor"].id
        assert entry.resource_type == "mood_statistics"
        assert entry.details["count"] == 3


class TestMoodStatisticsAccess:
    async def test_unassigned_doctor(self, client, factory, diary):
        stranger = await factory.user(Role.DOCTOR)
        resp = await client.get(url(diary["patient"]), headers=factory.headers(stranger))
        assert resp.status_code == 403
        denied = (await factory.audit("ACCESS_DENIED"))[-1]
        assert denied.details["reason"] == "doctor_not_assigned"

    async def test_secretary(self, client, factory, diary):
        secretary = await factory.user(Role.SECRETARY)
        resp = await client.get(url(diary["patient"]), headers=factory.headers(secretary))
        assert resp.status_code == 403
        denied = (await factory.audit("ACCESS_DENIED"))[-1]
        assert denied.details["reason"] == "secretary_medical_restricted"

    async def test_other_patient(self, client, factory, diary):
        other, _ = await factory.patient()
        resp = await client.get(url(diary["patient"]), headers=factory.headers(other))
        assert resp.status_code == 403
