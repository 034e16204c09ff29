import logging
import uuid
from datetime import date
from typing import Iterable, Sequence
from app.core.errors import ValidationFailure
from app.modules.access import operations as ops
from app.modules.clinical.service import ClinicalRecordService, ClinicalOps
from app.modules.mood_entries.models import MoodEntry
from app.modules.mood_entries.repository import MoodEntryRepository
from app.modules.mood_entries.schemas import MoodEntryOut, MoodStatisticsOut, MoodTrendPoint
from app.modules.patients.service import patient_ref

log = logging.getLogger("mood_entries")

TREND_LENGTH = 30


def _average(values: Iterable[float | None]) -> float | None:
    present = [v for v in values if v is not None]
    return round(sum(present) / len(present), 2) if present else None


def mood_statistics(entries: Sequence[MoodEntry]) -> MoodStatisticsOut:
    """Averages over the entries that report each measure; ``entries`` newest first."""
    return MoodStatisticsOut(
        total_entries=len(entries),
        average_mood=_average(e.mood_level for e in entries),
        average_stress=_average(e.stress_level for e in entries),
        average_anxiety=_average(e.anxiety_level for e in entries),
        average_sleep_hours=_average(e.sleep_hours for e in entries),
        average_exercise_minutes=_average(e.exercise_minutes for e in entries),
        mood_trend=[MoodTrendPoint(entry_date=e.entry_date, mood_level=e.mood_level) for e in entries[:TREND_LENGTH]],
    )


class MoodEntryService(ClinicalRecordService):
    model = MoodEntry
    repository_class = MoodEntryRepository
    out_schema = MoodEntryOut
    resource_type = "mood_entry"
    ops = ClinicalOps(read=ops.MOOD_READ, create=ops.MOOD_CREATE, update=ops.MOOD_UPDATE, delete=ops.MOOD_DELETE)
    doctor_authored = False

    async def statistics(self, patient_id: uuid.UUID, start: date | None = None,
                         end: date | None = None) -> MoodStatisticsOut:
        if start and end and start > end:
            raise ValidationFailure("Invalid date range",
                                    errors=[{"field": "end_date", "message": "must not be before start_date"}])
        patient = await self.patients.get(patient_id)
        ref = patient_ref(patient, "mood_statistics", patient_id)
        await self.guard.require(ops.MOOD_STATISTICS, ref)
        patient = self._require_subject(patient, patient_id)
        entries = await self.repo.between(patient.id, start, end)
        log.info(f"Mood statistics for patient {patient.id}: {len(entries)} entries")
        self.guard.accessed(ops.MOOD_STATISTICS, ref, count=len(entries))
        return mood_statistics(entries)
