import uuid
from datetime import date
from typing import Sequence
from sqlalchemy import select
from app.modules.clinical.repository import ClinicalRepository
from app.modules.mood_entries.models import MoodEntry

class MoodEntryRepository(ClinicalRepository[MoodEntry]):

    async def between(self, patient_id: uuid.UUID, start: date | None = None,
                      end: date | None = None) -> Sequence[MoodEntry]:
        """Entries in the inclusive date range, newest first."""
        q = select(MoodEntry).where(MoodEntry.patient_id == patient_id)
        if start:
            q = q.where(MoodEntry.entry_date >= start)
        if end:
            q = q.where(MoodEntry.entry_date <= end)
        q = q.order_by(MoodEntry.entry_date.desc(), MoodEntry.created_at.desc())
        res = await self.session.execute(q)
        return res.scalars().all()
