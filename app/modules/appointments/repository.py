import uuid
from datetime import datetime
from sqlalchemy import select, and_
from app.modules.appointments.models import Appointment
from app.modules.clinical.repository import ClinicalRepository

# slots held by these statuses no longer block the doctor's agenda
FREE_STATUSES = ("cancelled", "no_show")

class AppointmentRepository(ClinicalRepository[Appointment]):

    async def overlapping(self, doctor_id: uuid.UUID, starts_at: datetime, ends_at: datetime,
                          exclude_id: uuid.UUID | None = None) -> Appointment | None:
        cond = [
            Appointment.doctor_id == doctor_id,
            Appointment.status.not_in(FREE_STATUSES),
            Appointment.starts_at < ends_at,
            Appointment.ends_at > starts_at,
        ]
        if exclude_id is not None:
            cond.append(Appointment.id != exclude_id)
        q = select(Appointment).where(and_(*cond)).order_by(Appointment.starts_at.asc()).limit(1)
        res = await self.session.execute(q)
        return res.scalar_one_or_none()
