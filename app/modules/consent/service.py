"""Consent ledger.

History is append-only: a revocation is a new row, never an update of the
grant it cancels. The current state of a (principal, category) pair is the
newest row for it, so concurrent grant/revoke calls simply both land in the
history and the later one wins on read.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.base import utcnow
from app.core.errors import ValidationFailure
from app.modules.audit.models import AuditAction
from app.modules.audit.service import AuditEvent, AuditRecorder
from app.modules.consent.models import ConsentRecord
from app.modules.consent.repository import ConsentRepository

log = logging.getLogger("consent")


@dataclass(frozen=True)
class Origin:
    client_ip: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class ConsentState:
    category: str
    granted: bool
    since: datetime


class RevokeStatus(str, Enum):
    REVOKED = "revoked"
    ALREADY_REVOKED = "already_revoked"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class RevokeResult:
    category: str
    status: RevokeStatus
    record: ConsentRecord | None = None

    @property
    def revoked(self) -> bool:
        return self.status is RevokeStatus.REVOKED


def state_of(record: ConsentRecord) -> ConsentState:
    since = record.granted_at if record.granted else record.revoked_at
    return ConsentState(category=record.category, granted=record.granted, since=since or record.created_at)


class ConsentLedger:
    def __init__(self, session: AsyncSession, recorder: AuditRecorder | None, *,
                 categories: Sequence[str], policy_version: str):
        self.session = session
        self.repo = ConsentRepository(session)
        self.recorder = recorder
        self.categories = list(categories)
        self.policy_version = policy_version

    def check_category(self, category: str) -> str:
        if category not in self.categories:
            raise ValidationFailure(
                "Unknown consent category",
                errors=[{"field": "category", "message": f"must be one of: {', '.join(self.categories)}"}],
            )
        return category

    async def grant(self, user_id: uuid.UUID, category: str, origin: Origin = Origin(),
                    version: str | None = None) -> ConsentRecord:
        self.check_category(category)
        now = utcnow()
        record = await self.repo.append(
            user_id=user_id,
            category=category,
            granted=True,
            granted_at=now,
            revoked_at=None,
            client_ip=origin.client_ip,
            user_agent=origin.user_agent[:256] if origin.user_agent else None,
            policy_version=version or self.policy_version,
            created_at=now,
        )
        await self.session.commit()
        await self._audit(AuditAction.CONSENT_GRANTED, user_id, record, origin)
        return record

    async def revoke(self, user_id: uuid.UUID, category: str, origin: Origin = Origin()) -> RevokeResult:
        """Revoking a category that was never granted, or is already revoked,
        returns a status instead of raising and writes nothing."""
        self.check_category(category)
        latest = await self.repo.latest(user_id, category)
        if latest is None:
            return RevokeResult(category=category, status=RevokeStatus.NOT_FOUND)
        if not latest.granted:
            return RevokeResult(category=category, status=RevokeStatus.ALREADY_REVOKED, record=latest)
        now = utcnow()
        record = await self.repo.append(
            user_id=user_id,
            category=category,
            granted=False,
            granted_at=latest.granted_at,
            revoked_at=now,
            client_ip=origin.client_ip,
            user_agent=origin.user_agent[:256] if origin.user_agent else None,
            policy_version=latest.policy_version,
            created_at=now,
        )
        await self.session.commit()
        await self._audit(AuditAction.CONSENT_REVOKED, user_id, record, origin)
        return RevokeResult(category=category, status=RevokeStatus.REVOKED, record=record)

    async def current_state(self, user_id: uuid.UUID, category: str) -> ConsentState | None:
        latest = await self.repo.latest(user_id, category)
        return state_of(latest) if latest else None

    async def consent_granted(self, user_id: uuid.UUID, category: str) -> bool:
        state = await self.current_state(user_id, category)
        return bool(state and state.granted)

    async def history(self, user_id: uuid.UUID, category: str | None = None) -> Sequence[ConsentRecord]:
        return await self.repo.history(user_id, category)

    async def summary(self, user_id: uuid.UUID) -> list[dict]:
        by_category: dict[str, list[ConsentRecord]] = {}
        for rec in await self.repo.history(user_id):
            by_category.setdefault(rec.category, []).append(rec)
        out = []
        for category, records in by_category.items():
            state = state_of(records[-1])
            out.append({
                "category": category,
                "current_status": "granted" if state.granted else "revoked",
                "since": state.since,
                "history": records,
            })
        return out

    async def _audit(self, action: AuditAction, user_id: uuid.UUID, record: ConsentRecord, origin: Origin):
        log.info(f"{action.value} user={user_id} category={record.category}")
        if self.recorder is None:
            return
        await self.recorder.record(AuditEvent(
            action=action,
            actor_user_id=user_id,
            resource_type="consent",
            resource_id=str(record.id),
            client_ip=origin.client_ip,
            user_agent=origin.user_agent,
            details={"category": record.category, "policy_version": record.policy_version},
        ))
