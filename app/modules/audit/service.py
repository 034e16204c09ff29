"""Audit trail recording.

Recording is best-effort relative to the business operation: a failed or
timed-out write never fails the caller. It is never silent either. Every
event that could not be persisted goes to the dead-letter channel (the
``audit.deadletter`` logger at CRITICAL plus a JSON-lines file) and bumps a
counter exposed by the health endpoint, so gaps can be found and replayed.
"""
import asyncio
import json
import logging
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Sequence
from fastapi import BackgroundTasks, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from app.core.base import utcnow
from app.core.errors import ValidationFailure
from app.core.paging import encode_cursor, decode_cursor
from app.modules.audit.models import AuditAction, AuditEntry
from app.modules.audit.repository import AuditRepository

log = logging.getLogger("audit")
dead_letter_log = logging.getLogger("audit.deadletter")


@dataclass
class AuditEvent:
    action: AuditAction
    actor_user_id: uuid.UUID | None
    resource_type: str | None = None
    resource_id: str | None = None
    client_ip: str | None = None
    user_agent: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=utcnow)


class DeadLetterSink:
    def __init__(self, path: str | None = None):
        self.path = path
        self.failures = 0

    def write(self, event: AuditEvent, error: BaseException) -> None:
        self.failures += 1
        payload = asdict(event)
        payload["action"] = event.action.value
        payload["error"] = f"{error.__class__.__name__}: {error}"
        line = json.dumps(payload, default=str, sort_keys=True)
        dead_letter_log.critical(f"Audit entry not persisted: {line}")
        if not self.path:
            return
        try:
            with open(self.path, "a", encoding="utf-8") as fh:
                fh.write(line + "\n")
        except OSError:
            dead_letter_log.exception("Dead-letter file unavailable; entry kept in process log only")


class AuditRecorder:
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession], dead_letter: DeadLetterSink,
                 timeout: float = 3.0):
        self.sessionmaker = sessionmaker
        self.dead_letter = dead_letter
        self.timeout = timeout

    async def record(self, event: AuditEvent) -> AuditEntry | None:
        try:
            return await asyncio.wait_for(self._persist(event), timeout=self.timeout)
        except Exception as exc:  # routed to the dead-letter channel, never raised to the caller
            self.dead_letter.write(event, exc)
            return None

    async def _persist(self, event: AuditEvent) -> AuditEntry:
        async with self.sessionmaker() as session:
            entry = await AuditRepository(session).append(
                actor_user_id=event.actor_user_id,
                action=event.action.value,
                resource_type=event.resource_type,
                resource_id=event.resource_id,
                client_ip=event.client_ip,
                user_agent=event.user_agent[:256] if event.user_agent else None,
                details=_jsonable(event.details),
                created_at=event.occurred_at,
            )
            await session.commit()
        log.debug(f"Audit entry {entry.seq} {event.action.value} actor={event.actor_user_id} "
                  f"resource={event.resource_type}:{event.resource_id}")
        return entry

    async def query(self, *, actor_user_id: uuid.UUID | None = None, action: str | None = None,
                    resource_type: str | None = None, start: datetime | None = None,
                    end: datetime | None = None, cursor: str | None = None,
                    limit: int = 50) -> tuple[Sequence[AuditEntry], str | None]:
        """Newest-first page of entries plus the cursor for the next page."""
        before_seq = (decode_cursor(cursor) or {}).get("seq")
        if before_seq is not None and not isinstance(before_seq, int):
            raise ValidationFailure("Invalid cursor", errors=[{"field": "cursor", "message": "malformed cursor"}])
        async with self.sessionmaker() as session:
            rows = await AuditRepository(session).query(
                actor_user_id=actor_user_id, action=action, resource_type=resource_type,
                start=start, end=end, before_seq=before_seq, limit=limit + 1,
            )
        rows = list(rows)
        next_cursor = None
        if len(rows) > limit:
            rows = rows[:limit]
            next_cursor = encode_cursor({"seq": rows[-1].seq})
        return rows, next_cursor

    async def for_actor(self, actor_user_id: uuid.UUID, since: datetime) -> Sequence[AuditEntry]:
        async with self.sessionmaker() as session:
            return await AuditRepository(session).for_actor(actor_user_id, since)

    async def count(self, action: str | None = None) -> int:
        async with self.sessionmaker() as session:
            return await AuditRepository(session).count(action)


def _jsonable(value: Any) -> Any:
    # round-trip through json so uuids/datetimes in snapshots are stored as strings
    return json.loads(json.dumps(value, default=str))


class RequestAudit:
    """Audit helper bound to one request (origin address, client identifier)."""

    def __init__(self, recorder: AuditRecorder, background: BackgroundTasks,
                 client_ip: str | None, user_agent: str | None):
        self.recorder = recorder
        self.background = background
        self.client_ip = client_ip
        self.user_agent = user_agent

    def event(self, action: AuditAction, actor: uuid.UUID | None, *, resource_type: str | None = None,
              resource_id: Any = None, details: dict | None = None) -> AuditEvent:
        return AuditEvent(
            action=action,
            actor_user_id=actor,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            client_ip=self.client_ip,
            user_agent=self.user_agent,
            details=details or {},
        )

    def defer(self, action: AuditAction, actor: uuid.UUID | None, **kw) -> None:
        """Record after the response is sent. Call only once the operation has succeeded."""
        self.background.add_task(self.recorder.record, self.event(action, actor, **kw))

    async def now(self, action: AuditAction, actor: uuid.UUID | None, **kw) -> AuditEntry | None:
        return await self.recorder.record(self.event(action, actor, **kw))


def get_recorder(request: Request) -> AuditRecorder:
    return request.app.state.audit


def get_request_audit(request: Request, background_tasks: BackgroundTasks) -> RequestAudit:
    return RequestAudit(
        request.app.state.audit,
        background_tasks,
        client_ip=(request.client.host if request.client else None),
        user_agent=request.headers.get("user-agent"),
    )
