import asyncio
import json
import logging
import uuid

import pytest

from app.core.errors import ValidationFailure
from app.core.paging import encode_cursor
from app.modules.audit.models import AuditAction
from app.modules.audit.service import AuditEvent, AuditRecorder, DeadLetterSink


class BrokenSession:
    async def __aenter__(self):
        raise ConnectionError("database unavailable")

    async def __aexit__(self, *exc):
        return False


class HangingSession:
    async def __aenter__(self):
        await asyncio.sleep(10)

    async def __aexit__(self, *exc):
        return False


@pytest.fixture
def recorder(application) -> AuditRecorder:
    return application.state.audit


def event(action=AuditAction.DATA_ACCESS, actor=None, **kw) -> AuditEvent:
    return AuditEvent(action=action, actor_user_id=actor, **kw)


class TestRecord:
    async def test_entry_is_persisted(self, recorder):
        actor = uuid.uuid4()
        entry = await recorder.record(event(AuditAction.LOGIN, actor, resource_type="user",
                                            resource_id=str(actor), details={"at": uuid.uuid4()}))
        assert entry is not None
        rows, _ = await recorder.query(actor_user_id=actor)
        assert [r.action for r in rows] == ["LOGIN"]
        assert isinstance(rows[0].details["at"], str)

    async def test_store_failure_goes_to_dead_letter(self, tmp_path, caplog):
        sink = DeadLetterSink(str(tmp_path / "dl.jsonl"))
        recorder = AuditRecorder(lambda: BrokenSession(), sink)
        with caplog.at_level(logging.CRITICAL, logger="audit.deadletter"):
            result = await recorder.record(event(AuditAction.FAILED_LOGIN, details={"email": "a@b.co"}))

        assert result is None
        assert sink.failures == 1
        line = json.loads((tmp_path / "dl.jsonl").read_text().strip())
        assert line["action"] == "FAILED_LOGIN"
        assert "ConnectionError" in line["error"]
        assert any("not persisted" in r.message for r in caplog.records)

    async def test_store_timeout_goes_to_dead_letter(self):
        sink = DeadLetterSink(None)
        recorder = AuditRecorder(lambda: HangingSession(), sink, timeout=0.05)
        assert await recorder.record(event()) is None
        assert sink.failures == 1


class TestQuery:
    async def test_newest_first(self, recorder):
        actor = uuid.uuid4()
        for action in (AuditAction.LOGIN, AuditAction.DATA_ACCESS, AuditAction.LOGOUT):
            await recorder.record(event(action, actor))
        rows, cursor = await recorder.query(actor_user_id=actor)
        assert [r.action for r in rows] == ["LOGOUT", "DATA_ACCESS", "LOGIN"]
        assert cursor is None

    async def test_cursor_walks_every_entry_once(self, recorder):
        for _ in range(7):
            await recorder.record(event())
        seen, cursor = [], None
        while True:
            rows, cursor = await recorder.query(cursor=cursor, limit=3)
            seen.extend(r.seq for r in rows)
            if cursor is None:
                break
        assert len(seen) == 7
        assert seen == sorted(seen, reverse=True)

    async def test_same_query_same_result(self, recorder):
        for _ in range(4):
            await recorder.record(event(AuditAction.DATA_MODIFICATION))
        first, _ = await recorder.query(action="DATA_MODIFICATION")
        second, _ = await recorder.query(action="DATA_MODIFICATION")
        assert [r.seq for r in first] == [r.seq for r in second]

    async def test_filters(self, recorder):
        await recorder.record(event(AuditAction.LOGIN, resource_type="user"))
        await recorder.record(event(AuditAction.DATA_ACCESS, resource_type="prescription"))
        rows, _ = await recorder.query(resource_type="prescription")
        assert [r.action for r in rows] == ["DATA_ACCESS"]

    async def test_malformed_cursor(self, recorder):
        with pytest.raises(ValidationFailure):
            await recorder.query(cursor="%%%not-base64")
        with pytest.raises(ValidationFailure):
            await recorder.query(cursor=encode_cursor({"seq": "ten"}))
