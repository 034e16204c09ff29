import json
import logging
from app.platform.ports.notifier import NotifierPort

log = logging.getLogger("notifier.log")

class LoggingNotifier(NotifierPort):
    """Writes notifications to the process log; no delivery channel is wired."""

    async def notify(self, recipient: str, subject: str, body: str, meta: dict | None = None) -> None:
        log.info(f"[LOG NOTIFIER] to={recipient} subject={subject!r} meta={json.dumps(meta or {}, default=str)}")
