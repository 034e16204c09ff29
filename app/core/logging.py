import logging
from contextvars import ContextVar
from .config import Settings

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")

_factory_installed = False


def setup_logging(settings: Settings):
    global _factory_installed
    level = logging.DEBUG if settings.ENV == "local" else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s",
    )
    if _factory_installed:
        return
    # attach request_id to every log record
    old_factory = logging.getLogRecordFactory()

    def record_factory(*args, **kwargs):
        record = old_factory(*args, **kwargs)
        record.request_id = request_id_ctx.get()
        return record

    logging.setLogRecordFactory(record_factory)
    _factory_installed = True
