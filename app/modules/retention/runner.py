import asyncio
import logging
from app.modules.retention.service import RetentionService

log = logging.getLogger("retention.runner")

async def run_retention_sweeps(service: RetentionService, interval_seconds: float):
    log.info(f"Retention sweeps started, every {interval_seconds:.0f}s")
    try:
        while True:
            try:
                summary = await service.run_all()
                log.info(f"Retention sweep done: {summary}")
            except Exception:
                log.exception("Retention sweep iteration failed")
            await asyncio.sleep(interval_seconds)
    except asyncio.CancelledError:
        log.info("Retention sweeps cancelled; shutting down")
        raise
