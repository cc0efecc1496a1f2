# scripts/run_scheduler.py
from __future__ import annotations

import asyncio
import logging
import signal

from app.jobs.scheduler import build_scheduler
from app.logging_config import configure_logging

log = logging.getLogger("leaseflow.scheduler")


async def main() -> None:
    configure_logging()
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops; Ctrl+C still raises KeyboardInterrupt there
            pass

    scheduler = build_scheduler()
    scheduler.start()
    log.info("outbox dispatch scheduled; waiting for SIGINT/SIGTERM")
    try:
        await stop.wait()
    finally:
        scheduler.shutdown(wait=False)
        log.info("scheduler stopped")


if __name__ == "__main__":
    asyncio.run(main())
