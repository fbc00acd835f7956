from __future__ import annotations

"""
Dedicated background worker (no HTTP server).

Responsibilities:
- Publication scheduler (APScheduler interval job)
- S3 upload-notification consumer (SQS)
- Search projection for the events those two emit

Env toggles (see app/core/config.py):
  PUBLICATION_SCHEDULER_ENABLED=true|false
  UPLOAD_CONSUMER_ENABLED=true|false (needs SQS_QUEUE_URL)
  SEARCH_ENABLED=true|false

Run:
  python -m scripts.worker
"""

import asyncio
import logging
import signal

from app.core import logger as _logsetup  # noqa: F401
from app.db.session import async_engine
from app.workers.runtime import BackgroundRuntime

logger = logging.getLogger("worker")


async def run() -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop.set))

    runtime = BackgroundRuntime()
    await runtime.start()
    logger.info("Worker running; waiting for shutdown signal")
    try:
        await stop.wait()
    finally:
        await runtime.stop()
        await async_engine.dispose()
        logger.info("Worker stopped")


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
