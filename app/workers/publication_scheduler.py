# app/workers/publication_scheduler.py
from __future__ import annotations

"""
Media CMS — publication scheduler
---------------------------------
- One APScheduler interval job promotes due scheduled episodes
- Each tick captures `now` once and opens one engine scope
- A failing tick is logged and the next tick runs as usual
- Optional Redis lock keeps a single replica sweeping at a time
"""

import logging
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.core.exceptions import SchedulerTickError
from app.core.redis_client import redis_wrapper
from app.services.publication_service import PublicationService, publication_scope, utcnow

logger = logging.getLogger("publication-scheduler")

_LOCK_KEY = "maintenance:publication-scheduler:lock"
_JOB_ID = "publication_scheduler"

EngineScope = Callable[[], AbstractAsyncContextManager[PublicationService]]


class PublicationScheduler:
    def __init__(
        self,
        *,
        engine_scope: EngineScope = publication_scope,
        interval_seconds: Optional[int] = None,
        use_lock: Optional[bool] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.engine_scope = engine_scope
        self.interval_seconds = interval_seconds or settings.PUBLICATION_SCHEDULER_INTERVAL_SECONDS
        self.use_lock = settings.PUBLICATION_SCHEDULER_LOCK if use_lock is None else use_lock
        self.clock = clock
        self._scheduler: Optional[AsyncIOScheduler] = None

    # ─────────────────────────────────────────────
    # 🔁 One sweep
    # ─────────────────────────────────────────────
    async def tick(self) -> int:
        """Promote due episodes; returns how many were published (0 on failure)."""
        try:
            if self.use_lock:
                try:
                    async with redis_wrapper.lock(
                        _LOCK_KEY,
                        timeout=settings.PUBLICATION_SCHEDULER_LOCK_TTL_SECONDS,
                        blocking_timeout=1,
                    ):
                        return await self._sweep()
                except TimeoutError:
                    logger.info("Publication sweep skipped: another replica holds the lock")
                    return 0
            return await self._sweep()
        except Exception as exc:
            error = SchedulerTickError(f"Error processing scheduled publications: {exc!r}")
            logger.exception("%s", error)
            return 0

    async def _sweep(self) -> int:
        now = self.clock()
        logger.debug("Checking for scheduled episodes ready to publish (now=%s)", now.isoformat())
        async with self.engine_scope() as engine:
            published = await engine.process_scheduled_publications(now)
        if published > 0:
            logger.info("Published %s scheduled episode(s)", published)
        return published

    # ─────────────────────────────────────────────
    # ⏰ Lifecycle
    # ─────────────────────────────────────────────
    def start(self) -> None:
        """Must be called from a running event loop."""
        if self._scheduler is not None:
            return
        scheduler = AsyncIOScheduler(timezone=timezone.utc)
        scheduler.add_job(
            self.tick,
            IntervalTrigger(seconds=self.interval_seconds, timezone=timezone.utc),
            id=_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Publication scheduler started | interval=%ss, lock=%s",
            self.interval_seconds, "on" if self.use_lock else "off",
        )

    def shutdown(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Publication scheduler stopped")

    @property
    def running(self) -> bool:
        return self._scheduler is not None


__all__ = ["PublicationScheduler"]
