# app/workers/runtime.py
from __future__ import annotations

"""
Background runtime shared by the API lifespan and `scripts/worker.py`.

Startup order (each step optional, driven by settings):
1) Redis (scheduler lock and discovery read cache)
2) Search projection: ensure indices, subscribe to the event bus
3) Publication scheduler (APScheduler interval job)
4) S3 upload consumer (SQS long-poll task)

`stop()` tears down in reverse order. A component that fails to start is
logged and left off; the others still run.
"""

import logging
from typing import Optional

from app.core.config import settings
from app.core.events import EventBus, event_bus
from app.core.redis_client import redis_wrapper
from app.services.search_service import SearchIndexSubscriber, SearchService
from app.services.upload_listener import UploadCompletionListener
from app.utils.aws import S3StorageError, get_s3_client
from app.workers.publication_scheduler import PublicationScheduler
from app.workers.sqs_consumer import S3UploadConsumer

logger = logging.getLogger("worker")


class BackgroundRuntime:
    def __init__(self, *, bus: EventBus = event_bus) -> None:
        self.bus = bus
        self.search: Optional[SearchService] = None
        self.subscriber: Optional[SearchIndexSubscriber] = None
        self.scheduler: Optional[PublicationScheduler] = None
        self.consumer: Optional[S3UploadConsumer] = None
        self.redis_connected = False

    async def start(self) -> None:
        needs_lock = settings.PUBLICATION_SCHEDULER_ENABLED and settings.PUBLICATION_SCHEDULER_LOCK
        if needs_lock or settings.SEARCH_ENABLED:
            try:
                await redis_wrapper.connect()
                self.redis_connected = True
            except RuntimeError:
                logger.exception("Redis unavailable; discovery reads go uncached and locked scheduler ticks fail")

        if settings.SEARCH_ENABLED:
            self.search = SearchService()
            await self.search.ensure_indices()
            self.subscriber = SearchIndexSubscriber(self.search)
            self.bus.subscribe(self.subscriber)
            logger.info("Search projection subscribed (%s)", settings.ELASTIC_NODE)

        if settings.PUBLICATION_SCHEDULER_ENABLED:
            self.scheduler = PublicationScheduler()
            self.scheduler.start()

        if settings.UPLOAD_CONSUMER_ENABLED and settings.SQS_QUEUE_URL:
            try:
                listener = UploadCompletionListener(get_s3_client(), bus=self.bus)
            except S3StorageError:
                logger.exception("Upload consumer not started: object storage is not configured")
            else:
                self.consumer = S3UploadConsumer(listener)
                self.consumer.start()
        elif settings.UPLOAD_CONSUMER_ENABLED:
            logger.info("Upload consumer not started: SQS_QUEUE_URL is not set")

    async def stop(self) -> None:
        if self.consumer is not None:
            await self.consumer.stop()
            self.consumer = None
        if self.scheduler is not None:
            self.scheduler.shutdown()
            self.scheduler = None
        if self.subscriber is not None:
            self.bus.unsubscribe(self.subscriber)
            self.subscriber = None
        if self.search is not None:
            await self.search.close()
            self.search = None
        if self.redis_connected:
            await redis_wrapper.close()
            self.redis_connected = False


__all__ = ["BackgroundRuntime"]
