# app/workers/sqs_consumer.py
from __future__ import annotations

"""
Media CMS — S3 upload-notification consumer (SQS)
-------------------------------------------------
- Long-polls the queue S3 publishes "object created" notifications to
- Hands each body to `UploadCompletionListener.handle_message`
- Deletes a message only when the listener acknowledges it; otherwise it
  reappears after the visibility timeout and is retried
- One message at a time; blocking boto3 calls run in a worker thread
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config as BotoConfig

from app.core.config import settings
from app.services.upload_listener import UploadCompletionListener
from app.utils.aws import boto_client_kwargs

logger = logging.getLogger("upload-consumer")

_ERROR_BACKOFF_SECONDS = 5.0


def build_sqs_client() -> Any:
    cfg = BotoConfig(retries={"max_attempts": 5, "mode": "standard"}, connect_timeout=3, read_timeout=30)
    return boto3.client("sqs", config=cfg, **boto_client_kwargs())


class S3UploadConsumer:
    def __init__(
        self,
        listener: UploadCompletionListener,
        *,
        queue_url: Optional[str] = None,
        client: Any = None,
        wait_time_seconds: Optional[int] = None,
        max_messages: Optional[int] = None,
    ) -> None:
        self.listener = listener
        self.queue_url = queue_url or settings.SQS_QUEUE_URL
        if not self.queue_url:
            raise RuntimeError("SQS_QUEUE_URL not configured")
        self.client = client or build_sqs_client()
        self.wait_time_seconds = settings.SQS_WAIT_TIME_SECONDS if wait_time_seconds is None else wait_time_seconds
        self.max_messages = max_messages or settings.SQS_MAX_MESSAGES
        self._task: Optional[asyncio.Task] = None
        self._stopping = asyncio.Event()

    # ─────────────────────────────────────────────
    # 📥 Polling
    # ─────────────────────────────────────────────
    async def _receive(self) -> List[Dict[str, Any]]:
        resp = await asyncio.to_thread(
            self.client.receive_message,
            QueueUrl=self.queue_url,
            MaxNumberOfMessages=self.max_messages,
            WaitTimeSeconds=self.wait_time_seconds,
            VisibilityTimeout=settings.SQS_VISIBILITY_TIMEOUT,
        )
        return list(resp.get("Messages") or [])

    async def _delete(self, receipt_handle: str) -> None:
        await asyncio.to_thread(
            self.client.delete_message,
            QueueUrl=self.queue_url,
            ReceiptHandle=receipt_handle,
        )

    async def process_message(self, message: Dict[str, Any]) -> bool:
        """Run one message through the listener; delete it when acknowledged."""
        acknowledged = await self.listener.handle_message(message.get("Body"))
        if acknowledged:
            await self._delete(message["ReceiptHandle"])
        else:
            logger.warning("Upload notification %s left on the queue for retry", message.get("MessageId"))
        return acknowledged

    async def poll_once(self) -> int:
        """One receive round; returns how many messages were acknowledged."""
        handled = 0
        for message in await self._receive():
            if await self.process_message(message):
                handled += 1
        return handled

    async def run(self) -> None:
        logger.info("Upload consumer polling %s", self.queue_url)
        while not self._stopping.is_set():
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Upload consumer poll failed; backing off %.0fs", _ERROR_BACKOFF_SECONDS)
                try:
                    await asyncio.wait_for(self._stopping.wait(), timeout=_ERROR_BACKOFF_SECONDS)
                except asyncio.TimeoutError:
                    pass
        logger.info("Upload consumer stopped")

    # ─────────────────────────────────────────────
    # ⏯️ Lifecycle
    # ─────────────────────────────────────────────
    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self.run(), name="s3-upload-consumer")
        return self._task

    async def stop(self) -> None:
        self._stopping.set()
        if self._task is not None:
            # A long poll may be in flight; don't wait it out
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None


__all__ = ["S3UploadConsumer", "build_sqs_client"]
