# app/services/upload_listener.py

from __future__ import annotations

"""
Media CMS — Upload Completion Listener
======================================
Turns S3 "object created" notifications into episode status transitions.

Flow (per record)
-----------------
1) Decode the object key and extract the episode id (`episodes/<uuid>/...`)
2) Resolve the public URL of the object
3) Load the episode (missing → INFO log, record dropped)
4) Recompute status with `has_video=True` and persist `{status, video_url,
   updated_at}` in one statement
5) Announce `EpisodeStatusChanged`, whatever the resulting status

Redelivery of the same notification converges to the same state: status is
recomputed from the stored publication date every time.
"""

import json
import logging
import re
from contextlib import AbstractAsyncContextManager
from typing import Any, Callable, List, Optional, Protocol
from urllib.parse import unquote_plus
from uuid import UUID

from app.core.events import EpisodeStatusChanged, EventBus, event_bus
from app.services.publication_service import PublicationService, publication_scope

logger = logging.getLogger(__name__)

_EPISODE_KEY_RE = re.compile(r"^episodes/([0-9a-fA-F-]{36})/.+")
_TEST_EVENT = "s3:TestEvent"


class PublicUrlResolver(Protocol):
    def public_url(self, key: str) -> str: ...


EngineScope = Callable[[], AbstractAsyncContextManager[PublicationService]]


# ──────────────────────────────────────────────────────────────────────────────
# 🔎 Pure parsing
# ──────────────────────────────────────────────────────────────────────────────
def decode_key(raw_key: str) -> str:
    """S3 notification keys are form-encoded (`+` is a space)."""
    return unquote_plus(raw_key or "")


def parse_episode_id(key: str) -> Optional[UUID]:
    """Episode id from a decoded key like `episodes/<uuid>/original`, else None."""
    match = _EPISODE_KEY_RE.match(key or "")
    if not match:
        return None
    try:
        return UUID(match.group(1))
    except ValueError:
        return None


def extract_object_keys(payload: Any) -> List[str]:
    """Decoded object keys of an S3 event notification (test events yield none)."""
    if not isinstance(payload, dict) or payload.get("Event") == _TEST_EVENT:
        return []
    keys: List[str] = []
    for record in payload.get("Records") or []:
        try:
            raw = record["s3"]["object"]["key"]
        except (KeyError, TypeError):
            continue
        if isinstance(raw, str) and raw:
            keys.append(decode_key(raw))
    return keys


# ──────────────────────────────────────────────────────────────────────────────
# 🎧 Listener
# ──────────────────────────────────────────────────────────────────────────────
class UploadCompletionListener:
    def __init__(
        self,
        storage: PublicUrlResolver,
        *,
        engine_scope: EngineScope = publication_scope,
        bus: EventBus = event_bus,
    ) -> None:
        self.storage = storage
        self.engine_scope = engine_scope
        self.bus = bus

    async def handle_notification(self, payload: Any) -> int:
        """Apply every episode upload in `payload`; returns episodes updated."""
        updated = 0
        for key in extract_object_keys(payload):
            logger.info("Processing S3 upload event: %s", key)
            episode_id = parse_episode_id(key)
            if episode_id is None:
                logger.debug("Ignoring object outside the episode layout: %s", key)
                continue
            if await self._mark_uploaded(episode_id, key):
                updated += 1
        return updated

    async def _mark_uploaded(self, episode_id: UUID, key: str) -> bool:
        video_url = self.storage.public_url(key)
        async with self.engine_scope() as engine:
            episode = await engine.episodes.find_by_id(episode_id)
            if episode is None:
                logger.info("Upload for unknown episode %s (key=%s); dropping", episode_id, key)
                return False

            now = engine.clock()
            status = engine.determine_status(episode.publication_date, True, now)
            episode = await engine.episodes.update(
                episode_id,
                status=status,
                video_url=video_url,
                updated_at=now,
            )
            if episode is None:
                logger.info("Episode %s deleted while processing upload; dropping", episode_id)
                return False
            await engine.episodes.commit()

        logger.info("Episode %s video uploaded; status=%s", episode_id, status.value)
        await self.bus.publish(EpisodeStatusChanged(episode))
        return True

    async def handle_message(self, body: Optional[str]) -> bool:
        """
        Queue boundary. Returns True when the message may be deleted.

        Empty and malformed bodies are acknowledged (retrying cannot fix them);
        any other failure returns False so the queue redelivers.
        """
        if not body:
            logger.warning("Received upload notification with empty body")
            return True
        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            logger.error("Discarding upload notification with invalid JSON body")
            return True
        try:
            await self.handle_notification(payload)
        except Exception:
            logger.exception("Error processing upload notification")
            return False
        return True


__all__ = [
    "UploadCompletionListener",
    "decode_key",
    "parse_episode_id",
    "extract_object_keys",
]
