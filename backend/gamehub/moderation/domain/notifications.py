"""Fire-and-forget moderation events.

Callers hand an event to the dispatcher and return immediately. Publishing
happens on a background task; a failure there is logged and counted but never
reaches the caller.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Mapping, Protocol

from redis.asyncio import Redis

from gamehub.infra.redis import RedisProxy
from gamehub.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

SUBMISSION_CREATED = "submission.created"
DECISION_COMMITTED = "decision.committed"
APPLICATION_SUBMITTED = "application.submitted"
APPLICATION_DECIDED = "application.decided"


class NotificationDispatcher(Protocol):
    def dispatch(self, event_type: str, payload: Mapping[str, Any]) -> None:
        ...


class NullDispatcher:
    def dispatch(self, event_type: str, payload: Mapping[str, Any]) -> None:
        return None


class RecordingDispatcher:
    """Keeps events in memory; used when no stream is configured."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def dispatch(self, event_type: str, payload: Mapping[str, Any]) -> None:
        self.events.append((event_type, dict(payload)))


class RedisStreamDispatcher:
    def __init__(
        self,
        redis: Redis | RedisProxy,
        *,
        stream: str = "mod:decisions",
        maxlen: int = 10000,
    ) -> None:
        self._redis = redis
        self._stream = stream
        self._maxlen = maxlen
        self._pending: set[asyncio.Task] = set()

    def dispatch(self, event_type: str, payload: Mapping[str, Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("notification dropped outside event loop", extra={"event_type": event_type})
            return
        task = loop.create_task(self._publish(event_type, dict(payload)))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _publish(self, event_type: str, payload: Mapping[str, Any]) -> None:
        try:
            await self._redis.xadd(
                self._stream,
                {"type": event_type, "payload": json.dumps(payload, default=str)},
                maxlen=self._maxlen,
                approximate=True,
            )
        except Exception:  # noqa: BLE001 - notifications never fail the caller
            obs_metrics.MOD_NOTIFICATIONS_TOTAL.labels(channel="stream", result="error").inc()
            logger.exception(
                "failed to publish moderation event",
                extra={"event_type": event_type, "stream": self._stream},
            )
            return
        obs_metrics.MOD_NOTIFICATIONS_TOTAL.labels(channel="stream", result="ok").inc()

    async def drain(self) -> None:
        """Wait for every scheduled publish; used on shutdown and in tests."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
