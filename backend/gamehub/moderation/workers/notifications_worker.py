"""Worker that relays moderation stream events to Discord webhooks."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from gamehub.moderation.infra.discord import DiscordWebhookClient, build_embed

logger = logging.getLogger(__name__)


class RedisStream(Protocol):
    async def xread(
        self,
        streams: Mapping[str, str],
        count: int,
        block: int,
    ) -> list[tuple[str, list[tuple[str, Mapping[Any, Any]]]]]:
        ...


@dataclass
class NotificationsWorker:
    """Consumes ``mod:decisions`` and posts one embed per event."""

    redis: RedisStream
    discord: DiscordWebhookClient
    base_url: str = "http://localhost:3000"
    stream_key: str = "mod:decisions"
    batch_size: int = 50
    block_ms: int = 5000
    last_id: str = "$"

    async def run_once(self) -> int:
        messages = await self.redis.xread({self.stream_key: self.last_id}, count=self.batch_size, block=self.block_ms)
        handled = 0
        if not messages:
            return handled
        for _stream, entries in messages:
            for entry_id, raw in entries:
                self.last_id = _text(entry_id)
                event = _decode(raw)
                try:
                    await self._handle_event(event)
                except Exception:  # noqa: BLE001 - do not halt on downstream failure
                    logger.exception("failed to relay moderation event", extra={"entry_id": self.last_id})
                    continue
                handled += 1
        return handled

    async def _handle_event(self, event: Mapping[str, Any]) -> None:
        event_type = str(event.get("type") or "")
        try:
            payload = json.loads(event.get("payload") or "{}")
        except ValueError:
            logger.debug("skipping event with malformed payload", extra={"event_type": event_type})
            return
        body = build_embed(event_type, payload, base_url=self.base_url)
        if body is None:
            logger.debug("skipping unknown event", extra={"event_type": event_type})
            return
        if self.discord.enabled:
            await self.discord.send(body)


def _text(value: Any) -> str:
    return value.decode("utf-8") if isinstance(value, (bytes, bytearray)) else str(value)


def _decode(payload: Mapping[Any, Any]) -> dict[str, Any]:
    return {_text(key): _text(value) for key, value in payload.items()}
