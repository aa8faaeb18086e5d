"""Utilities for wiring moderation workers into an event loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from redis.asyncio import Redis

from gamehub.infra.redis import RedisProxy
from gamehub.moderation.infra.discord import DiscordWebhookClient
from gamehub.moderation.workers.notifications_worker import NotificationsWorker
from gamehub.settings import settings

logger = logging.getLogger(__name__)


async def _run_forever(worker, delay: float) -> None:
    while True:
        try:
            await worker.run_once()
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001 - keep polling after transient failures
            logger.exception("moderation worker iteration failed", extra={"worker": type(worker).__name__})
        await asyncio.sleep(delay)


def spawn_workers(
    redis_client: Redis | RedisProxy,
    *,
    decisions_stream: Optional[str] = None,
    poll_interval: float = 0.1,
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> Iterable[asyncio.Task]:
    """Create asyncio tasks for the moderation notification relay."""

    event_loop = loop or asyncio.get_running_loop()
    discord = DiscordWebhookClient(settings.discord_webhook_urls, timeout_seconds=settings.discord_timeout_seconds)
    notifications = NotificationsWorker(
        redis=redis_client,
        discord=discord,
        base_url=settings.public_base_url,
        stream_key=decisions_stream or settings.decisions_stream,
    )
    return [
        event_loop.create_task(_run_forever(notifications, poll_interval), name="moderation-notifications"),
    ]
