"""Shared Redis client used for rate limits and the moderation event stream.

Modules import ``redis_client`` once; the object is a proxy so the connection
behind it can be replaced (fakeredis in tests) without re-importing.
"""

from __future__ import annotations

import logging

import redis.asyncio as redis

from gamehub.settings import settings

logger = logging.getLogger(__name__)


class RedisProxy:
	"""Forwards attribute access to whichever client is currently installed."""

	def __init__(self, client: redis.Redis):
		self._client: redis.Redis = client

	def set_client(self, client: redis.Redis) -> None:
		self._client = client

	@property
	def client(self) -> redis.Redis:
		return self._client

	def __getattr__(self, item):
		return getattr(self._client, item)


redis_client: RedisProxy = RedisProxy(redis.from_url(settings.redis_url, decode_responses=True))


def set_redis_client(client: redis.Redis) -> None:
	redis_client.set_client(client)


async def close_redis() -> None:
	try:
		await redis_client.client.aclose()
	except (ConnectionError, redis.RedisError):
		logger.warning("redis close failed", exc_info=True)
