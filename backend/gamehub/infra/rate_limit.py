"""Simple Redis-backed rate limiting utilities."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Optional

from redis.asyncio import Redis

from gamehub.infra.redis import RedisProxy, redis_client


async def allow(
	kind: str,
	actor_id: str,
	*,
	limit: int,
	window_seconds: int = 60,
	now: Optional[float] = None,
	redis: Redis | RedisProxy | None = None,
) -> bool:
	"""Return True when the operation is still within the allowed budget."""

	if limit <= 0:
		return False
	client = redis or redis_client
	now = now or time.time()
	window = max(1, int(window_seconds))
	slot = int(math.floor(now / window))
	key = f"rl:{kind}:{actor_id}:{slot}:{window}"
	async with client.pipeline(transaction=True) as pipe:
		pipe.incr(key)
		pipe.expire(key, window)
		count, _ = await pipe.execute()
	return int(count) <= limit


@dataclass(slots=True)
class RateLimiter:
	"""Admission check bound to one route family.

	Instances are resolved per request through FastAPI dependencies so tests can
	override them without touching module state.
	"""

	kind: str
	limit: int
	window_seconds: int = 60
	redis: Redis | RedisProxy | None = None

	async def admit(self, actor_id: str) -> bool:
		return await allow(
			self.kind,
			actor_id,
			limit=self.limit,
			window_seconds=self.window_seconds,
			redis=self.redis,
		)
