"""FastAPI application entrypoint."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gamehub import obs
from gamehub.api import ops
from gamehub.api.errors import install_error_handlers
from gamehub.infra import postgres
from gamehub.infra.redis import close_redis, redis_client
from gamehub.moderation import configure_postgres, router as moderation_router, spawn_workers
from gamehub.moderation.domain import container
from gamehub.moderation.infra.postgres_repo import ensure_schema
from gamehub.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	if settings.storage_backend == "postgres":
		pool = await postgres.init_pool()
		await ensure_schema(pool)
		configure_postgres(pool, redis_proxy=redis_client)
		logger.info("moderation storage ready", extra={"backend": "postgres"})
	worker_tasks: list[asyncio.Task] = []
	if settings.moderation_workers_enabled:
		worker_tasks.extend(spawn_workers(redis_client))
	try:
		yield
	finally:
		try:
			await container.get_faq_reorderer().flush()
			drain = getattr(container.get_notifier(), "drain", None)
			if callable(drain):
				await drain()
		finally:
			for task in worker_tasks:
				task.cancel()
			if worker_tasks:
				await asyncio.gather(*worker_tasks, return_exceptions=True)
			await postgres.close_pool()
			await close_redis()


app = FastAPI(title="GameHub Moderation", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else [settings.public_base_url]

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

obs.init(app)

app.include_router(ops.router)
app.include_router(moderation_router, tags=["moderation"])
