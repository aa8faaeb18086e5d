import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from gamehub.infra import postgres
from gamehub.infra.csrf import get_csrf_validator
from gamehub.main import app
from gamehub.moderation.domain import container
from gamehub.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from gamehub.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		drain = getattr(container.get_notifier(), "drain", None)
		if callable(drain):
			await drain()
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	API tests authenticate via X-User-* headers, which are only accepted in dev
	mode. Storage is always the in-memory backend.
	"""
	original_env = settings.environment
	original_backend = settings.storage_backend
	original_workers = settings.moderation_workers_enabled
	settings.environment = "dev"
	settings.storage_backend = "memory"
	settings.moderation_workers_enabled = False
	try:
		yield
	finally:
		settings.environment = original_env
		settings.storage_backend = original_backend
		settings.moderation_workers_enabled = original_workers


@pytest.fixture(autouse=True)
def fresh_container():
	container.reset_in_memory()
	container.configure(override_ids=())
	yield
	container.reset_in_memory()


@pytest.fixture
def csrf_disabled():
	from gamehub.infra.csrf import CsrfValidator

	app.dependency_overrides[get_csrf_validator] = lambda: CsrfValidator(secret="test", ttl_seconds=60, required=False)
	try:
		yield
	finally:
		app.dependency_overrides.pop(get_csrf_validator, None)


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
