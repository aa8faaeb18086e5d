import pytest
from fastapi import status

from gamehub.infra.jwt import encode_access
from gamehub.settings import settings


@pytest.fixture
def production(monkeypatch):
	monkeypatch.setattr(settings, "environment", "production")


@pytest.mark.asyncio
async def test_dev_headers_are_ignored_outside_dev(api_client, production):
	response = await api_client.get("/api/stats/me", headers={"X-User-Id": "alice"})
	assert response.status_code == status.HTTP_401_UNAUTHORIZED
	assert response.json()["detail"] == "invalid_token"


@pytest.mark.asyncio
async def test_bearer_token_carries_identity_and_role(api_client, production):
	token = encode_access("ada", name="Ada", role="admin")
	response = await api_client.get("/api/stats/dashboard", headers={"Authorization": f"Bearer {token}"})
	assert response.status_code == status.HTTP_200_OK


@pytest.mark.asyncio
async def test_unknown_role_claim_falls_back_to_user(api_client, production):
	token = encode_access("mallory", role="superuser")
	response = await api_client.get("/api/stats/dashboard", headers={"Authorization": f"Bearer {token}"})
	assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.asyncio
async def test_expired_or_tampered_tokens_are_rejected(api_client, production):
	expired = encode_access("alice", ttl_seconds=-60)
	tampered = encode_access("alice") + "x"
	for token in (expired, tampered):
		response = await api_client.get("/api/stats/me", headers={"Authorization": f"Bearer {token}"})
		assert response.status_code == status.HTTP_401_UNAUTHORIZED
