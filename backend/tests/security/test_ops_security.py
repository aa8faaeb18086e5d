import pytest
from fastapi import status

from gamehub.settings import settings


@pytest.mark.asyncio
async def test_metrics_fail_closed_without_token(api_client, monkeypatch):
	monkeypatch.setattr(settings, "obs_metrics_public", False)
	monkeypatch.setattr(settings, "obs_admin_token", None)

	response = await api_client.get("/metrics", headers={"X-Admin-Token": "whatever"})

	assert response.status_code == status.HTTP_403_FORBIDDEN
	assert response.json()["detail"] == "admin_token_not_configured"


@pytest.mark.asyncio
async def test_metrics_accept_bearer_token(api_client, monkeypatch):
	monkeypatch.setattr(settings, "obs_metrics_public", False)
	monkeypatch.setattr(settings, "obs_admin_token", "secret-token")

	response = await api_client.get("/metrics", headers={"Authorization": "Bearer secret-token"})

	assert response.status_code == status.HTTP_200_OK
	assert "gamehub_http_requests_total" in response.text


@pytest.mark.asyncio
async def test_metrics_reject_wrong_token(api_client, monkeypatch):
	monkeypatch.setattr(settings, "obs_metrics_public", False)
	monkeypatch.setattr(settings, "obs_admin_token", "secret-token")

	response = await api_client.get("/metrics", headers={"X-Admin-Token": "wrong-token"})

	assert response.status_code == status.HTTP_403_FORBIDDEN
	assert response.json()["detail"] == "forbidden"


@pytest.mark.asyncio
async def test_health_probes_report_memory_backend(api_client):
	live = await api_client.get("/health/live")
	assert live.json() == {"status": "ok"}

	ready = await api_client.get("/health/ready")
	assert ready.status_code == 200
	assert ready.json()["postgres"] == {"ok": True, "backend": "memory"}
	assert ready.json()["redis"]["ok"] is True
