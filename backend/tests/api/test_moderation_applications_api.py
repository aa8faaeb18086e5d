from __future__ import annotations

from datetime import timedelta

import pytest

from gamehub.infra.csrf import issue_token
from gamehub.moderation.domain import container
from gamehub.moderation.domain.models import UserAggregate, utcnow


def _headers(user_id: str, *, role: str = "user") -> dict[str, str]:
	return {
		"X-User-Id": user_id,
		"X-User-Name": user_id.title(),
		"X-User-Role": role,
		"X-CSRF-Token": issue_token(user_id),
	}


APPLICATION = {
	"motivation": "I want to keep game data accurate.",
	"experience": "Two years editing a fan wiki.",
	"contributionExamples": "Fixed release dates for a whole series.",
	"agreedToRules": True,
	"languages": "English",
}


async def _seed_contributor(user_id: str = "alice", **overrides) -> None:
	values = dict(
		user_id=user_id,
		name=user_id.title(),
		created_at=utcnow() - timedelta(days=60),
		submissions_count=30,
		approved_count=25,
		rejected_count=2,
	)
	values.update(overrides)
	await container.get_users().save(UserAggregate(**values))


@pytest.mark.asyncio
async def test_eligibility_payload_shape(api_client):
	await _seed_contributor(created_at=utcnow() - timedelta(days=10), submissions_count=2, approved_count=0, rejected_count=0)
	resp = await api_client.get("/api/reviewer-applications/eligibility", headers=_headers("alice"))
	assert resp.status_code == 200
	body = resp.json()
	assert set(body) == {
		"eligible",
		"accountAgeDays",
		"submissionsCount",
		"approvedCount",
		"rejectedCount",
		"approvalRate",
		"missingRequirements",
	}
	assert body["eligible"] is False
	assert body["accountAgeDays"] == 10
	assert len(body["missingRequirements"]) == 2


@pytest.mark.asyncio
async def test_unknown_user_eligibility_is_404(api_client):
	resp = await api_client.get("/api/reviewer-applications/eligibility", headers=_headers("ghost"))
	assert resp.status_code == 404


@pytest.mark.asyncio
async def test_apply_then_admin_approves(api_client):
	await _seed_contributor()
	alice = _headers("alice")

	created = await api_client.post("/api/reviewer-applications", json=APPLICATION, headers=alice)
	assert created.status_code == 201, created.text
	application_id = created.json()["id"]
	assert created.json()["status"] == "pending"

	duplicate = await api_client.post("/api/reviewer-applications", json=APPLICATION, headers=alice)
	assert duplicate.status_code == 409
	assert duplicate.json()["detail"] == "application_pending"

	current = await api_client.get("/api/reviewer-applications/current", headers=alice)
	assert current.json()["application"]["id"] == application_id
	assert current.json()["reapply"]["canReapply"] is True

	as_user = await api_client.get("/api/reviewer-applications/admin", headers=alice)
	assert as_user.status_code == 403

	admin = _headers("ada", role="admin")
	listing = await api_client.get("/api/reviewer-applications/admin", params={"status": "pending"}, headers=admin)
	assert [item["id"] for item in listing.json()] == [application_id]

	approved = await api_client.post(
		f"/api/reviewer-applications/admin/{application_id}/approve",
		json={"notes": "Welcome"},
		headers=admin,
	)
	assert approved.status_code == 200
	assert approved.json()["status"] == "approved"
	assert approved.json()["adminName"] == "Ada"
	user = await container.get_users().get("alice")
	assert user is not None and user.role == "reviewer"

	again = await api_client.post(f"/api/reviewer-applications/admin/{application_id}/reject", headers=admin)
	assert again.status_code == 409


@pytest.mark.asyncio
async def test_rejected_applicant_sees_cooldown(api_client):
	await _seed_contributor()
	alice = _headers("alice")
	admin = _headers("ada", role="admin")

	created = await api_client.post("/api/reviewer-applications", json=APPLICATION, headers=alice)
	await api_client.post(f"/api/reviewer-applications/admin/{created.json()['id']}/reject", headers=admin)

	retry = await api_client.post("/api/reviewer-applications", json=APPLICATION, headers=alice)
	assert retry.status_code == 403
	assert retry.json()["detail"] == "reapply_cooldown"
	assert retry.json()["days_until_reapply"] == 30

	history = await api_client.get("/api/reviewer-applications/history", headers=alice)
	assert [item["status"] for item in history.json()] == ["rejected"]


@pytest.mark.asyncio
async def test_short_answers_are_rejected(api_client):
	await _seed_contributor()
	resp = await api_client.post(
		"/api/reviewer-applications",
		json={**APPLICATION, "motivation": "short"},
		headers=_headers("alice"),
	)
	assert resp.status_code == 400
	assert resp.json()["detail"] == "motivation_too_short"


@pytest.mark.asyncio
async def test_ineligible_applicant_is_told_why(api_client):
	await _seed_contributor(submissions_count=1, approved_count=1, rejected_count=0)
	resp = await api_client.post("/api/reviewer-applications", json=APPLICATION, headers=_headers("alice"))
	assert resp.status_code == 403
	assert resp.json()["detail"] == "not_eligible"
	assert resp.json()["missing_requirements"]
