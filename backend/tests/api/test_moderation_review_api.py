from __future__ import annotations

import pytest

from gamehub.infra.csrf import issue_token
from gamehub.infra.rate_limit import RateLimiter
from gamehub.main import app
from gamehub.moderation.api.deps import get_review_rate_limiter
from gamehub.moderation.domain import container
from gamehub.moderation.domain.models import GameRecord
from gamehub.moderation.domain.store import InMemoryGameRepository


def _headers(user_id: str, *, role: str = "user", name: str | None = None) -> dict[str, str]:
	return {
		"X-User-Id": user_id,
		"X-User-Name": name or user_id.title(),
		"X-User-Role": role,
		"X-CSRF-Token": issue_token(user_id),
	}


ALICE = _headers("alice")
RITA = _headers("rita", role="reviewer")
ADMIN = _headers("ada", role="admin")


@pytest.fixture(autouse=True)
def seeded_games(fresh_container):
	container.configure(
		games=InMemoryGameRepository([GameRecord(slug="game-x", id="g-x", title="Foo", fields={"publisher": "Old Co"})])
	)


async def _propose(api_client, field: str, value, **extra) -> dict:
	body = {
		"gameId": "g-x",
		"gameSlug": "game-x",
		"gameTitle": "Foo",
		"field": field,
		"newValue": value,
		"reason": "Matches the store page",
		**extra,
	}
	resp = await api_client.post("/api/corrections", json=body, headers=ALICE)
	assert resp.status_code == 201, resp.text
	return resp.json()


@pytest.mark.asyncio
async def test_correction_lifecycle_through_queue_and_batch(api_client):
	first = await _propose(api_client, "title", "Bar", oldValue="Foo")
	second = await _propose(api_client, "developer", "Acme")
	assert first["status"] == "pending"
	assert first["oldValue"] == "Foo"

	queue = await api_client.get("/api/moderation/queue", headers=RITA)
	assert queue.status_code == 200
	groups = queue.json()["groups"]
	assert len(groups) == 1 and groups[0]["isBatch"] is True
	assert [item["id"] for item in groups[0]["submissions"]] == [first["id"], second["id"]]

	resp = await api_client.post(
		"/api/moderation/review-batch",
		json={
			"reviews": [
				{"submissionId": first["id"], "status": "approved"},
				{"submissionId": second["id"], "status": "approved"},
			]
		},
		headers=RITA,
	)
	assert resp.status_code == 200
	payload = resp.json()
	assert payload["committed"] == 2 and payload["failed"] == 0
	assert {item["submission"]["reviewedBy"] for item in payload["results"]} == {"rita"}

	game = await api_client.get("/api/game-submissions/games/game-x", headers=ALICE)
	assert game.json()["title"] == "Bar"
	assert game.json()["fields"]["developer"] == "Acme"

	audit = await api_client.get("/api/admin/audit", headers=ADMIN)
	assert audit.status_code == 200
	assert audit.json()["total"] == 2

	eligibility = await api_client.get("/api/reviewer-applications/eligibility", headers=ALICE)
	body = eligibility.json()
	assert body["submissionsCount"] == 2
	assert body["approvedCount"] == 2
	assert body["eligible"] is False
	assert body["missingRequirements"]


@pytest.mark.asyncio
async def test_review_error_mapping(api_client):
	submission = await _propose(api_client, "developer", "Acme")

	no_notes = await api_client.post(
		"/api/moderation/review",
		json={"submissionId": submission["id"], "status": "rejected"},
		headers=RITA,
	)
	assert no_notes.status_code == 400
	assert no_notes.json()["detail"] == "review_notes_required"
	assert "request_id" in no_notes.json()

	bad_status = await api_client.post(
		"/api/moderation/review",
		json={"submissionId": submission["id"], "status": "maybe"},
		headers=RITA,
	)
	assert bad_status.status_code == 400

	as_user = await api_client.post(
		"/api/moderation/review",
		json={"submissionId": submission["id"], "status": "approved"},
		headers=_headers("bob"),
	)
	assert as_user.status_code == 403
	assert as_user.json()["detail"] == "insufficient_role"

	missing = await api_client.post(
		"/api/moderation/review",
		json={"submissionId": "nope", "status": "approved"},
		headers=RITA,
	)
	assert missing.status_code == 404

	ok = await api_client.post(
		"/api/moderation/review",
		json={"submissionId": submission["id"], "status": "approved"},
		headers=RITA,
	)
	assert ok.status_code == 200
	assert ok.json()["status"] == "approved"

	again = await api_client.post(
		"/api/moderation/review",
		json={"submissionId": submission["id"], "status": "rejected", "reviewNotes": "late"},
		headers=_headers("ron", role="reviewer"),
	)
	assert again.status_code == 409
	assert again.json()["detail"] == "already_processed"


@pytest.mark.asyncio
async def test_self_review_is_forbidden(api_client):
	own = await api_client.post(
		"/api/corrections",
		json={
			"gameId": "g-x",
			"gameSlug": "game-x",
			"gameTitle": "Foo",
			"field": "developer",
			"newValue": "Acme",
			"reason": "I know it",
		},
		headers=RITA,
	)
	resp = await api_client.post(
		"/api/moderation/review",
		json={"submissionId": own.json()["id"], "status": "approved"},
		headers=RITA,
	)
	assert resp.status_code == 403
	assert resp.json()["detail"] == "self_review_forbidden"


@pytest.mark.asyncio
async def test_modify_with_explicit_null_clears_field(api_client):
	submission = await _propose(api_client, "publisher", "New Co", oldValue="Old Co")

	missing_value = await api_client.post(
		"/api/moderation/review",
		json={"submissionId": submission["id"], "status": "modified"},
		headers=RITA,
	)
	assert missing_value.status_code == 400
	assert missing_value.json()["detail"] == "final_value_required"

	cleared = await api_client.post(
		"/api/moderation/review",
		json={"submissionId": submission["id"], "status": "modified", "finalValue": None},
		headers=RITA,
	)
	assert cleared.status_code == 200
	assert cleared.json()["status"] == "modified"
	game = await api_client.get("/api/game-submissions/games/game-x", headers=ALICE)
	assert "publisher" not in game.json()["fields"]


@pytest.mark.asyncio
async def test_mutations_require_csrf_token(api_client):
	headers = dict(ALICE)
	headers.pop("X-CSRF-Token")
	resp = await api_client.post(
		"/api/corrections",
		json={
			"gameId": "g-x",
			"gameSlug": "game-x",
			"gameTitle": "Foo",
			"field": "developer",
			"newValue": "Acme",
			"reason": "Box art",
		},
		headers=headers,
	)
	assert resp.status_code == 403
	assert resp.json()["detail"] == "invalid_csrf_token"


@pytest.mark.asyncio
async def test_review_rate_limit(api_client):
	app.dependency_overrides[get_review_rate_limiter] = lambda: RateLimiter(kind="review-test", limit=1)
	try:
		submission = await _propose(api_client, "developer", "Acme")
		first = await api_client.post(
			"/api/moderation/review",
			json={"submissionId": submission["id"], "status": "approved"},
			headers=RITA,
		)
		second = await api_client.post(
			"/api/moderation/review",
			json={"submissionId": submission["id"], "status": "approved"},
			headers=RITA,
		)
	finally:
		app.dependency_overrides.pop(get_review_rate_limiter, None)
	assert first.status_code == 200
	assert second.status_code == 429
	assert second.json()["detail"] == "rate_limited"


@pytest.mark.asyncio
async def test_unknown_field_is_rejected_at_intake(api_client):
	resp = await api_client.post(
		"/api/corrections",
		json={
			"gameId": "g-x",
			"gameSlug": "game-x",
			"gameTitle": "Foo",
			"field": "hackerField",
			"newValue": "x",
			"reason": "because",
		},
		headers=ALICE,
	)
	assert resp.status_code == 400
	assert resp.json()["detail"] == "unknown_field"


@pytest.mark.asyncio
async def test_malformed_batch_item_does_not_block_the_rest(api_client):
	good = await _propose(api_client, "developer", "Acme")
	bad = await _propose(api_client, "publisher", "New Co", oldValue="Old Co")

	resp = await api_client.post(
		"/api/moderation/review-batch",
		json={
			"reviews": [
				{"submissionId": good["id"], "status": "approved"},
				{"submissionId": bad["id"], "status": "modified", "finalValue": {"nested": 1}},
			]
		},
		headers=RITA,
	)

	assert resp.status_code == 200, resp.text
	payload = resp.json()
	assert payload["committed"] == 1 and payload["failed"] == 1
	assert [(item["outcome"], item["error"]) for item in payload["results"]] == [
		("committed", None),
		("validation_error", "invalid_value_type"),
	]
	game = await api_client.get("/api/game-submissions/games/game-x", headers=ALICE)
	assert game.json()["fields"]["developer"] == "Acme"
	assert game.json()["fields"]["publisher"] == "Old Co"
