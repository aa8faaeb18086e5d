from __future__ import annotations

import pytest

from gamehub.infra.csrf import issue_token
from gamehub.moderation.domain import container


def _headers(user_id: str, *, role: str = "user") -> dict[str, str]:
	return {
		"X-User-Id": user_id,
		"X-User-Name": user_id.title(),
		"X-User-Role": role,
		"X-CSRF-Token": issue_token(user_id),
	}


ALICE = _headers("alice")
RITA = _headers("rita", role="reviewer")
ADMIN = _headers("ada", role="admin")


async def _approve(api_client, submission_id: str) -> None:
	resp = await api_client.post(
		"/api/moderation/review",
		json={"submissionId": submission_id, "status": "approved"},
		headers=RITA,
	)
	assert resp.status_code == 200, resp.text


@pytest.mark.asyncio
async def test_game_submission_creates_record_on_approval(api_client):
	created = await api_client.post(
		"/api/game-submissions",
		json={
			"slug": "portal",
			"title": "Portal",
			"fields": {"developer": "Valve", "genres": ["Puzzle"], "publisher": ""},
			"notes": "Missing from the database",
		},
		headers=ALICE,
	)
	assert created.status_code == 201, created.text
	assert created.json()["proposedFields"] == {"developer": "Valve", "genres": ["Puzzle"]}

	listing = await api_client.get("/api/game-submissions", params={"status": "pending"}, headers=RITA)
	assert [item["id"] for item in listing.json()["items"]] == [created.json()["id"]]

	await _approve(api_client, created.json()["id"])

	game = await api_client.get("/api/game-submissions/games/portal", headers=ALICE)
	assert game.status_code == 200
	body = game.json()
	assert body["fields"] == {"developer": "Valve", "genres": ["Puzzle"]}
	assert body["readyToPublish"] is False
	assert body["updateHistory"][0]["field"] == "*"

	mine = await api_client.get("/api/game-submissions/mine", headers=ALICE)
	assert mine.json()["items"][0]["status"] == "approved"


@pytest.mark.asyncio
async def test_unknown_game_is_404(api_client):
	resp = await api_client.get("/api/game-submissions/games/nothing", headers=ALICE)
	assert resp.status_code == 404
	assert resp.json()["detail"] == "game_not_found"


@pytest.mark.asyncio
async def test_faq_flow_and_reorder(api_client):
	ids = []
	for question in ("How do I install the game?", "Where are save files kept?"):
		created = await api_client.post(
			"/api/faq-submissions",
			json={"question": question, "answer": "Check the community guide first."},
			headers=ALICE,
		)
		assert created.status_code == 201, created.text
		await _approve(api_client, created.json()["id"])

	faqs = await api_client.get("/api/faqs")
	ids = [entry["id"] for entry in faqs.json()]
	assert [entry["order"] for entry in faqs.json()] == [0, 1]

	forbidden = await api_client.put("/api/faqs/order", json={"orderedIds": ids[::-1]}, headers=RITA)
	assert forbidden.status_code == 403

	mismatch = await api_client.put("/api/faqs/order", json={"orderedIds": ids[:1]}, headers=ADMIN)
	assert mismatch.status_code == 400
	assert mismatch.json()["detail"] == "faq_order_mismatch"

	accepted = await api_client.put("/api/faqs/order", json={"orderedIds": ids[::-1]}, headers=ADMIN)
	assert accepted.status_code == 202
	await container.get_faq_reorderer().flush()

	reordered = await api_client.get("/api/faqs")
	assert [entry["id"] for entry in reordered.json()] == ids[::-1]


@pytest.mark.asyncio
async def test_stats_endpoints(api_client):
	created = await api_client.post(
		"/api/faq-submissions",
		json={"question": "Is there multiplayer?", "answer": "Only local co-op."},
		headers=ALICE,
	)
	await api_client.post(
		"/api/moderation/review",
		json={"submissionId": created.json()["id"], "status": "rejected", "reviewNotes": "Duplicate"},
		headers=RITA,
	)

	mine = await api_client.get("/api/stats/me", headers=ALICE)
	assert mine.status_code == 200
	assert mine.json()["rejected"] == 1
	assert mine.json()["approvalRate"] == 0.0

	dashboard = await api_client.get("/api/stats/dashboard", headers=ADMIN)
	assert dashboard.json() == {
		"totalSubmissions": 1,
		"pending": 0,
		"approved": 0,
		"rejected": 1,
		"modified": 0,
		"totalChanges": 1,
	}
	assert (await api_client.get("/api/stats/dashboard", headers=RITA)).status_code == 403
