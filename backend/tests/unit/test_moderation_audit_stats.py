from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from gamehub.moderation.domain.audit import AuditQuery, InMemoryAuditLog, audit_entry_id
from gamehub.moderation.domain.models import (
    AuditLogEntry,
    CorrectionPayload,
    ReviewDecision,
    Submission,
    SubmissionKind,
    SubmissionStatus,
    TargetRef,
)
from gamehub.moderation.domain.stats import StatsService
from gamehub.moderation.domain.store import InMemorySubmissionStore
from gamehub.moderation.domain.values import FieldValue

T0 = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _entry(submission_id: str, *, minutes: int, role: str = "reviewer", field: str = "developer", notes=None) -> AuditLogEntry:
    return AuditLogEntry(
        id=audit_entry_id(submission_id),
        submission_id=submission_id,
        submission_kind=SubmissionKind.CORRECTION,
        action=SubmissionStatus.APPROVED,
        field=field,
        target=TargetRef(game_id="g-1", slug="half-life", title="Half-Life"),
        old_value=FieldValue.clear(),
        new_value=FieldValue.text("Valve"),
        changed_by="rev-1" if role == "reviewer" else "admin-1",
        changed_by_name="Rita" if role == "reviewer" else "Ada",
        changed_by_role=role,
        changed_at=T0 + timedelta(minutes=minutes),
        submitted_by="alice",
        submitted_by_name="Alice",
        notes=notes,
    )


@pytest.mark.asyncio
async def test_audit_append_is_idempotent_per_submission():
    log = InMemoryAuditLog()
    await log.append(_entry("s-1", minutes=0))
    await log.append(_entry("s-1", minutes=5))
    assert await log.count() == 1
    stored = await log.get("audit:s-1")
    assert stored is not None and stored.changed_at == T0


@pytest.mark.asyncio
async def test_audit_filters_search_and_sort():
    log = InMemoryAuditLog()
    await log.append(_entry("s-1", minutes=0))
    await log.append(_entry("s-2", minutes=1, role="admin", field="publisher", notes="Confirmed on Steam"))
    await log.append(_entry("s-3", minutes=2))

    newest_first = await log.list()
    assert [entry.submission_id for entry in newest_first] == ["s-3", "s-2", "s-1"]
    oldest_first = await log.list(AuditQuery(descending=False, limit=2))
    assert [entry.submission_id for entry in oldest_first] == ["s-1", "s-2"]

    assert [e.submission_id for e in await log.list(AuditQuery(role="admin"))] == ["s-2"]
    assert [e.submission_id for e in await log.list(AuditQuery(field="publisher"))] == ["s-2"]
    assert [e.submission_id for e in await log.list(AuditQuery(search="  STEAM "))] == ["s-2"]
    assert len(await log.list(AuditQuery(target_slug="half-life"))) == 3
    assert await log.list(AuditQuery(submitter_id="bob")) == []


def test_audit_query_clamps_limit():
    assert AuditQuery(limit=0).limit == 1
    assert AuditQuery(limit=5000).limit == 1000


def _submission(submission_id: str, *, minutes: int) -> Submission:
    return Submission(
        id=submission_id,
        kind=SubmissionKind.CORRECTION,
        submitter_id="alice",
        submitter_name="Alice",
        submitted_at=T0 + timedelta(minutes=minutes),
        payload=CorrectionPayload(field="developer", old_value=FieldValue.clear(), new_value=FieldValue.text("Valve")),
        target=TargetRef(game_id="g-1", slug="half-life", title="Half-Life"),
    )


async def _seed(store: InMemorySubmissionStore, statuses: list[SubmissionStatus]) -> None:
    for index, status in enumerate(statuses):
        submission = _submission(f"s-{index}", minutes=index)
        await store.create(submission)
        if status is not SubmissionStatus.PENDING:
            decision = ReviewDecision(
                status=status,
                reviewer_id="rev-1",
                reviewer_name="Rita",
                reviewer_role="reviewer",
                decided_at=T0 + timedelta(hours=1),
                notes="ok",
            )
            await store.set_decision(submission.id, decision)


@pytest.mark.asyncio
async def test_user_stats_and_dashboard():
    store = InMemorySubmissionStore()
    audit = InMemoryAuditLog()
    await audit.append(_entry("s-1", minutes=0))
    await _seed(
        store,
        [
            SubmissionStatus.APPROVED,
            SubmissionStatus.APPROVED,
            SubmissionStatus.APPROVED,
            SubmissionStatus.REJECTED,
            SubmissionStatus.MODIFIED,
            SubmissionStatus.PENDING,
        ],
    )
    service = StatsService(store, audit)

    stats = await service.user_stats("alice")
    assert (stats.total, stats.pending, stats.approved, stats.rejected, stats.modified) == (6, 1, 3, 1, 1)
    assert stats.approval_rate_percent == 75.0
    assert stats.last_submission_at == T0 + timedelta(minutes=5)
    assert stats.recent[0].id == "s-5"

    dashboard = await service.dashboard()
    assert dashboard.total_submissions == 6
    assert dashboard.total_changes == 1


@pytest.mark.asyncio
async def test_fraud_signal_needs_volume_and_high_rejection_rate():
    store = InMemorySubmissionStore()
    await _seed(store, [SubmissionStatus.REJECTED] * 8 + [SubmissionStatus.APPROVED] * 2)
    signal = await StatsService(store, InMemoryAuditLog()).fraud_signal("alice")
    assert signal.suspicious is True
    assert signal.rejection_rate == pytest.approx(0.8)

    quiet = InMemorySubmissionStore()
    await _seed(quiet, [SubmissionStatus.REJECTED] * 5)
    assert (await StatsService(quiet, InMemoryAuditLog()).fraud_signal("alice")).suspicious is False
