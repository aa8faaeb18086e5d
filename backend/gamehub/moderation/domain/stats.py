"""Contributor and dashboard statistics derived from stored submissions."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime

from gamehub.moderation.domain.audit import AuditReader
from gamehub.moderation.domain.eligibility import approval_rate
from gamehub.moderation.domain.models import Submission, SubmissionStatus
from gamehub.moderation.domain.store import SubmissionFilter, SubmissionStore, bounded

RECENT_LIMIT = 10
FRAUD_MIN_SUBMISSIONS = 10
FRAUD_REJECTION_RATE = 0.7


@dataclass(frozen=True, slots=True)
class UserStats:
    user_id: str
    total: int
    pending: int
    approved: int
    rejected: int
    modified: int
    approval_rate_percent: float
    last_submission_at: datetime | None
    recent: tuple[Submission, ...]


@dataclass(frozen=True, slots=True)
class FraudSignal:
    suspicious: bool
    rejection_rate: float
    submissions: int


@dataclass(frozen=True, slots=True)
class DashboardStats:
    total_submissions: int
    pending: int
    approved: int
    rejected: int
    modified: int
    total_changes: int


def _counts(submissions: list[Submission]) -> Counter:
    return Counter(item.status for item in submissions)


class StatsService:
    def __init__(self, store: SubmissionStore, audit: AuditReader, *, timeout_seconds: float | None = 5.0) -> None:
        self._store = store
        self._audit = audit
        self._timeout = timeout_seconds

    async def user_stats(self, user_id: str) -> UserStats:
        submissions = await bounded(self._store.list(SubmissionFilter(submitter_id=user_id)), self._timeout)
        counts = _counts(submissions)
        approved = counts[SubmissionStatus.APPROVED]
        rejected = counts[SubmissionStatus.REJECTED]
        return UserStats(
            user_id=user_id,
            total=len(submissions),
            pending=counts[SubmissionStatus.PENDING],
            approved=approved,
            rejected=rejected,
            modified=counts[SubmissionStatus.MODIFIED],
            approval_rate_percent=round(approval_rate(approved, rejected) * 100, 1),
            last_submission_at=submissions[0].submitted_at if submissions else None,
            recent=tuple(submissions[:RECENT_LIMIT]),
        )

    async def fraud_signal(self, user_id: str) -> FraudSignal:
        submissions = await bounded(self._store.list(SubmissionFilter(submitter_id=user_id)), self._timeout)
        rejected = _counts(submissions)[SubmissionStatus.REJECTED]
        rate = rejected / len(submissions) if submissions else 0.0
        return FraudSignal(
            suspicious=len(submissions) >= FRAUD_MIN_SUBMISSIONS and rate > FRAUD_REJECTION_RATE,
            rejection_rate=rate,
            submissions=len(submissions),
        )

    async def dashboard(self) -> DashboardStats:
        submissions = await bounded(self._store.list(SubmissionFilter()), self._timeout)
        counts = _counts(submissions)
        total_changes = await bounded(self._audit.count(), self._timeout)
        return DashboardStats(
            total_submissions=len(submissions),
            pending=counts[SubmissionStatus.PENDING],
            approved=counts[SubmissionStatus.APPROVED],
            rejected=counts[SubmissionStatus.REJECTED],
            modified=counts[SubmissionStatus.MODIFIED],
            total_changes=total_changes,
        )
