"""Reviewer eligibility and re-application cooldown.

Everything here is a pure function of the user's aggregate counters and
application history; it is recomputed on every request and never cached.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from gamehub.moderation.domain.models import ApplicationStatus, ReviewerApplication, UserAggregate, utcnow
from gamehub.settings import Settings


@dataclass(frozen=True, slots=True)
class EligibilityThresholds:
    min_account_age_days: float = 7
    min_submissions: int = 20
    min_approved: int = 10
    min_approval_rate: float = 0.8
    cooldown_days: float = 30

    @classmethod
    def from_settings(cls, settings: Settings) -> "EligibilityThresholds":
        return cls(
            min_account_age_days=settings.min_account_age_days,
            min_submissions=settings.min_corrections_submitted,
            min_approved=settings.min_corrections_accepted,
            min_approval_rate=settings.min_approval_rate,
            cooldown_days=settings.reapplication_cooldown_days,
        )


@dataclass(frozen=True, slots=True)
class EligibilityReport:
    eligible: bool
    account_age_days: int
    submissions_count: int
    approved_count: int
    rejected_count: int
    approval_rate: float
    missing_requirements: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ReapplyStatus:
    can_reapply: bool
    days_until_reapply: int | None = None
    last_rejected_at: datetime | None = None


def approval_rate(approved: int, rejected: int) -> float:
    """approved / (approved + rejected), or 0 when nothing has been decided."""
    reviewed = approved + rejected
    if reviewed <= 0:
        return 0.0
    return approved / reviewed


def evaluate_eligibility(
    user: UserAggregate,
    thresholds: EligibilityThresholds,
    *,
    now: datetime | None = None,
) -> EligibilityReport:
    now = now or utcnow()
    age_days = user.account_age_days(now=now)
    whole_days = math.floor(age_days)
    rate = approval_rate(user.approved_count, user.rejected_count)
    missing: list[str] = []

    if user.role != "user":
        missing.append("User must have 'user' role")
    if user.status != "active":
        missing.append("User account must be active")
    if age_days < thresholds.min_account_age_days:
        missing.append(
            f"Account must be at least {thresholds.min_account_age_days:g} days old (currently {whole_days} days)"
        )
    if user.submissions_count < thresholds.min_submissions:
        missing.append(
            f"Must have at least {thresholds.min_submissions} corrections submitted (currently {user.submissions_count})"
        )
    if user.approved_count < thresholds.min_approved:
        missing.append(
            f"Must have at least {thresholds.min_approved} corrections accepted (currently {user.approved_count})"
        )
    # Submitters with nothing decided yet are not held to the rate.
    if user.approved_count + user.rejected_count > 0 and rate < thresholds.min_approval_rate:
        missing.append(
            f"Approval rate must be at least {thresholds.min_approval_rate:.0%} (currently {rate:.0%})"
        )

    return EligibilityReport(
        eligible=not missing,
        account_age_days=whole_days,
        submissions_count=user.submissions_count,
        approved_count=user.approved_count,
        rejected_count=user.rejected_count,
        approval_rate=rate,
        missing_requirements=tuple(missing),
    )


def days_until_reapply(cooldown_days: float, elapsed_days: float) -> int:
    return math.ceil(cooldown_days - elapsed_days)


def reapply_status(
    applications: Iterable[ReviewerApplication],
    cooldown_days: float,
    *,
    now: datetime | None = None,
) -> ReapplyStatus:
    """Cooldown is measured from the most recent rejection's decision time."""
    now = now or utcnow()
    rejected = [
        application
        for application in applications
        if application.status is ApplicationStatus.REJECTED and application.decided_at is not None
    ]
    if not rejected:
        return ReapplyStatus(can_reapply=True)
    last = max(rejected, key=lambda application: application.decided_at)
    elapsed = (now - last.decided_at).total_seconds() / 86400
    if 0 <= elapsed < cooldown_days:
        return ReapplyStatus(
            can_reapply=False,
            days_until_reapply=days_until_reapply(cooldown_days, elapsed),
            last_rejected_at=last.decided_at,
        )
    return ReapplyStatus(can_reapply=True, last_rejected_at=last.decided_at)
