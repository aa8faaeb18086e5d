from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from gamehub.moderation.domain.eligibility import (
    EligibilityThresholds,
    approval_rate,
    evaluate_eligibility,
    reapply_status,
)
from gamehub.moderation.domain.models import ApplicationStatus, ReviewerApplication, UserAggregate

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _user(**overrides) -> UserAggregate:
    values = dict(
        user_id="u-1",
        name="Alice",
        created_at=NOW - timedelta(days=60),
        submissions_count=25,
        approved_count=20,
        rejected_count=2,
    )
    values.update(overrides)
    return UserAggregate(**values)


def _rejected_application(decided_at: datetime) -> ReviewerApplication:
    return ReviewerApplication(
        id="app-1",
        user_id="u-1",
        user_name="Alice",
        motivation="I like tidy data",
        experience="Wiki editor for years",
        contribution_examples="Fixed many release dates",
        agreed_to_rules=True,
        created_at=decided_at - timedelta(days=1),
        status=ApplicationStatus.REJECTED,
        decided_at=decided_at,
    )


def test_young_account_with_few_submissions_lists_both_gaps():
    thresholds = EligibilityThresholds(min_account_age_days=30, min_submissions=5, min_approved=0, min_approval_rate=0)
    user = _user(created_at=NOW - timedelta(days=10), submissions_count=2, approved_count=0, rejected_count=0)

    report = evaluate_eligibility(user, thresholds, now=NOW)

    assert report.eligible is False
    assert report.account_age_days == 10
    assert len(report.missing_requirements) == 2
    assert any("30 days old (currently 10 days)" in item for item in report.missing_requirements)
    assert any("5 corrections submitted (currently 2)" in item for item in report.missing_requirements)


def test_established_contributor_is_eligible():
    report = evaluate_eligibility(_user(), EligibilityThresholds(), now=NOW)
    assert report.eligible is True
    assert report.missing_requirements == ()
    assert report.approval_rate == pytest.approx(20 / 22)


def test_low_approval_rate_blocks_application():
    report = evaluate_eligibility(_user(approved_count=10, rejected_count=10), EligibilityThresholds(), now=NOW)
    assert report.eligible is False
    assert report.missing_requirements == ("Approval rate must be at least 80% (currently 50%)",)


def test_reviewers_and_inactive_accounts_are_not_eligible():
    assert not evaluate_eligibility(_user(role="reviewer"), EligibilityThresholds(), now=NOW).eligible
    assert not evaluate_eligibility(_user(status="suspended"), EligibilityThresholds(), now=NOW).eligible


def test_approval_rate_over_decided_submissions_only():
    assert approval_rate(0, 0) == 0.0
    assert approval_rate(3, 1) == 0.75


def test_reapply_cooldown_rounds_remaining_days_up():
    decided = NOW - timedelta(days=10, hours=12)
    state = reapply_status([_rejected_application(decided)], 30, now=NOW)
    assert state.can_reapply is False
    assert state.days_until_reapply == 20
    assert state.last_rejected_at == decided


def test_reapply_allowed_after_cooldown_or_without_rejections():
    assert reapply_status([], 30, now=NOW).can_reapply is True
    expired = reapply_status([_rejected_application(NOW - timedelta(days=30))], 30, now=NOW)
    assert expired.can_reapply is True
