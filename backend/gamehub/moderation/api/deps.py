"""Shared FastAPI dependencies for moderation routers."""

from __future__ import annotations

from fastapi import Depends, HTTPException, status

from gamehub.infra.auth import AuthenticatedUser, get_admin_user, get_current_user, get_reviewer_user
from gamehub.infra.csrf import require_csrf
from gamehub.infra.rate_limit import RateLimiter
from gamehub.moderation.domain import container
from gamehub.moderation.domain.applications import ApplicationService
from gamehub.moderation.domain.audit import AuditReader, ReviewerActionRepository
from gamehub.moderation.domain.faqs import FaqReorderer, FaqRepository
from gamehub.moderation.domain.intake import IntakeService
from gamehub.moderation.domain.rbac import ReviewerContext, resolve_reviewer_context
from gamehub.moderation.domain.review import ReviewService
from gamehub.moderation.domain.stats import StatsService
from gamehub.settings import settings


def get_intake_service_dep() -> IntakeService:
    return container.get_intake_service()


def get_review_service_dep() -> ReviewService:
    return container.get_review_service()


def get_application_service_dep() -> ApplicationService:
    return container.get_application_service()


def get_stats_service_dep() -> StatsService:
    return container.get_stats_service()


def get_audit_reader_dep() -> AuditReader:
    return container.get_audit_reader()


def get_reviewer_actions_dep() -> ReviewerActionRepository:
    return container.get_reviewer_actions()


def get_faq_repository_dep() -> FaqRepository:
    return container.get_faqs()


def get_faq_reorderer_dep() -> FaqReorderer:
    return container.get_faq_reorderer()


def get_reviewer_context(user: AuthenticatedUser = Depends(get_reviewer_user)) -> ReviewerContext:
    return resolve_reviewer_context(user, override_ids=container.get_override_ids())


def get_admin_context(user: AuthenticatedUser = Depends(get_admin_user)) -> ReviewerContext:
    return resolve_reviewer_context(user, override_ids=container.get_override_ids())


def get_review_rate_limiter() -> RateLimiter:
    return RateLimiter(
        kind="review",
        limit=settings.review_rate_limit,
        window_seconds=settings.review_rate_window_seconds,
    )


def get_submit_rate_limiter() -> RateLimiter:
    return RateLimiter(
        kind="submit",
        limit=settings.submit_rate_limit,
        window_seconds=settings.submit_rate_window_seconds,
    )


async def enforce_review_rate_limit(
    user: AuthenticatedUser = Depends(get_current_user),
    limiter: RateLimiter = Depends(get_review_rate_limiter),
) -> None:
    if not await limiter.admit(user.id):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="rate_limited")


async def enforce_submit_rate_limit(
    user: AuthenticatedUser = Depends(get_current_user),
    limiter: RateLimiter = Depends(get_submit_rate_limiter),
) -> None:
    if not await limiter.admit(user.id):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="rate_limited")


# Mutating review routes: CSRF token first, then the per-reviewer budget.
REVIEW_GUARDS = [Depends(require_csrf), Depends(enforce_review_rate_limit)]
SUBMIT_GUARDS = [Depends(require_csrf), Depends(enforce_submit_rate_limit)]
