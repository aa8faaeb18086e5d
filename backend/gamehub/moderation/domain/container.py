"""Lightweight service container shared by moderation modules."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

import asyncpg

from gamehub.infra.redis import RedisProxy, redis_client
from gamehub.moderation.domain.applications import (
    ApplicationRepository,
    ApplicationService,
    InMemoryApplicationRepository,
)
from gamehub.moderation.domain.audit import (
    AuditLog,
    AuditReader,
    InMemoryAuditLog,
    InMemoryReviewerActionRepository,
    ReviewerActionRepository,
)
from gamehub.moderation.domain.eligibility import EligibilityThresholds
from gamehub.moderation.domain.faqs import FaqReorderer, FaqRepository, InMemoryFaqRepository
from gamehub.moderation.domain.intake import IntakeService
from gamehub.moderation.domain.models import utcnow
from gamehub.moderation.domain.notifications import NotificationDispatcher, RedisStreamDispatcher
from gamehub.moderation.domain.review import ReviewService
from gamehub.moderation.domain.stats import StatsService
from gamehub.moderation.domain.store import (
    GameRepository,
    InMemoryGameRepository,
    InMemorySubmissionStore,
    InMemoryUserRepository,
    SubmissionStore,
    UserRepository,
)
from gamehub.moderation.infra.postgres_repo import (
    PostgresApplicationRepository,
    PostgresAuditLog,
    PostgresFaqRepository,
    PostgresGameRepository,
    PostgresReviewerActionRepository,
    PostgresSubmissionStore,
    PostgresUserRepository,
)
from gamehub.settings import settings

_users: UserRepository = InMemoryUserRepository()
_store: SubmissionStore = InMemorySubmissionStore(users=_users)  # type: ignore[arg-type]
_games: GameRepository = InMemoryGameRepository()
_faqs: FaqRepository = InMemoryFaqRepository()
_audit: AuditLog = InMemoryAuditLog()
_actions: ReviewerActionRepository = InMemoryReviewerActionRepository()
_applications: ApplicationRepository = InMemoryApplicationRepository()
_redis_proxy: RedisProxy = redis_client
_notifier: NotificationDispatcher = RedisStreamDispatcher(_redis_proxy, stream=settings.decisions_stream)
_override_ids: tuple[str, ...] = tuple(settings.moderation_override_ids)
_thresholds = EligibilityThresholds.from_settings(settings)
_clock: Callable[[], datetime] = utcnow

_intake_service: IntakeService
_review_service: ReviewService
_application_service: ApplicationService
_stats_service: StatsService
_faq_reorderer: FaqReorderer


def _rebuild() -> None:
    global _intake_service, _review_service, _application_service, _stats_service, _faq_reorderer
    timeout = settings.store_timeout_seconds
    _intake_service = IntakeService(
        store=_store,
        users=_users,
        notifier=_notifier,
        timeout_seconds=timeout,
        clock=_clock,
    )
    _review_service = ReviewService(
        store=_store,
        audit=_audit,
        games=_games,
        faqs=_faqs,
        actions=_actions,
        notifier=_notifier,
        timeout_seconds=timeout,
        merge_window=timedelta(minutes=settings.batch_merge_window_minutes),
        clock=_clock,
    )
    _application_service = ApplicationService(
        applications=_applications,
        users=_users,
        thresholds=_thresholds,
        notifier=_notifier,
        timeout_seconds=timeout,
        clock=_clock,
    )
    _stats_service = StatsService(_store, _audit, timeout_seconds=timeout)
    _faq_reorderer = FaqReorderer(_faqs, delay_seconds=settings.faq_reorder_debounce_seconds)


_rebuild()


def configure(
    *,
    store: Optional[SubmissionStore] = None,
    users: Optional[UserRepository] = None,
    games: Optional[GameRepository] = None,
    faqs: Optional[FaqRepository] = None,
    audit: Optional[AuditLog] = None,
    actions: Optional[ReviewerActionRepository] = None,
    applications: Optional[ApplicationRepository] = None,
    notifier: Optional[NotificationDispatcher] = None,
    redis_proxy: Optional[RedisProxy] = None,
    override_ids: Optional[Sequence[str]] = None,
    thresholds: Optional[EligibilityThresholds] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> None:
    global _store, _users, _games, _faqs, _audit, _actions, _applications
    global _notifier, _redis_proxy, _override_ids, _thresholds, _clock
    if users is not None:
        _users = users
    if store is not None:
        _store = store
    if games is not None:
        _games = games
    if faqs is not None:
        _faqs = faqs
    if audit is not None:
        _audit = audit
    if actions is not None:
        _actions = actions
    if applications is not None:
        _applications = applications
    _redis_proxy = redis_proxy or _redis_proxy
    if notifier is not None:
        _notifier = notifier
    elif redis_proxy is not None:
        _notifier = RedisStreamDispatcher(_redis_proxy, stream=settings.decisions_stream)
    if override_ids is not None:
        _override_ids = tuple(override_ids)
    if thresholds is not None:
        _thresholds = thresholds
    if clock is not None:
        _clock = clock
    _rebuild()


def reset_in_memory() -> None:
    """Swap in fresh in-memory repositories sharing one user table."""
    users = InMemoryUserRepository()
    configure(
        users=users,
        store=InMemorySubmissionStore(users=users),
        games=InMemoryGameRepository(),
        faqs=InMemoryFaqRepository(),
        audit=InMemoryAuditLog(),
        actions=InMemoryReviewerActionRepository(),
        applications=InMemoryApplicationRepository(),
    )


def configure_postgres(pool: asyncpg.Pool, *, redis_proxy: Optional[RedisProxy] = None) -> None:
    configure(
        users=PostgresUserRepository(pool),
        store=PostgresSubmissionStore(pool),
        games=PostgresGameRepository(pool),
        faqs=PostgresFaqRepository(pool),
        audit=PostgresAuditLog(pool),
        actions=PostgresReviewerActionRepository(pool),
        applications=PostgresApplicationRepository(pool),
        redis_proxy=redis_proxy,
    )


def get_store() -> SubmissionStore:
    return _store


def get_users() -> UserRepository:
    return _users


def get_games() -> GameRepository:
    return _games


def get_faqs() -> FaqRepository:
    return _faqs


def get_audit_reader() -> AuditReader:
    return _audit


def get_reviewer_actions() -> ReviewerActionRepository:
    return _actions


def get_notifier() -> NotificationDispatcher:
    return _notifier


def get_override_ids() -> tuple[str, ...]:
    return _override_ids


def get_intake_service() -> IntakeService:
    return _intake_service


def get_review_service() -> ReviewService:
    return _review_service


def get_application_service() -> ApplicationService:
    return _application_service


def get_stats_service() -> StatsService:
    return _stats_service


def get_faq_reorderer() -> FaqReorderer:
    return _faq_reorderer
