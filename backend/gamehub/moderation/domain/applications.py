"""Reviewer applications: submission by users, decisions by admins."""

from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Protocol

from gamehub.infra.auth import AuthenticatedUser
from gamehub.moderation.domain import errors, notifications
from gamehub.moderation.domain.eligibility import (
    EligibilityReport,
    EligibilityThresholds,
    ReapplyStatus,
    evaluate_eligibility,
    reapply_status,
)
from gamehub.moderation.domain.intake import clean_text
from gamehub.moderation.domain.models import ApplicationStatus, ReviewerApplication, UserAggregate, utcnow
from gamehub.moderation.domain.notifications import NotificationDispatcher, NullDispatcher
from gamehub.moderation.domain.rbac import ReviewerContext, ensure_admin
from gamehub.moderation.domain.store import UserRepository, bounded
from gamehub.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 10
MAX_LONG_TEXT = 2000
MAX_AVAILABILITY = 500
MAX_LANGUAGES = 200
MAX_PRIOR_EXPERIENCE = 1000


@dataclass(slots=True)
class ApplicationForm:
    motivation: str
    experience: str
    contribution_examples: str
    agreed_to_rules: bool = False
    time_availability: str | None = None
    languages: str | None = None
    prior_experience: str | None = None


class ApplicationRepository(Protocol):
    async def create(self, application: ReviewerApplication) -> ReviewerApplication:
        """Persist a pending application; ``ConflictError`` if one is already pending."""
        ...

    async def get(self, application_id: str) -> ReviewerApplication | None:
        ...

    async def list_for_user(self, user_id: str) -> list[ReviewerApplication]:
        ...

    async def list(self, *, status: ApplicationStatus | None = None, limit: int = 100) -> list[ReviewerApplication]:
        ...

    async def decide(
        self,
        application_id: str,
        *,
        status: ApplicationStatus,
        admin_id: str,
        admin_name: str,
        notes: str | None,
        decided_at: datetime,
    ) -> ReviewerApplication:
        """Compare-and-set from pending; ``ConflictError`` if already decided."""
        ...


class InMemoryApplicationRepository:
    def __init__(self, applications: Iterable[ReviewerApplication] = ()) -> None:
        self._items: dict[str, ReviewerApplication] = {item.id: item for item in applications}
        self._lock = asyncio.Lock()

    async def create(self, application: ReviewerApplication) -> ReviewerApplication:
        async with self._lock:
            for existing in self._items.values():
                if existing.user_id == application.user_id and existing.status is ApplicationStatus.PENDING:
                    raise errors.ConflictError("application_pending", "You already have a pending application")
            self._items[application.id] = copy.copy(application)
        return application

    async def get(self, application_id: str) -> ReviewerApplication | None:
        item = self._items.get(application_id)
        return copy.copy(item) if item else None

    async def list_for_user(self, user_id: str) -> list[ReviewerApplication]:
        items = [copy.copy(item) for item in self._items.values() if item.user_id == user_id]
        items.sort(key=lambda item: item.created_at, reverse=True)
        return items

    async def list(self, *, status: ApplicationStatus | None = None, limit: int = 100) -> list[ReviewerApplication]:
        items = [copy.copy(item) for item in self._items.values() if status is None or item.status is status]
        items.sort(key=lambda item: item.created_at, reverse=True)
        return items[: max(0, limit)]

    async def decide(
        self,
        application_id: str,
        *,
        status: ApplicationStatus,
        admin_id: str,
        admin_name: str,
        notes: str | None,
        decided_at: datetime,
    ) -> ReviewerApplication:
        async with self._lock:
            item = self._items.get(application_id)
            if item is None:
                raise errors.NotFoundError("application_not_found")
            if item.status is not ApplicationStatus.PENDING:
                raise errors.ConflictError("application_already_decided", "Application has already been reviewed")
            item.status = status
            item.admin_id = admin_id
            item.admin_name = admin_name
            item.admin_notes = notes
            item.decided_at = decided_at
            return copy.copy(item)


@dataclass
class ApplicationService:
    applications: ApplicationRepository
    users: UserRepository
    thresholds: EligibilityThresholds = field(default_factory=EligibilityThresholds)
    notifier: NotificationDispatcher = field(default_factory=NullDispatcher)
    timeout_seconds: float | None = 5.0
    clock: Callable[[], datetime] = utcnow

    async def eligibility(self, user_id: str) -> EligibilityReport:
        user = await bounded(self.users.get(user_id), self.timeout_seconds)
        if user is None:
            raise errors.NotFoundError("user_not_found")
        return evaluate_eligibility(user, self.thresholds, now=self.clock())

    async def can_reapply(self, user_id: str) -> ReapplyStatus:
        history = await bounded(self.applications.list_for_user(user_id), self.timeout_seconds)
        return reapply_status(history, self.thresholds.cooldown_days, now=self.clock())

    async def has_pending_application(self, user_id: str) -> bool:
        history = await bounded(self.applications.list_for_user(user_id), self.timeout_seconds)
        return any(item.status is ApplicationStatus.PENDING for item in history)

    async def current(self, user_id: str) -> ReviewerApplication | None:
        history = await self.history(user_id)
        return history[0] if history else None

    async def history(self, user_id: str) -> list[ReviewerApplication]:
        return await bounded(self.applications.list_for_user(user_id), self.timeout_seconds)

    async def submit(self, applicant: AuthenticatedUser, form: ApplicationForm) -> ReviewerApplication:
        user = await bounded(self.users.get(applicant.id), self.timeout_seconds)
        if user is None:
            user = UserAggregate(user_id=applicant.id, name=applicant.name)
        if user.role != "user" or applicant.role != "user":
            self._count("rejected_role")
            raise errors.ForbiddenError("already_reviewer", "Only users can apply to become reviewers")

        report = evaluate_eligibility(user, self.thresholds, now=self.clock())
        if not report.eligible:
            self._count("ineligible")
            raise errors.ForbiddenError(
                "not_eligible",
                "You do not meet the requirements to apply",
                missing_requirements=list(report.missing_requirements),
            )

        if await self.has_pending_application(applicant.id):
            self._count("duplicate")
            raise errors.ConflictError("application_pending", "You already have a pending application")

        cooldown = await self.can_reapply(applicant.id)
        if not cooldown.can_reapply:
            self._count("cooldown")
            raise errors.ForbiddenError(
                "reapply_cooldown",
                f"You can re-apply in {cooldown.days_until_reapply} days",
                days_until_reapply=cooldown.days_until_reapply,
            )

        application = ReviewerApplication(
            id=uuid.uuid4().hex,
            user_id=applicant.id,
            user_name=applicant.name,
            motivation=_required(form.motivation, "motivation"),
            experience=_required(form.experience, "experience"),
            contribution_examples=_required(form.contribution_examples, "contribution_examples"),
            agreed_to_rules=_agreed(form.agreed_to_rules),
            created_at=self.clock(),
            time_availability=clean_text(form.time_availability, name="time_availability", max_length=MAX_AVAILABILITY),
            languages=clean_text(form.languages, name="languages", max_length=MAX_LANGUAGES),
            prior_experience=clean_text(
                form.prior_experience, name="prior_experience", max_length=MAX_PRIOR_EXPERIENCE
            ),
        )
        stored = await bounded(self.applications.create(application), self.timeout_seconds)
        self._count("accepted")
        logger.info("reviewer application submitted", extra={"application_id": stored.id, "user_id": stored.user_id})
        self.notifier.dispatch(
            notifications.APPLICATION_SUBMITTED,
            {"application_id": stored.id, "user_id": stored.user_id, "user_name": stored.user_name},
        )
        return stored

    async def list_applications(
        self,
        admin: ReviewerContext,
        *,
        status: ApplicationStatus | None = None,
        limit: int = 100,
    ) -> list[ReviewerApplication]:
        ensure_admin(admin)
        return await bounded(self.applications.list(status=status, limit=limit), self.timeout_seconds)

    async def approve(self, admin: ReviewerContext, application_id: str, *, notes: str | None = None) -> ReviewerApplication:
        decided = await self._decide(admin, application_id, ApplicationStatus.APPROVED, notes)
        await bounded(self.users.set_role(decided.user_id, "reviewer"), self.timeout_seconds)
        logger.info("user promoted to reviewer", extra={"user_id": decided.user_id, "admin_id": admin.id})
        return decided

    async def reject(self, admin: ReviewerContext, application_id: str, *, notes: str | None = None) -> ReviewerApplication:
        return await self._decide(admin, application_id, ApplicationStatus.REJECTED, notes)

    async def _decide(
        self,
        admin: ReviewerContext,
        application_id: str,
        status: ApplicationStatus,
        notes: str | None,
    ) -> ReviewerApplication:
        ensure_admin(admin)
        admin_notes = clean_text(notes, name="admin_notes", max_length=MAX_LONG_TEXT)
        decided = await bounded(
            self.applications.decide(
                application_id,
                status=status,
                admin_id=admin.id,
                admin_name=admin.name,
                notes=admin_notes,
                decided_at=self.clock(),
            ),
            self.timeout_seconds,
        )
        obs_metrics.MOD_APPLICATIONS_TOTAL.labels(stage="decision", outcome=status.value).inc()
        self.notifier.dispatch(
            notifications.APPLICATION_DECIDED,
            {
                "application_id": decided.id,
                "user_id": decided.user_id,
                "user_name": decided.user_name,
                "status": status.value,
                "admin_name": admin.name,
                "notes": admin_notes,
            },
        )
        return decided

    def _count(self, outcome: str) -> None:
        obs_metrics.MOD_APPLICATIONS_TOTAL.labels(stage="submit", outcome=outcome).inc()


def _required(value: str, name: str) -> str:
    text = clean_text(value, name=name, max_length=MAX_LONG_TEXT, min_length=MIN_TEXT_LENGTH, required=True)
    return text or ""


def _agreed(value: bool) -> bool:
    if value is not True:
        raise errors.ValidationError("rules_not_accepted", "You must agree to the reviewer rules")
    return True
