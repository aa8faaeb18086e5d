"""Reviewer eligibility, applications and admin decisions."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field

from gamehub.infra.auth import AuthenticatedUser, get_current_user
from gamehub.infra.csrf import require_csrf
from gamehub.moderation.domain.applications import ApplicationForm, ApplicationService
from gamehub.moderation.domain.audit import ReviewerActionRepository
from gamehub.moderation.domain.eligibility import EligibilityReport, ReapplyStatus
from gamehub.moderation.domain.models import ApplicationStatus, ReviewerAction, ReviewerApplication
from gamehub.moderation.domain.rbac import ReviewerContext
from gamehub.moderation.domain.store import bounded
from gamehub.settings import settings

from .deps import SUBMIT_GUARDS, get_admin_context, get_application_service_dep, get_reviewer_actions_dep
from .schemas import CamelModel, TargetOut


router = APIRouter(prefix="/api/reviewer-applications", tags=["moderation-applications"])


class EligibilityOut(CamelModel):
    eligible: bool
    account_age_days: int
    submissions_count: int
    approved_count: int
    rejected_count: int
    approval_rate: float
    missing_requirements: list[str]

    @classmethod
    def from_model(cls, report: EligibilityReport) -> "EligibilityOut":
        return cls(
            eligible=report.eligible,
            account_age_days=report.account_age_days,
            submissions_count=report.submissions_count,
            approved_count=report.approved_count,
            rejected_count=report.rejected_count,
            approval_rate=report.approval_rate,
            missing_requirements=list(report.missing_requirements),
        )


class ReapplyOut(CamelModel):
    can_reapply: bool
    days_until_reapply: int | None = None
    last_rejected_at: datetime | None = None

    @classmethod
    def from_model(cls, state: ReapplyStatus) -> "ReapplyOut":
        return cls(
            can_reapply=state.can_reapply,
            days_until_reapply=state.days_until_reapply,
            last_rejected_at=state.last_rejected_at,
        )


class ApplicationIn(CamelModel):
    motivation: str
    experience: str
    contribution_examples: str
    agreed_to_rules: bool = False
    time_availability: str | None = None
    languages: str | None = None
    prior_experience: str | None = None

    def to_form(self) -> ApplicationForm:
        return ApplicationForm(
            motivation=self.motivation,
            experience=self.experience,
            contribution_examples=self.contribution_examples,
            agreed_to_rules=self.agreed_to_rules,
            time_availability=self.time_availability,
            languages=self.languages,
            prior_experience=self.prior_experience,
        )


class ApplicationOut(CamelModel):
    id: str
    user_id: str
    user_name: str
    motivation: str
    experience: str
    contribution_examples: str
    agreed_to_rules: bool
    time_availability: str | None
    languages: str | None
    prior_experience: str | None
    status: str
    created_at: datetime
    decided_at: datetime | None
    admin_id: str | None
    admin_name: str | None
    admin_notes: str | None

    @classmethod
    def from_model(cls, application: ReviewerApplication) -> "ApplicationOut":
        return cls(
            id=application.id,
            user_id=application.user_id,
            user_name=application.user_name,
            motivation=application.motivation,
            experience=application.experience,
            contribution_examples=application.contribution_examples,
            agreed_to_rules=application.agreed_to_rules,
            time_availability=application.time_availability,
            languages=application.languages,
            prior_experience=application.prior_experience,
            status=application.status.value,
            created_at=application.created_at,
            decided_at=application.decided_at,
            admin_id=application.admin_id,
            admin_name=application.admin_name,
            admin_notes=application.admin_notes,
        )


class CurrentApplicationOut(CamelModel):
    application: ApplicationOut | None
    reapply: ReapplyOut


class ApplicationDecisionIn(CamelModel):
    notes: str | None = Field(default=None, max_length=2000)


class ReviewerActionOut(CamelModel):
    id: str
    reviewer_id: str
    reviewer_name: str
    submission_id: str
    submission_kind: str
    action: str
    created_at: datetime
    target: TargetOut | None

    @classmethod
    def from_model(cls, action: ReviewerAction) -> "ReviewerActionOut":
        return cls(
            id=action.id,
            reviewer_id=action.reviewer_id,
            reviewer_name=action.reviewer_name,
            submission_id=action.submission_id,
            submission_kind=action.submission_kind.value,
            action=action.action.value,
            created_at=action.created_at,
            target=TargetOut.from_model(action.target),
        )


@router.get("/eligibility", response_model=EligibilityOut)
async def my_eligibility(
    service: ApplicationService = Depends(get_application_service_dep),
    user: AuthenticatedUser = Depends(get_current_user),
) -> EligibilityOut:
    return EligibilityOut.from_model(await service.eligibility(user.id))


@router.post("", response_model=ApplicationOut, status_code=status.HTTP_201_CREATED, dependencies=SUBMIT_GUARDS)
async def create_application(
    body: ApplicationIn,
    service: ApplicationService = Depends(get_application_service_dep),
    user: AuthenticatedUser = Depends(get_current_user),
) -> ApplicationOut:
    application = await service.submit(user, body.to_form())
    return ApplicationOut.from_model(application)


@router.get("/current", response_model=CurrentApplicationOut)
async def current_application(
    service: ApplicationService = Depends(get_application_service_dep),
    user: AuthenticatedUser = Depends(get_current_user),
) -> CurrentApplicationOut:
    application = await service.current(user.id)
    reapply = await service.can_reapply(user.id)
    return CurrentApplicationOut(
        application=ApplicationOut.from_model(application) if application else None,
        reapply=ReapplyOut.from_model(reapply),
    )


@router.get("/history", response_model=list[ApplicationOut])
async def application_history(
    service: ApplicationService = Depends(get_application_service_dep),
    user: AuthenticatedUser = Depends(get_current_user),
) -> list[ApplicationOut]:
    return [ApplicationOut.from_model(item) for item in await service.history(user.id)]


@router.get("/admin", response_model=list[ApplicationOut])
async def admin_list_applications(
    status_filter: ApplicationStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=100, ge=1, le=1000),
    service: ApplicationService = Depends(get_application_service_dep),
    admin: ReviewerContext = Depends(get_admin_context),
) -> list[ApplicationOut]:
    applications = await service.list_applications(admin, status=status_filter, limit=limit)
    return [ApplicationOut.from_model(item) for item in applications]


@router.post("/admin/{application_id}/approve", response_model=ApplicationOut, dependencies=[Depends(require_csrf)])
async def admin_approve_application(
    application_id: str,
    body: ApplicationDecisionIn | None = None,
    service: ApplicationService = Depends(get_application_service_dep),
    admin: ReviewerContext = Depends(get_admin_context),
) -> ApplicationOut:
    decided = await service.approve(admin, application_id, notes=body.notes if body else None)
    return ApplicationOut.from_model(decided)


@router.post("/admin/{application_id}/reject", response_model=ApplicationOut, dependencies=[Depends(require_csrf)])
async def admin_reject_application(
    application_id: str,
    body: ApplicationDecisionIn | None = None,
    service: ApplicationService = Depends(get_application_service_dep),
    admin: ReviewerContext = Depends(get_admin_context),
) -> ApplicationOut:
    decided = await service.reject(admin, application_id, notes=body.notes if body else None)
    return ApplicationOut.from_model(decided)


@router.get("/admin/reviewer-actions", response_model=list[ReviewerActionOut])
async def admin_reviewer_actions(
    reviewer_id: str | None = Query(default=None, alias="reviewerId"),
    limit: int = Query(default=100, ge=1, le=1000),
    actions: ReviewerActionRepository = Depends(get_reviewer_actions_dep),
    admin: ReviewerContext = Depends(get_admin_context),
) -> list[ReviewerActionOut]:
    rows = await bounded(actions.list(reviewer_id=reviewer_id, limit=limit), settings.store_timeout_seconds)
    return [ReviewerActionOut.from_model(row) for row in rows]
