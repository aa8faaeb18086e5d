"""FAQ proposals, the published FAQ list and its ordering."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field

from gamehub.infra.auth import AuthenticatedUser, get_current_user
from gamehub.infra.csrf import require_csrf
from gamehub.moderation.domain.faqs import FaqReorderer, FaqRepository
from gamehub.moderation.domain.intake import IntakeService
from gamehub.moderation.domain.models import FaqEntry, SubmissionKind, SubmissionStatus
from gamehub.moderation.domain.rbac import ReviewerContext
from gamehub.moderation.domain.store import bounded
from gamehub.settings import settings

from .corrections import list_submissions
from .deps import (
    SUBMIT_GUARDS,
    get_admin_context,
    get_faq_reorderer_dep,
    get_faq_repository_dep,
    get_intake_service_dep,
    get_reviewer_context,
)
from .schemas import CamelModel, SubmissionListOut, SubmissionOut


router = APIRouter(tags=["moderation-faq"])


class FaqSubmissionIn(CamelModel):
    question: str
    answer: str


class FaqEntryOut(CamelModel):
    id: str
    question: str
    answer: str
    order: int
    created_by: str | None
    created_at: datetime
    updated_at: datetime | None

    @classmethod
    def from_model(cls, entry: FaqEntry) -> "FaqEntryOut":
        return cls(
            id=entry.id,
            question=entry.question,
            answer=entry.answer,
            order=entry.order,
            created_by=entry.created_by,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
        )


class FaqOrderIn(CamelModel):
    ordered_ids: list[str] = Field(..., min_length=1)


class FaqOrderOut(CamelModel):
    accepted: bool
    count: int


@router.post(
    "/api/faq-submissions",
    response_model=SubmissionOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=SUBMIT_GUARDS,
)
async def create_faq_submission(
    body: FaqSubmissionIn,
    service: IntakeService = Depends(get_intake_service_dep),
    user: AuthenticatedUser = Depends(get_current_user),
) -> SubmissionOut:
    submission = await service.submit_faq(submitter=user, question=body.question, answer=body.answer)
    return SubmissionOut.from_model(submission)


@router.get("/api/faq-submissions", response_model=SubmissionListOut)
async def list_faq_submissions(
    status_filter: SubmissionStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=100, ge=1, le=1000),
    reviewer: ReviewerContext = Depends(get_reviewer_context),
) -> SubmissionListOut:
    return await list_submissions(SubmissionKind.FAQ, status_filter=status_filter, submitter_id=None, limit=limit)


@router.get("/api/faqs", response_model=list[FaqEntryOut])
async def list_faqs(repo: FaqRepository = Depends(get_faq_repository_dep)) -> list[FaqEntryOut]:
    entries = await bounded(repo.list(), settings.store_timeout_seconds)
    return [FaqEntryOut.from_model(entry) for entry in entries]


@router.put(
    "/api/faqs/order",
    response_model=FaqOrderOut,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(require_csrf)],
)
async def reorder_faqs(
    body: FaqOrderIn,
    reorderer: FaqReorderer = Depends(get_faq_reorderer_dep),
    admin: ReviewerContext = Depends(get_admin_context),
) -> FaqOrderOut:
    await reorderer.submit(body.ordered_ids)
    return FaqOrderOut(accepted=True, count=len(body.ordered_ids))
