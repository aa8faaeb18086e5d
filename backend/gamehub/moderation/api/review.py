"""Review queue and decision endpoints shared by every submission kind."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from gamehub.moderation.domain.grouping import ReviewGroup
from gamehub.moderation.domain.models import SubmissionKind
from gamehub.moderation.domain.rbac import ReviewerContext
from gamehub.moderation.domain.review import ReviewRequest, ReviewService
from gamehub.moderation.domain.store import SubmissionFilter

from .deps import REVIEW_GUARDS, get_review_service_dep, get_reviewer_context
from .schemas import BatchResultOut, CamelModel, ReviewAllIn, ReviewBatchIn, ReviewIn, SubmissionOut


router = APIRouter(prefix="/api/moderation", tags=["moderation-review"])


class ReviewGroupOut(CamelModel):
    group_id: str
    is_batch: bool
    submitter_id: str
    target_key: str | None
    earliest: datetime
    latest: datetime
    submissions: list[SubmissionOut]

    @classmethod
    def from_model(cls, group: ReviewGroup) -> "ReviewGroupOut":
        return cls(
            group_id=group.group_id,
            is_batch=group.is_batch,
            submitter_id=group.submitter_id,
            target_key=group.target_key,
            earliest=group.earliest,
            latest=group.latest,
            submissions=[SubmissionOut.from_model(item) for item in group.items],
        )


class QueueOut(CamelModel):
    groups: list[ReviewGroupOut]
    pending: int


@router.get("/queue", response_model=QueueOut)
async def review_queue(
    kind: SubmissionKind | None = Query(default=None),
    game: str | None = Query(default=None, description="Game id or slug"),
    limit: int = Query(default=1000, ge=1, le=1000),
    service: ReviewService = Depends(get_review_service_dep),
    reviewer: ReviewerContext = Depends(get_reviewer_context),
) -> QueueOut:
    groups = await service.pending_queue(SubmissionFilter(kind=kind, target_key=game, limit=limit))
    return QueueOut(
        groups=[ReviewGroupOut.from_model(group) for group in groups],
        pending=sum(len(group.items) for group in groups),
    )


@router.post("/review", response_model=SubmissionOut, dependencies=REVIEW_GUARDS)
async def review_submission(
    body: ReviewIn,
    service: ReviewService = Depends(get_review_service_dep),
    reviewer: ReviewerContext = Depends(get_reviewer_context),
) -> SubmissionOut:
    submission = await service.decide_single(
        reviewer,
        body.submission_id,
        body.status,
        notes=body.review_notes,
        final_value=body.final_field_value(),
    )
    return SubmissionOut.from_model(submission)


@router.post("/review-batch", response_model=BatchResultOut, dependencies=REVIEW_GUARDS)
async def review_batch(
    body: ReviewBatchIn,
    service: ReviewService = Depends(get_review_service_dep),
    reviewer: ReviewerContext = Depends(get_reviewer_context),
) -> BatchResultOut:
    requests = [
        ReviewRequest(
            submission_id=item.submission_id,
            status=item.status,
            notes=item.review_notes,
            raw_final_value=item.final_value,
            has_raw_final_value="final_value" in item.model_fields_set,
        )
        for item in body.reviews
    ]
    results = await service.decide_batch(reviewer, requests)
    return BatchResultOut.from_results(results)


@router.post("/review-all", response_model=BatchResultOut, dependencies=REVIEW_GUARDS)
async def review_all(
    body: ReviewAllIn,
    service: ReviewService = Depends(get_review_service_dep),
    reviewer: ReviewerContext = Depends(get_reviewer_context),
) -> BatchResultOut:
    results = await service.set_all_actions(reviewer, body.submission_ids, body.status, notes=body.review_notes)
    return BatchResultOut.from_results(results)
