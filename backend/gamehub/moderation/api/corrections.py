"""Correction intake and listing endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field

from gamehub.infra.auth import AuthenticatedUser, get_current_user
from gamehub.moderation.domain import container
from gamehub.moderation.domain.intake import IntakeService
from gamehub.moderation.domain.models import SubmissionKind, SubmissionStatus, TargetRef
from gamehub.moderation.domain.rbac import ReviewerContext
from gamehub.moderation.domain.store import SubmissionFilter, bounded
from gamehub.settings import settings

from .deps import SUBMIT_GUARDS, get_intake_service_dep, get_reviewer_context
from .schemas import CamelModel, SubmissionListOut, SubmissionOut, field_value


router = APIRouter(prefix="/api/corrections", tags=["moderation-corrections"])


class CorrectionIn(CamelModel):
    game_id: str
    game_slug: str
    game_title: str
    field: str = Field(..., min_length=1, max_length=100)
    new_value: Any = None
    old_value: Any = None
    reason: str


async def list_submissions(
    kind: SubmissionKind,
    *,
    status_filter: SubmissionStatus | None,
    submitter_id: str | None,
    game: str | None = None,
    limit: int,
) -> SubmissionListOut:
    store = container.get_store()
    query = SubmissionFilter(kind=kind, status=status_filter, submitter_id=submitter_id, target_key=game, limit=limit)
    items = await bounded(store.list(query), settings.store_timeout_seconds)
    return SubmissionListOut(items=[SubmissionOut.from_model(item) for item in items])


@router.post("", response_model=SubmissionOut, status_code=status.HTTP_201_CREATED, dependencies=SUBMIT_GUARDS)
async def create_correction(
    body: CorrectionIn,
    service: IntakeService = Depends(get_intake_service_dep),
    user: AuthenticatedUser = Depends(get_current_user),
) -> SubmissionOut:
    old_value = field_value(body.old_value, name="oldValue") if "old_value" in body.model_fields_set else None
    submission = await service.submit_correction(
        submitter=user,
        target=TargetRef(game_id=body.game_id, slug=body.game_slug, title=body.game_title),
        field_name=body.field,
        new_value=field_value(body.new_value, name="newValue"),
        reason=body.reason,
        old_value=old_value,
    )
    return SubmissionOut.from_model(submission)


@router.get("/mine", response_model=SubmissionListOut)
async def my_corrections(
    status_filter: SubmissionStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=100, ge=1, le=1000),
    user: AuthenticatedUser = Depends(get_current_user),
) -> SubmissionListOut:
    return await list_submissions(SubmissionKind.CORRECTION, status_filter=status_filter, submitter_id=user.id, limit=limit)


@router.get("", response_model=SubmissionListOut)
async def list_corrections(
    status_filter: SubmissionStatus | None = Query(default=None, alias="status"),
    submitter_id: str | None = Query(default=None, alias="submitterId"),
    game: str | None = Query(default=None, description="Game id or slug"),
    limit: int = Query(default=100, ge=1, le=1000),
    reviewer: ReviewerContext = Depends(get_reviewer_context),
) -> SubmissionListOut:
    return await list_submissions(
        SubmissionKind.CORRECTION,
        status_filter=status_filter,
        submitter_id=submitter_id,
        game=game,
        limit=limit,
    )
