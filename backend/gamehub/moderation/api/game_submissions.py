"""New-game proposal endpoints and the published game record view."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import Field

from gamehub.infra.auth import AuthenticatedUser, get_current_user
from gamehub.moderation.domain import container
from gamehub.moderation.domain.intake import IntakeService
from gamehub.moderation.domain.models import GameRecord, SubmissionKind, SubmissionStatus
from gamehub.moderation.domain.rbac import ReviewerContext
from gamehub.moderation.domain.store import bounded
from gamehub.settings import settings

from .corrections import list_submissions
from .deps import SUBMIT_GUARDS, get_intake_service_dep, get_reviewer_context
from .schemas import CamelModel, SubmissionListOut, SubmissionOut, field_value


router = APIRouter(prefix="/api/game-submissions", tags=["moderation-games"])


class GameSubmissionIn(CamelModel):
    slug: str
    title: str
    fields: dict[str, Any] = Field(default_factory=dict)
    notes: str | None = None


class GameRecordOut(CamelModel):
    slug: str
    id: str
    title: str
    fields: dict[str, Any]
    ready_to_publish: bool
    updated_at: datetime | None
    update_history: list[dict[str, Any]]

    @classmethod
    def from_model(cls, record: GameRecord) -> "GameRecordOut":
        return cls(
            slug=record.slug,
            id=record.id,
            title=record.title,
            fields=dict(record.fields),
            ready_to_publish=record.ready_to_publish,
            updated_at=record.updated_at,
            update_history=[entry.to_json() for entry in record.update_history],
        )


@router.post("", response_model=SubmissionOut, status_code=status.HTTP_201_CREATED, dependencies=SUBMIT_GUARDS)
async def create_game_submission(
    body: GameSubmissionIn,
    service: IntakeService = Depends(get_intake_service_dep),
    user: AuthenticatedUser = Depends(get_current_user),
) -> SubmissionOut:
    proposed = {name: field_value(raw, name=name) for name, raw in body.fields.items()}
    submission = await service.submit_game(
        submitter=user,
        slug=body.slug,
        title=body.title,
        proposed=proposed,
        notes=body.notes,
    )
    return SubmissionOut.from_model(submission)


@router.get("/mine", response_model=SubmissionListOut)
async def my_game_submissions(
    limit: int = Query(default=100, ge=1, le=1000),
    user: AuthenticatedUser = Depends(get_current_user),
) -> SubmissionListOut:
    return await list_submissions(SubmissionKind.GAME, status_filter=None, submitter_id=user.id, limit=limit)


@router.get("", response_model=SubmissionListOut)
async def list_game_submissions(
    status_filter: SubmissionStatus | None = Query(default=None, alias="status"),
    submitter_id: str | None = Query(default=None, alias="submitterId"),
    limit: int = Query(default=100, ge=1, le=1000),
    reviewer: ReviewerContext = Depends(get_reviewer_context),
) -> SubmissionListOut:
    return await list_submissions(SubmissionKind.GAME, status_filter=status_filter, submitter_id=submitter_id, limit=limit)


@router.get("/games/{slug}", response_model=GameRecordOut)
async def get_game(slug: str, user: AuthenticatedUser = Depends(get_current_user)) -> GameRecordOut:
    record = await bounded(container.get_games().get(slug), settings.store_timeout_seconds)
    if record is None:
        raise HTTPException(status_code=404, detail="game_not_found")
    return GameRecordOut.from_model(record)
