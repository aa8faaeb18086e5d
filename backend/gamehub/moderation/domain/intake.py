"""Intake of proposed changes: validation and persistence as ``pending``."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping

from gamehub.infra.auth import AuthenticatedUser
from gamehub.moderation.domain import errors, notifications
from gamehub.moderation.domain.models import (
    CorrectionPayload,
    FaqProposal,
    GameProposal,
    Submission,
    SubmissionKind,
    TargetRef,
    utcnow,
)
from gamehub.moderation.domain.notifications import NotificationDispatcher, NullDispatcher
from gamehub.moderation.domain.store import SubmissionStore, UserRepository, bounded
from gamehub.moderation.domain.values import FieldValue, ValueKind
from gamehub.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

MAX_NOTES_LENGTH = 2000
MAX_TEXT_VALUE_LENGTH = 5000
MAX_LIST_ITEM_LENGTH = 500
MAX_TITLE_LENGTH = 300
MIN_FAQ_TEXT_LENGTH = 10

CORRECTABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "releaseDate",
        "developer",
        "publisher",
        "genres",
        "platforms",
        "activationType",
        "status",
        "imageUrl",
        "instructions",
        "knownIssues",
        "communityTips",
        "discordLink",
        "redditLink",
        "wikiLink",
        "steamDBLink",
        "purchaseLink",
        "gogDreamlistLink",
        "downloadLink",
        "additionalDRM",
        "playabilityStatus",
        "isUnplayable",
        "communityAlternativeName",
        "communityAlternativeUrl",
        "communityAlternativeDownloadLink",
        "remasteredName",
        "remasteredPlatform",
    }
)
NON_CLEARABLE_FIELDS = frozenset({"title", "status", "activationType"})
LIST_FIELDS = frozenset({"genres", "platforms", "instructions", "knownIssues", "communityTips"})
FLAG_FIELDS = frozenset({"isUnplayable"})


def new_id() -> str:
    return uuid.uuid4().hex


def clean_text(
    value: str | None,
    *,
    name: str,
    max_length: int,
    min_length: int = 0,
    required: bool = False,
) -> str | None:
    """Strip and bound free text; returns ``None`` for optional blanks."""
    text = (value or "").strip()
    if not text:
        if required:
            raise errors.ValidationError(f"{name}_required")
        return None
    if len(text) < min_length:
        raise errors.ValidationError(f"{name}_too_short", f"{name} must be at least {min_length} characters")
    if len(text) > max_length:
        raise errors.ValidationError(f"{name}_too_long", f"{name} must be at most {max_length} characters")
    return text


def validate_field_value(name: str, value: FieldValue) -> FieldValue:
    """Normalise a proposed value for a game field.

    Blank text and lists with only blank items collapse to an explicit clear.
    """
    if name not in CORRECTABLE_FIELDS:
        raise errors.ValidationError("unknown_field", f"Field '{name}' cannot be corrected")
    normalised = value
    if value.kind is ValueKind.TEXT:
        text = str(value.value).strip()
        if len(text) > MAX_TEXT_VALUE_LENGTH:
            raise errors.ValidationError("value_too_long")
        normalised = FieldValue.text(text) if text else FieldValue.clear()
    elif value.kind is ValueKind.LIST:
        items = [str(item).strip() for item in value.value or ()]
        if any(len(item) > MAX_LIST_ITEM_LENGTH for item in items):
            raise errors.ValidationError("value_too_long")
        items = [item for item in items if item]
        normalised = FieldValue.items(items) if items else FieldValue.clear()

    if normalised.is_clear:
        if name in NON_CLEARABLE_FIELDS:
            raise errors.ValidationError("field_not_clearable", f"Field '{name}' cannot be cleared")
        return normalised
    if name in LIST_FIELDS and normalised.kind is not ValueKind.LIST:
        raise errors.ValidationError("invalid_value_type", f"Field '{name}' expects a list")
    if name in FLAG_FIELDS and normalised.kind is not ValueKind.FLAG:
        raise errors.ValidationError("invalid_value_type", f"Field '{name}' expects true or false")
    if name not in LIST_FIELDS | FLAG_FIELDS and normalised.kind not in (ValueKind.TEXT, ValueKind.NUMBER):
        raise errors.ValidationError("invalid_value_type", f"Field '{name}' expects text")
    return normalised


def _bound_old_value(value: FieldValue | None) -> FieldValue:
    if value is None:
        return FieldValue.clear()
    if value.kind is ValueKind.TEXT and len(str(value.value)) > MAX_TEXT_VALUE_LENGTH:
        raise errors.ValidationError("value_too_long")
    return value


@dataclass
class IntakeService:
    store: SubmissionStore
    users: UserRepository
    notifier: NotificationDispatcher = field(default_factory=NullDispatcher)
    timeout_seconds: float | None = 5.0
    clock: Callable[[], datetime] = utcnow

    async def _ensure_active(self, submitter: AuthenticatedUser) -> None:
        user = await bounded(self.users.ensure(submitter.id, submitter.name), self.timeout_seconds)
        if submitter.status != "active" or user.status != "active":
            raise errors.ForbiddenError("account_not_active", "Your account cannot submit changes")

    async def _persist(self, submission: Submission) -> Submission:
        await bounded(self.store.create(submission), self.timeout_seconds)
        obs_metrics.MOD_SUBMISSIONS_TOTAL.labels(kind=submission.kind.value).inc()
        logger.info(
            "submission created",
            extra={"submission_id": submission.id, "kind": submission.kind.value, "submitter_id": submission.submitter_id},
        )
        self.notifier.dispatch(notifications.SUBMISSION_CREATED, _event_payload(submission))
        return submission

    async def submit_correction(
        self,
        *,
        submitter: AuthenticatedUser,
        target: TargetRef,
        field_name: str,
        new_value: FieldValue,
        reason: str | None,
        old_value: FieldValue | None = None,
    ) -> Submission:
        if not (target.game_id and target.slug and target.title):
            raise errors.ValidationError("invalid_target", "Game id, slug and title are required")
        value = validate_field_value(field_name, new_value)
        justification = clean_text(reason, name="reason", max_length=MAX_NOTES_LENGTH, required=True)
        await self._ensure_active(submitter)
        submission = Submission(
            id=new_id(),
            kind=SubmissionKind.CORRECTION,
            submitter_id=submitter.id,
            submitter_name=submitter.name,
            submitted_at=self.clock(),
            payload=CorrectionPayload(field=field_name, old_value=_bound_old_value(old_value), new_value=value),
            target=target,
            justification=justification,
        )
        return await self._persist(submission)

    async def submit_game(
        self,
        *,
        submitter: AuthenticatedUser,
        slug: str,
        title: str,
        proposed: Mapping[str, FieldValue],
        notes: str | None = None,
    ) -> Submission:
        slug_text = clean_text(slug, name="slug", max_length=MAX_TITLE_LENGTH, required=True)
        title_text = clean_text(title, name="title", max_length=MAX_TITLE_LENGTH, required=True)
        fields: dict[str, FieldValue] = {}
        for name, value in proposed.items():
            if value.is_clear:
                continue
            normalised = validate_field_value(name, value)
            if not normalised.is_clear:
                fields[name] = normalised
        if not fields:
            raise errors.ValidationError("no_proposed_fields", "Propose at least one field")
        justification = clean_text(notes, name="notes", max_length=MAX_NOTES_LENGTH)
        await self._ensure_active(submitter)
        submission = Submission(
            id=new_id(),
            kind=SubmissionKind.GAME,
            submitter_id=submitter.id,
            submitter_name=submitter.name,
            submitted_at=self.clock(),
            payload=GameProposal(title=title_text or "", fields=fields),
            target=TargetRef(slug=slug_text, title=title_text),
            justification=justification,
        )
        return await self._persist(submission)

    async def submit_faq(self, *, submitter: AuthenticatedUser, question: str, answer: str) -> Submission:
        question_text = clean_text(
            question, name="question", max_length=MAX_NOTES_LENGTH, min_length=MIN_FAQ_TEXT_LENGTH, required=True
        )
        answer_text = clean_text(
            answer, name="answer", max_length=MAX_TEXT_VALUE_LENGTH, min_length=MIN_FAQ_TEXT_LENGTH, required=True
        )
        await self._ensure_active(submitter)
        submission = Submission(
            id=new_id(),
            kind=SubmissionKind.FAQ,
            submitter_id=submitter.id,
            submitter_name=submitter.name,
            submitted_at=self.clock(),
            payload=FaqProposal(question=question_text or "", answer=answer_text or ""),
        )
        return await self._persist(submission)


def _event_payload(submission: Submission) -> dict[str, Any]:
    target = submission.target
    return {
        "submission_id": submission.id,
        "kind": submission.kind.value,
        "submitter_id": submission.submitter_id,
        "submitter_name": submission.submitter_name,
        "field": submission.field,
        "target_slug": target.slug if target else None,
        "target_title": target.title if target else None,
    }
