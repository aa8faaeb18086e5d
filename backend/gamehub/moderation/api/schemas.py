"""Request and response models shared by the moderation routers."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from gamehub.moderation.domain import errors
from gamehub.moderation.domain.models import (
    AuditLogEntry,
    CorrectionPayload,
    FaqProposal,
    GameProposal,
    Submission,
    TargetRef,
)
from gamehub.moderation.domain.review import ItemResult
from gamehub.moderation.domain.values import FieldValue


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def field_value(raw: Any, *, name: str = "value") -> FieldValue:
    """Decode a JSON value from a request body; ``null`` means clear."""
    try:
        return FieldValue.from_raw(raw)
    except ValueError as exc:
        raise errors.ValidationError("invalid_value_type", f"{name} must be text, a number, a flag or a list of strings") from exc


def raw_value(value: FieldValue | None) -> Any:
    return value.to_raw() if value is not None else None


class TargetOut(CamelModel):
    game_id: str | None = None
    slug: str | None = None
    title: str | None = None

    @classmethod
    def from_model(cls, target: TargetRef | None) -> "TargetOut | None":
        if target is None:
            return None
        return cls(game_id=target.game_id, slug=target.slug, title=target.title)


class SubmissionOut(CamelModel):
    id: str
    kind: str
    status: str
    submitter_id: str
    submitter_name: str
    submitted_at: datetime
    target: TargetOut | None = None
    justification: str | None = None
    field: str | None = None
    old_value: Any = None
    new_value: Any = None
    proposed_title: str | None = None
    proposed_fields: dict[str, Any] | None = None
    question: str | None = None
    answer: str | None = None
    reviewed_by: str | None = None
    reviewed_by_name: str | None = None
    reviewed_at: datetime | None = None
    review_notes: str | None = None
    final_value: Any = None

    @classmethod
    def from_model(cls, submission: Submission) -> "SubmissionOut":
        out = cls(
            id=submission.id,
            kind=submission.kind.value,
            status=submission.status.value,
            submitter_id=submission.submitter_id,
            submitter_name=submission.submitter_name,
            submitted_at=submission.submitted_at,
            target=TargetOut.from_model(submission.target),
            justification=submission.justification,
        )
        payload = submission.payload
        if isinstance(payload, CorrectionPayload):
            out.field = payload.field
            out.old_value = raw_value(payload.old_value)
            out.new_value = raw_value(payload.new_value)
        elif isinstance(payload, GameProposal):
            out.proposed_title = payload.title
            out.proposed_fields = {name: raw_value(value) for name, value in payload.fields.items()}
        elif isinstance(payload, FaqProposal):
            out.question = payload.question
            out.answer = payload.answer
        decision = submission.decision
        if decision is not None:
            out.reviewed_by = decision.reviewer_id
            out.reviewed_by_name = decision.reviewer_name
            out.reviewed_at = decision.decided_at
            out.review_notes = decision.notes
            out.final_value = raw_value(decision.final_value)
        return out


class SubmissionListOut(CamelModel):
    items: list[SubmissionOut]


class ReviewIn(CamelModel):
    submission_id: str
    status: str
    review_notes: str | None = None
    final_value: Any = None

    def final_field_value(self) -> FieldValue | None:
        # An explicit ``null`` clears the field; an absent key means no value.
        if "final_value" not in self.model_fields_set:
            return None
        return field_value(self.final_value, name="finalValue")


class ReviewBatchIn(CamelModel):
    reviews: list[ReviewIn]


class ReviewAllIn(CamelModel):
    submission_ids: list[str]
    status: str
    review_notes: str | None = None


class ItemResultOut(CamelModel):
    submission_id: str
    outcome: str
    error: str | None = None
    message: str | None = None
    submission: SubmissionOut | None = None

    @classmethod
    def from_model(cls, result: ItemResult) -> "ItemResultOut":
        return cls(
            submission_id=result.submission_id,
            outcome=result.outcome.value,
            error=result.error,
            message=result.message,
            submission=SubmissionOut.from_model(result.submission) if result.submission else None,
        )


class BatchResultOut(CamelModel):
    results: list[ItemResultOut]
    committed: int
    failed: int

    @classmethod
    def from_results(cls, results: list[ItemResult]) -> "BatchResultOut":
        committed = sum(1 for item in results if item.committed)
        return cls(
            results=[ItemResultOut.from_model(item) for item in results],
            committed=committed,
            failed=len(results) - committed,
        )


class AuditEntryOut(CamelModel):
    id: str
    submission_id: str
    submission_kind: str
    action: str
    field: str
    target: TargetOut | None = None
    old_value: Any = None
    new_value: Any = None
    changed_by: str
    changed_by_name: str
    changed_by_role: str
    changed_at: datetime
    submitted_by: str | None = None
    submitted_by_name: str | None = None
    notes: str | None = None

    @classmethod
    def from_model(cls, entry: AuditLogEntry) -> "AuditEntryOut":
        return cls(
            id=entry.id,
            submission_id=entry.submission_id,
            submission_kind=entry.submission_kind.value,
            action=entry.action.value,
            field=entry.field,
            target=TargetOut.from_model(entry.target),
            old_value=raw_value(entry.old_value),
            new_value=raw_value(entry.new_value),
            changed_by=entry.changed_by,
            changed_by_name=entry.changed_by_name,
            changed_by_role=entry.changed_by_role,
            changed_at=entry.changed_at,
            submitted_by=entry.submitted_by,
            submitted_by_name=entry.submitted_by_name,
            notes=entry.notes,
        )
