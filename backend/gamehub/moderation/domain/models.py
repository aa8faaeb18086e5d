"""Submission, decision and audit records for the game database workflow."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Union

from gamehub.moderation.domain.values import FieldValue


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubmissionKind(str, Enum):
    CORRECTION = "correction"
    GAME = "game_submission"
    FAQ = "faq_submission"


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    MODIFIED = "modified"


DECISION_STATUSES = frozenset({SubmissionStatus.APPROVED, SubmissionStatus.REJECTED, SubmissionStatus.MODIFIED})


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class TargetRef:
    game_id: str | None = None
    slug: str | None = None
    title: str | None = None

    @property
    def key(self) -> str | None:
        return self.game_id or self.slug


@dataclass(frozen=True, slots=True)
class CorrectionPayload:
    field: str
    old_value: FieldValue
    new_value: FieldValue


@dataclass(frozen=True, slots=True)
class GameProposal:
    title: str
    fields: Mapping[str, FieldValue]


@dataclass(frozen=True, slots=True)
class FaqProposal:
    question: str
    answer: str


Payload = Union[CorrectionPayload, GameProposal, FaqProposal]


@dataclass(frozen=True, slots=True)
class ReviewDecision:
    """The reviewer half of a submission; written in one step with the status."""

    status: SubmissionStatus
    reviewer_id: str
    reviewer_name: str
    reviewer_role: str
    decided_at: datetime
    notes: str | None = None
    final_value: FieldValue | None = None


@dataclass(slots=True)
class Submission:
    id: str
    kind: SubmissionKind
    submitter_id: str
    submitter_name: str
    submitted_at: datetime
    payload: Payload
    target: TargetRef | None = None
    justification: str | None = None
    status: SubmissionStatus = SubmissionStatus.PENDING
    decision: ReviewDecision | None = None

    @property
    def target_key(self) -> str | None:
        return self.target.key if self.target else None

    @property
    def is_pending(self) -> bool:
        return self.status is SubmissionStatus.PENDING

    @property
    def field(self) -> str | None:
        if isinstance(self.payload, CorrectionPayload):
            return self.payload.field
        return None


@dataclass(frozen=True, slots=True)
class AuditLogEntry:
    id: str
    submission_id: str
    submission_kind: SubmissionKind
    action: SubmissionStatus
    field: str
    target: TargetRef | None
    old_value: FieldValue | None
    new_value: FieldValue | None
    changed_by: str
    changed_by_name: str
    changed_by_role: str
    changed_at: datetime
    submitted_by: str | None = None
    submitted_by_name: str | None = None
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class UpdateHistoryEntry:
    field: str
    old_value: FieldValue | None
    new_value: FieldValue | None
    changed_by: str
    changed_by_name: str
    changed_at: datetime
    submission_id: str
    submitted_by: str | None = None
    submitted_by_name: str | None = None
    notes: str | None = None

    def to_json(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "oldValue": self.old_value.to_json() if self.old_value else None,
            "newValue": self.new_value.to_json() if self.new_value else None,
            "changedBy": self.changed_by,
            "changedByName": self.changed_by_name,
            "changedAt": self.changed_at.isoformat(),
            "submissionId": self.submission_id,
            "submittedBy": self.submitted_by,
            "submittedByName": self.submitted_by_name,
            "notes": self.notes,
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "UpdateHistoryEntry":
        return cls(
            field=data["field"],
            old_value=FieldValue.from_json(data.get("oldValue")),
            new_value=FieldValue.from_json(data.get("newValue")),
            changed_by=data["changedBy"],
            changed_by_name=data.get("changedByName") or "Unknown",
            changed_at=datetime.fromisoformat(data["changedAt"]),
            submission_id=data["submissionId"],
            submitted_by=data.get("submittedBy"),
            submitted_by_name=data.get("submittedByName"),
            notes=data.get("notes"),
        )


@dataclass(slots=True)
class GameRecord:
    slug: str
    id: str
    title: str
    fields: dict[str, Any] = field(default_factory=dict)
    update_history: list[UpdateHistoryEntry] = field(default_factory=list)
    ready_to_publish: bool = False
    updated_at: datetime | None = None


@dataclass(slots=True)
class UserAggregate:
    user_id: str
    name: str
    role: str = "user"
    status: str = "active"
    created_at: datetime = field(default_factory=utcnow)
    submissions_count: int = 0
    approved_count: int = 0
    rejected_count: int = 0

    def account_age_days(self, *, now: datetime | None = None) -> float:
        now = now or utcnow()
        return (now - self.created_at).total_seconds() / 86400

    def whole_account_age_days(self, *, now: datetime | None = None) -> int:
        return math.floor(self.account_age_days(now=now))


@dataclass(slots=True)
class ReviewerApplication:
    id: str
    user_id: str
    user_name: str
    motivation: str
    experience: str
    contribution_examples: str
    agreed_to_rules: bool
    created_at: datetime
    time_availability: str | None = None
    languages: str | None = None
    prior_experience: str | None = None
    status: ApplicationStatus = ApplicationStatus.PENDING
    decided_at: datetime | None = None
    admin_id: str | None = None
    admin_name: str | None = None
    admin_notes: str | None = None


@dataclass(frozen=True, slots=True)
class ReviewerAction:
    id: str
    reviewer_id: str
    reviewer_name: str
    submission_id: str
    submission_kind: SubmissionKind
    action: SubmissionStatus
    created_at: datetime
    target: TargetRef | None = None


@dataclass(slots=True)
class FaqEntry:
    id: str
    question: str
    answer: str
    order: int
    created_by: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None
