"""Review state machine: pending -> approved | rejected | modified.

A decision commits in two steps. The store's compare-and-set moves the
submission out of ``pending``; then the decided value is written to its target
(game field, merged game record or FAQ entry). When the second step fails the
first is reverted and the caller gets ``InternalError``. Only a decision that
survives both steps gets an audit entry, a reviewer-action row and a
notification.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Iterable, Sequence

from gamehub.moderation.domain import errors, notifications
from gamehub.moderation.domain.audit import AuditLog, ReviewerActionRepository, audit_entry_id
from gamehub.moderation.domain.faqs import FaqRepository
from gamehub.moderation.domain.grouping import DEFAULT_MERGE_WINDOW, ReviewGroup, group_submissions
from gamehub.moderation.domain.intake import MAX_NOTES_LENGTH, clean_text, validate_field_value
from gamehub.moderation.domain.models import (
    AuditLogEntry,
    CorrectionPayload,
    FaqProposal,
    GameProposal,
    ReviewDecision,
    ReviewerAction,
    Submission,
    SubmissionStatus,
    TargetRef,
    UpdateHistoryEntry,
    utcnow,
)
from gamehub.moderation.domain.notifications import NotificationDispatcher, NullDispatcher
from gamehub.moderation.domain.rbac import ReviewerContext, ensure_not_self_review, ensure_reviewer
from gamehub.moderation.domain.store import GameRepository, SubmissionFilter, SubmissionStore, bounded
from gamehub.moderation.domain.values import FieldValue
from gamehub.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

FAQ_AUDIT_TARGET = TargetRef(slug="faq", title="FAQ")
GAME_AUDIT_FIELD = "*"


class ItemOutcome(str, Enum):
    COMMITTED = "committed"
    CONFLICT = "conflict"
    VALIDATION_ERROR = "validation_error"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    INTERNAL_ERROR = "internal_error"


def outcome_for(exc: errors.ModerationWorkflowError) -> ItemOutcome:
    if isinstance(exc, errors.ConflictError):
        return ItemOutcome.CONFLICT
    if isinstance(exc, errors.ValidationError):
        return ItemOutcome.VALIDATION_ERROR
    if isinstance(exc, errors.ForbiddenError):
        return ItemOutcome.FORBIDDEN
    if isinstance(exc, errors.NotFoundError):
        return ItemOutcome.NOT_FOUND
    return ItemOutcome.INTERNAL_ERROR


@dataclass(slots=True)
class ReviewRequest:
    """One item of a batch.

    ``raw_final_value`` carries undecoded JSON; it is decoded inside the item's
    own failure boundary so a malformed value fails only that item.
    """

    submission_id: str
    status: SubmissionStatus | str
    notes: str | None = None
    final_value: FieldValue | None = None
    raw_final_value: Any = None
    has_raw_final_value: bool = False

    def resolved_final_value(self) -> FieldValue | None:
        if not self.has_raw_final_value:
            return self.final_value
        return decode_final_value(self.raw_final_value)


def decode_final_value(raw: Any) -> FieldValue:
    try:
        return FieldValue.from_raw(raw)
    except ValueError as exc:
        raise errors.ValidationError(
            "invalid_value_type", "finalValue must be text, a number, a flag or a list of strings"
        ) from exc


@dataclass(slots=True)
class ItemResult:
    submission_id: str
    outcome: ItemOutcome
    submission: Submission | None = None
    error: str | None = None
    message: str | None = None

    @property
    def committed(self) -> bool:
        return self.outcome is ItemOutcome.COMMITTED


def parse_decision_status(value: SubmissionStatus | str) -> SubmissionStatus:
    try:
        status = SubmissionStatus(value)
    except ValueError as exc:
        raise errors.ValidationError("invalid_status", "Status must be approved, rejected or modified") from exc
    if status is SubmissionStatus.PENDING:
        raise errors.ValidationError("invalid_status", "Status must be approved, rejected or modified")
    return status


def decided_value(submission: Submission, decision: ReviewDecision) -> FieldValue | None:
    """The value a decision writes (or would have written) to the target."""
    payload = submission.payload
    if isinstance(payload, CorrectionPayload):
        if decision.status is SubmissionStatus.MODIFIED:
            return decision.final_value
        return payload.new_value
    if isinstance(payload, GameProposal):
        return FieldValue.items(sorted(payload.fields))
    if isinstance(payload, FaqProposal):
        return FieldValue.text(payload.question)
    return None


def build_audit_entry(submission: Submission, decision: ReviewDecision) -> AuditLogEntry:
    payload = submission.payload
    if isinstance(payload, CorrectionPayload):
        field_name, old_value, target = payload.field, payload.old_value, submission.target
    elif isinstance(payload, GameProposal):
        field_name, old_value, target = GAME_AUDIT_FIELD, None, submission.target
    else:
        field_name, old_value, target = "faq", None, FAQ_AUDIT_TARGET
    return AuditLogEntry(
        id=audit_entry_id(submission.id),
        submission_id=submission.id,
        submission_kind=submission.kind,
        action=decision.status,
        field=field_name,
        target=target,
        old_value=old_value,
        new_value=decided_value(submission, decision),
        changed_by=decision.reviewer_id,
        changed_by_name=decision.reviewer_name,
        changed_by_role=decision.reviewer_role,
        changed_at=decision.decided_at,
        submitted_by=submission.submitter_id,
        submitted_by_name=submission.submitter_name,
        notes=decision.notes,
    )


def _history_note(decision: ReviewDecision, value: FieldValue | None) -> str | None:
    if decision.notes:
        return decision.notes
    if value is not None and value.is_clear:
        return "Field cleared"
    return None


@dataclass
class ReviewService:
    store: SubmissionStore
    audit: AuditLog
    games: GameRepository
    faqs: FaqRepository
    actions: ReviewerActionRepository
    notifier: NotificationDispatcher = field(default_factory=NullDispatcher)
    timeout_seconds: float | None = 5.0
    merge_window: timedelta = DEFAULT_MERGE_WINDOW
    clock: Callable[[], datetime] = utcnow

    async def pending_queue(self, filter: SubmissionFilter | None = None) -> list[ReviewGroup]:
        started = time.perf_counter()
        pending = await bounded(self.store.list_pending(filter), self.timeout_seconds)
        groups = group_submissions(pending, window=self.merge_window)
        obs_metrics.MOD_QUEUE_BUILD_SECONDS.observe(time.perf_counter() - started)
        return groups

    async def decide_single(
        self,
        reviewer: ReviewerContext,
        submission_id: str,
        status: SubmissionStatus | str,
        *,
        notes: str | None = None,
        final_value: FieldValue | None = None,
    ) -> Submission:
        started = time.perf_counter()
        action = str(getattr(status, "value", status))
        try:
            submission = await self._decide(reviewer, submission_id, status, notes, final_value)
        except errors.ModerationWorkflowError as exc:
            obs_metrics.MOD_DECISIONS_TOTAL.labels(kind="unknown", action=action, result=outcome_for(exc).value).inc()
            raise
        obs_metrics.MOD_DECISIONS_TOTAL.labels(kind=submission.kind.value, action=action, result=ItemOutcome.COMMITTED.value).inc()
        obs_metrics.MOD_DECISION_LATENCY_SECONDS.observe(time.perf_counter() - started)
        return submission

    async def decide_batch(self, reviewer: ReviewerContext, requests: Sequence[ReviewRequest]) -> list[ItemResult]:
        """Decide each item independently; committed items are never rolled back."""
        ensure_reviewer(reviewer)
        if not requests:
            raise errors.ValidationError("no_reviews", "At least one review is required")
        results: list[ItemResult] = []
        for request in requests:
            try:
                submission = await self.decide_single(
                    reviewer,
                    request.submission_id,
                    request.status,
                    notes=request.notes,
                    final_value=request.resolved_final_value(),
                )
            except errors.ModerationWorkflowError as exc:
                result = ItemResult(
                    submission_id=request.submission_id,
                    outcome=outcome_for(exc),
                    error=exc.code,
                    message=exc.message,
                )
            else:
                result = ItemResult(
                    submission_id=request.submission_id,
                    outcome=ItemOutcome.COMMITTED,
                    submission=submission,
                )
            obs_metrics.MOD_BATCH_ACTIONS_TOTAL.labels(result=result.outcome.value).inc()
            results.append(result)
        return results

    async def set_all_actions(
        self,
        reviewer: ReviewerContext,
        submission_ids: Iterable[str],
        status: SubmissionStatus | str,
        *,
        notes: str | None = None,
    ) -> list[ItemResult]:
        """Apply one action with shared notes to every id of a group."""
        ensure_reviewer(reviewer)
        status = parse_decision_status(status)
        if status is SubmissionStatus.MODIFIED:
            raise errors.ValidationError("bulk_modify_not_supported", "Modify each submission individually")
        shared_notes = clean_text(notes, name="review_notes", max_length=MAX_NOTES_LENGTH)
        if status is SubmissionStatus.REJECTED and not shared_notes:
            raise errors.ValidationError("review_notes_required", "Review notes are required when rejecting")
        ids = list(dict.fromkeys(submission_id for submission_id in submission_ids if submission_id))
        requests = [ReviewRequest(submission_id=item, status=status, notes=shared_notes) for item in ids]
        return await self.decide_batch(reviewer, requests)

    async def _decide(
        self,
        reviewer: ReviewerContext,
        submission_id: str,
        status: SubmissionStatus | str,
        notes: str | None,
        final_value: FieldValue | None,
    ) -> Submission:
        ensure_reviewer(reviewer)
        status = parse_decision_status(status)
        notes = clean_text(notes, name="review_notes", max_length=MAX_NOTES_LENGTH)
        if status is SubmissionStatus.REJECTED and not notes:
            raise errors.ValidationError("review_notes_required", "Review notes are required when rejecting")
        if status is SubmissionStatus.MODIFIED and final_value is None:
            raise errors.ValidationError("final_value_required", "A final value is required when modifying")
        if status is not SubmissionStatus.MODIFIED:
            final_value = None

        submission = await bounded(self.store.get(submission_id), self.timeout_seconds)
        if not submission.is_pending:
            raise errors.ConflictError("already_processed", "Submission has already been processed")
        ensure_not_self_review(reviewer, submission.submitter_id)
        if status is SubmissionStatus.MODIFIED:
            if not isinstance(submission.payload, CorrectionPayload):
                raise errors.ValidationError("modify_not_supported", "Only corrections can be modified")
            final_value = validate_field_value(submission.payload.field, final_value)

        decision = ReviewDecision(
            status=status,
            reviewer_id=reviewer.id,
            reviewer_name=reviewer.name,
            reviewer_role=reviewer.role,
            decided_at=self.clock(),
            notes=notes,
            final_value=final_value,
        )
        decided = await bounded(self.store.set_decision(submission_id, decision), self.timeout_seconds)
        if status is not SubmissionStatus.REJECTED:
            await self._apply_or_revert(decided, decision)

        await self._write_audit(build_audit_entry(decided, decision))
        await self._record_action(decided, decision)
        self.notifier.dispatch(notifications.DECISION_COMMITTED, _decision_event(decided, decision))
        logger.info(
            "review decision committed",
            extra={
                "submission_id": decided.id,
                "kind": decided.kind.value,
                "status": status.value,
                "reviewer_id": reviewer.id,
            },
        )
        return decided

    async def _apply_or_revert(self, submission: Submission, decision: ReviewDecision) -> None:
        try:
            await bounded(self._apply(submission, decision), self.timeout_seconds)
        except Exception as exc:
            logger.exception(
                "decision effect failed, reverting",
                extra={"submission_id": submission.id, "kind": submission.kind.value},
            )
            try:
                await bounded(self.store.revert_decision(submission.id, decision), self.timeout_seconds)
            except Exception:  # noqa: BLE001 - the original failure is what the caller sees
                logger.exception("decision revert failed", extra={"submission_id": submission.id})
            if isinstance(exc, errors.NotFoundError):
                raise errors.NotFoundError("game_not_found", "Target game not found") from exc
            raise errors.InternalError("decision_not_applied", "The decision could not be applied") from exc

    async def _apply(self, submission: Submission, decision: ReviewDecision) -> None:
        payload = submission.payload
        value = decided_value(submission, decision)
        history = UpdateHistoryEntry(
            field=submission.field or GAME_AUDIT_FIELD,
            old_value=payload.old_value if isinstance(payload, CorrectionPayload) else None,
            new_value=value,
            changed_by=decision.reviewer_id,
            changed_by_name=decision.reviewer_name,
            changed_at=decision.decided_at,
            submission_id=submission.id,
            submitted_by=submission.submitter_id,
            submitted_by_name=submission.submitter_name,
            notes=_history_note(decision, value),
        )
        if isinstance(payload, CorrectionPayload):
            if submission.target is None or value is None:
                raise errors.ValidationError("invalid_target")
            await self.games.apply_field(submission.target, payload.field, value, history)
        elif isinstance(payload, GameProposal):
            slug = submission.target.slug if submission.target else None
            if not slug:
                raise errors.ValidationError("invalid_target")
            await self.games.merge(slug, payload.title, payload.fields, history)
        elif isinstance(payload, FaqProposal):
            await self.faqs.append(question=payload.question, answer=payload.answer, created_by=submission.submitter_id)

    async def _write_audit(self, entry: AuditLogEntry) -> None:
        # Entry ids are per submission, so the retry cannot duplicate.
        started = time.perf_counter()
        for attempt in (1, 2):
            try:
                await bounded(self.audit.append(entry), self.timeout_seconds)
            except Exception:  # noqa: BLE001 - decision is already committed
                logger.exception(
                    "audit write failed",
                    extra={"submission_id": entry.submission_id, "attempt": attempt},
                )
                continue
            obs_metrics.MOD_AUDIT_LATENCY_SECONDS.observe(time.perf_counter() - started)
            return
        obs_metrics.MOD_AUDIT_FAILURES_TOTAL.labels(kind=entry.submission_kind.value).inc()
        logger.error("audit entry lost", extra={"submission_id": entry.submission_id, "audit_id": entry.id})

    async def _record_action(self, submission: Submission, decision: ReviewDecision) -> None:
        action = ReviewerAction(
            id=uuid.uuid4().hex,
            reviewer_id=decision.reviewer_id,
            reviewer_name=decision.reviewer_name,
            submission_id=submission.id,
            submission_kind=submission.kind,
            action=decision.status,
            created_at=decision.decided_at,
            target=submission.target,
        )
        try:
            await bounded(self.actions.record(action), self.timeout_seconds)
        except Exception:  # noqa: BLE001 - action log is informational
            logger.exception("failed to record reviewer action", extra={"submission_id": submission.id})


def _decision_event(submission: Submission, decision: ReviewDecision) -> dict[str, Any]:
    target = submission.target
    final_value = decision.final_value
    return {
        "submission_id": submission.id,
        "kind": submission.kind.value,
        "status": decision.status.value,
        "field": submission.field,
        "reviewer_id": decision.reviewer_id,
        "reviewer_name": decision.reviewer_name,
        "submitter_id": submission.submitter_id,
        "submitter_name": submission.submitter_name,
        "target_slug": target.slug if target else None,
        "target_title": target.title if target else None,
        "notes": decision.notes,
        "final_value": final_value.to_raw() if final_value is not None else None,
    }
