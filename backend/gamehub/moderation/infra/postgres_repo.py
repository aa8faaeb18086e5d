"""PostgreSQL-backed repositories for the moderation workflow."""

from __future__ import annotations

import contextlib
import json
import uuid
from datetime import datetime
from typing import Any, Iterator, Mapping, Optional, Sequence

import asyncpg

from gamehub.moderation.domain import errors
from gamehub.moderation.domain.audit import AuditQuery
from gamehub.moderation.domain.models import (
    ApplicationStatus,
    AuditLogEntry,
    CorrectionPayload,
    FaqEntry,
    FaqProposal,
    GameProposal,
    GameRecord,
    Payload,
    ReviewDecision,
    ReviewerAction,
    ReviewerApplication,
    Submission,
    SubmissionKind,
    SubmissionStatus,
    TargetRef,
    UpdateHistoryEntry,
    UserAggregate,
)
from gamehub.moderation.domain.faqs import validate_order
from gamehub.moderation.domain.store import SubmissionFilter, counter_deltas, is_ready_to_publish
from gamehub.moderation.domain.values import FieldValue, optional_json

SCHEMA = """
CREATE TABLE IF NOT EXISTS mod_user (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'user',
    status TEXT NOT NULL DEFAULT 'active',
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    submissions_count INTEGER NOT NULL DEFAULT 0,
    approved_count INTEGER NOT NULL DEFAULT 0,
    rejected_count INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS mod_submission (
    id TEXT PRIMARY KEY,
    kind TEXT NOT NULL,
    submitter_id TEXT NOT NULL,
    submitter_name TEXT NOT NULL,
    submitted_at TIMESTAMPTZ NOT NULL,
    target JSONB,
    target_key TEXT,
    payload JSONB NOT NULL,
    justification TEXT,
    status TEXT NOT NULL DEFAULT 'pending',
    decision JSONB
);
CREATE INDEX IF NOT EXISTS mod_submission_status_idx ON mod_submission (status, submitted_at DESC);
CREATE INDEX IF NOT EXISTS mod_submission_submitter_idx ON mod_submission (submitter_id, submitted_at DESC);
CREATE TABLE IF NOT EXISTS mod_game (
    id TEXT PRIMARY KEY,
    slug TEXT NOT NULL UNIQUE,
    title TEXT NOT NULL,
    fields JSONB NOT NULL DEFAULT '{}'::jsonb,
    update_history JSONB NOT NULL DEFAULT '[]'::jsonb,
    ready_to_publish BOOLEAN NOT NULL DEFAULT FALSE,
    updated_at TIMESTAMPTZ
);
CREATE TABLE IF NOT EXISTS mod_audit_log (
    id TEXT PRIMARY KEY,
    submission_id TEXT NOT NULL UNIQUE,
    changed_at TIMESTAMPTZ NOT NULL,
    changed_by TEXT NOT NULL,
    changed_by_role TEXT NOT NULL,
    field TEXT NOT NULL,
    submitted_by TEXT,
    target_slug TEXT,
    search_text TEXT NOT NULL DEFAULT '',
    entry JSONB NOT NULL
);
CREATE INDEX IF NOT EXISTS mod_audit_log_changed_at_idx ON mod_audit_log (changed_at DESC);
CREATE TABLE IF NOT EXISTS mod_reviewer_action (
    id TEXT PRIMARY KEY,
    reviewer_id TEXT NOT NULL,
    reviewer_name TEXT NOT NULL,
    submission_id TEXT NOT NULL,
    submission_kind TEXT NOT NULL,
    action TEXT NOT NULL,
    target JSONB,
    created_at TIMESTAMPTZ NOT NULL
);
CREATE TABLE IF NOT EXISTS mod_reviewer_application (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    user_name TEXT NOT NULL,
    motivation TEXT NOT NULL,
    experience TEXT NOT NULL,
    contribution_examples TEXT NOT NULL,
    time_availability TEXT,
    languages TEXT,
    prior_experience TEXT,
    agreed_to_rules BOOLEAN NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    created_at TIMESTAMPTZ NOT NULL,
    decided_at TIMESTAMPTZ,
    admin_id TEXT,
    admin_name TEXT,
    admin_notes TEXT
);
CREATE UNIQUE INDEX IF NOT EXISTS mod_reviewer_application_pending_uq
    ON mod_reviewer_application (user_id) WHERE status = 'pending';
CREATE TABLE IF NOT EXISTS mod_faq (
    id TEXT PRIMARY KEY,
    question TEXT NOT NULL,
    answer TEXT NOT NULL,
    ord INTEGER NOT NULL,
    created_by TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ
);
"""


async def ensure_schema(pool: asyncpg.Pool) -> None:
    async with pool.acquire() as conn:
        await conn.execute(SCHEMA)


@contextlib.contextmanager
def _driver_errors() -> Iterator[None]:
    try:
        yield
    except (asyncpg.PostgresError, OSError, asyncpg.InterfaceError) as exc:
        raise errors.InternalError("store_unavailable", "Storage is unavailable") from exc


def _dumps(value: Any) -> str:
    return json.dumps(value, default=str)


def _loads(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        return json.loads(value)
    return value


def _target_to_json(target: TargetRef | None) -> dict[str, Any] | None:
    if target is None:
        return None
    return {"gameId": target.game_id, "slug": target.slug, "title": target.title}


def _target_from_json(data: Mapping[str, Any] | None) -> TargetRef | None:
    if not data:
        return None
    return TargetRef(game_id=data.get("gameId"), slug=data.get("slug"), title=data.get("title"))


def _payload_to_json(payload: Payload) -> dict[str, Any]:
    if isinstance(payload, CorrectionPayload):
        return {
            "field": payload.field,
            "oldValue": payload.old_value.to_json(),
            "newValue": payload.new_value.to_json(),
        }
    if isinstance(payload, GameProposal):
        return {"title": payload.title, "fields": {name: value.to_json() for name, value in payload.fields.items()}}
    return {"question": payload.question, "answer": payload.answer}


def _payload_from_json(kind: SubmissionKind, data: Mapping[str, Any]) -> Payload:
    if kind is SubmissionKind.CORRECTION:
        return CorrectionPayload(
            field=data["field"],
            old_value=FieldValue.from_json(data.get("oldValue")) or FieldValue.clear(),
            new_value=FieldValue.from_json(data.get("newValue")) or FieldValue.clear(),
        )
    if kind is SubmissionKind.GAME:
        fields = {name: FieldValue.from_json(value) for name, value in (data.get("fields") or {}).items()}
        return GameProposal(title=data.get("title") or "", fields={k: v for k, v in fields.items() if v is not None})
    return FaqProposal(question=data["question"], answer=data["answer"])


def _decision_to_json(decision: ReviewDecision) -> dict[str, Any]:
    return {
        "status": decision.status.value,
        "reviewerId": decision.reviewer_id,
        "reviewerName": decision.reviewer_name,
        "reviewerRole": decision.reviewer_role,
        "decidedAt": decision.decided_at.isoformat(),
        "notes": decision.notes,
        "finalValue": optional_json(decision.final_value),
    }


def _decision_from_json(data: Mapping[str, Any] | None) -> ReviewDecision | None:
    if not data:
        return None
    return ReviewDecision(
        status=SubmissionStatus(data["status"]),
        reviewer_id=data["reviewerId"],
        reviewer_name=data.get("reviewerName") or "Unknown",
        reviewer_role=data.get("reviewerRole") or "reviewer",
        decided_at=datetime.fromisoformat(data["decidedAt"]),
        notes=data.get("notes"),
        final_value=FieldValue.from_json(data.get("finalValue")),
    )


def _submission_from_record(record: asyncpg.Record) -> Submission:
    kind = SubmissionKind(record["kind"])
    return Submission(
        id=str(record["id"]),
        kind=kind,
        submitter_id=str(record["submitter_id"]),
        submitter_name=str(record["submitter_name"]),
        submitted_at=record["submitted_at"],
        payload=_payload_from_json(kind, _loads(record["payload"])),
        target=_target_from_json(_loads(record["target"])),
        justification=record["justification"],
        status=SubmissionStatus(record["status"]),
        decision=_decision_from_json(_loads(record["decision"])),
    )


_SUBMISSION_COLUMNS = (
    "id, kind, submitter_id, submitter_name, submitted_at, target, payload, justification, status, decision"
)


class PostgresSubmissionStore:
    """Submission records; decisions are a conditional UPDATE on ``status``."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def create(self, submission: Submission) -> str:
        if not submission.is_pending or submission.decision is not None:
            raise errors.ValidationError("submission_must_start_pending")
        with _driver_errors():
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    try:
                        await conn.execute(
                            """
                            INSERT INTO mod_submission
                                (id, kind, submitter_id, submitter_name, submitted_at, target, target_key, payload, justification)
                            VALUES ($1, $2, $3, $4, $5, $6::jsonb, $7, $8::jsonb, $9)
                            """,
                            submission.id,
                            submission.kind.value,
                            submission.submitter_id,
                            submission.submitter_name,
                            submission.submitted_at,
                            _dumps(_target_to_json(submission.target)),
                            submission.target_key,
                            _dumps(_payload_to_json(submission.payload)),
                            submission.justification,
                        )
                    except asyncpg.UniqueViolationError as exc:
                        raise errors.ConflictError("duplicate_submission") from exc
                    await conn.execute(
                        """
                        INSERT INTO mod_user (id, name, submissions_count) VALUES ($1, $2, 1)
                        ON CONFLICT (id) DO UPDATE SET submissions_count = mod_user.submissions_count + 1
                        """,
                        submission.submitter_id,
                        submission.submitter_name,
                    )
        return submission.id

    async def get(self, submission_id: str) -> Submission:
        with _driver_errors():
            record = await self.pool.fetchrow(
                f"SELECT {_SUBMISSION_COLUMNS} FROM mod_submission WHERE id = $1",
                submission_id,
            )
        if record is None:
            raise errors.NotFoundError("submission_not_found")
        return _submission_from_record(record)

    async def list_pending(self, filter: SubmissionFilter | None = None) -> list[Submission]:
        query = filter or SubmissionFilter()
        return await self._list(query, SubmissionStatus.PENDING)

    async def list(self, filter: SubmissionFilter | None = None) -> list[Submission]:
        query = filter or SubmissionFilter()
        return await self._list(query, query.status)

    async def _list(self, query: SubmissionFilter, status: Optional[SubmissionStatus]) -> list[Submission]:
        with _driver_errors():
            records = await self.pool.fetch(
                f"""
                SELECT {_SUBMISSION_COLUMNS}
                FROM mod_submission
                WHERE ($1::text IS NULL OR status = $1)
                  AND ($2::text IS NULL OR kind = $2)
                  AND ($3::text IS NULL OR submitter_id = $3)
                  AND ($4::text IS NULL OR target_key = $4 OR target->>'slug' = $4)
                ORDER BY submitted_at DESC, id DESC
                LIMIT $5
                """,
                status.value if status else None,
                query.kind.value if query.kind else None,
                query.submitter_id,
                query.target_key,
                max(0, query.limit),
            )
        return [_submission_from_record(record) for record in records]

    async def set_decision(
        self,
        submission_id: str,
        decision: ReviewDecision,
        *,
        expected_status: SubmissionStatus = SubmissionStatus.PENDING,
    ) -> Submission:
        approved, rejected = counter_deltas(decision.status)
        with _driver_errors():
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    record = await conn.fetchrow(
                        f"""
                        UPDATE mod_submission SET status = $2, decision = $3::jsonb
                        WHERE id = $1 AND status = $4
                        RETURNING {_SUBMISSION_COLUMNS}
                        """,
                        submission_id,
                        decision.status.value,
                        _dumps(_decision_to_json(decision)),
                        expected_status.value,
                    )
                    if record is None:
                        exists = await conn.fetchval("SELECT 1 FROM mod_submission WHERE id = $1", submission_id)
                        if exists is None:
                            raise errors.NotFoundError("submission_not_found")
                        raise errors.ConflictError("already_processed", "Submission has already been processed")
                    if approved or rejected:
                        await conn.execute(
                            """
                            UPDATE mod_user
                            SET approved_count = approved_count + $2, rejected_count = rejected_count + $3
                            WHERE id = $1
                            """,
                            record["submitter_id"],
                            approved,
                            rejected,
                        )
        return _submission_from_record(record)

    async def revert_decision(self, submission_id: str, decision: ReviewDecision) -> None:
        approved, rejected = counter_deltas(decision.status)
        with _driver_errors():
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    submitter_id = await conn.fetchval(
                        """
                        UPDATE mod_submission SET status = 'pending', decision = NULL
                        WHERE id = $1 AND status = $2 AND decision = $3::jsonb
                        RETURNING submitter_id
                        """,
                        submission_id,
                        decision.status.value,
                        _dumps(_decision_to_json(decision)),
                    )
                    if submitter_id is None:
                        raise errors.ConflictError("decision_changed")
                    if approved or rejected:
                        await conn.execute(
                            """
                            UPDATE mod_user
                            SET approved_count = GREATEST(0, approved_count - $2),
                                rejected_count = GREATEST(0, rejected_count - $3)
                            WHERE id = $1
                            """,
                            submitter_id,
                            approved,
                            rejected,
                        )


def _user_from_record(record: asyncpg.Record) -> UserAggregate:
    return UserAggregate(
        user_id=str(record["id"]),
        name=str(record["name"]),
        role=str(record["role"]),
        status=str(record["status"]),
        created_at=record["created_at"],
        submissions_count=int(record["submissions_count"]),
        approved_count=int(record["approved_count"]),
        rejected_count=int(record["rejected_count"]),
    )


class PostgresUserRepository:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def get(self, user_id: str) -> UserAggregate | None:
        with _driver_errors():
            record = await self.pool.fetchrow("SELECT * FROM mod_user WHERE id = $1", user_id)
        return _user_from_record(record) if record else None

    async def ensure(self, user_id: str, name: str) -> UserAggregate:
        with _driver_errors():
            record = await self.pool.fetchrow(
                """
                INSERT INTO mod_user (id, name) VALUES ($1, $2)
                ON CONFLICT (id) DO UPDATE SET name = mod_user.name
                RETURNING *
                """,
                user_id,
                name,
            )
        assert record is not None
        return _user_from_record(record)

    async def save(self, user: UserAggregate) -> UserAggregate:
        with _driver_errors():
            await self.pool.execute(
                """
                INSERT INTO mod_user (id, name, role, status, created_at, submissions_count, approved_count, rejected_count)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                ON CONFLICT (id) DO UPDATE SET
                    name = EXCLUDED.name,
                    role = EXCLUDED.role,
                    status = EXCLUDED.status,
                    submissions_count = EXCLUDED.submissions_count,
                    approved_count = EXCLUDED.approved_count,
                    rejected_count = EXCLUDED.rejected_count
                """,
                user.user_id,
                user.name,
                user.role,
                user.status,
                user.created_at,
                user.submissions_count,
                user.approved_count,
                user.rejected_count,
            )
        return user

    async def set_role(self, user_id: str, role: str) -> None:
        with _driver_errors():
            result = await self.pool.execute("UPDATE mod_user SET role = $2 WHERE id = $1", user_id, role)
        if result.endswith(" 0"):
            raise errors.NotFoundError("user_not_found")


def _game_from_record(record: asyncpg.Record) -> GameRecord:
    return GameRecord(
        slug=str(record["slug"]),
        id=str(record["id"]),
        title=str(record["title"]),
        fields=dict(_loads(record["fields"]) or {}),
        update_history=[UpdateHistoryEntry.from_json(item) for item in _loads(record["update_history"]) or []],
        ready_to_publish=bool(record["ready_to_publish"]),
        updated_at=record["updated_at"],
    )


class PostgresGameRepository:
    """Game records are read and rewritten under ``SELECT ... FOR UPDATE``."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def get(self, slug: str) -> GameRecord | None:
        with _driver_errors():
            record = await self.pool.fetchrow("SELECT * FROM mod_game WHERE slug = $1", slug)
        return _game_from_record(record) if record else None

    async def _write(self, conn: asyncpg.Connection, game: GameRecord) -> None:
        await conn.execute(
            """
            UPDATE mod_game
            SET title = $2, fields = $3::jsonb, update_history = $4::jsonb, ready_to_publish = $5, updated_at = $6
            WHERE id = $1
            """,
            game.id,
            game.title,
            _dumps(game.fields),
            _dumps([entry.to_json() for entry in game.update_history]),
            game.ready_to_publish,
            game.updated_at,
        )

    async def apply_field(
        self,
        target: TargetRef,
        field: str,
        value: FieldValue,
        history: UpdateHistoryEntry,
    ) -> GameRecord:
        with _driver_errors():
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    record = await conn.fetchrow(
                        "SELECT * FROM mod_game WHERE id = $1 OR slug = $2 LIMIT 1 FOR UPDATE",
                        target.game_id,
                        target.slug,
                    )
                    if record is None:
                        raise errors.NotFoundError("game_not_found")
                    game = _game_from_record(record)
                    if field == "title":
                        game.title = str(value.to_raw())
                    elif value.is_clear:
                        game.fields.pop(field, None)
                    else:
                        game.fields[field] = value.to_raw()
                    game.update_history.append(history)
                    game.updated_at = history.changed_at
                    await self._write(conn, game)
        return game

    async def merge(
        self,
        slug: str,
        title: str,
        fields: Mapping[str, FieldValue],
        history: UpdateHistoryEntry,
    ) -> GameRecord:
        with _driver_errors():
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(
                        "INSERT INTO mod_game (id, slug, title) VALUES ($1, $2, $3) ON CONFLICT (slug) DO NOTHING",
                        uuid.uuid4().hex,
                        slug,
                        title,
                    )
                    record = await conn.fetchrow("SELECT * FROM mod_game WHERE slug = $1 FOR UPDATE", slug)
                    assert record is not None
                    game = _game_from_record(record)
                    for name, value in fields.items():
                        if value.is_clear:
                            continue
                        if name == "title":
                            game.title = str(value.to_raw())
                        else:
                            game.fields[name] = value.to_raw()
                    game.ready_to_publish = is_ready_to_publish(game)
                    game.update_history.append(history)
                    game.updated_at = history.changed_at
                    await self._write(conn, game)
        return game


def _value_search_text(value: FieldValue | None) -> str:
    if value is None or value.is_clear:
        return ""
    raw = value.to_raw()
    return " ".join(raw) if isinstance(raw, list) else str(raw)


def _audit_to_json(entry: AuditLogEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "submissionId": entry.submission_id,
        "submissionKind": entry.submission_kind.value,
        "action": entry.action.value,
        "field": entry.field,
        "target": _target_to_json(entry.target),
        "oldValue": optional_json(entry.old_value),
        "newValue": optional_json(entry.new_value),
        "changedBy": entry.changed_by,
        "changedByName": entry.changed_by_name,
        "changedByRole": entry.changed_by_role,
        "changedAt": entry.changed_at.isoformat(),
        "submittedBy": entry.submitted_by,
        "submittedByName": entry.submitted_by_name,
        "notes": entry.notes,
    }


def _audit_from_record(record: asyncpg.Record) -> AuditLogEntry:
    data = _loads(record["entry"])
    return AuditLogEntry(
        id=data["id"],
        submission_id=data["submissionId"],
        submission_kind=SubmissionKind(data["submissionKind"]),
        action=SubmissionStatus(data["action"]),
        field=data["field"],
        target=_target_from_json(data.get("target")),
        old_value=FieldValue.from_json(data.get("oldValue")),
        new_value=FieldValue.from_json(data.get("newValue")),
        changed_by=data["changedBy"],
        changed_by_name=data.get("changedByName") or "Unknown",
        changed_by_role=data.get("changedByRole") or "reviewer",
        changed_at=record["changed_at"],
        submitted_by=data.get("submittedBy"),
        submitted_by_name=data.get("submittedByName"),
        notes=data.get("notes"),
    )


class PostgresAuditLog:
    """Insert-only; the submission id is unique so a retried append is a no-op."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        search_text = " ".join(
            part
            for part in (
                entry.target.title if entry.target else None,
                entry.target.slug if entry.target else None,
                entry.field,
                entry.changed_by_name,
                entry.submitted_by_name,
                entry.notes,
                _value_search_text(entry.new_value),
            )
            if part
        ).lower()
        with _driver_errors():
            await self.pool.execute(
                """
                INSERT INTO mod_audit_log
                    (id, submission_id, changed_at, changed_by, changed_by_role, field, submitted_by, target_slug, search_text, entry)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10::jsonb)
                ON CONFLICT (submission_id) DO NOTHING
                """,
                entry.id,
                entry.submission_id,
                entry.changed_at,
                entry.changed_by,
                entry.changed_by_role,
                entry.field,
                entry.submitted_by,
                entry.target.slug if entry.target else None,
                search_text,
                _dumps(_audit_to_json(entry)),
            )
        return entry

    async def get(self, entry_id: str) -> AuditLogEntry | None:
        with _driver_errors():
            record = await self.pool.fetchrow("SELECT changed_at, entry FROM mod_audit_log WHERE id = $1", entry_id)
        return _audit_from_record(record) if record else None

    async def list(self, query: AuditQuery | None = None) -> list[AuditLogEntry]:
        query = query or AuditQuery()
        order = "DESC" if query.descending else "ASC"
        with _driver_errors():
            records = await self.pool.fetch(
                f"""
                SELECT changed_at, entry FROM mod_audit_log
                WHERE ($1::text IS NULL OR changed_by_role = $1)
                  AND ($2::text IS NULL OR field = $2)
                  AND ($3::text IS NULL OR submitted_by = $3)
                  AND ($4::text IS NULL OR changed_by = $4)
                  AND ($5::text IS NULL OR target_slug = $5)
                  AND ($6::text IS NULL OR strpos(search_text, $6) > 0)
                ORDER BY changed_at {order}, id {order}
                LIMIT $7
                """,
                query.role,
                query.field,
                query.submitter_id,
                query.reviewer_id,
                query.target_slug,
                query.search,
                query.limit,
            )
        return [_audit_from_record(record) for record in records]

    async def count(self) -> int:
        with _driver_errors():
            value = await self.pool.fetchval("SELECT count(*) FROM mod_audit_log")
        return int(value or 0)


class PostgresReviewerActionRepository:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def record(self, action: ReviewerAction) -> None:
        with _driver_errors():
            await self.pool.execute(
                """
                INSERT INTO mod_reviewer_action
                    (id, reviewer_id, reviewer_name, submission_id, submission_kind, action, target, created_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7::jsonb, $8)
                """,
                action.id,
                action.reviewer_id,
                action.reviewer_name,
                action.submission_id,
                action.submission_kind.value,
                action.action.value,
                _dumps(_target_to_json(action.target)),
                action.created_at,
            )

    async def list(self, *, reviewer_id: str | None = None, limit: int = 100) -> list[ReviewerAction]:
        with _driver_errors():
            records = await self.pool.fetch(
                """
                SELECT * FROM mod_reviewer_action
                WHERE ($1::text IS NULL OR reviewer_id = $1)
                ORDER BY created_at DESC
                LIMIT $2
                """,
                reviewer_id,
                max(0, limit),
            )
        return [
            ReviewerAction(
                id=str(record["id"]),
                reviewer_id=str(record["reviewer_id"]),
                reviewer_name=str(record["reviewer_name"]),
                submission_id=str(record["submission_id"]),
                submission_kind=SubmissionKind(record["submission_kind"]),
                action=SubmissionStatus(record["action"]),
                created_at=record["created_at"],
                target=_target_from_json(_loads(record["target"])),
            )
            for record in records
        ]


def _application_from_record(record: asyncpg.Record) -> ReviewerApplication:
    return ReviewerApplication(
        id=str(record["id"]),
        user_id=str(record["user_id"]),
        user_name=str(record["user_name"]),
        motivation=record["motivation"],
        experience=record["experience"],
        contribution_examples=record["contribution_examples"],
        agreed_to_rules=bool(record["agreed_to_rules"]),
        created_at=record["created_at"],
        time_availability=record["time_availability"],
        languages=record["languages"],
        prior_experience=record["prior_experience"],
        status=ApplicationStatus(record["status"]),
        decided_at=record["decided_at"],
        admin_id=record["admin_id"],
        admin_name=record["admin_name"],
        admin_notes=record["admin_notes"],
    )


class PostgresApplicationRepository:
    """The partial unique index keeps one pending application per user."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def create(self, application: ReviewerApplication) -> ReviewerApplication:
        with _driver_errors():
            try:
                record = await self.pool.fetchrow(
                    """
                    INSERT INTO mod_reviewer_application
                        (id, user_id, user_name, motivation, experience, contribution_examples,
                         time_availability, languages, prior_experience, agreed_to_rules, status, created_at)
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, 'pending', $11)
                    RETURNING *
                    """,
                    application.id,
                    application.user_id,
                    application.user_name,
                    application.motivation,
                    application.experience,
                    application.contribution_examples,
                    application.time_availability,
                    application.languages,
                    application.prior_experience,
                    application.agreed_to_rules,
                    application.created_at,
                )
            except asyncpg.UniqueViolationError as exc:
                raise errors.ConflictError("application_pending", "You already have a pending application") from exc
        assert record is not None
        return _application_from_record(record)

    async def get(self, application_id: str) -> ReviewerApplication | None:
        with _driver_errors():
            record = await self.pool.fetchrow("SELECT * FROM mod_reviewer_application WHERE id = $1", application_id)
        return _application_from_record(record) if record else None

    async def list_for_user(self, user_id: str) -> list[ReviewerApplication]:
        with _driver_errors():
            records = await self.pool.fetch(
                "SELECT * FROM mod_reviewer_application WHERE user_id = $1 ORDER BY created_at DESC",
                user_id,
            )
        return [_application_from_record(record) for record in records]

    async def list(self, *, status: ApplicationStatus | None = None, limit: int = 100) -> list[ReviewerApplication]:
        with _driver_errors():
            records = await self.pool.fetch(
                """
                SELECT * FROM mod_reviewer_application
                WHERE ($1::text IS NULL OR status = $1)
                ORDER BY created_at DESC
                LIMIT $2
                """,
                status.value if status else None,
                max(0, limit),
            )
        return [_application_from_record(record) for record in records]

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
        with _driver_errors():
            record = await self.pool.fetchrow(
                """
                UPDATE mod_reviewer_application
                SET status = $2, admin_id = $3, admin_name = $4, admin_notes = $5, decided_at = $6
                WHERE id = $1 AND status = 'pending'
                RETURNING *
                """,
                application_id,
                status.value,
                admin_id,
                admin_name,
                notes,
                decided_at,
            )
            if record is None:
                exists = await self.pool.fetchval("SELECT 1 FROM mod_reviewer_application WHERE id = $1", application_id)
        if record is None:
            if exists is None:
                raise errors.NotFoundError("application_not_found")
            raise errors.ConflictError("application_already_decided", "Application has already been reviewed")
        return _application_from_record(record)


def _faq_from_record(record: asyncpg.Record) -> FaqEntry:
    return FaqEntry(
        id=str(record["id"]),
        question=record["question"],
        answer=record["answer"],
        order=int(record["ord"]),
        created_by=record["created_by"],
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


class PostgresFaqRepository:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def list(self) -> list[FaqEntry]:
        with _driver_errors():
            records = await self.pool.fetch("SELECT * FROM mod_faq ORDER BY ord ASC, created_at ASC")
        return [_faq_from_record(record) for record in records]

    async def append(self, *, question: str, answer: str, created_by: str | None = None) -> FaqEntry:
        with _driver_errors():
            record = await self.pool.fetchrow(
                """
                INSERT INTO mod_faq (id, question, answer, ord, created_by)
                VALUES ($1, $2, $3, (SELECT COALESCE(MAX(ord), -1) + 1 FROM mod_faq), $4)
                RETURNING *
                """,
                uuid.uuid4().hex,
                question,
                answer,
                created_by,
            )
        assert record is not None
        return _faq_from_record(record)

    async def reorder(self, ordered_ids: Sequence[str]) -> None:
        with _driver_errors():
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    known = await conn.fetch("SELECT id FROM mod_faq FOR UPDATE")
                    validate_order(ordered_ids, (str(row["id"]) for row in known))
                    await conn.executemany(
                        "UPDATE mod_faq SET ord = $2, updated_at = now() WHERE id = $1",
                        [(entry_id, position) for position, entry_id in enumerate(ordered_ids)],
                    )
