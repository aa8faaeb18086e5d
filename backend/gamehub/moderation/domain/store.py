"""Submission store contracts and the in-memory backend.

The store is the only source of truth for submission state. Deciding a
submission is a compare-and-set on its status; the submitter's counters move
in the same step so they are incremented exactly once per decision.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Iterable, Mapping, Protocol, Sequence, TypeVar

from gamehub.moderation.domain import errors
from gamehub.moderation.domain.models import (
    GameRecord,
    ReviewDecision,
    Submission,
    SubmissionKind,
    SubmissionStatus,
    TargetRef,
    UpdateHistoryEntry,
    UserAggregate,
    utcnow,
)
from gamehub.moderation.domain.values import FieldValue

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_LIST_LIMIT = 1000


async def bounded(awaitable: Awaitable[T], timeout: float | None) -> T:
    """Await a store call, turning a timeout into ``InternalError``."""
    if timeout is None or timeout <= 0:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        logger.error("store_timeout", extra={"timeout_seconds": timeout})
        raise errors.InternalError("store_timeout", "Storage did not respond in time") from exc


def counter_deltas(status: SubmissionStatus) -> tuple[int, int]:
    """Return (approved, rejected) increments for a decided status."""
    if status is SubmissionStatus.APPROVED:
        return 1, 0
    if status is SubmissionStatus.REJECTED:
        return 0, 1
    return 0, 0


@dataclass(slots=True)
class SubmissionFilter:
    kind: SubmissionKind | None = None
    status: SubmissionStatus | None = None
    submitter_id: str | None = None
    target_key: str | None = None
    limit: int = DEFAULT_LIST_LIMIT

    def matches(self, submission: Submission) -> bool:
        if self.kind is not None and submission.kind is not self.kind:
            return False
        if self.status is not None and submission.status is not self.status:
            return False
        if self.submitter_id is not None and submission.submitter_id != self.submitter_id:
            return False
        if self.target_key is not None:
            target = submission.target
            if target is None or self.target_key not in (target.game_id, target.slug):
                return False
        return True


class SubmissionStore(Protocol):
    async def create(self, submission: Submission) -> str:
        ...

    async def get(self, submission_id: str) -> Submission:
        ...

    async def list_pending(self, filter: SubmissionFilter | None = None) -> list[Submission]:
        ...

    async def list(self, filter: SubmissionFilter | None = None) -> list[Submission]:
        ...

    async def set_decision(
        self,
        submission_id: str,
        decision: ReviewDecision,
        *,
        expected_status: SubmissionStatus = SubmissionStatus.PENDING,
    ) -> Submission:
        ...

    async def revert_decision(self, submission_id: str, decision: ReviewDecision) -> None:
        ...


class UserRepository(Protocol):
    async def get(self, user_id: str) -> UserAggregate | None:
        ...

    async def ensure(self, user_id: str, name: str) -> UserAggregate:
        ...

    async def save(self, user: UserAggregate) -> UserAggregate:
        ...

    async def set_role(self, user_id: str, role: str) -> None:
        ...


class GameRepository(Protocol):
    async def get(self, slug: str) -> GameRecord | None:
        ...

    async def apply_field(
        self,
        target: TargetRef,
        field: str,
        value: FieldValue,
        history: UpdateHistoryEntry,
    ) -> GameRecord:
        ...

    async def merge(
        self,
        slug: str,
        title: str,
        fields: Mapping[str, FieldValue],
        history: UpdateHistoryEntry,
    ) -> GameRecord:
        ...


class InMemoryUserRepository:
    def __init__(self, users: Iterable[UserAggregate] = ()) -> None:
        self._users: dict[str, UserAggregate] = {user.user_id: user for user in users}

    async def get(self, user_id: str) -> UserAggregate | None:
        user = self._users.get(user_id)
        return copy.copy(user) if user else None

    async def ensure(self, user_id: str, name: str) -> UserAggregate:
        user = self._users.get(user_id)
        if user is None:
            user = UserAggregate(user_id=user_id, name=name)
            self._users[user_id] = user
        return copy.copy(user)

    async def save(self, user: UserAggregate) -> UserAggregate:
        self._users[user.user_id] = copy.copy(user)
        return user

    async def set_role(self, user_id: str, role: str) -> None:
        user = self._users.get(user_id)
        if user is None:
            raise errors.NotFoundError("user_not_found")
        user.role = role

    def bump(self, user_id: str, *, submissions: int = 0, approved: int = 0, rejected: int = 0) -> None:
        user = self._users.get(user_id)
        if user is None:
            # Counters for unknown users start at zero.
            user = UserAggregate(user_id=user_id, name="Unknown")
            self._users[user_id] = user
        user.submissions_count = max(0, user.submissions_count + submissions)
        user.approved_count = max(0, user.approved_count + approved)
        user.rejected_count = max(0, user.rejected_count + rejected)

    def all(self) -> list[UserAggregate]:
        return [copy.copy(user) for user in self._users.values()]


class InMemorySubmissionStore:
    def __init__(self, users: InMemoryUserRepository | None = None) -> None:
        self.users = users or InMemoryUserRepository()
        self._submissions: dict[str, Submission] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock(self, submission_id: str) -> asyncio.Lock:
        lock = self._locks.get(submission_id)
        if lock is None:
            lock = self._locks[submission_id] = asyncio.Lock()
        return lock

    async def create(self, submission: Submission) -> str:
        if submission.id in self._submissions:
            raise errors.ConflictError("duplicate_submission")
        if not submission.is_pending or submission.decision is not None:
            raise errors.ValidationError("submission_must_start_pending")
        self._submissions[submission.id] = copy.deepcopy(submission)
        self.users.bump(submission.submitter_id, submissions=1)
        return submission.id

    async def get(self, submission_id: str) -> Submission:
        submission = self._submissions.get(submission_id)
        if submission is None:
            raise errors.NotFoundError("submission_not_found")
        return copy.deepcopy(submission)

    async def list_pending(self, filter: SubmissionFilter | None = None) -> list[Submission]:
        query = replace(filter) if filter else SubmissionFilter()
        query.status = SubmissionStatus.PENDING
        return await self.list(query)

    async def list(self, filter: SubmissionFilter | None = None) -> list[Submission]:
        query = filter or SubmissionFilter()
        matched = [item for item in self._submissions.values() if query.matches(item)]
        matched.sort(key=lambda item: (item.submitted_at, item.id), reverse=True)
        return [copy.deepcopy(item) for item in matched[: max(0, query.limit)]]

    async def set_decision(
        self,
        submission_id: str,
        decision: ReviewDecision,
        *,
        expected_status: SubmissionStatus = SubmissionStatus.PENDING,
    ) -> Submission:
        async with self._lock(submission_id):
            current = self._submissions.get(submission_id)
            if current is None:
                raise errors.NotFoundError("submission_not_found")
            if current.status is not expected_status:
                raise errors.ConflictError("already_processed", "Submission has already been processed")
            current.status = decision.status
            current.decision = decision
            approved, rejected = counter_deltas(decision.status)
            self.users.bump(current.submitter_id, approved=approved, rejected=rejected)
            return copy.deepcopy(current)

    async def revert_decision(self, submission_id: str, decision: ReviewDecision) -> None:
        async with self._lock(submission_id):
            current = self._submissions.get(submission_id)
            if current is None or current.decision != decision:
                raise errors.ConflictError("decision_changed")
            current.status = SubmissionStatus.PENDING
            current.decision = None
            approved, rejected = counter_deltas(decision.status)
            self.users.bump(current.submitter_id, approved=-approved, rejected=-rejected)


def _apply_value(fields: dict[str, Any], field: str, value: FieldValue) -> None:
    if value.is_clear:
        fields.pop(field, None)
    else:
        fields[field] = value.to_raw()


PUBLISH_REQUIRED_FIELDS: Sequence[str] = ("title", "releaseDate", "developer", "publisher")


def is_ready_to_publish(record: GameRecord) -> bool:
    values = dict(record.fields, title=record.title)
    return all(values.get(name) not in (None, "", []) for name in PUBLISH_REQUIRED_FIELDS)


class InMemoryGameRepository:
    def __init__(self, games: Iterable[GameRecord] = ()) -> None:
        self._games: dict[str, GameRecord] = {game.slug: game for game in games}
        self._seq = 0

    async def get(self, slug: str) -> GameRecord | None:
        game = self._games.get(slug)
        return copy.deepcopy(game) if game else None

    def _find(self, target: TargetRef) -> GameRecord | None:
        if target.slug and target.slug in self._games:
            return self._games[target.slug]
        for game in self._games.values():
            if target.game_id and game.id == target.game_id:
                return game
        return None

    async def apply_field(
        self,
        target: TargetRef,
        field: str,
        value: FieldValue,
        history: UpdateHistoryEntry,
    ) -> GameRecord:
        game = self._find(target)
        if game is None:
            raise errors.NotFoundError("game_not_found")
        if field == "title":
            game.title = str(value.to_raw())
        else:
            _apply_value(game.fields, field, value)
        game.update_history.append(history)
        game.updated_at = history.changed_at
        return copy.deepcopy(game)

    async def merge(
        self,
        slug: str,
        title: str,
        fields: Mapping[str, FieldValue],
        history: UpdateHistoryEntry,
    ) -> GameRecord:
        game = self._games.get(slug)
        if game is None:
            self._seq += 1
            game = GameRecord(slug=slug, id=f"game-{self._seq}", title=title)
            self._games[slug] = game
        for name, value in fields.items():
            if value.is_clear:
                continue
            if name == "title":
                game.title = str(value.to_raw())
            else:
                game.fields[name] = value.to_raw()
        game.ready_to_publish = is_ready_to_publish(game)
        game.update_history.append(history)
        game.updated_at = history.changed_at or utcnow()
        return copy.deepcopy(game)
