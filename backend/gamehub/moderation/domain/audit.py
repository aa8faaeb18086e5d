"""Append-only audit ledger for committed review decisions.

Only the review workflow holds an ``AuditLog``; everything else receives the
``AuditReader`` view. Entry ids are derived from the submission id, so a
retried append for the same decision never produces a second entry.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Iterable, Protocol

from gamehub.moderation.domain.models import AuditLogEntry, ReviewerAction
from gamehub.moderation.domain.values import FieldValue

DEFAULT_AUDIT_LIMIT = 100
MAX_AUDIT_LIMIT = 1000


def audit_entry_id(submission_id: str) -> str:
    return f"audit:{submission_id}"


def _value_text(value: FieldValue | None) -> str:
    if value is None or value.is_clear:
        return ""
    raw = value.to_raw()
    if isinstance(raw, list):
        return " ".join(raw)
    return str(raw)


@dataclass(slots=True)
class AuditQuery:
    role: str | None = None
    field: str | None = None
    submitter_id: str | None = None
    reviewer_id: str | None = None
    target_slug: str | None = None
    search: str | None = None
    descending: bool = True
    limit: int = DEFAULT_AUDIT_LIMIT

    def __post_init__(self) -> None:
        self.limit = max(1, min(int(self.limit), MAX_AUDIT_LIMIT))
        if self.search is not None:
            self.search = self.search.strip().lower() or None

    def matches(self, entry: AuditLogEntry) -> bool:
        if self.role and entry.changed_by_role != self.role:
            return False
        if self.field and entry.field != self.field:
            return False
        if self.submitter_id and entry.submitted_by != self.submitter_id:
            return False
        if self.reviewer_id and entry.changed_by != self.reviewer_id:
            return False
        if self.target_slug and (entry.target is None or entry.target.slug != self.target_slug):
            return False
        if self.search:
            haystack = " ".join(
                part
                for part in (
                    entry.target.title if entry.target else None,
                    entry.target.slug if entry.target else None,
                    entry.field,
                    entry.changed_by_name,
                    entry.submitted_by_name,
                    entry.notes,
                    _value_text(entry.new_value),
                )
                if part
            ).lower()
            if self.search not in haystack:
                return False
        return True


class AuditReader(Protocol):
    async def get(self, entry_id: str) -> AuditLogEntry | None:
        ...

    async def list(self, query: AuditQuery | None = None) -> list[AuditLogEntry]:
        ...

    async def count(self) -> int:
        ...


class AuditLog(AuditReader, Protocol):
    async def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        ...


class InMemoryAuditLog:
    def __init__(self) -> None:
        self._entries: list[AuditLogEntry] = []
        self._by_id: dict[str, AuditLogEntry] = {}

    async def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        existing = self._by_id.get(entry.id)
        if existing is not None:
            return existing
        self._entries.append(entry)
        self._by_id[entry.id] = entry
        return entry

    async def get(self, entry_id: str) -> AuditLogEntry | None:
        return self._by_id.get(entry_id)

    async def list(self, query: AuditQuery | None = None) -> list[AuditLogEntry]:
        query = query or AuditQuery()
        matched = [entry for entry in self._entries if query.matches(entry)]
        matched.sort(key=lambda entry: (entry.changed_at, entry.id), reverse=query.descending)
        return matched[: query.limit]

    async def count(self) -> int:
        return len(self._entries)


class ReviewerActionRepository(Protocol):
    async def record(self, action: ReviewerAction) -> None:
        ...

    async def list(self, *, reviewer_id: str | None = None, limit: int = 100) -> list[ReviewerAction]:
        ...


class InMemoryReviewerActionRepository:
    def __init__(self, actions: Iterable[ReviewerAction] = ()) -> None:
        self._actions: list[ReviewerAction] = list(actions)

    async def record(self, action: ReviewerAction) -> None:
        self._actions.append(copy.copy(action))

    async def list(self, *, reviewer_id: str | None = None, limit: int = 100) -> list[ReviewerAction]:
        matched = [item for item in self._actions if reviewer_id is None or item.reviewer_id == reviewer_id]
        matched.sort(key=lambda item: item.created_at, reverse=True)
        return matched[: max(0, limit)]
