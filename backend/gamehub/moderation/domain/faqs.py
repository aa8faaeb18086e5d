"""Published FAQ entries and the debounced reorder task."""

from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from typing import Iterable, Protocol, Sequence

from gamehub.moderation.domain import errors
from gamehub.moderation.domain.models import FaqEntry, utcnow

logger = logging.getLogger(__name__)


class FaqRepository(Protocol):
    async def list(self) -> list[FaqEntry]:
        ...

    async def append(self, *, question: str, answer: str, created_by: str | None = None) -> FaqEntry:
        ...

    async def reorder(self, ordered_ids: Sequence[str]) -> None:
        ...


class InMemoryFaqRepository:
    def __init__(self, entries: Iterable[FaqEntry] = ()) -> None:
        self._entries: dict[str, FaqEntry] = {entry.id: entry for entry in entries}

    async def list(self) -> list[FaqEntry]:
        return [copy.copy(entry) for entry in sorted(self._entries.values(), key=lambda item: item.order)]

    async def append(self, *, question: str, answer: str, created_by: str | None = None) -> FaqEntry:
        next_order = max((entry.order for entry in self._entries.values()), default=-1) + 1
        entry = FaqEntry(
            id=uuid.uuid4().hex,
            question=question,
            answer=answer,
            order=next_order,
            created_by=created_by,
        )
        self._entries[entry.id] = entry
        return copy.copy(entry)

    async def reorder(self, ordered_ids: Sequence[str]) -> None:
        validate_order(ordered_ids, self._entries)
        now = utcnow()
        for position, entry_id in enumerate(ordered_ids):
            entry = self._entries[entry_id]
            entry.order = position
            entry.updated_at = now


def validate_order(ordered_ids: Sequence[str], known: Iterable[str]) -> None:
    known_ids = set(known)
    if len(set(ordered_ids)) != len(ordered_ids):
        raise errors.ValidationError("duplicate_faq_ids")
    if set(ordered_ids) != known_ids:
        raise errors.ValidationError("faq_order_mismatch", "Order must list every FAQ exactly once")


class FaqReorderer:
    """Persists only the last ordering requested within the debounce delay.

    Every ``request`` cancels the write scheduled by the previous one.
    """

    def __init__(self, repository: FaqRepository, *, delay_seconds: float = 0.5) -> None:
        self._repo = repository
        self._delay = delay_seconds
        self._task: asyncio.Task | None = None

    def request(self, ordered_ids: Sequence[str]) -> asyncio.Task:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = asyncio.get_running_loop().create_task(self._persist_later(list(ordered_ids)))
        return self._task

    async def submit(self, ordered_ids: Sequence[str]) -> asyncio.Task:
        current = await self._repo.list()
        validate_order(ordered_ids, (entry.id for entry in current))
        return self.request(ordered_ids)

    async def _persist_later(self, ordered_ids: list[str]) -> None:
        await asyncio.sleep(self._delay)
        try:
            await self._repo.reorder(ordered_ids)
        except errors.ModerationWorkflowError:
            logger.warning("faq reorder rejected", extra={"count": len(ordered_ids)})
            raise
        logger.info("faq order saved", extra={"count": len(ordered_ids)})

    async def flush(self) -> None:
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()
