"""Partition pending submissions into reviewable batches.

Submissions from the same submitter against the same target are chained
together when each one lands within the merge window of its neighbour. The
partition is recomputed on every read, so the result depends only on the set
of submissions passed in and never on their order.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

from gamehub.moderation.domain.models import Submission

DEFAULT_MERGE_WINDOW = timedelta(minutes=10)


def _sort_key(submission: Submission) -> tuple[datetime, str]:
    return submission.submitted_at, submission.id


def _freshness(submission: Submission) -> tuple[bool, float]:
    # A decided copy supersedes a stale pending one; later decisions win.
    decided_at = submission.decision.decided_at.timestamp() if submission.decision else float("-inf")
    return not submission.is_pending, decided_at


@dataclass(frozen=True, slots=True)
class ReviewGroup:
    items: tuple[Submission, ...]

    @property
    def group_id(self) -> str:
        return self.items[0].id

    @property
    def is_batch(self) -> bool:
        return len(self.items) > 1

    @property
    def submitter_id(self) -> str:
        return self.items[0].submitter_id

    @property
    def target_key(self) -> str | None:
        return self.items[0].target_key

    @property
    def earliest(self) -> datetime:
        return self.items[0].submitted_at

    @property
    def latest(self) -> datetime:
        return self.items[-1].submitted_at

    @property
    def ids(self) -> list[str]:
        return [item.id for item in self.items]


def _chain(bucket: list[Submission], window: timedelta) -> list[ReviewGroup]:
    bucket.sort(key=_sort_key)
    groups: list[ReviewGroup] = []
    current: list[Submission] = []
    for submission in bucket:
        if current and submission.submitted_at - current[-1].submitted_at > window:
            groups.append(ReviewGroup(tuple(current)))
            current = []
        current.append(submission)
    if current:
        groups.append(ReviewGroup(tuple(current)))
    return groups


def group_submissions(
    submissions: Iterable[Submission],
    *,
    window: timedelta = DEFAULT_MERGE_WINDOW,
) -> list[ReviewGroup]:
    """Return groups ordered by their earliest member, most recent first.

    Decided submissions and submissions without a target are emitted as
    standalone items. Duplicate ids collapse to their most recently decided copy.
    """
    unique: dict[str, Submission] = {}
    for submission in submissions:
        current = unique.get(submission.id)
        if current is None or _freshness(submission) > _freshness(current):
            unique[submission.id] = submission

    buckets: dict[tuple[str, str], list[Submission]] = defaultdict(list)
    groups: list[ReviewGroup] = []
    for submission in unique.values():
        target = submission.target_key
        if not submission.is_pending or target is None:
            groups.append(ReviewGroup((submission,)))
            continue
        buckets[(submission.submitter_id, target)].append(submission)

    for bucket in buckets.values():
        groups.extend(_chain(bucket, window))

    groups.sort(key=lambda group: (group.earliest, group.group_id), reverse=True)
    return groups
