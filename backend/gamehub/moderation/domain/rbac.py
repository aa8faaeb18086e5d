"""Reviewer identity and role checks for moderation operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from gamehub.infra.auth import AuthenticatedUser
from gamehub.moderation.domain import errors

REVIEWER_ROLES = ("reviewer", "admin")


@dataclass(frozen=True, slots=True)
class ReviewerContext:
    """Resolved reviewer identity used throughout the review workflow."""

    id: str
    name: str
    role: str
    can_override: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def can_review(self) -> bool:
        return self.role in REVIEWER_ROLES


def resolve_reviewer_context(user: AuthenticatedUser, *, override_ids: Iterable[str] = ()) -> ReviewerContext:
    """Build a reviewer context; the override flag comes from configuration only."""

    return ReviewerContext(
        id=user.id,
        name=user.name or "Unknown",
        role=user.role,
        can_override=user.id in set(override_ids),
    )


def ensure_reviewer(reviewer: ReviewerContext) -> None:
    if not reviewer.can_review:
        raise errors.ForbiddenError("insufficient_role", "Reviewer or admin role required")


def ensure_admin(reviewer: ReviewerContext) -> None:
    if not reviewer.is_admin:
        raise errors.ForbiddenError("insufficient_role", "Admin role required")


def ensure_not_self_review(reviewer: ReviewerContext, submitter_id: str) -> None:
    if submitter_id == reviewer.id and not reviewer.can_override:
        raise errors.ForbiddenError("self_review_forbidden", "You cannot review your own submission")
