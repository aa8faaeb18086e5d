"""Contributor and dashboard statistics endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends

from gamehub.infra.auth import AuthenticatedUser, get_current_user
from gamehub.moderation.domain.rbac import ReviewerContext
from gamehub.moderation.domain.stats import DashboardStats, FraudSignal, StatsService, UserStats

from .deps import get_admin_context, get_reviewer_context, get_stats_service_dep
from .schemas import CamelModel, SubmissionOut


router = APIRouter(prefix="/api/stats", tags=["moderation-stats"])


class UserStatsOut(CamelModel):
    user_id: str
    total: int
    pending: int
    approved: int
    rejected: int
    modified: int
    approval_rate: float
    last_submission_at: datetime | None
    recent: list[SubmissionOut]

    @classmethod
    def from_model(cls, stats: UserStats) -> "UserStatsOut":
        return cls(
            user_id=stats.user_id,
            total=stats.total,
            pending=stats.pending,
            approved=stats.approved,
            rejected=stats.rejected,
            modified=stats.modified,
            approval_rate=stats.approval_rate_percent,
            last_submission_at=stats.last_submission_at,
            recent=[SubmissionOut.from_model(item) for item in stats.recent],
        )


class FraudSignalOut(CamelModel):
    suspicious: bool
    rejection_rate: float
    submissions: int

    @classmethod
    def from_model(cls, signal: FraudSignal) -> "FraudSignalOut":
        return cls(suspicious=signal.suspicious, rejection_rate=signal.rejection_rate, submissions=signal.submissions)


class DashboardOut(CamelModel):
    total_submissions: int
    pending: int
    approved: int
    rejected: int
    modified: int
    total_changes: int

    @classmethod
    def from_model(cls, stats: DashboardStats) -> "DashboardOut":
        return cls(
            total_submissions=stats.total_submissions,
            pending=stats.pending,
            approved=stats.approved,
            rejected=stats.rejected,
            modified=stats.modified,
            total_changes=stats.total_changes,
        )


@router.get("/me", response_model=UserStatsOut)
async def my_stats(
    service: StatsService = Depends(get_stats_service_dep),
    user: AuthenticatedUser = Depends(get_current_user),
) -> UserStatsOut:
    return UserStatsOut.from_model(await service.user_stats(user.id))


@router.get("/users/{user_id}/fraud", response_model=FraudSignalOut)
async def user_fraud_signal(
    user_id: str,
    service: StatsService = Depends(get_stats_service_dep),
    reviewer: ReviewerContext = Depends(get_reviewer_context),
) -> FraudSignalOut:
    return FraudSignalOut.from_model(await service.fraud_signal(user_id))


@router.get("/dashboard", response_model=DashboardOut)
async def dashboard(
    service: StatsService = Depends(get_stats_service_dep),
    admin: ReviewerContext = Depends(get_admin_context),
) -> DashboardOut:
    return DashboardOut.from_model(await service.dashboard())
