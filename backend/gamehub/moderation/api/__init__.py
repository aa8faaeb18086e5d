"""Moderation API routers."""

from fastapi import APIRouter

from . import audit, corrections, faq_submissions, game_submissions, review, reviewer_applications, stats

router = APIRouter()
router.include_router(corrections.router)
router.include_router(game_submissions.router)
router.include_router(faq_submissions.router)
router.include_router(review.router)
router.include_router(reviewer_applications.router)
router.include_router(audit.router)
router.include_router(stats.router)

__all__ = ["router"]
