import pytest

from gamehub.infra.rate_limit import RateLimiter, allow


@pytest.mark.asyncio
async def test_rate_limit_allows_within_budget():
    assert await allow("review", "u5", limit=2, window_seconds=60)
    assert await allow("review", "u5", limit=2, window_seconds=60)


@pytest.mark.asyncio
async def test_rate_limit_blocks_when_budget_exhausted():
    await allow("submit", "u6", limit=1, window_seconds=60)
    assert not await allow("submit", "u6", limit=1, window_seconds=60)


@pytest.mark.asyncio
async def test_rate_limit_buckets_are_per_actor_and_window():
    assert await allow("submit", "u7", limit=1, window_seconds=60, now=120.0)
    assert await allow("submit", "u8", limit=1, window_seconds=60, now=120.0)
    assert await allow("submit", "u7", limit=1, window_seconds=60, now=185.0)


@pytest.mark.asyncio
async def test_limiter_with_zero_budget_never_admits():
    limiter = RateLimiter(kind="review", limit=0)
    assert not await limiter.admit("u9")


def test_submit_and_review_limiters_use_separate_budgets(monkeypatch):
    from gamehub.moderation.api.deps import get_review_rate_limiter, get_submit_rate_limiter
    from gamehub.settings import settings

    monkeypatch.setattr(settings, "review_rate_limit", 60)
    monkeypatch.setattr(settings, "review_rate_window_seconds", 60)
    monkeypatch.setattr(settings, "submit_rate_limit", 5)
    monkeypatch.setattr(settings, "submit_rate_window_seconds", 300)

    submit = get_submit_rate_limiter()
    review = get_review_rate_limiter()
    assert (submit.kind, submit.limit, submit.window_seconds) == ("submit", 5, 300)
    assert (review.kind, review.limit, review.window_seconds) == ("review", 60, 60)
