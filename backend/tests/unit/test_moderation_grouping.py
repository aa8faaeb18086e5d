from __future__ import annotations

import random
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from gamehub.moderation.domain.grouping import group_submissions
from gamehub.moderation.domain.models import (
    CorrectionPayload,
    FaqProposal,
    ReviewDecision,
    Submission,
    SubmissionKind,
    SubmissionStatus,
    TargetRef,
)
from gamehub.moderation.domain.values import FieldValue

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
WINDOW = timedelta(minutes=10)


def _correction(
    submission_id: str,
    *,
    minutes: float,
    submitter: str = "alice",
    game: str = "g-1",
    status: SubmissionStatus = SubmissionStatus.PENDING,
) -> Submission:
    return Submission(
        id=submission_id,
        kind=SubmissionKind.CORRECTION,
        submitter_id=submitter,
        submitter_name=submitter.title(),
        submitted_at=T0 + timedelta(minutes=minutes),
        payload=CorrectionPayload(field="developer", old_value=FieldValue.clear(), new_value=FieldValue.text("Acme")),
        target=TargetRef(game_id=game, slug=game, title=game.upper()),
        status=status,
    )


def _shape(groups) -> list[list[str]]:
    return [group.ids for group in groups]


def test_same_submitter_and_game_within_window_form_one_batch():
    groups = group_submissions([_correction("a", minutes=0), _correction("b", minutes=3)], window=WINDOW)
    assert _shape(groups) == [["a", "b"]]
    assert groups[0].is_batch
    assert groups[0].group_id == "a"


def test_window_boundary_is_inclusive():
    at_limit = group_submissions([_correction("a", minutes=0), _correction("b", minutes=10)], window=WINDOW)
    past_limit = group_submissions([_correction("a", minutes=0), _correction("b", minutes=10.01)], window=WINDOW)
    assert _shape(at_limit) == [["a", "b"]]
    assert _shape(past_limit) == [["b"], ["a"]]


def test_groups_chain_on_gaps_between_consecutive_items():
    items = [_correction("a", minutes=0), _correction("b", minutes=8), _correction("c", minutes=16)]
    assert _shape(group_submissions(items, window=WINDOW)) == [["a", "b", "c"]]


def test_different_submitters_or_games_never_merge():
    items = [
        _correction("a", minutes=0),
        _correction("b", minutes=1, submitter="bob"),
        _correction("c", minutes=2, game="g-2"),
    ]
    groups = group_submissions(items, window=WINDOW)
    assert sorted(_shape(groups)) == [["a"], ["b"], ["c"]]
    assert all(not group.is_batch for group in groups)


def test_grouping_is_independent_of_input_order():
    items = [
        _correction("a", minutes=0),
        _correction("b", minutes=4),
        _correction("c", minutes=30),
        _correction("d", minutes=2, submitter="bob"),
        _correction("e", minutes=5, game="g-2"),
    ]
    expected = _shape(group_submissions(items, window=WINDOW))
    rng = random.Random(7)
    for _ in range(20):
        shuffled = list(items)
        rng.shuffle(shuffled)
        assert _shape(group_submissions(shuffled, window=WINDOW)) == expected


def test_groups_sorted_most_recent_first():
    items = [_correction("old", minutes=0), _correction("new", minutes=60, game="g-2")]
    assert _shape(group_submissions(items, window=WINDOW)) == [["new"], ["old"]]


def test_decided_targetless_and_duplicate_items_stay_standalone():
    faq = Submission(
        id="faq-1",
        kind=SubmissionKind.FAQ,
        submitter_id="alice",
        submitter_name="Alice",
        submitted_at=T0 + timedelta(minutes=1),
        payload=FaqProposal(question="How to install?", answer="Use the installer."),
    )
    decided = _correction("done", minutes=2, status=SubmissionStatus.APPROVED)
    pending = _correction("a", minutes=0)
    groups = group_submissions([pending, pending, faq, decided], window=WINDOW)
    assert _shape(groups) == [["done"], ["faq-1"], ["a"]]


def test_duplicate_ids_resolve_to_the_decided_copy_in_any_order():
    stale = _correction("a", minutes=0)
    decided = replace(
        stale,
        status=SubmissionStatus.APPROVED,
        decision=ReviewDecision(
            status=SubmissionStatus.APPROVED,
            reviewer_id="rev-1",
            reviewer_name="Rita",
            reviewer_role="reviewer",
            decided_at=T0 + timedelta(minutes=5),
        ),
    )
    neighbour = _correction("b", minutes=2)

    for ordering in ([stale, decided, neighbour], [decided, stale, neighbour], [neighbour, decided, stale]):
        groups = group_submissions(ordering, window=WINDOW)
        assert _shape(groups) == [["b"], ["a"]]
        assert all(not item.is_pending for group in groups for item in group.items if item.id == "a")
