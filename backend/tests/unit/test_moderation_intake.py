from __future__ import annotations

import pytest

from gamehub.infra.auth import AuthenticatedUser
from gamehub.moderation.domain import errors
from gamehub.moderation.domain.intake import IntakeService, validate_field_value
from gamehub.moderation.domain.models import SubmissionKind, SubmissionStatus, TargetRef
from gamehub.moderation.domain.notifications import SUBMISSION_CREATED, RecordingDispatcher
from gamehub.moderation.domain.store import InMemorySubmissionStore, InMemoryUserRepository
from gamehub.moderation.domain.values import FieldValue, ValueKind


GAME = TargetRef(game_id="g-1", slug="half-life", title="Half-Life")


def _service() -> tuple[IntakeService, InMemorySubmissionStore, InMemoryUserRepository, RecordingDispatcher]:
    users = InMemoryUserRepository()
    store = InMemorySubmissionStore(users=users)
    notifier = RecordingDispatcher()
    return IntakeService(store=store, users=users, notifier=notifier), store, users, notifier


def test_from_raw_maps_blank_inputs_to_clear():
    assert FieldValue.from_raw(None).is_clear
    assert FieldValue.from_raw("").is_clear
    assert FieldValue.from_raw([]).is_clear
    assert FieldValue.from_raw(True).kind is ValueKind.FLAG
    assert FieldValue.from_raw(3).kind is ValueKind.NUMBER
    assert FieldValue.from_raw(["PC", "Mac"]).to_raw() == ["PC", "Mac"]
    with pytest.raises(ValueError):
        FieldValue.from_raw([1, 2])


def test_field_value_json_keeps_clear_distinct_from_missing():
    assert FieldValue.from_json(None) is None
    assert FieldValue.from_json(FieldValue.clear().to_json()).is_clear
    assert FieldValue.from_json({"kind": "list", "value": ["a"]}) == FieldValue.items(["a"])


def test_validate_field_value_rules():
    assert validate_field_value("developer", FieldValue.text("  Valve ")) == FieldValue.text("Valve")
    assert validate_field_value("developer", FieldValue.text("   ")).is_clear
    assert validate_field_value("genres", FieldValue.items([" ", ""])).is_clear

    with pytest.raises(errors.ValidationError) as unknown:
        validate_field_value("secretField", FieldValue.text("x"))
    assert unknown.value.code == "unknown_field"

    with pytest.raises(errors.ValidationError) as not_clearable:
        validate_field_value("title", FieldValue.clear())
    assert not_clearable.value.code == "field_not_clearable"

    with pytest.raises(errors.ValidationError) as wrong_type:
        validate_field_value("genres", FieldValue.text("Action"))
    assert wrong_type.value.code == "invalid_value_type"

    with pytest.raises(errors.ValidationError) as too_long:
        validate_field_value("description", FieldValue.text("x" * 5001))
    assert too_long.value.code == "value_too_long"


@pytest.mark.asyncio
async def test_submit_correction_persists_pending_and_counts_submission():
    service, store, users, notifier = _service()
    author = AuthenticatedUser(id="u-1", name="Alice")

    submission = await service.submit_correction(
        submitter=author,
        target=GAME,
        field_name="developer",
        new_value=FieldValue.text("Valve"),
        reason="Listed on the box art",
    )

    stored = await store.get(submission.id)
    assert stored.status is SubmissionStatus.PENDING
    assert stored.kind is SubmissionKind.CORRECTION
    assert stored.payload.old_value.is_clear
    assert stored.justification == "Listed on the box art"
    user = await users.get("u-1")
    assert user is not None and user.submissions_count == 1
    assert (user.approved_count, user.rejected_count) == (0, 0)
    assert notifier.events[0][0] == SUBMISSION_CREATED


@pytest.mark.asyncio
async def test_submit_correction_requires_complete_target_and_reason():
    service, store, users, _ = _service()
    author = AuthenticatedUser(id="u-1", name="Alice")

    with pytest.raises(errors.ValidationError) as target_error:
        await service.submit_correction(
            submitter=author,
            target=TargetRef(slug="half-life"),
            field_name="developer",
            new_value=FieldValue.text("Valve"),
            reason="because",
        )
    assert target_error.value.code == "invalid_target"

    with pytest.raises(errors.ValidationError) as reason_error:
        await service.submit_correction(
            submitter=author,
            target=GAME,
            field_name="developer",
            new_value=FieldValue.text("Valve"),
            reason="   ",
        )
    assert reason_error.value.code == "reason_required"
    assert await store.list() == []
    assert await users.get("u-1") is None


@pytest.mark.asyncio
async def test_inactive_accounts_cannot_submit():
    service, _, _, _ = _service()
    banned = AuthenticatedUser(id="u-2", name="Bob", status="banned")
    with pytest.raises(errors.ForbiddenError) as exc:
        await service.submit_faq(submitter=banned, question="How do I install it?", answer="Run the setup wizard.")
    assert exc.value.code == "account_not_active"


@pytest.mark.asyncio
async def test_submit_game_drops_empty_fields_and_requires_one():
    service, _, _, _ = _service()
    author = AuthenticatedUser(id="u-1", name="Alice")

    submission = await service.submit_game(
        submitter=author,
        slug="portal",
        title="Portal",
        proposed={"developer": FieldValue.text("Valve"), "publisher": FieldValue.clear()},
        notes=None,
    )
    assert dict(submission.payload.fields) == {"developer": FieldValue.text("Valve")}
    assert submission.target == TargetRef(slug="portal", title="Portal")

    with pytest.raises(errors.ValidationError) as exc:
        await service.submit_game(
            submitter=author,
            slug="portal-2",
            title="Portal 2",
            proposed={"publisher": FieldValue.text("   ")},
        )
    assert exc.value.code == "no_proposed_fields"


@pytest.mark.asyncio
async def test_submit_faq_enforces_minimum_lengths():
    service, _, _, _ = _service()
    author = AuthenticatedUser(id="u-1", name="Alice")
    with pytest.raises(errors.ValidationError) as exc:
        await service.submit_faq(submitter=author, question="Why?", answer="Because it is so.")
    assert exc.value.code == "question_too_short"
