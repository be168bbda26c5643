from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from memory_bank.models.resource.resource_kind import ResourceKind
from memory_bank.services.review import GrowthIntervalPolicy, ReviewError, ReviewStatusUpdater
from memory_bank.services.review.intervals import BinaryIntervalPolicy
from memory_bank.services.review.normalizers import parse_timestamp
from tests.utils import create_review_resource, days_before, load_review_state


@pytest.fixture()
def updater(session_factory, clock):
    return ReviewStatusUpdater(session_factory, "user-1", policy=BinaryIntervalPolicy(), clock=clock)


@pytest.mark.asyncio
async def test_full_credit_schedules_seven_days_out(session_factory, updater, now):
    resource_id = await create_review_resource(
        session_factory, ResourceKind.MULTIPLE_CHOICE, created_at=days_before(now, 2)
    )

    assert await updater.update_resource_review_status(resource_id, 1, 1, ResourceKind.MULTIPLE_CHOICE) is True

    state = await load_review_state(session_factory, ResourceKind.MULTIPLE_CHOICE, resource_id)
    assert parse_timestamp(state["last_reviewed_at"]) == now
    assert parse_timestamp(state["next_review_at"]) == now + timedelta(days=7)
    assert state["review_count"] == 1


@pytest.mark.asyncio
async def test_miss_schedules_one_day_out(session_factory, updater, now):
    resource_id = await create_review_resource(
        session_factory,
        ResourceKind.MULTIPLE_CHOICE,
        created_at=days_before(now, 20),
        last_reviewed_at=days_before(now, 7),
        next_review_at=now,
        review_count=3,
    )

    assert await updater.update_resource_review_status(resource_id, 0, 1, "multiple-choice") is True

    state = await load_review_state(session_factory, ResourceKind.MULTIPLE_CHOICE, resource_id)
    assert parse_timestamp(state["next_review_at"]) == now + timedelta(days=1)
    assert state["review_count"] == 4


@pytest.mark.asyncio
async def test_partial_credit_counts_as_a_miss(session_factory, updater, now):
    resource_id = await create_review_resource(session_factory, ResourceKind.CONCEPT_MAP, created_at=days_before(now, 1))

    await updater.update_resource_review_status(resource_id, 9, 10, ResourceKind.CONCEPT_MAP)

    state = await load_review_state(session_factory, ResourceKind.CONCEPT_MAP, resource_id)
    assert parse_timestamp(state["next_review_at"]) - parse_timestamp(state["last_reviewed_at"]) == timedelta(days=1)


@pytest.mark.asyncio
async def test_two_updates_in_a_row_count_twice_and_last_write_wins(session_factory, updater, now):
    resource_id = await create_review_resource(session_factory, ResourceKind.FLASHCARD, created_at=days_before(now, 1))

    await updater.update_resource_review_status(resource_id, 1, 1, ResourceKind.FLASHCARD)
    await updater.update_resource_review_status(resource_id, 0, 1, ResourceKind.FLASHCARD)

    state = await load_review_state(session_factory, ResourceKind.FLASHCARD, resource_id)
    assert state["review_count"] == 2
    assert parse_timestamp(state["next_review_at"]) == now + timedelta(days=1)


@pytest.mark.asyncio
async def test_unknown_resource_returns_false(session_factory, updater, now):
    foreign = await create_review_resource(
        session_factory, ResourceKind.STORYBOARD, user_id="user-2", created_at=days_before(now, 1)
    )

    assert await updater.update_resource_review_status("missing", 1, 1, ResourceKind.STORYBOARD) is False
    assert await updater.update_resource_review_status(foreign, 1, 1, ResourceKind.STORYBOARD) is False

    state = await load_review_state(session_factory, ResourceKind.STORYBOARD, foreign, user_id="user-2")
    assert state["review_count"] == 0
    assert state["next_review_at"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("score", "total", "resource_type", "code"),
    [
        (1, 0, ResourceKind.FLASHCARD, "invalid_score"),
        (-1, 3, ResourceKind.FLASHCARD, "invalid_score"),
        (4, 3, ResourceKind.FLASHCARD, "invalid_score"),
        (1, 1, "audio-clip", "unknown_resource_type"),
    ],
)
async def test_invalid_input_raises(updater, score, total, resource_type, code):
    with pytest.raises(ReviewError) as exc_info:
        await updater.update_resource_review_status("any", score, total, resource_type)

    assert exc_info.value.code == code


@pytest.mark.asyncio
async def test_growth_policy_uses_review_history(session_factory, clock, now):
    updater = ReviewStatusUpdater(session_factory, "user-1", policy=GrowthIntervalPolicy(), clock=clock)
    resource_id = await create_review_resource(
        session_factory,
        ResourceKind.FLASHCARD,
        created_at=days_before(now, 60),
        last_reviewed_at=days_before(now, 13),
        next_review_at=now,
        review_count=2,
    )

    await updater.update_resource_review_status(resource_id, 1, 1, ResourceKind.FLASHCARD)

    state = await load_review_state(session_factory, ResourceKind.FLASHCARD, resource_id)
    # Third review with full credit: round(7 * 1.8 ** 2) == 23 days.
    assert parse_timestamp(state["next_review_at"]) == now + timedelta(days=23)
    assert state["review_count"] == 3


@pytest.mark.asyncio
async def test_storage_failures_propagate(clock, tmp_path):
    from memory_bank.db.session import build_async_engine, build_session_factory

    # No tables were created on this database.
    engine = build_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    try:
        updater = ReviewStatusUpdater(build_session_factory(engine), "user-1", clock=clock)
        with pytest.raises(OperationalError):
            await updater.update_resource_review_status("any", 1, 1, ResourceKind.FLASHCARD)
    finally:
        await engine.dispose()
