import asyncio
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from memory_bank.db.session import build_async_engine, build_session_factory
from memory_bank.models.resource.resource_kind import ResourceKind
from memory_bank.services.review import DEFAULT_REVIEW_WEIGHTS, ReviewError, ReviewQueueBuilder
from memory_bank.services.review.queue_builder import gather_or_cancel
from tests.utils import create_review_resource, days_before


def _weight_of(session):
    return sum(DEFAULT_REVIEW_WEIGHTS[kind] for kind in session.resource_types)


@pytest.mark.asyncio
async def test_weight_budget_keeps_concept_map_and_two_flashcards(session_factory, clock, now):
    concept_map = await create_review_resource(
        session_factory, ResourceKind.CONCEPT_MAP, created_at=days_before(now, 10)
    )
    flashcards = [
        await create_review_resource(session_factory, ResourceKind.FLASHCARD, created_at=days_before(now, age))
        for age in (5, 4, 3)
    ]

    builder = ReviewQueueBuilder(session_factory, "user-1", clock=clock)
    session = await builder.generate_combined_review_queue(4)

    assert [resource.id for resource in session.resources] == [concept_map, flashcards[0], flashcards[1]]
    assert session.resource_types == [ResourceKind.CONCEPT_MAP, ResourceKind.FLASHCARD, ResourceKind.FLASHCARD]
    assert _weight_of(session) == 4
    assert session.total_weight == 4
    assert session.current_index == 0
    assert session.completed == []
    assert session.is_force_review is False
    assert session.is_complete is False


@pytest.mark.asyncio
async def test_never_reviewed_beats_overdue(session_factory, clock, now):
    await create_review_resource(
        session_factory,
        ResourceKind.FLASHCARD,
        title="overdue",
        created_at=days_before(now, 30),
        last_reviewed_at=days_before(now, 8),
        next_review_at=days_before(now, 1),
        review_count=2,
    )
    fresh = await create_review_resource(
        session_factory, ResourceKind.FLASHCARD, title="fresh", created_at=days_before(now, 2)
    )

    builder = ReviewQueueBuilder(session_factory, "user-1", clock=clock)
    session = await builder.generate_combined_review_queue(1)

    assert [resource.id for resource in session.resources] == [fresh]


@pytest.mark.asyncio
async def test_heavy_item_is_skipped_when_it_does_not_fit(session_factory, clock, now):
    first = await create_review_resource(session_factory, ResourceKind.FLASHCARD, created_at=days_before(now, 20))
    await create_review_resource(
        session_factory,
        ResourceKind.STORYBOARD,
        created_at=days_before(now, 20),
        next_review_at=days_before(now, 3),
    )
    later = await create_review_resource(
        session_factory,
        ResourceKind.MULTIPLE_CHOICE,
        created_at=days_before(now, 20),
        next_review_at=days_before(now, 1),
    )

    builder = ReviewQueueBuilder(session_factory, "user-1", clock=clock)
    session = await builder.generate_combined_review_queue(2)

    assert [resource.id for resource in session.resources] == [first, later]
    assert session.resource_types == [ResourceKind.FLASHCARD, ResourceKind.MULTIPLE_CHOICE]


@pytest.mark.asyncio
async def test_resources_scheduled_in_the_future_are_not_due(session_factory, clock, now):
    due = await create_review_resource(
        session_factory,
        ResourceKind.MULTIPLE_CHOICE,
        created_at=days_before(now, 10),
        next_review_at=now,
    )
    await create_review_resource(
        session_factory,
        ResourceKind.MULTIPLE_CHOICE,
        created_at=days_before(now, 10),
        next_review_at=now + timedelta(days=3),
    )

    builder = ReviewQueueBuilder(session_factory, "user-1", clock=clock)
    session = await builder.generate_combined_review_queue(10)

    assert [resource.id for resource in session.resources] == [due]


@pytest.mark.asyncio
async def test_force_review_includes_resources_not_yet_due(session_factory, clock, now):
    for kind in ResourceKind:
        await create_review_resource(session_factory, kind, created_at=days_before(now, 5))
        await create_review_resource(
            session_factory,
            kind,
            created_at=days_before(now, 5),
            last_reviewed_at=days_before(now, 1),
            next_review_at=now + timedelta(days=6),
            review_count=1,
        )

    builder = ReviewQueueBuilder(session_factory, "user-1", clock=clock)
    regular = await builder.generate_combined_review_queue(25)
    forced = await builder.generate_combined_review_queue(25, force_review=True)

    assert len(regular.resources) == 4
    assert len(forced.resources) == 8
    assert forced.is_force_review is True
    assert {r.id for r in regular.resources} <= {r.id for r in forced.resources}
    # Unscheduled resources still come first in a forced session.
    assert all(resource.next_review_at is None for resource in forced.resources[:4])


@pytest.mark.asyncio
async def test_other_users_resources_are_never_selected(session_factory, clock, now):
    mine = await create_review_resource(session_factory, ResourceKind.STORYBOARD, created_at=days_before(now, 1))
    await create_review_resource(
        session_factory, ResourceKind.STORYBOARD, user_id="user-2", created_at=days_before(now, 9)
    )

    builder = ReviewQueueBuilder(session_factory, "user-1", clock=clock)
    session = await builder.generate_combined_review_queue(10, force_review=True)

    assert [resource.id for resource in session.resources] == [mine]


@pytest.mark.asyncio
async def test_malformed_rows_are_skipped(session_factory, clock, now):
    good = await create_review_resource(session_factory, ResourceKind.FLASHCARD, created_at=days_before(now, 1))
    await create_review_resource(
        session_factory, ResourceKind.FLASHCARD, content=None, created_at=days_before(now, 3)
    )

    builder = ReviewQueueBuilder(session_factory, "user-1", clock=clock)
    session = await builder.generate_combined_review_queue(5)

    assert [resource.id for resource in session.resources] == [good]


@pytest.mark.asyncio
async def test_empty_queue_and_limit_zero(session_factory, clock, now):
    builder = ReviewQueueBuilder(session_factory, "user-1", clock=clock)

    empty = await builder.generate_combined_review_queue(5)
    assert empty.resources == []
    assert empty.is_complete is True

    await create_review_resource(session_factory, ResourceKind.FLASHCARD, created_at=days_before(now, 1))
    nothing = await builder.generate_combined_review_queue(0)
    assert nothing.resources == []


@pytest.mark.asyncio
async def test_negative_limit_is_rejected(session_factory, clock):
    builder = ReviewQueueBuilder(session_factory, "user-1", clock=clock)

    with pytest.raises(ReviewError) as exc_info:
        await builder.generate_combined_review_queue(-1)

    assert exc_info.value.code == "invalid_limit"


@pytest.mark.asyncio
async def test_custom_weights_change_the_budget(session_factory, clock, now):
    for age in (3, 2, 1):
        await create_review_resource(session_factory, ResourceKind.FLASHCARD, created_at=days_before(now, age))

    weights = {**DEFAULT_REVIEW_WEIGHTS, ResourceKind.FLASHCARD: 2}
    builder = ReviewQueueBuilder(session_factory, "user-1", weights=weights, clock=clock)
    session = await builder.generate_combined_review_queue(5)

    assert len(session.resources) == 2


def test_weights_must_cover_every_kind():
    with pytest.raises(ValueError):
        ReviewQueueBuilder(None, "user-1", weights={ResourceKind.FLASHCARD: 1})


@pytest.mark.asyncio
async def test_count_due_resources(session_factory, clock, now):
    await create_review_resource(session_factory, ResourceKind.FLASHCARD, created_at=days_before(now, 3))
    await create_review_resource(session_factory, ResourceKind.FLASHCARD, created_at=days_before(now, 3))
    await create_review_resource(
        session_factory,
        ResourceKind.CONCEPT_MAP,
        created_at=days_before(now, 3),
        next_review_at=days_before(now, 1),
    )
    await create_review_resource(
        session_factory,
        ResourceKind.STORYBOARD,
        created_at=days_before(now, 3),
        next_review_at=now + timedelta(days=1),
    )
    await create_review_resource(
        session_factory, ResourceKind.MULTIPLE_CHOICE, user_id="user-2", created_at=days_before(now, 3)
    )

    builder = ReviewQueueBuilder(session_factory, "user-1", clock=clock)
    summary = await builder.count_due_resources()

    assert summary.total == 3
    assert summary.by_type[ResourceKind.FLASHCARD] == 2
    assert summary.by_type[ResourceKind.CONCEPT_MAP] == 1
    assert summary.by_type[ResourceKind.STORYBOARD] == 0
    assert summary.by_type[ResourceKind.MULTIPLE_CHOICE] == 0


@pytest.mark.asyncio
async def test_storage_failures_propagate_from_queue_build(clock, tmp_path):
    # No tables were created on this database.
    engine = build_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    try:
        builder = ReviewQueueBuilder(build_session_factory(engine), "user-1", clock=clock)
        with pytest.raises(SQLAlchemyError):
            await builder.generate_combined_review_queue(5)
        with pytest.raises(SQLAlchemyError):
            await builder.count_due_resources()
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_failed_read_cancels_the_other_reads():
    started = asyncio.Event()
    cancelled = []

    async def slow():
        started.set()
        try:
            await asyncio.sleep(30)
        except asyncio.CancelledError:
            cancelled.append(True)
            raise

    async def failing():
        await started.wait()
        raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

    with pytest.raises(OperationalError):
        await gather_or_cancel(slow(), failing())

    assert cancelled == [True]
