from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from srs_engine.db.store import SqlReviewStore
from srs_engine.errors import StoreUnavailable
from srs_engine.srs import CardStatus, ItemKey, ItemSchedulingState, Rating, ReviewLogEntry
from srs_engine.store import InMemoryReviewStore


NOW = datetime(2026, 10, 19, 18, 45, tzinfo=timezone.utc)
TODAY = NOW.date()
FIRST = ItemKey("Greek A1", "σπίτι")
SECOND = ItemKey("Greek A1", "θάλασσα")


def _state(interval: int, last_rating: Rating | None = None) -> ItemSchedulingState:
    return ItemSchedulingState(
        status=CardStatus.REVIEW,
        due_date=TODAY + timedelta(days=interval),
        interval=interval,
        ease_factor=2.5,
        last_rating=last_rating,
    )


@pytest.mark.asyncio
async def test_save_and_load_states(session_factory) -> None:
    store = SqlReviewStore(session_factory)
    states = {
        FIRST: _state(3, Rating.GOOD),
        SECOND: ItemSchedulingState(status=CardStatus.NEW, due_date=date(2026, 10, 19)),
    }

    await store.save_states(states)
    loaded = await store.load_states()

    assert loaded == states

    await store.save_states({SECOND: _state(1)})
    assert await store.load_states() == {SECOND: _state(1)}


@pytest.mark.asyncio
async def test_record_review_upserts_state_and_appends_history(session_factory) -> None:
    store = SqlReviewStore(session_factory)
    first_entry = ReviewLogEntry(timestamp=NOW, item_key=FIRST, rating=Rating.GOOD)
    second_entry = ReviewLogEntry(timestamp=NOW + timedelta(minutes=1), item_key=FIRST, rating=Rating.EASY)

    await store.record_review(FIRST, _state(1, Rating.GOOD), first_entry)
    await store.record_review(FIRST, _state(4, Rating.EASY), second_entry)

    states = await store.load_states()
    history = await store.load_history()

    assert states == {FIRST: _state(4, Rating.EASY)}
    assert history == [first_entry, second_entry]
    assert history[0].timestamp.tzinfo is not None


@pytest.mark.asyncio
async def test_replace_all_swaps_both_tables(session_factory) -> None:
    store = SqlReviewStore(session_factory)
    await store.record_review(FIRST, _state(1), ReviewLogEntry(NOW, FIRST, Rating.GOOD))

    replacement_entry = ReviewLogEntry(NOW - timedelta(days=2), SECOND, Rating.AGAIN)
    await store.replace_all({SECOND: _state(2)}, [replacement_entry])

    assert await store.load_states() == {SECOND: _state(2)}
    assert await store.load_history() == [replacement_entry]


@pytest.mark.asyncio
async def test_save_history_replaces_log(session_factory) -> None:
    store = SqlReviewStore(session_factory)
    entries = [
        ReviewLogEntry(NOW, FIRST, Rating.HARD),
        ReviewLogEntry(NOW, SECOND, Rating.GOOD),
    ]

    await store.save_history(entries)
    await store.save_history(entries[1:])

    assert await store.load_history() == entries[1:]


@pytest.mark.asyncio
async def test_delete_state_keeps_history(session_factory) -> None:
    store = SqlReviewStore(session_factory)
    entry = ReviewLogEntry(NOW, FIRST, Rating.GOOD)
    await store.record_review(FIRST, _state(1), entry)

    assert await store.delete_state(FIRST) is True
    assert await store.delete_state(FIRST) is False
    assert await store.load_states() == {}
    assert await store.load_history() == [entry]


@pytest.mark.asyncio
async def test_rename_state_moves_schedule(session_factory) -> None:
    store = SqlReviewStore(session_factory)
    renamed = ItemKey("Greek A1", "το σπίτι")
    await store.save_states({FIRST: _state(5), SECOND: _state(1)})

    assert await store.rename_state(FIRST, renamed) is True
    assert await store.load_states() == {renamed: _state(5), SECOND: _state(1)}

    assert await store.rename_state(renamed, SECOND) is True
    assert await store.load_states() == {SECOND: _state(5)}

    assert await store.rename_state(FIRST, renamed) is False
    assert await store.rename_state(SECOND, SECOND) is True


@pytest.mark.asyncio
async def test_store_errors_are_wrapped() -> None:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    store = SqlReviewStore(async_sessionmaker(engine, expire_on_commit=False))
    try:
        with pytest.raises(StoreUnavailable):
            await store.load_states()
        with pytest.raises(StoreUnavailable):
            await store.record_review(FIRST, _state(1), ReviewLogEntry(NOW, FIRST, Rating.GOOD))
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_in_memory_store_matches_contract() -> None:
    store = InMemoryReviewStore()
    entry = ReviewLogEntry(NOW, FIRST, Rating.GOOD)

    await store.record_review(FIRST, _state(1), entry)
    assert await store.rename_state(FIRST, SECOND) is True
    assert await store.rename_state(FIRST, SECOND) is False
    assert await store.load_states() == {SECOND: _state(1)}
    assert await store.delete_state(SECOND) is True
    assert await store.load_history() == [entry]
