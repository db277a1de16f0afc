from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import List

import pytest

from srs_engine.srs import (
    CardStatus,
    HardRatingPolicy,
    Item,
    ItemKey,
    ItemSchedulingState,
    Rating,
    SessionQueue,
    build_free_practice_queue,
    build_queue,
    due_summary,
    identity_permutation,
    initialize_states,
)


NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)
TODAY = NOW.date()


def _items(count: int, collection: str = "greek") -> List[Item]:
    return [Item(front_text=f"word-{index}", back_text=f"back-{index}", collection_name=collection) for index in range(count)]


def _fronts(queue: SessionQueue) -> List[str]:
    return [item.front_text for item in queue.items]


def _state(status: CardStatus, due: date, interval: int = 1) -> ItemSchedulingState:
    return ItemSchedulingState(status=status, due_date=due, interval=interval)


def test_again_reinserts_item_four_positions_later() -> None:
    items = _items(8)
    queue = SessionQueue(items, {})

    outcome = queue.rate(Rating.AGAIN, now=NOW)

    assert outcome.item.front_text == "word-0"
    assert outcome.state.status is CardStatus.LEARNING
    assert _fronts(queue)[:6] == ["word-1", "word-2", "word-3", "word-4", "word-0", "word-5"]
    assert queue.cursor == 0
    assert queue.current.front_text == "word-1"


def test_again_near_the_end_appends_item() -> None:
    queue = SessionQueue(_items(3), {})

    queue.rate(Rating.AGAIN, now=NOW)

    assert _fronts(queue) == ["word-1", "word-2", "word-0"]


def test_again_on_last_item_keeps_session_alive() -> None:
    queue = SessionQueue(_items(1), {})

    queue.rate(Rating.AGAIN, now=NOW)

    assert not queue.is_complete()
    assert queue.current.front_text == "word-0"

    queue.rate(Rating.GOOD, now=NOW)
    assert queue.is_complete()
    assert queue.current is None


def test_good_and_easy_remove_item_from_session() -> None:
    queue = SessionQueue(_items(2), {})

    queue.rate(Rating.GOOD, now=NOW)
    queue.rate(Rating.EASY, now=NOW)

    assert queue.is_complete()
    assert queue.reviewed_count == 2
    assert queue.tally[Rating.GOOD] == 1
    assert queue.tally[Rating.EASY] == 1


def test_hard_is_dropped_by_default() -> None:
    queue = SessionQueue(_items(3), {})

    queue.rate(Rating.HARD, now=NOW)

    assert _fronts(queue) == ["word-1", "word-2"]


def test_hard_can_be_requeued_at_the_end() -> None:
    queue = SessionQueue(_items(3), {}, hard_policy=HardRatingPolicy.REQUEUE_END)

    queue.rate(Rating.HARD, now=NOW)

    assert _fronts(queue) == ["word-1", "word-2", "word-0"]


def test_rating_completed_session_raises() -> None:
    queue = SessionQueue([], {})

    with pytest.raises(RuntimeError):
        queue.rate(Rating.GOOD, now=NOW)


def test_second_rating_in_session_builds_on_first() -> None:
    items = _items(1)
    queue = SessionQueue(items, {})

    queue.rate(Rating.AGAIN, now=NOW)
    outcome = queue.rate(Rating.GOOD, now=NOW)

    assert outcome.state.status is CardStatus.REVIEW
    assert outcome.state.interval == 1
    assert outcome.state.lapses == 1
    assert outcome.state.ease_factor == pytest.approx(2.3)


def test_build_queue_caps_new_items_and_keeps_all_due() -> None:
    new_items = _items(30, collection="new")
    due_items = _items(5, collection="due")
    states = {item.key: _state(CardStatus.REVIEW, TODAY - timedelta(days=1)) for item in due_items}

    queue = build_queue(
        new_items + due_items,
        states,
        TODAY,
        new_card_limit=20,
        permutation=identity_permutation,
    )

    collections = [item.collection_name for item in queue.items]
    assert len(queue) == 25
    assert collections.count("due") == 5
    assert collections.count("new") == 20
    assert not queue.free_practice


def test_build_queue_skips_items_not_yet_due() -> None:
    items = _items(4)
    states = {
        items[0].key: _state(CardStatus.REVIEW, TODAY),
        items[1].key: _state(CardStatus.REVIEW, TODAY + timedelta(days=1)),
        items[2].key: _state(CardStatus.LEARNING, TODAY - timedelta(days=3)),
        items[3].key: _state(CardStatus.LEARNING, TODAY + timedelta(days=2)),
    }

    queue = build_queue(items, states, TODAY, permutation=identity_permutation)

    assert sorted(_fronts(queue)) == ["word-0", "word-2"]


def test_build_queue_ignores_duplicate_candidates() -> None:
    items = _items(2)

    queue = build_queue(items + items, {}, TODAY, permutation=identity_permutation)

    assert _fronts(queue) == ["word-0", "word-1"]


def test_build_queue_applies_permutation() -> None:
    items = _items(3)

    queue = build_queue(items, {}, TODAY, permutation=lambda batch: list(reversed(batch)))

    # reversed twice: once when picking new items, once for the whole session
    assert _fronts(queue) == ["word-0", "word-1", "word-2"]


def test_due_summary_counts_session_contents() -> None:
    items = _items(25)
    states = {
        items[0].key: _state(CardStatus.LEARNING, TODAY),
        items[1].key: _state(CardStatus.REVIEW, TODAY - timedelta(days=2)),
        items[2].key: _state(CardStatus.REVIEW, TODAY + timedelta(days=2)),
    }

    summary = due_summary(items, states, TODAY, new_card_limit=20)

    assert summary.new_count == 22
    assert summary.learning_count == 1
    assert summary.review_count == 1
    assert summary.total == 22


def test_free_practice_keeps_order_and_drops_unknown_keys() -> None:
    items = _items(4)
    selected = [
        "greek::word-2",
        "greek::missing",
        "no separator",
        ItemKey("greek", "word-0"),
        "greek::word-2",
        "greek::word-3",
    ]

    queue = build_free_practice_queue(items, selected, {})

    assert queue.free_practice
    assert _fronts(queue) == ["word-2", "word-0", "word-3"]


def test_free_practice_outcomes_are_not_committing() -> None:
    items = _items(1)
    states = {items[0].key: _state(CardStatus.REVIEW, TODAY + timedelta(days=30), interval=30)}
    queue = build_free_practice_queue(items, ["greek::word-0"], states)

    outcome = queue.rate(Rating.GOOD, now=NOW)

    assert outcome.committing is False
    assert outcome.log_entry is None
    assert outcome.state.interval == 75
    assert states[items[0].key].interval == 30


def test_committing_outcome_carries_log_entry() -> None:
    queue = SessionQueue(_items(1), {})

    outcome = queue.rate(Rating.EASY, now=NOW)

    assert outcome.committing is True
    assert outcome.log_entry is not None
    assert outcome.log_entry.timestamp == NOW
    assert outcome.log_entry.item_key == ItemKey("greek", "word-0")
    assert outcome.log_entry.rating is Rating.EASY


def test_initialize_states_adds_only_missing_items() -> None:
    items = _items(3)
    existing = {items[0].key: _state(CardStatus.REVIEW, TODAY, interval=9)}

    updated, added = initialize_states(items, existing, TODAY)

    assert added is True
    assert len(updated) == 3
    assert updated[items[0].key].interval == 9
    assert updated[items[1].key].status is CardStatus.NEW
    assert len(existing) == 1

    again, added_again = initialize_states(items, updated, TODAY)
    assert added_again is False
    assert again == updated


def test_failed_rating_keeps_item_in_session(monkeypatch: pytest.MonkeyPatch) -> None:
    queue = SessionQueue(_items(2), {})

    def broken_next_state(*args, **kwargs):
        raise ValueError("broken state")

    monkeypatch.setattr("srs_engine.srs.queue.next_state", broken_next_state)

    with pytest.raises(ValueError):
        queue.rate(Rating.GOOD, now=NOW)

    assert _fronts(queue) == ["word-0", "word-1"]
    assert queue.reviewed_count == 0
