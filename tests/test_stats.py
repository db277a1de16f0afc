from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from srs_engine.srs import (
    CardStatus,
    Item,
    ItemKey,
    ItemSchedulingState,
    Rating,
    ReviewLogEntry,
    collection_counts,
    summarize,
)


NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()
KEY = ItemKey("greek", "λόγος")


def _entry(moment: datetime, rating: Rating = Rating.GOOD, key: ItemKey = KEY) -> ReviewLogEntry:
    return ReviewLogEntry(timestamp=moment, item_key=key, rating=rating)


def test_summarize_empty_inputs() -> None:
    stats = summarize([], {}, NOW)

    assert stats.reviews_today == 0
    assert stats.reviews_past_7_days == 0
    assert stats.reviews_past_30_days == 0
    assert all(count == 0 for count in stats.answer_counts.values())
    assert set(stats.answer_counts) == set(Rating)
    assert stats.activity_map == {}
    assert stats.total_cards == 0
    assert stats.correct_rate == 0.0
    assert stats.mature_ratio == 0.0


def test_summarize_uses_utc_calendar_days() -> None:
    history = [
        _entry(datetime(2026, 10, 19, 0, 5, tzinfo=timezone.utc)),
        _entry(datetime(2026, 10, 18, 23, 55, tzinfo=timezone.utc)),
        _entry(NOW - timedelta(days=6)),
        _entry(NOW - timedelta(days=7)),
        _entry(NOW - timedelta(days=29)),
        _entry(NOW - timedelta(days=30)),
    ]

    stats = summarize(history, {}, NOW)

    assert stats.reviews_today == 1
    assert stats.reviews_past_7_days == 3
    assert stats.reviews_past_30_days == 5
    assert stats.lifetime_reviews == 6


def test_summarize_converts_other_timezones_to_utc() -> None:
    athens = timezone(timedelta(hours=3))
    # 01:30 in Athens is still the previous day in UTC
    history = [_entry(datetime(2026, 10, 20, 1, 30, tzinfo=athens))]

    stats = summarize(history, {}, NOW)

    assert stats.reviews_today == 1
    assert stats.activity_map == {"2026-10-19": 1}


def test_future_entries_are_not_counted_in_windows() -> None:
    history = [_entry(NOW + timedelta(days=2)), _entry(NOW)]

    stats = summarize(history, {}, NOW)

    assert stats.reviews_today == 1
    assert stats.reviews_past_7_days == 1
    assert stats.reviews_past_30_days == 1
    assert stats.lifetime_reviews == 2


def test_answer_counts_and_activity_map() -> None:
    history = [
        _entry(NOW, Rating.AGAIN),
        _entry(NOW, Rating.GOOD),
        _entry(NOW, Rating.EASY),
        _entry(NOW - timedelta(days=1), Rating.HARD),
    ]

    stats = summarize(history, {}, NOW)

    assert stats.answer_counts == {Rating.AGAIN: 1, Rating.HARD: 1, Rating.GOOD: 1, Rating.EASY: 1}
    assert stats.activity_map == {"2026-10-19": 3, "2026-10-18": 1}
    assert stats.correct_rate == pytest.approx(50.0)


def test_card_breakdown_by_maturity() -> None:
    states = {
        ItemKey("greek", "new"): ItemSchedulingState(status=CardStatus.NEW, due_date=TODAY),
        ItemKey("greek", "learning"): ItemSchedulingState(status=CardStatus.LEARNING, due_date=TODAY),
        ItemKey("greek", "young"): ItemSchedulingState(
            status=CardStatus.REVIEW, due_date=TODAY, interval=40, consecutive_easy_streak=3
        ),
        ItemKey("greek", "mature"): ItemSchedulingState(
            status=CardStatus.REVIEW, due_date=TODAY, interval=21, consecutive_easy_streak=21
        ),
    }

    stats = summarize([], states, NOW)

    assert stats.total_cards == 4
    assert stats.new_count == 1
    assert stats.learning_count == 2
    assert stats.mature_count == 1
    assert stats.new_count + stats.learning_count + stats.mature_count == stats.total_cards
    assert stats.mature_ratio == pytest.approx(25.0)


def test_summarize_is_repeatable() -> None:
    history = [_entry(NOW), _entry(NOW - timedelta(days=3), Rating.AGAIN)]
    states = {KEY: ItemSchedulingState(status=CardStatus.LEARNING, due_date=TODAY)}

    assert summarize(history, states, NOW) == summarize(history, states, NOW)


def test_collection_counts() -> None:
    items = [Item(front_text=f"w{index}", back_text="", collection_name="greek") for index in range(5)]
    states = {
        items[0].key: ItemSchedulingState(status=CardStatus.NEW, due_date=TODAY),
        items[1].key: ItemSchedulingState(status=CardStatus.REVIEW, due_date=TODAY - timedelta(days=1), interval=3),
        items[2].key: ItemSchedulingState(status=CardStatus.REVIEW, due_date=TODAY + timedelta(days=1), interval=3),
        items[3].key: ItemSchedulingState(status=CardStatus.LEARNING, due_date=date(2026, 10, 19)),
    }

    counts = collection_counts(items, states, TODAY)

    assert counts.new_count == 2
    assert counts.due_count == 1
    assert counts.learning_count == 1
