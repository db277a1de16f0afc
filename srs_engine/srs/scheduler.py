"""Spaced-repetition scheduling policy for item reviews."""

from __future__ import annotations

import math
from dataclasses import replace
from datetime import date, timedelta

from srs_engine.srs.models import (
    MIN_EASE_FACTOR,
    STARTING_EASE_FACTOR,
    CardStatus,
    ItemSchedulingState,
    Rating,
)


AGAIN_INTERVAL = 0
HARD_INTERVAL_NEW_CARD = 1
GOOD_INTERVAL_NEW_CARD = 1
EASY_INTERVAL_NEW_CARD = 4
AGAIN_EASE_PENALTY = 0.2
HARD_EASE_PENALTY = 0.15
EASY_EASE_BONUS = 0.15
HARD_INTERVAL_MULTIPLIER = 1.2
EASY_INTERVAL_MULTIPLIER = 1.3
# About a hundred years; keeps due dates representable and inside a 32-bit column.
MAX_INTERVAL_DAYS = 36500

_GRADUATION_INTERVALS = {
    Rating.HARD: HARD_INTERVAL_NEW_CARD,
    Rating.GOOD: GOOD_INTERVAL_NEW_CARD,
    Rating.EASY: EASY_INTERVAL_NEW_CARD,
}


def new_state(today: date) -> ItemSchedulingState:
    """Return the state given to an item the first time the scheduler sees it."""
    return ItemSchedulingState(
        status=CardStatus.NEW,
        due_date=today,
        interval=0,
        ease_factor=STARTING_EASE_FACTOR,
        lapses=0,
        last_rating=None,
        consecutive_easy_streak=0,
    )


def _round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; 2.5 days must become 3.
    return int(math.floor(value + 0.5))


def next_state(current: ItemSchedulingState, rating: Rating, today: date) -> ItemSchedulingState:
    """Return the state an item moves to after ``rating`` is given on ``today``."""
    rating = Rating(rating)
    easy_streak = current.consecutive_easy_streak + 1 if rating is Rating.EASY else 0

    if rating is Rating.AGAIN:
        return replace(
            current,
            status=CardStatus.LEARNING,
            interval=AGAIN_INTERVAL,
            lapses=current.lapses + 1,
            ease_factor=max(MIN_EASE_FACTOR, current.ease_factor - AGAIN_EASE_PENALTY),
            due_date=today,
            last_rating=rating,
            consecutive_easy_streak=easy_streak,
        )

    ease_factor = current.ease_factor
    if current.status in (CardStatus.NEW, CardStatus.LEARNING):
        interval = _GRADUATION_INTERVALS[rating]
    else:
        if rating is Rating.HARD:
            raw_interval = _round_half_up(current.interval * HARD_INTERVAL_MULTIPLIER)
            ease_factor = max(MIN_EASE_FACTOR, ease_factor - HARD_EASE_PENALTY)
        elif rating is Rating.GOOD:
            raw_interval = _round_half_up(current.interval * ease_factor)
        else:
            raw_interval = _round_half_up(current.interval * ease_factor * EASY_INTERVAL_MULTIPLIER)
            ease_factor += EASY_EASE_BONUS
        interval = min(MAX_INTERVAL_DAYS, max(1, raw_interval))

    return replace(
        current,
        status=CardStatus.REVIEW,
        interval=interval,
        ease_factor=ease_factor,
        due_date=today + timedelta(days=interval),
        last_rating=rating,
        consecutive_easy_streak=easy_streak,
    )
