"""Summary statistics derived from the review history and current item states."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, Mapping, Sequence

from srs_engine.srs.models import (
    CardStatus,
    Item,
    ItemKey,
    ItemSchedulingState,
    Rating,
    ReviewLogEntry,
)


def _empty_answer_counts() -> Dict[Rating, int]:
    return {rating: 0 for rating in Rating}


@dataclass(slots=True)
class ReviewStats:
    """Aggregated review activity and card breakdown."""

    reviews_today: int = 0
    reviews_past_7_days: int = 0
    reviews_past_30_days: int = 0
    answer_counts: Dict[Rating, int] = field(default_factory=_empty_answer_counts)
    activity_map: Dict[str, int] = field(default_factory=dict)
    new_count: int = 0
    learning_count: int = 0
    mature_count: int = 0
    total_cards: int = 0

    @property
    def lifetime_reviews(self) -> int:
        return sum(self.answer_counts.values())

    @property
    def correct_rate(self) -> float:
        """Share of Good and Easy answers, in percent."""
        total = self.lifetime_reviews
        if total == 0:
            return 0.0
        correct = self.answer_counts[Rating.GOOD] + self.answer_counts[Rating.EASY]
        return correct / total * 100

    @property
    def mature_ratio(self) -> float:
        """Mature cards as a percentage of all cards."""
        if self.total_cards == 0:
            return 0.0
        return self.mature_count / self.total_cards * 100


@dataclass(slots=True)
class CollectionCounts:
    """Per-collection badge counts."""

    new_count: int = 0
    due_count: int = 0
    learning_count: int = 0


def utc_date(moment: datetime) -> date:
    """Calendar date of ``moment`` in UTC. Naive datetimes are taken to be UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).date()


def summarize(
    history: Sequence[ReviewLogEntry],
    states: Mapping[ItemKey, ItemSchedulingState],
    now: datetime,
) -> ReviewStats:
    """Compute review counts, answer tallies, daily activity and the card breakdown.

    Windows are compared by UTC calendar day: "past 7 days" means entries dated
    between ``today - 6`` and ``today`` inclusive, whatever the time of day.
    """
    stats = ReviewStats(total_cards=len(states))

    for state in states.values():
        if state.status is CardStatus.NEW:
            stats.new_count += 1
        elif state.is_mature:
            stats.mature_count += 1
        else:
            stats.learning_count += 1

    today = utc_date(now)
    week_start = today - timedelta(days=6)
    month_start = today - timedelta(days=29)

    for entry in history:
        entry_day = utc_date(entry.timestamp)
        day_key = entry_day.isoformat()
        stats.activity_map[day_key] = stats.activity_map.get(day_key, 0) + 1
        stats.answer_counts[entry.rating] += 1

        if entry_day > today:
            continue
        if entry_day == today:
            stats.reviews_today += 1
        if entry_day >= week_start:
            stats.reviews_past_7_days += 1
        if entry_day >= month_start:
            stats.reviews_past_30_days += 1

    return stats


def collection_counts(
    items: Iterable[Item],
    states: Mapping[ItemKey, ItemSchedulingState],
    today: date,
) -> CollectionCounts:
    """Count new, due and learning cards among ``items``.

    Items without a state count as new. Due and learning counts only include
    cards whose due date has been reached.
    """
    counts = CollectionCounts()
    for item in items:
        state = states.get(item.key)
        if state is None or state.status is CardStatus.NEW:
            counts.new_count += 1
            continue
        if not state.is_due(today):
            continue
        if state.status is CardStatus.REVIEW:
            counts.due_count += 1
        else:
            counts.learning_count += 1
    return counts
