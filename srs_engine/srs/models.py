"""Value types shared by the scheduling, queue and statistics helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional


STARTING_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MATURE_INTERVAL_DAYS = 21
MATURE_EASY_STREAK = 21
KEY_SEPARATOR = "::"


class CardStatus(str, Enum):
    """Lifecycle stage of an item inside the scheduler."""

    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"


class Rating(str, Enum):
    """Answer button pressed by the learner. Declared from worst to best."""

    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"


def _check_collection_name(collection_name: str) -> None:
    # The first separator in a key string marks the end of the collection name.
    if KEY_SEPARATOR in collection_name:
        raise ValueError(f"Collection name {collection_name!r} must not contain {KEY_SEPARATOR!r}.")


@dataclass(frozen=True, slots=True)
class ItemKey:
    """Stable identity of an item: the collection it belongs to and its front text."""

    collection_name: str
    front_text: str

    def __post_init__(self) -> None:
        _check_collection_name(self.collection_name)

    def __str__(self) -> str:
        return f"{self.collection_name}{KEY_SEPARATOR}{self.front_text}"

    @classmethod
    def parse(cls, raw: str) -> ItemKey:
        """Split a ``"<collection>::<front>"`` string at the first separator."""
        collection_name, separator, front_text = raw.partition(KEY_SEPARATOR)
        if not separator:
            raise ValueError(f"Item key {raw!r} does not contain {KEY_SEPARATOR!r}.")
        return cls(collection_name=collection_name, front_text=front_text)


@dataclass(frozen=True, slots=True)
class Item:
    """A front/back learning unit supplied by a collection."""

    front_text: str
    back_text: str
    collection_name: str

    def __post_init__(self) -> None:
        _check_collection_name(self.collection_name)

    @property
    def key(self) -> ItemKey:
        return ItemKey(self.collection_name, self.front_text)


@dataclass(frozen=True, slots=True)
class ItemSchedulingState:
    """Scheduling data for one item. Replaced wholesale on every rating."""

    status: CardStatus
    due_date: date
    interval: int = 0
    ease_factor: float = STARTING_EASE_FACTOR
    lapses: int = 0
    last_rating: Optional[Rating] = None
    consecutive_easy_streak: int = 0

    @property
    def is_mature(self) -> bool:
        return (
            self.status is CardStatus.REVIEW
            and self.interval >= MATURE_INTERVAL_DAYS
            and self.consecutive_easy_streak >= MATURE_EASY_STREAK
        )

    def is_due(self, today: date) -> bool:
        return self.due_date <= today


@dataclass(frozen=True, slots=True)
class ReviewLogEntry:
    """One rating event. The ordered list of entries forms the review history."""

    timestamp: datetime
    item_key: ItemKey
    rating: Rating
