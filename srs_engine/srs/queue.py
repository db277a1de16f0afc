"""Review session queue: card selection and rating-dependent requeue rules."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from srs_engine.srs.models import (
    CardStatus,
    Item,
    ItemKey,
    ItemSchedulingState,
    Rating,
    ReviewLogEntry,
)
from srs_engine.srs.scheduler import new_state, next_state
from srs_engine.srs.stats import utc_date


LOGGER = logging.getLogger(__name__)

DEFAULT_NEW_CARDS_PER_SESSION = 20
AGAIN_REINSERT_OFFSET = 4

Permutation = Callable[[List[Item]], List[Item]]


class HardRatingPolicy(str, Enum):
    """What happens to an item rated Hard during a session."""

    DROP = "drop"
    REQUEUE_END = "requeue_end"


def random_permutation(items: List[Item]) -> List[Item]:
    """Return the items in random order without touching the input list."""
    shuffled = list(items)
    random.shuffle(shuffled)
    return shuffled


def identity_permutation(items: List[Item]) -> List[Item]:
    return list(items)


@dataclass(slots=True)
class RatingOutcome:
    """Result of rating the current item of a session."""

    item: Item
    rating: Rating
    state: ItemSchedulingState
    committing: bool
    log_entry: Optional[ReviewLogEntry] = None


@dataclass(slots=True)
class DueSummary:
    """How many cards a standard review session would contain right now."""

    new_count: int
    learning_count: int
    review_count: int
    new_card_limit: int

    @property
    def total(self) -> int:
        return min(self.new_count, self.new_card_limit) + self.learning_count + self.review_count


class SessionQueue:
    """Ordered items of one review session plus a cursor on the current item.

    The queue never writes anything back. ``rate`` computes the next state and
    hands it to the caller, flagged as non-committing in free-practice sessions.
    """

    def __init__(
        self,
        items: Iterable[Item],
        states: Mapping[ItemKey, ItemSchedulingState],
        *,
        free_practice: bool = False,
        hard_policy: HardRatingPolicy = HardRatingPolicy.DROP,
    ) -> None:
        self._items: List[Item] = list(items)
        self._states = states
        self._session_states: Dict[ItemKey, ItemSchedulingState] = {}
        self._cursor = 0
        self._tally: Dict[Rating, int] = {rating: 0 for rating in Rating}
        self.free_practice = free_practice
        self.hard_policy = HardRatingPolicy(hard_policy)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> tuple[Item, ...]:
        return tuple(self._items)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current(self) -> Optional[Item]:
        if self.is_complete():
            return None
        return self._items[self._cursor]

    @property
    def tally(self) -> Dict[Rating, int]:
        """Ratings given so far in this session, per rating."""
        return dict(self._tally)

    @property
    def reviewed_count(self) -> int:
        return sum(self._tally.values())

    def is_complete(self) -> bool:
        return not self._items

    def state_for(self, key: ItemKey, today: date) -> ItemSchedulingState:
        """Latest known state of an item, including ratings given earlier in this session."""
        state = self._session_states.get(key)
        if state is None:
            state = self._states.get(key)
        if state is None:
            state = new_state(today)
        return state

    def rate(self, rating: Rating, now: Optional[datetime] = None) -> RatingOutcome:
        """Apply ``rating`` to the current item and move the queue forward."""
        if now is None:
            now = datetime.now(timezone.utc)
        if self.is_complete():
            raise RuntimeError("Cannot rate an item: the review session is already complete.")

        rating = Rating(rating)
        today = utc_date(now)
        item = self._items[self._cursor]
        state = next_state(self.state_for(item.key, today), rating, today)
        self._items.pop(self._cursor)
        self._session_states[item.key] = state
        self._tally[rating] += 1

        if rating is Rating.AGAIN:
            reinsert_at = min(self._cursor + AGAIN_REINSERT_OFFSET, len(self._items))
            self._items.insert(reinsert_at, item)
        elif rating is Rating.HARD and self.hard_policy is HardRatingPolicy.REQUEUE_END:
            self._items.append(item)

        if self._cursor >= len(self._items):
            self._cursor = 0

        committing = not self.free_practice
        log_entry = ReviewLogEntry(timestamp=now, item_key=item.key, rating=rating) if committing else None
        LOGGER.debug(
            "Rated %s as %s; %d item(s) left in session.", item.key, rating.value, len(self._items)
        )
        return RatingOutcome(
            item=item,
            rating=rating,
            state=state,
            committing=committing,
            log_entry=log_entry,
        )


def _partition(
    candidates: Iterable[Item],
    states: Mapping[ItemKey, ItemSchedulingState],
    today: date,
) -> tuple[List[Item], List[Item], List[Item]]:
    new_items: List[Item] = []
    learning_items: List[Item] = []
    review_items: List[Item] = []
    seen: set[ItemKey] = set()

    for item in candidates:
        key = item.key
        if key in seen:
            continue
        seen.add(key)

        state = states.get(key)
        if state is None or state.status is CardStatus.NEW:
            new_items.append(item)
        elif state.is_due(today):
            if state.status is CardStatus.LEARNING:
                learning_items.append(item)
            else:
                review_items.append(item)

    return new_items, learning_items, review_items


def due_summary(
    candidates: Iterable[Item],
    states: Mapping[ItemKey, ItemSchedulingState],
    today: date,
    new_card_limit: int = DEFAULT_NEW_CARDS_PER_SESSION,
) -> DueSummary:
    new_items, learning_items, review_items = _partition(candidates, states, today)
    return DueSummary(
        new_count=len(new_items),
        learning_count=len(learning_items),
        review_count=len(review_items),
        new_card_limit=new_card_limit,
    )


def build_queue(
    candidates: Iterable[Item],
    states: Mapping[ItemKey, ItemSchedulingState],
    today: date,
    *,
    new_card_limit: int = DEFAULT_NEW_CARDS_PER_SESSION,
    permutation: Permutation = random_permutation,
    hard_policy: HardRatingPolicy = HardRatingPolicy.DROP,
) -> SessionQueue:
    """Build the standard due-review session.

    Learning and Review items due on or before ``today`` are all included; New
    items (or items without any state) are capped at ``new_card_limit``. The
    union is passed through ``permutation`` so tests can pin the order.
    """
    new_items, learning_items, review_items = _partition(candidates, states, today)
    selected_new = permutation(new_items)[: max(0, new_card_limit)]
    queue_items = permutation(learning_items + review_items + selected_new)

    LOGGER.info(
        "Built review session with %d item(s): %d new, %d learning, %d review.",
        len(queue_items),
        len(selected_new),
        len(learning_items),
        len(review_items),
    )
    return SessionQueue(queue_items, states, free_practice=False, hard_policy=hard_policy)


def build_free_practice_queue(
    candidates: Iterable[Item],
    selected_keys: Sequence[Union[ItemKey, str]],
    states: Mapping[ItemKey, ItemSchedulingState],
    *,
    hard_policy: HardRatingPolicy = HardRatingPolicy.DROP,
) -> SessionQueue:
    """Seed a non-committing session from an externally ranked list of keys.

    Keys that do not resolve to a known item are dropped; no due-date filter and
    no new-card cap apply. The supplied order is kept.
    """
    by_key = {item.key: item for item in candidates}
    queue_items: List[Item] = []
    seen: set[ItemKey] = set()
    unknown = 0

    for raw_key in selected_keys:
        try:
            key = raw_key if isinstance(raw_key, ItemKey) else ItemKey.parse(str(raw_key))
        except ValueError:
            unknown += 1
            continue
        item = by_key.get(key)
        if item is None:
            unknown += 1
            continue
        if key in seen:
            continue
        seen.add(key)
        queue_items.append(item)

    if unknown:
        LOGGER.debug("Discarded %d unknown key(s) from free-practice selection.", unknown)

    return SessionQueue(queue_items, states, free_practice=True, hard_policy=hard_policy)
