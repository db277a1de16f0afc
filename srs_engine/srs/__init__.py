"""Scheduling core: policy, session queue and statistics."""

from .initialization import initialize_states
from .models import (
    CardStatus,
    Item,
    ItemKey,
    ItemSchedulingState,
    Rating,
    ReviewLogEntry,
)
from .queue import (
    DueSummary,
    HardRatingPolicy,
    RatingOutcome,
    SessionQueue,
    build_free_practice_queue,
    build_queue,
    due_summary,
    identity_permutation,
    random_permutation,
)
from .scheduler import new_state, next_state
from .stats import CollectionCounts, ReviewStats, collection_counts, summarize

__all__ = [
    "CardStatus",
    "CollectionCounts",
    "DueSummary",
    "HardRatingPolicy",
    "Item",
    "ItemKey",
    "ItemSchedulingState",
    "Rating",
    "RatingOutcome",
    "ReviewLogEntry",
    "ReviewStats",
    "SessionQueue",
    "build_free_practice_queue",
    "build_queue",
    "collection_counts",
    "due_summary",
    "identity_permutation",
    "initialize_states",
    "new_state",
    "next_state",
    "random_permutation",
    "summarize",
]
