"""Review sessions wired to a store: the caller that commits rating results."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from srs_engine.curator import PracticeCurator
from srs_engine.snapshot import Snapshot, export_snapshot, import_snapshot
from srs_engine.srs.initialization import initialize_states
from srs_engine.srs.models import Item, ItemKey, ItemSchedulingState, Rating
from srs_engine.srs.queue import (
    DEFAULT_NEW_CARDS_PER_SESSION,
    DueSummary,
    HardRatingPolicy,
    Permutation,
    RatingOutcome,
    SessionQueue,
    build_free_practice_queue,
    build_queue,
    due_summary,
    random_permutation,
)
from srs_engine.srs.stats import CollectionCounts, ReviewStats, collection_counts, summarize, utc_date
from srs_engine.store import ReviewStore


LOGGER = logging.getLogger(__name__)


class ReviewService:
    """Start review sessions and persist every committed rating.

    The store is injected; nothing here reaches for module-level storage.
    """

    def __init__(
        self,
        store: ReviewStore,
        *,
        new_card_limit: int = DEFAULT_NEW_CARDS_PER_SESSION,
        hard_policy: HardRatingPolicy = HardRatingPolicy.DROP,
        permutation: Permutation = random_permutation,
        curator: Optional[PracticeCurator] = None,
    ) -> None:
        self._store = store
        self._new_card_limit = new_card_limit
        self._hard_policy = HardRatingPolicy(hard_policy)
        self._permutation = permutation
        self._curator = curator

    async def prepare_states(
        self,
        items: Sequence[Item],
        now: Optional[datetime] = None,
    ) -> Dict[ItemKey, ItemSchedulingState]:
        """Load states, creating and saving New states for items seen for the first time."""
        if now is None:
            now = datetime.now(timezone.utc)

        states = await self._store.load_states()
        updated, added = initialize_states(items, states, utc_date(now))
        if added:
            await self._store.save_states(updated)
            LOGGER.info("Initialized %d new item state(s).", len(updated) - len(states))
        return updated

    async def start_review(self, items: Sequence[Item], now: Optional[datetime] = None) -> SessionQueue:
        """Build the standard due-review session for ``items``."""
        if now is None:
            now = datetime.now(timezone.utc)

        states = await self.prepare_states(items, now=now)
        return build_queue(
            items,
            states,
            utc_date(now),
            new_card_limit=self._new_card_limit,
            permutation=self._permutation,
            hard_policy=self._hard_policy,
        )

    async def start_free_practice(
        self,
        items: Sequence[Item],
        selected_keys: Optional[Sequence[ItemKey | str]] = None,
    ) -> SessionQueue:
        """Build a non-committing session, asking the curator for keys when none are given."""
        states = await self._store.load_states()
        if selected_keys is None:
            if self._curator is None:
                raise RuntimeError("Free practice needs a curator or an explicit list of card ids.")
            history = await self._store.load_history()
            selected_keys = await self._curator.select(items, states, history)

        return build_free_practice_queue(
            items,
            selected_keys,
            states,
            hard_policy=self._hard_policy,
        )

    async def rate(
        self,
        queue: SessionQueue,
        rating: Rating,
        now: Optional[datetime] = None,
    ) -> RatingOutcome:
        """Rate the current item and commit the result unless the session is free practice."""
        outcome = queue.rate(rating, now=now)
        if outcome.committing and outcome.log_entry is not None:
            await self._store.record_review(outcome.item.key, outcome.state, outcome.log_entry)
            LOGGER.info(
                "Committed %s for %s: next review on %s.",
                outcome.rating.value,
                outcome.item.key,
                outcome.state.due_date.isoformat(),
            )
        return outcome

    async def summarize(self, now: Optional[datetime] = None) -> ReviewStats:
        if now is None:
            now = datetime.now(timezone.utc)
        states = await self._store.load_states()
        history = await self._store.load_history()
        return summarize(history, states, now)

    async def due_summary(self, items: Sequence[Item], now: Optional[datetime] = None) -> DueSummary:
        if now is None:
            now = datetime.now(timezone.utc)
        states = await self._store.load_states()
        return due_summary(items, states, utc_date(now), self._new_card_limit)

    async def collection_overview(self, now: Optional[datetime] = None) -> Dict[str, CollectionCounts]:
        """Badge counts per collection, for every item that already has a stored state."""
        if now is None:
            now = datetime.now(timezone.utc)
        states = await self._store.load_states()
        by_collection: Dict[str, List[Item]] = defaultdict(list)
        for key in states:
            by_collection[key.collection_name].append(
                Item(front_text=key.front_text, back_text="", collection_name=key.collection_name)
            )
        today = utc_date(now)
        return {
            name: collection_counts(items, states, today)
            for name, items in sorted(by_collection.items())
        }

    async def export_progress(self, extra: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        states = await self._store.load_states()
        history = await self._store.load_history()
        return export_snapshot(states, history, extra)

    async def import_progress(self, payload: object) -> Snapshot:
        """Replace all stored progress with ``payload``.

        The bundle is fully decoded before anything is written, so an invalid
        bundle leaves the store untouched.
        """
        snapshot = import_snapshot(payload)
        await self.restore(snapshot)
        return snapshot

    async def restore(self, snapshot: Snapshot) -> None:
        await self._store.replace_all(snapshot.states, snapshot.history)
        LOGGER.info(
            "Restored %d item state(s) and %d review(s) from snapshot.",
            len(snapshot.states),
            len(snapshot.history),
        )

    async def forget_item(self, key: ItemKey) -> bool:
        """Drop the state of a deleted item. Its history entries are kept."""
        return await self._store.delete_state(key)

    async def rename_item(self, old_key: ItemKey, new_key: ItemKey) -> bool:
        """Carry the schedule of an edited item over to its new key."""
        return await self._store.rename_state(old_key, new_key)
