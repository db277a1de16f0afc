"""Storage contract used by the review service, plus an in-memory implementation."""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Protocol, Sequence

from srs_engine.srs.models import ItemKey, ItemSchedulingState, ReviewLogEntry


class ReviewStore(Protocol):
    """Durable home of the item-state table and the review history."""

    async def load_states(self) -> Dict[ItemKey, ItemSchedulingState]:
        ...

    async def save_states(self, states: Mapping[ItemKey, ItemSchedulingState]) -> None:
        ...

    async def load_history(self) -> List[ReviewLogEntry]:
        ...

    async def save_history(self, history: Sequence[ReviewLogEntry]) -> None:
        ...

    async def record_review(
        self,
        key: ItemKey,
        state: ItemSchedulingState,
        entry: ReviewLogEntry,
    ) -> None:
        """Persist the new state of one item and append its log entry together."""
        ...

    async def replace_all(
        self,
        states: Mapping[ItemKey, ItemSchedulingState],
        history: Sequence[ReviewLogEntry],
    ) -> None:
        """Swap both the state table and the history for new contents at once."""
        ...

    async def delete_state(self, key: ItemKey) -> bool:
        ...

    async def rename_state(self, old_key: ItemKey, new_key: ItemKey) -> bool:
        ...


class InMemoryReviewStore:
    """Dictionary-backed store for tests and throwaway sessions."""

    def __init__(
        self,
        states: Optional[Mapping[ItemKey, ItemSchedulingState]] = None,
        history: Optional[Sequence[ReviewLogEntry]] = None,
    ) -> None:
        self._states: Dict[ItemKey, ItemSchedulingState] = dict(states or {})
        self._history: List[ReviewLogEntry] = list(history or [])

    async def load_states(self) -> Dict[ItemKey, ItemSchedulingState]:
        return dict(self._states)

    async def save_states(self, states: Mapping[ItemKey, ItemSchedulingState]) -> None:
        self._states = dict(states)

    async def load_history(self) -> List[ReviewLogEntry]:
        return list(self._history)

    async def save_history(self, history: Sequence[ReviewLogEntry]) -> None:
        self._history = list(history)

    async def record_review(
        self,
        key: ItemKey,
        state: ItemSchedulingState,
        entry: ReviewLogEntry,
    ) -> None:
        self._states[key] = state
        self._history.append(entry)

    async def replace_all(
        self,
        states: Mapping[ItemKey, ItemSchedulingState],
        history: Sequence[ReviewLogEntry],
    ) -> None:
        self._states = dict(states)
        self._history = list(history)

    async def delete_state(self, key: ItemKey) -> bool:
        return self._states.pop(key, None) is not None

    async def rename_state(self, old_key: ItemKey, new_key: ItemKey) -> bool:
        state = self._states.pop(old_key, None)
        if state is None:
            return False
        self._states[new_key] = state
        return True
