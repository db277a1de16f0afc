"""Create scheduling states for items the scheduler has not seen yet."""

from __future__ import annotations

from datetime import date
from typing import Iterable, Mapping

from srs_engine.srs.models import Item, ItemKey, ItemSchedulingState
from srs_engine.srs.scheduler import new_state


def initialize_states(
    items: Iterable[Item],
    states: Mapping[ItemKey, ItemSchedulingState],
    today: date,
) -> tuple[dict[ItemKey, ItemSchedulingState], bool]:
    """Return a copy of ``states`` with a fresh New state for every unseen item.

    Existing states are kept as they are. The boolean tells whether anything was
    added, so callers only write back to the store when it changed.
    """
    updated = dict(states)
    added = False
    for item in items:
        key = item.key
        if key not in updated:
            updated[key] = new_state(today)
            added = True
    return updated, added
