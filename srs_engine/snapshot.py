"""Export and import of review progress as a flat JSON-compatible bundle.

The layout follows the backup file written by the web app this engine grew out
of: ``srsData`` maps ``"<collection>::<front>"`` keys to camelCase states,
``reviewHistory`` lists ``{date, cardId, rating}`` entries, and any other
top-level field (decks, user level, ...) is carried along untouched.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from srs_engine.errors import ImportFormatInvalid
from srs_engine.srs.models import (
    MIN_EASE_FACTOR,
    CardStatus,
    ItemKey,
    ItemSchedulingState,
    Rating,
    ReviewLogEntry,
)


STATES_FIELD = "srsData"
HISTORY_FIELD = "reviewHistory"


@dataclass(slots=True)
class Snapshot:
    """Decoded progress bundle."""

    states: Dict[ItemKey, ItemSchedulingState]
    history: List[ReviewLogEntry]
    extra: Dict[str, Any] = field(default_factory=dict)


def _format_timestamp(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat()


def _parse_datetime(raw: str) -> datetime:
    text = raw.strip()
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _parse_due_date(raw: object, key: str) -> date:
    if not isinstance(raw, str):
        raise ImportFormatInvalid(f"dueDate of {key!r} must be a string.")
    try:
        if "T" in raw:
            return _parse_datetime(raw).date()
        return date.fromisoformat(raw.strip())
    except ValueError as exc:
        raise ImportFormatInvalid(f"dueDate of {key!r} is not a valid date: {raw!r}.") from exc


def _require_int(payload: Mapping[str, Any], name: str, key: str, default: Optional[int] = None) -> int:
    value = payload.get(name, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ImportFormatInvalid(f"{name} of {key!r} must be a non-negative integer.")
    return value


def _encode_state(state: ItemSchedulingState) -> Dict[str, Any]:
    encoded: Dict[str, Any] = {
        "status": state.status.value,
        "dueDate": state.due_date.isoformat(),
        "interval": state.interval,
        "easeFactor": state.ease_factor,
        "lapses": state.lapses,
        "consecutiveEasyCount": state.consecutive_easy_streak,
    }
    if state.last_rating is not None:
        encoded["lastRating"] = state.last_rating.value
    return encoded


def _decode_state(key: str, payload: object) -> ItemSchedulingState:
    if not isinstance(payload, dict):
        raise ImportFormatInvalid(f"State of {key!r} must be an object.")

    try:
        status = CardStatus(payload.get("status"))
    except ValueError as exc:
        raise ImportFormatInvalid(f"Unknown status for {key!r}: {payload.get('status')!r}.") from exc

    ease_factor = payload.get("easeFactor")
    if isinstance(ease_factor, bool) or not isinstance(ease_factor, (int, float)):
        raise ImportFormatInvalid(f"easeFactor of {key!r} must be a number.")
    if ease_factor < MIN_EASE_FACTOR:
        raise ImportFormatInvalid(f"easeFactor of {key!r} is below {MIN_EASE_FACTOR}.")

    raw_rating = payload.get("lastRating")
    try:
        last_rating = Rating(raw_rating) if raw_rating is not None else None
    except ValueError as exc:
        raise ImportFormatInvalid(f"Unknown lastRating for {key!r}: {raw_rating!r}.") from exc

    interval = _require_int(payload, "interval", key)
    if status is CardStatus.REVIEW and interval < 1:
        raise ImportFormatInvalid(f"interval of {key!r} must be at least 1 for a review card.")

    return ItemSchedulingState(
        status=status,
        due_date=_parse_due_date(payload.get("dueDate"), key),
        interval=interval,
        ease_factor=float(ease_factor),
        lapses=_require_int(payload, "lapses", key),
        last_rating=last_rating,
        consecutive_easy_streak=_require_int(payload, "consecutiveEasyCount", key, default=0),
    )


def _decode_entry(index: int, payload: object) -> ReviewLogEntry:
    if not isinstance(payload, dict):
        raise ImportFormatInvalid(f"Review log entry #{index} must be an object.")
    raw_date = payload.get("date")
    raw_key = payload.get("cardId")
    if not isinstance(raw_date, str) or not isinstance(raw_key, str):
        raise ImportFormatInvalid(f"Review log entry #{index} needs string 'date' and 'cardId'.")
    try:
        timestamp = _parse_datetime(raw_date)
        item_key = ItemKey.parse(raw_key)
        rating = Rating(payload.get("rating"))
    except ValueError as exc:
        raise ImportFormatInvalid(f"Review log entry #{index} is invalid: {exc}") from exc
    return ReviewLogEntry(timestamp=timestamp, item_key=item_key, rating=rating)


def export_snapshot(
    states: Mapping[ItemKey, ItemSchedulingState],
    history: Sequence[ReviewLogEntry],
    extra: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Build the serializable bundle for ``states`` and ``history``."""
    bundle: Dict[str, Any] = dict(extra or {})
    bundle[STATES_FIELD] = {str(key): _encode_state(state) for key, state in states.items()}
    bundle[HISTORY_FIELD] = [
        {
            "date": _format_timestamp(entry.timestamp),
            "cardId": str(entry.item_key),
            "rating": entry.rating.value,
        }
        for entry in history
    ]
    return bundle


def import_snapshot(payload: object) -> Snapshot:
    """Decode a bundle produced by :func:`export_snapshot`.

    Any malformed part rejects the whole bundle with ``ImportFormatInvalid``.
    """
    if not isinstance(payload, dict):
        raise ImportFormatInvalid("Snapshot must be a JSON object.")

    raw_states = payload.get(STATES_FIELD)
    raw_history = payload.get(HISTORY_FIELD)
    if raw_states is None:
        raw_states = {}
    if raw_history is None:
        raw_history = []
    if not isinstance(raw_states, dict):
        raise ImportFormatInvalid(f"'{STATES_FIELD}' must be an object.")
    if not isinstance(raw_history, list):
        raise ImportFormatInvalid(f"'{HISTORY_FIELD}' must be a list.")

    states: Dict[ItemKey, ItemSchedulingState] = {}
    for raw_key, raw_state in raw_states.items():
        try:
            key = ItemKey.parse(raw_key)
        except ValueError as exc:
            raise ImportFormatInvalid(str(exc)) from exc
        states[key] = _decode_state(raw_key, raw_state)

    history = [_decode_entry(index, entry) for index, entry in enumerate(raw_history, start=1)]
    extra = {name: value for name, value in payload.items() if name not in (STATES_FIELD, HISTORY_FIELD)}
    return Snapshot(states=states, history=history, extra=extra)


def dumps(
    states: Mapping[ItemKey, ItemSchedulingState],
    history: Sequence[ReviewLogEntry],
    extra: Optional[Mapping[str, Any]] = None,
) -> str:
    return json.dumps(export_snapshot(states, history, extra), ensure_ascii=False, indent=2)


def loads(text: str) -> Snapshot:
    if not text.strip():
        raise ImportFormatInvalid("Snapshot file is empty.")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ImportFormatInvalid("Snapshot is not valid JSON.") from exc
    return import_snapshot(payload)
