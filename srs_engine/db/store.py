"""SQLAlchemy-backed implementation of the review store."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from srs_engine.errors import StoreUnavailable
from srs_engine.srs.models import (
    CardStatus,
    ItemKey,
    ItemSchedulingState,
    Rating,
    ReviewLogEntry,
)

from . import ItemStateRecord, ReviewLogRecord


LOGGER = logging.getLogger(__name__)


def _as_utc(moment: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _state_from_record(record: ItemStateRecord) -> tuple[ItemKey, ItemSchedulingState]:
    key = ItemKey(record.collection_name, record.front_text)
    state = ItemSchedulingState(
        status=CardStatus(record.status),
        due_date=record.due_date,
        interval=record.interval,
        ease_factor=record.ease_factor,
        lapses=record.lapses,
        last_rating=Rating(record.last_rating) if record.last_rating else None,
        consecutive_easy_streak=record.consecutive_easy_streak,
    )
    return key, state


def _apply_state(record: ItemStateRecord, state: ItemSchedulingState) -> None:
    record.status = state.status.value
    record.due_date = state.due_date
    record.interval = state.interval
    record.ease_factor = state.ease_factor
    record.lapses = state.lapses
    record.last_rating = state.last_rating.value if state.last_rating else None
    record.consecutive_easy_streak = state.consecutive_easy_streak


def _new_state_record(key: ItemKey, state: ItemSchedulingState) -> ItemStateRecord:
    record = ItemStateRecord(collection_name=key.collection_name, front_text=key.front_text)
    _apply_state(record, state)
    return record


def _log_record(entry: ReviewLogEntry) -> ReviewLogRecord:
    return ReviewLogRecord(
        collection_name=entry.item_key.collection_name,
        front_text=entry.item_key.front_text,
        rating=entry.rating.value,
        reviewed_at=_as_utc(entry.timestamp),
    )


def _entry_from_record(record: ReviewLogRecord) -> ReviewLogEntry:
    return ReviewLogEntry(
        timestamp=_as_utc(record.reviewed_at),
        item_key=ItemKey(record.collection_name, record.front_text),
        rating=Rating(record.rating),
    )


async def _find_state_record(session: AsyncSession, key: ItemKey) -> Optional[ItemStateRecord]:
    stmt = select(ItemStateRecord).where(
        ItemStateRecord.collection_name == key.collection_name,
        ItemStateRecord.front_text == key.front_text,
    )
    result = await session.execute(stmt)
    return result.scalars().first()


class SqlReviewStore:
    """Stores item states and the review log in a relational database.

    Every public method runs in its own transaction, so a failed write never
    leaves a half-applied table behind.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self, action: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as exc:
            LOGGER.exception("Review store failed to %s.", action)
            raise StoreUnavailable(f"Review store failed to {action}.") from exc

    async def load_states(self) -> Dict[ItemKey, ItemSchedulingState]:
        async with self._transaction("load item states") as session:
            result = await session.execute(select(ItemStateRecord).order_by(ItemStateRecord.id))
            return dict(_state_from_record(record) for record in result.scalars())

    async def save_states(self, states: Mapping[ItemKey, ItemSchedulingState]) -> None:
        async with self._transaction("save item states") as session:
            await session.execute(delete(ItemStateRecord))
            session.add_all(_new_state_record(key, state) for key, state in states.items())
        LOGGER.debug("Replaced item state table with %d row(s).", len(states))

    async def load_history(self) -> List[ReviewLogEntry]:
        async with self._transaction("load review history") as session:
            result = await session.execute(select(ReviewLogRecord).order_by(ReviewLogRecord.id))
            return [_entry_from_record(record) for record in result.scalars()]

    async def save_history(self, history: Sequence[ReviewLogEntry]) -> None:
        async with self._transaction("save review history") as session:
            await session.execute(delete(ReviewLogRecord))
            session.add_all(_log_record(entry) for entry in history)
        LOGGER.debug("Replaced review history with %d entr(ies).", len(history))

    async def record_review(
        self,
        key: ItemKey,
        state: ItemSchedulingState,
        entry: ReviewLogEntry,
    ) -> None:
        """Upsert the item's state and append the log entry in one transaction."""
        async with self._transaction("record review") as session:
            record = await _find_state_record(session, key)
            if record is None:
                session.add(_new_state_record(key, state))
            else:
                _apply_state(record, state)
            session.add(_log_record(entry))

    async def replace_all(
        self,
        states: Mapping[ItemKey, ItemSchedulingState],
        history: Sequence[ReviewLogEntry],
    ) -> None:
        async with self._transaction("replace review data") as session:
            await session.execute(delete(ItemStateRecord))
            await session.execute(delete(ReviewLogRecord))
            session.add_all(_new_state_record(key, state) for key, state in states.items())
            session.add_all(_log_record(entry) for entry in history)
        LOGGER.info("Replaced review data: %d state(s), %d history entr(ies).", len(states), len(history))

    async def delete_state(self, key: ItemKey) -> bool:
        async with self._transaction("delete item state") as session:
            record = await _find_state_record(session, key)
            if record is None:
                return False
            await session.delete(record)
            return True

    async def rename_state(self, old_key: ItemKey, new_key: ItemKey) -> bool:
        """Move a state to a new key, replacing any state already stored there."""
        async with self._transaction("rename item state") as session:
            record = await _find_state_record(session, old_key)
            if record is None:
                return False
            if old_key == new_key:
                return True
            existing = await _find_state_record(session, new_key)
            if existing is not None:
                await session.delete(existing)
                await session.flush()
            record.collection_name = new_key.collection_name
            record.front_text = new_key.front_text
            await session.flush()
            return True
