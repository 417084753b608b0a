"""
Trip History Service - system of record for completed trips
"""
import logging
from typing import Callable, List, Optional

from tripjournal.core.exceptions import InvalidTransitionError, NotFoundError
from tripjournal.core.repository import CollectionRepository
from tripjournal.core.store import KeyValueStore
from tripjournal.schemas.trip import Note, Rating, TripHistoryEntry, with_rating

logger = logging.getLogger(__name__)

HISTORY_KEY = "@trip_history"


class TripHistoryLog:
    """
    Completed trips, most recent first.

    Entries are frozen; every change builds a replacement entry and writes the
    whole collection back through the repository.
    """

    def __init__(self, store: KeyValueStore, key: str = HISTORY_KEY):
        self.repository: CollectionRepository[TripHistoryEntry] = CollectionRepository(
            store, key, TripHistoryEntry
        )

    async def load(self) -> List[TripHistoryEntry]:
        return await self.repository.load()

    async def flush(self) -> None:
        await self.repository.flush()

    def entries(self) -> List[TripHistoryEntry]:
        return self.repository.all()

    def most_recent(self) -> Optional[TripHistoryEntry]:
        entries = self.repository.all()
        return entries[0] if entries else None

    def find_by_id(self, trip_id: str) -> Optional[TripHistoryEntry]:
        return self.repository.find(lambda entry: entry.id == trip_id)

    def get(self, trip_id: str) -> TripHistoryEntry:
        """
        Get a trip by ID

        Raises:
            NotFoundError: If no trip has this ID
        """
        entry = self.find_by_id(trip_id)
        if entry is None:
            raise NotFoundError("Trip", trip_id)
        return entry

    async def append(self, entry: TripHistoryEntry) -> TripHistoryEntry:
        """
        Insert a newly completed trip at the head of the log

        Raises:
            InvalidTransitionError: If a trip with the same ID was already recorded
        """
        def prepend(entries: List[TripHistoryEntry]) -> List[TripHistoryEntry]:
            if any(existing.id == entry.id for existing in entries):
                raise InvalidTransitionError(
                    f"Trip '{entry.id}' is already in history", details={"trip_id": entry.id}
                )
            return [entry, *entries]

        await self.repository.mutate(prepend)
        logger.info("Trip recorded in history", extra={"trip_id": entry.id})
        return entry

    async def replace_all(self, entries: List[TripHistoryEntry]) -> List[TripHistoryEntry]:
        return await self.repository.replace_all(entries)

    async def update_entry(
        self, trip_id: str, fn: Callable[[TripHistoryEntry], TripHistoryEntry]
    ) -> TripHistoryEntry:
        """Find one entry, map it through fn and write the collection back."""
        updated: List[TripHistoryEntry] = []

        def apply(entries: List[TripHistoryEntry]) -> List[TripHistoryEntry]:
            result = []
            for entry in entries:
                if entry.id == trip_id:
                    entry = fn(entry)
                    updated.append(entry)
                result.append(entry)
            if not updated:
                raise NotFoundError("Trip", trip_id)
            return result

        await self.repository.mutate(apply)
        return updated[0]

    async def delete_entry(self, trip_id: str) -> None:
        def remove(entries: List[TripHistoryEntry]) -> List[TripHistoryEntry]:
            remaining = [entry for entry in entries if entry.id != trip_id]
            if len(remaining) == len(entries):
                raise NotFoundError("Trip", trip_id)
            return remaining

        await self.repository.mutate(remove)
        logger.info("Trip deleted from history", extra={"trip_id": trip_id})

    async def mark_post_trip_rated(self, trip_id: str, rated: bool = True) -> TripHistoryEntry:
        return await self.update_entry(
            trip_id, lambda entry: entry.model_copy(update={"post_trip_rated": rated})
        )

    async def record_intention_rating(self, trip_id: str, intention_id: str, rating: Rating) -> TripHistoryEntry:
        """Upsert a rating by type on the intention as recorded on this trip."""
        def rate(entry: TripHistoryEntry) -> TripHistoryEntry:
            return _map_intention(
                entry,
                intention_id,
                lambda record: record.model_copy(update={"ratings": with_rating(record.ratings, rating)}),
            )

        return await self.update_entry(trip_id, rate)

    async def add_intention_note(self, trip_id: str, intention_id: str, note: Note) -> TripHistoryEntry:
        def annotate(entry: TripHistoryEntry) -> TripHistoryEntry:
            return _map_intention(
                entry,
                intention_id,
                lambda record: record.model_copy(update={"notes": [*record.notes, note]}),
            )

        return await self.update_entry(trip_id, annotate)

    async def add_general_note(self, trip_id: str, note: Note) -> TripHistoryEntry:
        return await self.update_entry(
            trip_id,
            lambda entry: entry.model_copy(update={"general_notes": [*entry.general_notes, note]}),
        )


def _map_intention(entry: TripHistoryEntry, intention_id: str, fn) -> TripHistoryEntry:
    if entry.intention(intention_id) is None:
        raise NotFoundError("Intention on trip", intention_id)
    intentions = [fn(record) if record.id == intention_id else record for record in entry.intentions]
    return entry.model_copy(update={"intentions": intentions})
