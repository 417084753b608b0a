"""
Trip Flow - sequences the lifecycle, history log and intention analytics

Ending a trip freezes the draft into history before the draft is reset.
Ratings entered after a trip are written both to the history entry and to
the intention's rating ledger.
"""
import logging
from typing import Dict, List, Mapping, Optional

from tripjournal.core.clock import Clock
from tripjournal.core.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    PersistenceFailureError,
    UsageCapExceededError,
)
from tripjournal.core.validation import NOTE_MAX_LENGTH, validate_rating_value, validate_text_length
from tripjournal.schemas.base import new_id
from tripjournal.schemas.trip import Note, Rating, RatingType, TripHistoryEntry
from tripjournal.services.follow_up import FollowUpState, FollowUpStatus, classify_note, follow_up_statuses
from tripjournal.services.intention_service import IntentionService
from tripjournal.services.trip_history_service import TripHistoryLog
from tripjournal.services.trip_session import TripSession

logger = logging.getLogger(__name__)


class TripFlow:
    """Coordinates the session, the history log and the intention engine"""

    def __init__(
        self,
        session: TripSession,
        history: TripHistoryLog,
        intentions: IntentionService,
        clock: Optional[Clock] = None,
    ):
        self.session = session
        self.history = history
        self.intentions = intentions
        self.clock = clock or session.clock

    async def finish_trip(
        self, save: bool = True, trip_id: Optional[str] = None, trip_title: Optional[str] = None
    ) -> Optional[TripHistoryEntry]:
        """
        End the active trip

        With save, the draft is snapshotted and prepended to history, and its
        intentions are linked to the new trip before the draft is reset.
        Without save, the draft is discarded.

        Returns:
            The new history entry, or None when discarded

        Raises:
            InvalidTransitionError: If no trip is active
            PersistenceFailureError: If a write failed. The trip is still
                finished in memory; call flush() to retry the writes.
        """
        if not self.session.is_active():
            raise InvalidTransitionError("Cannot end trip: no trip is active")

        if not save:
            await self.session.end_trip()
            logger.info("Trip discarded")
            return None

        entry = self.session.snapshot(trip_id)
        # Every step runs even when a write fails, so the trip ends in memory
        # exactly once and flush() can retry the writes.
        failures: List[PersistenceFailureError] = []
        try:
            await self.history.append(entry)
        except PersistenceFailureError as e:
            failures.append(e)
        failures.extend(await self._link_intentions(entry, trip_title))
        try:
            await self.session.end_trip()
        except PersistenceFailureError as e:
            failures.append(e)

        if failures:
            logger.warning(
                "Trip finished with unsaved changes",
                extra={"trip_id": entry.id, "failed_keys": [f.details["key"] for f in failures]},
            )
            raise failures[0]
        return entry

    async def flush(self) -> None:
        """Write the current in-memory session, history and intentions back to the store."""
        await self.history.flush()
        await self.intentions.flush()
        await self.session.flush()

    async def _link_intentions(
        self, entry: TripHistoryEntry, trip_title: Optional[str]
    ) -> List[PersistenceFailureError]:
        failures = []
        for record in entry.intentions:
            if self.intentions.find_by_id(record.id) is None:
                continue
            try:
                await self.intentions.attach_to_trip(record.id, entry.id, entry.start_time, trip_title)
            except UsageCapExceededError as e:
                # The trip itself is already recorded; only the analytics link is skipped.
                logger.warning(e.message, extra={"trip_id": entry.id})
            except PersistenceFailureError as e:
                failures.append(e)
        return failures

    async def submit_post_trip_ratings(
        self, trip_id: str, values: Mapping[str, Optional[int]]
    ) -> TripHistoryEntry:
        """
        Record post-trip ratings for the intentions of a completed trip

        Unrated (None) values are skipped. The entry is marked post-trip rated.
        """
        entry = await self._write_ratings(trip_id, RatingType.POST_TRIP, values)
        return await self.history.mark_post_trip_rated(entry.id, True)

    async def rate_later(self, trip_id: str) -> TripHistoryEntry:
        return await self.history.mark_post_trip_rated(trip_id, False)

    async def submit_follow_up_ratings(
        self, trip_id: str, rating_type: RatingType, values: Mapping[str, Optional[int]]
    ) -> TripHistoryEntry:
        """
        Record 7/14/30 day follow-up ratings

        Raises:
            InvalidTransitionError: If the follow-up slot has not opened yet
        """
        rating_type = RatingType(rating_type)
        if rating_type.threshold_days is None:
            raise InvalidTransitionError(f"{rating_type.value} is not a follow-up rating")

        entry = self.history.get(trip_id)
        for intention_id in values:
            record = entry.intention(intention_id)
            if record is None:
                continue
            status = follow_up_statuses(entry.end_time, self.clock.now(), record.ratings)[rating_type]
            if status.state == FollowUpState.LOCKED:
                raise InvalidTransitionError(
                    f"{rating_type.value} follow-up opens in {status.days_remaining} days",
                    details={"trip_id": trip_id, "days_remaining": status.days_remaining},
                )
        return await self._write_ratings(trip_id, rating_type, values)

    def follow_up_statuses(self, trip_id: str, intention_id: str) -> Dict[RatingType, FollowUpStatus]:
        entry = self.history.get(trip_id)
        record = entry.intention(intention_id)
        if record is None:
            raise NotFoundError("Intention on trip", intention_id)
        return follow_up_statuses(entry.end_time, self.clock.now(), record.ratings)

    async def add_trip_note(
        self, trip_id: str, content: str, intention_id: Optional[str] = None
    ) -> Note:
        """
        Add a note to a completed trip, typed by when it is written

        Intention notes go to both the history entry and the intention's trip link.
        """
        content = validate_text_length(content, "Note content", max_length=NOTE_MAX_LENGTH)
        entry = self.history.get(trip_id)
        now = self.clock.now()
        note_type, followup_day = classify_note(entry.start_time, entry.end_time, now)
        note = Note(id=new_id(), content=content, timestamp=now, type=note_type, followup_day=followup_day)

        if intention_id is None:
            await self.history.add_general_note(trip_id, note)
            return note

        await self.history.add_intention_note(trip_id, intention_id, note)
        if self.intentions.has_link(intention_id, trip_id):
            await self.intentions.add_note(intention_id, trip_id, note)
        return note

    async def _write_ratings(
        self, trip_id: str, rating_type: RatingType, values: Mapping[str, Optional[int]]
    ) -> TripHistoryEntry:
        entry = self.history.get(trip_id)
        now = self.clock.now()

        ratings: Dict[str, Rating] = {}
        for intention_id, value in values.items():
            if entry.intention(intention_id) is None:
                raise NotFoundError("Intention on trip", intention_id)
            value = validate_rating_value(value)
            if value is None:
                continue
            ratings[intention_id] = Rating(type=rating_type, value=value, timestamp=now)

        for intention_id, rating in ratings.items():
            entry = await self.history.record_intention_rating(trip_id, intention_id, rating)
            if self.intentions.has_link(intention_id, trip_id):
                await self.intentions.upsert_rating(intention_id, trip_id, rating)
            else:
                logger.info(
                    "Rating kept on history only, intention has no link to this trip",
                    extra={"intention_id": intention_id, "trip_id": trip_id},
                )

        logger.info(
            "Ratings recorded",
            extra={"trip_id": trip_id, "rating_type": rating_type.value, "count": len(ratings)},
        )
        return entry
