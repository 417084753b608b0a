"""
Trip Session - owns the single in-progress trip and its lifecycle
"""
import asyncio
import logging
from typing import AsyncIterator, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from tripjournal.core.clock import Clock, SystemClock
from tripjournal.core.exceptions import InvalidTransitionError, PersistenceFailureError, ValidationError
from tripjournal.core.store import KeyValueStore
from tripjournal.core.validation import NOTE_MAX_LENGTH, validate_text_length
from tripjournal.schemas.base import new_id
from tripjournal.schemas.trip import (
    Dose,
    IntentionRecord,
    MentalSet,
    Note,
    NoteType,
    Phase,
    SafetyCheck,
    TripDraft,
    TripHistoryEntry,
    TripSitterContact,
)
from tripjournal.services.phase_timeline import PhaseProgress, PhaseTimeline

logger = logging.getLogger(__name__)

DRAFT_KEY = "@trip_data"


class TripSession:
    """
    Lifecycle state machine for the live trip draft.

    NoActiveTrip -> come-up -> peak -> comedown -> (end) -> NoActiveTrip.
    Only start_trip() and update_phase() write current_phase; progress() is a
    read-only derivation from the start time and the clock.
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Optional[Clock] = None,
        timeline: Optional[PhaseTimeline] = None,
        key: str = DRAFT_KEY,
        tick_interval: float = 1.0,
    ):
        self.store = store
        self.tick_interval = tick_interval
        self.clock = clock or SystemClock()
        self.timeline = timeline or PhaseTimeline()
        self.key = key
        self._draft = TripDraft()
        self._lock = asyncio.Lock()

    @property
    def draft(self) -> TripDraft:
        return self._draft

    def is_active(self) -> bool:
        return self._draft.is_active()

    async def load(self) -> TripDraft:
        """
        Restore a draft saved before a restart, so an interrupted session resumes.

        A malformed blob is logged and replaced by an empty draft.
        """
        async with self._lock:
            raw = await self.store.get(self.key)
            if raw is None:
                self._draft = TripDraft()
            else:
                try:
                    self._draft = TripDraft.model_validate(raw)
                except (PydanticValidationError, ValidationError):
                    logger.error(f"Discarding malformed trip draft under {self.key}", exc_info=True)
                    self._draft = TripDraft()
            if self._draft.is_active():
                logger.info("Resumed active trip", extra={"start_time": self._draft.start_time.isoformat()})
            return self._draft

    # Setup mutations: whole-field replacement, no rules beyond type shape

    async def update_dose(self, dose: Union[Dose, dict, None]) -> TripDraft:
        return await self._replace(dose=None if dose is None else Dose.model_validate(dose))

    async def update_set(self, mental_set: Union[MentalSet, dict, None]) -> TripDraft:
        return await self._replace(mental_set=None if mental_set is None else MentalSet.model_validate(mental_set))

    async def update_setting(self, setting: str) -> TripDraft:
        return await self._replace(setting=setting or "")

    async def update_safety(self, safety: Union[SafetyCheck, dict]) -> TripDraft:
        return await self._replace(safety=SafetyCheck.model_validate(safety))

    async def update_trip_sitter(self, sitter: Union[TripSitterContact, dict, None]) -> TripDraft:
        return await self._replace(trip_sitter=None if sitter is None else TripSitterContact.model_validate(sitter))

    async def update_intentions(self, intentions: List[Union[IntentionRecord, dict]]) -> TripDraft:
        return await self._replace(intentions=[IntentionRecord.model_validate(i) for i in intentions])

    async def add_general_note(self, content: str) -> Note:
        """Record a note taken during the active trip."""
        content = validate_text_length(content, "Note content", max_length=NOTE_MAX_LENGTH)
        note = Note(id=new_id(), content=content, timestamp=self.clock.now(), type=NoteType.DURING)
        async with self._lock:
            self._require_active("add a note")
            self._draft = self._draft.model_copy(update={"general_notes": [*self._draft.general_notes, note]})
            await self._save()
        return note

    # Lifecycle transitions

    async def start_trip(self) -> TripDraft:
        """
        Begin the session: start_time = now, current_phase = come-up.

        Raises:
            InvalidTransitionError: If a trip is already active
        """
        async with self._lock:
            if self._draft.is_active():
                raise InvalidTransitionError(
                    "A trip is already active",
                    details={"start_time": self._draft.start_time.isoformat()},
                )
            self._draft = self._draft.model_copy(
                update={"start_time": self.clock.now(), "current_phase": Phase.COME_UP}
            )
            logger.info("Trip started", extra={"start_time": self._draft.start_time.isoformat()})
            await self._save()
            return self._draft

    async def update_phase(self, phase: Union[Phase, str]) -> TripDraft:
        phase = Phase(phase)
        async with self._lock:
            self._require_active("change phase")
            self._draft = self._draft.model_copy(update={"current_phase": phase})
            logger.info("Phase updated", extra={"phase": phase.value})
            await self._save()
            return self._draft

    def snapshot(self, trip_id: Optional[str] = None) -> TripHistoryEntry:
        """
        Freeze the active draft into a history entry ending now.

        Callers sequence: snapshot, append to history, then end_trip().
        """
        self._require_active("snapshot")
        draft = self._draft
        return TripHistoryEntry(
            id=trip_id or new_id(),
            start_time=draft.start_time,
            end_time=self.clock.now(),
            dose=draft.dose,
            mental_set=draft.mental_set,
            setting=draft.setting,
            safety=draft.safety,
            trip_sitter=draft.trip_sitter,
            intentions=list(draft.intentions),
            general_notes=list(draft.general_notes),
            post_trip_rated=draft.post_trip_rated,
        )

    async def flush(self) -> None:
        """Re-write the in-memory draft, e.g. after a failed write."""
        async with self._lock:
            await self._save()

    async def end_trip(self) -> TripDraft:
        """Reset the draft to its empty default. Does not write history."""
        async with self._lock:
            was_active = self._draft.is_active()
            self._draft = TripDraft()
            if was_active:
                logger.info("Trip ended")
            await self._save()
            return self._draft

    # Derived values

    def progress(self) -> Optional[PhaseProgress]:
        """Current phase/timer derivation, or None when no trip is active."""
        draft = self._draft
        if not draft.is_active():
            return None
        return self.timeline.progress(draft.start_time, draft.current_phase, self.clock.now())

    def is_ending_early(self) -> bool:
        progress = self.progress()
        return progress is not None and self.timeline.is_ending_early(progress.elapsed_minutes)

    async def ticks(self, interval: Optional[float] = None) -> AsyncIterator[PhaseProgress]:
        """Yield a fresh derivation every interval seconds (default tick_interval) while the trip stays active."""
        if interval is None:
            interval = self.tick_interval
        while True:
            progress = self.progress()
            if progress is None:
                return
            yield progress
            await asyncio.sleep(interval)

    def _require_active(self, action: str) -> None:
        if not self._draft.is_active():
            raise InvalidTransitionError(f"Cannot {action}: no trip is active")

    async def _replace(self, **fields) -> TripDraft:
        async with self._lock:
            self._draft = self._draft.model_copy(update=fields)
            await self._save()
            return self._draft

    async def _save(self) -> None:
        try:
            await self.store.set(self.key, self._draft.to_json_dict())
        except PersistenceFailureError:
            logger.warning("Saving trip draft failed, keeping in-memory state", exc_info=True)
            raise
