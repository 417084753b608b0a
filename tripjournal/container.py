"""
Service container: builds and loads every component from settings.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from tripjournal.config.settings import Settings, get_settings
from tripjournal.core.clock import Clock, SystemClock
from tripjournal.core.logging import configure_logging
from tripjournal.core.store import KeyValueStore, create_store
from tripjournal.services.intention_service import IntentionService
from tripjournal.services.phase_timeline import PhaseTimeline
from tripjournal.services.trip_flow import TripFlow
from tripjournal.services.trip_history_service import TripHistoryLog
from tripjournal.services.trip_session import TripSession
from tripjournal.services.trip_sitter_service import TripSitterRegistry

logger = logging.getLogger(__name__)


@dataclass
class TripJournal:
    store: KeyValueStore
    session: TripSession
    history: TripHistoryLog
    intentions: IntentionService
    sitters: TripSitterRegistry
    flow: TripFlow

    async def load(self) -> None:
        """Restore every collection from the store."""
        await self.sitters.load()
        await self.intentions.load()
        await self.history.load()
        await self.session.load()

    async def flush(self) -> None:
        """Retry writing every in-memory collection after a persistence failure."""
        await self.sitters.flush()
        await self.flow.flush()

    async def close(self) -> None:
        await self.store.close()


def build_journal(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    clock: Optional[Clock] = None,
) -> TripJournal:
    settings = settings or get_settings()
    store = store or create_store(settings.store)
    clock = clock or SystemClock()
    key = settings.store.key

    session = TripSession(
        store,
        clock=clock,
        timeline=PhaseTimeline.from_settings(settings.session),
        key=key("trip_data"),
        tick_interval=settings.session.tick_interval_seconds,
    )
    history = TripHistoryLog(store, key=key("trip_history"))
    intentions = IntentionService(
        store, clock=clock, usage_cap=settings.intentions.usage_cap, key=key("intentions_data")
    )
    sitters = TripSitterRegistry(store, key=key("trip_sitters"))
    flow = TripFlow(session, history, intentions, clock=clock)
    return TripJournal(store, session, history, intentions, sitters, flow)


async def create_journal(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    clock: Optional[Clock] = None,
) -> TripJournal:
    """Configure logging, build the components and load persisted state."""
    settings = settings or get_settings()
    configure_logging(settings.effective_log_level(), settings.log_format)
    journal = build_journal(settings, store, clock)
    await journal.load()
    logger.info(
        f"{settings.app_name} v{settings.app_version} ready",
        extra={"environment": settings.environment.value, "store_backend": settings.store.backend.value},
    )
    return journal
