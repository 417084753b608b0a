"""
Intention Service - reusable intentions, their trip links and rating analytics
"""
import logging
import math
from datetime import datetime
from typing import Callable, Dict, List, Optional

from tripjournal.core.clock import Clock, SystemClock
from tripjournal.core.exceptions import NotFoundError, UsageCapExceededError
from tripjournal.core.repository import CollectionRepository
from tripjournal.core.store import KeyValueStore
from tripjournal.core.validation import validate_optional_text, validate_text_length
from tripjournal.schemas.base import new_id
from tripjournal.schemas.intention import Intention, TripIntentionLink
from tripjournal.schemas.trip import Note, Rating, RatingType, with_rating
from tripjournal.services.follow_up import FollowUpStatus, follow_up_statuses

logger = logging.getLogger(__name__)

INTENTIONS_KEY = "@intentions_data"
DEFAULT_USAGE_CAP = 3


class IntentionService:
    """Manages intention CRUD, trip links and cross-trip rating aggregation"""

    def __init__(
        self,
        store: KeyValueStore,
        clock: Optional[Clock] = None,
        usage_cap: int = DEFAULT_USAGE_CAP,
        key: str = INTENTIONS_KEY,
    ):
        self.repository: CollectionRepository[Intention] = CollectionRepository(store, key, Intention)
        self.clock = clock or SystemClock()
        self.usage_cap = usage_cap

    async def load(self) -> List[Intention]:
        intentions = await self.repository.load()
        for intention in intentions:
            if intention.usage_count > self.usage_cap:
                logger.warning(
                    "Stored intention exceeds the usage cap",
                    extra={
                        "intention_id": intention.id,
                        "usage_count": intention.usage_count,
                        "usage_cap": self.usage_cap,
                    },
                )
        return intentions

    async def flush(self) -> None:
        await self.repository.flush()

    def list_intentions(self) -> List[Intention]:
        return self.repository.all()

    def find_by_id(self, intention_id: str) -> Optional[Intention]:
        return self.repository.find(lambda intention: intention.id == intention_id)

    def get(self, intention_id: str) -> Intention:
        """
        Get an intention by ID

        Raises:
            NotFoundError: If no intention has this ID
        """
        intention = self.find_by_id(intention_id)
        if intention is None:
            raise NotFoundError("Intention", intention_id)
        return intention

    async def add_intention(self, text: str, description: Optional[str] = None) -> str:
        """
        Create a new intention with no trip links

        Returns:
            The new intention's ID
        """
        intention = Intention(
            id=new_id(),
            text=validate_text_length(text, "Intention text"),
            description=validate_optional_text(description, "Intention description"),
            created_at=self.clock.now(),
        )
        await self.repository.mutate(lambda intentions: [*intentions, intention])
        logger.info("Intention created", extra={"intention_id": intention.id})
        return intention.id

    async def update_intention(
        self, intention_id: str, text: Optional[str] = None, description: Optional[str] = None
    ) -> Intention:
        """Edit the text and/or description; links and ratings are kept."""
        changes = {}
        if text is not None:
            changes["text"] = validate_text_length(text, "Intention text")
        if description is not None:
            changes["description"] = validate_optional_text(description, "Intention description")
        return await self._update(intention_id, lambda intention: intention.model_copy(update=changes))

    async def delete_intention(self, intention_id: str) -> None:
        def remove(intentions: List[Intention]) -> List[Intention]:
            remaining = [i for i in intentions if i.id != intention_id]
            if len(remaining) == len(intentions):
                raise NotFoundError("Intention", intention_id)
            return remaining

        await self.repository.mutate(remove)
        logger.info("Intention deleted", extra={"intention_id": intention_id})

    async def attach_to_trip(
        self,
        intention_id: str,
        trip_id: str,
        trip_date: datetime,
        trip_title: Optional[str] = None,
    ) -> Intention:
        """
        Link an intention to a trip

        Linking the same trip twice is a no-op.

        Raises:
            NotFoundError: If the intention is unknown
            UsageCapExceededError: If the intention is already linked to usage_cap trips
        """
        def attach(intention: Intention) -> Intention:
            if intention.link(trip_id) is not None:
                return intention
            if intention.usage_count >= self.usage_cap:
                raise UsageCapExceededError(intention_id, self.usage_cap)
            link = TripIntentionLink(trip_id=trip_id, trip_title=trip_title, trip_date=trip_date)
            return intention.model_copy(update={"trips": [*intention.trips, link]})

        intention = await self._update(intention_id, attach)
        logger.info(
            "Intention attached to trip",
            extra={"intention_id": intention_id, "trip_id": trip_id, "usage_count": intention.usage_count},
        )
        return intention

    async def detach_from_trip(self, intention_id: str, trip_id: str) -> Intention:
        def detach(intention: Intention) -> Intention:
            _require_link(intention, trip_id)
            trips = [link for link in intention.trips if link.trip_id != trip_id]
            return intention.model_copy(update={"trips": trips})

        return await self._update(intention_id, detach)

    async def upsert_rating(self, intention_id: str, trip_id: str, rating: Rating) -> Intention:
        """Store rating on the trip link, replacing any earlier rating of the same type."""
        return await self._update_link(
            intention_id,
            trip_id,
            lambda link: link.model_copy(update={"ratings": with_rating(link.ratings, rating)}),
        )

    async def add_note(self, intention_id: str, trip_id: str, note: Note) -> Intention:
        return await self._update_link(
            intention_id,
            trip_id,
            lambda link: link.model_copy(update={"notes": [*link.notes, note]}),
        )

    def has_link(self, intention_id: str, trip_id: str) -> bool:
        intention = self.find_by_id(intention_id)
        return intention is not None and intention.link(trip_id) is not None

    def usage_count(self, intention_id: str) -> int:
        return self.get(intention_id).usage_count

    def average_rating(self, intention_id: str, rating_type: RatingType) -> Optional[float]:
        """
        Mean of this rating type across every trip the intention is linked to

        Unrated (None) values are skipped. Returns None when nothing is rated,
        else the mean rounded to one decimal place.
        """
        rating_type = RatingType(rating_type)
        values = []
        for link in self.get(intention_id).trips:
            rating = link.rating(rating_type)
            if rating is not None and rating.value is not None:
                values.append(rating.value)

        if not values:
            return None
        # Half-up rounding, so 2.25 reports as 2.3
        return math.floor(sum(values) / len(values) * 10 + 0.5) / 10

    def rating_summary(self, intention_id: str) -> Dict[RatingType, Optional[float]]:
        return {rating_type: self.average_rating(intention_id, rating_type) for rating_type in RatingType}

    def intentions_for_trip(self, trip_id: str) -> List[Intention]:
        return [i for i in self.repository.all() if i.link(trip_id) is not None]

    def available_intentions(self) -> List[Intention]:
        """Intentions that can still be linked to a new trip"""
        return [i for i in self.repository.all() if i.usage_count < self.usage_cap]

    def follow_up_statuses(
        self, intention_id: str, trip_id: str, end_time: datetime
    ) -> Dict[RatingType, FollowUpStatus]:
        link = _require_link(self.get(intention_id), trip_id)
        return follow_up_statuses(end_time, self.clock.now(), link.ratings)

    async def _update(self, intention_id: str, fn: Callable[[Intention], Intention]) -> Intention:
        updated: List[Intention] = []

        def apply(intentions: List[Intention]) -> List[Intention]:
            result = []
            for intention in intentions:
                if intention.id == intention_id:
                    intention = fn(intention)
                    updated.append(intention)
                result.append(intention)
            if not updated:
                raise NotFoundError("Intention", intention_id)
            return result

        await self.repository.mutate(apply)
        return updated[0]

    async def _update_link(
        self, intention_id: str, trip_id: str, fn: Callable[[TripIntentionLink], TripIntentionLink]
    ) -> Intention:
        def apply(intention: Intention) -> Intention:
            _require_link(intention, trip_id)
            trips = [fn(link) if link.trip_id == trip_id else link for link in intention.trips]
            return intention.model_copy(update={"trips": trips})

        return await self._update(intention_id, apply)


def _require_link(intention: Intention, trip_id: str) -> TripIntentionLink:
    link = intention.link(trip_id)
    if link is None:
        raise NotFoundError("Trip link", f"{intention.id}/{trip_id}")
    return link
