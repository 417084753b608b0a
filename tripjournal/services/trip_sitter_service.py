"""
Trip sitter registry: emergency contacts available during setup
"""
import logging
from typing import List, Optional, Union

from tripjournal.core.exceptions import NotFoundError
from tripjournal.core.repository import CollectionRepository
from tripjournal.core.store import KeyValueStore
from tripjournal.core.validation import validate_phone_number, validate_text_length
from tripjournal.schemas.base import new_id
from tripjournal.schemas.trip_sitter import TripSitter, TripSitterCreate, TripSitterUpdate

logger = logging.getLogger(__name__)

SITTERS_KEY = "@trip_sitters"


class TripSitterRegistry:
    """Flat CRUD list of trip sitters"""

    def __init__(self, store: KeyValueStore, key: str = SITTERS_KEY):
        self.repository: CollectionRepository[TripSitter] = CollectionRepository(store, key, TripSitter)

    async def load(self) -> List[TripSitter]:
        return await self.repository.load()

    async def flush(self) -> None:
        await self.repository.flush()

    def list(self) -> List[TripSitter]:
        return self.repository.all()

    def urgent_contacts(self) -> List[TripSitter]:
        return [sitter for sitter in self.repository.all() if sitter.is_urgent]

    def get(self, sitter_id: str) -> TripSitter:
        sitter = self.repository.find(lambda s: s.id == sitter_id)
        if sitter is None:
            raise NotFoundError("Trip sitter", sitter_id)
        return sitter

    async def add(self, data: Union[TripSitterCreate, dict]) -> TripSitter:
        data = TripSitterCreate.model_validate(data)
        sitter = TripSitter(
            id=new_id(),
            name=validate_text_length(data.name, "Name", max_length=100),
            phone=validate_phone_number(data.phone),
            relationship=data.relationship.strip(),
            is_urgent=data.is_urgent,
        )
        await self.repository.mutate(lambda sitters: [*sitters, sitter])
        logger.info("Trip sitter added", extra={"sitter_id": sitter.id})
        return sitter

    async def update(self, sitter_id: str, data: Union[TripSitterUpdate, dict]) -> TripSitter:
        data = TripSitterUpdate.model_validate(data)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "name" in changes:
            changes["name"] = validate_text_length(changes["name"], "Name", max_length=100)
        if "phone" in changes:
            changes["phone"] = validate_phone_number(changes["phone"])
        if "relationship" in changes:
            changes["relationship"] = changes["relationship"].strip()

        updated: List[TripSitter] = []

        def apply(sitters: List[TripSitter]) -> List[TripSitter]:
            result = []
            for sitter in sitters:
                if sitter.id == sitter_id:
                    sitter = sitter.model_copy(update=changes)
                    updated.append(sitter)
                result.append(sitter)
            if not updated:
                raise NotFoundError("Trip sitter", sitter_id)
            return result

        await self.repository.mutate(apply)
        return updated[0]

    async def remove(self, sitter_id: str) -> None:
        def apply(sitters: List[TripSitter]) -> List[TripSitter]:
            remaining = [s for s in sitters if s.id != sitter_id]
            if len(remaining) == len(sitters):
                raise NotFoundError("Trip sitter", sitter_id)
            return remaining

        await self.repository.mutate(apply)
        logger.info("Trip sitter removed", extra={"sitter_id": sitter_id})

    def find_by_name(self, name: str) -> Optional[TripSitter]:
        name = name.strip().lower()
        return self.repository.find(lambda s: s.name.lower() == name)
