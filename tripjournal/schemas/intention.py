"""
Intention schemas: reusable goals and their per-trip links
"""
from datetime import datetime
from typing import List, Optional

from pydantic import Field, computed_field

from tripjournal.schemas.base import JournalModel
from tripjournal.schemas.trip import Note, Rating, RatingLedger, RatingType


class TripIntentionLink(JournalModel):
    """Ratings and notes recorded for one intention on one trip"""
    trip_id: str
    trip_title: Optional[str] = None
    trip_date: datetime
    ratings: RatingLedger = Field(default_factory=dict)
    notes: List[Note] = Field(default_factory=list)

    def rating(self, rating_type: RatingType) -> Optional[Rating]:
        return self.ratings.get(rating_type)


class Intention(JournalModel):
    """A user-authored goal that can be linked to a limited number of trips"""
    id: str
    text: str
    description: Optional[str] = None
    created_at: datetime
    trips: List[TripIntentionLink] = Field(default_factory=list)

    @computed_field
    @property
    def tags(self) -> List[str]:
        # Display labels, always rebuilt from the linked trips' titles.
        tags: List[str] = []
        for link in self.trips:
            if link.trip_title and link.trip_title not in tags:
                tags.append(link.trip_title)
        return tags

    @property
    def usage_count(self) -> int:
        return len(self.trips)

    def link(self, trip_id: str) -> Optional[TripIntentionLink]:
        for link in self.trips:
            if link.trip_id == trip_id:
                return link
        return None
