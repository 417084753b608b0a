"""
Trip schemas: the live draft, frozen history entries and the records they carry
"""
from datetime import datetime
from enum import Enum
from typing import Annotated, Dict, List, Optional

from pydantic import AliasChoices, BeforeValidator, ConfigDict, Field, PlainSerializer

from tripjournal.core.validation import validate_rating_value
from tripjournal.schemas.base import JournalModel


class Phase(str, Enum):
    """Active session phases, in timeline order"""
    COME_UP = "come-up"
    PEAK = "peak"
    COMEDOWN = "comedown"


PHASES = (Phase.COME_UP, Phase.PEAK, Phase.COMEDOWN)


class NoteType(str, Enum):
    DURING = "during"
    POST = "post"
    FOLLOWUP = "followup"


class RatingType(str, Enum):
    """Rating slots collected for an intention on a trip"""
    POST_TRIP = "post-trip"
    DAY_7 = "7-day"
    DAY_14 = "14-day"
    DAY_30 = "30-day"

    @property
    def threshold_days(self) -> Optional[int]:
        """Days after trip end before this slot opens; None for post-trip."""
        return _THRESHOLDS.get(self)


_THRESHOLDS = {RatingType.DAY_7: 7, RatingType.DAY_14: 14, RatingType.DAY_30: 30}

FOLLOW_UP_TYPES = (RatingType.DAY_7, RatingType.DAY_14, RatingType.DAY_30)


class Rating(JournalModel):
    """A single rating. value None means not yet rated."""
    type: RatingType
    value: Annotated[Optional[int], BeforeValidator(validate_rating_value)] = None
    timestamp: datetime

    @property
    def is_rated(self) -> bool:
        return self.value is not None


def _ledger_from_list(v):
    # Stored JSON keeps ratings as a list; later entries of the same type win.
    if isinstance(v, (list, tuple)):
        ledger = {}
        for item in v:
            rating = item if isinstance(item, Rating) else Rating.model_validate(item)
            ledger[rating.type] = rating
        return ledger
    return v


def _ledger_to_list(ledger):
    return list(ledger.values())


# Ratings keyed by type, so at most one rating per type can exist.
RatingLedger = Annotated[
    Dict[RatingType, Rating],
    BeforeValidator(_ledger_from_list),
    PlainSerializer(_ledger_to_list, return_type=List[Rating]),
]


def with_rating(ledger: Dict[RatingType, Rating], rating: Rating) -> Dict[RatingType, Rating]:
    """Return a copy of ledger with rating replacing any rating of the same type."""
    updated = dict(ledger)
    updated[rating.type] = rating
    return updated


class Note(JournalModel):
    id: str
    content: str
    timestamp: datetime
    type: NoteType
    followup_day: Optional[int] = None


class Dose(JournalModel):
    name: str
    range: str = ""
    description: str = ""


class MentalSet(JournalModel):
    mental_state: str
    description: str = ""


class TripSitterContact(JournalModel):
    """Sitter details copied onto a trip at setup time"""
    name: str
    phone_number: str = Field(
        validation_alias=AliasChoices("phoneNumber", "phone_number", "phone"),
        serialization_alias="phoneNumber",
    )
    relationship: str = ""


class SafetyCheck(JournalModel):
    environment: bool = False
    mental: bool = False
    emergency_plan: bool = False
    trip_sitter: bool = False
    trip_sitter_info: Optional[TripSitterContact] = None

    def is_ready(self) -> bool:
        """The environment and mental checks are required before starting."""
        return self.environment and self.mental


class IntentionRecord(JournalModel):
    """An intention as carried on one trip"""
    id: str
    emoji: Optional[str] = None
    text: str
    description: Optional[str] = None
    notes: List[Note] = Field(default_factory=list)
    ratings: RatingLedger = Field(default_factory=dict)

    def rating(self, rating_type: RatingType) -> Optional[Rating]:
        return self.ratings.get(rating_type)


class TripDraft(JournalModel):
    """The single in-progress trip. Active while start_time is set."""
    dose: Optional[Dose] = None
    mental_set: Optional[MentalSet] = Field(default=None, alias="set")
    setting: str = ""
    safety: SafetyCheck = Field(default_factory=SafetyCheck)
    trip_sitter: Optional[TripSitterContact] = None
    intentions: List[IntentionRecord] = Field(default_factory=list)
    general_notes: List[Note] = Field(default_factory=list)
    start_time: Optional[datetime] = None
    current_phase: Optional[Phase] = None
    post_trip_rated: bool = False

    def is_active(self) -> bool:
        return self.start_time is not None


class TripHistoryEntry(JournalModel):
    """A completed trip. Replaced as a whole, never edited in place."""

    model_config = ConfigDict(frozen=True)

    id: str
    start_time: datetime
    end_time: datetime
    dose: Optional[Dose] = None
    mental_set: Optional[MentalSet] = Field(default=None, alias="set")
    setting: str = ""
    safety: SafetyCheck = Field(default_factory=SafetyCheck)
    trip_sitter: Optional[TripSitterContact] = None
    intentions: List[IntentionRecord] = Field(default_factory=list)
    general_notes: List[Note] = Field(default_factory=list)
    post_trip_rated: bool = False

    def intention(self, intention_id: str) -> Optional[IntentionRecord]:
        for record in self.intentions:
            if record.id == intention_id:
                return record
        return None

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)
