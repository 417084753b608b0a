"""
Pydantic schemas for stored trip journal records.
"""

from .base import JournalModel, new_id
from .trip import (
    Phase,
    PHASES,
    NoteType,
    RatingType,
    FOLLOW_UP_TYPES,
    Rating,
    RatingLedger,
    with_rating,
    Note,
    Dose,
    MentalSet,
    TripSitterContact,
    SafetyCheck,
    IntentionRecord,
    TripDraft,
    TripHistoryEntry,
)
from .intention import Intention, TripIntentionLink
from .trip_sitter import TripSitter, TripSitterCreate, TripSitterUpdate

__all__ = [
    "JournalModel",
    "new_id",
    "Phase",
    "PHASES",
    "NoteType",
    "RatingType",
    "FOLLOW_UP_TYPES",
    "Rating",
    "RatingLedger",
    "with_rating",
    "Note",
    "Dose",
    "MentalSet",
    "TripSitterContact",
    "SafetyCheck",
    "IntentionRecord",
    "TripDraft",
    "TripHistoryEntry",
    "Intention",
    "TripIntentionLink",
    "TripSitter",
    "TripSitterCreate",
    "TripSitterUpdate",
]
