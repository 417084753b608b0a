"""
Core building blocks for the trip journal: errors, clock, storage and logging.
"""

from .exceptions import (
    ErrorCode,
    TripJournalException,
    InvalidTransitionError,
    NotFoundError,
    UsageCapExceededError,
    PersistenceFailureError,
    ValidationError,
)
from .clock import Clock, SystemClock, ManualClock
from .store import KeyValueStore, InMemoryStore, JsonFileStore, RedisStore, create_store
from .repository import CollectionRepository
from .logging import configure_logging

__all__ = [
    "ErrorCode",
    "TripJournalException",
    "InvalidTransitionError",
    "NotFoundError",
    "UsageCapExceededError",
    "PersistenceFailureError",
    "ValidationError",
    "Clock",
    "SystemClock",
    "ManualClock",
    "KeyValueStore",
    "InMemoryStore",
    "JsonFileStore",
    "RedisStore",
    "create_store",
    "CollectionRepository",
    "configure_logging",
]
