# Domain services

from .phase_timeline import (
    PHASE_DURATIONS,
    PhaseProgress,
    PhaseTimeline,
    format_time_remaining,
    format_phase_time_remaining,
    format_elapsed,
)
from .trip_session import TripSession
from .trip_history_service import TripHistoryLog
from .follow_up import (
    FollowUpState,
    FollowUpStatus,
    days_since,
    follow_up_status,
    follow_up_statuses,
    classify_note,
)
from .intention_service import IntentionService
from .trip_sitter_service import TripSitterRegistry
from .trip_flow import TripFlow

__all__ = [
    "PHASE_DURATIONS",
    "PhaseProgress",
    "PhaseTimeline",
    "format_time_remaining",
    "format_phase_time_remaining",
    "format_elapsed",
    "TripSession",
    "TripHistoryLog",
    "FollowUpState",
    "FollowUpStatus",
    "days_since",
    "follow_up_status",
    "follow_up_statuses",
    "classify_note",
    "IntentionService",
    "TripSitterRegistry",
    "TripFlow",
]
