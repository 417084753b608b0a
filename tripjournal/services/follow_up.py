"""
Follow-up availability rules.

Pure functions of a trip's end time, the current time and the ratings already
recorded. A slot that already holds a rating reports RATED whatever the
elapsed time; otherwise it opens once enough whole days have passed.
"""
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

from tripjournal.schemas.trip import FOLLOW_UP_TYPES, NoteType, Rating, RatingType

SECONDS_PER_DAY = 24 * 60 * 60

RatingsInput = Union[Mapping[RatingType, Rating], Iterable[Rating], None]


class FollowUpState(str, Enum):
    LOCKED = "locked"
    AVAILABLE = "available"
    RATED = "rated"


@dataclass(frozen=True)
class FollowUpStatus:
    rating_type: RatingType
    state: FollowUpState
    days_since: int
    days_remaining: int = 0

    @property
    def is_available(self) -> bool:
        return self.state == FollowUpState.AVAILABLE


def days_since(end_time: datetime, now: datetime) -> int:
    """Whole days elapsed since end_time."""
    return math.floor((now - end_time).total_seconds() / SECONDS_PER_DAY)


def _has_rating(ratings: RatingsInput, rating_type: RatingType) -> bool:
    if ratings is None:
        return False
    if isinstance(ratings, Mapping):
        rating = ratings.get(rating_type)
        return rating is not None and rating.is_rated
    return any(r.type == rating_type and r.is_rated for r in ratings)


def follow_up_status(
    rating_type: RatingType, end_time: datetime, now: datetime, ratings: RatingsInput = None
) -> FollowUpStatus:
    rating_type = RatingType(rating_type)
    threshold = rating_type.threshold_days
    if threshold is None:
        raise ValueError(f"{rating_type.value} is not a follow-up rating")

    elapsed_days = days_since(end_time, now)
    if _has_rating(ratings, rating_type):
        return FollowUpStatus(rating_type, FollowUpState.RATED, elapsed_days)
    if elapsed_days >= threshold:
        return FollowUpStatus(rating_type, FollowUpState.AVAILABLE, elapsed_days)
    return FollowUpStatus(rating_type, FollowUpState.LOCKED, elapsed_days, threshold - elapsed_days)


def follow_up_statuses(
    end_time: datetime, now: datetime, ratings: RatingsInput = None
) -> Dict[RatingType, FollowUpStatus]:
    if ratings is not None and not isinstance(ratings, Mapping):
        ratings = list(ratings)
    return {rating_type: follow_up_status(rating_type, end_time, now, ratings) for rating_type in FOLLOW_UP_TYPES}


def classify_note(
    start_time: datetime, end_time: Optional[datetime], note_time: datetime
) -> Tuple[NoteType, Optional[int]]:
    """
    Decide what kind of note a trip note is from when it was written.

    Days are counted as calendar days (UTC) from the trip's start. Notes on
    the start day after the trip ended are post-trip notes; later notes are
    follow-ups snapped down to the 7/14/30 day milestones once reached.
    """
    if end_time is None or note_time <= end_time:
        return NoteType.DURING, None

    calendar_days = (note_time.date() - start_time.date()).days
    if calendar_days <= 0:
        return NoteType.POST, None
    for rating_type in reversed(FOLLOW_UP_TYPES):
        if calendar_days >= rating_type.threshold_days:
            return NoteType.FOLLOWUP, rating_type.threshold_days
    return NoteType.FOLLOWUP, calendar_days
