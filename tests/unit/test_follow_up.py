"""
Unit tests for follow-up availability and note classification
"""
from datetime import datetime, timedelta, timezone

import pytest

from tripjournal.schemas.trip import NoteType, Rating, RatingType
from tripjournal.services.follow_up import (
    FollowUpState,
    classify_note,
    days_since,
    follow_up_status,
    follow_up_statuses,
)

END = datetime(2025, 3, 2, 3, 0, tzinfo=timezone.utc)


def test_days_since_floors():
    assert days_since(END, END + timedelta(days=6, hours=23)) == 6
    assert days_since(END, END + timedelta(days=7)) == 7


def test_seven_day_locked_before_threshold():
    """Test six days after the trip the 7-day slot is locked with one day left"""
    status = follow_up_status(RatingType.DAY_7, END, END + timedelta(days=6))

    assert status.state == FollowUpState.LOCKED
    assert status.days_remaining == 1


def test_seven_day_unlocks_at_threshold():
    status = follow_up_status(RatingType.DAY_7, END, END + timedelta(days=7))

    assert status.state == FollowUpState.AVAILABLE
    assert status.days_remaining == 0


@pytest.mark.parametrize("offset_days", [0, 3, 7, 40])
def test_already_rated_wins_at_any_time(offset_days):
    """Test an existing rating reports rated regardless of elapsed days"""
    ratings = [Rating(type=RatingType.DAY_7, value=4, timestamp=END)]

    status = follow_up_status(RatingType.DAY_7, END, END + timedelta(days=offset_days), ratings)

    assert status.state == FollowUpState.RATED


def test_unrated_placeholder_does_not_count_as_rated():
    ratings = {RatingType.DAY_14: Rating(type=RatingType.DAY_14, value=None, timestamp=END)}

    status = follow_up_status(RatingType.DAY_14, END, END + timedelta(days=3), ratings)

    assert status.state == FollowUpState.LOCKED
    assert status.days_remaining == 11


def test_all_statuses():
    """Test the three follow-up slots at day 15"""
    statuses = follow_up_statuses(END, END + timedelta(days=15))

    assert list(statuses) == [RatingType.DAY_7, RatingType.DAY_14, RatingType.DAY_30]
    assert statuses[RatingType.DAY_7].state == FollowUpState.AVAILABLE
    assert statuses[RatingType.DAY_14].state == FollowUpState.AVAILABLE
    assert statuses[RatingType.DAY_30].state == FollowUpState.LOCKED
    assert statuses[RatingType.DAY_30].days_remaining == 15


def test_post_trip_is_not_a_follow_up():
    with pytest.raises(ValueError):
        follow_up_status(RatingType.POST_TRIP, END, END)


def test_classify_note():
    """Test note typing by when it was written relative to the trip"""
    start = datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)
    end = start + timedelta(hours=7)

    assert classify_note(start, None, end) == (NoteType.DURING, None)
    assert classify_note(start, end, end - timedelta(hours=1)) == (NoteType.DURING, None)
    assert classify_note(start, end, end + timedelta(hours=2)) == (NoteType.POST, None)
    assert classify_note(start, end, start + timedelta(days=3)) == (NoteType.FOLLOWUP, 3)
    assert classify_note(start, end, start + timedelta(days=8)) == (NoteType.FOLLOWUP, 7)
    assert classify_note(start, end, start + timedelta(days=20)) == (NoteType.FOLLOWUP, 14)
    assert classify_note(start, end, start + timedelta(days=45)) == (NoteType.FOLLOWUP, 30)
