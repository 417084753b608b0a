"""
Integration tests for the full trip lifecycle across session, history and intentions
"""
import pytest

from tripjournal.core.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    PersistenceFailureError,
    ValidationError,
)
from tripjournal.schemas.trip import NoteType, Phase, RatingType
from tripjournal.services.follow_up import FollowUpState
from tripjournal.services.intention_service import IntentionService
from tripjournal.services.trip_history_service import TripHistoryLog
from tripjournal.services.trip_session import TripSession


async def start_with_intentions(session, intentions, *texts):
    ids = [await intentions.add_intention(text) for text in texts]
    await session.update_setting("Living room")
    await session.update_safety({"environment": True, "mental": True})
    await session.update_intentions([{"id": i, "emoji": "✨", "text": t} for i, t in zip(ids, texts)])
    await session.start_trip()
    return ids


@pytest.mark.asyncio
async def test_complete_trip_and_post_trip_rating(flow, session, history, intentions, clock):
    """Test save, rate and average for a single trip"""
    [intention_id] = await start_with_intentions(session, intentions, "Explore creativity")
    clock.advance(minutes=90)
    await session.update_phase(Phase.PEAK)
    clock.advance(hours=6)

    entry = await flow.finish_trip(trip_id="t1", trip_title="Spring")

    assert not session.is_active()
    assert history.most_recent().id == "t1"
    assert entry.current_phase == Phase.PEAK
    assert intentions.get(intention_id).tags == ["Spring"]
    assert intentions.usage_count(intention_id) == 1

    rated = await flow.submit_post_trip_ratings("t1", {intention_id: 4})

    assert rated.post_trip_rated is True
    assert rated.intention(intention_id).ratings[RatingType.POST_TRIP].value == 4
    assert intentions.average_rating(intention_id, RatingType.POST_TRIP) == 4.0


@pytest.mark.asyncio
async def test_discard_leaves_history_untouched(flow, session, history, intentions):
    """Test ending without save resets the draft and records nothing"""
    [intention_id] = await start_with_intentions(session, intentions, "Rest")

    result = await flow.finish_trip(save=False)

    assert result is None
    assert history.entries() == []
    assert intentions.usage_count(intention_id) == 0
    assert not session.is_active()


@pytest.mark.asyncio
async def test_finish_without_active_trip(flow):
    with pytest.raises(InvalidTransitionError):
        await flow.finish_trip()


@pytest.mark.asyncio
async def test_rate_later(flow, session, intentions):
    await start_with_intentions(session, intentions, "Rest")
    await flow.finish_trip(trip_id="t1")

    entry = await flow.rate_later("t1")

    assert entry.post_trip_rated is False


@pytest.mark.asyncio
async def test_post_trip_ratings_skip_unrated_and_validate(flow, session, intentions):
    """Test None values are skipped and bad values reject the whole submission"""
    a, b = await start_with_intentions(session, intentions, "A", "B")
    await flow.finish_trip(trip_id="t1")

    with pytest.raises(ValidationError):
        await flow.submit_post_trip_ratings("t1", {a: 5, b: 9})
    assert intentions.average_rating(a, RatingType.POST_TRIP) is None

    with pytest.raises(NotFoundError):
        await flow.submit_post_trip_ratings("t1", {"ghost": 3})

    entry = await flow.submit_post_trip_ratings("t1", {a: 5, b: None})

    assert RatingType.POST_TRIP not in entry.intention(b).ratings
    assert intentions.average_rating(a, RatingType.POST_TRIP) == 5.0
    assert intentions.average_rating(b, RatingType.POST_TRIP) is None


@pytest.mark.asyncio
async def test_follow_up_locked_then_available(flow, session, intentions, clock):
    """Test follow-up ratings open after seven days and then report rated"""
    [intention_id] = await start_with_intentions(session, intentions, "Explore creativity")
    clock.advance(hours=7)
    await flow.finish_trip(trip_id="t1")

    clock.advance(days=6)
    statuses = flow.follow_up_statuses("t1", intention_id)
    assert statuses[RatingType.DAY_7].state == FollowUpState.LOCKED
    assert statuses[RatingType.DAY_7].days_remaining == 1
    with pytest.raises(InvalidTransitionError):
        await flow.submit_follow_up_ratings("t1", RatingType.DAY_7, {intention_id: 3})

    clock.advance(days=1)
    assert flow.follow_up_statuses("t1", intention_id)[RatingType.DAY_7].is_available
    await flow.submit_follow_up_ratings("t1", "7-day", {intention_id: 3})
    await flow.submit_follow_up_ratings("t1", "7-day", {intention_id: 5})

    statuses = flow.follow_up_statuses("t1", intention_id)
    link = intentions.get(intention_id).link("t1")
    assert statuses[RatingType.DAY_7].state == FollowUpState.RATED
    assert len(link.ratings) == 1
    assert link.rating(RatingType.DAY_7).value == 5


@pytest.mark.asyncio
async def test_post_trip_is_not_a_follow_up_slot(flow, session, intentions):
    [intention_id] = await start_with_intentions(session, intentions, "Rest")
    await flow.finish_trip(trip_id="t1")

    with pytest.raises(InvalidTransitionError):
        await flow.submit_follow_up_ratings("t1", RatingType.POST_TRIP, {intention_id: 4})


@pytest.mark.asyncio
async def test_average_across_three_trips(flow, session, intentions, clock):
    """Test one intention reused on three trips averages rated values only"""
    intention_id = await intentions.add_intention("Explore creativity")
    for trip_id, value in (("t1", 4), ("t2", None), ("t3", 2)):
        await session.update_intentions([{"id": intention_id, "text": "Explore creativity"}])
        await session.start_trip()
        clock.advance(hours=7)
        await flow.finish_trip(trip_id=trip_id)
        await flow.submit_post_trip_ratings(trip_id, {intention_id: value})
        clock.advance(days=1)

    assert intentions.usage_count(intention_id) == 3
    assert intentions.available_intentions() == []
    assert intentions.average_rating(intention_id, RatingType.POST_TRIP) == 3.0


@pytest.mark.asyncio
async def test_capped_intention_still_saves_trip(store, flow, session, history, clock):
    """Test a trip is recorded even when its intention has hit the cap"""
    capped = IntentionService(store, clock=clock, usage_cap=1)
    flow.intentions = capped
    intention_id = await capped.add_intention("Heal")
    await capped.attach_to_trip(intention_id, "earlier", clock.now())

    await session.update_intentions([{"id": intention_id, "text": "Heal"}])
    await session.start_trip()
    entry = await flow.finish_trip(trip_id="t2")

    assert history.get("t2") == entry
    assert capped.usage_count(intention_id) == 1
    assert not capped.has_link(intention_id, "t2")


@pytest.mark.asyncio
async def test_trip_notes_are_typed(flow, session, history, intentions, clock):
    """Test notes added after a trip carry the right type on history and link"""
    [intention_id] = await start_with_intentions(session, intentions, "Connect")
    clock.advance(hours=2)
    await flow.finish_trip(trip_id="t1")
    clock.advance(minutes=30)

    post = await flow.add_trip_note("t1", "Felt open", intention_id=intention_id)
    clock.advance(days=8)
    later = await flow.add_trip_note("t1", "Still calling friends more")

    entry = history.get("t1")
    assert post.type == NoteType.POST
    assert later.type == NoteType.FOLLOWUP
    assert later.followup_day == 7
    assert entry.intention(intention_id).notes == [post]
    assert entry.general_notes == [later]
    assert intentions.get(intention_id).link("t1").notes == [post]


@pytest.mark.asyncio
async def test_failed_write_during_finish_records_trip_once(flow, session, history, intentions, store, clock):
    """Test a trip finished during a storage outage is recorded once and flushed later"""
    [intention_id] = await start_with_intentions(session, intentions, "Explore creativity")
    clock.advance(hours=7)
    store.fail_writes = True

    with pytest.raises(PersistenceFailureError):
        await flow.finish_trip(trip_id="t1")

    assert not session.is_active()
    assert [e.id for e in history.entries()] == ["t1"]
    assert intentions.has_link(intention_id, "t1")
    with pytest.raises(InvalidTransitionError):
        await flow.finish_trip()

    store.fail_writes = False
    await flow.flush()

    reloaded_history = TripHistoryLog(store)
    reloaded_intentions = IntentionService(store, clock=clock)
    reloaded_session = TripSession(store, clock=clock)
    assert [e.id for e in await reloaded_history.load()] == ["t1"]
    await reloaded_intentions.load()
    assert reloaded_intentions.has_link(intention_id, "t1")
    assert not (await reloaded_session.load()).is_active()
