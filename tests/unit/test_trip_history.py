"""
Unit tests for the trip history log
"""
from datetime import timedelta

import pytest
from pydantic import ValidationError as PydanticValidationError

from tripjournal.core.exceptions import InvalidTransitionError, NotFoundError, PersistenceFailureError
from tripjournal.schemas.trip import IntentionRecord, Note, NoteType, Rating, RatingType, TripHistoryEntry
from tripjournal.services.trip_history_service import TripHistoryLog


def make_entry(trip_id, clock, intentions=None):
    start = clock.now()
    return TripHistoryEntry(
        id=trip_id,
        start_time=start,
        end_time=start + timedelta(hours=7),
        setting="Home",
        intentions=intentions or [],
    )


@pytest.mark.asyncio
async def test_append_is_most_recent_first(history, clock):
    """Test new trips are inserted at the head"""
    await history.append(make_entry("t1", clock))
    await history.append(make_entry("t2", clock))

    assert [e.id for e in history.entries()] == ["t2", "t1"]
    assert history.most_recent().id == "t2"


@pytest.mark.asyncio
async def test_append_rejects_duplicate_id(history, clock):
    """Test a trip can only be recorded once"""
    await history.append(make_entry("t1", clock))

    with pytest.raises(InvalidTransitionError):
        await history.append(make_entry("t1", clock))

    assert len(history.entries()) == 1


@pytest.mark.asyncio
async def test_find_and_get(history, clock):
    """Test lookup by ID"""
    await history.append(make_entry("t1", clock))

    assert history.find_by_id("t1").id == "t1"
    assert history.find_by_id("missing") is None
    with pytest.raises(NotFoundError):
        history.get("missing")
    assert history.most_recent() is not None


@pytest.mark.asyncio
async def test_empty_log(history):
    assert history.most_recent() is None
    assert history.entries() == []


@pytest.mark.asyncio
async def test_replace_all_and_reload(history, store, clock):
    """Test whole-collection replace is persisted and reloads in order"""
    entries = [make_entry("b", clock), make_entry("a", clock)]
    await history.replace_all(entries)

    reloaded = TripHistoryLog(store)
    loaded = await reloaded.load()

    assert [e.id for e in loaded] == ["b", "a"]
    assert loaded[0].model_dump() == entries[0].model_dump()


@pytest.mark.asyncio
async def test_update_entry_replaces_one_entry(history, clock):
    """Test updating one entry leaves the others and ordering unchanged"""
    await history.append(make_entry("t1", clock))
    await history.append(make_entry("t2", clock))

    updated = await history.update_entry("t1", lambda e: e.model_copy(update={"setting": "Beach"}))

    assert updated.setting == "Beach"
    assert [e.id for e in history.entries()] == ["t2", "t1"]
    assert history.get("t2").setting == "Home"


@pytest.mark.asyncio
async def test_update_unknown_entry(history, clock):
    with pytest.raises(NotFoundError):
        await history.mark_post_trip_rated("nope")


@pytest.mark.asyncio
async def test_entries_are_frozen(history, clock):
    """Test history entries cannot be edited in place"""
    entry = await history.append(make_entry("t1", clock))

    with pytest.raises(PydanticValidationError):
        entry.setting = "Elsewhere"


@pytest.mark.asyncio
async def test_record_intention_rating_upserts_by_type(history, clock):
    """Test a rating of the same type replaces the earlier one on the trip record"""
    record = IntentionRecord(id="i1", text="Explore creativity")
    await history.append(make_entry("t1", clock, [record]))

    await history.record_intention_rating(
        "t1", "i1", Rating(type=RatingType.DAY_7, value=3, timestamp=clock.now())
    )
    entry = await history.record_intention_rating(
        "t1", "i1", Rating(type=RatingType.DAY_7, value=5, timestamp=clock.now())
    )

    ratings = entry.intention("i1").ratings
    assert list(ratings) == [RatingType.DAY_7]
    assert ratings[RatingType.DAY_7].value == 5


@pytest.mark.asyncio
async def test_record_rating_unknown_intention(history, clock):
    await history.append(make_entry("t1", clock))

    with pytest.raises(NotFoundError):
        await history.record_intention_rating(
            "t1", "ghost", Rating(type=RatingType.POST_TRIP, value=4, timestamp=clock.now())
        )


@pytest.mark.asyncio
async def test_notes_and_post_trip_flag(history, clock):
    """Test notes and the post-trip flag on an entry"""
    record = IntentionRecord(id="i1", text="Let go")
    await history.append(make_entry("t1", clock, [record]))
    note = Note(id="n1", content="Felt lighter", timestamp=clock.now(), type=NoteType.POST)

    await history.add_intention_note("t1", "i1", note)
    await history.add_general_note("t1", note)
    entry = await history.mark_post_trip_rated("t1")

    assert entry.post_trip_rated is True
    assert entry.intention("i1").notes == [note]
    assert entry.general_notes == [note]


@pytest.mark.asyncio
async def test_delete_entry(history, clock):
    await history.append(make_entry("t1", clock))
    await history.delete_entry("t1")

    assert history.entries() == []
    with pytest.raises(NotFoundError):
        await history.delete_entry("t1")


@pytest.mark.asyncio
async def test_persistence_failure_keeps_previous_blob(history, store, clock):
    """Test a failed write keeps memory updated and the stored blob unchanged"""
    await history.append(make_entry("t1", clock))
    stored_before = await store.get(history.repository.key)
    store.fail_writes = True

    with pytest.raises(PersistenceFailureError):
        await history.append(make_entry("t2", clock))

    assert [e.id for e in history.entries()] == ["t2", "t1"]
    assert await store.get(history.repository.key) == stored_before


@pytest.mark.asyncio
async def test_stored_json_uses_camel_case_and_rating_lists(history, store, clock):
    """Test the stored blob keeps the list representation of ratings"""
    record = IntentionRecord(id="i1", text="Rest")
    await history.append(make_entry("t1", clock, [record]))
    await history.record_intention_rating(
        "t1", "i1", Rating(type=RatingType.POST_TRIP, value=4, timestamp=clock.now())
    )

    raw = await store.get(history.repository.key)

    assert "startTime" in raw[0]
    assert "postTripRated" in raw[0]
    ratings = raw[0]["intentions"][0]["ratings"]
    assert isinstance(ratings, list)
    assert len(ratings) == 1
    assert ratings[0]["type"] == "post-trip"
    assert ratings[0]["value"] == 4


@pytest.mark.asyncio
async def test_stored_rating_out_of_range_is_malformed(history, store, clock):
    """Test a stored blob with an invalid rating value fails to load as a persistence error"""
    record = IntentionRecord(id="i1", text="Rest")
    await history.append(make_entry("t1", clock, [record]))
    raw = await store.get(history.repository.key)
    raw[0]["intentions"][0]["ratings"] = [{"type": "post-trip", "value": 9, "timestamp": clock.now().isoformat()}]
    await store.set(history.repository.key, raw)

    with pytest.raises(PersistenceFailureError):
        await TripHistoryLog(store).load()
