"""Tests for race reconciliation and cleanup."""

import pytest

from racetime_announcer.state.models import TrackedRace
from racetime_announcer.state.store import StateStore

from conftest import FakeChannel, make_race


@pytest.fixture
def commits(store, monkeypatch):
    """Count commits while still writing the file."""
    calls = []
    original = store.commit

    def counting_commit():
        calls.append(True)
        original()

    monkeypatch.setattr(store, "commit", counting_commit)
    return calls


@pytest.mark.asyncio
async def test_new_race_is_announced_and_persisted(tracker, registry, race_api, directory, state_path):
    registry.add("S1", "C1", "game-a")
    race_api.publish(make_race(version=1))

    await tracker.refresh()

    channel = directory.get_channel("C1")
    assert len(channel.posted) == 1
    posted_id = channel.posted[0][0]

    reloaded = StateStore(state_path)
    reloaded.load()
    assert reloaded.races == [
        TrackedRace(race_id="game-a/quick-race-1234", version=1, announcement_msgs={"C1": posted_id})
    ]


@pytest.mark.asyncio
async def test_unchanged_version_is_a_no_op(tracker, registry, race_api, directory, store, commits):
    registry.add("S1", "C1", "game-a")
    store.upsert_race(TrackedRace(race_id="game-a/quick-race-1234", version=2, announcement_msgs={"C1": "M1"}))
    race_api.publish(make_race(version=2))

    await tracker.refresh()

    channel = directory.get_channel("C1")
    assert channel.edited == []
    assert channel.posted == []
    assert commits == []


@pytest.mark.asyncio
async def test_older_version_never_overwrites(tracker, registry, race_api, store):
    registry.add("S1", "C1", "game-a")
    store.upsert_race(TrackedRace(race_id="game-a/quick-race-1234", version=5, announcement_msgs={"C1": "M1"}))
    race_api.publish(make_race(version=3))

    await tracker.refresh()

    assert store.get_race("game-a/quick-race-1234").version == 5


@pytest.mark.asyncio
async def test_advanced_version_edits_in_place(tracker, registry, race_api, directory, store):
    registry.add("S1", "C1", "game-a")
    store.upsert_race(TrackedRace(race_id="game-a/quick-race-1234", version=2, announcement_msgs={"C1": "M1"}))
    race_api.publish(make_race(version=3))

    await tracker.refresh()

    channel = directory.get_channel("C1")
    assert [message_id for message_id, _ in channel.edited] == ["M1"]
    assert channel.posted == []
    tracked = store.get_race("game-a/quick-race-1234")
    assert tracked.version == 3
    assert tracked.announcement_msgs == {"C1": "M1"}


@pytest.mark.asyncio
async def test_failed_edit_drops_message_then_reposts(tracker, registry, race_api, directory, store):
    channel = directory.add(FakeChannel("C2", fail_edit=True))
    registry.add("S1", "C2", "game-a")
    store.upsert_race(TrackedRace(race_id="game-a/quick-race-1234", version=1, announcement_msgs={"C2": "M9"}))
    race_api.publish(make_race(version=2))

    await tracker.refresh()
    assert store.get_race("game-a/quick-race-1234").announcement_msgs == {}

    race_api.publish(make_race(version=3))
    await tracker.refresh()
    assert len(channel.posted) == 1
    assert store.get_race("game-a/quick-race-1234").announcement_msgs == {"C2": channel.posted[0][0]}


@pytest.mark.asyncio
async def test_failed_post_records_nothing_for_that_channel(tracker, registry, race_api, directory, store):
    directory.add(FakeChannel("C2", fail_post=True))
    registry.add("S1", "C1", "game-a")
    registry.add("S1", "C2", "game-a")
    race_api.publish(make_race(version=1))

    await tracker.refresh()

    msgs = store.get_race("game-a/quick-race-1234").announcement_msgs
    assert set(msgs) == {"C1"}


@pytest.mark.asyncio
async def test_invalid_detail_skips_only_that_race(tracker, registry, race_api, directory, store):
    registry.add("S1", "C1", "game-a")
    race_api.publish(make_race(name="game-a/broken-race-0001"))
    race_api.details["game-a/broken-race-0001"] = None
    race_api.publish(make_race(name="game-a/fine-race-0002"))

    await tracker.refresh()

    assert [r.race_id for r in store.races] == ["game-a/fine-race-0002"]
    assert len(directory.get_channel("C1").posted) == 1


@pytest.mark.asyncio
async def test_races_of_other_categories_are_tracked_but_not_posted(tracker, registry, race_api, directory, store):
    registry.add("S1", "C1", "game-a")
    race_api.publish(make_race(name="game-b/other-race-0001", slug="game-b"))

    await tracker.refresh()

    assert directory.get_channel("C1").posted == []
    assert store.get_race("game-b/other-race-0001").announcement_msgs == {}


@pytest.mark.asyncio
async def test_unknown_channel_is_skipped(tracker, registry, race_api, store):
    registry.add("S1", "C404", "game-a")
    race_api.publish(make_race())

    await tracker.refresh()

    assert store.get_race("game-a/quick-race-1234").announcement_msgs == {}


@pytest.mark.asyncio
async def test_listing_failure_skips_the_pass(tracker, registry, race_api, store, commits):
    registry.add("S1", "C1", "game-a")
    race_api.publish(make_race())
    race_api.fail_listing = True

    await tracker.refresh()

    assert store.races == []
    assert tracker.current_races == []
    assert commits == []


@pytest.mark.asyncio
async def test_cleanup_removes_only_finished_races(tracker, race_api, directory, store):
    race_api.publish(make_race(name="game-a/live-race-0001"))
    store.upsert_race(TrackedRace(race_id="game-a/live-race-0001", version=1, announcement_msgs={"C1": "M1"}))
    store.upsert_race(TrackedRace(race_id="game-a/done-race-0002", version=7, announcement_msgs={"C1": "M2"}))

    await tracker.cleanup()

    assert directory.get_channel("C1").deleted == ["M2"]
    assert store.races == [
        TrackedRace(race_id="game-a/live-race-0001", version=1, announcement_msgs={"C1": "M1"})
    ]


@pytest.mark.asyncio
async def test_cleanup_keeps_races_listed_with_malformed_summaries(tracker, race_api, directory, store):
    race_api.unparsed_names.add("game-a/live-race-0001")
    store.upsert_race(TrackedRace(race_id="game-a/live-race-0001", version=1, announcement_msgs={"C1": "M1"}))

    await tracker.cleanup()

    assert directory.get_channel("C1").deleted == []
    assert [r.race_id for r in store.races] == ["game-a/live-race-0001"]


@pytest.mark.asyncio
async def test_cleanup_persists_once(tracker, store, commits):
    store.upsert_race(TrackedRace(race_id="a", version=1, announcement_msgs={"C1": "M1"}))
    store.upsert_race(TrackedRace(race_id="b", version=1, announcement_msgs={"C1": "M2"}))

    await tracker.cleanup()

    assert store.races == []
    assert len(commits) == 1


@pytest.mark.asyncio
async def test_cleanup_retries_failed_delete_once(tracker, directory, store):
    channel = directory.add(FakeChannel("C2", delete_failures=1))
    store.upsert_race(TrackedRace(race_id="gone", version=1, announcement_msgs={"C2": "M1"}))

    await tracker.cleanup()

    assert channel.delete_attempts == 2
    assert channel.deleted == ["M1"]


@pytest.mark.asyncio
async def test_cleanup_gives_up_after_retry(tracker, directory, store):
    channel = directory.add(FakeChannel("C2", delete_failures=5))
    store.upsert_race(TrackedRace(race_id="gone", version=1, announcement_msgs={"C2": "M1"}))

    await tracker.cleanup()

    assert channel.delete_attempts == 2
    assert channel.deleted == []
    assert store.races == []


@pytest.mark.asyncio
async def test_cleanup_listing_failure_keeps_races(tracker, race_api, store):
    store.upsert_race(TrackedRace(race_id="gone", version=1))
    race_api.fail_listing = True

    await tracker.cleanup()

    assert [r.race_id for r in store.races] == ["gone"]


@pytest.mark.asyncio
async def test_withdrawn_race_announcement_is_deleted(tracker, registry, race_api, directory, store):
    registry.add("S1", "C1", "game-a")
    race_api.publish(make_race(version=1))
    await tracker.refresh()

    race_api.withdraw("game-a/quick-race-1234")
    await tracker.cleanup()

    channel = directory.get_channel("C1")
    assert channel.deleted == [channel.posted[0][0]]
    assert store.races == []


@pytest.mark.asyncio
async def test_live_races_for_categories(tracker, race_api):
    race_api.publish(make_race(name="game-a/one-0001"))
    race_api.publish(make_race(name="game-b/two-0002", slug="game-b"))
    await tracker.refresh()

    assert [r.name for r in tracker.live_races_for_categories({"game-b"})] == ["game-b/two-0002"]
    assert tracker.live_races_for_categories(set()) == []


@pytest.mark.asyncio
async def test_announce_posts_without_author(tracker, directory):
    channel = directory.get_channel("C1")

    message_id = await tracker.announce(make_race(), channel)

    assert message_id == channel.posted[0][0]
    assert channel.posted[0][1].author.name is None
