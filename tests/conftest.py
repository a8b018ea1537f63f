"""Test configuration and utilities."""

import re
from typing import Dict, List, Optional, Set

import pytest

from racetime_announcer.config import RacetimeConfig
from racetime_announcer.core.registry import AnnouncerRegistry
from racetime_announcer.core.tracker import RaceTracker
from racetime_announcer.racetime.models import RaceDetail, RaceSummary
from racetime_announcer.state.store import StateStore
from racetime_announcer.utils.exceptions import DiscordAPIError, RaceAPIError


class FakeChannel:
    """Stands in for ChannelHandle, recording every call."""

    def __init__(
        self,
        channel_id: str,
        fail_post: bool = False,
        fail_edit: bool = False,
        delete_failures: int = 0,
    ) -> None:
        self.id = channel_id
        self.mention = f"<#{channel_id}>"
        self.guild_name = "Test Server"
        self.fail_post = fail_post
        self.fail_edit = fail_edit
        self.delete_failures = delete_failures
        self.posted: List[tuple] = []
        self.edited: List[tuple] = []
        self.deleted: List[str] = []
        self.delete_attempts = 0

    async def post(self, embed) -> str:
        if self.fail_post:
            raise DiscordAPIError("post failed")
        message_id = f"{self.id}-msg-{len(self.posted) + 1}"
        self.posted.append((message_id, embed))
        return message_id

    async def edit(self, message_id: str, embed) -> None:
        if self.fail_edit:
            raise DiscordAPIError("edit failed")
        self.edited.append((message_id, embed))

    async def delete(self, message_id: str) -> None:
        self.delete_attempts += 1
        if self.delete_attempts <= self.delete_failures:
            raise DiscordAPIError("delete failed")
        self.deleted.append(message_id)


class FakeDirectory:
    """Stands in for ChannelDirectory."""

    def __init__(self, *channels: FakeChannel) -> None:
        self.channels: Dict[str, FakeChannel] = {c.id: c for c in channels}

    def add(self, channel: FakeChannel) -> FakeChannel:
        self.channels[channel.id] = channel
        return channel

    def get_channel(self, channel_id: str) -> Optional[FakeChannel]:
        return self.channels.get(channel_id)

    def resolve_channel(self, mention: Optional[str]) -> Optional[FakeChannel]:
        match = re.match(r"^<#!?(\d+)>$", mention or "")
        return self.get_channel(match.group(1)) if match else None


class FakeRaceApi:
    """Stands in for RaceApiClient with in-memory documents."""

    def __init__(self) -> None:
        self.races: List[RaceSummary] = []
        self.details: Dict[str, Optional[RaceDetail]] = {}
        self.categories: Dict[str, object] = {}
        self.fail_listing = False
        self.detail_requests: List[str] = []
        # Listed by name only; too malformed to become a RaceSummary
        self.unparsed_names: Set[str] = set()

    def publish(self, race: RaceDetail) -> None:
        """Make a race live, replacing any earlier version."""
        self.details[race.name] = race
        if not any(s.name == race.name for s in self.races):
            self.races.append(summary_for(race))

    def withdraw(self, name: str) -> None:
        self.races = [s for s in self.races if s.name != name]
        self.details.pop(name, None)

    async def list_races(self) -> List[RaceSummary]:
        if self.fail_listing:
            raise RaceAPIError("listing failed")
        return list(self.races)

    async def list_race_names(self) -> Set[str]:
        if self.fail_listing:
            raise RaceAPIError("listing failed")
        return {s.name for s in self.races} | self.unparsed_names

    async def fetch_race_detail(self, race) -> Optional[RaceDetail]:
        name = race.name if isinstance(race, RaceSummary) else race
        self.detail_requests.append(name)
        return self.details.get(name)

    async def fetch_category(self, slug):
        if not slug:
            return None
        return self.categories.get(slug.lower())


def make_race(
    name: str = "game-a/quick-race-1234",
    slug: str = "game-a",
    version: int = 1,
    **overrides,
) -> RaceDetail:
    """Build a race document shaped like racetime.gg's."""
    document = {
        "name": name,
        "version": version,
        "url": f"/{name}",
        "data_url": f"/{name}/data",
        "status": {
            "value": "open",
            "verbose_value": "Open",
            "help_text": "Anyone may join this race",
        },
        "goal": {"name": "Any%", "custom": False},
        "category": {
            "name": slug.replace("-", " ").title(),
            "short_name": slug.upper(),
            "slug": slug,
            "url": f"/{slug}",
            "data_url": f"/{slug}/data",
            "image": None,
        },
        "entrants_count": 3,
        "entrants_count_inactive": 1,
        "opened_by": {"id": "u1", "full_name": "Runner#1234", "avatar": None},
    }
    document.update(overrides)
    return RaceDetail.model_validate(document)


def summary_for(race: RaceDetail) -> RaceSummary:
    return RaceSummary(
        name=race.name,
        data_url=f"{race.url}/data",
        url=race.url,
        category=race.category,
    )


@pytest.fixture
def racetime_config() -> RacetimeConfig:
    return RacetimeConfig(base_url="https://racetime.gg", delete_retry_delay=0)


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / "config" / "state.json"


@pytest.fixture
def store(state_path) -> StateStore:
    store = StateStore(state_path)
    store.load()
    return store


@pytest.fixture
def registry(store) -> AnnouncerRegistry:
    return AnnouncerRegistry(store)


@pytest.fixture
def race_api() -> FakeRaceApi:
    return FakeRaceApi()


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory(FakeChannel("C1"))


@pytest.fixture
def tracker(race_api, store, registry, directory, racetime_config) -> RaceTracker:
    return RaceTracker(
        api=race_api,
        store=store,
        registry=registry,
        directory=directory,
        config=racetime_config,
    )
