"""
Race tracking and announcement reconciliation.

Each refresh pass walks the live race listing, fetches every race document
one at a time and brings the announcement messages in subscribed channels
up to date with it. A race's ``version`` is remembered so unchanged races
cost one detail fetch and nothing else. A separate, less frequent cleanup
pass deletes the announcements of races that have left the listing.

Per race, across passes::

    unseen    -> announced   first seen, posted to every subscribed channel
    announced -> announced   version advanced, messages edited in place
    announced -> removed     missing from the listing, messages deleted
"""

from typing import Iterable, List, Optional

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from racetime_announcer.bot.channels import ChannelHandle
from racetime_announcer.bot.embeds import build_race_embed
from racetime_announcer.config import RacetimeConfig
from racetime_announcer.core.registry import AnnouncerRegistry
from racetime_announcer.racetime.models import RaceDetail, RaceSummary
from racetime_announcer.state.models import TrackedRace
from racetime_announcer.state.store import StateStore
from racetime_announcer.utils.exceptions import DiscordAPIError, RaceAPIError
from racetime_announcer.utils.logging import get_logger, polling_pass


class RaceTracker:
    """
    Reconcile live racetime.gg races with posted announcements.

    Attributes:
        current_races: Race listing from the last successful refresh
    """

    def __init__(
        self,
        api,
        store: StateStore,
        registry: AnnouncerRegistry,
        directory,
        config: RacetimeConfig,
    ) -> None:
        """
        Args:
            api: racetime.gg client (``RaceApiClient`` or compatible)
            store: State store shared with the announcer registry
            registry: Announcer lookups
            directory: Channel resolver (``ChannelDirectory`` or compatible)
            config: Polling configuration
        """
        self.api = api
        self.store = store
        self.registry = registry
        self.directory = directory
        self.config = config
        self.logger = get_logger(__name__)
        self.current_races: List[RaceSummary] = []

    def build_embed(self, race: RaceDetail, include_author: bool):
        return build_race_embed(race, include_author, self.config.base_url)

    async def refresh(self) -> None:
        """Run one reconciliation pass over the live race listing."""
        with polling_pass("refresh"):
            try:
                summaries = await self.api.list_races()
            except RaceAPIError as e:
                self.logger.warning(
                    "Race listing unavailable, skipping refresh",
                    error=str(e),
                )
                return

            self.current_races = summaries

            # One detail fetch at a time; a failure only affects its own race
            for summary in summaries:
                race = await self.api.fetch_race_detail(summary)
                if race is None:
                    self.logger.info(
                        "No usable data for race, skipping",
                        race=summary.name,
                    )
                    continue
                await self.reconcile(race)

    async def reconcile(self, race: RaceDetail) -> bool:
        """
        Bring the announcements of one race up to date.

        Returns:
            False if the stored version was already current and nothing was
            done
        """
        tracked = self.store.get_race(race.name)
        if tracked is not None and tracked.version >= race.version:
            return False

        messages = dict(tracked.announcement_msgs) if tracked else {}
        embed = self.build_embed(race, include_author=True)

        for channel_id in sorted(self.registry.channels_for_category(race.category.slug)):
            handle = self.directory.get_channel(channel_id)
            if handle is None:
                self.logger.debug("Announcer channel not visible", channel_id=channel_id)
                continue

            if channel_id in messages:
                try:
                    await handle.edit(messages[channel_id], embed)
                except DiscordAPIError as e:
                    self.logger.warning(
                        "Could not update announcement",
                        race=race.name,
                        channel_id=channel_id,
                        error=str(e),
                    )
                    del messages[channel_id]
            else:
                try:
                    messages[channel_id] = await handle.post(embed)
                    self.logger.info("Announced race", race=race.name, channel_id=channel_id)
                except DiscordAPIError as e:
                    self.logger.warning(
                        "Could not announce race",
                        race=race.name,
                        channel_id=channel_id,
                        error=str(e),
                    )

        self.store.upsert_race(
            TrackedRace(race_id=race.name, version=race.version, announcement_msgs=messages)
        )
        self.store.commit()
        return True

    async def cleanup(self) -> None:
        """Delete announcements of races that are no longer live and forget them."""
        with polling_pass("cleanup"):
            try:
                live = await self.api.list_race_names()
            except RaceAPIError as e:
                self.logger.warning(
                    "Race listing unavailable, skipping cleanup",
                    error=str(e),
                )
                return

            finished = [tracked for tracked in self.store.races if tracked.race_id not in live]

            for tracked in finished:
                for channel_id, message_id in tracked.announcement_msgs.items():
                    handle = self.directory.get_channel(channel_id)
                    if handle is None:
                        continue
                    await self.remove_announcement(handle, message_id)

            removed = self.store.remove_races(tracked.race_id for tracked in finished)
            self.store.commit()
            if removed:
                self.logger.info("Removed finished races", count=removed)

    async def remove_announcement(self, handle: ChannelHandle, message_id: str) -> bool:
        """
        Delete one announcement, retrying once after ``delete_retry_delay``.

        Returns:
            True if the message was deleted
        """
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(2),
                wait=wait_fixed(self.config.delete_retry_delay),
                retry=retry_if_exception_type(DiscordAPIError),
                reraise=True,
            ):
                with attempt:
                    await handle.delete(message_id)
        except DiscordAPIError as e:
            self.logger.error(
                "Giving up on removing announcement",
                channel_id=handle.id,
                message_id=message_id,
                error=str(e),
            )
            return False
        return True

    def live_races_for_categories(self, categories: Iterable[str]) -> List[RaceSummary]:
        """Races from the last refresh whose category is one of ``categories``."""
        wanted = set(categories)
        return [race for race in self.current_races if race.category_slug in wanted]

    async def announce(
        self, race: RaceDetail, handle: ChannelHandle, include_author: bool = False
    ) -> Optional[str]:
        """Post a one-off announcement that is not tracked for edits."""
        try:
            return await handle.post(self.build_embed(race, include_author))
        except DiscordAPIError as e:
            self.logger.warning("Could not post race", race=race.name, channel_id=handle.id, error=str(e))
            return None
