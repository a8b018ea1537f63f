"""Queries and updates over the configured race announcers."""

from typing import List, Set

from racetime_announcer.state.models import Announcer
from racetime_announcer.state.store import StateStore


class AnnouncerRegistry:
    """
    View over ``state.announcers``.

    A ``(channel, category)`` pair is registered at most once. Mutating
    methods do not persist; callers commit the store afterwards.
    """

    def __init__(self, store: StateStore) -> None:
        self.store = store

    def categories_for_channel(self, channel: str) -> Set[str]:
        return {a.category for a in self.store.announcers if a.channel == channel}

    def channels_for_category(self, category: str) -> Set[str]:
        return {a.channel for a in self.store.announcers if a.category == category}

    def announcers_for_server(self, server: str) -> List[Announcer]:
        return [a for a in self.store.announcers if a.server == server]

    def all_announcers(self) -> List[Announcer]:
        return self.store.announcers

    def add(self, server: str, channel: str, category: str) -> bool:
        """
        Register a channel to announce a category.

        Returns:
            False if the channel already announces the category
        """
        if category in self.categories_for_channel(channel):
            return False
        self.store.add_announcer(
            Announcer(server=server, channel=channel, category=category)
        )
        return True

    def remove_for_channel(self, channel: str) -> int:
        return self.store.remove_announcers_for_channel(channel)
