"""Utility modules for the racetime.gg announcer bot."""

from racetime_announcer.utils.exceptions import (
    RaceAnnouncerError,
    ConfigurationError,
    RaceAPIError,
    StateStoreError,
    DiscordAPIError,
)
from racetime_announcer.utils.logging import setup_logging

__all__ = [
    "RaceAnnouncerError",
    "ConfigurationError",
    "RaceAPIError",
    "StateStoreError",
    "DiscordAPIError",
    "setup_logging",
]
