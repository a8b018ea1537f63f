"""Announcer registry and race reconciliation."""

from racetime_announcer.core.registry import AnnouncerRegistry
from racetime_announcer.core.tracker import RaceTracker

__all__ = ["AnnouncerRegistry", "RaceTracker"]
