"""Persistence of announcers and tracked races."""

from racetime_announcer.state.models import Announcer, PersistedState, TrackedRace
from racetime_announcer.state.store import StateStore

__all__ = [
    "Announcer",
    "PersistedState",
    "TrackedRace",
    "StateStore",
]
