"""racetime.gg API integration."""

from racetime_announcer.racetime.client import RaceApiClient
from racetime_announcer.racetime.models import (
    Category,
    RaceDetail,
    RaceGoal,
    RaceStatus,
    RaceSummary,
    RaceUser,
)

__all__ = [
    "RaceApiClient",
    "Category",
    "RaceDetail",
    "RaceGoal",
    "RaceStatus",
    "RaceSummary",
    "RaceUser",
]
