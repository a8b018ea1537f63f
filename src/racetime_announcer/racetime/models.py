"""
Data models for racetime.gg API documents.

racetime.gg publishes race listings, race details and category details as
JSON. These Pydantic models describe the subset of those documents the bot
uses; unknown keys are ignored so upstream additions do not break parsing.
"""

from typing import Optional

from pydantic import BaseModel, Field


class Category(BaseModel):
    """
    A race category (game or ruleset), addressed by its URL slug.

    Returned both embedded in race documents and by the category data
    endpoint.
    """

    name: str = Field(description="Display name of the category")
    slug: str = Field(description="URL-safe category identifier")
    short_name: Optional[str] = None
    url: Optional[str] = None
    data_url: Optional[str] = None
    image: Optional[str] = Field(
        default=None,
        description="Absolute URL of the category artwork"
    )


class RaceGoal(BaseModel):
    """The goal a race is run for."""

    name: str
    custom: bool = False


class RaceStatus(BaseModel):
    """Current status of a race room."""

    value: str
    verbose_value: Optional[str] = None
    help_text: str = ""


class RaceUser(BaseModel):
    """A racetime.gg user, as embedded in race documents."""

    full_name: str
    name: Optional[str] = None
    id: Optional[str] = None
    avatar: Optional[str] = None


class RaceSummary(BaseModel):
    """
    One entry of the live race listing.

    Attributes:
        name: Stable race identifier, e.g. ``ootr/clever-link-1234``
        data_url: Path of the full race document, relative to the site root
        category: Category of the race, when included in the listing
    """

    name: str
    data_url: str
    url: Optional[str] = None
    status: Optional[RaceStatus] = None
    category: Optional[Category] = None

    @property
    def category_slug(self) -> Optional[str]:
        return self.category.slug if self.category else None


class RaceDetail(BaseModel):
    """
    A full race document.

    ``version`` is bumped by racetime.gg on every meaningful change to the
    race, which lets the tracker skip races that have not changed since the
    previous pass.
    """

    name: str = Field(description="Stable race identifier")
    version: int = Field(ge=0)
    url: str = Field(description="Race room path relative to the site root")
    status: RaceStatus
    goal: RaceGoal
    category: Category
    entrants_count: int = 0
    entrants_count_inactive: int = 0
    opened_by: Optional[RaceUser] = None

    def absolute_url(self, base_url: str) -> str:
        """Return the canonical race room URL on the given site."""
        if self.url.startswith(("http://", "https://")):
            return self.url
        return base_url.rstrip("/") + self.url
