"""
Persisted state models.

The state file keeps the key names of the original bot's ``state.json``
(``announcers``, ``races``, and per race ``race``, ``version``,
``announcementMsgs``) so existing files keep loading. Discord IDs are kept as
strings, exactly as they appear in the file.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Announcer(BaseModel):
    """A standing subscription of one channel to one race category."""

    server: str
    channel: str
    category: str

    @field_validator("server", "channel", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        return v


class TrackedRace(BaseModel):
    """
    The last seen version of a race and where it has been announced.

    Attributes:
        race_id: racetime.gg race name, e.g. ``ootr/clever-link-1234``
        version: Race version at the last reconciliation
        announcement_msgs: Channel ID to announcement message ID
    """

    model_config = ConfigDict(populate_by_name=True)

    race_id: str = Field(alias="race")
    version: int = 0
    announcement_msgs: Dict[str, str] = Field(
        default_factory=dict, alias="announcementMsgs"
    )

    @field_validator("announcement_msgs", mode="before")
    @classmethod
    def default_messages(cls, v: Any) -> Any:
        # Older or hand-edited files may have null or a non-object here
        if not isinstance(v, dict):
            return {}
        return {str(k): str(m) for k, m in v.items() if m is not None}


class PersistedState(BaseModel):
    """The whole state document."""

    announcers: List[Announcer] = Field(default_factory=list)
    races: List[TrackedRace] = Field(default_factory=list)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
