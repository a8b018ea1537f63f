"""
Exceptions raised by the racetime.gg announcer bot.

Every error carries a message, a dict of context for the logs and, when it
wraps a lower level failure, the original exception. Catch
``RaceAnnouncerError`` to handle any of them.
"""

from typing import Any, Dict, Optional


class RaceAnnouncerError(Exception):
    """
    Base class for announcer errors.

    Attributes:
        message: Human-readable error message
        context: Extra fields worth logging alongside the message
        original_error: The wrapped exception, if any
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def __str__(self) -> str:
        parts = [self.message]
        if self.context:
            parts.append("(Context: " + ", ".join(f"{k}={v}" for k, v in self.context.items()) + ")")
        if self.original_error:
            parts.append(f"(Caused by: {self.original_error})")
        return " ".join(parts)


class ConfigurationError(RaceAnnouncerError):
    """The bot cannot start with the given configuration or state file."""


class RaceAPIError(RaceAnnouncerError):
    """
    A racetime.gg request failed.

    Covers unreachable hosts, timeouts, non-200 responses and bodies that are
    not the expected JSON document.

    Example:
        ```python
        try:
            races = await api.list_races()
        except RaceAPIError as e:
            logger.warning("Skipping pass", error=str(e))
        ```
    """


class StateStoreError(RaceAnnouncerError):
    """
    The persisted state document cannot be read.

    Only raised while loading; failed writes are logged instead.
    """


class DiscordAPIError(RaceAnnouncerError):
    """Posting, editing or deleting an announcement message failed."""
