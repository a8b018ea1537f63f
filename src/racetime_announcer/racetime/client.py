"""
racetime.gg API client.

This module provides an async HTTP client for the public racetime.gg data
endpoints: the live race listing, individual race documents and category
documents. The client performs no retries; the polling loops simply try
again on their next tick.
"""

import asyncio
import json
import re
import time
from typing import Any, List, Optional, Set, Union

import aiohttp
from pydantic import ValidationError

from racetime_announcer import __version__
from racetime_announcer.config import RacetimeConfig
from racetime_announcer.racetime.models import Category, RaceDetail, RaceSummary
from racetime_announcer.utils.exceptions import RaceAPIError
from racetime_announcer.utils.logging import (
    get_logger,
    log_api_request,
    log_api_response,
    generate_correlation_id,
)

SLUG_PATTERN = re.compile(r"^[A-Za-z0-9\-_]+$")


class RaceApiClient:
    """
    HTTP client for racetime.gg.

    ``list_races`` raises ``RaceAPIError`` on failure so callers can skip a
    whole pass; ``fetch_race_detail`` and ``fetch_category`` return ``None``
    instead, since their callers treat a missing document as "no usable
    data".

    Attributes:
        config: racetime.gg configuration settings
        session: Async HTTP session for API calls
    """

    def __init__(self, config: RacetimeConfig) -> None:
        self.config = config
        self.logger = get_logger(__name__)
        self.session: Optional[aiohttp.ClientSession] = None
        self._closed = False

    @property
    def base_url(self) -> str:
        return self.config.base_url

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """
        Ensure that we have an active HTTP session.

        Raises:
            RaceAPIError: If the client has been closed
        """
        if self._closed:
            raise RaceAPIError("racetime.gg client has been closed")

        if self.session is None or self.session.closed:
            headers = {
                "Accept": "application/json",
                "User-Agent": f"racetime-announcer/{__version__}",
            }
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)

            self.session = aiohttp.ClientSession(
                headers=headers,
                timeout=timeout,
                raise_for_status=False,
            )
            self.logger.debug("Created new HTTP session for racetime.gg client")

        return self.session

    async def _get_json(self, path: str) -> Any:
        """
        GET a JSON document from racetime.gg.

        Args:
            path: Path relative to the configured base URL

        Returns:
            The decoded JSON body

        Raises:
            RaceAPIError: On transport failure, timeout, non-200 status or
                undecodable body
        """
        url = self.base_url + path
        correlation_id = generate_correlation_id()
        log_api_request(url, correlation_id)

        started = time.monotonic()
        try:
            session = await self._ensure_session()
            async with session.get(url) as response:
                body = await response.text()
                log_api_response(
                    url,
                    response.status,
                    (time.monotonic() - started) * 1000,
                    size=len(body.encode("utf-8")),
                    correlation_id=correlation_id,
                )

                if response.status != 200:
                    raise RaceAPIError(
                        f"racetime.gg returned HTTP {response.status}",
                        context={
                            "url": url,
                            "status_code": response.status,
                            "response_text": body[:300],
                        },
                    )

                try:
                    return json.loads(body)
                except json.JSONDecodeError as e:
                    raise RaceAPIError(
                        "Failed to parse racetime.gg response",
                        context={"url": url, "response_text": body[:300]},
                        original_error=e,
                    )

        except aiohttp.ClientError as e:
            log_api_response(
                url, 0, (time.monotonic() - started) * 1000,
                error=str(e), correlation_id=correlation_id,
            )
            raise RaceAPIError(
                "Failed to communicate with racetime.gg",
                context={"url": url, "error_type": type(e).__name__},
                original_error=e,
            )
        except asyncio.TimeoutError as e:
            log_api_response(
                url, 0, (time.monotonic() - started) * 1000,
                error="timeout", correlation_id=correlation_id,
            )
            raise RaceAPIError(
                "racetime.gg request timed out",
                context={"url": url, "timeout": self.config.timeout},
                original_error=e,
            )

    async def _race_entries(self) -> List[Any]:
        data = await self._get_json("/races/data")
        if not isinstance(data, dict) or not isinstance(data.get("races"), list):
            raise RaceAPIError(
                "Unexpected race listing document",
                context={"type": type(data).__name__},
            )
        return data["races"]

    async def list_races(self) -> List[RaceSummary]:
        """
        Fetch the list of currently open races.

        Returns:
            Race summaries in the order racetime.gg lists them

        Raises:
            RaceAPIError: If the listing cannot be fetched or is malformed
        """
        races: List[RaceSummary] = []
        for entry in await self._race_entries():
            try:
                races.append(RaceSummary.model_validate(entry))
            except ValidationError as e:
                self.logger.warning("Ignoring malformed race summary", error=str(e))
        return races

    async def list_race_names(self) -> Set[str]:
        """
        Fetch the names of all currently open races.

        Unlike ``list_races`` this keeps entries that carry a name but are
        otherwise malformed, so a race is never mistaken for finished just
        because its summary could not be parsed.

        Raises:
            RaceAPIError: If the listing cannot be fetched or is malformed
        """
        return {
            entry["name"]
            for entry in await self._race_entries()
            if isinstance(entry, dict) and isinstance(entry.get("name"), str)
        }

    async def fetch_race_detail(
        self, race: Union[RaceSummary, str]
    ) -> Optional[RaceDetail]:
        """
        Fetch the full document of one race.

        Args:
            race: A race summary, or the race's data URL path

        Returns:
            The race document, or None if it could not be fetched or is
            missing required fields
        """
        data_url = race.data_url if isinstance(race, RaceSummary) else race
        try:
            data = await self._get_json(data_url)
            return RaceDetail.model_validate(data)
        except RaceAPIError as e:
            self.logger.warning("Could not fetch race detail", data_url=data_url, error=str(e))
        except ValidationError as e:
            self.logger.warning("Race detail is malformed", data_url=data_url, error=str(e))
        return None

    async def fetch_category(self, slug: Optional[str]) -> Optional[Category]:
        """
        Look up a category by its slug.

        Slugs that are not plain alphanumeric/hyphen/underscore strings are
        rejected without making a request.

        Args:
            slug: Category slug as typed by a user, case-insensitive

        Returns:
            The category, or None if the slug is invalid or unknown
        """
        if not isinstance(slug, str) or not SLUG_PATTERN.match(slug):
            return None

        try:
            data = await self._get_json(f"/{slug.lower()}/data")
            return Category.model_validate(data)
        except RaceAPIError as e:
            self.logger.info("Category lookup failed", slug=slug, error=str(e))
        except ValidationError as e:
            self.logger.warning("Category document is malformed", slug=slug, error=str(e))
        return None

    async def close(self) -> None:
        """Close the HTTP session and clean up resources."""
        if not self._closed:
            if self.session and not self.session.closed:
                await self.session.close()
            self._closed = True
            self.logger.debug("racetime.gg client closed")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
