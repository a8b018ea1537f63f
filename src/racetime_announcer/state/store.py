"""
JSON-backed store for announcers and tracked races.

The store owns the single in-memory ``PersistedState``. Every other
component reads and mutates it through the methods here and calls
``commit()`` afterwards, so there is exactly one place that writes the file.
"""

import json
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from racetime_announcer.state.models import Announcer, PersistedState, TrackedRace
from racetime_announcer.utils.exceptions import StateStoreError
from racetime_announcer.utils.logging import get_logger


def backup_path_for(path: Path, now: Optional[datetime] = None) -> Path:
    """Return the dated backup location for a state file.

    ``config/state.json`` becomes ``config/state-2024-05-01T120000.123+0000.json``.
    """
    now = now or datetime.now(timezone.utc)
    stamp = now.isoformat(timespec="milliseconds").replace(":", "")
    return path.with_name(f"{path.stem}-{stamp}{path.suffix}")


class StateStore:
    """
    Persist announcers and tracked races to a JSON file.

    Attributes:
        path: Location of the canonical state document
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self.logger = get_logger(__name__)
        self._state = PersistedState()

    @property
    def state(self) -> PersistedState:
        return self._state

    def load(self) -> PersistedState:
        """
        Load state from disk, creating an empty document if none exists.

        When a file already exists it is first copied to a dated backup next
        to it. Malformed announcer or race entries are dropped with a
        warning, as are duplicates: a repeated (channel, category) announcer
        and every entry of a race but the one with the highest version.

        Returns:
            The loaded state, also held by the store

        Raises:
            StateStoreError: If the file is not valid JSON or not an object
        """
        if not self.path.exists():
            self.logger.info("No state file found, creating one", path=str(self.path))
            self._state = PersistedState()
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.commit()
            return self._state

        backup = backup_path_for(self.path)
        try:
            shutil.copyfile(self.path, backup)
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as e:
            raise StateStoreError(
                "Could not read state file",
                context={"path": str(self.path)},
                original_error=e,
            )
        except json.JSONDecodeError as e:
            raise StateStoreError(
                "State file is not valid JSON",
                context={"path": str(self.path), "backup": str(backup)},
                original_error=e,
            )

        if not isinstance(document, dict):
            raise StateStoreError(
                "State file must contain a JSON object",
                context={"path": str(self.path), "type": type(document).__name__},
            )

        self._state = PersistedState(
            announcers=self._unique_announcers(
                self._parse_entries(document.get("announcers"), Announcer)
            ),
            races=self._unique_races(self._parse_entries(document.get("races"), TrackedRace)),
        )
        self.logger.info(
            "Loaded state",
            path=str(self.path),
            backup=str(backup),
            announcers=len(self._state.announcers),
            races=len(self._state.races),
        )
        return self._state

    def _parse_entries(self, entries, model) -> list:
        if entries is None:
            return []
        if not isinstance(entries, list):
            self.logger.warning("Ignoring non-list state section", model=model.__name__)
            return []

        parsed = []
        for entry in entries:
            try:
                parsed.append(model.model_validate(entry))
            except ValidationError as e:
                self.logger.warning(
                    "Dropping malformed state entry",
                    model=model.__name__,
                    entry=entry,
                    error=str(e),
                )
        return parsed

    def _unique_announcers(self, announcers: List[Announcer]) -> List[Announcer]:
        """Keep the first announcer of every (channel, category) pair."""
        seen = set()
        unique = []
        for announcer in announcers:
            key = (announcer.channel, announcer.category)
            if key in seen:
                self.logger.warning(
                    "Dropping duplicate announcer",
                    channel=announcer.channel,
                    category=announcer.category,
                )
                continue
            seen.add(key)
            unique.append(announcer)
        return unique

    def _unique_races(self, races: List[TrackedRace]) -> List[TrackedRace]:
        """Keep one entry per race, the one with the highest version."""
        unique: Dict[str, TrackedRace] = {}
        for race in races:
            kept = unique.get(race.race_id)
            if kept is None:
                unique[race.race_id] = race
                continue
            self.logger.warning(
                "Dropping duplicate tracked race",
                race=race.race_id,
                versions=[kept.version, race.version],
            )
            if race.version > kept.version:
                unique[race.race_id] = race
        return list(unique.values())

    def commit(self) -> None:
        """
        Write the current state to disk.

        The write goes to a temporary file which then replaces the state
        file. Failures are logged and otherwise ignored; the in-memory state
        is left as is.
        """
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(self._state.to_document(), f, indent=4)
            os.replace(tmp, self.path)
            self.logger.debug("State committed", path=str(self.path))
        except OSError as e:
            self.logger.error("Could not write state file", path=str(self.path), error=str(e))

    # Announcers

    @property
    def announcers(self) -> List[Announcer]:
        return list(self._state.announcers)

    def add_announcer(self, announcer: Announcer) -> None:
        self._state.announcers.append(announcer)

    def remove_announcers_for_channel(self, channel: str) -> int:
        """Remove every announcer of a channel and return how many were removed."""
        kept = [a for a in self._state.announcers if a.channel != channel]
        removed = len(self._state.announcers) - len(kept)
        self._state.announcers = kept
        return removed

    # Tracked races

    @property
    def races(self) -> List[TrackedRace]:
        return list(self._state.races)

    def get_race(self, race_id: str) -> Optional[TrackedRace]:
        for tracked in self._state.races:
            if tracked.race_id == race_id:
                return tracked
        return None

    def upsert_race(self, race: TrackedRace) -> None:
        """Replace the tracked race with the same ID in place, or append it."""
        for index, tracked in enumerate(self._state.races):
            if tracked.race_id == race.race_id:
                self._state.races[index] = race
                return
        self._state.races.append(race)

    def remove_races(self, race_ids: Iterable[str]) -> int:
        doomed = set(race_ids)
        kept = [r for r in self._state.races if r.race_id not in doomed]
        removed = len(self._state.races) - len(kept)
        self._state.races = kept
        return removed
