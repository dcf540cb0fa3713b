"""Settings and quick time persistence for Quick Train Times.

Two flat JSON documents live in the integration's storage directory:

* ``settings.json``: ``{"freq": 60, "key": "...", "desired_len": 5}``
* ``qtt.json``: ``{"quick_times": [...], "deleted_ids": [...]}``

Both are created with defaults the first time they are loaded. All methods
here do blocking file I/O; callers on the event loop go through
``hass.async_add_executor_job``.
"""

import json
import logging
import random
from collections.abc import Iterable
from datetime import time
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .const import (
    ANY_DESTINATION,
    API_KEY_LENGTH,
    DAY_NAMES,
    DEFAULT_DESIRED_LEN,
    DEFAULT_FREQ,
    MAX_DESIRED_LEN,
    SENTINEL_API_KEY,
)

_LOGGER = logging.getLogger(__name__)

MAX_QUICK_TIME_ID = 999

# ===== Field validators =====


def validate_time(value: str) -> str:
    """Check a 24 hour clock time such as '07:45'."""
    if len(value) != 5:
        raise ValueError("incorrect length, should be 5 characters")
    if value[2] != ":":
        raise ValueError("not in HH:MM format")
    hours, minutes = value[:2], value[3:]
    if not (hours + minutes).isascii() or not (hours + minutes).isdigit():
        raise ValueError("not in HH:MM format")
    if int(hours) > 23 or int(minutes) > 59:
        raise ValueError("not a valid 24 hour time")
    return value


def validate_station_code(value: str) -> str:
    """Check the shape of a CRS code (does not check the station exists)."""
    if len(value) != 3:
        raise ValueError("incorrect length, should be 3 letters")
    if not (value.isascii() and value.isalpha() and value.isupper()):
        raise ValueError("should be 3 uppercase English letters")
    return value


def validate_api_key_format(value: str) -> str:
    """Keys are fixed length; nothing beyond the shape can be checked offline."""
    if len(value) != API_KEY_LENGTH or any(char.isspace() for char in value):
        raise ValueError(f"API key should be {API_KEY_LENGTH} characters with no spaces")
    return value


def parse_time(value: str) -> time:
    """Convert a validated 'HH:MM' string to a time."""
    return time(int(value[:2]), int(value[3:]))


def chosen_days(names: Iterable[str]) -> list[int]:
    """Map day names ('Sun'..'Sat') to sorted day numbers, ignoring unknown names."""
    return sorted({DAY_NAMES.index(name) for name in names if name in DAY_NAMES})


def day_names(days: Iterable[int]) -> list[str]:
    """Inverse of chosen_days."""
    return [DAY_NAMES[day] for day in sorted(set(days))]


# ===== Models =====


class Settings(BaseModel):
    """User settings. Fixed for the lifetime of a config entry."""

    freq: float = Field(default=DEFAULT_FREQ, gt=0)  # poll interval, seconds
    key: str = SENTINEL_API_KEY
    desired_len: int = Field(default=DEFAULT_DESIRED_LEN, ge=1, le=MAX_DESIRED_LEN)

    @field_validator("key")
    @classmethod
    def _key_format(cls, value: str) -> str:
        return validate_api_key_format(value)


class QuickTime(BaseModel):
    """A station pair watched on some weekdays between two clock times."""

    model_config = ConfigDict(frozen=True)

    id: int
    start: str
    end: str
    org: str
    dest: str  # CRS code or '*'
    days: list[int] = Field(default_factory=list)  # 0=Sunday .. 6=Saturday

    @field_validator("start", "end")
    @classmethod
    def _clock_time(cls, value: str) -> str:
        return validate_time(value)

    @field_validator("org")
    @classmethod
    def _origin(cls, value: str) -> str:
        return validate_station_code(value)

    @field_validator("dest")
    @classmethod
    def _destination(cls, value: str) -> str:
        if value == ANY_DESTINATION:
            return value
        return validate_station_code(value)

    @field_validator("days")
    @classmethod
    def _weekdays(cls, value: list[int]) -> list[int]:
        if any(day < 0 or day > 6 for day in value):
            raise ValueError("days must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(value))

    @property
    def start_time(self) -> time:
        return parse_time(self.start)

    @property
    def end_time(self) -> time:
        return parse_time(self.end)

    @property
    def label(self) -> str:
        """Short description for menus."""
        days = ",".join(day_names(self.days)) or "no days"
        return f"{self.org} → {self.dest} {self.start}-{self.end} ({days})"


class QuickTimeDocument(BaseModel):
    """Contents of qtt.json."""

    quick_times: list[QuickTime] = Field(default_factory=list)
    # Ids of removed quick times. Kept on disk, nothing reads it back.
    deleted_ids: list[int] = Field(default_factory=list)

    @field_validator("quick_times")
    @classmethod
    def _unique_ids(cls, value: list[QuickTime]) -> list[QuickTime]:
        ids = [qt.id for qt in value]
        if len(ids) != len(set(ids)):
            raise ValueError("quick time ids must be unique")
        return value


# ===== Exceptions =====


class StoreError(Exception):
    """Base exception for settings/quick time persistence."""


class QuickTimeNotFoundError(StoreError):
    """No quick time with the requested id."""


class DuplicateQuickTimeError(StoreError):
    """A quick time with this id already exists."""


# ===== File helpers =====


def _read_json(path: Path, default: dict[str, Any]) -> Any:
    """Read a JSON document, writing the default first if it is missing."""
    if not path.exists():
        _LOGGER.info("Creating %s with default contents", path)
        _write_json(path, default)
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as err:
        raise StoreError(f"Could not read {path}: {err}") from err


def _write_json(path: Path, data: dict[str, Any]) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    except OSError as err:
        raise StoreError(f"Could not write {path}: {err}") from err


# ===== Stores =====


class SettingsStore:
    """settings.json."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.settings = Settings()

    def load(self) -> Settings:
        """Load settings, creating the file with defaults on first run.

        Raises:
            StoreError: If the file is unreadable or holds invalid settings
        """
        raw = _read_json(self.path, Settings().model_dump())
        try:
            self.settings = Settings.model_validate(raw)
        except ValidationError as err:
            raise StoreError(f"Invalid settings in {self.path}: {err}") from err
        return self.settings

    def save(self, settings: Settings) -> None:
        _write_json(self.path, settings.model_dump())
        self.settings = settings


class QuickTimeStore:
    """Owner of the quick time list.

    One instance per config entry is shared by the coordinator (read every
    refresh) and the options flow (add/replace/delete, then save).
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._document = QuickTimeDocument()

    def load(self) -> None:
        """Load qtt.json, creating an empty one on first run.

        Raises:
            StoreError: If the file is unreadable or holds invalid quick times
        """
        raw = _read_json(self.path, QuickTimeDocument().model_dump())
        try:
            self._document = QuickTimeDocument.model_validate(raw)
        except ValidationError as err:
            raise StoreError(f"Invalid quick times in {self.path}: {err}") from err
        _LOGGER.debug("Loaded %d quick times from %s", len(self._document.quick_times), self.path)

    def save(self) -> None:
        _write_json(self.path, self._document.model_dump())

    def snapshot(self) -> QuickTimeDocument:
        """Copy of the current document, to hand back to restore() if a save fails."""
        return self._document.model_copy(deep=True)

    def restore(self, document: QuickTimeDocument) -> None:
        self._document = document

    @property
    def quick_times(self) -> list[QuickTime]:
        """Quick times in list order (a copy)."""
        return list(self._document.quick_times)

    @property
    def deleted_ids(self) -> list[int]:
        return list(self._document.deleted_ids)

    def get(self, qt_id: int) -> QuickTime:
        # linear search, the list is short and unsorted
        for qt in self._document.quick_times:
            if qt.id == qt_id:
                return qt
        raise QuickTimeNotFoundError(f"No quick time with id {qt_id}")

    def exists(self, qt_id: int) -> bool:
        try:
            self.get(qt_id)
        except QuickTimeNotFoundError:
            return False
        return True

    def new_id(self) -> int:
        """Pick an unused id in 1..999."""
        taken = {qt.id for qt in self._document.quick_times}
        if len(taken) >= MAX_QUICK_TIME_ID:
            raise StoreError("No free quick time ids")
        while True:
            candidate = random.randint(1, MAX_QUICK_TIME_ID)
            if candidate not in taken:
                return candidate

    def add(self, qt: QuickTime) -> None:
        if self.exists(qt.id):
            raise DuplicateQuickTimeError(f"Quick time {qt.id} already exists")
        self._document.quick_times.append(qt)

    def replace(self, qt_id: int, qt: QuickTime) -> None:
        """Swap the quick time with id qt_id for qt, keeping its position."""
        for idx, existing in enumerate(self._document.quick_times):
            if existing.id == qt_id:
                if qt.id != qt_id and self.exists(qt.id):
                    raise DuplicateQuickTimeError(f"Quick time {qt.id} already exists")
                self._document.quick_times[idx] = qt
                return
        raise QuickTimeNotFoundError(f"No quick time with id {qt_id}")

    def upsert(self, qt: QuickTime) -> None:
        if self.exists(qt.id):
            self.replace(qt.id, qt)
        else:
            self.add(qt)

    def delete(self, qt_id: int) -> None:
        """Remove a quick time and record its id in deleted_ids."""
        qt = self.get(qt_id)
        self._document.quick_times.remove(qt)
        self._document.deleted_ids.append(qt_id)
