"""Station (CRS) and train operator (TOC) code lookup."""

import json
import logging
from bisect import bisect_left
from collections.abc import Iterable
from pathlib import Path

from .const import ANY_DESTINATION, ANY_STATION_LABEL
from .store import validate_station_code

_LOGGER = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"
STATIONS_FILE = DATA_DIR / "stations.json"
OPERATORS_FILE = DATA_DIR / "tocs.json"


class UnknownCodeError(LookupError):
    """Code is not in the table."""


class CodeTable:
    """Code → name pairs, kept sorted by code for binary search."""

    def __init__(self, entries: Iterable[tuple[str, str]], version: str = "") -> None:
        pairs = sorted(entries)
        self.version = version
        self._codes = [code for code, _ in pairs]
        self._names = [name for _, name in pairs]

    def __len__(self) -> int:
        return len(self._codes)

    def find(self, code: str) -> str:
        """Name for code.

        Raises:
            UnknownCodeError: If code is not in the table
        """
        idx = bisect_left(self._codes, code)
        if idx < len(self._codes) and self._codes[idx] == code:
            return self._names[idx]
        raise UnknownCodeError(code)

    def __contains__(self, code: object) -> bool:
        if not isinstance(code, str):
            return False
        try:
            self.find(code)
        except UnknownCodeError:
            return False
        return True


def _load_table(path: Path, list_key: str, code_key: str) -> CodeTable:
    raw = json.loads(path.read_text(encoding="utf-8"))
    entries = [(item[code_key], item["Value"]) for item in raw[list_key]]
    _LOGGER.debug("Loaded %d codes from %s (version %s)", len(entries), path.name, raw.get("version"))
    return CodeTable(entries, version=raw.get("version", ""))


class CodeLookup:
    """Human-readable names for station and operator codes."""

    def __init__(self, stations: CodeTable, operators: CodeTable) -> None:
        self.stations = stations
        self.operators = operators

    @classmethod
    def from_bundled(cls) -> "CodeLookup":
        """Load the tables shipped with the integration (blocking I/O)."""
        return cls(
            _load_table(STATIONS_FILE, "StationList", "crs"),
            _load_table(OPERATORS_FILE, "TocList", "code"),
        )

    def station_name(self, crs: str) -> str:
        """Name for a CRS code; the wildcard maps to 'Any Station'.

        Raises:
            UnknownCodeError: If the station is not known
        """
        if crs == ANY_DESTINATION:
            return ANY_STATION_LABEL
        return self.stations.find(crs)

    def operator_name(self, code: str) -> str:
        """Name for a two letter operator code.

        Raises:
            UnknownCodeError: If the operator is not known
        """
        return self.operators.find(code)

    def display_station(self, crs: str) -> str:
        try:
            return self.station_name(crs)
        except UnknownCodeError:
            return f"Unknown station ({crs})"

    def display_operator(self, code: str) -> str:
        try:
            return self.operator_name(code)
        except UnknownCodeError:
            return f"Unknown operator ({code})"


def validate_crs(value: str, lookup: CodeLookup) -> str:
    """Check a CRS code is well formed and names a known station.

    Raises:
        ValueError: If the code is malformed
        UnknownCodeError: If no station has this code
    """
    validate_station_code(value)
    lookup.station_name(value)
    return value
