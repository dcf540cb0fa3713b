"""Live departure board (LDBWS) client for Quick Train Times."""

import asyncio
import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .const import (
    ANY_DESTINATION,
    DEPARTURE_BOARD_URL,
    KEY_CHECK_STATION,
    PLATFORM_PLACEHOLDER,
    SENTINEL_API_KEY,
)

_LOGGER = logging.getLogger(__name__)

# ===== Data Models =====


class ServiceLocation(BaseModel):
    """Origin or destination of a service."""

    model_config = ConfigDict(populate_by_name=True)

    location_name: str = Field(alias="locationName")
    crs: str


class TrainService(BaseModel):
    """One row of a departure board."""

    model_config = ConfigDict(populate_by_name=True)

    std: str  # scheduled departure, "HH:MM"
    etd: str  # "On time", "Delayed", "Cancelled" or "HH:MM"
    platform: str = PLATFORM_PLACEHOLDER
    operator: str
    operator_code: str = Field(alias="operatorCode")
    destination: list[ServiceLocation] = Field(min_length=1)

    @field_validator("platform", mode="before")
    @classmethod
    def _platform_placeholder(cls, value: Any) -> Any:
        """Platforms come through as null until they are announced."""
        return PLATFORM_PLACEHOLDER if value is None else value

    @property
    def destination_name(self) -> str:
        """Name of the first destination."""
        return self.destination[0].location_name

    @property
    def destination_crs(self) -> str:
        """CRS code of the first destination."""
        return self.destination[0].crs


class DepartureBoard(BaseModel):
    """Response from GetDepartureBoard."""

    model_config = ConfigDict(populate_by_name=True)

    location_name: str | None = Field(default=None, alias="locationName")
    crs: str | None = None
    train_services: list[TrainService] = Field(default_factory=list, alias="trainServices")

    @field_validator("train_services", mode="before")
    @classmethod
    def _no_services(cls, value: Any) -> Any:
        # The API sends null rather than [] when nothing is running
        return [] if value is None else value


# ===== Exceptions =====


class RailDataAPIError(Exception):
    """Base exception for departure board API errors."""


class AuthenticationError(RailDataAPIError):
    """Invalid API key."""


class CannotConnectError(RailDataAPIError):
    """Transport failure before any response arrived."""


class ServiceDecodeError(RailDataAPIError):
    """Response body did not have the expected shape."""


# ===== Helpers =====


def format_params(names: list[str], values: list[str]) -> str:
    """Build a query string from parallel name/value lists.

    Returns "" for no parameters, otherwise "?n1=v1&n2=v2" in input order.

    Raises:
        ValueError: If the lists differ in length
    """
    if len(names) != len(values):
        raise ValueError(
            f"Got {len(names)} parameter names but {len(values)} values"
        )
    if not names:
        return ""
    return "?" + "&".join(f"{name}={value}" for name, value in zip(names, values))


def board_params(dest: str, num_rows: int) -> tuple[list[str], list[str]]:
    """Query parameters for a board filtered to services calling at dest."""
    names: list[str] = []
    values: list[str] = []
    if dest != ANY_DESTINATION:
        names += ["filterCrs", "filterType"]
        values += [dest.strip().upper(), "to"]
    names.append("numRows")
    values.append(str(num_rows))
    return names, values


def parse_departure_board(payload: Any) -> DepartureBoard:
    """Decode a GetDepartureBoard body.

    Raises:
        ServiceDecodeError: If a required field is missing or mistyped
    """
    try:
        return DepartureBoard.model_validate(payload)
    except ValidationError as err:
        raise ServiceDecodeError(f"Unexpected departure board payload: {err}") from err


# ===== Client =====


class RailDataClient:
    """Departure board client keyed with a Rail Data Marketplace API key."""

    def __init__(self, api_key: str, base_url: str = DEPARTURE_BOARD_URL) -> None:
        """
        Initialize departure board client.

        Args:
            api_key: Rail Data Marketplace consumer key
            base_url: Board endpoint, the origin CRS code is appended to it
        """
        self.api_key = api_key
        self.base_url = base_url
        self._client: httpx.AsyncClient | None = None

    @property
    def is_offline(self) -> bool:
        """True when the placeholder key is configured."""
        return self.api_key == SENTINEL_API_KEY

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client is created (lazy initialization to avoid blocking).

        httpx.AsyncClient.__init__() loads SSL certificates synchronously, so it
        is built in a worker thread.
        """
        if self._client is None:
            self._client = await asyncio.to_thread(lambda: httpx.AsyncClient(timeout=10.0))
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()

    async def _request(self, url: str) -> Any:
        """
        Make an API request.

        Args:
            url: Full request URL including the query string

        Returns:
            Decoded JSON body

        Raises:
            RailDataAPIError: On non-2xx responses
            CannotConnectError: On transport errors
            AuthenticationError: If the API key is rejected
            ServiceDecodeError: If the body is not JSON
        """
        client = await self._ensure_client()
        try:
            response = await client.get(url, headers={"x-apikey": self.api_key})
        except httpx.HTTPError as err:
            raise CannotConnectError(f"Request failed: {err}") from err

        if response.status_code in (401, 403):
            raise AuthenticationError("Invalid API key")

        if not response.is_success:
            raise RailDataAPIError(f"HTTP error {response.status_code}")

        try:
            return response.json()
        except ValueError as err:
            raise ServiceDecodeError("Response body is not JSON") from err

    async def get_departure_board(
        self,
        origin: str,
        dest: str = ANY_DESTINATION,
        num_rows: int = 10,
    ) -> DepartureBoard:
        """Get the next departures from a station.

        Args:
            origin: CRS code of the departure station (e.g. 'RDG')
            dest: CRS code services must call at, or '*' for any
            num_rows: Maximum number of services to return

        Returns:
            DepartureBoard, empty when the placeholder key is configured"""
        origin = origin.strip().upper()
        if self.is_offline:
            _LOGGER.debug("Placeholder API key, not requesting board for %s", origin)
            return DepartureBoard()

        names, values = board_params(dest, num_rows)
        url = f"{self.base_url}{origin}{format_params(names, values)}"

        data = await self._request(url)
        return parse_departure_board(data)

    async def validate_api_key(self) -> bool:
        """
        Validate API key by making a test request.

        Returns:
            True if API key is valid

        Raises:
            AuthenticationError: If API key is invalid
            CannotConnectError: If the API could not be reached
        """
        if self.is_offline:
            return True
        try:
            await self.get_departure_board(KEY_CHECK_STATION, num_rows=1)
            return True
        except (AuthenticationError, CannotConnectError):
            raise
        except RailDataAPIError:
            # Other API errors still mean the key was accepted
            return True


__all__ = [
    "AuthenticationError",
    "CannotConnectError",
    "DepartureBoard",
    "RailDataAPIError",
    "RailDataClient",
    "ServiceDecodeError",
    "ServiceLocation",
    "TrainService",
    "board_params",
    "format_params",
    "parse_departure_board",
]
