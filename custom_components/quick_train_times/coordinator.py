"""Data update coordinator for Quick Train Times."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from homeassistant.core import HomeAssistant
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from .api import RailDataAPIError, RailDataClient, TrainService
from .const import DOMAIN
from .lookup import CodeLookup
from .schedule import TooManyActiveQuickTimesError, resolve_active_quick_times, uk_now
from .store import QuickTime, QuickTimeStore, Settings

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Board:
    """Departures for one active quick time."""

    quick_time: QuickTime
    origin_name: str
    destination_name: str
    services: list[TrainService] = field(default_factory=list)
    error: str | None = None  # set when the fetch failed this pass


@dataclass(frozen=True)
class BoardData:
    """Result of one refresh pass: zero, one or two boards."""

    boards: list[Board]
    generated_at: datetime

    def board(self, slot: int) -> Board | None:
        """Board shown in a slot (0-based), if that slot is in use."""
        if slot < len(self.boards):
            return self.boards[slot]
        return None


class QuickTrainTimesCoordinator(DataUpdateCoordinator[BoardData]):
    """Resolve active quick times and fetch their boards on every tick."""

    def __init__(
        self,
        hass: HomeAssistant,
        client: RailDataClient,
        settings: Settings,
        quick_times: QuickTimeStore,
        lookup: CodeLookup,
    ) -> None:
        """Initialize coordinator; the poll interval comes from settings."""
        self.client = client
        self.settings = settings
        self.quick_times = quick_times
        self.lookup = lookup

        super().__init__(
            hass,
            _LOGGER,
            name=DOMAIN,
            update_interval=timedelta(seconds=settings.freq),
        )

    async def _async_update_data(self) -> BoardData:
        """Fetch one board per active quick time, in quick time order."""
        now = uk_now()
        active = resolve_active_quick_times(self.quick_times.quick_times, now)

        try:
            active.check()
        except TooManyActiveQuickTimesError as err:
            _LOGGER.error("Quick time selection returned too many matches: %s", err)
            raise UpdateFailed(f"Error selecting quick times: {err}") from err

        if active.count == 0:
            _LOGGER.debug("No quick times active at %s", now.strftime("%H:%M"))
            return BoardData(boards=[], generated_at=now)

        # One request at a time, so boards come back in slot order
        boards = [await self._fetch_board(qt) for qt in active.quick_times]
        return BoardData(boards=boards, generated_at=now)

    async def _fetch_board(self, qt: QuickTime) -> Board:
        """Fetch a single board; API failures are kept on the board, not raised."""
        origin_name = self.lookup.display_station(qt.org)
        destination_name = self.lookup.display_station(qt.dest)

        _LOGGER.debug(
            "Fetching departures %s -> %s (rows=%d)",
            qt.org,
            qt.dest,
            self.settings.desired_len,
        )
        try:
            response = await self.client.get_departure_board(
                origin=qt.org,
                dest=qt.dest,
                num_rows=self.settings.desired_len,
            )
        except RailDataAPIError as err:
            _LOGGER.warning("Could not fetch departures %s -> %s: %s", qt.org, qt.dest, err)
            return Board(qt, origin_name, destination_name, error=str(err))

        services = response.train_services[: self.settings.desired_len]
        _LOGGER.debug("%d services from %s", len(services), qt.org)
        return Board(qt, origin_name, destination_name, services=services)
