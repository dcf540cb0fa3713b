"""Departure board sensors for Quick Train Times."""

from homeassistant.components.sensor import SensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .api import TrainService
from .const import DOMAIN, MAX_ACTIVE_QUICK_TIMES
from .coordinator import Board, QuickTrainTimesCoordinator
from .lookup import CodeLookup


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up sensors from config entry - one per board slot."""
    coordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    async_add_entities(
        QuickTimeSlotSensor(coordinator, entry, slot) for slot in range(MAX_ACTIVE_QUICK_TIMES)
    )


def service_row(service: TrainService, lookup: CodeLookup) -> dict:
    """One table row for a service."""
    return {
        "platform": service.platform,
        "std": service.std,
        "etd": service.etd,
        "destination": service.destination_name,
        "operator": service.operator,
        "operator_code": service.operator_code,
        "operator_name": lookup.display_operator(service.operator_code),
    }


def summary_line(service: TrainService) -> str:
    return (
        f"plat {service.platform} {service.operator_code} {service.std} "
        f"to {service.destination_name} expected {service.etd}"
    )


class QuickTimeSlotSensor(CoordinatorEntity[QuickTrainTimesCoordinator], SensorEntity):
    """Next departure for whichever quick time currently fills this slot."""

    def __init__(
        self,
        coordinator: QuickTrainTimesCoordinator,
        entry: ConfigEntry,
        slot: int,
    ) -> None:
        """Initialize the sensor."""
        super().__init__(coordinator)
        self.slot = slot

        self._attr_name = f"Quick Train Times Slot {slot + 1}"
        self._attr_unique_id = f"{entry.entry_id}_slot_{slot + 1}"
        self._attr_icon = "mdi:train"

    @property
    def board(self) -> Board | None:
        """Board shown in this slot, None when the slot is empty."""
        if self.coordinator.data is None:
            return None
        return self.coordinator.data.board(self.slot)

    @property
    def native_value(self) -> str | None:
        """Scheduled time of the first departure."""
        board = self.board
        if board is None or not board.services:
            return None
        return board.services[0].std

    @property
    def available(self) -> bool:
        """Return True if entity is available."""
        return self.coordinator.last_update_success

    @property
    def extra_state_attributes(self) -> dict:
        """Return the full board as attributes."""
        board = self.board
        if board is None:
            return {"active": False}

        qt = board.quick_time
        lookup = self.coordinator.lookup
        return {
            "active": True,
            "quick_time_id": qt.id,
            "window": f"{qt.start}-{qt.end}",
            "origin": qt.org,
            "origin_name": board.origin_name,
            "destination": qt.dest,
            "destination_name": board.destination_name,
            "services": [service_row(s, lookup) for s in board.services],
            "summary": [summary_line(s) for s in board.services],
            "error": board.error,
        }
