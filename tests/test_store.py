"""Tests for settings and quick time persistence."""

import json
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from custom_components.quick_train_times.const import SENTINEL_API_KEY
from custom_components.quick_train_times.store import (
    DuplicateQuickTimeError,
    QuickTime,
    QuickTimeNotFoundError,
    QuickTimeStore,
    Settings,
    SettingsStore,
    StoreError,
    chosen_days,
    day_names,
    validate_api_key_format,
    validate_station_code,
    validate_time,
)

API_KEY = "a" * 48


def quick_time(qt_id: int, org: str = "RDG", dest: str = "PAD") -> QuickTime:
    return QuickTime(id=qt_id, start="07:00", end="09:00", org=org, dest=dest, days=[1, 2, 3, 4, 5])


# ===== Validators =====


@pytest.mark.parametrize("value", ["00:00", "07:45", "23:59"])
def test_valid_times(value: str) -> None:
    assert validate_time(value) == value


@pytest.mark.parametrize("value", ["7:45", "07:450", "07-45", "24:00", "12:60", "ab:cd", "１２:00"])
def test_invalid_times(value: str) -> None:
    with pytest.raises(ValueError):
        validate_time(value)


def test_station_code_shape() -> None:
    assert validate_station_code("RDG") == "RDG"
    for value in ("RD", "RDGX", "rdg", "R1G", "ÀBC"):
        with pytest.raises(ValueError):
            validate_station_code(value)


def test_api_key_shape() -> None:
    assert validate_api_key_format(API_KEY) == API_KEY
    with pytest.raises(ValueError):
        validate_api_key_format("short")
    with pytest.raises(ValueError):
        validate_api_key_format("a" * 47 + " ")


def test_day_name_conversion() -> None:
    assert chosen_days(["Sat", "Mon", "Sun", "Mon", "Funday"]) == [0, 1, 6]
    assert day_names([6, 0, 1]) == ["Sun", "Mon", "Sat"]


# ===== Models =====


def test_settings_defaults() -> None:
    settings = Settings()
    assert settings.freq == 60
    assert settings.desired_len == 5
    assert settings.key == SENTINEL_API_KEY


@pytest.mark.parametrize(
    "values",
    [{"freq": 0}, {"desired_len": 0}, {"desired_len": 151}, {"key": "too-short"}],
)
def test_settings_rejects_bad_values(values: dict) -> None:
    with pytest.raises(ValidationError):
        Settings(**values)


def test_quick_time_normalises_days() -> None:
    qt = QuickTime(id=1, start="07:00", end="09:00", org="RDG", dest="*", days=[5, 1, 1])
    assert qt.days == [1, 5]
    assert qt.label == "RDG → * 07:00-09:00 (Mon,Fri)"


@pytest.mark.parametrize(
    "values",
    [
        {"start": "7:00"},
        {"org": "*"},
        {"org": "rdg"},
        {"dest": "PA"},
        {"days": [7]},
    ],
)
def test_quick_time_rejects_bad_values(values: dict) -> None:
    fields = {"id": 1, "start": "07:00", "end": "09:00", "org": "RDG", "dest": "PAD", "days": []}
    fields.update(values)
    with pytest.raises(ValidationError):
        QuickTime(**fields)


# ===== SettingsStore =====


def test_settings_file_created_on_first_load(tmp_path) -> None:
    path = tmp_path / "quick_train_times" / "settings.json"
    store = SettingsStore(path)

    settings = store.load()

    assert settings == Settings()
    assert json.loads(path.read_text()) == {"freq": 60.0, "key": SENTINEL_API_KEY, "desired_len": 5}


def test_settings_save_and_reload(tmp_path) -> None:
    path = tmp_path / "settings.json"
    SettingsStore(path).save(Settings(freq=30, key=API_KEY, desired_len=8))

    reloaded = SettingsStore(path).load()

    assert reloaded.freq == 30
    assert reloaded.key == API_KEY
    assert reloaded.desired_len == 8


def test_settings_invalid_json(tmp_path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json")
    with pytest.raises(StoreError):
        SettingsStore(path).load()


def test_settings_invalid_key(tmp_path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"freq": 60, "key": "abc", "desired_len": 5}))
    with pytest.raises(StoreError, match="Invalid settings"):
        SettingsStore(path).load()


# ===== QuickTimeStore =====


def test_quick_time_file_created_on_first_load(tmp_path) -> None:
    path = tmp_path / "qtt.json"
    store = QuickTimeStore(path)

    store.load()

    assert store.quick_times == []
    assert json.loads(path.read_text()) == {"quick_times": [], "deleted_ids": []}


def test_add_get_and_persist(tmp_path) -> None:
    path = tmp_path / "qtt.json"
    store = QuickTimeStore(path)
    store.add(quick_time(5))
    store.add(quick_time(2, org="TWY"))
    store.save()

    reloaded = QuickTimeStore(path)
    reloaded.load()

    assert [qt.id for qt in reloaded.quick_times] == [5, 2]
    assert reloaded.get(2).org == "TWY"
    assert reloaded.exists(5)
    assert not reloaded.exists(3)


def test_get_missing_raises(tmp_path) -> None:
    with pytest.raises(QuickTimeNotFoundError):
        QuickTimeStore(tmp_path / "qtt.json").get(1)


def test_add_duplicate_raises(tmp_path) -> None:
    store = QuickTimeStore(tmp_path / "qtt.json")
    store.add(quick_time(1))
    with pytest.raises(DuplicateQuickTimeError):
        store.add(quick_time(1, org="TWY"))


def test_replace_keeps_position(tmp_path) -> None:
    store = QuickTimeStore(tmp_path / "qtt.json")
    for qt_id in (1, 2, 3):
        store.add(quick_time(qt_id))

    store.replace(2, quick_time(2, dest="*"))

    assert [qt.id for qt in store.quick_times] == [1, 2, 3]
    assert store.get(2).dest == "*"


def test_replace_missing_raises(tmp_path) -> None:
    with pytest.raises(QuickTimeNotFoundError):
        QuickTimeStore(tmp_path / "qtt.json").replace(4, quick_time(4))


def test_upsert(tmp_path) -> None:
    store = QuickTimeStore(tmp_path / "qtt.json")
    store.upsert(quick_time(1))
    store.upsert(quick_time(1, org="MAN"))

    assert len(store.quick_times) == 1
    assert store.get(1).org == "MAN"


def test_delete_records_tombstone(tmp_path) -> None:
    path = tmp_path / "qtt.json"
    store = QuickTimeStore(path)
    store.add(quick_time(1))
    store.add(quick_time(2))

    store.delete(1)
    store.save()

    assert [qt.id for qt in store.quick_times] == [2]
    assert store.deleted_ids == [1]
    assert json.loads(path.read_text())["deleted_ids"] == [1]


def test_delete_missing_raises(tmp_path) -> None:
    with pytest.raises(QuickTimeNotFoundError):
        QuickTimeStore(tmp_path / "qtt.json").delete(1)


def test_quick_times_is_a_copy(tmp_path) -> None:
    store = QuickTimeStore(tmp_path / "qtt.json")
    store.add(quick_time(1))
    store.quick_times.clear()
    assert len(store.quick_times) == 1


def test_new_id_skips_taken_ids(tmp_path) -> None:
    store = QuickTimeStore(tmp_path / "qtt.json")
    store.add(quick_time(10))

    with patch(
        "custom_components.quick_train_times.store.random.randint", side_effect=[10, 10, 42]
    ):
        assert store.new_id() == 42


def test_new_id_when_full(tmp_path) -> None:
    store = QuickTimeStore(tmp_path / "qtt.json")
    store._document.quick_times = [quick_time(qt_id) for qt_id in range(1, 1000)]
    with pytest.raises(StoreError):
        store.new_id()


def test_duplicate_ids_on_disk(tmp_path) -> None:
    path = tmp_path / "qtt.json"
    entry = quick_time(1).model_dump()
    path.write_text(json.dumps({"quick_times": [entry, entry], "deleted_ids": []}))
    with pytest.raises(StoreError):
        QuickTimeStore(path).load()


def test_restore_undoes_changes_since_snapshot(tmp_path) -> None:
    store = QuickTimeStore(tmp_path / "qtt.json")
    store.add(quick_time(1))
    previous = store.snapshot()

    store.add(quick_time(2))
    store.replace(1, quick_time(1, org="MAN"))
    store.delete(2)
    store.restore(previous)

    assert store.quick_times == [quick_time(1)]
    assert store.deleted_ids == []


def test_snapshot_is_independent(tmp_path) -> None:
    store = QuickTimeStore(tmp_path / "qtt.json")
    previous = store.snapshot()
    store.add(quick_time(1))
    assert previous.quick_times == []
