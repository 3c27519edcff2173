from typing import List, Optional

import pytest

from turnwork.errors import PersistenceError
from turnwork.models import DailyOverride, ShiftCycle, ShiftType
from turnwork.registry import CycleRegistry
from turnwork.store import SqliteStore

SCENARIO_START = "2024-01-01"


def make_shift_type(
    shift_id: str,
    name: str,
    start_time: str = "08:00",
    end_time: str = "16:00",
    work_hours: Optional[float] = None,
    color: int = 0x4A90D9,
    order: int = 1,
) -> ShiftType:
    return ShiftType(
        id=shift_id,
        name=name,
        color=color,
        startTime=start_time,
        endTime=end_time,
        workHours=work_hours,
        order=order,
    )


def make_day() -> ShiftType:
    return make_shift_type("day", "Day", "08:00", "16:00", color=0xFFCC00, order=1)


def make_night() -> ShiftType:
    return make_shift_type("night", "Night", "20:00", "04:00", color=0x3344AA, order=2)


def make_off() -> ShiftType:
    return make_shift_type("off", "Off", "00:00", "00:00", work_hours=0, color=0x999999, order=3)


def make_cycle(
    shifts: List[ShiftType],
    pattern: List[int],
    name: str = "Rotation",
    start_iso: str = SCENARIO_START,
    overrides: Optional[List[DailyOverride]] = None,
    cycle_id: Optional[str] = None,
) -> ShiftCycle:
    fields = dict(
        name=name,
        length=len(pattern),
        startISO=start_iso,
        pattern=pattern,
        shifts=shifts,
        dailyOverrides=overrides,
    )
    if cycle_id:
        fields["id"] = cycle_id
    return ShiftCycle(**fields)


def make_scenario_cycle(**kwargs) -> ShiftCycle:
    """Three-day Day/Night/Off rotation starting 2024-01-01."""
    return make_cycle([make_day(), make_night(), make_off()], [0, 1, 2], **kwargs)


class FailingStore(SqliteStore):
    """Reads work, every write fails."""

    def save_all(self, entities, deleted=()):
        raise PersistenceError("disk full")


@pytest.fixture
def scenario_cycle() -> ShiftCycle:
    return make_scenario_cycle()


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "turnwork.db")


@pytest.fixture
def store(db_path) -> SqliteStore:
    return SqliteStore(db_path)


@pytest.fixture
def registry(store) -> CycleRegistry:
    registry = CycleRegistry(store).load()
    for shift in (make_day(), make_night(), make_off()):
        registry.add_shift_type(shift)
    return registry
