import sqlite3

import pytest

from turnwork.errors import PersistenceError
from turnwork.models import Alarm, DailyOverride, Event, RGBAColor
from turnwork.store import SqliteStore

from .conftest import make_day, make_scenario_cycle


def test_cycle_round_trip_keeps_overrides(store) -> None:
    cycle = make_scenario_cycle(
        overrides=[
            DailyOverride(
                dayNumber=2,
                selectedShiftId="off",
                customColor=RGBAColor(red=0.2, green=0.4, blue=0.6, alpha=0.5),
            )
        ]
    )
    store.save(cycle)
    assert store.load_all_cycles() == [cycle]


def test_each_entity_has_its_own_table(store) -> None:
    store.save_all(
        [
            make_day(),
            make_scenario_cycle(),
            Alarm(time="06:30"),
            Event(title="Dentist", dateISO="2024-01-05"),
        ]
    )
    assert [shift.id for shift in store.load_all_shift_types()] == ["day"]
    assert len(store.load_all_cycles()) == 1
    assert [alarm.time for alarm in store.load_all_alarms()] == ["06:30"]
    assert [event.title for event in store.load_all_events()] == ["Dentist"]


def test_deleting_a_shift_type_leaves_cycles_alone(store) -> None:
    day = make_day()
    cycle = make_scenario_cycle()
    store.save_all([day, cycle])
    store.delete(day)
    assert store.load_all_shift_types() == []
    assert store.load_all_cycles() == [cycle]


def test_deleting_a_cycle_removes_its_overrides(store, db_path) -> None:
    cycle = make_scenario_cycle(overrides=[DailyOverride(dayNumber=1)])
    store.save(cycle)
    store.delete(cycle)
    assert store.load_all_cycles() == []
    conn = sqlite3.connect(db_path)
    assert conn.execute("SELECT COUNT(*) FROM shift_cycles").fetchone()[0] == 0
    conn.close()


def test_corrupt_rows_raise_persistence_error(store, db_path) -> None:
    store.save(make_day())
    conn = sqlite3.connect(db_path)
    conn.execute("UPDATE shift_types SET data = ?", ("{not json",))
    conn.commit()
    conn.close()
    with pytest.raises(PersistenceError):
        store.load_all_shift_types()


def test_unwritable_location_raises_persistence_error(tmp_path) -> None:
    store = SqliteStore(str(tmp_path / "missing" / "dir" / "turnwork.db"))
    with pytest.raises(PersistenceError):
        store.save(make_day())
