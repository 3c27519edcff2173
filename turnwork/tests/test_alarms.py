from datetime import date, datetime

import pytest

from turnwork.alarms import AlarmBook, snooze
from turnwork.errors import AlarmNotFound, InvalidAlarm, InvalidTime
from turnwork.models import AlarmCreateRequest, OverrideRequest

from .conftest import make_scenario_cycle

NOW = datetime(2024, 1, 1, 7, 0)


@pytest.fixture
def alarms(store) -> AlarmBook:
    return AlarmBook(store).load()


def _times(occurrences) -> list:
    return [item.at for item in occurrences]


def test_weekly_alarm_fires_on_selected_weekdays(alarms, registry) -> None:
    alarms.add(AlarmCreateRequest(time="06:00", repeatType="weekly", repeatDays=[1]))
    found = alarms.occurrences(registry, date(2024, 1, 1), date(2024, 1, 14), now=NOW)
    assert _times(found) == ["2024-01-01T06:00", "2024-01-08T06:00"]


def test_shift_alarm_follows_active_cycle(alarms, registry) -> None:
    registry.create_cycle(make_scenario_cycle())
    alarms.add(AlarmCreateRequest(time="19:00", repeatType="shift", shiftTypeId="night"))
    found = alarms.occurrences(registry, "2024-01-01", "2024-01-06", now=NOW)
    assert _times(found) == ["2024-01-02T19:00", "2024-01-05T19:00"]


def test_shift_alarm_uses_overridden_shift(alarms, registry) -> None:
    cycle = registry.create_cycle(make_scenario_cycle())
    registry.set_override(cycle.id, 1, OverrideRequest(selectedShiftId="night"))
    alarms.add(AlarmCreateRequest(time="19:00", repeatType="shift", shiftTypeId="night"))
    found = alarms.occurrences(registry, "2024-01-01", "2024-01-04", now=NOW)
    assert _times(found) == [
        "2024-01-01T19:00",
        "2024-01-02T19:00",
        "2024-01-04T19:00",
    ]


def test_shift_alarm_without_active_cycle_never_fires(alarms, registry) -> None:
    alarms.add(AlarmCreateRequest(time="19:00", repeatType="shift", shiftTypeId="night"))
    assert alarms.occurrences(registry, "2024-01-01", "2024-01-31", now=NOW) == []


def test_one_off_alarm_moves_to_tomorrow_once_passed(alarms, registry) -> None:
    alarms.add(AlarmCreateRequest(time="06:30", label="gym"))
    alarms.add(AlarmCreateRequest(time="08:00"))
    found = alarms.occurrences(registry, "2024-01-01", "2024-01-31", now=NOW)
    assert _times(found) == ["2024-01-01T08:00", "2024-01-02T06:30"]
    assert found[1].label == "gym"


def test_disabled_alarms_are_skipped(alarms, registry) -> None:
    alarm = alarms.add(AlarmCreateRequest(time="06:00", repeatType="weekly", repeatDays=[0, 6]))
    alarms.set_enabled(alarm.id, False)
    assert alarms.occurrences(registry, "2024-01-01", "2024-01-31", now=NOW) == []


def test_alarm_changes_are_persisted(alarms, store) -> None:
    alarm = alarms.add(AlarmCreateRequest(time="6:00", repeatType="weekly", repeatDays=[3, 1, 3]))
    alarms.set_enabled(alarm.id, False)
    reloaded = AlarmBook(store).load().get(alarm.id)
    assert reloaded.time == "06:00"
    assert reloaded.repeatDays == [1, 3]
    assert reloaded.isEnabled is False

    alarms.remove(alarm.id)
    with pytest.raises(AlarmNotFound):
        AlarmBook(store).load().get(alarm.id)


def test_unused_fields_are_dropped(alarms) -> None:
    alarm = alarms.add(
        AlarmCreateRequest(time="06:00", repeatDays=[1, 2], shiftTypeId="night", label="  ")
    )
    assert alarm.repeatDays == []
    assert alarm.shiftTypeId is None
    assert alarm.label is None


@pytest.mark.parametrize(
    "request_fields, error",
    [
        ({"time": "06:00", "repeatType": "weekly"}, InvalidAlarm),
        ({"time": "06:00", "repeatType": "weekly", "repeatDays": [7]}, InvalidAlarm),
        ({"time": "06:00", "repeatType": "shift"}, InvalidAlarm),
        ({"time": "6am"}, InvalidTime),
    ],
)
def test_invalid_alarms_are_rejected(alarms, store, request_fields, error) -> None:
    with pytest.raises(error):
        alarms.add(AlarmCreateRequest(**request_fields))
    assert store.load_all_alarms() == []


def test_snooze_fires_five_minutes_later(alarms) -> None:
    alarm = alarms.add(AlarmCreateRequest(time="06:00", sound="bell"))
    again = snooze(alarm, datetime(2024, 1, 1, 6, 0))
    assert again.at == "2024-01-01T06:05"
    assert again.snoozed is True
    assert again.sound == "bell"
