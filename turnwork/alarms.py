"""Alarms: one-off, weekly, or tied to a shift of the active cycle.

Delivering notifications and playing sounds belongs to the host device; this
module owns the alarm list and works out when each alarm should go off.
"""

import logging
from datetime import datetime, time, timedelta
from typing import Dict, List, Optional

from .constants import SNOOZE_MINUTES
from .errors import AlarmNotFound, InvalidAlarm
from .models import Alarm, AlarmCreateRequest, AlarmOccurrence
from .rotation import resolve_day
from .timeutil import (
    DEFAULT_CALENDAR,
    DateLike,
    iter_days,
    parse_time_to_minutes,
    require_time,
    sunday_based_weekday,
)

logger = logging.getLogger(__name__)


def validate_alarm(alarm: Alarm) -> Alarm:
    """Check an alarm and drop fields its repeat type does not use."""
    alarm_time = require_time(alarm.time, "time")
    repeat_days: List[int] = []
    shift_type_id: Optional[str] = None
    if alarm.repeatType == "weekly":
        if not alarm.repeatDays:
            raise InvalidAlarm("A weekly alarm needs at least one weekday.")
        if any(not 0 <= day <= 6 for day in alarm.repeatDays):
            raise InvalidAlarm("Weekdays run from 0 (Sunday) to 6 (Saturday).")
        repeat_days = sorted(set(alarm.repeatDays))
    elif alarm.repeatType == "shift":
        if not alarm.shiftTypeId:
            raise InvalidAlarm("A shift alarm needs a shift type.")
        shift_type_id = alarm.shiftTypeId
    label = (alarm.label or "").strip() or None
    return alarm.model_copy(
        update={
            "time": alarm_time,
            "label": label,
            "repeatDays": repeat_days,
            "shiftTypeId": shift_type_id,
        }
    )


def _at(day, minutes: int) -> datetime:
    return datetime.combine(day, time(minutes // 60, minutes % 60))


def _occurrence(alarm: Alarm, when: datetime, snoozed: bool = False) -> AlarmOccurrence:
    return AlarmOccurrence(
        alarmId=alarm.id,
        at=when.isoformat(timespec="minutes"),
        label=alarm.label,
        sound=alarm.sound,
        snoozed=snoozed,
    )


def snooze(alarm: Alarm, fired_at: datetime) -> AlarmOccurrence:
    return _occurrence(alarm, fired_at + timedelta(minutes=SNOOZE_MINUTES), snoozed=True)


class AlarmBook:
    def __init__(self, store):
        self.store = store
        self._alarms: Dict[str, Alarm] = {}

    def load(self) -> "AlarmBook":
        self._alarms = {alarm.id: alarm for alarm in self.store.load_all_alarms()}
        return self

    def alarms(self) -> List[Alarm]:
        return sorted(self._alarms.values(), key=lambda item: (item.time, item.id))

    def get(self, alarm_id: str) -> Alarm:
        alarm = self._alarms.get(alarm_id)
        if alarm is None:
            raise AlarmNotFound(f"Alarm {alarm_id} not found.")
        return alarm

    def add(self, request: AlarmCreateRequest) -> Alarm:
        alarm = validate_alarm(Alarm(**request.model_dump()))
        self.store.save(alarm)
        self._alarms[alarm.id] = alarm
        logger.info("Added %s alarm at %s", alarm.repeatType, alarm.time)
        return alarm

    def remove(self, alarm_id: str) -> None:
        alarm = self.get(alarm_id)
        self.store.delete(alarm)
        del self._alarms[alarm_id]

    def set_enabled(self, alarm_id: str, enabled: bool) -> Alarm:
        alarm = self.get(alarm_id).model_copy(update={"isEnabled": enabled})
        self.store.save(alarm)
        self._alarms[alarm_id] = alarm
        return alarm

    def occurrences(
        self,
        registry,
        start: DateLike,
        end: DateLike,
        now: Optional[datetime] = None,
    ) -> List[AlarmOccurrence]:
        """Trigger times between ``start`` and ``end`` (inclusive dates).

        Shift alarms follow the active cycle with overrides applied; with no
        active cycle they never fire.
        """
        start_day = DEFAULT_CALENDAR.truncate(start)
        end_day = DEFAULT_CALENDAR.truncate(end)
        now = now or datetime.now()
        cycle = registry.active_cycle()
        result: List[AlarmOccurrence] = []
        for alarm in self._alarms.values():
            if not alarm.isEnabled:
                continue
            minutes = parse_time_to_minutes(alarm.time)
            if minutes is None:
                logger.warning("Skipping alarm %s with unreadable time %r", alarm.id, alarm.time)
                continue
            if alarm.repeatType == "none":
                candidate = _at(now.date(), minutes)
                if candidate <= now:
                    candidate += timedelta(days=1)
                if start_day <= candidate.date() <= end_day:
                    result.append(_occurrence(alarm, candidate))
                continue
            if alarm.repeatType == "shift" and cycle is None:
                continue
            for day in iter_days(start_day, end_day):
                if alarm.repeatType == "weekly":
                    fires = sunday_based_weekday(day) in alarm.repeatDays
                else:
                    resolution = resolve_day(cycle, day)
                    fires = (
                        resolution.displayShift is not None
                        and resolution.displayShift.id == alarm.shiftTypeId
                    )
                if fires:
                    result.append(_occurrence(alarm, _at(day, minutes)))
        result.sort(key=lambda item: (item.at, item.alarmId))
        return result
