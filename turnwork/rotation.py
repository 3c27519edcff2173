"""Rotation engine.

A cycle repeats ``pattern`` every ``length`` days starting at ``startISO``.
For a date ``d`` the cycle position is ``(d - start).days % length`` and the
shift is ``shifts[pattern[position]]``.

Resolution never raises on inconsistent stored data: anything it cannot make
sense of comes back as "no shift for this day" so the calendar stays usable.
Validation lives in ``validate_cycle`` / ``validate_shift_type`` and runs on
writes only.

Overrides are not applied by ``resolve_shift``. ``resolve_day`` composes
them on top of the pattern result for display.
"""

import logging
from datetime import date
from typing import Iterator, List, Optional, Sequence, Tuple

from .colors import rgba_to_int
from .constants import MAX_CYCLE_LENGTH, MIN_CYCLE_LENGTH
from .errors import (
    EmptyNameError,
    InvalidCycleLength,
    InvalidOverride,
    PatternIndexOutOfRange,
    PatternLengthMismatch,
    ValidationFailure,
)
from .models import DailyOverride, DayResolution, ShiftCycle, ShiftType
from .timeutil import (
    DEFAULT_CALENDAR,
    DateLike,
    GregorianCalendar,
    hours_between,
    iter_days,
    require_time,
)

logger = logging.getLogger(__name__)

REASON_NO_SHIFTS = "no_shifts"
REASON_NO_PATTERN = "no_pattern"
REASON_INVALID_START = "invalid_start"
REASON_BEFORE_START = "before_start"
REASON_INDEX_OUT_OF_RANGE = "pattern_index_out_of_range"
REASON_OVERRIDE_SHIFT_MISSING = "override_shift_missing"


def shift_work_hours(shift: ShiftType) -> float:
    if shift.workHours is not None:
        return float(shift.workHours)
    hours = hours_between(shift.startTime, shift.endTime)
    return hours if hours is not None else 0.0


def _locate(
    cycle: ShiftCycle, day: date, calendar: GregorianCalendar
) -> Tuple[Optional[int], Optional[ShiftType], Optional[str]]:
    if not cycle.shifts:
        return None, None, REASON_NO_SHIFTS
    if not cycle.pattern or cycle.length <= 0:
        return None, None, REASON_NO_PATTERN
    try:
        days_since_start = calendar.days_between(cycle.startISO, day)
    except ValueError:
        return None, None, REASON_INVALID_START
    if days_since_start < 0:
        return None, None, REASON_BEFORE_START
    position = days_since_start % cycle.length
    if position >= len(cycle.pattern):
        return position, None, REASON_INDEX_OUT_OF_RANGE
    shift_index = cycle.pattern[position]
    if not 0 <= shift_index < len(cycle.shifts):
        return position, None, REASON_INDEX_OUT_OF_RANGE
    return position, cycle.shifts[shift_index], None


def cycle_position(
    cycle: ShiftCycle, when: DateLike, calendar: GregorianCalendar = DEFAULT_CALENDAR
) -> Optional[int]:
    position, shift, _reason = _locate(cycle, calendar.truncate(when), calendar)
    return position if shift is not None else None


def resolve_shift(
    cycle: ShiftCycle, when: DateLike, calendar: GregorianCalendar = DEFAULT_CALENDAR
) -> Optional[ShiftType]:
    _position, shift, _reason = _locate(cycle, calendar.truncate(when), calendar)
    return shift


def override_for(cycle: ShiftCycle, day_number: int) -> Optional[DailyOverride]:
    for override in cycle.dailyOverrides or []:
        if override.dayNumber == day_number:
            return override
    return None


def _has_custom_time(override: Optional[DailyOverride]) -> bool:
    return bool(override and (override.customStartTime or override.customEndTime))


def day_hours(shift: ShiftType, override: Optional[DailyOverride]) -> float:
    """Hours worked for one day, with override times taking precedence."""
    if not _has_custom_time(override):
        return shift_work_hours(shift)
    hours = hours_between(
        override.customStartTime or shift.startTime,
        override.customEndTime or shift.endTime,
    )
    return hours if hours is not None else shift_work_hours(shift)


def resolve_day(
    cycle: ShiftCycle, when: DateLike, calendar: GregorianCalendar = DEFAULT_CALENDAR
) -> DayResolution:
    day = calendar.truncate(when)
    position, shift, reason = _locate(cycle, day, calendar)
    if shift is None:
        return DayResolution(
            dateISO=day.isoformat(),
            status="unresolved",
            reason=reason,
            position=position,
            dayNumber=position + 1 if position is not None else None,
        )

    override = override_for(cycle, position + 1)
    status = "resolved"
    display = shift
    if override and override.selectedShiftId:
        selected = next((item for item in cycle.shifts if item.id == override.selectedShiftId), None)
        if selected is None:
            status = "defaulted"
            reason = REASON_OVERRIDE_SHIFT_MISSING
            logger.debug(
                "Cycle %s day %s selects unknown shift %s; showing pattern shift",
                cycle.id,
                position + 1,
                override.selectedShiftId,
            )
        else:
            display = selected

    color = display.color
    if override and override.customColor is not None:
        color = rgba_to_int(override.customColor)
    start_time = display.startTime
    end_time = display.endTime
    if override and override.customStartTime:
        start_time = override.customStartTime
    if override and override.customEndTime:
        end_time = override.customEndTime

    overridden = bool(
        override
        and (
            override.selectedShiftId
            or override.customColor is not None
            or _has_custom_time(override)
        )
    )
    return DayResolution(
        dateISO=day.isoformat(),
        status=status,
        reason=reason,
        position=position,
        dayNumber=position + 1,
        shift=shift,
        displayShift=display,
        color=color,
        startTime=start_time,
        endTime=end_time,
        hours=day_hours(display, override),
        overridden=overridden,
    )


class ShiftRange:
    """Lazy ``(date, shift)`` pairs for ``[start, end]``; iterable any number of times.

    Days without a shift are skipped. ``start > end`` yields nothing.
    """

    def __init__(
        self,
        cycle: ShiftCycle,
        start: DateLike,
        end: DateLike,
        calendar: GregorianCalendar = DEFAULT_CALENDAR,
    ):
        self.cycle = cycle
        self.start = calendar.truncate(start)
        self.end = calendar.truncate(end)
        self.calendar = calendar

    def dates(self) -> Iterator[date]:
        return iter_days(self.start, self.end, self.calendar)

    def __iter__(self) -> Iterator[Tuple[date, ShiftType]]:
        for day in self.dates():
            position, shift, _reason = _locate(self.cycle, day, self.calendar)
            if shift is not None:
                yield day, shift

    def with_positions(self) -> Iterator[Tuple[date, int, ShiftType]]:
        for day in self.dates():
            position, shift, _reason = _locate(self.cycle, day, self.calendar)
            if shift is not None:
                yield day, position, shift


def resolve_range(
    cycle: ShiftCycle,
    start: DateLike,
    end: DateLike,
    calendar: GregorianCalendar = DEFAULT_CALENDAR,
) -> ShiftRange:
    return ShiftRange(cycle, start, end, calendar)


def resolve_days(
    cycle: ShiftCycle,
    start: DateLike,
    end: DateLike,
    calendar: GregorianCalendar = DEFAULT_CALENDAR,
) -> List[DayResolution]:
    """One ``DayResolution`` per calendar day, unresolved days included."""
    return [resolve_day(cycle, day, calendar) for day in ShiftRange(cycle, start, end, calendar).dates()]


def build_pattern(
    shifts: Sequence[ShiftType], selected_ids: Sequence[Optional[str]]
) -> Tuple[List[int], List[int]]:
    """Map per-day shift selections to pattern indices.

    A missing or unknown selection falls back to the first shift (index 0).
    Returns the pattern and the zero-indexed positions that were defaulted.
    """
    index_by_id = {shift.id: index for index, shift in enumerate(shifts)}
    pattern: List[int] = []
    defaulted: List[int] = []
    for position, shift_id in enumerate(selected_ids):
        index = index_by_id.get(shift_id) if shift_id else None
        if index is None:
            defaulted.append(position)
            index = 0
        pattern.append(index)
    return pattern, defaulted


def check_length(length: int) -> None:
    if not MIN_CYCLE_LENGTH <= length <= MAX_CYCLE_LENGTH:
        raise InvalidCycleLength(
            f"Cycle length must be between {MIN_CYCLE_LENGTH} and {MAX_CYCLE_LENGTH}, got {length}."
        )


def resize_cycle(cycle: ShiftCycle, new_length: int) -> ShiftCycle:
    """Return a copy of ``cycle`` with pattern and overrides fitted to ``new_length``.

    Shrinking drops trailing entries, growing pads the pattern with index 0.
    Overrides for days that survive are kept as they are; new days get an
    empty override.
    """
    check_length(new_length)
    pattern = list(cycle.pattern[:new_length])
    pattern.extend([0] * (new_length - len(pattern)))

    overrides = None
    if cycle.dailyOverrides is not None:
        existing = {item.dayNumber: item for item in cycle.dailyOverrides}
        overrides = [
            existing[day_number].model_copy(deep=True)
            if day_number in existing
            else DailyOverride(dayNumber=day_number)
            for day_number in range(1, new_length + 1)
        ]
    return cycle.model_copy(
        update={"length": new_length, "pattern": pattern, "dailyOverrides": overrides},
        deep=True,
    )


def require_name(name: Optional[str], what: str) -> str:
    trimmed = (name or "").strip()
    if not trimmed:
        raise EmptyNameError(f"{what} name must not be empty.")
    return trimmed


def validate_shift_type(shift: ShiftType) -> ShiftType:
    """Check a shift type; returns a copy with trimmed name and zero-padded times."""
    name = require_name(shift.name, "Shift type")
    start_time = require_time(shift.startTime, "startTime")
    end_time = require_time(shift.endTime, "endTime")
    if not 0 <= shift.color <= 0xFFFFFF:
        raise ValidationFailure(f"Colour {shift.color} is not a packed RGB value.")
    if shift.workHours is not None and shift.workHours < 0:
        raise ValidationFailure("workHours must not be negative.")
    if shift.restMinutes is not None and shift.restMinutes < 0:
        raise ValidationFailure("restMinutes must not be negative.")
    return shift.model_copy(update={"name": name, "startTime": start_time, "endTime": end_time})


def validate_overrides(cycle: ShiftCycle) -> Optional[List[DailyOverride]]:
    if cycle.dailyOverrides is None:
        return None
    shift_ids = {shift.id for shift in cycle.shifts}
    seen = set()
    normalized = []
    for override in cycle.dailyOverrides:
        if not 1 <= override.dayNumber <= cycle.length:
            raise InvalidOverride(
                f"Override day {override.dayNumber} is outside 1..{cycle.length}."
            )
        if override.dayNumber in seen:
            raise InvalidOverride(f"Duplicate override for day {override.dayNumber}.")
        seen.add(override.dayNumber)
        if override.selectedShiftId and override.selectedShiftId not in shift_ids:
            raise InvalidOverride(
                f"Override day {override.dayNumber} selects a shift the cycle does not use."
            )
        normalized.append(
            override.model_copy(
                update={
                    "customStartTime": require_time(override.customStartTime, "customStartTime"),
                    "customEndTime": require_time(override.customEndTime, "customEndTime"),
                }
            )
        )
    return normalized


def validate_cycle(cycle: ShiftCycle) -> ShiftCycle:
    """Check every cycle invariant; returns a copy with names and times normalized."""
    name = require_name(cycle.name, "Cycle")
    check_length(cycle.length)
    try:
        DEFAULT_CALENDAR.truncate(cycle.startISO)
    except ValueError as exc:
        raise ValidationFailure(f"Invalid start date {cycle.startISO!r}.") from exc
    if len(cycle.pattern) != cycle.length:
        raise PatternLengthMismatch(
            f"Pattern has {len(cycle.pattern)} entries but the cycle is {cycle.length} days long."
        )
    for position, index in enumerate(cycle.pattern):
        if not 0 <= index < len(cycle.shifts):
            raise PatternIndexOutOfRange(
                f"Day {position + 1} references shift slot {index}; "
                f"the cycle has {len(cycle.shifts)} shift(s)."
            )
    shifts = [validate_shift_type(shift) for shift in cycle.shifts]
    return cycle.model_copy(
        update={"name": name, "shifts": shifts, "dailyOverrides": validate_overrides(cycle)},
        deep=True,
    )
