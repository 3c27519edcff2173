from collections import Counter
from typing import Optional

from .models import ShiftCycle, ShiftStatistics, StatisticsPeriod
from .rotation import ShiftRange, day_hours, override_for
from .timeutil import DEFAULT_CALENDAR, DateLike, GregorianCalendar, month_range, year_range


def aggregate(
    cycle: ShiftCycle,
    start: DateLike,
    end: DateLike,
    calendar: GregorianCalendar = DEFAULT_CALENDAR,
) -> ShiftStatistics:
    """Sum the pattern-resolved days of ``[start, end]``.

    Counts follow the pattern shift. Override times replace the shift's own
    hours for their cycle day, while an override's selected shift only
    changes what the calendar shows.
    """
    total_days = 0
    total_hours = 0.0
    by_name: Counter = Counter()
    by_id: Counter = Counter()
    for _day, position, shift in ShiftRange(cycle, start, end, calendar).with_positions():
        total_days += 1
        total_hours += day_hours(shift, override_for(cycle, position + 1))
        by_name[shift.name] += 1
        by_id[shift.id] += 1
    return ShiftStatistics(
        totalDays=total_days,
        totalHours=total_hours,
        shiftCounts=dict(by_name),
        shiftCountsById=dict(by_id),
    )


def aggregate_period(
    cycle: ShiftCycle,
    period: StatisticsPeriod,
    year: int,
    month: Optional[int] = None,
    calendar: GregorianCalendar = DEFAULT_CALENDAR,
) -> ShiftStatistics:
    if period == "month":
        if month is None:
            raise ValueError("Month required for monthly statistics.")
        start, end = month_range(year, month)
    else:
        start, end = year_range(year)
    return aggregate(cycle, start, end, calendar)
