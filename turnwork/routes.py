from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from pydantic import BaseModel

from . import config
from .alarms import AlarmBook
from .events import EventBook
from .ical import generate_ics
from .models import (
    Alarm,
    AlarmCreateRequest,
    AlarmEnabledRequest,
    AlarmOccurrence,
    CycleCreateRequest,
    CycleLengthRequest,
    CycleUpdateRequest,
    DayResolution,
    Event,
    EventRequest,
    OverrideRequest,
    ShiftCycle,
    ShiftStatistics,
    ShiftType,
    ShiftTypeRequest,
    StatisticsPeriod,
)
from .registry import CycleRegistry
from .rotation import resolve_days
from .stats import aggregate, aggregate_period
from .timeutil import month_range, parse_date_input

router = APIRouter()


class CycleCreateResponse(BaseModel):
    cycle: ShiftCycle
    defaultedDays: List[int]  # 1-indexed days that fell back to the first shift


def get_registry(request: Request) -> CycleRegistry:
    return request.app.state.registry


def get_alarm_book(request: Request) -> AlarmBook:
    return request.app.state.alarms


def get_event_book(request: Request) -> EventBook:
    return request.app.state.events


def _parse_date_param(value: Optional[str], name: str) -> date:
    try:
        parsed = parse_date_input(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid {name} date.") from exc
    if parsed is None:
        raise HTTPException(status_code=400, detail=f"{name} date required.")
    return parsed


def _range_or_current_month(start: Optional[str], end: Optional[str]) -> tuple[date, date]:
    if start is None and end is None:
        today = date.today()
        return month_range(today.year, today.month)
    return _parse_date_param(start, "start"), _parse_date_param(end, "end")


def _cycle_for(registry: CycleRegistry, cycle_id: Optional[str]) -> ShiftCycle:
    if cycle_id:
        return registry.get_cycle(cycle_id)
    cycle = registry.active_cycle()
    if cycle is None:
        raise HTTPException(status_code=404, detail="No active cycle.")
    return cycle


@router.get("/health")
def health():
    return {"status": "ok"}


# -- shift types -----------------------------------------------------------


@router.get("/v1/shift-types", response_model=List[ShiftType])
def list_shift_types(registry: CycleRegistry = Depends(get_registry)):
    return registry.shift_types()


@router.post("/v1/shift-types", response_model=ShiftType, status_code=status.HTTP_201_CREATED)
def create_shift_type(payload: ShiftTypeRequest, registry: CycleRegistry = Depends(get_registry)):
    fields = payload.model_dump(exclude_none=True)
    fields.update(workHours=payload.workHours, restMinutes=payload.restMinutes)
    return registry.add_shift_type(ShiftType(**fields))


@router.put("/v1/shift-types/{shift_type_id}", response_model=ShiftType)
def update_shift_type(
    shift_type_id: str,
    payload: ShiftTypeRequest,
    registry: CycleRegistry = Depends(get_registry),
):
    return registry.update_shift_type(shift_type_id, payload)


@router.delete("/v1/shift-types/{shift_type_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_shift_type(shift_type_id: str, registry: CycleRegistry = Depends(get_registry)):
    registry.delete_shift_type(shift_type_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -- cycles ----------------------------------------------------------------


@router.get("/v1/cycles", response_model=List[ShiftCycle])
def list_cycles(registry: CycleRegistry = Depends(get_registry)):
    return registry.cycles()


@router.post("/v1/cycles", response_model=CycleCreateResponse, status_code=status.HTTP_201_CREATED)
def create_cycle(payload: CycleCreateRequest, registry: CycleRegistry = Depends(get_registry)):
    draft, defaulted = registry.draft_cycle(payload)
    cycle = registry.create_cycle(draft, activate=payload.activate)
    return CycleCreateResponse(cycle=cycle, defaultedDays=[index + 1 for index in defaulted])


@router.get("/v1/cycles/{cycle_id}", response_model=ShiftCycle)
def get_cycle(cycle_id: str, registry: CycleRegistry = Depends(get_registry)):
    return registry.get_cycle(cycle_id)


@router.put("/v1/cycles/{cycle_id}", response_model=ShiftCycle)
def update_cycle(
    cycle_id: str, payload: CycleUpdateRequest, registry: CycleRegistry = Depends(get_registry)
):
    return registry.update_cycle(cycle_id, payload)


@router.delete("/v1/cycles/{cycle_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_cycle(cycle_id: str, registry: CycleRegistry = Depends(get_registry)):
    registry.delete_cycle(cycle_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/v1/cycles/{cycle_id}/activate", response_model=ShiftCycle)
def activate_cycle(cycle_id: str, registry: CycleRegistry = Depends(get_registry)):
    return registry.activate(cycle_id)


@router.post("/v1/cycles/{cycle_id}/deactivate", response_model=ShiftCycle)
def deactivate_cycle(cycle_id: str, registry: CycleRegistry = Depends(get_registry)):
    return registry.deactivate(cycle_id)


@router.put("/v1/cycles/{cycle_id}/length", response_model=ShiftCycle)
def change_cycle_length(
    cycle_id: str, payload: CycleLengthRequest, registry: CycleRegistry = Depends(get_registry)
):
    return registry.change_length(cycle_id, payload.length)


@router.put("/v1/cycles/{cycle_id}/overrides/{day_number}", response_model=ShiftCycle)
def set_cycle_override(
    cycle_id: str,
    day_number: int,
    payload: OverrideRequest,
    registry: CycleRegistry = Depends(get_registry),
):
    return registry.set_override(cycle_id, day_number, payload)


# -- calendar and statistics -------------------------------------------------


@router.get("/v1/calendar", response_model=List[DayResolution])
def get_calendar(
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    cycleId: Optional[str] = Query(default=None),
    registry: CycleRegistry = Depends(get_registry),
):
    start_day, end_day = _range_or_current_month(start, end)
    return resolve_days(_cycle_for(registry, cycleId), start_day, end_day)


@router.get("/v1/calendar.ics")
def get_calendar_ics(
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    registry: CycleRegistry = Depends(get_registry),
    events: EventBook = Depends(get_event_book),
):
    start_day, end_day = _range_or_current_month(start, end)
    cycle = _cycle_for(registry, None)
    content = generate_ics(
        resolve_days(cycle, start_day, end_day),
        config.CAL_NAME,
        cycle_id=cycle.id,
        events=events.between(start_day, end_day),
    )
    return Response(content=content, media_type="text/calendar; charset=utf-8")


@router.get("/v1/statistics", response_model=ShiftStatistics)
def get_statistics(
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    period: Optional[StatisticsPeriod] = Query(default=None),
    year: Optional[int] = Query(default=None, ge=1, le=9999),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    cycleId: Optional[str] = Query(default=None),
    registry: CycleRegistry = Depends(get_registry),
):
    cycle = _cycle_for(registry, cycleId)
    if period is not None:
        today = date.today()
        return aggregate_period(
            cycle,
            period,
            year or today.year,
            month or today.month,
        )
    start_day, end_day = _range_or_current_month(start, end)
    return aggregate(cycle, start_day, end_day)


# -- alarms ----------------------------------------------------------------


@router.get("/v1/alarms", response_model=List[Alarm])
def list_alarms(alarms: AlarmBook = Depends(get_alarm_book)):
    return alarms.alarms()


@router.post("/v1/alarms", response_model=Alarm, status_code=status.HTTP_201_CREATED)
def create_alarm(payload: AlarmCreateRequest, alarms: AlarmBook = Depends(get_alarm_book)):
    return alarms.add(payload)


@router.get("/v1/alarms/upcoming", response_model=List[AlarmOccurrence])
def upcoming_alarms(
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    alarms: AlarmBook = Depends(get_alarm_book),
    registry: CycleRegistry = Depends(get_registry),
):
    start_day, end_day = _range_or_current_month(start, end)
    return alarms.occurrences(registry, start_day, end_day, now=datetime.now())


@router.put("/v1/alarms/{alarm_id}/enabled", response_model=Alarm)
def set_alarm_enabled(
    alarm_id: str, payload: AlarmEnabledRequest, alarms: AlarmBook = Depends(get_alarm_book)
):
    return alarms.set_enabled(alarm_id, payload.isEnabled)


@router.delete("/v1/alarms/{alarm_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_alarm(alarm_id: str, alarms: AlarmBook = Depends(get_alarm_book)):
    alarms.remove(alarm_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -- events ----------------------------------------------------------------


@router.get("/v1/events", response_model=List[Event])
def list_events(
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    events: EventBook = Depends(get_event_book),
):
    start_day, end_day = _range_or_current_month(start, end)
    return events.between(start_day, end_day)


@router.post("/v1/events", response_model=Event, status_code=status.HTTP_201_CREATED)
def create_event(payload: EventRequest, events: EventBook = Depends(get_event_book)):
    return events.add(payload)


@router.put("/v1/events/{event_id}", response_model=Event)
def update_event(event_id: str, payload: EventRequest, events: EventBook = Depends(get_event_book)):
    return events.update(event_id, payload)


@router.delete("/v1/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: str, events: EventBook = Depends(get_event_book)):
    events.remove(event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
