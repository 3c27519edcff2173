from __future__ import annotations

import time
import uuid
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .colors import RGBAColor, coerce_packed, coerce_rgba
from .constants import DEFAULT_SHIFT_COLORS, DEFAULT_SHIFT_END, DEFAULT_SHIFT_START

ResolutionStatus = Literal["resolved", "defaulted", "unresolved"]
RepeatType = Literal["none", "weekly", "shift"]
AlarmSound = Literal["default", "bell", "chime"]
StatisticsPeriod = Literal["month", "year"]


def _new_id() -> str:
    return str(uuid.uuid4())


def _creation_order() -> int:
    # Seconds since the epoch; two shifts created in the same second share it.
    return int(time.time())


class ShiftType(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    color: int = DEFAULT_SHIFT_COLORS[0]  # packed 0xRRGGBB
    startTime: str = DEFAULT_SHIFT_START
    endTime: str = DEFAULT_SHIFT_END
    workHours: Optional[float] = None  # explicit value wins over start/end
    restMinutes: Optional[int] = None
    notes: Optional[str] = None
    order: int = Field(default_factory=_creation_order)


class DailyOverride(BaseModel):
    id: str = Field(default_factory=_new_id)
    dayNumber: int  # 1-indexed cycle day
    selectedShiftId: Optional[str] = None
    customStartTime: Optional[str] = None
    customEndTime: Optional[str] = None
    customColor: Optional[RGBAColor] = None


class ShiftCycle(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    length: int
    startISO: str
    pattern: List[int]
    shifts: List[ShiftType] = Field(default_factory=list)
    isActive: bool = False
    members: Optional[List[str]] = None
    notes: Optional[str] = None
    dailyOverrides: Optional[List[DailyOverride]] = None


class ShiftStatistics(BaseModel):
    totalDays: int = 0
    totalHours: float = 0.0
    shiftCounts: Dict[str, int] = Field(default_factory=dict)  # keyed by shift name
    shiftCountsById: Dict[str, int] = Field(default_factory=dict)


class DayResolution(BaseModel):
    dateISO: str
    status: ResolutionStatus
    reason: Optional[str] = None
    position: Optional[int] = None  # zero-indexed cycle position
    dayNumber: Optional[int] = None
    shift: Optional[ShiftType] = None  # pattern-driven shift
    displayShift: Optional[ShiftType] = None  # shift after override composition
    color: Optional[int] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    hours: float = 0.0
    overridden: bool = False


class Alarm(BaseModel):
    id: str = Field(default_factory=_new_id)
    time: str
    label: Optional[str] = None
    repeatType: RepeatType = "none"
    repeatDays: List[int] = Field(default_factory=list)  # 0 = Sunday
    shiftTypeId: Optional[str] = None
    sound: AlarmSound = "default"
    isEnabled: bool = True


class AlarmOccurrence(BaseModel):
    alarmId: str
    at: str  # ISO datetime, local wall-clock
    label: Optional[str] = None
    sound: AlarmSound = "default"
    snoozed: bool = False


class Event(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str
    dateISO: str
    location: Optional[str] = None
    notes: Optional[str] = None
    isCompleted: bool = False


class ShiftTypeRequest(BaseModel):
    name: str
    color: int = DEFAULT_SHIFT_COLORS[0]
    startTime: str = DEFAULT_SHIFT_START
    endTime: str = DEFAULT_SHIFT_END
    workHours: Optional[float] = None
    restMinutes: Optional[int] = None
    notes: Optional[str] = None
    order: Optional[int] = None

    @field_validator("color", mode="before")
    @classmethod
    def parse_hex_color(cls, value):
        return coerce_packed(value)


class CycleCreateRequest(BaseModel):
    """Create a cycle either from a raw pattern or from per-day shift selections."""

    name: str
    length: int
    startISO: str
    shiftIds: Optional[List[str]] = None  # None draws from every shift type
    pattern: Optional[List[int]] = None
    selections: Optional[List[Optional[str]]] = None
    dailyOverrides: Optional[List[DailyOverride]] = None
    members: Optional[List[str]] = None
    notes: Optional[str] = None
    activate: bool = False


class CycleUpdateRequest(BaseModel):
    name: Optional[str] = None
    startISO: Optional[str] = None
    pattern: Optional[List[int]] = None
    members: Optional[List[str]] = None
    notes: Optional[str] = None


class CycleLengthRequest(BaseModel):
    length: int


class OverrideRequest(BaseModel):
    selectedShiftId: Optional[str] = None
    customStartTime: Optional[str] = None
    customEndTime: Optional[str] = None
    customColor: Optional[RGBAColor] = None

    @field_validator("customColor", mode="before")
    @classmethod
    def parse_custom_color(cls, value):
        return coerce_rgba(value)


class AlarmCreateRequest(BaseModel):
    time: str
    label: Optional[str] = None
    repeatType: RepeatType = "none"
    repeatDays: List[int] = Field(default_factory=list)
    shiftTypeId: Optional[str] = None
    sound: AlarmSound = "default"


class AlarmEnabledRequest(BaseModel):
    isEnabled: bool


class EventRequest(BaseModel):
    title: str
    dateISO: str
    location: Optional[str] = None
    notes: Optional[str] = None
    isCompleted: bool = False
