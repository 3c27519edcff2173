"""Cycle registry.

Holds every shift type and cycle, keeps at most one cycle active and refuses
deletions that would orphan data. Each mutation builds new model copies,
validates them, hands them to the store in one transaction and only then
swaps them into memory. A failed write leaves the registry exactly as it was.

Every mutation holds the registry's re-entrant lock from its first read to
the in-memory swap.

Cycles carry their own copies of the shift types they draw from. The registry
keeps a reverse index (shift type id -> cycle ids) derived from those copies;
editing a shift type rewrites the copies of every cycle in that index.
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .errors import (
    CycleInUseError,
    CycleNotFound,
    DuplicateCycleName,
    ShiftTypeInUseError,
    ShiftTypeNotFound,
    ValidationFailure,
)
from .models import (
    CycleCreateRequest,
    CycleUpdateRequest,
    DailyOverride,
    OverrideRequest,
    ShiftCycle,
    ShiftType,
    ShiftTypeRequest,
)
from .rotation import (
    build_pattern,
    check_length,
    require_name,
    resize_cycle,
    validate_cycle,
    validate_shift_type,
)
from .timeutil import DEFAULT_CALENDAR, GregorianCalendar

logger = logging.getLogger(__name__)


class CycleRegistry:
    def __init__(self, store, calendar: GregorianCalendar = DEFAULT_CALENDAR):
        self.store = store
        self.calendar = calendar
        self._lock = threading.RLock()
        self._shift_types: Dict[str, ShiftType] = {}
        self._cycles: Dict[str, ShiftCycle] = {}
        self._cycles_by_shift: Dict[str, Set[str]] = {}

    # -- loading -----------------------------------------------------------

    def load(self) -> "CycleRegistry":
        with self._lock:
            self._shift_types = {item.id: item for item in self.store.load_all_shift_types()}
            self._cycles = {item.id: item for item in self.store.load_all_cycles()}
            self._rebuild_index()
            active = sorted(
                (cycle for cycle in self._cycles.values() if cycle.isActive),
                key=lambda item: item.name,
            )
            if len(active) > 1:
                logger.warning(
                    "%d active cycles found in storage; keeping %s active",
                    len(active),
                    active[0].name,
                )
                fixed = [cycle.model_copy(update={"isActive": False}) for cycle in active[1:]]
                self._commit(cycles=fixed)
        return self

    def _rebuild_index(self) -> None:
        index: Dict[str, Set[str]] = {}
        for cycle in self._cycles.values():
            for shift in cycle.shifts:
                index.setdefault(shift.id, set()).add(cycle.id)
        self._cycles_by_shift = index

    def _commit(
        self,
        cycles: Iterable[ShiftCycle] = (),
        shift_types: Iterable[ShiftType] = (),
        deleted: Iterable[object] = (),
    ) -> None:
        cycles = list(cycles)
        shift_types = list(shift_types)
        deleted = list(deleted)
        self.store.save_all([*shift_types, *cycles], deleted=deleted)
        for shift in shift_types:
            self._shift_types[shift.id] = shift
        for cycle in cycles:
            self._cycles[cycle.id] = cycle
        for entity in deleted:
            if isinstance(entity, ShiftCycle):
                self._cycles.pop(entity.id, None)
            elif isinstance(entity, ShiftType):
                self._shift_types.pop(entity.id, None)
        self._rebuild_index()

    # -- shift types -------------------------------------------------------

    def shift_types(self) -> List[ShiftType]:
        with self._lock:
            items = sorted(self._shift_types.values(), key=lambda item: (item.order, item.name))
            return [item.model_copy(deep=True) for item in items]

    def _shift_type(self, shift_type_id: str) -> ShiftType:
        shift = self._shift_types.get(shift_type_id)
        if shift is None:
            raise ShiftTypeNotFound(f"Shift type {shift_type_id} not found.")
        return shift

    def get_shift_type(self, shift_type_id: str) -> ShiftType:
        with self._lock:
            return self._shift_type(shift_type_id).model_copy(deep=True)

    def add_shift_type(self, shift: ShiftType) -> ShiftType:
        shift = validate_shift_type(shift).model_copy(deep=True)
        with self._lock:
            self._commit(shift_types=[shift])
        logger.info("Added shift type %s (%s)", shift.name, shift.id)
        return shift.model_copy(deep=True)

    def update_shift_type(self, shift_type_id: str, request: ShiftTypeRequest) -> ShiftType:
        changes = request.model_dump(exclude_none=True)
        changes["workHours"] = request.workHours
        changes["restMinutes"] = request.restMinutes
        changes["notes"] = request.notes
        with self._lock:
            current = self._shift_type(shift_type_id)
            updated = validate_shift_type(current.model_copy(update=changes, deep=True))

            affected = []
            for cycle_id in self._cycles_by_shift.get(shift_type_id, set()):
                cycle = self._cycles[cycle_id]
                shifts = [updated if item.id == shift_type_id else item for item in cycle.shifts]
                affected.append(cycle.model_copy(update={"shifts": shifts}, deep=True))
            self._commit(cycles=affected, shift_types=[updated])
        logger.info(
            "Updated shift type %s; refreshed %d cycle(s)", updated.name, len(affected)
        )
        return updated.model_copy(deep=True)

    def cycles_using(self, shift_type_id: str) -> Set[str]:
        with self._lock:
            return set(self._cycles_by_shift.get(shift_type_id, set()))

    def delete_shift_type(self, shift_type_id: str) -> None:
        with self._lock:
            shift = self._shift_type(shift_type_id)
            users = self._cycles_by_shift.get(shift_type_id)
            if users:
                names = sorted(self._cycles[cycle_id].name for cycle_id in users)
                raise ShiftTypeInUseError(
                    f"Shift type {shift.name} is used by: {', '.join(names)}."
                )
            self._commit(deleted=[shift])
        logger.info("Deleted shift type %s", shift.name)

    # -- cycles ------------------------------------------------------------

    def cycles(self) -> List[ShiftCycle]:
        with self._lock:
            items = sorted(self._cycles.values(), key=lambda item: item.name)
            return [item.model_copy(deep=True) for item in items]

    def _cycle(self, cycle_id: str) -> ShiftCycle:
        cycle = self._cycles.get(cycle_id)
        if cycle is None:
            raise CycleNotFound(f"Cycle {cycle_id} not found.")
        return cycle

    def get_cycle(self, cycle_id: str) -> ShiftCycle:
        with self._lock:
            return self._cycle(cycle_id).model_copy(deep=True)

    def active_cycle(self) -> Optional[ShiftCycle]:
        with self._lock:
            for cycle in self._cycles.values():
                if cycle.isActive:
                    return cycle.model_copy(deep=True)
        return None

    def _check_unique_name(self, name: str, cycle_id: Optional[str] = None) -> None:
        for other in self._cycles.values():
            if other.id != cycle_id and other.name == name:
                raise DuplicateCycleName(f"A cycle named {name!r} already exists.")

    def _deactivated_others(self, cycle_id: str) -> List[ShiftCycle]:
        return [
            other.model_copy(update={"isActive": False})
            for other in self._cycles.values()
            if other.id != cycle_id and other.isActive
        ]

    def _normalize_start(self, value: str) -> str:
        try:
            return self.calendar.truncate(value).isoformat()
        except ValueError as exc:
            raise ValidationFailure(f"Invalid start date {value!r}.") from exc

    def create_cycle(self, cycle: ShiftCycle, activate: bool = False) -> ShiftCycle:
        cycle = validate_cycle(cycle)
        start_iso = self._normalize_start(cycle.startISO)
        with self._lock:
            self._check_unique_name(cycle.name)
            if not self._cycles:
                activate = True
            cycle = cycle.model_copy(update={"isActive": activate, "startISO": start_iso})
            others = self._deactivated_others(cycle.id) if activate else []
            self._commit(cycles=[cycle, *others])
        logger.info("Created cycle %s (%s), active=%s", cycle.name, cycle.id, activate)
        return cycle.model_copy(deep=True)

    def draft_cycle(self, request: CycleCreateRequest) -> Tuple[ShiftCycle, List[int]]:
        """Build an unsaved cycle from a create request.

        Returns the cycle and the zero-indexed days whose selection fell back
        to the first shift.
        """
        check_length(request.length)
        if request.shiftIds is None:
            shifts = self.shift_types()
        else:
            shifts = [self.get_shift_type(shift_id) for shift_id in request.shiftIds]
        defaulted: List[int] = []
        if request.pattern is not None:
            pattern = list(request.pattern)
        elif request.selections is not None:
            pattern, defaulted = build_pattern(shifts, request.selections)
        else:
            pattern = [0] * request.length
            defaulted = list(range(request.length))
        cycle = ShiftCycle(
            name=request.name,
            length=request.length,
            startISO=request.startISO,
            pattern=pattern,
            shifts=shifts,
            members=request.members,
            notes=request.notes,
            dailyOverrides=request.dailyOverrides,
        )
        return cycle, defaulted

    def update_cycle(self, cycle_id: str, request: CycleUpdateRequest) -> ShiftCycle:
        changes = request.model_dump(exclude_none=True)
        if "name" in changes:
            changes["name"] = require_name(changes["name"], "Cycle")
        if "startISO" in changes:
            changes["startISO"] = self._normalize_start(changes["startISO"])
        with self._lock:
            current = self._cycle(cycle_id)
            if "name" in changes:
                self._check_unique_name(changes["name"], cycle_id)
            updated = validate_cycle(current.model_copy(update=changes, deep=True))
            self._commit(cycles=[updated])
        return updated.model_copy(deep=True)

    def change_length(self, cycle_id: str, new_length: int) -> ShiftCycle:
        with self._lock:
            updated = validate_cycle(resize_cycle(self._cycle(cycle_id), new_length))
            self._commit(cycles=[updated])
        logger.info("Cycle %s resized to %d days", updated.name, new_length)
        return updated.model_copy(deep=True)

    def set_override(
        self, cycle_id: str, day_number: int, request: OverrideRequest
    ) -> ShiftCycle:
        fields = request.model_dump()
        with self._lock:
            current = self._cycle(cycle_id)
            overrides = [
                item for item in (current.dailyOverrides or []) if item.dayNumber != day_number
            ]
            existing = next(
                (item for item in (current.dailyOverrides or []) if item.dayNumber == day_number),
                None,
            )
            if existing is not None:
                fields["id"] = existing.id
            overrides.append(DailyOverride(dayNumber=day_number, **fields))
            overrides.sort(key=lambda item: item.dayNumber)
            updated = validate_cycle(
                current.model_copy(update={"dailyOverrides": overrides}, deep=True)
            )
            self._commit(cycles=[updated])
        return updated.model_copy(deep=True)

    def activate(self, cycle_id: str) -> ShiftCycle:
        with self._lock:
            target = self._cycle(cycle_id).model_copy(update={"isActive": True}, deep=True)
            self._commit(cycles=[target, *self._deactivated_others(cycle_id)])
        logger.info("Activated cycle %s", target.name)
        return target.model_copy(deep=True)

    def deactivate(self, cycle_id: str) -> ShiftCycle:
        with self._lock:
            target = self._cycle(cycle_id).model_copy(update={"isActive": False}, deep=True)
            self._commit(cycles=[target])
        logger.info("Deactivated cycle %s", target.name)
        return target.model_copy(deep=True)

    def delete_cycle(self, cycle_id: str) -> None:
        with self._lock:
            cycle = self._cycle(cycle_id)
            if cycle.isActive:
                raise CycleInUseError(
                    f"Cycle {cycle.name} is active; activate another cycle or deactivate it first."
                )
            self._commit(deleted=[cycle])
        logger.info("Deleted cycle %s", cycle.name)
