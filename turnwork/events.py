from typing import Dict, List

from .errors import EventNotFound, ValidationFailure
from .models import Event, EventRequest
from .rotation import require_name
from .timeutil import DEFAULT_CALENDAR, DateLike


def _normalize(event: Event) -> Event:
    title = require_name(event.title, "Event")
    try:
        date_iso = DEFAULT_CALENDAR.truncate(event.dateISO).isoformat()
    except ValueError as exc:
        raise ValidationFailure(f"Invalid event date {event.dateISO!r}.") from exc
    return event.model_copy(update={"title": title, "dateISO": date_iso})


class EventBook:
    """Personal events shown next to the shift calendar."""

    def __init__(self, store):
        self.store = store
        self._events: Dict[str, Event] = {}

    def load(self) -> "EventBook":
        self._events = {event.id: event for event in self.store.load_all_events()}
        return self

    def get(self, event_id: str) -> Event:
        event = self._events.get(event_id)
        if event is None:
            raise EventNotFound(f"Event {event_id} not found.")
        return event

    def between(self, start: DateLike, end: DateLike) -> List[Event]:
        start_iso = DEFAULT_CALENDAR.truncate(start).isoformat()
        end_iso = DEFAULT_CALENDAR.truncate(end).isoformat()
        return sorted(
            (event for event in self._events.values() if start_iso <= event.dateISO <= end_iso),
            key=lambda item: (item.dateISO, item.title),
        )

    def add(self, request: EventRequest) -> Event:
        event = _normalize(Event(**request.model_dump()))
        self.store.save(event)
        self._events[event.id] = event
        return event

    def update(self, event_id: str, request: EventRequest) -> Event:
        self.get(event_id)
        event = _normalize(Event(id=event_id, **request.model_dump()))
        self.store.save(event)
        self._events[event_id] = event
        return event

    def remove(self, event_id: str) -> None:
        event = self.get(event_id)
        self.store.delete(event)
        del self._events[event_id]
