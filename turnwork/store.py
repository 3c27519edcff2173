"""sqlite persistence for shift types, cycles, alarms and events.

Each entity is one row holding its JSON dump. Overrides live inside the
cycle's blob, so deleting a cycle removes them with it, while deleting a
shift type never touches cycle rows.
"""

import json
import logging
import sqlite3
from typing import Iterable, List, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from .config import DB_PATH
from .db import _get_connection, _utcnow_iso
from .errors import PersistenceError
from .models import Alarm, Event, ShiftCycle, ShiftType

logger = logging.getLogger(__name__)

Entity = Union[ShiftType, ShiftCycle, Alarm, Event]
ModelT = TypeVar("ModelT", bound=BaseModel)

TABLE_BY_MODEL = {
    ShiftType: "shift_types",
    ShiftCycle: "shift_cycles",
    Alarm: "alarms",
    Event: "events",
}


def _table_for(entity: BaseModel) -> str:
    table = TABLE_BY_MODEL.get(type(entity))
    if table is None:
        raise TypeError(f"Cannot persist {type(entity).__name__}.")
    return table


class SqliteStore:
    def __init__(self, db_path: str = DB_PATH):
        self.db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        try:
            return _get_connection(self.db_path)
        except sqlite3.Error as exc:
            logger.warning("Cannot open database %s: %s", self.db_path, exc)
            raise PersistenceError(f"Cannot open database: {exc}") from exc

    def _load(self, model: Type[ModelT]) -> List[ModelT]:
        table = TABLE_BY_MODEL[model]
        conn = self._connect()
        try:
            rows = conn.execute(f"SELECT data FROM {table} ORDER BY id").fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot read {table}: {exc}") from exc
        finally:
            conn.close()
        try:
            return [model.model_validate(json.loads(row["data"])) for row in rows]
        except (ValueError, ValidationError) as exc:
            raise PersistenceError(f"Corrupt row in {table}: {exc}") from exc

    def load_all_shift_types(self) -> List[ShiftType]:
        return self._load(ShiftType)

    def load_all_cycles(self) -> List[ShiftCycle]:
        return self._load(ShiftCycle)

    def load_all_alarms(self) -> List[Alarm]:
        return self._load(Alarm)

    def load_all_events(self) -> List[Event]:
        return self._load(Event)

    def save(self, entity: Entity) -> None:
        self.save_all([entity])

    def save_all(self, entities: Iterable[Entity], deleted: Iterable[Entity] = ()) -> None:
        """Write ``entities`` and remove ``deleted`` in one transaction."""
        now = _utcnow_iso()
        conn = self._connect()
        try:
            for entity in entities:
                conn.execute(
                    f"INSERT OR REPLACE INTO {_table_for(entity)} (id, data, updated_at) VALUES (?, ?, ?)",
                    (entity.id, json.dumps(entity.model_dump()), now),
                )
            for entity in deleted:
                conn.execute(f"DELETE FROM {_table_for(entity)} WHERE id = ?", (entity.id,))
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            logger.warning("Write to %s failed: %s", self.db_path, exc)
            raise PersistenceError(f"Cannot write to database: {exc}") from exc
        finally:
            conn.close()

    def delete(self, entity: Entity) -> None:
        self.save_all([], deleted=[entity])
