"""
Aurora Device Store - Persistence contract for device entities

The core consumes persistence through two operations only:

    find(category, ids=None) -> List[DeviceEntity]
    save(entity) -> DeviceEntity

InMemoryDeviceStore is used by tests and demos; SqliteDeviceStore keeps
devices in a single SQLite table.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Tuple
import json
import logging
import sqlite3
import threading

from .entities import DeviceCategory, DeviceEntity, ENTITY_TYPES, LightsGroup

logger = logging.getLogger(__name__)


class DeviceStore(ABC):
    """Persistence contract consumed by the core."""

    @abstractmethod
    def find(self, category: DeviceCategory, ids: Optional[Iterable[int]] = None) -> List[DeviceEntity]:
        """
        Fetch entities of one category.

        Args:
            category: Device category to fetch
            ids: Restrict to these ids (None = all)

        Returns:
            Entities ordered by id. Unknown ids are skipped.
        """
        pass

    @abstractmethod
    def save(self, entity: DeviceEntity) -> DeviceEntity:
        """Insert or update an entity. Returns the saved entity."""
        pass


class InMemoryDeviceStore(DeviceStore):
    """
    Dictionary backed store.

    find() returns the stored objects themselves, so handlers and the store
    share references the way an identity-mapped ORM session would.
    """

    def __init__(self, entities: Iterable[DeviceEntity] = ()):
        self._rows: Dict[Tuple[DeviceCategory, int], DeviceEntity] = {}
        self.lock = threading.Lock()
        self.saves = 0
        for entity in entities:
            self._rows[(entity.category, entity.id)] = entity

    def find(self, category, ids=None):
        with self.lock:
            rows = [e for (cat, _), e in self._rows.items() if cat == category]
        if ids is not None:
            wanted = set(ids)
            rows = [e for e in rows if e.id in wanted]
        return sorted(rows, key=lambda e: e.id)

    def save(self, entity):
        with self.lock:
            self._rows[(entity.category, entity.id)] = entity
            self.saves += 1
        return entity


class SqliteDeviceStore(DeviceStore):
    """
    SQLite backed store.

    Each call opens its own connection so the store can be used from the
    timer threads as well as from request handlers.
    """

    SCHEMA = '''CREATE TABLE IF NOT EXISTS devices (
        id INTEGER NOT NULL,
        category TEXT NOT NULL,
        name TEXT NOT NULL,
        current_handler TEXT NOT NULL DEFAULT '',
        socket_id TEXT,
        data TEXT NOT NULL DEFAULT '{}',
        PRIMARY KEY (category, id)
    )'''

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.lock = threading.Lock()
        conn = self._connect()
        try:
            conn.execute(self.SCHEMA)
            conn.commit()
        finally:
            conn.close()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=10)
        conn.row_factory = sqlite3.Row
        return conn

    def _from_row(self, row: sqlite3.Row) -> DeviceEntity:
        category = DeviceCategory(row['category'])
        columns = {
            'id': row['id'],
            'name': row['name'],
            'current_handler': row['current_handler'] or '',
            'socket_id': row['socket_id'],
        }
        if category == DeviceCategory.LIGHTS:
            return LightsGroup.from_extra_data(json.loads(row['data'] or '{}'), **columns)
        return ENTITY_TYPES[category](**columns)

    def find(self, category, ids=None):
        query = 'SELECT * FROM devices WHERE category = ?'
        params: list = [category.value]
        if ids is not None:
            ids = list(ids)
            if not ids:
                return []
            query += f" AND id IN ({','.join('?' * len(ids))})"
            params.extend(ids)
        query += ' ORDER BY id'
        conn = self._connect()
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()
        return [self._from_row(row) for row in rows]

    def save(self, entity):
        with self.lock:
            conn = self._connect()
            try:
                conn.execute(
                    '''INSERT OR REPLACE INTO devices
                       (id, category, name, current_handler, socket_id, data)
                       VALUES (?, ?, ?, ?, ?, ?)''',
                    (entity.id, entity.category.value, entity.name,
                     entity.current_handler or '', entity.socket_id,
                     json.dumps(entity.extra_data()))
                )
                conn.commit()
            finally:
                conn.close()
        logger.debug(f"Saved {entity!r} (handler={entity.current_handler!r}, socket={entity.socket_id})")
        return entity
