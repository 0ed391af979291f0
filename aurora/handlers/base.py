"""
Handler base classes.

A handler is a runtime controller for devices of one category. It holds
references to the entities currently bound to it (membership only; the
entities outlive the handler) and translates show events into device
pushes. Binding is managed exclusively by HandlerManager.register_handler.
"""

from typing import Dict, List, Optional
import logging
import threading

from ..entities import DeviceCategory, DeviceEntity
from ..events import BeatEvent, HornEvent, SongData
from ..transport import Transport

logger = logging.getLogger(__name__)


class BaseHandler:
    CATEGORY: DeviceCategory

    def __init__(self, transport: Optional[Transport] = None):
        self.transport = transport
        self.lock = threading.RLock()
        self._entities: Dict[int, DeviceEntity] = {}

    @property
    def name(self) -> str:
        """Handler identity, as persisted in DeviceEntity.current_handler."""
        return type(self).__name__

    @property
    def entities(self) -> List[DeviceEntity]:
        with self.lock:
            return list(self._entities.values())

    def has_entity(self, entity: DeviceEntity) -> bool:
        with self.lock:
            return entity.id in self._entities

    def register_entity(self, entity: DeviceEntity) -> None:
        if entity.category != self.CATEGORY:
            raise ValueError(f"{self.name} cannot handle {entity.category.value} device {entity!r}")
        with self.lock:
            self._entities[entity.id] = entity
        self.on_register(entity)

    def remove_entity(self, entity: DeviceEntity) -> bool:
        """Remove entity if registered. Returns True if it was."""
        with self.lock:
            removed = self._entities.pop(entity.id, None)
        if removed is not None:
            self.on_remove(removed)
        return removed is not None

    def push(self, entity: DeviceEntity, event: str, payload=None) -> bool:
        if self.transport is None:
            return False
        return self.transport.emit(entity.socket_id, event, payload)

    def broadcast(self, event: str, payload=None) -> int:
        """Push event to every registered entity. Returns the delivered count."""
        return sum(1 for entity in self.entities if self.push(entity, event, payload))

    # ─────────────────────────────────────────────────────────
    # Hooks
    # ─────────────────────────────────────────────────────────

    def on_register(self, entity: DeviceEntity) -> None:
        pass

    def on_remove(self, entity: DeviceEntity) -> None:
        pass

    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass

    # Music events, fanned out by HandlerManager
    def beat(self, event: BeatEvent) -> None:
        pass

    def horn(self, event: HornEvent) -> None:
        pass

    def song(self, songs: List[SongData]) -> None:
        pass

    def __repr__(self) -> str:
        return f"{self.name}(entities={len(self._entities)})"
