"""
Aurora Handler Manager - Binding of device entities to runtime handlers

Main broker between persisted devices and the handlers that control them.
It restores the persisted entity -> handler bindings at boot, rebinds
entities on request, and keeps live connection ids in sync with device
connects and disconnects.

Invariant: within its category, an entity is registered with at most one
handler. register_handler() is the only mutation path and runs the
deregister/register pair under the manager lock, so connectivity scans
never observe an intermediate binding.

Usage:
    manager = HandlerManager(store, transport, {
        DeviceCategory.LIGHTS: [SetEffectsHandler(transport)],
        DeviceCategory.AUDIO: [SimpleAudioHandler(transport)],
    })
    manager.init(connection_emitter, music_emitter)
    manager.register_handler(lights_group, 'SetEffectsHandler')
"""

from typing import Dict, Iterable, List, Optional, Tuple
import logging
import threading

from .entities import DeviceCategory, DeviceEntity
from .errors import InvariantViolation
from .events import MusicEmitter, SocketConnectionEmitter
from .handlers.base import BaseHandler
from .store import DeviceStore
from .transport import Transport

logger = logging.getLogger(__name__)

# Handler name that unbinds an entity
NO_HANDLER = ''


class HandlerManager:

    def __init__(
        self,
        store: DeviceStore,
        transport: Transport,
        handlers: Dict[DeviceCategory, Iterable[BaseHandler]],
    ):
        self.store = store
        self.transport = transport
        self.lock = threading.RLock()
        self.initialized = False
        self._handlers: Dict[DeviceCategory, List[BaseHandler]] = {
            category: [] for category in DeviceCategory
        }
        for category, category_handlers in handlers.items():
            for handler in category_handlers:
                if handler.CATEGORY != category:
                    raise ValueError(f"{handler.name} handles {handler.CATEGORY.value}, not {category.value}")
                self._handlers[category].append(handler)

    # ─────────────────────────────────────────────────────────
    # Boot
    # ─────────────────────────────────────────────────────────

    def init(
        self,
        connection_emitter: SocketConnectionEmitter,
        music_emitter: Optional[MusicEmitter] = None,
    ) -> None:
        """
        Restore persisted bindings and subscribe to device connectivity.

        Raises:
            InvariantViolation: If called twice
        """
        if self.initialized:
            raise InvariantViolation("HandlerManager already initialized.")
        with self.lock:
            for category in DeviceCategory:
                self._restore(category)
            self.initialized = True

        connection_emitter.on('connect', self._on_connect)
        connection_emitter.on('disconnect', self._on_disconnect)
        if music_emitter is not None:
            music_emitter.on('beat', self._fan_out('beat'))
            music_emitter.on('horn', self._fan_out('horn'))
            music_emitter.on('song', self._fan_out('song'))

    def _restore(self, category: DeviceCategory) -> None:
        handlers = {h.name: h for h in self._handlers[category]}
        restored = 0
        for entity in self.store.find(category):
            if entity.socket_id is not None:
                # Connection ids do not survive a restart
                entity.socket_id = None
                self.store.save(entity)
            if not entity.current_handler:
                continue
            handler = handlers.get(entity.current_handler)
            if handler is None:
                logger.warning(f"{entity!r} bound to unknown handler '{entity.current_handler}', left unbound")
                continue
            handler.register_entity(entity)
            restored += 1
        logger.info(f"Restored {restored} {category.value} binding(s)")

    def _fan_out(self, method: str):
        def forward(event):
            for handler in self.get_handlers():
                getattr(handler, method)(event)
        forward.__name__ = f"fan_out_{method}"
        return forward

    # ─────────────────────────────────────────────────────────
    # Binding
    # ─────────────────────────────────────────────────────────

    def get_handlers(self, category: Optional[DeviceCategory] = None) -> Tuple[BaseHandler, ...]:
        """Handlers of one category, or all handlers when category is None."""
        if category is None:
            return tuple(h for handlers in self._handlers.values() for h in handlers)
        return tuple(self._handlers.get(category, []))

    def get_handler(self, name: str, category: Optional[DeviceCategory] = None) -> Optional[BaseHandler]:
        for handler in self.get_handlers(category):
            if handler.name == name:
                return handler
        return None

    def handler_of(self, entity: DeviceEntity) -> str:
        """Name of the handler the entity is registered with ('' if none)."""
        with self.lock:
            for handler in self._handlers[entity.category]:
                if handler.has_entity(entity):
                    return handler.name
        return NO_HANDLER

    def register_handler(self, entity: DeviceEntity, new_handler: str) -> bool:
        """
        Bind entity to the handler named new_handler ('' = unbind).

        The entity is first removed from every handler of its category.
        The new binding is persisted and pushed to the device when it is
        connected.

        Returns:
            False if new_handler names no handler of the entity's category
            (nothing is changed), True otherwise
        """
        with self.lock:
            handlers = self._handlers[entity.category]
            target = None
            if new_handler != NO_HANDLER:
                target = next((h for h in handlers if h.name == new_handler), None)
                if target is None:
                    logger.warning(f"No {entity.category.value} handler named '{new_handler}'")
                    return False

            for handler in handlers:
                handler.remove_entity(entity)
            if target is not None:
                target.register_entity(entity)

            entity.current_handler = new_handler
            self.store.save(entity)

        if target is not None:
            self.transport.emit(entity.socket_id, 'handler_set', new_handler)
        else:
            self.transport.emit(entity.socket_id, 'handler_remove')
        logger.info(f"{entity!r} -> {new_handler or '<none>'}")
        return True

    # ─────────────────────────────────────────────────────────
    # Connectivity
    # ─────────────────────────────────────────────────────────

    def _matches(self, identity: str) -> List[Tuple[BaseHandler, DeviceEntity]]:
        return [
            (handler, entity)
            for handler in self.get_handlers()
            for entity in handler.entities
            if entity.name == identity
        ]

    def _on_connect(self, identity: str, socket_id: str) -> None:
        logger.info(f"Connect '{identity}' with ID {socket_id}")
        with self.lock:
            matches = self._matches(identity)
            for handler, entity in matches:
                entity.socket_id = socket_id
                self.store.save(entity)
        for handler, entity in matches:
            self.transport.emit(socket_id, 'handler_set', handler.name)

    def _on_disconnect(self, identity: str, socket_id: str) -> None:
        logger.info(f"Disconnect '{identity}' with ID {socket_id}")
        with self.lock:
            for handler, entity in self._matches(identity):
                if entity.socket_id == socket_id:
                    entity.socket_id = None
                    self.store.save(entity)

    # ─────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────

    def start(self) -> None:
        for handler in self.get_handlers():
            handler.start()

    def stop(self) -> None:
        for handler in self.get_handlers():
            handler.stop()

    def get_status(self) -> Dict[str, Dict[str, List[str]]]:
        with self.lock:
            return {
                category.value: {h.name: [e.name for e in h.entities] for h in handlers}
                for category, handlers in self._handlers.items()
            }
