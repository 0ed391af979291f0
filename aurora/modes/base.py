"""
Base class for show modes.

A mode takes over a set of devices for the duration of a show. On
initialize() it binds its entities to its own handlers (remembering the
previous bindings) and subscribes to the shared emitters it needs. On
destroy() it stops its own scheduling, drops every subscription and puts
the previous bindings back.

A device belongs to at most one live mode. When a mode takes a device that
another live mode holds, the recorded previous binding moves with it, and
destroy() leaves alone any device that was rebound after the mode took it.
"""

from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence, Tuple
import logging
import threading

from ..entities import Audio, DeviceCategory, DeviceEntity, LightsGroup, Screen
from ..errors import InvariantViolation
from ..events import EventEmitter
from ..handler_manager import HandlerManager

if TYPE_CHECKING:
    from .manager import ModeManager

logger = logging.getLogger(__name__)

DeviceKey = Tuple[DeviceCategory, int]


def device_key(entity: DeviceEntity) -> DeviceKey:
    return entity.category, entity.id


class BaseMode:
    LIGHTS_HANDLER = ''
    SCREEN_HANDLER = ''
    AUDIO_HANDLER = ''

    def __init__(
        self,
        handler_manager: HandlerManager,
        lights: Sequence[LightsGroup] = (),
        screens: Sequence[Screen] = (),
        audios: Sequence[Audio] = (),
    ):
        self.handler_manager = handler_manager
        self.lights = list(lights)
        self.screens = list(screens)
        self.audios = list(audios)
        self.lock = threading.RLock()
        # Held by initialize/destroy. Not self.lock: destroy waits for timer
        # ticks that need self.lock
        self._lifecycle_lock = threading.RLock()
        self.initialized = False
        self.destroyed = False
        self._subscriptions: List[Tuple[EventEmitter, str, Callable]] = []
        # (category, id) -> (entity, binding before this mode, handler this mode bound)
        self._previous_handlers: Dict[DeviceKey, Tuple[DeviceEntity, str, str]] = {}

    @property
    def name(self) -> str:
        return type(self).__name__

    def _bindings(self) -> List[Tuple[DeviceEntity, str]]:
        return (
            [(e, self.LIGHTS_HANDLER) for e in self.lights]
            + [(e, self.SCREEN_HANDLER) for e in self.screens]
            + [(e, self.AUDIO_HANDLER) for e in self.audios]
        )

    def initialize(self, manager: "ModeManager") -> None:
        """
        Take over devices and subscribe to emitters. Called by ModeManager.

        Raises:
            InvariantViolation: If the mode was initialized before
        """
        with self._lifecycle_lock:
            if self.initialized or self.destroyed:
                raise InvariantViolation(f"{self.name} already initialized")
            self.initialized = True
            for entity, handler_name in self._bindings():
                if not handler_name:
                    continue
                key = device_key(entity)
                # A device taken from another live mode returns to the binding
                # it had before that mode, not to that mode's handler
                previous = manager.release_device(key, self)
                if previous is None:
                    previous = self.handler_manager.handler_of(entity)
                self._previous_handlers[key] = (entity, previous, handler_name)
                self.handler_manager.register_handler(entity, handler_name)
            self.on_initialize(manager)
        logger.info(f"{self.name} initialized")

    def release_device(self, key: DeviceKey) -> Optional[str]:
        """
        Give up the device identified by key to another mode.

        Returns:
            The binding the device had before this mode took it, or None if
            this mode does not hold the device
        """
        with self._lifecycle_lock:
            if self.destroyed:
                return None
            record = self._previous_handlers.pop(key, None)
        if record is None:
            return None
        logger.info(f"{self.name} handed {record[0]!r} over")
        return record[1]

    def subscribe(self, emitter: EventEmitter, event: str, callback: Callable) -> None:
        """Subscribe to emitter; undone automatically by destroy()."""
        emitter.on(event, callback)
        self._subscriptions.append((emitter, event, callback))

    def destroy(self) -> None:
        """Stop the mode and release its devices. Safe to call twice."""
        with self._lifecycle_lock:
            if self.destroyed:
                return
            self.destroyed = True
            try:
                self.on_destroy()
            finally:
                for emitter, event, callback in self._subscriptions:
                    emitter.off(event, callback)
                self._subscriptions.clear()
                for entity, previous, bound in self._previous_handlers.values():
                    current = self.handler_manager.handler_of(entity)
                    if current != bound:
                        logger.info(f"{entity!r} rebound to '{current}' since {self.name} took it, leaving it")
                        continue
                    self.handler_manager.register_handler(entity, previous)
                self._previous_handlers.clear()
        logger.info(f"{self.name} destroyed")

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    # ─────────────────────────────────────────────────────────
    # Hooks
    # ─────────────────────────────────────────────────────────

    def on_initialize(self, manager: "ModeManager") -> None:
        pass

    def on_destroy(self) -> None:
        pass

    def status(self) -> Optional[dict]:
        return None
