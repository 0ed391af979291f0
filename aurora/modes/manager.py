"""
Aurora Mode Manager - Mutual exclusion of show modes

Each mode slot (a string key such as 'centurion') holds at most one active
mode instance. Enabling a mode for a key tears the previous instance down
completely (timers cancelled, subscriptions removed, devices released)
before the new instance is initialized, so two instances never drive the
same devices. All slot mutations run under one lock. A mode whose
initialize() raises is destroyed again and the slot stays empty.

The manager also owns the shared event sources handed to every mode.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Type
import logging
import threading

from ..errors import InvariantViolation
from ..events import BackofficeSyncEmitter, MusicEmitter
from .base import BaseMode, DeviceKey

logger = logging.getLogger(__name__)


@dataclass
class ModeEntry:
    mode_type: Type[BaseMode]
    instance: BaseMode


class ModeManager:

    def __init__(
        self,
        music_emitter: Optional[MusicEmitter] = None,
        backoffice_sync_emitter: Optional[BackofficeSyncEmitter] = None,
        strict_invariants: bool = False,
    ):
        self.music_emitter = music_emitter or MusicEmitter()
        self.backoffice_sync_emitter = backoffice_sync_emitter or BackofficeSyncEmitter()
        self.strict_invariants = strict_invariants
        self.lock = threading.RLock()
        self._modes: Dict[str, ModeEntry] = {}

    def enable_mode(self, mode_type: Type[BaseMode], instance: BaseMode, key: str) -> None:
        """
        Install instance in slot key, replacing any current instance.

        Raises:
            InvariantViolation: If instance is not a mode_type or was
                initialized before
        """
        if not isinstance(instance, mode_type):
            raise InvariantViolation(f"{instance!r} is not a {mode_type.__name__}")
        with self.lock:
            previous = self._modes.pop(key, None)
            if previous is not None:
                logger.info(f"Replacing {previous.instance.name} in slot '{key}'")
                previous.instance.destroy()
            try:
                instance.initialize(self)
            except Exception:
                logger.error(f"Failed to initialize {instance.name} in slot '{key}', rolling back")
                try:
                    instance.destroy()
                except Exception:
                    logger.exception(f"Rollback of {instance.name} failed")
                raise
            self._modes[key] = ModeEntry(mode_type, instance)
        logger.info(f"Enabled {mode_type.__name__} in slot '{key}'")

    def disable_mode(self, mode_type: Type[BaseMode], key: str) -> bool:
        """
        Tear down the instance in slot key if it is a mode_type.

        Returns:
            True if an instance was disabled
        """
        with self.lock:
            entry = self._modes.get(key)
            if entry is None:
                return False
            if entry.mode_type is not mode_type:
                message = (f"Slot '{key}' holds {entry.mode_type.__name__}, "
                           f"refusing to disable it as {mode_type.__name__}")
                if self.strict_invariants:
                    raise InvariantViolation(message)
                logger.warning(message)
                return False
            del self._modes[key]
            entry.instance.destroy()
        logger.info(f"Disabled {mode_type.__name__} in slot '{key}'")
        return True

    def release_device(self, key: DeviceKey, requester: BaseMode) -> Optional[str]:
        """
        Take the device identified by key away from whichever live mode
        other than requester holds it.

        Returns:
            The binding the device had before that mode took it, or None if
            no other live mode holds it
        """
        with self.lock:
            for entry in self._modes.values():
                if entry.instance is requester:
                    continue
                previous = entry.instance.release_device(key)
                if previous is not None:
                    return previous
        return None

    def reset(self) -> None:
        """Disable every mode slot."""
        with self.lock:
            entries = list(self._modes.items())
            self._modes.clear()
            for key, entry in entries:
                try:
                    entry.instance.destroy()
                except Exception:
                    logger.exception(f"Teardown of {entry.instance.name} in slot '{key}' failed")
        if entries:
            logger.info(f"Reset {len(entries)} mode(s)")

    def get_mode(self, mode_type: Type[BaseMode]) -> Optional[BaseMode]:
        """The active instance of mode_type in any slot, or None."""
        with self.lock:
            for entry in self._modes.values():
                if entry.mode_type is mode_type:
                    return entry.instance
        return None

    def active_modes(self) -> Dict[str, str]:
        with self.lock:
            return {key: entry.mode_type.__name__ for key, entry in self._modes.items()}
