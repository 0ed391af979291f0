"""
Aurora Application Context - Composition root of the show core

Builds and owns every long-lived collaborator (config, device store,
transport, emitters, handlers, HandlerManager and ModeManager) and hands
them to each other at construction. There are no module-level singletons:
whoever needs a collaborator is given the context or the collaborator.

It also exposes the mode operations an outer HTTP layer calls, resolving
device ids through the store first.

Usage:
    context = AppContext(CoreConfig.from_env())
    context.init()
    context.start()
    context.enable_centurion('Centurion Classic', lights_group_ids=[1])
"""

from typing import Any, Dict, Iterable, List, Optional
import logging

from .config import CoreConfig
from .entities import DeviceCategory
from .errors import ModeDisabledError
from .events import BackofficeSyncEmitter, MusicEmitter, SocketConnectionEmitter
from .handler_manager import HandlerManager
from .handlers import (
    CenturionScreenHandler,
    DevelopEffectsHandler,
    RandomEffectsHandler,
    SetEffectsHandler,
    SimpleAudioHandler,
    TimeTrailRaceScreenHandler,
)
from .modes import CenturionMode, ModeManager, TimeTrailRaceMode
from .modes.centurion import MODE_KEY as CENTURION_KEY
from .modes.centurion import MixTape, find_tape, load_tapes
from .modes.time_trail_race import MODE_KEY as TIME_TRAIL_RACE_KEY
from .scheduling import IntervalTimer, TimerFactory
from .store import DeviceStore, SqliteDeviceStore
from .transport import RecordingTransport, Transport

logger = logging.getLogger(__name__)


class AppContext:

    def __init__(
        self,
        config: Optional[CoreConfig] = None,
        store: Optional[DeviceStore] = None,
        transport: Optional[Transport] = None,
        tapes: Optional[List[MixTape]] = None,
        timer_factory: TimerFactory = IntervalTimer,
    ):
        self.config = config or CoreConfig.from_env()
        self.store = store or SqliteDeviceStore(self.config.db_path)
        self.transport = transport or RecordingTransport()
        self.timer_factory = timer_factory

        self.music_emitter = MusicEmitter()
        self.backoffice_sync_emitter = BackofficeSyncEmitter()
        self.connection_emitter = SocketConnectionEmitter()

        lights_args = dict(tick_interval=self.config.lights_tick_interval, timer_factory=timer_factory)
        self.handler_manager = HandlerManager(self.store, self.transport, {
            DeviceCategory.LIGHTS: [
                SetEffectsHandler(self.transport, **lights_args),
                RandomEffectsHandler(self.transport, **lights_args),
                DevelopEffectsHandler(self.transport, **lights_args),
            ],
            DeviceCategory.SCREEN: [
                CenturionScreenHandler(self.transport),
                TimeTrailRaceScreenHandler(self.transport),
            ],
            DeviceCategory.AUDIO: [
                SimpleAudioHandler(self.transport),
            ],
        })
        self.mode_manager = ModeManager(
            self.music_emitter,
            self.backoffice_sync_emitter,
            strict_invariants=self.config.strict_invariants,
        )

        if tapes is not None:
            self.tapes = list(tapes)
        elif self.config.tapes_file:
            self.tapes = load_tapes(self.config.tapes_file)
        else:
            self.tapes = []

        self.running = False

    # ─────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────

    def init(self) -> None:
        """Restore persisted bindings. Call once, before start()."""
        self.handler_manager.init(self.connection_emitter, self.music_emitter)

    def start(self) -> None:
        self.handler_manager.start()
        self.running = True
        logger.info("Aurora core started")

    def stop(self) -> None:
        self.mode_manager.reset()
        self.handler_manager.stop()
        self.running = False
        logger.info("Aurora core stopped")

    def get_status(self) -> Dict[str, Any]:
        centurion = self.mode_manager.get_mode(CenturionMode)
        race = self.mode_manager.get_mode(TimeTrailRaceMode)
        return {
            'running': self.running,
            'modes': self.mode_manager.active_modes(),
            'handlers': self.handler_manager.get_status(),
            'centurion': centurion.status() if centurion else None,
            'time_trail_race': race.status() if race else None,
        }

    # ─────────────────────────────────────────────────────────
    # Mode operations
    # ─────────────────────────────────────────────────────────

    def _resolve(self, lights_group_ids: Iterable[int], screen_ids: Iterable[int], audio_ids: Iterable[int]):
        return (
            self.store.find(DeviceCategory.LIGHTS, list(lights_group_ids)),
            self.store.find(DeviceCategory.SCREEN, list(screen_ids)),
            self.store.find(DeviceCategory.AUDIO, list(audio_ids)),
        )

    def enable_centurion(
        self,
        tape_name: str,
        lights_group_ids: Iterable[int] = (),
        screen_ids: Iterable[int] = (),
        audio_ids: Iterable[int] = (),
    ) -> CenturionMode:
        """
        Enable Centurion with the named tape on the given devices.

        Raises:
            TapeNotFoundError: If no tape has that name
        """
        tape = find_tape(self.tapes, tape_name)
        lights, screens, audios = self._resolve(lights_group_ids, screen_ids, audio_ids)
        mode = CenturionMode(
            self.handler_manager, lights, screens, audios,
            tick_interval=self.config.centurion_tick_interval,
            timer_factory=self.timer_factory,
        )
        mode.load_tape(tape)
        self.mode_manager.enable_mode(CenturionMode, mode, CENTURION_KEY)
        return mode

    def disable_centurion(self) -> bool:
        return self.mode_manager.disable_mode(CenturionMode, CENTURION_KEY)

    def centurion(self) -> CenturionMode:
        """
        Raises:
            ModeDisabledError: If Centurion is not enabled
        """
        mode = self.mode_manager.get_mode(CenturionMode)
        if mode is None:
            raise ModeDisabledError("Centurion not enabled")
        return mode

    def enable_time_trail_race(
        self,
        session_name: str,
        lights_group_ids: Iterable[int] = (),
        screen_ids: Iterable[int] = (),
        audio_ids: Iterable[int] = (),
    ) -> TimeTrailRaceMode:
        lights, screens, audios = self._resolve(lights_group_ids, screen_ids, audio_ids)
        mode = TimeTrailRaceMode(self.handler_manager, session_name, lights, screens, audios)
        self.mode_manager.enable_mode(TimeTrailRaceMode, mode, TIME_TRAIL_RACE_KEY)
        return mode

    def disable_time_trail_race(self) -> bool:
        return self.mode_manager.disable_mode(TimeTrailRaceMode, TIME_TRAIL_RACE_KEY)
