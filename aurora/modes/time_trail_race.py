"""
Time Trail Race Mode - Timed single-player races driven by the backoffice

The backoffice publishes the race flow on the BackofficeSyncEmitter. Each
accepted event moves the race state machine one step and pushes the new
state to every bound screen:

    INITIALIZED -> REGISTERED -> PREPARE_STARTED -> READY -> STARTED
                -> FINISHED -> SCOREBOARD

'race-reset' returns to INITIALIZED from any state. Events that do not fit
the current state are logged and ignored.
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence
import logging
import time

from ..effects.movement import ClassicRotate, FixedPosition
from ..entities import Audio, DeviceCategory, LightsGroup, Screen
from ..handler_manager import HandlerManager
from .base import BaseMode

logger = logging.getLogger(__name__)

MODE_KEY = 'time-trail-racing'


class RaceState(Enum):
    INITIALIZED = 'INITIALIZED'
    REGISTERED = 'REGISTERED'
    PREPARE_STARTED = 'PREPARE_STARTED'
    READY = 'READY'
    STARTED = 'STARTED'
    FINISHED = 'FINISHED'
    SCOREBOARD = 'SCOREBOARD'


class TimeTrailRaceMode(BaseMode):
    LIGHTS_HANDLER = 'SetEffectsHandler'
    SCREEN_HANDLER = 'TimeTrailRaceScreenHandler'

    # event -> (states it is accepted in, resulting state)
    TRANSITIONS = {
        'race-register-player': (
            {RaceState.INITIALIZED, RaceState.REGISTERED, RaceState.FINISHED, RaceState.SCOREBOARD},
            RaceState.REGISTERED,
        ),
        'race-prepare-start': ({RaceState.REGISTERED}, RaceState.PREPARE_STARTED),
        'race-player-ready': ({RaceState.PREPARE_STARTED}, RaceState.READY),
        'race-start': ({RaceState.READY}, RaceState.STARTED),
        'race-finish': ({RaceState.STARTED}, RaceState.FINISHED),
        'race-scoreboard': ({RaceState.FINISHED, RaceState.SCOREBOARD}, RaceState.SCOREBOARD),
        'race-reset': (set(RaceState), RaceState.INITIALIZED),
    }

    def __init__(
        self,
        handler_manager: HandlerManager,
        session_name: str,
        lights: Sequence[LightsGroup] = (),
        screens: Sequence[Screen] = (),
        audios: Sequence[Audio] = (),
        wall_clock: Optional[Callable[[], float]] = None,
    ):
        super().__init__(handler_manager, lights, screens, audios)
        self.session_name = session_name
        self.wall_clock = wall_clock or time.time
        self.state = RaceState.INITIALIZED
        self.player_name: Optional[str] = None
        self.start_time: Optional[float] = None
        self.finish_time: Optional[float] = None
        self.scoreboard: List[Dict[str, Any]] = []

    def on_initialize(self, manager):
        emitter = manager.backoffice_sync_emitter
        for event in self.TRANSITIONS:
            self.subscribe(emitter, event, self._listener(event))
        self._send_state()

    def _listener(self, event: str):
        def listener(payload=None):
            self.handle_event(event, payload or {})
        listener.__name__ = f"on_{event.replace('-', '_')}"
        return listener

    # ─────────────────────────────────────────────────────────
    # State machine
    # ─────────────────────────────────────────────────────────

    def handle_event(self, event: str, payload: Dict[str, Any]) -> bool:
        """
        Apply a backoffice race event.

        Returns:
            True if the event was accepted in the current state
        """
        allowed, target = self.TRANSITIONS.get(event, (set(), None))
        with self.lock:
            if self.state not in allowed:
                logger.warning(f"Race '{self.session_name}': ignoring {event} in state {self.state.value}")
                return False

            if target == RaceState.INITIALIZED:
                self.player_name = None
                self.start_time = None
                self.finish_time = None
                self.scoreboard = []
            elif target == RaceState.REGISTERED:
                self.player_name = str(payload.get('name') or payload.get('playerName') or '')
                self.start_time = None
                self.finish_time = None
            elif target == RaceState.STARTED:
                self.start_time = self.wall_clock()
                self.finish_time = None
            elif target == RaceState.FINISHED:
                self.finish_time = self.wall_clock()
            elif target == RaceState.SCOREBOARD:
                self.scoreboard = list(payload.get('scoreboard', []))
            self.state = target

        logger.info(f"Race '{self.session_name}': {event} -> {target.value}")
        if target == RaceState.STARTED:
            self._set_lights(FixedPosition.build())
        elif target == RaceState.FINISHED:
            self._set_lights(ClassicRotate.build())
        self._send_state()
        return True

    def _set_lights(self, builder) -> None:
        handler = self.handler_manager.get_handler(self.LIGHTS_HANDLER, DeviceCategory.LIGHTS)
        if handler is None:
            return
        for group in self.lights:
            handler.set_effect(group, builder)

    def _send_state(self) -> None:
        handler = self.handler_manager.get_handler(self.SCREEN_HANDLER, DeviceCategory.SCREEN)
        if handler is not None:
            handler.send_state(self.status())

    @property
    def race_time(self) -> Optional[float]:
        """Seconds between start and finish, or None if not finished."""
        if self.start_time is None or self.finish_time is None:
            return None
        return self.finish_time - self.start_time

    def status(self) -> dict:
        with self.lock:
            return {
                'session_name': self.session_name,
                'state': self.state.value,
                'player_name': self.player_name,
                'start_time': self.start_time,
                'finish_time': self.finish_time,
                'race_time': self.race_time,
                'scoreboard': list(self.scoreboard),
            }
