"""
Centurion Mode - Tape-driven show playback

Plays a MixTape: the song file runs on the audio devices while a timer
walks the tape's feed and dispatches every cue whose timestamp has passed.

State machine:
    UNLOADED -> LOADED -> PLAYING <-> STOPPED

Playback position is kept as an offset plus a clock anchor, so stop()
followed by start() resumes where playback stopped, and skip() only
re-anchors.

Usage:
    mode = CenturionMode(handler_manager, lights, screens, audios)
    mode.load_tape(tape)
    mode_manager.enable_mode(CenturionMode, mode, 'centurion')
    if not mode.start():
        ...  # audio devices still loading the song file
"""

from bisect import bisect_right
from enum import Enum
from typing import Callable, List, Optional, Sequence
import logging
import time

from ...effects.movement import build_effect
from ...entities import Audio, DeviceCategory, LightsGroup, Screen
from ...errors import InvariantViolation
from ...events import BeatEvent, HornEvent, MusicEmitter, SongData
from ...handler_manager import HandlerManager
from ...scheduling import IntervalTimer, TimerFactory
from ..base import BaseMode
from .tape import BeatCue, EffectCue, FeedEvent, HornCue, MixTape, OtherCue, SongCue

logger = logging.getLogger(__name__)

MODE_KEY = 'centurion'
DEFAULT_TICK_INTERVAL = 0.05


class TapeState(Enum):
    UNLOADED = 'unloaded'
    LOADED = 'loaded'
    PLAYING = 'playing'
    STOPPED = 'stopped'


class CenturionMode(BaseMode):
    LIGHTS_HANDLER = 'SetEffectsHandler'
    SCREEN_HANDLER = 'CenturionScreenHandler'
    AUDIO_HANDLER = 'SimpleAudioHandler'

    def __init__(
        self,
        handler_manager: HandlerManager,
        lights: Sequence[LightsGroup] = (),
        screens: Sequence[Screen] = (),
        audios: Sequence[Audio] = (),
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        timer_factory: TimerFactory = IntervalTimer,
        clock: Optional[Callable[[], float]] = None,
        wall_clock: Optional[Callable[[], float]] = None,
    ):
        super().__init__(handler_manager, lights, screens, audios)
        self.tick_interval = tick_interval
        self.timer_factory = timer_factory
        self.clock = clock or time.monotonic
        self.wall_clock = wall_clock or time.time
        self.music_emitter: Optional[MusicEmitter] = None

        self.state = TapeState.UNLOADED
        self.tape: Optional[MixTape] = None
        self.timer = None
        self.start_time: Optional[float] = None
        self.current_song: List[SongData] = []
        self.next_cue_index = 0
        self._timestamps: List[float] = []
        self._offset = 0.0
        self._anchor = 0.0
        self._started_once = False
        # Bumped by every start/stop transition
        self._generation = 0

    # ─────────────────────────────────────────────────────────
    # Collaborators
    # ─────────────────────────────────────────────────────────

    def _audio_handler(self):
        return self.handler_manager.get_handler(self.AUDIO_HANDLER, DeviceCategory.AUDIO)

    def _lights_handler(self):
        return self.handler_manager.get_handler(self.LIGHTS_HANDLER, DeviceCategory.LIGHTS)

    def on_initialize(self, manager):
        self.music_emitter = manager.music_emitter
        if self.tape is not None:
            self._prepare_audio()

    def on_destroy(self):
        self.stop()

    def _prepare_audio(self) -> None:
        audio = self._audio_handler()
        if audio is not None:
            reached = audio.prepare(self.tape.song_file)
            logger.info(f"Asked {reached} audio device(s) to load {self.tape.song_file}")

    # ─────────────────────────────────────────────────────────
    # Tape
    # ─────────────────────────────────────────────────────────

    @property
    def playing(self) -> bool:
        return self.state == TapeState.PLAYING

    def load_tape(self, tape: MixTape) -> None:
        """
        Load tape and rewind to its start.

        Raises:
            InvariantViolation: If playback was started before
        """
        with self.lock:
            if self._started_once:
                raise InvariantViolation("Cannot load a tape after Centurion has started")
            self.tape = tape
            self._timestamps = [cue.timestamp for cue in tape.feed]
            self._offset = 0.0
            self.next_cue_index = 0
            self.current_song = []
            self.state = TapeState.LOADED
        logger.info(f"Loaded tape '{tape.name}' ({len(tape.feed)} cues)")
        if self.initialized and not self.destroyed:
            self._prepare_audio()

    def elapsed(self) -> float:
        """Seconds into the tape."""
        with self.lock:
            if self.state == TapeState.PLAYING:
                return self._offset + (self.clock() - self._anchor)
            return self._offset

    # ─────────────────────────────────────────────────────────
    # Transport controls
    # ─────────────────────────────────────────────────────────

    def start(self) -> bool:
        """
        Start or resume playback.

        Returns:
            False if no tape is loaded or the audio devices have not all
            loaded the song file yet (retry later), True otherwise

        Raises:
            InvariantViolation: If the mode is not enabled
        """
        with self.lock:
            if not self.initialized or self.destroyed:
                raise InvariantViolation("Centurion must be enabled before it can start")
            if self.tape is None:
                logger.warning("Centurion start refused: no tape loaded")
                return False
            if self.state == TapeState.PLAYING:
                return True

            audio = self._audio_handler()
            if audio is not None and not audio.is_ready(self.tape.song_file):
                logger.warning(f"Centurion start refused: waiting for {audio.missing(self.tape.song_file)}")
                return False

            self._anchor = self.clock()
            if self.start_time is None:
                self.start_time = self.wall_clock()
            self._started_once = True
            self.state = TapeState.PLAYING
            self._generation += 1
            if audio is not None:
                audio.play(self.tape.song_file, self._offset)

            self.tick()
            self.timer = self.timer_factory(self.tick_interval, self.tick, 'centurion')
            self.timer.start()

        logger.info(f"Centurion '{self.tape.name}' playing from {self._offset:.2f}s")
        return True

    def stop(self) -> bool:
        """
        Pause playback, keeping the position for a later start().

        Returns:
            True if playback was running
        """
        with self.lock:
            if self.state != TapeState.PLAYING:
                return False
            self._offset = self.elapsed()
            self.state = TapeState.STOPPED
            self._generation += 1
            generation = self._generation
            timer, self.timer = self.timer, None

        # Outside the lock: an in-flight tick needs it to finish
        if timer is not None:
            timer.cancel()

        with self.lock:
            # A start() that ran while the timer was being cancelled owns
            # the audio devices now
            if self._generation != generation:
                logger.info("Centurion restarted while stopping, audio left playing")
                return True
            audio = self._audio_handler()
            if audio is not None:
                audio.pause()
        logger.info(f"Centurion stopped at {self._offset:.2f}s")
        return True

    def skip(self, seconds: float) -> None:
        """
        Jump to seconds into the tape. Cues at or before the target are
        treated as dispatched.
        """
        seconds = max(0.0, float(seconds))
        with self.lock:
            self._offset = seconds
            self._anchor = self.clock()
            self.next_cue_index = bisect_right(self._timestamps, seconds)
            playing = self.state == TapeState.PLAYING

        if playing:
            audio = self._audio_handler()
            if audio is not None:
                audio.skip(seconds)
        logger.info(f"Centurion skipped to {seconds:.2f}s (next cue {self.next_cue_index})")

    # ─────────────────────────────────────────────────────────
    # Scheduling
    # ─────────────────────────────────────────────────────────

    def tick(self) -> List[FeedEvent]:
        """Dispatch every cue that is due. Returns the dispatched cues."""
        with self.lock:
            if self.state != TapeState.PLAYING:
                return []
            elapsed = self.elapsed()
            feed = self.tape.feed
            dispatched = []
            while self.next_cue_index < len(feed) and feed[self.next_cue_index].timestamp <= elapsed:
                cue = feed[self.next_cue_index]
                self.next_cue_index += 1
                try:
                    self._dispatch(cue)
                except Exception:
                    logger.exception(f"Failed to dispatch {cue!r}")
                dispatched.append(cue)
            return dispatched

    def _dispatch(self, cue: FeedEvent) -> None:
        logger.debug(f"Dispatching {cue!r}")
        if isinstance(cue, HornCue):
            self.music_emitter.emit('horn', HornEvent(cue.counter, cue.strobe_time))
        elif isinstance(cue, SongCue):
            self.current_song = list(cue.songs)
            self.music_emitter.emit('song', self.current_song)
        elif isinstance(cue, BeatCue):
            self.music_emitter.emit('beat', BeatEvent(start=cue.timestamp, duration=0.0))
        elif isinstance(cue, EffectCue):
            builder = build_effect(cue.effect)
            handler = self._lights_handler()
            if handler is None:
                logger.warning(f"No {self.LIGHTS_HANDLER} for {cue.effect.type}")
                return
            for group in self.lights:
                handler.set_effect(group, builder)
        elif isinstance(cue, OtherCue):
            self.music_emitter.emit('other', cue.payload)
        else:
            raise TypeError(f"Unsupported cue {cue!r}")

    def status(self) -> dict:
        with self.lock:
            return {
                'name': self.tape.name if self.tape else None,
                'state': self.state.value,
                'start_time': self.start_time,
                'playing': self.playing,
                'elapsed': round(self.elapsed(), 3),
                'next_cue_index': self.next_cue_index,
                'current_song': [s.to_dict() for s in self.current_song],
            }
