"""
Aurora Event Sources - Shared emitters consumed by modes and handlers

Classes:
    EventEmitter: Minimal thread-safe on/off/emit event source
    MusicEmitter: Music events (beat, horn, song, track properties)
    BackofficeSyncEmitter: Events synchronised from the backoffice (race data)
    SocketConnectionEmitter: Device connect/disconnect notifications

Event payloads:
    BeatEvent, TrackPropertiesEvent, HornEvent, SongData
"""

from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, List, Optional
import logging
import threading

logger = logging.getLogger(__name__)


# ============================================================
# Event Payloads
# ============================================================

@dataclass(frozen=True)
class BeatEvent:
    """A detected beat with timing/energy metadata."""
    start: float
    duration: float
    confidence: float = 1.0
    loudness: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TrackPropertiesEvent:
    """Audio features of the track currently playing."""
    track_uri: str = ''
    danceability: float = 0.5
    energy: float = 0.5
    loudness: float = -10.0
    tempo: float = 120.0
    valence: float = 0.5

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class HornEvent:
    """A horn (shot) moment in a Centurion tape."""
    counter: int
    strobe_time: int = 1500

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SongData:
    artist: str
    title: str

    def to_dict(self) -> Dict[str, str]:
        return {'artist': self.artist, 'title': self.title}


# ============================================================
# Emitters
# ============================================================

class EventEmitter:
    """
    Thread-safe event source.

    Listeners are called synchronously on the emitting thread, in the order
    they were registered. A failing listener is logged and does not prevent
    the remaining listeners from running.
    """

    def __init__(self):
        self._callbacks: Dict[str, List[Callable]] = {}
        self._lock = threading.Lock()

    def on(self, event: str, callback: Callable) -> None:
        """Register a listener for event."""
        with self._lock:
            self._callbacks.setdefault(event, []).append(callback)

    def off(self, event: str, callback: Callable) -> None:
        """Unregister a listener. Unknown listeners are ignored."""
        with self._lock:
            if event in self._callbacks:
                self._callbacks[event] = [
                    cb for cb in self._callbacks[event] if cb != callback
                ]
                if not self._callbacks[event]:
                    del self._callbacks[event]

    def listener_count(self, event: Optional[str] = None) -> int:
        with self._lock:
            if event is not None:
                return len(self._callbacks.get(event, []))
            return sum(len(cbs) for cbs in self._callbacks.values())

    def emit(self, event: str, *args: Any) -> int:
        """Call every listener of event with args.

        Returns:
            Number of listeners called
        """
        with self._lock:
            callbacks = list(self._callbacks.get(event, []))
        for callback in callbacks:
            try:
                callback(*args)
            except Exception:
                logger.exception(f"Error in {event} listener {callback!r}")
        return len(callbacks)


class MusicEmitter(EventEmitter):
    """
    Events:
        - beat: BeatEvent
        - horn: HornEvent
        - song: List[SongData]
        - features: TrackPropertiesEvent
        - other: opaque dict payload from a tape
    """
    pass


class BackofficeSyncEmitter(EventEmitter):
    """
    Events (all carry a dict payload):
        - race-register-player
        - race-prepare-start
        - race-player-ready
        - race-start
        - race-finish
        - race-scoreboard
        - race-reset
    """
    pass


class SocketConnectionEmitter(EventEmitter):
    """
    Events:
        - connect: (identity, socket_id)
        - disconnect: (identity, socket_id)
    """
    pass
