"""
Centurion mix tapes - a song file plus a timed feed of cues.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from ...effects.movement import EffectParams
from ...events import SongData


@dataclass(frozen=True)
class HornCue:
    timestamp: float
    counter: int
    strobe_time: int = 1500


@dataclass(frozen=True)
class SongCue:
    timestamp: float
    songs: List[SongData] = field(default_factory=list)


@dataclass(frozen=True)
class BeatCue:
    timestamp: float


@dataclass(frozen=True)
class EffectCue:
    timestamp: float
    effect: EffectParams


@dataclass(frozen=True)
class OtherCue:
    timestamp: float
    payload: Dict[str, Any] = field(default_factory=dict)


FeedEvent = Union[HornCue, SongCue, BeatCue, EffectCue, OtherCue]


@dataclass
class MixTape:
    name: str
    song_file: str
    feed: List[FeedEvent] = field(default_factory=list)
    cover_url: str = ''

    @property
    def duration(self) -> float:
        """Timestamp of the last cue."""
        return self.feed[-1].timestamp if self.feed else 0.0

    @property
    def horns(self) -> List[HornCue]:
        return [cue for cue in self.feed if isinstance(cue, HornCue)]

    @property
    def songs(self) -> List[SongCue]:
        return [cue for cue in self.feed if isinstance(cue, SongCue)]
