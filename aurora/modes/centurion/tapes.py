"""
Tape library - loading and lookup of Centurion mix tapes

Tapes are authored as JSON:

    [
        {
            "name": "Centurion Classic",
            "coverUrl": "/covers/classic.jpg",
            "songFile": "/audio/classic.mp3",
            "feed": [
                {"timestamp": 0, "type": "horn", "data": {"counter": 0}},
                {"timestamp": 1.5, "type": "song", "data": {"artist": "...", "title": "..."}},
                {"timestamp": 2.0, "type": "effect", "data": {"effect": {"type": "ClassicRotate"}}},
                {"timestamp": 60, "type": "horn", "data": {"counter": 1}}
            ]
        }
    ]

Snake case keys (cover_url, song_file) are accepted as well.
"""

from typing import Any, Dict, Iterable, List, Optional
import json
import logging
import math
import os

from ...effects.movement import EffectParams, build_effect
from ...errors import TapeNotFoundError
from ...events import SongData
from .tape import BeatCue, EffectCue, FeedEvent, HornCue, MixTape, OtherCue, SongCue

logger = logging.getLogger(__name__)


def _first(data: Dict[str, Any], *keys: str, default=None):
    for key in keys:
        if key in data:
            return data[key]
    return default


def _parse_songs(data) -> List[SongData]:
    items = data if isinstance(data, list) else [data]
    if not all(isinstance(s, dict) for s in items):
        raise ValueError("song cue data must be an object or a list of objects")
    return [SongData(artist=str(s.get('artist', '')), title=str(s.get('title', ''))) for s in items]


def _parse_cue(raw: Dict[str, Any]) -> FeedEvent:
    timestamp = float(raw.get('timestamp', 0))
    if not math.isfinite(timestamp):
        raise ValueError(f"Cue timestamp is not a finite number: {timestamp}")
    if timestamp < 0:
        raise ValueError(f"Negative cue timestamp: {timestamp}")
    cue_type = raw.get('type')
    data = raw.get('data') or {}
    if cue_type != 'song' and not isinstance(data, dict):
        raise ValueError(f"{cue_type} cue data must be an object, got {type(data).__name__}")

    if cue_type == 'horn':
        return HornCue(timestamp, int(data.get('counter', 0)),
                       int(_first(data, 'strobeTime', 'strobe_time', default=1500)))
    if cue_type == 'song':
        return SongCue(timestamp, _parse_songs(data))
    if cue_type == 'beat':
        return BeatCue(timestamp)
    if cue_type == 'effect':
        params = EffectParams.from_dict(data.get('effect') or {})
        # Resolve now so a broken tape fails at load, not mid-show
        build_effect(params)
        return EffectCue(timestamp, params)
    if cue_type == 'other':
        return OtherCue(timestamp, dict(data))
    raise ValueError(f"Unknown cue type: {cue_type!r}")


def parse_tape(data: Dict[str, Any]) -> MixTape:
    """
    Build a MixTape from its JSON form.

    Raises:
        ValueError: On a missing name/song file, a negative or decreasing
            timestamp, an unknown cue type or invalid effect props
        UnknownEffectError: If an effect cue names an unknown effect
    """
    name = data.get('name')
    song_file = _first(data, 'songFile', 'song_file')
    if not name or not song_file:
        raise ValueError("A tape requires a name and a song file")

    feed = [_parse_cue(raw) for raw in data.get('feed', [])]
    for previous, cue in zip(feed, feed[1:]):
        if cue.timestamp < previous.timestamp:
            raise ValueError(f"Tape '{name}': cue at {cue.timestamp}s follows cue at {previous.timestamp}s")

    return MixTape(
        name=str(name),
        song_file=str(song_file),
        feed=feed,
        cover_url=str(_first(data, 'coverUrl', 'cover_url', default='')),
    )


def load_tapes(path: str) -> List[MixTape]:
    """Load every tape from a JSON file holding a list of tapes."""
    path = os.path.expanduser(path)
    with open(path, 'r') as f:
        raw = json.load(f)
    if isinstance(raw, dict):
        raw = raw.get('tapes', [])
    tapes = [parse_tape(entry) for entry in raw]
    logger.info(f"Loaded {len(tapes)} tape(s) from {path}")
    return tapes


def find_tape(tapes: Iterable[MixTape], name: str) -> MixTape:
    """
    Raises:
        TapeNotFoundError: If no tape is called name
    """
    for tape in tapes:
        if tape.name == name:
            return tape
    raise TapeNotFoundError(f"Tape '{name}' not found")


def _cue_dict(cue: FeedEvent) -> Optional[Dict[str, Any]]:
    if isinstance(cue, HornCue):
        return {'type': 'horn', 'timestamp': cue.timestamp,
                'data': {'counter': cue.counter, 'strobeTime': cue.strobe_time}}
    if isinstance(cue, SongCue):
        return {'type': 'song', 'timestamp': cue.timestamp,
                'data': [s.to_dict() for s in cue.songs]}
    return None


def tape_summary(tape: MixTape) -> Dict[str, Any]:
    """Listing form of a tape: horn/song events only, plus totals."""
    return {
        'name': tape.name,
        'coverUrl': tape.cover_url,
        'events': [d for d in (_cue_dict(cue) for cue in tape.feed) if d is not None],
        'horns': len(tape.horns),
        'duration': tape.duration,
    }
