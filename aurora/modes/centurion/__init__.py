"""
Centurion - tape-driven shows

Modules:
    tape: MixTape and its cue types
    tapes: Loading, lookup and summaries of tapes
    mode: CenturionMode, the tape scheduler
"""

from .mode import MODE_KEY, CenturionMode, TapeState
from .tape import BeatCue, EffectCue, FeedEvent, HornCue, MixTape, OtherCue, SongCue
from .tapes import find_tape, load_tapes, parse_tape, tape_summary

__all__ = [
    'MODE_KEY',
    'CenturionMode',
    'TapeState',
    'MixTape',
    'FeedEvent',
    'HornCue',
    'SongCue',
    'BeatCue',
    'EffectCue',
    'OtherCue',
    'parse_tape',
    'load_tapes',
    'find_tape',
    'tape_summary',
]
