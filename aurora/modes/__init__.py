"""
Aurora show modes

Classes:
    ModeManager: One active mode instance per slot key
    BaseMode: Device takeover and teardown shared by all modes
    CenturionMode: Tape-driven shows
    TimeTrailRaceMode: Backoffice-driven races
"""

from .base import BaseMode
from .centurion import CenturionMode, MixTape, TapeState
from .manager import ModeEntry, ModeManager
from .time_trail_race import RaceState, TimeTrailRaceMode

__all__ = [
    'BaseMode',
    'ModeEntry',
    'ModeManager',
    'CenturionMode',
    'MixTape',
    'TapeState',
    'TimeTrailRaceMode',
    'RaceState',
]
