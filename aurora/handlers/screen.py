"""
Screen handlers - push show information to screens
"""

from typing import Any, Dict, List

from ..entities import DeviceCategory
from ..events import HornEvent, SongData
from .base import BaseHandler


class BaseScreenHandler(BaseHandler):
    CATEGORY = DeviceCategory.SCREEN


class CenturionScreenHandler(BaseScreenHandler):
    """Shows horns and the song currently playing."""

    def horn(self, event: HornEvent) -> None:
        self.broadcast('horn', event.to_dict())

    def song(self, songs: List[SongData]) -> None:
        self.broadcast('song', [s.to_dict() for s in songs])


class TimeTrailRaceScreenHandler(BaseScreenHandler):
    """Shows the state of the current race."""

    def __init__(self, transport=None):
        super().__init__(transport)
        self.last_state: Dict[str, Any] = {}

    def on_register(self, entity):
        if self.last_state:
            self.push(entity, 'race_update', self.last_state)

    def send_state(self, state: Dict[str, Any]) -> int:
        self.last_state = dict(state)
        return self.broadcast('race_update', self.last_state)
