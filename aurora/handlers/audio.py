"""
Audio handlers - playback commands for audio devices

Audio devices download the tape's song file when told to 'load' it and
confirm with 'audio_loaded'. A show may only start once every bound audio
device has confirmed, otherwise devices would start out of sync.
"""

from typing import Dict, List
import logging

from ..entities import DeviceCategory
from ..events import HornEvent
from .base import BaseHandler

logger = logging.getLogger(__name__)


class BaseAudioHandler(BaseHandler):
    CATEGORY = DeviceCategory.AUDIO


class SimpleAudioHandler(BaseAudioHandler):

    def __init__(self, transport=None):
        super().__init__(transport)
        self.loaded: Dict[int, str] = {}  # entity id -> loaded url

    def on_remove(self, entity):
        with self.lock:
            self.loaded.pop(entity.id, None)

    def prepare(self, url: str) -> int:
        """Ask every audio device to load url. Returns the number reached."""
        with self.lock:
            for entity_id in list(self.loaded):
                if self.loaded[entity_id] != url:
                    del self.loaded[entity_id]
        return self.broadcast('load', {'url': url})

    def mark_loaded(self, identity: str, url: str) -> bool:
        """Record that the device named identity finished loading url."""
        with self.lock:
            for entity in self._entities.values():
                if entity.name == identity:
                    self.loaded[entity.id] = url
                    logger.info(f"Audio '{identity}' loaded {url}")
                    return True
        return False

    def is_ready(self, url: str) -> bool:
        """True if every bound audio device has loaded url."""
        with self.lock:
            return all(self.loaded.get(entity_id) == url for entity_id in self._entities)

    def missing(self, url: str) -> List[str]:
        with self.lock:
            return [e.name for e in self._entities.values() if self.loaded.get(e.id) != url]

    def play(self, url: str, seconds: float = 0.0) -> int:
        return self.broadcast('play', {'url': url, 'seconds': seconds})

    def skip(self, seconds: float) -> int:
        return self.broadcast('skip', {'seconds': seconds})

    def pause(self) -> int:
        return self.broadcast('stop')

    def horn(self, event: HornEvent) -> None:
        self.broadcast('horn', event.to_dict())
