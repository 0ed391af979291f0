"""Aurora device handlers."""

from .base import BaseHandler
from .lights import BaseLightsHandler, SetEffectsHandler, RandomEffectsHandler, DevelopEffectsHandler
from .audio import BaseAudioHandler, SimpleAudioHandler
from .screen import BaseScreenHandler, CenturionScreenHandler, TimeTrailRaceScreenHandler

__all__ = [
    "BaseHandler",
    "BaseLightsHandler",
    "SetEffectsHandler",
    "RandomEffectsHandler",
    "DevelopEffectsHandler",
    "BaseAudioHandler",
    "SimpleAudioHandler",
    "BaseScreenHandler",
    "CenturionScreenHandler",
    "TimeTrailRaceScreenHandler",
]
