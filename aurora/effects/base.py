"""
Lights effect contract.

An effect is bound to exactly one LightsGroup for its lifetime. tick()
computes the group's target state from the elapsed time since construction
(or the last reset()) plus the effect's fixed parameters, so ticking twice
at the same clock value yields the same output. beat() lets beat-reactive
effects change course; all others ignore it.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional
import time

from ..entities import LightsGroup
from ..events import BeatEvent, TrackPropertiesEvent

Clock = Callable[[], float]

LightsEffectBuilder = Callable[[LightsGroup, Optional[TrackPropertiesEvent]], "LightsEffect"]


class LightsEffect(ABC):

    def __init__(
        self,
        lights_group: LightsGroup,
        features: Optional[TrackPropertiesEvent] = None,
        clock: Optional[Clock] = None,
    ):
        self.lights_group = lights_group
        self.features = features
        self.clock: Clock = clock or time.monotonic
        self.start_time = self.clock()

    def elapsed(self) -> float:
        """Seconds since construction or the last reset."""
        return max(0.0, self.clock() - self.start_time)

    def reset(self) -> None:
        self.start_time = self.clock()

    @abstractmethod
    def tick(self) -> LightsGroup:
        pass

    def beat(self, event: BeatEvent) -> None:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(group={self.lights_group.name!r})"
