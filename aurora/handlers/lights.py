"""
Lights handlers - drive LightsGroups through lights effects

BaseLightsHandler owns one effect per registered group and ticks them on
its own IntervalTimer, pushing each group's target state as 'lights_state'.
"""

from typing import Dict, List, Optional, Sequence
import logging
import random

from ..effects.base import LightsEffect, LightsEffectBuilder
from ..effects.movement import MOVEMENT_EFFECTS, ClassicRotate
from ..entities import DeviceCategory, LightsGroup
from ..events import BeatEvent, TrackPropertiesEvent
from ..scheduling import IntervalTimer
from .base import BaseHandler

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 0.025  # 40 Hz


class BaseLightsHandler(BaseHandler):
    CATEGORY = DeviceCategory.LIGHTS

    def __init__(self, transport=None, tick_interval: float = DEFAULT_TICK_INTERVAL, timer_factory=IntervalTimer):
        super().__init__(transport)
        self.tick_interval = tick_interval
        self.timer_factory = timer_factory
        self.timer = None
        self.effects: Dict[int, LightsEffect] = {}

    def set_effect(
        self,
        lights_group: LightsGroup,
        builder: LightsEffectBuilder,
        features: Optional[TrackPropertiesEvent] = None,
    ) -> Optional[LightsEffect]:
        """Replace the effect of a registered group.

        Returns:
            The new effect, or None if the group is not registered here
        """
        with self.lock:
            group = self._entities.get(lights_group.id)
            if group is None:
                return None
            effect = builder(group, features)
            self.effects[group.id] = effect
        logger.debug(f"{self.name}: {group.name} -> {effect!r}")
        return effect

    def clear_effect(self, lights_group: LightsGroup) -> None:
        with self.lock:
            self.effects.pop(lights_group.id, None)

    def on_remove(self, entity):
        self.clear_effect(entity)

    def tick(self) -> List[LightsGroup]:
        """Tick every group's effect and push the resulting states."""
        with self.lock:
            pairs = [(g, self.effects.get(g.id)) for g in self._entities.values()]
        ticked = []
        for group, effect in pairs:
            if effect is None:
                continue
            state = effect.tick()
            self.push(group, 'lights_state', state.state())
            ticked.append(state)
        return ticked

    def beat(self, event: BeatEvent) -> None:
        # Serialised: effects keep beat counters of their own
        with self.lock:
            for effect in list(self.effects.values()):
                effect.beat(event)

    def start(self) -> None:
        if self.timer is not None:
            return
        self.timer = self.timer_factory(self.tick_interval, self.tick, f"{self.name}.tick")
        self.timer.start()

    def stop(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


class SetEffectsHandler(BaseLightsHandler):
    """Effects are set explicitly per group (by modes or an operator)."""
    pass


class RandomEffectsHandler(BaseLightsHandler):
    """Picks a random movement effect per group and re-picks every few beats."""

    def __init__(self, transport=None, tick_interval=DEFAULT_TICK_INTERVAL, timer_factory=IntervalTimer,
                 beats_per_change: int = 32, rng: Optional[random.Random] = None,
                 choices: Optional[Sequence[str]] = None):
        super().__init__(transport, tick_interval, timer_factory)
        self.beats_per_change = beats_per_change
        self.rng = rng or random.Random()
        self.choices = list(choices or MOVEMENT_EFFECTS.keys())
        self.beats_seen = 0

    def _pick(self, group: LightsGroup) -> None:
        effect_type = self.rng.choice(self.choices)
        self.set_effect(group, MOVEMENT_EFFECTS[effect_type].build())

    def on_register(self, entity):
        self._pick(entity)

    def beat(self, event):
        super().beat(event)
        # Beats come from the socket thread and the Centurion timer thread
        with self.lock:
            self.beats_seen += 1
            change = self.beats_seen % self.beats_per_change == 0
            groups = list(self.entities) if change else []
        for group in groups:
            self._pick(group)


class DevelopEffectsHandler(BaseLightsHandler):
    """Fixed, predictable motion for testing a rig: ClassicRotate with a spread."""

    def on_register(self, entity):
        self.set_effect(entity, ClassicRotate.build(cycle_time=6.0, offset_factor=0.25))
