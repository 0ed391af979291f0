"""
Movement Effects - Pan/tilt motion for moving heads

Closed set of effect variants sharing the LightsEffect tick/beat contract:

    ClassicRotate:  triangle-wave Lissajous motion (tilt runs 4x faster)
    TableRotate:    continuous circle just above the horizon
    SearchLight:    slow sweeping search beam
    RandomPosition: jumps to a random position every N beats
    FixedPosition:  holds a constant position

Every variant carries a Props dataclass with its parameters. The class
method build(**props) validates the props immediately and returns a
builder that instantiates the effect once a LightsGroup is known.

Usage:
    builder = ClassicRotate.build(cycle_time=8.0, offset_factor=0.25)
    effect = builder(lights_group)
    effect.tick()

    builder = build_effect(EffectParams('SearchLight', {'cycle_time': 6}))
"""

from abc import abstractmethod
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Tuple, Type
import random

from ..entities import LightsGroup, LightsMovingHead
from ..errors import UnknownEffectError
from ..events import BeatEvent, TrackPropertiesEvent
from .base import Clock, LightsEffect, LightsEffectBuilder
from .waves import cosine, sine, to_position, triangle


@dataclass(frozen=True)
class EffectParams:
    """Serialised effect: registry type name plus its props."""
    type: str
    props: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EffectParams":
        if 'type' not in data:
            raise ValueError("Effect params require a 'type'")
        return cls(type=str(data['type']), props=dict(data.get('props') or {}))

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type, 'props': dict(self.props)}


class MovementEffect(LightsEffect):
    """Common construction pattern for all movement variants."""

    @dataclass(frozen=True)
    class Props:
        pass

    def __init__(
        self,
        lights_group: LightsGroup,
        features: Optional[TrackPropertiesEvent] = None,
        props: Optional["MovementEffect.Props"] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(lights_group, features, clock)
        self.props = props if props is not None else self.Props()

    @classmethod
    def build(cls, **props: Any) -> LightsEffectBuilder:
        """Capture props now, bind the lights group later.

        Raises:
            TypeError: If props contains unknown parameters
        """
        parsed = cls.Props(**props)

        def builder(lights_group, features=None, clock=None):
            return cls(lights_group, features, props=parsed, clock=clock)

        builder.effect_type = cls.__name__
        return builder

    def tick(self) -> LightsGroup:
        for index, moving_head in enumerate(self.lights_group.moving_heads):
            pan, tilt = self.position(index, moving_head)
            moving_head.set_position(pan, tilt)
        return self.lights_group

    @abstractmethod
    def position(self, index: int, moving_head: LightsMovingHead) -> Tuple[float, float]:
        """(pan, tilt) for the moving head at index."""


class BaseRotate(MovementEffect):
    """Periodic motion: progression runs 0..1 once per cycle_time seconds."""

    @dataclass(frozen=True)
    class Props:
        cycle_time: float = 12.0
        offset_factor: float = 0.0

        def __post_init__(self):
            if self.cycle_time <= 0:
                raise ValueError(f"cycle_time must be positive, got {self.cycle_time}")

    def progression(self) -> float:
        return (self.elapsed() % self.props.cycle_time) / self.props.cycle_time

    def position(self, index, moving_head):
        return self.set_position(self.progression(), index * self.props.offset_factor)

    @abstractmethod
    def set_position(self, progression: float, offset: float) -> Tuple[float, float]:
        """(pan, tilt) at progression, shifted by offset cycles."""


class ClassicRotate(BaseRotate):
    """Triangle wave on pan, the same wave at 4x speed on tilt."""

    def set_position(self, progression, offset):
        pan = to_position(triangle(progression + offset))
        tilt = to_position(triangle(progression * 4 + offset))
        return pan, tilt


class TableRotate(BaseRotate):
    """Circle around the room, tilted slightly above the audience."""

    TILT_CENTER = 160
    TILT_AMPLITUDE = 32

    @dataclass(frozen=True)
    class Props(BaseRotate.Props):
        cycle_time: float = 10.0
        offset_factor: float = 0.1

    def set_position(self, progression, offset):
        pan = to_position(sine(progression + offset))
        tilt = to_position(cosine(progression + offset), self.TILT_CENTER, self.TILT_AMPLITUDE)
        return pan, tilt


class SearchLight(BaseRotate):
    """Wide pan sweep with a small tilt bob, like a search beam."""

    TILT_CENTER = 64
    TILT_AMPLITUDE = 24

    @dataclass(frozen=True)
    class Props(BaseRotate.Props):
        cycle_time: float = 8.0
        offset_factor: float = 0.0
        radius: float = 0.75

    def set_position(self, progression, offset):
        pan = to_position(self.props.radius * sine(progression + offset))
        tilt = to_position(triangle(progression * 2 + offset), self.TILT_CENTER, self.TILT_AMPLITUDE)
        return pan, tilt


class RandomPosition(MovementEffect):
    """Holds a random position per moving head, re-rolled every few beats."""

    @dataclass(frozen=True)
    class Props:
        beats_to_move: int = 2
        seed: Optional[int] = None

        def __post_init__(self):
            if self.beats_to_move < 1:
                raise ValueError(f"beats_to_move must be >= 1, got {self.beats_to_move}")

    def __init__(self, lights_group, features=None, props=None, clock=None):
        super().__init__(lights_group, features, props, clock)
        self.rng = random.Random(self.props.seed)
        self.beats_seen = 0
        self.targets: List[Tuple[float, float]] = []
        self._roll()

    def _roll(self) -> None:
        self.targets = [
            (to_position(self.rng.uniform(-1, 1)), to_position(self.rng.uniform(-1, 1)))
            for _ in self.lights_group.moving_heads
        ]

    def position(self, index, moving_head):
        return self.targets[index]

    def beat(self, event: BeatEvent) -> None:
        self.beats_seen += 1
        if self.beats_seen % self.props.beats_to_move == 0:
            self._roll()


class FixedPosition(MovementEffect):

    @dataclass(frozen=True)
    class Props:
        pan: float = 128
        tilt: float = 128

    def position(self, index, moving_head):
        return self.props.pan, self.props.tilt


MOVEMENT_EFFECTS: Dict[str, Type[MovementEffect]] = {
    cls.__name__: cls
    for cls in (ClassicRotate, TableRotate, SearchLight, RandomPosition, FixedPosition)
}


def build_effect(params: EffectParams) -> LightsEffectBuilder:
    """
    Resolve serialised effect params into a builder.

    Raises:
        UnknownEffectError: If params.type is not a registered effect
        ValueError: If the props are invalid for that effect
    """
    effect_cls = MOVEMENT_EFFECTS.get(params.type)
    if effect_cls is None:
        raise UnknownEffectError(f"Unknown effect type: {params.type}")
    try:
        return effect_cls.build(**params.props)
    except TypeError as e:
        raise ValueError(f"Invalid props for {params.type}: {e}") from e


def effect_props(effect_cls: Type[MovementEffect]) -> Dict[str, Any]:
    """Default props of an effect type, e.g. for listing in a UI."""
    defaults = effect_cls.Props()
    return {f.name: getattr(defaults, f.name) for f in fields(defaults)}
