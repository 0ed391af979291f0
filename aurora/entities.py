"""
Aurora Device Entities - Persisted devices that handlers control

Entities are owned by the persistence layer (see aurora.store). The core
only keeps transient references and re-resolves them through the store
across request boundaries.

Classes:
    DeviceCategory: audio | lights | screen
    DeviceEntity: Base for every persisted device
    Audio, Screen: Plain devices with a live connection
    LightsGroup: A group of fixtures driven by one lights effect
    LightsMovingHead, LightsPar: Fixtures inside a LightsGroup
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional

# DMX value range for a single channel
DMX_MIN = 0
DMX_MAX = 255


def clamp_dmx(value: float) -> int:
    return int(max(DMX_MIN, min(DMX_MAX, round(value))))


class DeviceCategory(str, Enum):
    AUDIO = "audio"
    LIGHTS = "lights"
    SCREEN = "screen"


@dataclass(eq=False)
class DeviceEntity:
    """A persisted device.

    current_handler is the persisted name of the handler the device is bound
    to ('' when unbound). socket_id is the transient live connection.
    """
    CATEGORY: ClassVar[DeviceCategory]

    id: int
    name: str
    current_handler: str = ''
    socket_id: Optional[str] = None

    @property
    def category(self) -> DeviceCategory:
        return self.CATEGORY

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'category': self.category.value,
            'current_handler': self.current_handler,
            'socket_id': self.socket_id,
        }

    def extra_data(self) -> Dict[str, Any]:
        """Category-specific data persisted alongside the common columns."""
        return {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id}, name={self.name!r})"


@dataclass(eq=False, repr=False)
class Audio(DeviceEntity):
    CATEGORY: ClassVar[DeviceCategory] = DeviceCategory.AUDIO


@dataclass(eq=False, repr=False)
class Screen(DeviceEntity):
    CATEGORY: ClassVar[DeviceCategory] = DeviceCategory.SCREEN


@dataclass
class LightsMovingHead:
    """Moving head fixture with pan/tilt in DMX range."""
    name: str
    first_channel: int = 1
    pan: int = 128
    tilt: int = 128

    def set_position(self, pan: float, tilt: float) -> None:
        self.pan = clamp_dmx(pan)
        self.tilt = clamp_dmx(tilt)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'first_channel': self.first_channel,
            'pan': self.pan,
            'tilt': self.tilt,
        }


@dataclass
class LightsPar:
    """Static colour fixture."""
    name: str
    first_channel: int = 1
    color: Dict[str, int] = field(default_factory=lambda: {'r': 0, 'g': 0, 'b': 0})

    def set_color(self, **channels: int) -> None:
        for key, value in channels.items():
            self.color[key] = clamp_dmx(value)

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'first_channel': self.first_channel, 'color': dict(self.color)}


@dataclass(eq=False, repr=False)
class LightsGroup(DeviceEntity):
    CATEGORY: ClassVar[DeviceCategory] = DeviceCategory.LIGHTS

    moving_heads: List[LightsMovingHead] = field(default_factory=list)
    pars: List[LightsPar] = field(default_factory=list)

    def state(self) -> Dict[str, Any]:
        """The group's current target state as a JSON-able dict."""
        return {
            'id': self.id,
            'name': self.name,
            'moving_heads': [m.to_dict() for m in self.moving_heads],
            'pars': [p.to_dict() for p in self.pars],
        }

    def extra_data(self) -> Dict[str, Any]:
        return {
            'moving_heads': [m.to_dict() for m in self.moving_heads],
            'pars': [p.to_dict() for p in self.pars],
        }

    @classmethod
    def from_extra_data(cls, data: Dict[str, Any], **columns: Any) -> "LightsGroup":
        return cls(
            moving_heads=[LightsMovingHead(**m) for m in data.get('moving_heads', [])],
            pars=[LightsPar(**p) for p in data.get('pars', [])],
            **columns,
        )


ENTITY_TYPES: Dict[DeviceCategory, type] = {
    DeviceCategory.AUDIO: Audio,
    DeviceCategory.LIGHTS: LightsGroup,
    DeviceCategory.SCREEN: Screen,
}
