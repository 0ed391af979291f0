"""
Aurora lights effects.

Key Components:
- LightsEffect: tick/beat contract bound to one LightsGroup
- waves: closed-form periodic motion functions
- movement: the movement effect variants and their registry
"""

from .base import LightsEffect, LightsEffectBuilder
from .movement import (
    EffectParams,
    MovementEffect,
    BaseRotate,
    ClassicRotate,
    TableRotate,
    SearchLight,
    RandomPosition,
    FixedPosition,
    MOVEMENT_EFFECTS,
    build_effect,
    effect_props,
)
from .waves import triangle, sine, cosine, to_position, POSITION_CENTER, POSITION_AMPLITUDE

__all__ = [
    "LightsEffect",
    "LightsEffectBuilder",
    "EffectParams",
    "MovementEffect",
    "BaseRotate",
    "ClassicRotate",
    "TableRotate",
    "SearchLight",
    "RandomPosition",
    "FixedPosition",
    "MOVEMENT_EFFECTS",
    "build_effect",
    "effect_props",
    "triangle",
    "sine",
    "cosine",
    "to_position",
    "POSITION_CENTER",
    "POSITION_AMPLITUDE",
]
