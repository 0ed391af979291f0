"""
Closed-form periodic motion functions.

All wave functions take a position x and a period p and return a value in
[-1, 1]. to_position() maps such a value onto the pan/tilt DMX range.
"""

import math

# Pan/tilt output is centred on POSITION_CENTER with a fixed amplitude,
# which keeps every value inside 1..255.
POSITION_CENTER = 128
POSITION_AMPLITUDE = 127


def triangle(x: float, p: float = 1.0) -> float:
    """Triangle wave with period p, f(0) = 0 and peaks of +-1 at x = +-p/4.

    From https://en.wikipedia.org/wiki/Triangle_wave#Expressed_as_alternating_linear_functions
    """
    if p <= 0:
        raise ValueError(f"Period must be positive, got {p}")
    # floor(y + 0.5) rounds halves up; round() would use banker's rounding
    k = math.floor(2 * x / p + 0.5)
    value = (4 / p) * (x - (p / 2) * k) * (-1) ** k
    return max(-1.0, min(1.0, value))


def sine(x: float, p: float = 1.0) -> float:
    if p <= 0:
        raise ValueError(f"Period must be positive, got {p}")
    return math.sin(2 * math.pi * x / p)


def cosine(x: float, p: float = 1.0) -> float:
    if p <= 0:
        raise ValueError(f"Period must be positive, got {p}")
    return math.cos(2 * math.pi * x / p)


def to_position(value: float, center: float = POSITION_CENTER, amplitude: float = POSITION_AMPLITUDE) -> float:
    """Map a wave value in [-1, 1] onto center +- amplitude."""
    value = max(-1.0, min(1.0, value))
    return center + value * amplitude
