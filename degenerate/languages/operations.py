# degenerate/languages/operations.py
"""
Per-pixel color operations applied to sampled source colors.

The operation vocabulary:
    invert: per-channel complement
    random: fresh uniform color, consuming entropy
    rotate-color:<axis>:<turns>: rotation of the color cube about one of its axes

Colors are points in [0, 1]^3. A rotation turns the point about an axis through the
origin (black) and clips the result to [0, 1], so a rotation never
produces an out of range channel.

Example programs:
    "invert all"                # complement everything
    "rotate-color:z:0.25 all"   # red becomes green
"""
import math
from dataclasses import dataclass

import numpy as np

from ..core import TAU
from .base import Operation, Vocabulary

_AXES = {
    "x": 0, "r": 0, "red": 0,
    "y": 1, "g": 1, "green": 1,
    "z": 2, "b": 2, "blue": 2,
}


def parse_axis(token: str) -> int:
    """
    Converts an axis token to a channel index.

    Accepts channel names (r/g/b, red/green/blue), axis names (x/y/z), or a numeric
    index 0-2 (integral floats such as "1.0" included).

    Raises:
        ValueError: If the token names no axis
    """
    name = token.strip().lower()
    if name in _AXES:
        return _AXES[name]
    value = float(name)
    if value not in (0.0, 1.0, 2.0):
        raise ValueError(f"color axis must be 0, 1 or 2, got {token!r}")
    return int(value)


def color_rotation(axis: int, turns: float) -> np.ndarray:
    """
    Creates a 3x3 rotation matrix about a color axis.

    Args:
        axis: 0 (red/x), 1 (green/y) or 2 (blue/z)
        turns: Rotation as a fraction of a full turn

    Returns:
        3x3 numpy rotation matrix
    """
    theta = turns * TAU
    c, s = math.cos(theta), math.sin(theta)
    i, j = [k for k in range(3) if k != axis]
    # Keep a right-handed orientation for the y axis.
    if axis == 1:
        i, j = j, i
    matrix = np.eye(3)
    matrix[i, i], matrix[i, j] = c, -s
    matrix[j, i], matrix[j, j] = s, c
    return matrix


@dataclass(frozen=True)
class Invert(Operation):
    def apply(self, rng, colors):
        return 1.0 - np.asarray(colors, dtype=np.float64)


@dataclass(frozen=True)
class Random(Operation):
    """Ignores its input and draws a uniform color from [0, 1)^3."""
    def apply(self, rng, colors):
        return rng.random(np.shape(colors))


@dataclass(frozen=True)
class RotateColor(Operation):
    axis: int
    turns: float

    def __post_init__(self):
        if self.axis not in (0, 1, 2):
            raise ValueError(f"color axis must be 0, 1 or 2, got {self.axis}")

    @property
    def matrix(self) -> np.ndarray:
        return color_rotation(self.axis, self.turns)

    def apply(self, rng, colors):
        rotated = np.asarray(colors, dtype=np.float64) @ self.matrix.T
        return np.clip(rotated, 0.0, 1.0)


## --- Registry ---
OPERATIONS = Vocabulary()
OPERATIONS.register("invert", Invert)
OPERATIONS.register("random", Random)
OPERATIONS.register("rotate-color", RotateColor, parse_axis, float)
