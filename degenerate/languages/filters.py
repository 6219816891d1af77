# degenerate/languages/filters.py
"""
Shape filters deciding which destination pixels a render step writes.

Filters see the destination pixel index and the *transformed* coordinate of that
pixel, so coordinate-based shapes (circle, square, cross, x) move with the sampling
transform while index-based ones (top, rows, mod) stay fixed to the grid.

The filter vocabulary:
    all, circle, cross, square, top, x: no arguments
    rows:<count>:<step>: horizontal bands
    mod:<divisor>:<remainder>: pixel index residue class

Example usage:
    "resize:10:10 circle"  # inscribed disk
    "resize:4:4 rows:4:2"  # every other row
"""
from dataclasses import dataclass

import numpy as np

from ..core import Sample
from .base import Filter, Vocabulary, natural, positive


## --- Coordinate Filters ---
@dataclass(frozen=True)
class All(Filter):
    """Matches every pixel."""
    def mask(self, sample: Sample) -> np.ndarray:
        return np.ones(sample.shape, dtype=bool)


@dataclass(frozen=True)
class Circle(Filter):
    """Disk of radius 1, inscribed in the grid's shorter dimension."""
    def mask(self, sample: Sample) -> np.ndarray:
        return sample.x ** 2 + sample.y ** 2 <= 1.0


@dataclass(frozen=True)
class Cross(Filter):
    """Upright cross: pixels within one step of either coordinate axis."""
    def mask(self, sample: Sample) -> np.ndarray:
        w = sample.step
        return (np.abs(sample.x) < w) | (np.abs(sample.y) < w)


@dataclass(frozen=True)
class X(Filter):
    """Diagonal cross: pixels within one step of either main diagonal."""
    def mask(self, sample: Sample) -> np.ndarray:
        w = sample.step
        return (np.abs(sample.x - sample.y) < w) | (np.abs(sample.x + sample.y) < w)


@dataclass(frozen=True)
class Square(Filter):
    """Centered square covering the middle half of the shorter dimension."""
    def mask(self, sample: Sample) -> np.ndarray:
        return (np.abs(sample.x) < 0.5) & (np.abs(sample.y) < 0.5)


## --- Index Filters ---
@dataclass(frozen=True)
class Top(Filter):
    """Upper half of the grid."""
    def mask(self, sample: Sample) -> np.ndarray:
        return sample.rows < sample.dimensions[1] / 2.0


@dataclass(frozen=True)
class Rows(Filter):
    """
    Horizontal bands.

    The grid's rows are divided into `count` equal bands; a pixel matches when its
    band index is a multiple of `step`.

    Examples:
        >>> Rows(count=4, step=2)  # on 4 rows: rows 0 and 2
    """
    count: int
    step: int

    def __post_init__(self):
        if self.count <= 0 or self.step <= 0:
            raise ValueError(f"rows count and step must be positive, got {self.count}, {self.step}")

    def mask(self, sample: Sample) -> np.ndarray:
        band = sample.rows * self.count // sample.dimensions[1]
        return band % self.step == 0


@dataclass(frozen=True)
class Mod(Filter):
    """
    Residue class of the pixel's linear index.

    The linear index is column-major: `col * rows + row`.
    """
    divisor: int
    remainder: int

    def __post_init__(self):
        if self.divisor <= 0:
            raise ValueError(f"mod divisor must be positive, got {self.divisor}")

    def mask(self, sample: Sample) -> np.ndarray:
        index = sample.cols * sample.dimensions[1] + sample.rows
        return index % self.divisor == self.remainder


## --- Registry ---
FILTERS = Vocabulary()
FILTERS.register("all", All)
FILTERS.register("circle", Circle)
FILTERS.register("cross", Cross)
FILTERS.register("square", Square)
FILTERS.register("top", Top)
FILTERS.register("x", X)
FILTERS.register("rows", Rows, positive, positive)
FILTERS.register("mod", Mod, positive, natural)
