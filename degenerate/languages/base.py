# degenerate/languages/base.py
"""
Base classes providing the common interface for filters and operations.

This module defines the abstract base classes that every filter and operation must
inherit from, and the `Vocabulary` registry that maps command keywords to them. Both
front ends (the command interpreter and the composition API) build their filters and
operations through these registries, so a keyword means the same thing everywhere.
"""
import abc
from typing import Callable, Dict, Sequence, Tuple

import numpy as np

from ..core import Sample


class Filter(abc.ABC):
    """
    Abstract base class for filters.

    A filter is a pure predicate deciding which destination pixels take part in a
    render step. Subclasses implement `mask`, which evaluates the predicate for a
    whole grid at once.
    """

    @abc.abstractmethod
    def mask(self, sample: Sample) -> np.ndarray:
        """
        Evaluates the filter for every pixel of a render step.

        Args:
            sample: Destination indices, transformed coordinates and dimensions

        Returns:
            Boolean array of shape sample.shape
        """
        raise NotImplementedError

    def matches(self, pixel: Tuple[int, int], coordinate: Tuple[float, float],
                dimensions: Tuple[int, int]) -> bool:
        """
        Evaluates the filter for a single pixel.

        Args:
            pixel: Destination pixel as (col, row)
            coordinate: Transformed coordinate as (x, y)
            dimensions: Grid dimensions as (cols, rows)

        Examples:
            >>> Circle().matches((0, 0), (0.0, 0.0), (10, 10))
            True
        """
        col, row = pixel
        x, y = coordinate
        sample = Sample(cols=np.array([[col]]), rows=np.array([[row]]),
                        x=np.array([[x]], dtype=np.float64), y=np.array([[y]], dtype=np.float64),
                        dimensions=dimensions)
        return bool(self.mask(sample)[0, 0])


class Operation(abc.ABC):
    """
    Abstract base class for per-pixel color operations.

    `apply` maps an array of source colors (shape (..., 3)) to destination colors of
    the same shape. Only operations that draw from `rng` consume entropy.
    """

    @abc.abstractmethod
    def apply(self, rng: np.random.Generator, colors: np.ndarray) -> np.ndarray:
        raise NotImplementedError


class Vocabulary:
    """
    Registry mapping command keywords to constructors.

    Each entry records the constructor and one converter per argument token. Converters
    take the raw token string and raise ValueError on bad input.

    Attributes:
        words (dict): keyword -> (constructor, converters)

    Examples:
        >>> FILTERS.build("mod", ["2", "0"])
        Mod(divisor=2, remainder=0)
    """
    def __init__(self):
        self.words: Dict[str, Tuple[Callable, Tuple[Callable[[str], object], ...]]] = {}

    def register(self, keyword: str, constructor: Callable, *converters: Callable[[str], object]):
        self.words[keyword] = (constructor, converters)

    def __contains__(self, keyword: str) -> bool:
        return keyword in self.words

    def build(self, keyword: str, tokens: Sequence[str]):
        """
        Constructs the entry for `keyword` from its argument tokens.

        Raises:
            KeyError: If the keyword is not registered
            ValueError: If the argument count is wrong, a token does not convert, or
                the constructor rejects the values
        """
        constructor, converters = self.words[keyword]
        if len(tokens) != len(converters):
            raise ValueError(f"'{keyword}' takes {len(converters)} argument(s), got {len(tokens)}")
        return constructor(*(convert(token) for convert, token in zip(converters, tokens)))


def natural(token: str) -> int:
    """Converts a token to a non-negative integer."""
    value = int(token)
    if value < 0:
        raise ValueError(f"expected a non-negative integer, got {token!r}")
    return value


def positive(token: str) -> int:
    """Converts a token to a positive integer."""
    value = int(token)
    if value <= 0:
        raise ValueError(f"expected a positive integer, got {token!r}")
    return value
