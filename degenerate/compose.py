# degenerate/compose.py
"""
Fluent composition API for fixed render scripts.

A `Composition` pairs an interpreter `State` with a `RenderConfig`. Configuration
methods return a new `Composition` sharing the same state, and `render()` commits the
configured passes to that state. Because the configuration survives a commit, a second
symmetry group can be layered by changing only what differs:

    (Composition.new(256, 256)
        .circle()
        .color("y", 0.05)
        .position(similarity(s=1 / 0.75))
        .wrap()
        .times(8)
        .render()
        .color("z", 0.05)
        .position(similarity(s=1 / 0.75, turns=5 / 6))
        .render()
        .save("kaleidoscope.png"))

`times(n)` repeats a render step n times, each pass reading the previous pass's
output. Pass k samples through `position @ step^k`, so `step` adds a fixed increment
(e.g. 1/n of a turn) per pass.
"""
import logging
import os
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional

import imageio.v2 as imageio
import numpy as np

from . import core
from .commands import State
from .core import Boundary
from .languages.base import Filter, Operation
from .languages.filters import All, Circle, Cross, Mod, Rows, Square, Top, X
from .languages.operations import Invert, Random, RotateColor, parse_axis

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class RenderConfig:
    """
    Parameters of one `render` commit.

    Attributes:
        filter: Mask selecting destination pixels
        operation: Color operation applied to matched pixels
        position: Base transform from destination to source coordinates
        step: Increment composed onto the transform for each further pass
        times: Number of passes
        boundary: Out of range sampling policy for every pass
        alpha: Blend between the operation result (1.0) and the prior pixel (0.0)
    """
    filter: Filter = field(default_factory=All)
    operation: Operation = field(default_factory=Invert)
    position: np.ndarray = field(default_factory=lambda: np.eye(3))
    step: np.ndarray = field(default_factory=lambda: np.eye(3))
    times: int = 1
    boundary: Boundary = Boundary.BACKGROUND
    alpha: float = 1.0


def render(config: RenderConfig, state: State) -> State:
    """
    Runs the configured passes against `state`, replacing its matrix after each pass.

    Returns:
        The same state, for chaining
    """
    transform = config.position
    for i in range(config.times):
        state.matrix = core.render_step(state.matrix, config.filter, config.operation, transform,
                                        state.rng, config.boundary, config.alpha)
        transform = transform @ config.step
        if state.verbose:
            logger.info("pass %d/%d filter=%s operation=%s", i + 1, config.times,
                        config.filter, config.operation)
    return state


class Composition:
    """Chainable handle over a state and the configuration of its next render."""

    def __init__(self, state: Optional[State] = None, config: Optional[RenderConfig] = None):
        self.state = state if state is not None else State.new()
        self.config = config if config is not None else RenderConfig()

    @classmethod
    def new(cls, cols: int = core.DEFAULT_WIDTH, rows: int = core.DEFAULT_HEIGHT,
            seed: Optional[int] = None) -> "Composition":
        return cls(State.new(cols, rows, seed))

    def _with(self, **changes) -> "Composition":
        return Composition(self.state, replace(self.config, **changes))

    # --- filters ---
    def filter(self, filter_: Filter) -> "Composition":
        return self._with(filter=filter_)

    def all(self):
        return self.filter(All())

    def circle(self):
        return self.filter(Circle())

    def cross(self):
        return self.filter(Cross())

    def square(self):
        return self.filter(Square())

    def top(self):
        return self.filter(Top())

    def x(self):
        return self.filter(X())

    def rows(self, count: int, step: int):
        return self.filter(Rows(count, step))

    def mod(self, divisor: int, remainder: int):
        return self.filter(Mod(divisor, remainder))

    # --- operations ---
    def operation(self, operation: Operation) -> "Composition":
        return self._with(operation=operation)

    def invert(self):
        return self.operation(Invert())

    def random(self):
        return self.operation(Random())

    def color(self, axis, turns: float):
        """Sets a color rotation; `axis` is a channel index or name (see `parse_axis`)."""
        axis = parse_axis(axis) if isinstance(axis, str) else axis
        return self.operation(RotateColor(axis, turns))

    # --- geometry and repetition ---
    def position(self, matrix: np.ndarray) -> "Composition":
        return self._with(position=np.asarray(matrix, dtype=np.float64))

    def step(self, matrix: np.ndarray) -> "Composition":
        return self._with(step=np.asarray(matrix, dtype=np.float64))

    def times(self, n: int) -> "Composition":
        if n < 0:
            raise ValueError(f"times must be non-negative, got {n}")
        return self._with(times=int(n))

    def wrap(self, enabled: bool = True) -> "Composition":
        return self._with(boundary=Boundary.WRAP if enabled else Boundary.BACKGROUND)

    def alpha(self, alpha: float) -> "Composition":
        return self._with(alpha=float(alpha))

    # --- commit and output ---
    def render(self) -> "Composition":
        render(self.config, self.state)
        return self

    @property
    def matrix(self) -> np.ndarray:
        return self.state.matrix

    def save(self, path: str = core.DEFAULT_PATH) -> "Composition":
        self.state.save(path)
        return self

    def print(self) -> "Composition":
        self.state.print()
        return self


## --- Animation ---
@dataclass(frozen=True)
class Frame:
    """One animation frame; `time` is in milliseconds since the first frame."""
    index: int
    time: float


def frames(count: int, fps: float) -> List[Frame]:
    return [Frame(i, i * 1000.0 / fps) for i in range(count)]


def animate(scene: Callable[[Frame, State], object], count: int, path: str, fps: float = 15,
            make_state: Optional[Callable[[], State]] = None) -> List[np.ndarray]:
    """
    Renders a scene once per frame and writes the frames as an animated image.

    Each frame starts from a fresh state, so frames are independent of each other.

    Args:
        scene: Callable drawing one frame onto the given state
        count: Number of frames
        path: Output path; the extension selects the format (e.g. .gif)
        fps: Frames per second
        make_state: Factory for the per-frame state (default `State.new`)

    Returns:
        The rendered frames as uint8 arrays
    """
    make_state = make_state or State.new
    images = []
    for frame in frames(count, fps):
        state = make_state()
        scene(frame, state)
        images.append((core.quantize(state.matrix) * 255.0).round().astype(np.uint8))
        logger.info("Rendered frame %d/%d", frame.index + 1, count)
    output_dir = os.path.dirname(path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    try:
        imageio.mimsave(path, images, duration=1000.0 / fps)
    except ValueError as e:
        raise core.CodecError(f"Could not encode animation {path}: {e}") from e
    return images
