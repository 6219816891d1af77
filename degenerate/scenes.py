# degenerate/scenes.py
"""
Preset compositions.

Each scene draws one frame onto a state. Scenes that ignore time render the same
image for every frame; the others animate through `frame.time` (milliseconds).
Color rotations keep black fixed, so the color scenes first light a disk with the
default invert operation.
"""
from .commands import State
from .compose import Composition, Frame
from .core import scaling, similarity


def kaleidoscope(frame: Frame, state: State) -> Composition:
    """Two layered symmetry groups over a white disk; the second slowly rotates."""
    s = 1.0 / 0.75
    return (Composition(state)
            .circle()
            .render()
            .color("y", 0.05)
            .position(similarity(s=s))
            .wrap(True)
            .times(8)
            .render()
            .color("z", 0.05)
            .position(similarity(s=s, turns=5.0 / 6.0 + frame.time / 30000.0))
            .render())


def orbs(frame: Frame, state: State) -> Composition:
    return (Composition(state)
            .circle()
            .render()
            .color("y", 0.05)
            .position(similarity(s=1.0 / 0.75))
            .wrap(True)
            .times(8)
            .render()
            .color("z", 0.05)
            .render())


def target(frame: Frame, state: State) -> Composition:
    """Concentric rings from a repeatedly shrunk disk."""
    return Composition(state).circle().position(similarity(s=2.0)).times(8).render()


def stretch(frame: Frame, state: State) -> Composition:
    # Clamp time so the first frame has a finite horizontal scale.
    t = max(frame.time, 1.0)
    return Composition(state).circle().position(scaling(10000.0 / t, 2.0)).times(8).render()


def x(frame: Frame, state: State) -> Composition:
    composition = Composition(state).x().position(similarity(s=2.0))
    for i in range(8):
        composition = composition.wrap(i % 2 == 1).render()
    return composition


def fade_in(frame: Frame, state: State) -> Composition:
    return Composition(state).x().alpha(min(frame.time / 5000.0, 1.0)).render()


SCENES = {
    "kaleidoscope": kaleidoscope,
    "orbs": orbs,
    "target": target,
    "stretch": stretch,
    "x": x,
    "fade-in": fade_in,
}
