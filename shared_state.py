from __future__ import annotations

from dataclasses import dataclass

from params import ParameterStore
from renderer import SLOT_BASE, SLOT_DEPTH


@dataclass(frozen=True)
class SurfaceDimensions:
    width: int
    height: int

    def center(self) -> tuple[float, float]:
        return self.width / 2.0, self.height / 2.0

    def as_tuple(self) -> tuple[int, int]:
        return self.width, self.height


class PointerState:
    """Pointer in surface pixels, Y measured from the bottom edge."""

    def __init__(self, x: float = 0.0, y: float = 0.0):
        self.x = x
        self.y = y

    def at_origin(self) -> bool:
        return self.x == 0.0 and self.y == 0.0

    def recenter(self, surface: SurfaceDimensions) -> None:
        self.x, self.y = surface.center()

    def move_top_left(self, x: float, y: float, surface_height: float) -> None:
        """Take top-left-origin surface coordinates and store them bottom-up."""
        self.x = float(x)
        self.y = float(surface_height) - float(y)

    def snapshot(self) -> tuple[float, float]:
        return self.x, self.y


class DisplayState:
    def __init__(self, params: ParameterStore | None = None) -> None:
        self.params = params or ParameterStore()
        self.pointer = PointerState()
        self.surface: SurfaceDimensions | None = None
        self.run_mode = True
        self.fullscreen = False
        self.drop_target = SLOT_BASE

    def toggle_drop_target(self) -> str:
        self.drop_target = SLOT_DEPTH if self.drop_target == SLOT_BASE else SLOT_BASE
        return self.drop_target
