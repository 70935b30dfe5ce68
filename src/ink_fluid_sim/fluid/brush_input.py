import math
import threading
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class BrushState:
    """Brush snapshot in grid coordinates, read once per frame."""

    pos: Tuple[int, int] = (0, 0)
    delta: Tuple[float, float] = (0.0, 0.0)
    is_down: bool = False


class BrushInput:
    """Thread-safe pointer state shared between an input source and the frame loop.

    Display coordinates have their origin at the top-left; the grid has row 0
    at the bottom, so ``y`` is flipped on the way in.
    """

    def __init__(self, grid_width: int, grid_height: int, display_height: float = None,
                 quality: float = 0.2, pixel_ratio: float = 1.0):
        self.grid_width = int(grid_width)
        self.grid_height = int(grid_height)
        self.quality = float(quality)
        self.pixel_ratio = float(pixel_ratio)
        if display_height is None:
            display_height = self.grid_height / (self.quality * self.pixel_ratio)
        self.display_height = float(display_height)

        self._lock = threading.Lock()
        self._state = BrushState()

    def to_grid(self, x: float, y: float) -> Tuple[int, int]:
        gx = math.floor(x * self.pixel_ratio * self.quality)
        gy = math.floor((self.display_height - y * self.pixel_ratio) * self.quality)
        cx = max(0, min(self.grid_width - 1, gx))
        cy = max(0, min(self.grid_height - 1, gy))
        return cx, cy

    def press(self, x: float, y: float):
        pos = self.to_grid(x, y)
        with self._lock:
            self._state = BrushState(pos=pos, delta=(0.0, 0.0), is_down=True)

    def move(self, x: float, y: float):
        gx, gy = self.to_grid(x, y)
        with self._lock:
            if not self._state.is_down:
                return
            px, py = self._state.pos
            self._state = BrushState(pos=(gx, gy), delta=(float(gx - px), float(gy - py)), is_down=True)

    def release(self):
        with self._lock:
            self._state = BrushState()

    def set_grid_state(self, pos, delta=(0.0, 0.0), is_down=True):
        """Sets the brush directly in grid space; positions are clamped."""
        cx = max(0, min(self.grid_width - 1, int(pos[0])))
        cy = max(0, min(self.grid_height - 1, int(pos[1])))
        with self._lock:
            self._state = BrushState(pos=(cx, cy), delta=(float(delta[0]), float(delta[1])), is_down=bool(is_down))

    def snapshot(self) -> BrushState:
        with self._lock:
            return self._state
