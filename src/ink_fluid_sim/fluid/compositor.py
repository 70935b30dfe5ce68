"""Maps the simulation state to a displayable RGBA image."""
from typing import Optional, Tuple

import numpy as np
import taichi as ti

from .configs import DisplayMode, SimParams, validate_dimensions
from .fields import FluidFields
from .sampling import sample_uv


@ti.func
def _pixel_uv(i, j, img: ti.template()):
    return ti.Vector([(ti.cast(i, ti.f32) + 0.5) / img.shape[0], (ti.cast(j, ti.f32) + 0.5) / img.shape[1]])


@ti.kernel
def _render_ink(ink: ti.template(), img: ti.template()):
    for i, j in img:
        d = sample_uv(ink, _pixel_uv(i, j, img))
        img[i, j] = ti.Vector([d, d * 0.8, d * 0.5, 1.0])


@ti.kernel
def _render_velocity(vel: ti.template(), img: ti.template()):
    for i, j in img:
        f = sample_uv(vel, _pixel_uv(i, j, img))
        mag = f.norm()
        img[i, j] = ti.Vector([(f[0] + 1.0) * 0.5, (f[1] + 1.0) * 0.5, mag * 0.4, 1.0])


@ti.kernel
def _render_refraction(ink: ti.template(), background: ti.template(), img: ti.template(), eps: ti.f32, strength: ti.f32):
    for i, j in img:
        uv = _pixel_uv(i, j, img)
        left = sample_uv(ink, uv - ti.Vector([eps, 0.0]))
        right = sample_uv(ink, uv + ti.Vector([eps, 0.0]))
        up = sample_uv(ink, uv + ti.Vector([0.0, eps]))
        down = sample_uv(ink, uv - ti.Vector([0.0, eps]))

        dx = right - left
        dy = up - down
        offset_uv = uv + ti.Vector([dx * strength, -dy * strength])

        color = sample_uv(background, offset_uv)
        img[i, j] = ti.Vector([color[0], color[1], color[2], 1.0])


@ti.kernel
def _to_u8(img: ti.template(), img_u8: ti.template()):
    for i, j in img:
        col = ti.max(0.0, ti.min(1.0, img[i, j]))
        for c in ti.static(range(4)):
            img_u8[i, j, c] = ti.cast(col[c] * 255.0, ti.u8)


def _as_rgba(background: np.ndarray) -> np.ndarray:
    arr = np.asarray(background)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise ValueError(f"Background must be a (width, height, 3|4) array, got shape {arr.shape}")
    if arr.dtype == np.uint8:
        arr = arr.astype(np.float32) / 255.0
    else:
        arr = arr.astype(np.float32)
    if arr.shape[2] == 3:
        alpha = np.ones(arr.shape[:2] + (1,), dtype=np.float32)
        arr = np.concatenate([arr, alpha], axis=2)
    return np.ascontiguousarray(arr)


class RenderCompositor:
    """Owns the output image and the static background texture.

    The output has the display size, which may differ from the grid; fields
    are read through bilinear UV sampling, so any grid can be shown at any
    display size. Rendering never writes simulation state.
    """

    def __init__(self, display_size: Tuple[int, int], background: Optional[np.ndarray] = None):
        self.width, self.height = validate_dimensions(display_size[0], display_size[1], what="display")
        shape = (self.width, self.height)

        fb = ti.FieldsBuilder()
        self._img = ti.Vector.field(4, dtype=ti.f32)
        fb.dense(ti.ij, shape).place(self._img)
        self._img_u8 = ti.field(dtype=ti.u8)
        fb.dense(ti.ijk, shape + (4,)).place(self._img_u8)
        self._background = ti.Vector.field(4, dtype=ti.f32)
        fb.dense(ti.ij, shape).place(self._background)
        self._tree = fb.finalize()
        self.set_background(background)

    def destroy(self):
        if self._tree is not None:
            self._tree.destroy()
            self._tree = None

    @property
    def display_size(self):
        return (self.width, self.height)

    def set_background(self, background: Optional[np.ndarray]):
        """Uploads a ``(width, height, 3|4)`` image; ``None`` means plain white paper."""
        if background is None:
            self._background.fill(1.0)
            return
        rgba = _as_rgba(background)
        if rgba.shape[:2] != (self.width, self.height):
            raise ValueError(f"Background is {rgba.shape[0]}x{rgba.shape[1]}, display is {self.width}x{self.height}")
        self._background.from_numpy(rgba)

    def render(self, fields: FluidFields, params: SimParams):
        mode = DisplayMode.parse(params.display_mode)
        if mode is DisplayMode.INK:
            _render_ink(fields.ink.current(), self._img)
        elif mode is DisplayMode.VELOCITY:
            _render_velocity(fields.velocity.current(), self._img)
        elif mode is DisplayMode.IMAGE:
            _render_refraction(fields.ink.current(), self._background, self._img,
                               float(params.displacement_scale), float(params.refraction_strength))
        else:
            raise ValueError(f"Unhandled display mode: {mode}")
        _to_u8(self._img, self._img_u8)

    def image(self) -> np.ndarray:
        return self._img.to_numpy()

    def image_u8(self) -> np.ndarray:
        return self._img_u8.to_numpy()
