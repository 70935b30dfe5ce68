"""
Grid field storage.

Every simulated quantity lives in a Taichi field of shape ``(W, H)`` indexed
``[x, y]``. Quantities that are read and written by the same stage are kept
as a :class:`FieldPair`; the scheduler decides which slot is the source and
which is the destination before each dispatch.
"""
from dataclasses import dataclass
from typing import Any

import taichi as ti

from .configs import validate_dimensions


@dataclass
class FieldPair:
    """Two same-shaped buffers and a flag naming the current one.

    ``swap`` only flips the flag; data is never copied. The pair does not
    stop a caller from reading and writing the same slot in one stage.
    """

    front: Any
    back: Any
    current_is_front: bool = True

    @property
    def index(self) -> int:
        return 0 if self.current_is_front else 1

    def current(self):
        return self.front if self.current_is_front else self.back

    def other(self):
        return self.back if self.current_is_front else self.front

    def swap(self):
        self.current_is_front = not self.current_is_front

    def set_current(self, index: int):
        self.current_is_front = int(index) == 0


@ti.kernel
def _fill_scalar(f: ti.template(), value: ti.f32):
    for I in ti.grouped(f):
        f[I] = value


@ti.kernel
def _fill_vector(f: ti.template(), value: ti.f32):
    for I in ti.grouped(f):
        f[I] = ti.Vector([value, value])


class FluidFields:
    """Owns every grid buffer of one simulation instance.

    Fields:
    - velocity: 2-vector pair
    - ink: scalar pair
    - pressure: scalar pair
    - divergence: scalar
    - force: 2-vector, written by the brush stage
    - injected_ink: scalar, written by the brush stage
    """

    def __init__(self, width: int, height: int, velocity: FieldPair, ink: FieldPair, pressure: FieldPair,
                 divergence, force, injected_ink, tree=None):
        self.width = width
        self.height = height
        self.velocity = velocity
        self.ink = ink
        self.pressure = pressure
        self.divergence = divergence
        self.force = force
        self.injected_ink = injected_ink
        self._tree = tree
        self.destroyed = False

    @classmethod
    def allocate(cls, width: int, height: int) -> "FluidFields":
        """Places every buffer in one SNode tree so :meth:`destroy` can free them together."""
        width, height = validate_dimensions(width, height)
        shape = (width, height)
        fb = ti.FieldsBuilder()

        def scalar():
            f = ti.field(dtype=ti.f32)
            fb.dense(ti.ij, shape).place(f)
            return f

        def vector():
            f = ti.Vector.field(2, dtype=ti.f32)
            fb.dense(ti.ij, shape).place(f)
            return f

        velocity = FieldPair(vector(), vector())
        ink = FieldPair(scalar(), scalar())
        pressure = FieldPair(scalar(), scalar())
        divergence, force, injected_ink = scalar(), vector(), scalar()
        tree = fb.finalize()

        return cls(
            width,
            height,
            velocity=velocity,
            ink=ink,
            pressure=pressure,
            divergence=divergence,
            force=force,
            injected_ink=injected_ink,
            tree=tree,
        )

    def destroy(self):
        """Frees the device memory of all buffers. The store is unusable afterwards."""
        if self.destroyed:
            return
        if self._tree is not None:
            self._tree.destroy()
            self._tree = None
        self.destroyed = True

    @property
    def shape(self):
        return (self.width, self.height)

    def pairs(self):
        return (self.velocity, self.ink, self.pressure)

    def clear(self):
        for pair in self.pairs():
            pair.set_current(0)
        _fill_vector(self.velocity.front, 0.0)
        _fill_vector(self.velocity.back, 0.0)
        _fill_vector(self.force, 0.0)
        for f in (self.ink.front, self.ink.back, self.pressure.front, self.pressure.back,
                  self.divergence, self.injected_ink):
            _fill_scalar(f, 0.0)
