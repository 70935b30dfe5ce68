"""
Frame sequencing for the stable fluids solver.

A frame is a fixed chain of kernel launches. Each launch finishes before the
next one starts, and buffer swaps happen here between launches only.
"""
import time

import taichi as ti

from . import kernels
from .brush_input import BrushState
from .configs import SimParams
from .fields import FluidFields


class FrameScheduler:
    def __init__(self, fields: FluidFields, params: SimParams):
        self.fields = fields
        self.params = params
        self.timing_mode = False
        self._frame_count = 0

    def brush_radius(self) -> float:
        return self.fields.width * float(self.params.brush_radius_fraction)

    # ===============================
    # Stage dispatches
    # ===============================

    def apply_brush(self, brush: BrushState):
        """Injects ink and force for a pressed brush.

        Ink lands in the other slot and becomes current. The force result is
        written to the other velocity slot without a swap; advection picks it
        up from there.
        """
        f = self.fields
        p = self.params
        # off-grid positions are clamped, as BrushInput does for pointer input
        x = min(max(int(brush.pos[0]), 0), f.width - 1)
        y = min(max(int(brush.pos[1]), 0), f.height - 1)
        kernels.brush(
            f.force, f.injected_ink,
            x, y,
            float(brush.delta[0]), float(brush.delta[1]),
            self.brush_radius(), float(p.force_scale), float(p.ink_amount),
        )
        kernels.add_ink(f.ink.current(), f.ink.other(), f.injected_ink)
        f.ink.swap()
        kernels.add_force(f.velocity.current(), f.velocity.other(), f.force, float(p.dt))

    def advect_velocity(self):
        vel = self.fields.velocity
        kernels.advect_velocity(vel.other(), vel.current(), float(self.params.dt), int(bool(self.params.enable_boundary)))

    def diffuse(self, iterations: int):
        vel = self.fields.velocity
        for _ in range(int(iterations)):
            kernels.diffuse(vel.current(), vel.other(), float(self.params.viscosity), float(self.params.dt))
            vel.swap()

    def compute_divergence(self):
        kernels.divergence(self.fields.velocity.current(), self.fields.divergence)

    def solve_pressure(self, iterations: int):
        pressure = self.fields.pressure
        pressure.set_current(0)
        for _ in range(int(iterations)):
            kernels.pressure_jacobi(pressure.current(), pressure.other(), self.fields.divergence)
            pressure.swap()

    def project(self):
        vel = self.fields.velocity
        kernels.project(vel.current(), self.fields.pressure.current(), vel.other())
        vel.swap()

    def advect_ink(self):
        ink = self.fields.ink
        kernels.advect_scalar(self.fields.velocity.current(), ink.current(), ink.other(), float(self.params.dt))
        ink.swap()

    # ===============================
    # Frame
    # ===============================

    def step(self, brush: BrushState):
        """Runs one full frame. The order of the stages is fixed."""
        t0 = time.perf_counter() if self.timing_mode else 0

        if brush.is_down:
            self.apply_brush(brush)
        else:
            # Drop whatever a previous brush frame left in the other slot.
            self.fields.velocity.set_current(0)

        self.advect_velocity()
        self.diffuse(self.params.jacobi_iterations)

        t1 = time.perf_counter() if self.timing_mode else 0

        self.compute_divergence()
        self.solve_pressure(self.params.jacobi_iterations)
        self.project()

        # Ink rides on the divergence-free velocity.
        self.advect_ink()

        self._frame_count += 1
        if self.timing_mode and self._frame_count % 30 == 0:
            ti.sync()
            t2 = time.perf_counter()
            print(f"[FrameScheduler] Frame {self._frame_count}: {(t1-t0)*1000:4.1f}ms (advect+diffuse) + {(t2-t1)*1000:4.1f}ms (project+ink)")
