from unittest import TestCase

import numpy as np
import taichi as ti

from ink_fluid_sim.fluid import kernels
from ink_fluid_sim.fluid.configs import SimParams
from ink_fluid_sim.fluid.engine import FluidEngine, _initialize_taichi_backend
from ink_fluid_sim.fluid.sampling import clamp_to_grid, is_border_cell, sample_bilinear


@ti.kernel
def _sample_at(f: ti.template(), x: ti.f32, y: ti.f32) -> ti.f32:
    return sample_bilinear(f, ti.Vector([x, y]))


@ti.kernel
def _border_mask(out: ti.template()):
    res = ti.Vector([out.shape[0], out.shape[1]])
    for i, j in out:
        out[i, j] = is_border_cell(ti.Vector([i, j]), res)


@ti.kernel
def _clamp_into(out: ti.template(), x: ti.i32, y: ti.i32, w: ti.i32, h: ti.i32):
    out[None] = clamp_to_grid(ti.Vector([x, y]), ti.Vector([w, h]))


def _source_velocity(n, sigma=5.0):
    x, y = np.meshgrid(np.arange(n, dtype=np.float32), np.arange(n, dtype=np.float32), indexing="ij")
    cx = cy = (n - 1) / 2.0
    g = np.exp(-((x - cx) ** 2 + (y - cy) ** 2) / (2.0 * sigma ** 2))
    return np.stack([(x - cx) * g, (y - cy) * g], axis=-1).astype(np.float32)


class TestSampling(TestCase):

    @classmethod
    def setUpClass(cls):
        _initialize_taichi_backend("cpu")
        cls.f = ti.field(dtype=ti.f32, shape=(4, 4))
        i, j = np.meshgrid(np.arange(4), np.arange(4), indexing="ij")
        cls.f.from_numpy((i + 10 * j).astype(np.float32))

    def test_bilinear_interpolates_between_cells(self):
        self.assertAlmostEqual(_sample_at(self.f, 1.5, 2.25), 24.0, places=4)
        self.assertAlmostEqual(_sample_at(self.f, 2.0, 1.0), 12.0, places=4)

    def test_bilinear_clamps_outside_grid(self):
        self.assertAlmostEqual(_sample_at(self.f, -3.0, -3.0), 0.0, places=4)
        self.assertAlmostEqual(_sample_at(self.f, 10.0, 10.0), 33.0, places=4)

    def test_border_cells_form_one_cell_ring(self):
        out = ti.field(dtype=ti.i32, shape=(6, 5))
        _border_mask(out)
        mask = out.to_numpy() != 0
        expected = np.zeros((6, 5), dtype=bool)
        expected[0, :] = expected[-1, :] = True
        expected[:, 0] = expected[:, -1] = True
        np.testing.assert_array_equal(mask, expected)

    def test_clamp_to_grid(self):
        out = ti.Vector.field(2, dtype=ti.i32, shape=())
        _clamp_into(out, -4, 9, 8, 6)
        self.assertEqual(tuple(out.to_numpy()), (0, 5))


class TestStageKernels(TestCase):

    @classmethod
    def setUpClass(cls):
        _initialize_taichi_backend("cpu")

    def test_brush_weight_is_one_at_centre_and_zero_at_radius(self):
        engine = FluidEngine(32, 32)
        f = engine.fields
        kernels.brush(f.force, f.injected_ink, 10, 10, 1.0, 0.0, 4.0, 1.0, 1.0)
        ink = f.injected_ink.to_numpy()
        force = f.force.to_numpy()

        self.assertAlmostEqual(float(ink[10, 10]), 1.0, places=6)
        self.assertAlmostEqual(float(force[10, 10, 0]), 1.0, places=6)
        self.assertAlmostEqual(float(ink[13, 10]), 1.0 - 9.0 / 16.0, places=6)
        self.assertEqual(float(ink[14, 10]), 0.0)
        self.assertEqual(float(ink[10, 6]), 0.0)
        self.assertEqual(float(ink[20, 20]), 0.0)
        self.assertEqual(float(np.abs(force[:, :, 1]).max()), 0.0)

    def test_advection_pins_border_velocity_to_zero(self):
        engine = FluidEngine(24, 20, params=SimParams(enable_boundary=True))
        rng = np.random.default_rng(3)
        engine.set_velocity(rng.uniform(-1.0, 1.0, size=(24, 20, 2)).astype(np.float32))

        engine.scheduler.advect_velocity()
        vel = engine.fields.velocity.current().to_numpy()

        for border in (vel[0, :], vel[-1, :], vel[:, 0], vel[:, -1]):
            self.assertEqual(float(np.abs(border).max()), 0.0)
        self.assertGreater(float(np.abs(vel[1:-1, 1:-1]).max()), 0.0)

    def test_advection_keeps_uniform_flow_without_boundary(self):
        engine = FluidEngine(16, 16, params=SimParams(enable_boundary=False))
        engine.set_velocity(np.full((16, 16, 2), 0.5, dtype=np.float32))
        engine.scheduler.advect_velocity()
        vel = engine.fields.velocity.current().to_numpy()
        np.testing.assert_allclose(vel, 0.5, atol=1e-6)

    def test_diffusion_keeps_constant_field(self):
        engine = FluidEngine(16, 16, params=SimParams(viscosity=0.3))
        engine.set_velocity(np.full((16, 16, 2), 2.0, dtype=np.float32))
        engine.scheduler.diffuse(3)
        vel = engine.fields.velocity.current().to_numpy()
        np.testing.assert_allclose(vel, 2.0, rtol=1e-5)

    def test_divergence_of_expanding_flow_is_positive_at_centre(self):
        engine = FluidEngine(32, 32)
        engine.set_velocity(_source_velocity(32))
        engine.scheduler.compute_divergence()
        div = engine.fields.divergence.to_numpy()
        self.assertGreater(float(div[16, 16]), 0.0)

    def test_projection_reduces_divergence(self):
        for iterations in (1, 10):
            engine = FluidEngine(48, 48)
            engine.set_velocity(_source_velocity(48))
            s = engine.scheduler

            s.compute_divergence()
            before = np.linalg.norm(engine.fields.divergence.to_numpy())
            s.solve_pressure(iterations)
            s.project()
            s.compute_divergence()
            after = np.linalg.norm(engine.fields.divergence.to_numpy())

            self.assertGreater(before, 0.0)
            self.assertLess(after, before, f"jacobi_iterations={iterations}")
