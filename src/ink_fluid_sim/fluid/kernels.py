"""
Per-cell stage kernels of the stable fluids solver.

Each kernel reads its source field(s) and writes only the same cell of its
destination field, so Taichi is free to run cells in any order. Source and
destination must be different buffers; the scheduler guarantees that.

Grid orientation: ``[x, y]``, "up" is ``y - 1`` and "down" is ``y + 1``.
"""
import taichi as ti

from .sampling import grid_res, is_border_cell, neighbor, sample_bilinear


@ti.kernel
def brush(force: ti.template(), injected_ink: ti.template(), pos_x: ti.i32, pos_y: ti.i32,
          delta_x: ti.f32, delta_y: ti.f32, radius: ti.f32, force_scale: ti.f32, ink_amount: ti.f32):
    """Writes the brush footprint into the transient force and ink fields."""
    radius_sq = radius * radius
    delta = ti.Vector([delta_x, delta_y])
    for i, j in force:
        f = ti.Vector([0.0, 0.0])
        ink = 0.0
        dx = ti.cast(i - pos_x, ti.f32)
        dy = ti.cast(j - pos_y, ti.f32)
        dist_sq = dx * dx + dy * dy
        if dist_sq < radius_sq:
            weight = ti.max(0.0, 1.0 - dist_sq / radius_sq)
            f = force_scale * weight * delta
            ink = ink_amount * weight
        force[i, j] = f
        injected_ink[i, j] = ink


@ti.kernel
def add_force(src: ti.template(), dst: ti.template(), force: ti.template(), dt: ti.f32):
    for i, j in dst:
        dst[i, j] = src[i, j] + dt * force[i, j]


@ti.kernel
def add_ink(src: ti.template(), dst: ti.template(), injected: ti.template()):
    for i, j in dst:
        dst[i, j] = src[i, j] + injected[i, j]


@ti.kernel
def advect_velocity(src: ti.template(), dst: ti.template(), dt: ti.f32, enable_boundary: ti.i32):
    """Semi-Lagrangian transport of velocity by itself.

    With ``enable_boundary`` the outermost ring of cells is pinned to zero
    (no-slip walls).
    """
    res = grid_res(dst)
    for i, j in dst:
        c = ti.Vector([i, j])
        back = ti.cast(c, ti.f32) - dt * src[i, j]
        v = sample_bilinear(src, back)
        if enable_boundary != 0:
            if is_border_cell(c, res):
                v = ti.Vector([0.0, 0.0])
        dst[i, j] = v


@ti.kernel
def advect_scalar(vel: ti.template(), src: ti.template(), dst: ti.template(), dt: ti.f32):
    for i, j in dst:
        back = ti.Vector([ti.cast(i, ti.f32), ti.cast(j, ti.f32)]) - dt * vel[i, j]
        dst[i, j] = sample_bilinear(src, back)


@ti.kernel
def diffuse(src: ti.template(), dst: ti.template(), viscosity: ti.f32, dt: ti.f32):
    """One Jacobi relaxation step of the viscous diffusion solve."""
    res = grid_res(dst)
    alpha = viscosity * dt
    beta = 1.0 / (4.0 + alpha)
    for i, j in dst:
        c = ti.Vector([i, j])
        left = src[neighbor(c, res, -1, 0)]
        up = src[neighbor(c, res, 0, -1)]
        right = src[neighbor(c, res, 1, 0)]
        down = src[neighbor(c, res, 0, 1)]
        dst[i, j] = beta * (left + right + up + down + alpha * src[i, j])


@ti.kernel
def divergence(vel: ti.template(), div: ti.template()):
    res = grid_res(div)
    for i, j in div:
        c = ti.Vector([i, j])
        left = vel[neighbor(c, res, -1, 0)]
        up = vel[neighbor(c, res, 0, -1)]
        right = vel[neighbor(c, res, 1, 0)]
        down = vel[neighbor(c, res, 0, 1)]
        div[i, j] = 0.5 * ((right[0] - left[0]) + (down[1] - up[1]))


@ti.kernel
def pressure_jacobi(src: ti.template(), dst: ti.template(), div: ti.template()):
    """One Jacobi step of the pressure Poisson equation."""
    res = grid_res(dst)
    for i, j in dst:
        c = ti.Vector([i, j])
        left = src[neighbor(c, res, -1, 0)]
        up = src[neighbor(c, res, 0, -1)]
        right = src[neighbor(c, res, 1, 0)]
        down = src[neighbor(c, res, 0, 1)]
        dst[i, j] = 0.25 * (left + right + up + down - div[i, j])


@ti.kernel
def project(vel: ti.template(), pressure: ti.template(), dst: ti.template()):
    """Subtracts the pressure gradient, removing the divergent part of ``vel``."""
    res = grid_res(dst)
    for i, j in dst:
        c = ti.Vector([i, j])
        left = pressure[neighbor(c, res, -1, 0)]
        up = pressure[neighbor(c, res, 0, -1)]
        right = pressure[neighbor(c, res, 1, 0)]
        down = pressure[neighbor(c, res, 0, 1)]
        grad = ti.Vector([0.5 * (right - left), 0.5 * (down - up)])
        dst[i, j] = vel[i, j] - grad
