"""Boundary handling and field sampling shared by the stage kernels."""
import taichi as ti


@ti.func
def grid_res(f: ti.template()):
    return ti.Vector([f.shape[0], f.shape[1]])


@ti.func
def clamp_to_grid(coord, res):
    """Clamps integer cell coordinates into [0, W-1] x [0, H-1]."""
    return ti.max(ti.min(coord, res - 1), 0)


@ti.func
def neighbor(coord, res, dx: ti.template(), dy: ti.template()):
    # Edge cells see themselves past the border.
    return clamp_to_grid(coord + ti.Vector([dx, dy]), res)


@ti.func
def is_border_cell(coord, res):
    return (coord[0] < 1) | (coord[1] < 1) | (coord[0] >= res[0] - 1) | (coord[1] >= res[1] - 1)


@ti.func
def sample_bilinear(f: ti.template(), p):
    """Bilinear lookup at cell-space position ``p`` with clamp-to-edge addressing.

    ``p`` is clamped to [-0.5, dim - 0.5] first, so a lookup never reaches
    past the half texel that surrounds the grid.
    """
    w = f.shape[0]
    h = f.shape[1]
    x = ti.min(ti.max(p[0], -0.5), w - 0.5)
    y = ti.min(ti.max(p[1], -0.5), h - 0.5)
    x0 = ti.cast(ti.floor(x), ti.i32)
    y0 = ti.cast(ti.floor(y), ti.i32)
    tx = x - ti.cast(x0, ti.f32)
    ty = y - ti.cast(y0, ti.f32)

    i0 = ti.max(x0, 0)
    i1 = ti.min(x0 + 1, w - 1)
    j0 = ti.max(y0, 0)
    j1 = ti.min(y0 + 1, h - 1)

    v00 = f[i0, j0]
    v10 = f[i1, j0]
    v01 = f[i0, j1]
    v11 = f[i1, j1]

    v0 = v00 * (1.0 - tx) + v10 * tx
    v1 = v01 * (1.0 - tx) + v11 * tx
    return v0 * (1.0 - ty) + v1 * ty


@ti.func
def sample_uv(f: ti.template(), uv):
    # Texel centres sit at (i + 0.5) / dim.
    p = ti.Vector([uv[0] * f.shape[0] - 0.5, uv[1] * f.shape[1] - 0.5])
    return sample_bilinear(f, p)
