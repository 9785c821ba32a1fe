from __future__ import annotations

import numpy as np

from terrastream.config import NORMAL_DELTA
from terrastream.world.chunk import ChunkMesh
from terrastream.world.errors import InvalidConfig


def build_indices(res: int) -> np.ndarray:
    """Triangle indices for a (res x res) grid, shape (2*(res-1)**2, 3).

    Vertex (i, j) lives at j*res + i. Triangles are CCW seen from +Y.
    """
    idx: list[int] = []
    for j in range(res - 1):
        for i in range(res - 1):
            a = j * res + i
            b = a + 1
            c = a + res
            d = c + 1
            idx.extend([a, c, b, b, c, d])
    return np.array(idx, dtype=np.uint32).reshape(-1, 3)


def build_chunk_mesh(
    origin_xz: tuple[float, float],
    resolution: int,
    cell_size: float,
    sampler,
    *,
    delta: float = NORMAL_DELTA,
) -> ChunkMesh:
    """Sample the heightfield on a res x res grid starting at ``origin_xz``.

    Normals come from two-sided finite differences of the heightfield itself
    (step ``delta`` along X and Z), so they do not depend on the triangulation
    or on the grid spacing.

    ``sampler`` needs ``height_grid(xs, zs)``; a bare ``height(x, z)`` callable
    is accepted too and evaluated point by point.
    """
    res = int(resolution)
    if res < 2:
        raise InvalidConfig(f"resolution must be >= 2, got {resolution}")
    x0 = float(origin_xz[0])
    z0 = float(origin_xz[1])
    step = float(cell_size)
    d = float(delta)

    xs = x0 + np.arange(res, dtype=np.float64) * step
    zs = z0 + np.arange(res, dtype=np.float64) * step
    grid = _grid_fn(sampler)

    h = grid(xs, zs)
    # Central differences: dX = (2d, hx, 0), dZ = (0, hz, 2d); n ~ dZ x dX = (-2d*hx, 4d^2, -2d*hz)
    hx = grid(xs + d, zs) - grid(xs - d, zs)
    hz = grid(xs, zs + d) - grid(xs, zs - d)
    n = np.stack([-hx, np.full_like(h, 2.0 * d), -hz], axis=-1)
    n /= np.linalg.norm(n, axis=-1, keepdims=True)

    grid_x, grid_z = np.meshgrid(xs, zs, indexing="xy")
    pos = np.stack([grid_x, h, grid_z], axis=-1)

    t = np.arange(res, dtype=np.float64) / (res - 1)
    u, v = np.meshgrid(t, t, indexing="xy")
    uv = np.stack([u, v], axis=-1)

    return ChunkMesh(
        resolution=res,
        positions=pos.reshape(-1, 3).astype(np.float32),
        normals=n.reshape(-1, 3).astype(np.float32),
        uvs=uv.reshape(-1, 2).astype(np.float32),
        indices=build_indices(res),
    )


def _grid_fn(sampler):
    if hasattr(sampler, "height_grid"):
        return sampler.height_grid

    height_fn = sampler

    def grid(xs: np.ndarray, zs: np.ndarray) -> np.ndarray:
        h = np.zeros((zs.size, xs.size), dtype=np.float64)
        for j in range(zs.size):
            for i in range(xs.size):
                h[j, i] = float(height_fn(float(xs[i]), float(zs[j])))
        return h

    return grid
