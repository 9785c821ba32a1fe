from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.spatial import ConvexHull, QhullError

from terrastream.world.chunk import ChunkMesh
from terrastream.world.errors import DegenerateGeometry

COLLIDER_MODES = ("hull", "trimesh")


@dataclass(frozen=True)
class ColliderGeometry:
    """Collision shape handed to the physics collaborator.

    kind == "hull": compact convex hull vertices and outward-wound faces.
    kind == "trimesh": copies of the render mesh vertex/index buffers.
    """

    kind: str
    vertices: np.ndarray  # float32 (V, 3)
    faces: np.ndarray  # uint32 (F, 3)
    aabb_min: tuple[float, float, float]
    aabb_max: tuple[float, float, float]
    volume: float = 0.0

    @property
    def face_count(self) -> int:
        return int(self.faces.shape[0])


def _check_solid(points: np.ndarray) -> None:
    """Raise DegenerateGeometry unless points span 3D (>= 4 non-coplanar)."""
    unique = np.unique(points, axis=0)
    if unique.shape[0] < 4:
        raise DegenerateGeometry(f"need at least 4 distinct points, got {unique.shape[0]}")
    # Relative tolerance: vertices arrive as float32.
    s = np.linalg.svd(unique - unique.mean(axis=0), compute_uv=False)
    rank = int(np.count_nonzero(s > s[0] * 1e-5)) if s[0] > 0.0 else 0
    if rank < 3:
        raise DegenerateGeometry(f"points are {'coplanar' if rank == 2 else 'collinear'} (rank {rank})")


def _hull(points: np.ndarray) -> ColliderGeometry:
    try:
        hull = ConvexHull(points)
    except QhullError as e:
        raise DegenerateGeometry(f"convex hull construction failed: {e}") from e

    # Remap simplices onto the compact hull vertex list.
    remap = np.full(points.shape[0], -1, dtype=np.int64)
    remap[hull.vertices] = np.arange(hull.vertices.size)
    faces = remap[hull.simplices]
    verts = points[hull.vertices]

    # Qhull does not orient simplices; flip those whose normal disagrees with the facet plane.
    e1 = verts[faces[:, 1]] - verts[faces[:, 0]]
    e2 = verts[faces[:, 2]] - verts[faces[:, 0]]
    facing = np.einsum("ij,ij->i", np.cross(e1, e2), hull.equations[:, :3])
    flip = facing < 0.0
    faces[flip] = faces[flip][:, [0, 2, 1]]

    return ColliderGeometry(
        kind="hull",
        vertices=verts.astype(np.float32),
        faces=faces.astype(np.uint32),
        aabb_min=tuple(float(v) for v in points.min(axis=0)),
        aabb_max=tuple(float(v) for v in points.max(axis=0)),
        volume=float(hull.volume),
    )


def derive_collider(mesh: ChunkMesh, *, mode: str = "hull") -> ColliderGeometry:
    """Build a collider for ``mesh`` without modifying it.

    Raises DegenerateGeometry when the vertices do not span a volume; the
    caller keeps the chunk as renderable-only in that case.
    """
    if mode not in COLLIDER_MODES:
        raise ValueError(f"unknown collider mode {mode!r}")
    points = np.array(mesh.positions, dtype=np.float64)
    _check_solid(points)
    if mode == "hull":
        return _hull(points)
    return ColliderGeometry(
        kind="trimesh",
        vertices=np.array(mesh.positions, dtype=np.float32),
        faces=np.array(mesh.indices, dtype=np.uint32),
        aabb_min=tuple(float(v) for v in points.min(axis=0)),
        aabb_max=tuple(float(v) for v in points.max(axis=0)),
    )
