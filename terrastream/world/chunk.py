from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, NamedTuple, Optional

import numpy as np

from terrastream.config import (
    DEFAULT_CHUNK_RES,
    DEFAULT_MAX_HEIGHT,
    DEFAULT_NOISE,
    DEFAULT_NOISE_FREQUENCY,
    DEFAULT_NOISE_OCTAVES,
    DEFAULT_SEED,
    DEFAULT_VIEW_RADIUS,
    DEFAULT_WORLD_SCALE,
)
from terrastream.world.errors import InvalidConfig

NOISE_MODES = ("fast", "simplex")


class ChunkCoord(NamedTuple):
    cx: int
    cz: int


class ChunkTransform(NamedTuple):
    """World origin of a chunk. Mesh vertices are already in world space."""

    x: float
    y: float
    z: float


@dataclass(frozen=True)
class ChunkConfig:
    chunk_resolution: int = DEFAULT_CHUNK_RES
    world_scale: float = DEFAULT_WORLD_SCALE
    view_radius: float = DEFAULT_VIEW_RADIUS
    max_height: float = DEFAULT_MAX_HEIGHT
    noise_seed: int = DEFAULT_SEED
    noise_frequency: float = DEFAULT_NOISE_FREQUENCY
    noise_octaves: int = DEFAULT_NOISE_OCTAVES
    noise_mode: str = DEFAULT_NOISE

    def __post_init__(self) -> None:
        if isinstance(self.chunk_resolution, bool) or int(self.chunk_resolution) != self.chunk_resolution:
            raise InvalidConfig(f"chunk_resolution must be an integer, got {self.chunk_resolution!r}")
        if self.chunk_resolution < 2:
            raise InvalidConfig(f"chunk_resolution must be >= 2, got {self.chunk_resolution}")
        for name in ("world_scale", "view_radius", "noise_frequency"):
            value = float(getattr(self, name))
            if not math.isfinite(value) or value <= 0.0:
                raise InvalidConfig(f"{name} must be a positive finite number, got {value}")
        if not math.isfinite(float(self.max_height)):
            raise InvalidConfig(f"max_height must be finite, got {self.max_height}")
        if int(self.noise_octaves) < 1:
            raise InvalidConfig(f"noise_octaves must be >= 1, got {self.noise_octaves}")
        if self.noise_mode not in NOISE_MODES:
            raise InvalidConfig(f"noise_mode must be one of {NOISE_MODES}, got {self.noise_mode!r}")

    @property
    def chunk_size(self) -> float:
        """World units per chunk edge."""
        return self.chunk_resolution * float(self.world_scale)

    @property
    def cell_size(self) -> float:
        # Edge vertices are shared with the neighbour chunk, so the grid spans the full edge.
        return self.chunk_size / (self.chunk_resolution - 1)


@dataclass(frozen=True)
class ChunkMesh:
    """Generated geometry for one chunk.

    positions/normals: float32 (N, 3), uvs: float32 (N, 2), indices: uint32 (T, 3).
    N == resolution**2. Arrays are made read-only on construction.
    """

    resolution: int
    positions: np.ndarray
    normals: np.ndarray
    uvs: np.ndarray
    indices: np.ndarray

    def __post_init__(self) -> None:
        for arr in (self.positions, self.normals, self.uvs, self.indices):
            arr.setflags(write=False)

    @property
    def vertex_count(self) -> int:
        return int(self.positions.shape[0])

    @property
    def triangle_count(self) -> int:
        return int(self.indices.shape[0])

    def interleaved(self) -> np.ndarray:
        """Packed pos(3) norm(3) uv(2) float32 vertex stream, flattened."""
        return np.concatenate([self.positions, self.normals, self.uvs], axis=1).astype(np.float32).reshape(-1)


@dataclass
class ChunkBuild:
    """CPU-side result of generating one chunk (possibly on a worker thread)."""

    coord: ChunkCoord
    mesh: Optional[ChunkMesh] = None
    collider: Any = None
    collider_error: Optional[Exception] = None
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class ResidentChunk:
    coord: ChunkCoord
    renderable: Any
    collidable: Any = None  # None when the chunk has no collider
