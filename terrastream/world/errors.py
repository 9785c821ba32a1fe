from __future__ import annotations


class TerrainError(Exception):
    """Base class for everything the terrain streaming core raises."""


class InvalidConfig(TerrainError, ValueError):
    """Chunk configuration rejected at startup."""


class DegenerateGeometry(TerrainError):
    """A chunk mesh cannot be turned into a collider (too few non-coplanar points)."""


class ResidencyError(TerrainError):
    """Residency mapping and controller disagree. Not recoverable."""


class DuplicateChunk(ResidencyError):
    def __init__(self, coord) -> None:
        super().__init__(f"chunk {tuple(coord)} is already resident")
        self.coord = coord


class UnknownChunk(ResidencyError):
    def __init__(self, coord) -> None:
        super().__init__(f"chunk {tuple(coord)} is not resident")
        self.coord = coord


class UnknownHandle(TerrainError):
    """A collaborator was asked to release a handle it never issued (or already released)."""
