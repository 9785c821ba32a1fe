from __future__ import annotations

from typing import Hashable, Protocol, Tuple

from terrastream.world.chunk import ChunkMesh, ChunkTransform
from terrastream.world.collision import ColliderGeometry

# Opaque handle issued by a collaborator. The core stores it and hands it
# back for release, nothing else.
ExternalRef = Hashable


class SceneCollaborator(Protocol):
    def observer_world_position(self) -> Tuple[float, float, float]: ...

    def register_drawable(self, mesh: ChunkMesh, transform: ChunkTransform) -> ExternalRef: ...

    def release_drawable(self, handle: ExternalRef) -> None: ...


class PhysicsCollaborator(Protocol):
    def register_collider(self, collider: ColliderGeometry, transform: ChunkTransform) -> ExternalRef: ...

    def release_collider(self, handle: ExternalRef) -> None: ...
