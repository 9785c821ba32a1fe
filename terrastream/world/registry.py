from __future__ import annotations

import itertools
from typing import Any, Dict, List, Tuple

from terrastream.world.chunk import ChunkMesh, ChunkTransform
from terrastream.world.collision import ColliderGeometry
from terrastream.world.errors import UnknownHandle


class HandleRegistry:
    """Arena of live objects keyed by integer handles.

    Releasing a handle that was never issued, or twice, raises UnknownHandle.
    """

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._ids = itertools.count(1)
        self.live: Dict[int, Tuple[Any, ChunkTransform]] = {}
        self.registered = 0
        self.released: List[int] = []

    def __len__(self) -> int:
        return len(self.live)

    def register(self, obj: Any, transform: ChunkTransform) -> int:
        handle = next(self._ids)
        self.live[handle] = (obj, transform)
        self.registered += 1
        return handle

    def release(self, handle: int) -> None:
        if handle not in self.live:
            raise UnknownHandle(f"{self.kind} handle {handle!r} is not live")
        del self.live[handle]
        self.released.append(handle)

    def get(self, handle: int) -> Any:
        return self.live[handle][0]


class HeadlessScene:
    """Scene collaborator without a GPU: a movable observer plus a drawable arena."""

    def __init__(self, position: Tuple[float, float, float] = (0.0, 0.0, 0.0)) -> None:
        self.position = tuple(float(v) for v in position)
        self.drawables = HandleRegistry("drawable")

    def move_to(self, x: float, y: float, z: float) -> None:
        self.position = (float(x), float(y), float(z))

    def observer_world_position(self) -> Tuple[float, float, float]:
        return self.position

    def register_drawable(self, mesh: ChunkMesh, transform: ChunkTransform) -> int:
        return self.drawables.register(mesh, transform)

    def release_drawable(self, handle: int) -> None:
        self.drawables.release(handle)


class ColliderRegistry:
    """Physics collaborator stand-in: keeps static colliders by handle."""

    def __init__(self) -> None:
        self.colliders = HandleRegistry("collider")

    def register_collider(self, collider: ColliderGeometry, transform: ChunkTransform) -> int:
        return self.colliders.register(collider, transform)

    def release_collider(self, handle: int) -> None:
        self.colliders.release(handle)

    def face_count(self) -> int:
        return sum(c.face_count for c, _t in self.colliders.live.values())
