from __future__ import annotations

import logging
import math
import queue
import threading
from typing import Dict, Iterable, List, Optional, Set, Tuple

from terrastream.world.chunk import ChunkBuild, ChunkConfig, ChunkCoord, ResidentChunk
from terrastream.world.collision import derive_collider
from terrastream.world.errors import DegenerateGeometry, DuplicateChunk, UnknownChunk
from terrastream.world.height import HeightSampler
from terrastream.world.mesh_builder import build_chunk_mesh

log = logging.getLogger(__name__)


class ChunkTracker:
    """Which chunk coordinates are resident, and which ought to be.

    The single source of truth for "is this coordinate loaded". Only the
    streaming controller mutates it.
    """

    def __init__(self, config: ChunkConfig) -> None:
        self.config = config
        self.resident: Dict[ChunkCoord, ResidentChunk] = {}

    def __contains__(self, coord) -> bool:
        return coord in self.resident

    def __len__(self) -> int:
        return len(self.resident)

    def coords(self) -> Set[ChunkCoord]:
        return set(self.resident.keys())

    def world_to_chunk(self, x: float, z: float) -> ChunkCoord:
        size = self.config.chunk_size
        return ChunkCoord(math.floor(x / size), math.floor(z / size))

    def chunk_origin(self, coord: Tuple[int, int]) -> Tuple[float, float]:
        size = self.config.chunk_size
        return coord[0] * size, coord[1] * size

    def required_coordinates(self, observer_xz: Tuple[float, float]) -> Set[ChunkCoord]:
        """Inclusive box of chunk coordinates covering the view radius."""
        x, z = float(observer_xz[0]), float(observer_xz[1])
        size = self.config.chunk_size
        r = float(self.config.view_radius)
        min_x = math.floor((x - r) / size)
        max_x = math.ceil((x + r) / size)
        min_z = math.floor((z - r) / size)
        max_z = math.ceil((z + r) / size)
        return {
            ChunkCoord(cx, cz)
            for cx in range(min_x, max_x + 1)
            for cz in range(min_z, max_z + 1)
        }

    def missing(self, required: Iterable[ChunkCoord]) -> Set[ChunkCoord]:
        return set(required) - self.resident.keys()

    def stale(self, required: Iterable[ChunkCoord]) -> Set[ChunkCoord]:
        return self.resident.keys() - set(required)

    def insert(self, coord: ChunkCoord, renderable, collidable=None) -> None:
        coord = ChunkCoord(*coord)
        if coord in self.resident:
            raise DuplicateChunk(coord)
        self.resident[coord] = ResidentChunk(coord=coord, renderable=renderable, collidable=collidable)

    def remove(self, coord: ChunkCoord) -> ResidentChunk:
        try:
            return self.resident.pop(ChunkCoord(*coord))
        except KeyError:
            raise UnknownChunk(coord) from None


class ChunkGenerator:
    """Mesh + collider for one coordinate. Stateless apart from the sampler, safe to share across threads."""

    def __init__(self, config: ChunkConfig, sampler=None, *, collider_mode: str = "hull") -> None:
        self.config = config
        self.sampler = sampler if sampler is not None else HeightSampler(config)
        self.collider_mode = collider_mode

    def generate(self, coord: ChunkCoord) -> ChunkBuild:
        coord = ChunkCoord(*coord)
        size = self.config.chunk_size
        mesh = build_chunk_mesh(
            (coord.cx * size, coord.cz * size),
            self.config.chunk_resolution,
            self.config.cell_size,
            self.sampler,
        )
        build = ChunkBuild(coord=coord, mesh=mesh)
        try:
            build.collider = derive_collider(mesh, mode=self.collider_mode)
        except DegenerateGeometry as e:
            build.collider_error = e
        return build


class ChunkWorker(threading.Thread):
    def __init__(self, task_q: "queue.Queue[ChunkCoord]", out_q: "queue.Queue[ChunkBuild]", generator: ChunkGenerator, *, name: Optional[str] = None) -> None:
        super().__init__(daemon=True, name=name)
        self.task_q = task_q
        self.out_q = out_q
        self.generator = generator
        self._halt = threading.Event()

    def stop(self) -> None:
        self._halt.set()

    def run(self) -> None:
        while not self._halt.is_set():
            try:
                coord = self.task_q.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                build = self.generator.generate(coord)
            except Exception as e:  # handed back to the controller thread
                build = ChunkBuild(coord=coord, error=e)
            try:
                self.out_q.put(build)
            finally:
                self.task_q.task_done()


class ChunkManager:
    """Background generation with in-flight tracking.

    ``pending`` holds coordinates submitted but not yet ingested; it is only
    touched from the controller thread, so it stays disjoint from the
    tracker's resident set.
    """

    def __init__(self, generator: ChunkGenerator, *, workers: int = 1) -> None:
        self.generator = generator
        self.task_q: "queue.Queue[ChunkCoord]" = queue.Queue()
        self.out_q: "queue.Queue[ChunkBuild]" = queue.Queue()
        self.workers = [
            ChunkWorker(self.task_q, self.out_q, generator, name=f"chunk-worker-{i}")
            for i in range(max(1, int(workers)))
        ]
        for w in self.workers:
            w.start()
        self.pending: Set[ChunkCoord] = set()

    def shutdown(self) -> None:
        for w in self.workers:
            w.stop()
        for w in self.workers:
            w.join(timeout=1.0)

    def request_missing(self, missing: Iterable[ChunkCoord]) -> int:
        """Queue every coordinate that is not already in flight. Returns how many were queued."""
        queued = 0
        for key in sorted(missing):
            if key in self.pending:
                continue
            self.pending.add(key)
            self.task_q.put(key)
            queued += 1
        if queued:
            log.debug("queued %d chunks, %d in flight", queued, len(self.pending))
        return queued

    def poll_ready(self, max_items: Optional[int] = None) -> List[ChunkBuild]:
        ready: List[ChunkBuild] = []
        while max_items is None or len(ready) < max_items:
            try:
                build = self.out_q.get_nowait()
            except queue.Empty:
                break
            self.pending.discard(build.coord)
            ready.append(build)
        return ready
