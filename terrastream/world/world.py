from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Set

from terrastream.world.chunk import ChunkBuild, ChunkConfig, ChunkCoord, ChunkTransform
from terrastream.world.chunk_manager import ChunkGenerator, ChunkManager, ChunkTracker
from terrastream.world.collaborators import PhysicsCollaborator, SceneCollaborator

log = logging.getLogger(__name__)


@dataclass
class TickReport:
    required: Set[ChunkCoord] = field(default_factory=set)
    loaded: List[ChunkCoord] = field(default_factory=list)
    evicted: List[ChunkCoord] = field(default_factory=list)
    dropped: List[ChunkCoord] = field(default_factory=list)
    renderable_only: List[ChunkCoord] = field(default_factory=list)
    pending: int = 0


class World:
    """Streams terrain chunks around the scene's observer.

    Owns the terrain state (config + residency tracker) for the lifetime of
    the application. ``tick`` runs once per frame on the host thread; all
    inserts and removals happen there. With ``workers > 0`` meshes are built
    on background threads and ingested at most ``max_ingest_per_tick`` per
    tick.
    """

    def __init__(
        self,
        config: ChunkConfig,
        scene: SceneCollaborator,
        physics: PhysicsCollaborator,
        *,
        sampler=None,
        workers: int = 0,
        max_ingest_per_tick: Optional[int] = None,
        collider_mode: str = "hull",
    ) -> None:
        self.config = config
        self.scene = scene
        self.physics = physics
        self.tracker = ChunkTracker(config)
        self.generator = ChunkGenerator(config, sampler, collider_mode=collider_mode)
        self.max_ingest_per_tick = max_ingest_per_tick
        self.cm: Optional[ChunkManager] = ChunkManager(self.generator, workers=workers) if workers > 0 else None
        self._closed = False

    @property
    def sampler(self):
        return self.generator.sampler

    @property
    def resident(self):
        return self.tracker.resident

    @property
    def pending(self) -> Set[ChunkCoord]:
        return self.cm.pending if self.cm is not None else set()

    def tick(self) -> TickReport:
        # One snapshot per tick.
        x, _y, z = self.scene.observer_world_position()
        return self.update(float(x), float(z))

    def update(self, x: float, z: float) -> TickReport:
        if self._closed:
            raise RuntimeError("world is shut down")
        required = self.tracker.required_coordinates((x, z))
        report = TickReport(required=required)

        for coord in sorted(self.tracker.stale(required)):
            self._evict(coord)
            report.evicted.append(coord)

        missing = self.tracker.missing(required)
        if self.cm is None:
            for coord in sorted(missing):
                self._ingest(self.generator.generate(coord), report)
        else:
            self.cm.request_missing(missing)
            for build in self.cm.poll_ready(self.max_ingest_per_tick):
                if build.coord not in required:
                    # Left the window while generating.
                    log.debug("dropping stale build %s", tuple(build.coord))
                    report.dropped.append(build.coord)
                    continue
                self._ingest(build, report)
            report.pending = len(self.cm.pending)

        if report.loaded or report.evicted:
            log.debug(
                "tick at (%.1f, %.1f): +%d -%d resident=%d pending=%d",
                x, z, len(report.loaded), len(report.evicted), len(self.tracker), report.pending,
            )
        return report

    def warmup(self, *, timeout_s: float = 2.0, min_chunks: Optional[int] = None) -> int:
        """Block until the chunks around the observer are resident (or timeout). Returns resident count."""
        deadline = time.perf_counter() + float(timeout_s)
        while True:
            report = self.tick()
            target = len(report.required) if min_chunks is None else min(int(min_chunks), len(report.required))
            if len(self.tracker) >= target or time.perf_counter() >= deadline:
                return len(self.tracker)
            time.sleep(0.01)

    def shutdown(self) -> None:
        """Stop workers and release every resident chunk exactly once."""
        if self._closed:
            return
        self._closed = True
        if self.cm is not None:
            self.cm.shutdown()
        for coord in sorted(self.tracker.coords()):
            self._evict(coord)
        log.debug("world shut down")

    def _transform(self, coord: ChunkCoord) -> ChunkTransform:
        x, z = self.tracker.chunk_origin(coord)
        return ChunkTransform(float(x), 0.0, float(z))

    def _ingest(self, build: ChunkBuild, report: TickReport) -> None:
        if build.error is not None:
            raise build.error
        transform = self._transform(build.coord)
        drawable = self.scene.register_drawable(build.mesh, transform)
        collidable = None
        if build.collider is not None:
            collidable = self.physics.register_collider(build.collider, transform)
        else:
            log.warning("chunk %s has no collider (%s); streaming it renderable-only", tuple(build.coord), build.collider_error)
            report.renderable_only.append(build.coord)
        self.tracker.insert(build.coord, drawable, collidable)
        report.loaded.append(build.coord)

    def _evict(self, coord: ChunkCoord) -> None:
        entry = self.tracker.remove(coord)
        self.scene.release_drawable(entry.renderable)
        if entry.collidable is not None:
            self.physics.release_collider(entry.collidable)
