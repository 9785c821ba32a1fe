"""Tests for the streaming controller against in-memory collaborators."""
from __future__ import annotations

import threading
import time
from collections import Counter

import pytest

from terrastream.world.chunk import ChunkConfig, ChunkCoord, ChunkTransform
from terrastream.world.errors import UnknownHandle
from terrastream.world.height import HeightSampler
from terrastream.world.registry import ColliderRegistry, HeadlessScene
from terrastream.world.world import World


def _block(x0: int, x1: int, z0: int, z1: int) -> set:
    return {ChunkCoord(x, z) for x in range(x0, x1 + 1) for z in range(z0, z1 + 1)}


def test_first_tick_loads_required_block(small_config, scene, physics) -> None:
    world = World(small_config, scene, physics)
    report = world.tick()
    assert set(report.loaded) == _block(-1, 1, -1, 1)
    assert world.tracker.coords() == _block(-1, 1, -1, 1)
    assert len(scene.drawables) == 9
    assert len(physics.colliders) == 9
    assert report.evicted == []


def test_drawables_registered_with_chunk_origin(small_config, scene, physics) -> None:
    world = World(small_config, scene, physics)
    world.tick()
    entry = world.resident[ChunkCoord(1, -1)]
    mesh, transform = scene.drawables.live[entry.renderable]
    assert transform == ChunkTransform(4.0, 0.0, -4.0)
    assert mesh.positions[0, 0] == pytest.approx(4.0)
    assert mesh.positions[0, 2] == pytest.approx(-4.0)
    _collider, ctransform = physics.colliders.live[entry.collidable]
    assert ctransform == transform


def test_steady_observer_does_no_work(small_config, scene, physics) -> None:
    world = World(small_config, scene, physics)
    world.tick()
    report = world.tick()
    assert report.loaded == [] and report.evicted == []
    assert scene.drawables.registered == 9


def test_long_move_evicts_everything_once(small_config, scene, physics) -> None:
    world = World(small_config, scene, physics)
    world.tick()
    old_handles = {c: (e.renderable, e.collidable) for c, e in world.resident.items()}

    scene.move_to(100.0, 0.0, 0.0)
    report = world.tick()

    new_required = _block(24, 26, -1, 1)
    assert set(report.evicted) == _block(-1, 1, -1, 1)
    assert set(report.loaded) == new_required
    assert world.tracker.coords() == new_required
    assert Counter(report.loaded).most_common(1)[0][1] == 1
    # every old handle released exactly once
    drawn = Counter(scene.drawables.released)
    collided = Counter(physics.colliders.released)
    for d, c in old_handles.values():
        assert drawn[d] == 1
        assert collided[c] == 1
    assert len(scene.drawables) == 9
    assert len(physics.colliders) == 9


def test_partial_move_keeps_overlap(small_config, scene, physics) -> None:
    world = World(small_config, scene, physics)
    world.tick()
    keep = world.resident[ChunkCoord(1, 0)].renderable

    scene.move_to(4.0, 0.0, 0.0)
    report = world.tick()
    assert set(report.evicted) == {ChunkCoord(-1, z) for z in (-1, 0, 1)}
    assert set(report.loaded) == {ChunkCoord(2, z) for z in (-1, 0, 1)}
    assert world.resident[ChunkCoord(1, 0)].renderable == keep


def test_no_duplicates_over_a_flight(small_config, scene, physics) -> None:
    world = World(small_config, scene, physics)
    for step in range(40):
        scene.move_to(step * 1.7, 0.0, -step * 0.9)
        report = world.tick()
        assert set(report.loaded).isdisjoint(report.evicted)
        assert world.tracker.coords() == report.required
    # live handles == resident chunks, nothing leaked
    assert len(scene.drawables) == len(world.tracker)
    assert len(physics.colliders) == len(world.tracker)
    assert scene.drawables.registered - len(scene.drawables.released) == len(world.tracker)


def test_flat_terrain_streams_renderable_only(scene, physics, caplog) -> None:
    cfg = ChunkConfig(chunk_resolution=4, world_scale=1.0, view_radius=3.0, max_height=0.0)
    world = World(cfg, scene, physics)
    with caplog.at_level("WARNING", logger="terrastream.world.world"):
        report = world.tick()
    assert len(report.loaded) == 9
    assert len(report.renderable_only) == 9
    assert len(physics.colliders) == 0
    assert all(e.collidable is None for e in world.resident.values())
    assert sum("renderable-only" in r.getMessage() for r in caplog.records) == 9

    # evicting a collider-less chunk only releases the drawable
    scene.move_to(100.0, 0.0, 0.0)
    world.tick()
    assert len(scene.drawables.released) == 9
    assert physics.colliders.released == []


def test_shutdown_releases_all_and_is_idempotent(small_config, scene, physics) -> None:
    world = World(small_config, scene, physics)
    world.tick()
    world.shutdown()
    assert len(world.tracker) == 0
    assert len(scene.drawables) == 0
    assert len(physics.colliders) == 0
    assert len(scene.drawables.released) == 9
    world.shutdown()
    assert len(scene.drawables.released) == 9
    with pytest.raises(RuntimeError):
        world.tick()


def test_tick_reads_observer_once(small_config, physics) -> None:
    class CountingScene(HeadlessScene):
        reads = 0

        def observer_world_position(self):
            self.reads += 1
            return super().observer_world_position()

    scene = CountingScene()
    world = World(small_config, scene, physics)
    world.tick()
    assert scene.reads == 1


def test_release_failure_is_not_swallowed(small_config, scene, physics) -> None:
    world = World(small_config, scene, physics)
    world.tick()
    entry = world.resident[ChunkCoord(0, 0)]
    scene.release_drawable(entry.renderable)  # released behind the world's back
    scene.move_to(100.0, 0.0, 0.0)
    with pytest.raises(UnknownHandle):
        world.tick()


class _GatedSampler:
    """Blocks generation until released, to hold builds in flight."""

    def __init__(self, config: ChunkConfig) -> None:
        self.inner = HeightSampler(config)
        self.gate = threading.Event()

    def height(self, x: float, z: float) -> float:
        return self.inner.height(x, z)

    def height_grid(self, xs, zs):
        self.gate.wait(timeout=10.0)
        return self.inner.height_grid(xs, zs)


def _run_until_settled(world: World, timeout_s: float = 10.0) -> list:
    reports = []
    deadline = time.perf_counter() + timeout_s
    while time.perf_counter() < deadline:
        report = world.tick()
        reports.append(report)
        if not world.pending and world.tracker.coords() == report.required:
            break
        time.sleep(0.005)
    return reports


def test_threaded_streaming_matches_required(small_config, scene, physics) -> None:
    world = World(small_config, scene, physics, workers=2, max_ingest_per_tick=2)
    try:
        reports = _run_until_settled(world)
        assert world.tracker.coords() == _block(-1, 1, -1, 1)
        assert all(len(r.loaded) <= 2 for r in reports)
        assert sum(len(r.loaded) for r in reports) == 9
    finally:
        world.shutdown()
    assert len(scene.drawables) == 0


def test_builds_that_went_stale_are_dropped(small_config, scene, physics) -> None:
    sampler = _GatedSampler(small_config)
    world = World(small_config, scene, physics, sampler=sampler, workers=1)
    try:
        first = world.tick()
        assert first.loaded == []
        assert world.pending == _block(-1, 1, -1, 1)

        scene.move_to(100.0, 0.0, 0.0)
        world.tick()
        sampler.gate.set()
        reports = _run_until_settled(world)

        dropped = [c for r in reports for c in r.dropped]
        assert sorted(dropped) == sorted(_block(-1, 1, -1, 1))
        assert world.tracker.coords() == _block(24, 26, -1, 1)
        assert scene.drawables.registered == 9
    finally:
        sampler.gate.set()
        world.shutdown()


def test_warmup_fills_required_set(small_config, scene, physics) -> None:
    world = World(small_config, scene, physics, workers=1)
    try:
        assert world.warmup(timeout_s=10.0) == 9
    finally:
        world.shutdown()


def test_worker_errors_surface_on_tick(small_config, scene, physics) -> None:
    class Broken:
        def height_grid(self, xs, zs):
            raise ArithmeticError("boom")

    world = World(small_config, scene, physics, sampler=Broken(), workers=1)
    try:
        with pytest.raises(ArithmeticError):
            deadline = time.perf_counter() + 10.0
            while time.perf_counter() < deadline:
                world.tick()
                time.sleep(0.005)
    finally:
        world.shutdown()
