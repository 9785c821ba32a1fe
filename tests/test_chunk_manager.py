"""Tests for the residency tracker and the background chunk manager."""
from __future__ import annotations

import math
import random
import time

import pytest

from terrastream.world.chunk import ChunkConfig, ChunkCoord
from terrastream.world.chunk_manager import ChunkGenerator, ChunkManager, ChunkTracker
from terrastream.world.errors import DuplicateChunk, UnknownChunk


def _block(lo: int, hi: int) -> set:
    return {ChunkCoord(x, z) for x in range(lo, hi + 1) for z in range(lo, hi + 1)}


def test_required_around_origin_is_three_by_three(small_config: ChunkConfig) -> None:
    tracker = ChunkTracker(small_config)
    required = tracker.required_coordinates((0.0, 0.0))
    assert required == _block(-1, 1)
    assert len(required) == 9


def test_required_after_long_move_is_disjoint(small_config: ChunkConfig) -> None:
    tracker = ChunkTracker(small_config)
    before = tracker.required_coordinates((0.0, 0.0))
    after = tracker.required_coordinates((100.0, 0.0))
    assert before.isdisjoint(after)
    # floor(97/4) = 24, ceil(103/4) = 26
    assert {c.cx for c in after} == {24, 25, 26}
    assert {c.cz for c in after} == {-1, 0, 1}


def test_boundary_is_closed_on_both_ends(small_config: ChunkConfig) -> None:
    tracker = ChunkTracker(small_config)
    # (5 - 3) / 4 = 0.5 -> 0 ; (5 + 3) / 4 = 2 exactly -> included
    required = tracker.required_coordinates((5.0, 1.0))
    assert {c.cx for c in required} == {0, 1, 2}


def test_required_covers_view_disc() -> None:
    cfg = ChunkConfig(chunk_resolution=5, world_scale=1.5, view_radius=17.0)
    tracker = ChunkTracker(cfg)
    rng = random.Random(1234)
    for _ in range(50):
        ox = rng.uniform(-1000.0, 1000.0)
        oz = rng.uniform(-1000.0, 1000.0)
        required = tracker.required_coordinates((ox, oz))
        assert required
        for k in range(32):
            angle = 2.0 * math.pi * k / 32
            r = cfg.view_radius * rng.random() if k % 2 else cfg.view_radius
            coord = tracker.world_to_chunk(ox + r * math.cos(angle), oz + r * math.sin(angle))
            assert coord in required


def test_world_to_chunk_floors_negative_coordinates(small_config: ChunkConfig) -> None:
    tracker = ChunkTracker(small_config)
    assert tracker.world_to_chunk(-0.5, 3.99) == ChunkCoord(-1, 0)
    assert tracker.world_to_chunk(4.0, -4.0) == ChunkCoord(1, -1)
    assert tracker.chunk_origin(ChunkCoord(-2, 3)) == (-8.0, 12.0)


def test_missing_and_stale_partition(small_config: ChunkConfig) -> None:
    tracker = ChunkTracker(small_config)
    tracker.insert(ChunkCoord(0, 0), "d0", "c0")
    tracker.insert(ChunkCoord(5, 5), "d1", None)
    required = tracker.required_coordinates((0.0, 0.0))
    missing = tracker.missing(required)
    stale = tracker.stale(required)
    assert ChunkCoord(0, 0) not in missing
    assert stale == {ChunkCoord(5, 5)}
    assert missing.isdisjoint(stale)
    assert missing.isdisjoint(tracker.coords())
    assert stale <= tracker.coords()


def test_insert_twice_is_a_duplicate(small_config: ChunkConfig) -> None:
    tracker = ChunkTracker(small_config)
    tracker.insert(ChunkCoord(1, 2), "d", "c")
    with pytest.raises(DuplicateChunk):
        tracker.insert((1, 2), "d2", "c2")
    assert tracker.resident[ChunkCoord(1, 2)].renderable == "d"


def test_remove_returns_entry_and_rejects_unknown(small_config: ChunkConfig) -> None:
    tracker = ChunkTracker(small_config)
    tracker.insert(ChunkCoord(-3, 4), "draw", "coll")
    entry = tracker.remove(ChunkCoord(-3, 4))
    assert (entry.coord, entry.renderable, entry.collidable) == (ChunkCoord(-3, 4), "draw", "coll")
    assert ChunkCoord(-3, 4) not in tracker
    with pytest.raises(UnknownChunk):
        tracker.remove(ChunkCoord(-3, 4))


def test_generator_builds_mesh_and_collider(small_config: ChunkConfig) -> None:
    build = ChunkGenerator(small_config).generate(ChunkCoord(2, -1))
    assert build.coord == ChunkCoord(2, -1)
    assert build.mesh.vertex_count == small_config.chunk_resolution ** 2
    assert build.mesh.positions[0, 0] == pytest.approx(2 * small_config.chunk_size)
    assert build.mesh.positions[0, 2] == pytest.approx(-1 * small_config.chunk_size)
    assert build.collider is not None
    assert build.collider_error is None


def test_generator_flags_degenerate_collider() -> None:
    cfg = ChunkConfig(chunk_resolution=4, world_scale=1.0, view_radius=3.0, max_height=0.0)
    build = ChunkGenerator(cfg).generate(ChunkCoord(0, 0))
    assert build.mesh is not None
    assert build.collider is None
    assert build.collider_error is not None


def _drain(cm: ChunkManager, expected: int, timeout_s: float = 10.0) -> list:
    out: list = []
    deadline = time.perf_counter() + timeout_s
    while len(out) < expected and time.perf_counter() < deadline:
        out.extend(cm.poll_ready())
        time.sleep(0.005)
    return out


def test_manager_does_not_queue_in_flight_twice(small_config: ChunkConfig) -> None:
    cm = ChunkManager(ChunkGenerator(small_config), workers=2)
    try:
        wanted = _block(-1, 1)
        assert cm.request_missing(wanted) == 9
        assert cm.request_missing(wanted) == 0
        assert cm.pending == wanted
        builds = _drain(cm, 9)
        assert sorted(b.coord for b in builds) == sorted(wanted)
        assert cm.pending == set()
    finally:
        cm.shutdown()


def test_poll_ready_respects_budget(small_config: ChunkConfig) -> None:
    cm = ChunkManager(ChunkGenerator(small_config), workers=1)
    try:
        cm.request_missing(_block(0, 1))
        deadline = time.perf_counter() + 10.0
        while cm.out_q.qsize() < 4 and time.perf_counter() < deadline:
            time.sleep(0.005)
        first = cm.poll_ready(max_items=3)
        assert len(first) == 3
        assert len(cm.pending) == 1
        assert len(cm.poll_ready(max_items=3)) == 1
    finally:
        cm.shutdown()
