"""Pytest configuration for terrastream tests."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Repository root on the path so `terrastream` imports without installation.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from terrastream.world.chunk import ChunkConfig  # noqa: E402
from terrastream.world.registry import ColliderRegistry, HeadlessScene  # noqa: E402


@pytest.fixture
def small_config() -> ChunkConfig:
    return ChunkConfig(chunk_resolution=4, world_scale=1.0, view_radius=3.0, max_height=10.0, noise_seed=7, noise_frequency=0.05)


@pytest.fixture
def scene() -> HeadlessScene:
    return HeadlessScene()


@pytest.fixture
def physics() -> ColliderRegistry:
    return ColliderRegistry()
