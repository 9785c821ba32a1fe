from __future__ import annotations

import numpy as np

from terrastream.world.chunk import ChunkConfig
from terrastream.world.noise import FBMFastNoise, FBMSimplexNoise, NoiseConfig


class HeightSampler:
    """Deterministic heightfield: fBm noise scaled by ``max_height``.

    Pure: the same (x, z) with the same seed/frequency/octaves always gives the
    same height. ``height_grid`` evaluates a cartesian grid and matches
    ``height`` elementwise.
    """

    def __init__(self, config: ChunkConfig) -> None:
        self.seed = int(config.noise_seed)
        self.mode = config.noise_mode
        self.max_height = float(config.max_height)
        cfg = NoiseConfig(octaves=int(config.noise_octaves), base_freq=float(config.noise_frequency))
        if self.mode == "simplex":
            self.noise = FBMSimplexNoise(self.seed, cfg)
        else:
            self.noise = FBMFastNoise(self.seed, cfg)

    def height(self, x: float, z: float) -> float:
        return float(np.float32(self.noise.value(float(x), float(z)) * self.max_height))

    __call__ = height

    def height_grid(self, xs: np.ndarray, zs: np.ndarray) -> np.ndarray:
        """Heights for every (xs[i], zs[j]); shape (len(zs), len(xs)), float64."""
        grid_x, grid_z = np.meshgrid(np.asarray(xs, dtype=np.float64), np.asarray(zs, dtype=np.float64), indexing="xy")
        return self.noise.grid(grid_x, grid_z) * self.max_height
