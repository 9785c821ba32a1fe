from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from opensimplex import OpenSimplex


@dataclass(frozen=True)
class NoiseConfig:
    octaves: int = 5
    lacunarity: float = 2.0
    gain: float = 0.5
    base_freq: float = 0.006
    ridge: float = 0.35  # weight of the ridged component in the final shape


def _shape(total: np.ndarray, ridge: float) -> np.ndarray:
    # Mountain shaping (ridge-ish), stays within [-1, 1]
    ridged = 1.0 - np.abs(total)
    return (1.0 - ridge) * total + ridge * (ridged * 2.0 - 1.0)


class FastValueNoise2D:
    """Fast 2D value noise with fully vectorized numpy implementation.

    Uses an integer hash on lattice points and smooth interpolation.
    Deterministic for a given seed. Lattice coordinates wrap modulo 2**32.
    """

    def __init__(self, seed: int) -> None:
        self.seed = int(seed)
        self._seed_u32 = np.uint32(self.seed & 0xFFFFFFFF)

    @staticmethod
    def _fade(t: np.ndarray) -> np.ndarray:
        # smootherstep
        return t * t * t * (t * (t * 6 - 15) + 10)

    def _hash(self, xi: np.ndarray, zi: np.ndarray) -> np.ndarray:
        # Vectorized integer hash -> uint32 -> [0,1)
        x = (xi.astype(np.uint32) * np.uint32(374761393)) ^ (zi.astype(np.uint32) * np.uint32(668265263)) ^ self._seed_u32
        x ^= (x >> np.uint32(13))
        x *= np.uint32(1274126177)
        x ^= (x >> np.uint32(16))
        return x.astype(np.float64) / 2.0**32

    def noise(self, x: np.ndarray, z: np.ndarray) -> np.ndarray:
        # x,z: float arrays of the same shape -> [0,1)
        x = np.asarray(x, dtype=np.float64)
        z = np.asarray(z, dtype=np.float64)
        fx = np.floor(x)
        fz = np.floor(z)
        xi0 = fx.astype(np.int64)
        zi0 = fz.astype(np.int64)
        xi1 = xi0 + 1
        zi1 = zi0 + 1

        u = self._fade(x - fx)
        v = self._fade(z - fz)

        a = self._hash(xi0, zi0)
        b = self._hash(xi1, zi0)
        c = self._hash(xi0, zi1)
        d = self._hash(xi1, zi1)

        # bilinear interpolation with fade
        ab = a + (b - a) * u
        cd = c + (d - c) * u
        return ab + (cd - ab) * v


class FBMFastNoise:
    """Fractal sum of FastValueNoise2D octaves, normalized to [-1, 1]."""

    def __init__(self, seed: int, cfg: NoiseConfig | None = None) -> None:
        self.seed = int(seed)
        self.cfg = cfg or NoiseConfig()
        self.base = FastValueNoise2D(seed)

    def grid(self, x: np.ndarray, z: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        z = np.asarray(z, dtype=np.float64)
        freq = self.cfg.base_freq
        amp = 1.0
        total = np.zeros(np.broadcast(x, z).shape, dtype=np.float64)
        norm = 0.0
        for _ in range(self.cfg.octaves):
            n = self.base.noise(x * freq, z * freq)  # [0,1)
            total += (n * 2.0 - 1.0) * amp
            norm += amp
            freq *= self.cfg.lacunarity
            amp *= self.cfg.gain
        total /= max(norm, 1e-9)
        return _shape(total, self.cfg.ridge)

    def value(self, x: float, z: float) -> float:
        return float(self.grid(np.array([x]), np.array([z]))[0])


class FBMSimplexNoise:
    """OpenSimplex-based fBm. Slower than the value noise, smoother gradients."""

    def __init__(self, seed: int, cfg: NoiseConfig | None = None) -> None:
        self.seed = int(seed)
        self.cfg = cfg or NoiseConfig()
        self._simp = OpenSimplex(self.seed)

    def value(self, x: float, z: float) -> float:
        freq = self.cfg.base_freq
        amp = 1.0
        total = 0.0
        norm = 0.0
        for _ in range(self.cfg.octaves):
            total += self._simp.noise2(x * freq, z * freq) * amp
            norm += amp
            freq *= self.cfg.lacunarity
            amp *= self.cfg.gain
        total = total / max(norm, 1e-9)
        ridged = 1.0 - abs(total)
        r = self.cfg.ridge
        return (1.0 - r) * total + r * (ridged * 2.0 - 1.0)

    def grid(self, x: np.ndarray, z: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        z = np.asarray(z, dtype=np.float64)
        xb, zb = np.broadcast_arrays(x, z)
        out = np.empty(xb.shape, dtype=np.float64)
        for idx in np.ndindex(xb.shape):
            out[idx] = self.value(float(xb[idx]), float(zb[idx]))
        return out
