from __future__ import annotations

import numpy as np

from terrastream.util.math import exp_smooth, look_at, wrap_pi


def _clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


class FlightCamera:
    """The streaming observer: flies over the heightfield in the XZ plane.

    - yaw == 0 looks down +Z
    - forward/turn inputs are -1..1, smoothed so digital keys feel analog
    - height follows the terrain below with exponential smoothing
    """

    def __init__(self, *, speed: float, turn_rate: float, height_offset: float, smooth_k: float, auto: bool = False) -> None:
        self.max_speed = float(speed)
        self.turn_rate = float(turn_rate)
        self.height_offset = float(height_offset)
        self.smooth_k = float(smooth_k)
        self.auto = bool(auto)

        self.x = 0.0
        self.z = 0.0
        self.y = float(height_offset)
        self.yaw = 0.0
        self.speed = 0.0

        self._throttle = 0.0
        self._turn = 0.0

        # View tuning
        self.look_ahead = 60.0
        self.look_down = 8.0

    def forward(self) -> np.ndarray:
        return np.array([np.sin(self.yaw), 0.0, np.cos(self.yaw)], dtype=np.float32)

    def update(self, dt: float, height_fn, *, forward: float = 0.0, turn: float = 0.0) -> None:
        dt = float(dt)
        if self.auto:
            forward = 1.0
        self._throttle = exp_smooth(self._throttle, _clamp(float(forward), -1.0, 1.0), 3.5, dt)
        self._turn = exp_smooth(self._turn, _clamp(float(turn), -1.0, 1.0), 3.5, dt)

        self.speed = self._throttle * self.max_speed
        # Right arrow turns right on screen, which is negative yaw in this frame.
        self.yaw = wrap_pi(self.yaw - self._turn * self.turn_rate * dt)

        fwd = self.forward()
        self.x += float(fwd[0]) * self.speed * dt
        self.z += float(fwd[2]) * self.speed * dt

        y_target = float(height_fn(self.x, self.z)) + self.height_offset
        self.y = exp_smooth(self.y, y_target, self.smooth_k, dt)

    def eye(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float32)

    def view_matrix(self) -> np.ndarray:
        eye = self.eye()
        target = eye + self.forward() * np.float32(self.look_ahead)
        target[1] -= np.float32(self.look_down)
        up = np.array([0.0, 1.0, 0.0], dtype=np.float32)
        return look_at(eye, target, up)
