from __future__ import annotations
import numpy as np

def normalize(v: np.ndarray) -> np.ndarray:
    n = np.linalg.norm(v)
    if n == 0:
        return v
    return v / n

def look_at(eye: np.ndarray, target: np.ndarray, up: np.ndarray) -> np.ndarray:
    """View matrix, laid out column-major for OpenGL uniform upload."""
    f = normalize(target - eye)
    s = normalize(np.cross(f, up))
    u = np.cross(s, f)
    rows = np.array([
        [s[0], s[1], s[2], -np.dot(s, eye)],
        [u[0], u[1], u[2], -np.dot(u, eye)],
        [-f[0], -f[1], -f[2], np.dot(f, eye)],
        [0.0, 0.0, 0.0, 1.0],
    ], dtype=np.float32)
    return np.ascontiguousarray(rows.T)

def perspective(fov_deg: float, aspect: float, near: float, far: float) -> np.ndarray:
    """Projection matrix, column-major like look_at."""
    f = 1.0 / np.tan(np.deg2rad(fov_deg) / 2.0)
    depth = near - far
    rows = np.array([
        [f / aspect, 0.0, 0.0, 0.0],
        [0.0, f, 0.0, 0.0],
        [0.0, 0.0, (far + near) / depth, (2.0 * far * near) / depth],
        [0.0, 0.0, -1.0, 0.0],
    ], dtype=np.float32)
    return np.ascontiguousarray(rows.T)

def exp_smooth(current: float, target: float, k: float, dt: float) -> float:
    alpha = 1.0 - float(np.exp(-k * dt))
    return current + (target - current) * alpha

def wrap_pi(angle: float) -> float:
    """Wrap angle to [-pi, pi)."""
    return (float(angle) + float(np.pi)) % (2.0 * float(np.pi)) - float(np.pi)
