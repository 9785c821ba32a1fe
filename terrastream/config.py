from __future__ import annotations

# Window
WINDOW_WIDTH = 1280
WINDOW_HEIGHT = 720
FPS_CAP = 0  # 0 = uncapped

# App
APP_VERSION = "0.3.0"
LOG_PREFIX = "[terrastream]"

# Terrain / chunks
DEFAULT_SEED = 12345
DEFAULT_CHUNK_RES = 33  # vertices per chunk edge
DEFAULT_WORLD_SCALE = 2.0  # world units per cell (chunk_size = res * scale)
DEFAULT_VIEW_RADIUS = 180.0  # load/unload radius around the observer
DEFAULT_MAX_HEIGHT = 45.0
DEFAULT_NOISE_FREQUENCY = 0.006
DEFAULT_NOISE_OCTAVES = 5
DEFAULT_NOISE = "fast"  # "fast" | "simplex"

# Mesh
NORMAL_DELTA = 0.05  # world units, finite-difference step for normals

# Collision
DEFAULT_COLLIDER = "hull"  # "hull" | "trimesh"

# Streaming
DEFAULT_WORKERS = 1  # 0 = generate synchronously inside the tick
DEFAULT_TARGET_FPS = 60
MAX_INGEST_PER_TICK = 14
WARMUP_TIMEOUT_S = 2.0

# Observer (flight camera)
DEFAULT_SPEED = 24.0
DEFAULT_TURN_RATE = 1.2  # rad/sec
DEFAULT_HEIGHT_OFFSET = 18.0
HEIGHT_SMOOTH_K = 6.0  # larger = faster follow

# Headless runs
DEFAULT_TICKS = 120
HEADLESS_DT = 1.0 / 30.0

# Rendering
FOV_DEG = 70.0
NEAR = 0.1
FAR = 800.0
DEFAULT_FOG_START = 110.0
DEFAULT_FOG_END = 175.0
LIGHT_DIR = (0.35, 0.9, 0.2)  # normalized before upload
