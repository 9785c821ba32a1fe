from __future__ import annotations

import argparse
import logging
import random
import sys

from terrastream.app import run_app, run_headless
from terrastream.config import (
    APP_VERSION,
    DEFAULT_CHUNK_RES,
    DEFAULT_COLLIDER,
    DEFAULT_FOG_END,
    DEFAULT_FOG_START,
    DEFAULT_HEIGHT_OFFSET,
    DEFAULT_MAX_HEIGHT,
    DEFAULT_NOISE,
    DEFAULT_NOISE_FREQUENCY,
    DEFAULT_NOISE_OCTAVES,
    DEFAULT_SEED,
    DEFAULT_SPEED,
    DEFAULT_TARGET_FPS,
    DEFAULT_TICKS,
    DEFAULT_TURN_RATE,
    DEFAULT_VIEW_RADIUS,
    DEFAULT_WORKERS,
    DEFAULT_WORLD_SCALE,
    LOG_PREFIX,
)
from terrastream.world.chunk import ChunkConfig
from terrastream.world.errors import InvalidConfig


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="terrastream", description=f"Streamed infinite heightfield terrain v{APP_VERSION}")
    p.add_argument("--seed", default=str(DEFAULT_SEED), help=f"int seed or 'random' (default: {DEFAULT_SEED})")
    p.add_argument("--chunk-res", type=int, default=DEFAULT_CHUNK_RES, help="vertices per chunk edge (>= 2)")
    p.add_argument("--world-scale", type=float, default=DEFAULT_WORLD_SCALE, help="world units per cell; chunk size = chunk_res * world_scale")
    p.add_argument("--view-radius", type=float, default=DEFAULT_VIEW_RADIUS, help="load/unload radius around the observer")
    p.add_argument("--max-height", type=float, default=DEFAULT_MAX_HEIGHT, help="heightfield amplitude")
    p.add_argument("--noise-frequency", type=float, default=DEFAULT_NOISE_FREQUENCY, help="base noise frequency (1 / world units)")
    p.add_argument("--octaves", type=int, default=DEFAULT_NOISE_OCTAVES, help="fBm octaves")
    p.add_argument("--noise", choices=["fast", "simplex"], default=DEFAULT_NOISE, help="height noise backend")
    p.add_argument("--workers", type=int, default=DEFAULT_WORKERS, help="background generation threads (0 = generate inside the tick)")
    p.add_argument("--collider", choices=["hull", "trimesh"], default=DEFAULT_COLLIDER, help="collision geometry kind")
    p.add_argument("--speed", type=float, default=DEFAULT_SPEED, help="max observer speed (world units / sec)")
    p.add_argument("--turn-rate", type=float, default=DEFAULT_TURN_RATE, help="yaw rate (rad/sec)")
    p.add_argument("--height-offset", type=float, default=DEFAULT_HEIGHT_OFFSET, help="observer height above terrain")
    p.add_argument("--fog-start", type=float, default=DEFAULT_FOG_START, help="fog start distance")
    p.add_argument("--fog-end", type=float, default=DEFAULT_FOG_END, help="fog end distance")
    p.add_argument("--target-fps", type=int, default=DEFAULT_TARGET_FPS, help="target FPS for adaptive chunk ingest")
    p.add_argument("--wireframe", action="store_true", help="render wireframe")
    p.add_argument("--auto", action="store_true", help="auto-fly forward")
    p.add_argument("--debug", action="store_true", help="debug logging and chunk borders")
    p.add_argument("--headless", action="store_true", help="stream without a window (no GL needed)")
    p.add_argument("--ticks", type=int, default=DEFAULT_TICKS, help="ticks to run in --headless mode")
    return p


def _seed(raw: str) -> int:
    if raw.lower() == "random":
        return random.randint(0, 2**31 - 1)
    return int(raw)


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format=f"{LOG_PREFIX} %(levelname)s %(name)s: %(message)s",
    )

    try:
        seed = _seed(str(args.seed))
    except ValueError:
        p.error(f"--seed must be an integer or 'random', got {args.seed!r}")
    try:
        config = ChunkConfig(
            chunk_resolution=int(args.chunk_res),
            world_scale=float(args.world_scale),
            view_radius=float(args.view_radius),
            max_height=float(args.max_height),
            noise_seed=seed,
            noise_frequency=float(args.noise_frequency),
            noise_octaves=int(args.octaves),
            noise_mode=str(args.noise),
        )
    except InvalidConfig as e:
        p.error(str(e))

    if args.headless:
        run_headless(
            config,
            ticks=int(args.ticks),
            speed=float(args.speed),
            turn_rate=float(args.turn_rate),
            height_offset=float(args.height_offset),
            workers=max(0, int(args.workers)),
            collider_mode=str(args.collider),
        )
        return 0

    run_app(
        config,
        speed=float(args.speed),
        turn_rate=float(args.turn_rate),
        height_offset=float(args.height_offset),
        workers=max(0, int(args.workers)),
        collider_mode=str(args.collider),
        target_fps=int(args.target_fps),
        fog_start=float(args.fog_start),
        fog_end=float(args.fog_end),
        wireframe=bool(args.wireframe),
        auto=bool(args.auto),
        debug=bool(args.debug),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
