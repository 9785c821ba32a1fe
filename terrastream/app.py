from __future__ import annotations

import logging
import time

import moderngl
import numpy as np
import pygame

from terrastream.config import (
    FPS_CAP,
    HEADLESS_DT,
    HEIGHT_SMOOTH_K,
    LIGHT_DIR,
    MAX_INGEST_PER_TICK,
    WARMUP_TIMEOUT_S,
    WINDOW_HEIGHT,
    WINDOW_WIDTH,
)
from terrastream.render.camera import FlightCamera
from terrastream.render.renderer import GLScene, Renderer
from terrastream.util.math import normalize
from terrastream.world.chunk import ChunkConfig
from terrastream.world.height import HeightSampler
from terrastream.world.registry import ColliderRegistry, HeadlessScene
from terrastream.world.world import World

log = logging.getLogger(__name__)


def run_headless(
    config: ChunkConfig,
    *,
    ticks: int,
    speed: float,
    turn_rate: float,
    height_offset: float,
    workers: int,
    collider_mode: str,
) -> dict:
    """Fly the observer along +Z without a window and stream chunks every tick.

    Returns a summary of what was loaded/evicted. Every chunk is released on exit.
    """
    sampler = HeightSampler(config)
    cam = FlightCamera(speed=speed, turn_rate=turn_rate, height_offset=height_offset, smooth_k=HEIGHT_SMOOTH_K, auto=True)
    scene = HeadlessScene((cam.x, cam.y, cam.z))
    physics = ColliderRegistry()
    world = World(config, scene, physics, sampler=sampler, workers=workers, collider_mode=collider_mode)

    stats = {"ticks": 0, "loaded": 0, "evicted": 0, "dropped": 0, "renderable_only": 0, "max_resident": 0}
    t0 = time.perf_counter()
    try:
        world.warmup(timeout_s=WARMUP_TIMEOUT_S)
        for _ in range(int(ticks)):
            cam.update(HEADLESS_DT, sampler.height)
            scene.move_to(cam.x, cam.y, cam.z)
            report = world.tick()
            stats["ticks"] += 1
            stats["loaded"] += len(report.loaded)
            stats["evicted"] += len(report.evicted)
            stats["dropped"] += len(report.dropped)
            stats["renderable_only"] += len(report.renderable_only)
            stats["max_resident"] = max(stats["max_resident"], len(world.tracker))
    finally:
        world.shutdown()

    stats["elapsed_s"] = time.perf_counter() - t0
    stats["live_drawables"] = len(scene.drawables)
    stats["live_colliders"] = len(physics.colliders)
    log.info(
        "headless run: %d ticks, loaded=%d evicted=%d dropped=%d max_resident=%d in %.2fs",
        stats["ticks"], stats["loaded"], stats["evicted"], stats["dropped"], stats["max_resident"], stats["elapsed_s"],
    )
    return stats


def _init_pygame_gl() -> None:
    pygame.init()
    pygame.display.gl_set_attribute(pygame.GL_CONTEXT_MAJOR_VERSION, 3)
    pygame.display.gl_set_attribute(pygame.GL_CONTEXT_MINOR_VERSION, 3)
    pygame.display.gl_set_attribute(pygame.GL_CONTEXT_PROFILE_MASK, pygame.GL_CONTEXT_PROFILE_CORE)
    pygame.display.gl_set_attribute(pygame.GL_DEPTH_SIZE, 24)
    pygame.display.gl_set_attribute(pygame.GL_DOUBLEBUFFER, 1)


def run_app(
    config: ChunkConfig,
    *,
    speed: float,
    turn_rate: float,
    height_offset: float,
    workers: int,
    collider_mode: str,
    target_fps: int,
    fog_start: float,
    fog_end: float,
    wireframe: bool,
    auto: bool,
    debug: bool,
) -> None:
    _init_pygame_gl()

    flags = pygame.OPENGL | pygame.DOUBLEBUF | pygame.RESIZABLE
    pygame.display.set_mode((WINDOW_WIDTH, WINDOW_HEIGHT), flags)
    pygame.display.set_caption(f"terrastream (seed={config.noise_seed})")

    try:
        ctx = moderngl.create_context()
    except Exception as e:
        pygame.quit()
        raise RuntimeError("Failed to create ModernGL context (need OpenGL 3.2+)") from e

    log.debug("moderngl ctx version_code=%s renderer=%s", ctx.version_code, ctx.info.get("GL_RENDERER"))
    ctx.viewport = (0, 0, WINDOW_WIDTH, WINDOW_HEIGHT)
    if wireframe:
        ctx.wireframe = True

    renderer = Renderer(ctx, WINDOW_WIDTH, WINDOW_HEIGHT)
    sampler = HeightSampler(config)
    cam = FlightCamera(speed=speed, turn_rate=turn_rate, height_offset=height_offset, smooth_k=HEIGHT_SMOOTH_K, auto=auto)
    cam.y = sampler.height(cam.x, cam.z) + height_offset
    world = World(
        config,
        GLScene(renderer, cam),
        ColliderRegistry(),
        sampler=sampler,
        workers=workers,
        max_ingest_per_tick=MAX_INGEST_PER_TICK,
        collider_mode=collider_mode,
    )

    light_dir = normalize(np.array(LIGHT_DIR, dtype=np.float32))
    clock = pygame.time.Clock()
    target = max(15, int(target_fps))
    fps_est = 0.0

    try:
        world.warmup(timeout_s=WARMUP_TIMEOUT_S)
        running = True
        last_t = time.perf_counter()
        start_t = last_t
        last_log = last_t
        while running:
            now = time.perf_counter()
            dt = min(now - last_t, 0.05)
            last_t = now

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                    running = False
                elif event.type == pygame.VIDEORESIZE:
                    w, h = max(64, event.w), max(64, event.h)
                    pygame.display.set_mode((w, h), flags)
                    renderer.resize(w, h)

            keys = pygame.key.get_pressed()
            forward = float(keys[pygame.K_UP]) - float(keys[pygame.K_DOWN])
            turn = float(keys[pygame.K_RIGHT]) - float(keys[pygame.K_LEFT])
            cam.update(dt, sampler.height, forward=forward, turn=turn)

            # Adaptive ingest: fewer uploads per frame when below target FPS.
            if dt > 0:
                inst_fps = 1.0 / dt
                fps_est = (0.9 * fps_est + 0.1 * inst_fps) if fps_est > 0 else inst_fps
            if (now - start_t) >= 2.0:
                budget = world.max_ingest_per_tick or MAX_INGEST_PER_TICK
                if fps_est < target * 0.85:
                    world.max_ingest_per_tick = max(1, budget - 1)
                elif fps_est > target * 1.05:
                    world.max_ingest_per_tick = min(MAX_INGEST_PER_TICK, budget + 1)

            report = world.tick()

            renderer.begin_frame()
            renderer.set_common_uniforms(
                cam.view_matrix(),
                cam.eye(),
                light_dir,
                max_height=config.max_height,
                fog_start=fog_start,
                fog_end=fog_end,
                grid=debug,
            )
            renderer.draw_chunks()
            pygame.display.flip()

            if now - last_log >= 1.0:
                last_log = now
                log.info(
                    "fps~%.0f ingest=%s resident=%d pending=%d pos=(%.1f, %.1f)",
                    fps_est, world.max_ingest_per_tick, len(world.tracker), report.pending, cam.x, cam.z,
                )

            if FPS_CAP and FPS_CAP > 0:
                clock.tick(FPS_CAP)
            else:
                clock.tick()
    finally:
        world.shutdown()
        renderer.release()
        pygame.quit()
