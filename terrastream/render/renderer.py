from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Dict, Tuple

import moderngl
import numpy as np

from terrastream.config import FAR, FOV_DEG, NEAR
from terrastream.render.shaders import shader_sources
from terrastream.util.math import perspective
from terrastream.world.chunk import ChunkMesh, ChunkTransform
from terrastream.world.errors import UnknownHandle

log = logging.getLogger(__name__)

_SKY_VERT = """#version 150
in vec2 in_pos;
out vec2 v_uv;
void main() {
    v_uv = in_pos * 0.5 + 0.5;
    gl_Position = vec4(in_pos, 0.0, 1.0);
}
"""

_SKY_FRAG = """#version 150
in vec2 v_uv;
out vec4 f_color;

void main() {
    vec3 horizon = vec3(0.78, 0.86, 0.96);
    vec3 zenith  = vec3(0.40, 0.60, 0.85);
    f_color = vec4(mix(horizon, zenith, smoothstep(0.0, 1.0, v_uv.y)), 1.0);
}
"""


@dataclass
class ChunkGPU:
    transform: ChunkTransform
    vao: moderngl.VertexArray
    vbo: moderngl.Buffer
    ibo: moderngl.Buffer

    def release(self) -> None:
        self.vao.release()
        self.vbo.release()
        self.ibo.release()


class Renderer:
    """Terrain program, sky quad and the set of live chunk drawables."""

    def __init__(self, ctx: moderngl.Context, width: int, height: int) -> None:
        self.ctx = ctx
        self.width = width
        self.height = height

        vert, frag = shader_sources(ctx.version_code)
        self.prog = self.ctx.program(vertex_shader=vert, fragment_shader=frag)

        self._proj = perspective(FOV_DEG, width / height, NEAR, FAR).astype(np.float32)
        self.prog["u_proj"].write(self._proj.tobytes())

        self.ctx.enable(moderngl.DEPTH_TEST)
        self.ctx.enable(moderngl.CULL_FACE)

        self._sky_prog = self.ctx.program(vertex_shader=_SKY_VERT, fragment_shader=_SKY_FRAG)
        sky = np.array([-1.0, -1.0, 1.0, -1.0, -1.0, 1.0, 1.0, 1.0], dtype=np.float32)
        self._sky_vbo = self.ctx.buffer(sky.tobytes())
        self._sky_vao = self.ctx.vertex_array(self._sky_prog, [(self._sky_vbo, "2f", "in_pos")])

        self._ids = itertools.count(1)
        self.chunks: Dict[int, ChunkGPU] = {}

    @property
    def proj(self) -> np.ndarray:
        return self._proj

    def upload(self, mesh: ChunkMesh, transform: ChunkTransform) -> int:
        vbo = self.ctx.buffer(mesh.interleaved().tobytes())
        ibo = self.ctx.buffer(np.ascontiguousarray(mesh.indices, dtype=np.uint32).tobytes())
        vao = self.ctx.vertex_array(
            self.prog,
            [(vbo, "3f 3f 2f", "in_pos", "in_norm", "in_uv")],
            ibo,
            index_element_size=4,
        )
        handle = next(self._ids)
        self.chunks[handle] = ChunkGPU(transform=transform, vao=vao, vbo=vbo, ibo=ibo)
        return handle

    def discard(self, handle: int) -> None:
        ch = self.chunks.pop(handle, None)
        if ch is None:
            raise UnknownHandle(f"drawable handle {handle!r} is not live")
        ch.release()

    def release(self) -> None:
        if self.chunks:
            log.debug("releasing %d leftover chunk drawables", len(self.chunks))
        for ch in self.chunks.values():
            ch.release()
        self.chunks.clear()
        for obj in [self._sky_vao, self._sky_vbo, self._sky_prog, self.prog]:
            obj.release()

    def resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.ctx.viewport = (0, 0, width, height)
        self._proj = perspective(FOV_DEG, width / height, NEAR, FAR).astype(np.float32)
        self.prog["u_proj"].write(self._proj.tobytes())

    def begin_frame(self) -> None:
        self.ctx.clear(0.70, 0.80, 0.92, 1.0)
        self.ctx.disable(moderngl.DEPTH_TEST)
        self._sky_vao.render(mode=moderngl.TRIANGLE_STRIP)
        self.ctx.enable(moderngl.DEPTH_TEST)

    def set_common_uniforms(
        self,
        view: np.ndarray,
        cam_pos: np.ndarray,
        light_dir: np.ndarray,
        *,
        max_height: float,
        fog_start: float,
        fog_end: float,
        grid: bool = False,
    ) -> None:
        self.prog["u_view"].write(view.astype(np.float32).tobytes())
        self.prog["u_cam_pos"].value = (float(cam_pos[0]), float(cam_pos[1]), float(cam_pos[2]))
        self.prog["u_light_dir"].value = (float(light_dir[0]), float(light_dir[1]), float(light_dir[2]))
        self.prog["u_max_height"].value = float(max_height)
        self.prog["u_fog_start"].value = float(fog_start)
        self.prog["u_fog_end"].value = float(fog_end)
        self.prog["u_grid"].value = 1.0 if grid else 0.0

    def draw_chunks(self) -> None:
        for ch in self.chunks.values():
            ch.vao.render()


class GLScene:
    """Scene collaborator backed by the renderer; the observer is the flight camera."""

    def __init__(self, renderer: Renderer, camera) -> None:
        self.renderer = renderer
        self.camera = camera

    def observer_world_position(self) -> Tuple[float, float, float]:
        eye = self.camera.eye()
        return float(eye[0]), float(eye[1]), float(eye[2])

    def register_drawable(self, mesh: ChunkMesh, transform: ChunkTransform) -> int:
        return self.renderer.upload(mesh, transform)

    def release_drawable(self, handle: int) -> None:
        self.renderer.discard(handle)
