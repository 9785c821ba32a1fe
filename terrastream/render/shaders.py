from __future__ import annotations

def _pick_glsl_version(ctx_version_code: int) -> int:
    """GLSL 330 on OpenGL >= 3.3, otherwise 150 (the project needs a 3.2+ core context)."""
    if ctx_version_code >= 330:
        return 330
    return 150

_VERT_BODY = """
in vec3 in_pos;
in vec3 in_norm;
in vec2 in_uv;

uniform mat4 u_proj;
uniform mat4 u_view;

out vec3 v_world_pos;
out vec3 v_norm;
out vec2 v_uv;

void main() {
    v_world_pos = in_pos;
    v_norm = in_norm;
    v_uv = in_uv;
    gl_Position = u_proj * u_view * vec4(in_pos, 1.0);
}
"""

_FRAG_BODY = """in vec3 v_world_pos;
in vec3 v_norm;
in vec2 v_uv;

uniform vec3 u_light_dir;
uniform vec3 u_cam_pos;
uniform float u_max_height;
uniform float u_fog_start;
uniform float u_fog_end;
uniform float u_grid;

out vec4 f_color;

vec3 height_color(float t) {
    // t in [-1, 1]: valley green -> rock -> snow
    vec3 low = vec3(0.12, 0.36, 0.16);
    vec3 mid = vec3(0.38, 0.36, 0.33);
    vec3 high = vec3(0.90, 0.91, 0.95);
    vec3 a = mix(low, mid, smoothstep(-0.4, 0.3, t));
    return mix(a, high, smoothstep(0.45, 0.8, t));
}

void main() {
    vec3 n = normalize(v_norm);
    vec3 l = normalize(u_light_dir);
    float diff = max(dot(n, l), 0.0);

    float t = v_world_pos.y / max(u_max_height, 1e-3);
    vec3 base = height_color(t);

    // Chunk borders from UVs (debug)
    vec2 edge = min(v_uv, 1.0 - v_uv);
    float border = 1.0 - smoothstep(0.0, 0.01, min(edge.x, edge.y));
    base = mix(base, vec3(0.9, 0.2, 0.2), border * u_grid);

    float ambient = 0.50;
    vec3 col = base * (ambient + 0.85 * diff);

    float dist = length(v_world_pos.xz - u_cam_pos.xz);
    float fog_amount = smoothstep(u_fog_start, u_fog_end, dist);
    vec3 fog_col = vec3(0.70, 0.80, 0.92);
    col = mix(col, fog_col, fog_amount);

    f_color = vec4(col, 1.0);
}"""

def shader_sources(ctx_version_code: int) -> tuple[str, str]:
    ver = _pick_glsl_version(ctx_version_code)
    prefix = f"#version {ver}\n"
    return prefix + _VERT_BODY, prefix + _FRAG_BODY
