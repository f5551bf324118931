"""
parallax_math.py – numpy rendition of the two shader stages.

Mirrors shaders.py line for line so the effect can be reasoned about (and
tested) without a GL context, and backs the CPU reference renderer
``render_cpu``. All coordinates follow GL conventions: UV (0, 0) is the
bottom-left of the image, pointer and surface pixels count up from the
bottom edge.
"""
from __future__ import annotations

import numpy as np

from settings import BACKGROUND_COLOR, PLACEHOLDER_COLOR

# Full clip-space quad, triangle-strip order. Position is xyz, UV is uv.
QUAD_POSITIONS = np.array([
    -1.0, -1.0, 0.0,
     1.0, -1.0, 0.0,
    -1.0,  1.0, 0.0,
     1.0,  1.0, 0.0,
], dtype=np.float32)

QUAD_TEXCOORDS = np.array([
    0.0, 0.0,
    1.0, 0.0,
    0.0, 1.0,
    1.0, 1.0,
], dtype=np.float32)

QUAD_VERTEX_COUNT = 4


def _vec2(value) -> np.ndarray:
    return np.asarray(value, dtype=np.float64).reshape(2)


def safe_resolution(resolution) -> np.ndarray:
    """Floor each axis at 1 so divisions never produce inf/NaN."""
    return np.maximum(_vec2(resolution), 1.0)


def normalize_pointer(pointer, resolution) -> np.ndarray:
    """Pointer pixels -> UV, clamped to [0, 1]."""
    return np.clip(_vec2(pointer) / safe_resolution(resolution), 0.0, 1.0)


def compute_strength(params) -> float:
    base = (0.08 + 0.72 * min(max(params.track_intensity, 0.0), 1.0)) \
        * max(params.overall_multiplier, 1.0)
    return base * params.master_gain


def cover_scale(params, strength: float) -> float:
    return params.base_cover_scale + 0.01 * strength


def vertex_stage(positions, texcoords, pointer, resolution, params):
    """
    Returns ``(clip_positions, mouse_delta, strength)`` for an array of
    vertices. ``positions`` is (N, 3), ``texcoords`` is (N, 2); the clip
    positions come back as (N, 4) with z = 0 and w = 1.
    """
    positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    texcoords = np.asarray(texcoords, dtype=np.float64).reshape(-1, 2)

    mouse_uv = normalize_pointer(pointer, resolution)
    mouse_delta = texcoords - mouse_uv
    strength = compute_strength(params)

    depth = 1.0
    geo_offset = mouse_delta * strength * params.tilt_amount * depth
    xy = positions[:, :2] * cover_scale(params, strength) + geo_offset

    clip = np.zeros((xy.shape[0], 4), dtype=np.float64)
    clip[:, :2] = xy
    clip[:, 3] = 1.0
    return clip, mouse_delta, strength


def cover_uv_scale(resolution, image_resolution) -> np.ndarray:
    res = safe_resolution(resolution)
    img = safe_resolution(image_resolution)
    ratio = (res[0] / res[1]) / (img[0] / img[1])
    if ratio > 1.0:
        return np.array([1.0, 1.0 / ratio])
    return np.array([ratio, 1.0])


def cover_fit(uv, resolution, image_resolution) -> np.ndarray:
    """Remap surface UVs so the image fills the surface like CSS ``cover``."""
    scale = cover_uv_scale(resolution, image_resolution)
    return (np.asarray(uv, dtype=np.float64) - 0.5) * scale + 0.5


def remap_depth(raw, gamma: float):
    """Map a [0, 1] depth sample to [-1, 1] and gamma-shape its magnitude."""
    s = np.clip(raw, 0.0, 1.0) * 2.0 - 1.0
    return np.sign(s) * np.power(np.abs(s), gamma)


def sample_texture(pixels: np.ndarray, uv) -> np.ndarray:
    """
    Bilinear, clamp-to-edge lookup matching GL_LINEAR. ``pixels`` is a
    top-down (H, W, C) uint8 image as decoded; V runs bottom to top.
    Returns float samples in [0, 1] with shape ``uv.shape[:-1] + (C,)``.
    """
    img = np.asarray(pixels)
    if img.ndim == 2:
        img = img[..., None]
    h, w = img.shape[:2]
    uv = np.asarray(uv, dtype=np.float64)

    x = uv[..., 0] * w - 0.5
    # GL row 0 is the bottom of the image; decoded row 0 is the top.
    y = uv[..., 1] * h - 0.5
    x0 = np.floor(x)
    y0 = np.floor(y)
    fx = (x - x0)[..., None]
    fy = (y - y0)[..., None]

    xi0 = np.clip(x0.astype(np.int64), 0, w - 1)
    xi1 = np.clip(x0.astype(np.int64) + 1, 0, w - 1)
    yi0 = np.clip(y0.astype(np.int64), 0, h - 1)
    yi1 = np.clip(y0.astype(np.int64) + 1, 0, h - 1)
    rows0 = h - 1 - yi0
    rows1 = h - 1 - yi1

    data = img.astype(np.float64) / 255.0
    top = data[rows0, xi0] * (1.0 - fx) + data[rows0, xi1] * fx
    bottom = data[rows1, xi0] * (1.0 - fx) + data[rows1, xi1] * fx
    return top * (1.0 - fy) + bottom * fy


def fragment_uv(texcoord, mouse_delta, strength, depth_pixels, resolution,
                image_resolution, params) -> np.ndarray:
    """Final base-image UV for each fragment (cover-fit + parallax)."""
    uv_cover = cover_fit(texcoord, resolution, image_resolution)
    raw = sample_texture(depth_pixels, np.clip(uv_cover, 0.0, 1.0))[..., 0]
    depth = remap_depth(raw, params.depth_contrast_gamma)

    res = safe_resolution(resolution)
    aspect_fix = np.array([res[0] / res[1], 1.0])
    parallax_strength = params.parallax_amount * strength
    offset = np.asarray(mouse_delta) * aspect_fix * parallax_strength * depth[..., None]
    return np.clip(uv_cover + offset, 0.0, 1.0)


def fragment_stage(texcoord, mouse_delta, strength, base_pixels, depth_pixels,
                   resolution, image_resolution, params) -> np.ndarray:
    final_uv = fragment_uv(texcoord, mouse_delta, strength, depth_pixels,
                           resolution, image_resolution, params)
    return sample_texture(base_pixels, final_uv)


def placeholder_pixels() -> np.ndarray:
    return np.array(PLACEHOLDER_COLOR, dtype=np.uint8).reshape(1, 1, 4)


def rasterize_quad(surface, pointer, params):
    """
    Invert the tilted quad for every pixel centre of ``surface``.

    The vertex stage is affine in the quad position, so each pixel maps back
    to exactly one quad point. Returns ``(texcoord, mouse_delta, covered,
    strength)``; arrays are (H, W, ...) with row 0 at the top of the surface.
    """
    width, height = (int(v) for v in surface)
    width, height = max(width, 1), max(height, 1)
    mouse_uv = normalize_pointer(pointer, (width, height))
    strength = compute_strength(params)
    k = strength * params.tilt_amount
    scale = cover_scale(params, strength) + 0.5 * k

    xs = (np.arange(width) + 0.5) / width * 2.0 - 1.0
    ys = (np.arange(height)[::-1] + 0.5) / height * 2.0 - 1.0
    px, py = np.meshgrid(xs, ys)
    clip = np.stack([px, py], axis=-1)

    quad_xy = (clip - (0.5 - mouse_uv) * k) / scale
    texcoord = (quad_xy + 1.0) * 0.5
    covered = np.all(np.abs(quad_xy) <= 1.0, axis=-1)
    return texcoord, texcoord - mouse_uv, covered, strength


def frame_uv(base_size, depth_pixels, params, pointer, surface):
    """Final sampling UV for every pixel; NaN where the quad does not cover."""
    texcoord, mouse_delta, covered, strength = rasterize_quad(surface, pointer, params)
    if depth_pixels is None:
        depth_pixels = placeholder_pixels()
    uv = fragment_uv(texcoord, mouse_delta, strength, depth_pixels, surface,
                     base_size or (1, 1), params)
    uv[~covered] = np.nan
    return uv


def render_cpu(base_pixels, depth_pixels, params, pointer, surface,
               background_color=BACKGROUND_COLOR) -> np.ndarray:
    """
    Render one frame on the CPU. Missing images fall back to the placeholder
    texture. Returns a top-down (H, W, 4) uint8 image.
    """
    if base_pixels is None:
        base_pixels = placeholder_pixels()
        base_size = (1, 1)
    else:
        base_size = (base_pixels.shape[1], base_pixels.shape[0])
    if depth_pixels is None:
        depth_pixels = placeholder_pixels()

    texcoord, mouse_delta, covered, strength = rasterize_quad(surface, pointer, params)
    color = fragment_stage(texcoord, mouse_delta, strength, base_pixels, depth_pixels,
                           surface, base_size, params)
    if color.shape[-1] == 3:
        alpha = np.ones(color.shape[:-1] + (1,))
        color = np.concatenate([color, alpha], axis=-1)

    out = np.empty(covered.shape + (4,), dtype=np.uint8)
    out[...] = (*background_color[:3], 255)
    out[covered] = np.round(color[covered] * 255.0).astype(np.uint8)
    return out
