"""
renderer.py – GPU resource ownership for the parallax preview.

ResourceManager is the only holder of GL handles: the linked program, the
two static quad buffers, the vertex array and one texture per slot
(base image, depth map). Slots are never empty while rendering; a missing
image is represented by a 1x1 placeholder texture.
"""
from __future__ import annotations

from dataclasses import dataclass

import moderngl
import numpy as np

import shaders
from parallax_math import QUAD_POSITIONS, QUAD_TEXCOORDS, QUAD_VERTEX_COUNT
from settings import (
    BACKGROUND_COLOR, PLACEHOLDER_COLOR, BASE_TEXTURE_UNIT, DEPTH_TEXTURE_UNIT,
)

SLOT_BASE = "base"
SLOT_DEPTH = "depth"
SLOTS = (SLOT_BASE, SLOT_DEPTH)


class ShaderBuildError(RuntimeError):
    """Compile or link failure; the preview cannot run this session."""

    def __init__(self, stage: str, log: str):
        super().__init__(f"{stage} failed: {log}")
        self.stage = stage
        self.log = log


@dataclass(frozen=True)
class FrameUniforms:
    """Everything the shaders read for one frame, captured up front."""
    resolution: tuple[int, int]
    pointer: tuple[float, float]
    image_resolution: tuple[int, int]
    params: object  # params.TuningParameters


def _pixels_to_texture_data(pixels: np.ndarray) -> tuple[int, int, int, bytes]:
    if pixels.ndim == 2:
        pixels = pixels[..., None]
    h, w, components = pixels.shape
    if components not in (1, 2, 3, 4):
        raise ValueError(f"Unsupported channel count: {components}")
    # Decoded rows run top-down; GL expects the bottom row first.
    data = np.ascontiguousarray(np.flipud(pixels), dtype=np.uint8).tobytes()
    return w, h, components, data


class _Texture:
    """One texture slot's live texture plus the size it was built from."""

    def __init__(self, texture: moderngl.Texture, size: tuple[int, int], placeholder: bool):
        self.texture = texture
        self.size = size
        self.placeholder = placeholder

    def release(self) -> None:
        if self.texture is not None:
            self.texture.release()
            self.texture = None


class ResourceManager:
    def __init__(self, ctx: moderngl.Context, is_gles: bool = False):
        self.ctx = ctx
        self.is_gles = is_gles
        self.prog = None
        self.position_vbo = None
        self.texcoord_vbo = None
        self.vao = None
        self._slots: dict[str, _Texture | None] = {SLOT_BASE: None, SLOT_DEPTH: None}
        self._torn_down = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def initialize(self) -> "ResourceManager":
        """
        Build the program, quad geometry and placeholder textures.
        Raises ShaderBuildError on compile/link failure; anything created
        before the failure is released first.
        """
        try:
            self.prog = self._build_program()

            self.position_vbo = self.ctx.buffer(QUAD_POSITIONS.tobytes())
            self.texcoord_vbo = self.ctx.buffer(QUAD_TEXCOORDS.tobytes())
            self.vao = self.ctx.vertex_array(self.prog, [
                (self.position_vbo, "3f", shaders.ATTR_POSITION),
                (self.texcoord_vbo, "2f", shaders.ATTR_TEXCOORD),
            ])

            self._set_uniform(shaders.U_BASE_TEXTURE, BASE_TEXTURE_UNIT)
            self._set_uniform(shaders.U_DEPTH_TEXTURE, DEPTH_TEXTURE_UNIT)

            self.set_base_image(None)
            self.set_depth_image(None)
        except Exception:
            self.teardown()
            raise

        print(f"[RENDER] Program linked ({'GLES 3.0' if self.is_gles else 'GL 3.3 core'})")
        return self

    def _build_program(self) -> moderngl.Program:
        vertex_src = shaders.for_context(shaders.VERTEX_SHADER_SOURCE, self.is_gles)
        fragment_src = shaders.for_context(shaders.FRAGMENT_SHADER_SOURCE, self.is_gles)
        try:
            return self.ctx.program(vertex_shader=vertex_src, fragment_shader=fragment_src)
        except moderngl.Error as e:
            message = str(e)
            lowered = message.lower()
            # Linker logs name both stages, so check for them first.
            if "link" in lowered:
                stage = "Shader program linking"
            elif "vertex" in lowered:
                stage = "Vertex shader compilation"
            elif "fragment" in lowered:
                stage = "Fragment shader compilation"
            else:
                stage = "Shader program linking"
            raise ShaderBuildError(stage, message) from e

    def teardown(self) -> None:
        """Release every GL object. Safe to call more than once."""
        if self._torn_down:
            return
        self._torn_down = True

        for slot in SLOTS:
            entry = self._slots[slot]
            if entry is not None:
                entry.release()
            self._slots[slot] = None

        for name in ("vao", "texcoord_vbo", "position_vbo", "prog"):
            obj = getattr(self, name)
            if obj is not None:
                obj.release()
                setattr(self, name, None)

        print("[RENDER] GPU resources released")

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    def __enter__(self) -> "ResourceManager":
        return self.initialize()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.teardown()

    # ------------------------------------------------------------------
    # Texture slots
    # ------------------------------------------------------------------
    def set_base_image(self, image) -> None:
        self._replace_slot(SLOT_BASE, image)

    def set_depth_image(self, image) -> None:
        self._replace_slot(SLOT_DEPTH, image)

    def _replace_slot(self, slot: str, image) -> None:
        if self._torn_down:
            raise RuntimeError("ResourceManager has been torn down")

        if image is None:
            new = self._create_placeholder()
        else:
            new = self._create_texture(image.pixels)

        # Swap only after the new texture is complete so a frame never sees
        # a half-built slot.
        old = self._slots[slot]
        self._slots[slot] = new
        if old is not None:
            old.release()

        if new.placeholder:
            print(f"[RENDER] {slot} texture: placeholder 1x1")
        else:
            print(f"[RENDER] {slot} texture: {new.size[0]}x{new.size[1]}")

    def _create_texture(self, pixels: np.ndarray) -> _Texture:
        w, h, components, data = _pixels_to_texture_data(pixels)
        tex = self.ctx.texture((w, h), components, data=data)
        tex.filter = (moderngl.LINEAR, moderngl.LINEAR)
        tex.repeat_x = False
        tex.repeat_y = False
        return _Texture(tex, (w, h), placeholder=False)

    def _create_placeholder(self) -> _Texture:
        data = bytes(PLACEHOLDER_COLOR)
        tex = self.ctx.texture((1, 1), 4, data=data)
        tex.filter = (moderngl.LINEAR, moderngl.LINEAR)
        tex.repeat_x = False
        tex.repeat_y = False
        return _Texture(tex, (1, 1), placeholder=True)

    def slot_texture(self, slot: str):
        entry = self._slots[slot]
        return None if entry is None else entry.texture

    def slot_is_placeholder(self, slot: str) -> bool:
        entry = self._slots[slot]
        return entry is None or entry.placeholder

    @property
    def base_image_size(self) -> tuple[int, int]:
        """Size used for aspect correction; 1x1 while the base slot is a placeholder."""
        entry = self._slots[SLOT_BASE]
        return (1, 1) if entry is None else entry.size

    # ------------------------------------------------------------------
    # Per-frame
    # ------------------------------------------------------------------
    def set_viewport(self, width: int, height: int) -> None:
        self.ctx.viewport = (0, 0, width, height)

    def _set_uniform(self, name: str, value) -> None:
        # The GLSL compiler drops uniforms it can prove unused.
        member = self.prog.get(name, None)
        if member is not None:
            member.value = value

    def draw(self, frame: FrameUniforms) -> None:
        if self._torn_down or self.prog is None:
            raise RuntimeError("draw() called without a live program")

        r, g, b = (c / 255.0 for c in BACKGROUND_COLOR)
        self.ctx.clear(r, g, b, 1.0)

        self.slot_texture(SLOT_BASE).use(location=BASE_TEXTURE_UNIT)
        self.slot_texture(SLOT_DEPTH).use(location=DEPTH_TEXTURE_UNIT)

        self._set_uniform(shaders.U_RESOLUTION, tuple(float(v) for v in frame.resolution))
        self._set_uniform(shaders.U_MOUSE_POS, tuple(float(v) for v in frame.pointer))
        self._set_uniform(shaders.U_IMAGE_RESOLUTION, tuple(float(v) for v in frame.image_resolution))
        for name, value in frame.params.to_dict().items():
            self._set_uniform(shaders.PARAM_UNIFORMS[name], float(value))

        self.vao.render(mode=moderngl.TRIANGLE_STRIP, vertices=QUAD_VERTEX_COUNT)
