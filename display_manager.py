"""
display_manager.py – Window creation, sizing, and GL context management.
"""
from __future__ import annotations
import os
import re
from typing import Optional

import moderngl

import settings

# --- Conditional Imports ---
_GLFW_AVAILABLE = False
try:
    import glfw
    from OpenGL.GL import glGetString, GL_VERSION, GL_RENDERER
    _GLFW_AVAILABLE = True
except ImportError:
    glfw = None


class ContextCreationError(RuntimeError):
    """No window or GL context could be created."""


def _is_wayland_session() -> bool:
    return bool(os.environ.get("WAYLAND_DISPLAY") or os.environ.get("XDG_SESSION_TYPE") == "wayland")


def _session_label() -> str:
    if _is_wayland_session():
        return "wayland"
    if os.environ.get("DISPLAY"):
        return "x11"
    return "unknown"


def _force_gles() -> bool:
    env = os.environ.get("FORCE_GLES") in {"1", "true", "TRUE", "yes", "YES"}
    return env or bool(getattr(settings, "FORCE_GLES", False))


def _parse_gl_version(version_str: str | None) -> Optional[int]:
    """'OpenGL ES 3.1 Mesa ...' or '4.6.0 NVIDIA ...' -> 310 / 460."""
    if not version_str:
        return None
    m = re.search(r"OpenGL ES\s*([0-9]+)\.([0-9]+)", version_str)
    if not m:
        m = re.search(r"^\s*([0-9]+)\.([0-9]+)", version_str)
    if not m:
        return None
    return int(m.group(1)) * 100 + int(m.group(2)) * 10


def _log_renderer_info(ctx) -> None:
    try:
        info = ctx.info
        print(f"[DISPLAY] GL Context: {info.get('GL_RENDERER', 'Unknown')}")
        print(f"[DISPLAY] GL Version: {info.get('GL_VERSION', 'Unknown')}")
        renderer_name = info.get('GL_RENDERER', '').lower()
        if "llvmpipe" in renderer_name or "softpipe" in renderer_name:
            print("[DISPLAY] ℹ️  Using Software Rasterizer.")
    except (AttributeError, KeyError, TypeError):
        # GL context info may not be available on all platforms
        pass


def _context_attempts(force_gles: bool) -> list[tuple[str, int]]:
    attempts = [] if force_gles else [("gl", 330)]
    attempts.append(("gles", 300))
    return attempts


def _apply_hints(api: str, version_code: int) -> None:
    glfw.default_window_hints()
    glfw.window_hint(glfw.AUTO_ICONIFY, glfw.FALSE)
    glfw.window_hint(glfw.CONTEXT_VERSION_MAJOR, version_code // 100)
    glfw.window_hint(glfw.CONTEXT_VERSION_MINOR, (version_code % 100) // 10)
    if api == "gles":
        glfw.window_hint(glfw.CLIENT_API, glfw.OPENGL_ES_API)
        glfw.window_hint(glfw.CONTEXT_CREATION_API, glfw.EGL_CONTEXT_API)
    else:
        glfw.window_hint(glfw.CLIENT_API, glfw.OPENGL_API)
        glfw.window_hint(glfw.OPENGL_PROFILE, glfw.OPENGL_CORE_PROFILE)
        glfw.window_hint(glfw.OPENGL_FORWARD_COMPAT, glfw.TRUE)


def _fullscreen_mode():
    mon = glfw.get_primary_monitor()
    if not mon:
        return None, None
    try:
        return mon, glfw.get_video_mode(mon)
    except Exception:
        return mon, None


def display_init(state):
    """
    Open the preview window and wrap its context with ModernGL.
    Returns ``(window, ctx, is_gles)``; raises ContextCreationError.
    """
    if not _GLFW_AVAILABLE:
        raise ContextCreationError("GLFW/PyOpenGL not installed. Cannot open a window.")

    print(f"[DISPLAY] Session: {_session_label()}")
    if not glfw.init():
        raise ContextCreationError("glfw.init() failed (no display available?)")

    win_w, win_h = settings.WINDOW_SIZE
    window = None
    api_used = None
    last_error = None

    for api, version_code in _context_attempts(_force_gles()):
        attempt = f"{api} {version_code // 100}.{(version_code % 100) // 10}"
        try:
            _apply_hints(api, version_code)
            if state.fullscreen:
                mon, mode = _fullscreen_mode()
                if mode is not None:
                    window = glfw.create_window(mode.size.width, mode.size.height,
                                                settings.WINDOW_TITLE, mon, None)
                else:
                    window = glfw.create_window(win_w, win_h, settings.WINDOW_TITLE, None, None)
            else:
                window = glfw.create_window(win_w, win_h, settings.WINDOW_TITLE, None, None)
        except Exception as e:
            last_error = e
            window = None
        if window:
            api_used = api
            print(f"[DISPLAY] Window created ({attempt})")
            break
        print(f"[DISPLAY] Window attempt failed ({attempt}): {last_error}")

    if not window:
        glfw.terminate()
        raise ContextCreationError(f"Window creation failed: {last_error}")

    glfw.make_context_current(window)
    glfw.swap_interval(1 if settings.VSYNC else 0)

    version_str = None
    try:
        version_bytes = glGetString(GL_VERSION)
        version_str = version_bytes.decode("utf-8", errors="replace") if version_bytes else None
        renderer_bytes = glGetString(GL_RENDERER)
        if renderer_bytes:
            print(f"[DISPLAY] GL_RENDERER: {renderer_bytes.decode('utf-8', errors='replace')}")
    except Exception as e:
        print(f"[DISPLAY] Could not query GL strings: {e}")

    version_code = _parse_gl_version(version_str)
    if version_code is not None and version_code < 300:
        close_window(window)
        raise ContextCreationError(f"OpenGL 3.0+ required, context reports {version_str}")

    is_gles = api_used == "gles" or (version_str is not None and "OpenGL ES" in version_str)
    try:
        # Wrap the current context; require=300 accepts GLES 3.0 as well.
        ctx = moderngl.create_context(require=300)
    except Exception as e:
        close_window(window)
        raise ContextCreationError(f"Failed to wrap current context with ModernGL: {e}") from e

    _log_renderer_info(ctx)
    ctx.disable(moderngl.BLEND)
    return window, ctx, is_gles


def framebuffer_size(window) -> tuple[int, int]:
    return glfw.get_framebuffer_size(window)


def window_to_framebuffer(window, x: float, y: float) -> tuple[float, float]:
    """Scale window (screen) coordinates to framebuffer pixels for HiDPI displays."""
    win_w, win_h = glfw.get_window_size(window)
    fb_w, fb_h = glfw.get_framebuffer_size(window)
    sx = fb_w / win_w if win_w > 0 else 1.0
    sy = fb_h / win_h if win_h > 0 else 1.0
    return x * sx, y * sy


def toggle_fullscreen(window, state) -> None:
    state.fullscreen = not state.fullscreen
    if _is_wayland_session():
        # set_window_monitor can trigger compositor resets on Wayland; resize instead.
        if state.fullscreen:
            _, mode = _fullscreen_mode()
            if mode is not None:
                glfw.set_window_size(window, mode.size.width, mode.size.height)
            glfw.set_window_attrib(window, glfw.DECORATED, glfw.FALSE)
        else:
            glfw.set_window_attrib(window, glfw.DECORATED, glfw.TRUE)
            glfw.set_window_size(window, *settings.WINDOW_SIZE)
        return

    if state.fullscreen:
        mon, mode = _fullscreen_mode()
        if mode is not None:
            refresh = getattr(mode, "refresh_rate", 60)
            glfw.set_window_monitor(window, mon, 0, 0, mode.size.width, mode.size.height, refresh)
    else:
        win_w, win_h = settings.WINDOW_SIZE
        glfw.set_window_monitor(window, None, 100, 100, win_w, win_h, 0)


def present(window) -> None:
    glfw.swap_buffers(window)


def poll_events() -> None:
    glfw.poll_events()


def should_close(window) -> bool:
    return bool(glfw.window_should_close(window))


def close_window(window) -> None:
    try:
        if window is not None:
            glfw.destroy_window(window)
    finally:
        glfw.terminate()
