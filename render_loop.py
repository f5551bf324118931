"""
render_loop.py – One draw call per display refresh.

Each frame polls input, applies finished image decodes, checks the surface
size, snapshots pointer + parameters and draws the quad. The loop runs until
its stop flag is set or the display state asks to quit; the stop flag is
always set before GPU resources are released.
"""
from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable, Optional

import moderngl

from renderer import FrameUniforms, ResourceManager, SLOT_BASE, SLOT_DEPTH
from shared_state import DisplayState, SurfaceDimensions
import settings


class FrameStats:
    def __init__(self, report_interval: float = settings.FPS_REPORT_INTERVAL, maxlen: int = 120):
        self.frame_times = deque(maxlen=maxlen)
        self.report_interval = report_interval
        self.frames = 0
        self._last_report = None

    def record(self, dt: float, now: float) -> None:
        self.frames += 1
        self.frame_times.append(dt)
        if not self.report_interval:
            return
        if self._last_report is None:
            self._last_report = now
        elif now - self._last_report >= self.report_interval:
            print(f"[RENDER] {self.fps:.1f} FPS")
            self._last_report = now

    @property
    def fps(self) -> float:
        if not self.frame_times:
            return 0.0
        avg = sum(self.frame_times) / len(self.frame_times)
        return 1.0 / avg if avg > 0 else 0.0


class RenderLoop:
    def __init__(
        self,
        resources: ResourceManager,
        state: DisplayState,
        surface_size: Callable[[], tuple[int, int]],
        present: Callable[[], None] = lambda: None,
        poll_events: Callable[[], None] = lambda: None,
        pending=None,
        fps: int = settings.FPS,
        clock: Callable[[], float] = time.perf_counter,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.resources = resources
        self.state = state
        self.surface_size = surface_size
        self.present = present
        self.poll_events = poll_events
        self.pending = pending
        self.fps = fps
        self.clock = clock
        self.sleep = sleep
        self.stats = FrameStats()
        self._stop = threading.Event()
        self.failed_uploads = 0

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    # ------------------------------------------------------------------
    def _apply_pending_uploads(self) -> None:
        if self.pending is None:
            return
        for slot, image in self.pending.drain():
            try:
                if slot == SLOT_BASE:
                    self.resources.set_base_image(image)
                elif slot == SLOT_DEPTH:
                    self.resources.set_depth_image(image)
            except moderngl.Error as e:
                # The slot keeps its previous texture.
                self.failed_uploads += 1
                size = "placeholder" if image is None else f"{image.width}x{image.height}"
                print(f"[RENDER] ⚠️  {slot} upload failed ({size}): {e}")

    def _update_surface(self) -> SurfaceDimensions:
        w, h = self.surface_size()
        surface = SurfaceDimensions(max(int(w), 0), max(int(h), 0))
        if surface != self.state.surface:
            self.resources.set_viewport(surface.width, surface.height)
            self.state.surface = surface
            # A pointer still at the origin has never moved; start it centred.
            if self.state.pointer.at_origin():
                self.state.pointer.recenter(surface)
            print(f"[RENDER] Surface {surface.width}x{surface.height}")
        return surface

    def step(self) -> Optional[FrameUniforms]:
        """Run one frame. Returns the uniforms drawn, or None once stopped."""
        if self._stop.is_set():
            return None

        self.poll_events()
        if not self.state.run_mode:
            self.stop()
            return None

        self._apply_pending_uploads()
        surface = self._update_surface()

        frame = FrameUniforms(
            resolution=surface.as_tuple(),
            pointer=self.state.pointer.snapshot(),
            image_resolution=self.resources.base_image_size,
            params=self.state.params.snapshot(),
        )
        self.resources.draw(frame)
        self.present()
        return frame

    def run(self) -> int:
        """Loop until stopped. Returns the number of frames drawn."""
        frame_start = self.clock()
        while not self._stop.is_set():
            if self.step() is None:
                break

            now = self.clock()
            dt = now - frame_start
            if self.fps:
                s = (1.0 / self.fps) - dt
                if s > 0:
                    self.sleep(s)
                    now = self.clock()
                    dt = now - frame_start
            self.stats.record(dt, now)
            frame_start = now
        return self.stats.frames

    def shutdown(self) -> None:
        """Stop scheduling frames, then release GPU resources."""
        self.stop()
        self.resources.teardown()
