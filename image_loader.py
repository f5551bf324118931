import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np
from PIL import Image, UnidentifiedImageError

from renderer import SLOTS
from settings import LOADER_WORKERS


class ImageLoadError(ValueError):
    pass


@dataclass(frozen=True)
class RasterImage:
    pixels: np.ndarray  # (H, W, 4) uint8, top row first
    width: int
    height: int
    source: str = ""

    @classmethod
    def from_array(cls, pixels, source=""):
        arr = np.asarray(pixels, dtype=np.uint8)
        if arr.ndim == 2:
            arr = np.stack([arr, arr, arr, np.full_like(arr, 255)], axis=-1)
        elif arr.ndim == 3 and arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=-1)
        elif arr.ndim != 3 or arr.shape[2] != 4:
            raise ImageLoadError(f"Unsupported pixel array shape: {arr.shape}")
        h, w = arr.shape[:2]
        if w == 0 or h == 0:
            raise ImageLoadError(f"Empty image: {source or 'array'}")
        return cls(np.ascontiguousarray(arr), w, h, source)


def read_image(image_path):
    """Decode any Pillow-readable file to an RGBA RasterImage."""
    if not os.path.isfile(image_path):
        raise ImageLoadError(f"File not found: {image_path}")
    try:
        with Image.open(image_path) as img:
            rgba = img.convert("RGBA")
            pixels = np.array(rgba, dtype=np.uint8)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageLoadError(f"Cannot decode {image_path}: {e}") from e
    return RasterImage.from_array(pixels, source=image_path)


_CLEAR = object()


class PendingUploads:
    """
    Hand-off between decode workers and the render thread. One entry per
    slot, newest wins; the render loop drains it at the top of a frame.
    """

    def __init__(self):
        self.lock = threading.Lock()
        self._pending = {}

    def put(self, slot, image):
        if slot not in SLOTS:
            raise KeyError(slot)
        with self.lock:
            self._pending[slot] = image

    def clear(self, slot):
        """Queue a reset of ``slot`` back to its placeholder."""
        self.put(slot, _CLEAR)

    def drain(self):
        """Return ``[(slot, image_or_None), ...]`` and empty the queue."""
        with self.lock:
            items = list(self._pending.items())
            self._pending.clear()
        return [(slot, None if image is _CLEAR else image) for slot, image in items]

    def __len__(self):
        with self.lock:
            return len(self._pending)


class ImageLoader:
    """Decodes files off the render thread and queues the results."""

    def __init__(self, pending=None, max_workers=LOADER_WORKERS):
        self.pending = pending if pending is not None else PendingUploads()
        self.pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="decode")
        self.failed_loads = 0

    def submit(self, slot, image_path):
        print(f"[LOADER] Decoding {slot}: {image_path}")
        future = self.pool.submit(read_image, image_path)
        future.add_done_callback(lambda f, s=slot, p=image_path: self._done(f, s, p))
        return future

    def _done(self, future, slot, image_path):
        try:
            image = future.result()
        except ImageLoadError as e:
            self.failed_loads += 1
            print(f"[LOADER] ⚠️  {e}")
            return
        self.pending.put(slot, image)
        print(f"[LOADER] {slot} ready: {image.width}x{image.height} ({os.path.basename(image_path)})")

    def shutdown(self, wait=True):
        self.pool.shutdown(wait=wait)
