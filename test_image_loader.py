import contextlib
import io
import os
import shutil
import tempfile
import unittest
from unittest import mock

import numpy as np
from PIL import Image

from image_loader import ImageLoader, ImageLoadError, PendingUploads, RasterImage, read_image
from renderer import SLOT_BASE, SLOT_DEPTH


class ReadImageTest(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp)

    def _path(self, name):
        return os.path.join(self.tmp, name)

    def test_rgb_png_becomes_rgba(self):
        path = self._path("base.png")
        Image.new("RGB", (5, 3), (10, 20, 30)).save(path)
        image = read_image(path)
        self.assertEqual((image.width, image.height), (5, 3))
        self.assertEqual(image.pixels.shape, (3, 5, 4))
        self.assertEqual(tuple(image.pixels[0, 0]), (10, 20, 30, 255))
        self.assertEqual(image.source, path)

    def test_grayscale_depth_map_replicates_channels(self):
        path = self._path("depth.png")
        Image.new("L", (4, 4), 200).save(path)
        image = read_image(path)
        self.assertEqual(tuple(image.pixels[2, 1]), (200, 200, 200, 255))

    def test_rows_stay_top_down(self):
        path = self._path("rows.png")
        img = Image.new("RGB", (1, 2))
        img.putpixel((0, 0), (255, 0, 0))
        img.putpixel((0, 1), (0, 0, 255))
        img.save(path)
        pixels = read_image(path).pixels
        self.assertEqual(tuple(pixels[0, 0]), (255, 0, 0, 255))
        self.assertEqual(tuple(pixels[1, 0]), (0, 0, 255, 255))

    def test_missing_file(self):
        with self.assertRaises(ImageLoadError):
            read_image(self._path("nope.png"))

    def test_oversized_image_is_a_load_error(self):
        path = self._path("huge.png")
        Image.new("RGB", (100, 100)).save(path)
        with mock.patch.object(Image, "MAX_IMAGE_PIXELS", 10):
            with self.assertRaises(ImageLoadError):
                read_image(path)

    def test_garbage_file(self):
        path = self._path("garbage.png")
        with open(path, "wb") as f:
            f.write(b"definitely not an image")
        with self.assertRaises(ImageLoadError):
            read_image(path)


class RasterImageTest(unittest.TestCase):
    def test_rejects_bad_shapes(self):
        with self.assertRaises(ImageLoadError):
            RasterImage.from_array(np.zeros((2, 2, 2), dtype=np.uint8))
        with self.assertRaises(ImageLoadError):
            RasterImage.from_array(np.zeros((0, 4, 4), dtype=np.uint8))

    def test_rgb_gets_opaque_alpha(self):
        image = RasterImage.from_array(np.zeros((2, 3, 3), dtype=np.uint8))
        self.assertEqual(image.pixels.shape, (2, 3, 4))
        self.assertTrue(np.all(image.pixels[..., 3] == 255))


class PendingUploadsTest(unittest.TestCase):
    def test_newest_entry_per_slot_wins(self):
        pending = PendingUploads()
        a = RasterImage.from_array(np.zeros((1, 1, 4), dtype=np.uint8), "a")
        b = RasterImage.from_array(np.zeros((2, 2, 4), dtype=np.uint8), "b")
        pending.put(SLOT_BASE, a)
        pending.put(SLOT_BASE, b)
        self.assertEqual(pending.drain(), [(SLOT_BASE, b)])
        self.assertEqual(pending.drain(), [])

    def test_clear_drains_as_none(self):
        pending = PendingUploads()
        pending.clear(SLOT_DEPTH)
        self.assertEqual(pending.drain(), [(SLOT_DEPTH, None)])

    def test_unknown_slot(self):
        with self.assertRaises(KeyError):
            PendingUploads().put("normal", None)


class ImageLoaderTest(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp)

    def test_decoded_image_lands_in_pending(self):
        path = os.path.join(self.tmp, "depth.png")
        Image.new("L", (6, 2), 90).save(path)
        loader = ImageLoader(max_workers=1)
        with contextlib.redirect_stdout(io.StringIO()):
            loader.submit(SLOT_DEPTH, path).result(timeout=10)
            loader.shutdown(wait=True)
        items = loader.pending.drain()
        self.assertEqual(len(items), 1)
        slot, image = items[0]
        self.assertEqual(slot, SLOT_DEPTH)
        self.assertEqual((image.width, image.height), (6, 2))

    def test_failed_decode_keeps_previous_image(self):
        loader = ImageLoader(max_workers=1)
        with contextlib.redirect_stdout(io.StringIO()):
            future = loader.submit(SLOT_BASE, os.path.join(self.tmp, "missing.png"))
            with self.assertRaises(ImageLoadError):
                future.result(timeout=10)
            loader.shutdown(wait=True)
        self.assertEqual(len(loader.pending), 0)
        self.assertEqual(loader.failed_loads, 1)

    def test_oversized_decode_is_counted_and_logged(self):
        path = os.path.join(self.tmp, "huge.png")
        Image.new("RGB", (100, 100)).save(path)
        loader = ImageLoader(max_workers=1)
        out = io.StringIO()
        with mock.patch.object(Image, "MAX_IMAGE_PIXELS", 10), contextlib.redirect_stdout(out):
            future = loader.submit(SLOT_BASE, path)
            with self.assertRaises(ImageLoadError):
                future.result(timeout=10)
            loader.shutdown(wait=True)
        self.assertEqual(loader.failed_loads, 1)
        self.assertEqual(len(loader.pending), 0)
        self.assertIn("Cannot decode", out.getvalue())


if __name__ == "__main__":
    unittest.main()
