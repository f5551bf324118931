import os
import unittest
from unittest import mock

import display_manager
import event_handler
from renderer import SLOT_BASE, SLOT_DEPTH
from shared_state import DisplayState, SurfaceDimensions


class RecordingLoader:
    def __init__(self):
        self.submitted = []

    def submit(self, slot, path):
        self.submitted.append((slot, path))


class PointerEventsTest(unittest.TestCase):
    def setUp(self):
        self.state = DisplayState()
        self.state.surface = SurfaceDimensions(800, 600)

    def test_cursor_position_is_flipped_to_bottom_up(self):
        with mock.patch.object(display_manager, "window_to_framebuffer", return_value=(120.0, 50.0)), \
                mock.patch.object(display_manager, "framebuffer_size", return_value=(800, 600)):
            event_handler.handle_cursor_pos(object(), self.state, 120.0, 50.0)
        self.assertEqual(self.state.pointer.snapshot(), (120.0, 550.0))

    def test_hidpi_scaling_goes_through_framebuffer(self):
        with mock.patch.object(display_manager, "window_to_framebuffer", return_value=(200.0, 100.0)) as w2f, \
                mock.patch.object(display_manager, "framebuffer_size", return_value=(1600, 1200)):
            event_handler.handle_cursor_pos("win", self.state, 100.0, 50.0)
        w2f.assert_called_once_with("win", 100.0, 50.0)
        self.assertEqual(self.state.pointer.snapshot(), (200.0, 1100.0))

    def test_pointer_leaving_recentres(self):
        self.state.pointer.move_top_left(3, 4, 600)
        event_handler.handle_cursor_leave(self.state)
        self.assertEqual(self.state.pointer.snapshot(), (400.0, 300.0))

    def test_leave_before_first_frame_is_ignored(self):
        state = DisplayState()
        event_handler.handle_cursor_leave(state)
        self.assertTrue(state.pointer.at_origin())


class DropEventsTest(unittest.TestCase):
    def setUp(self):
        self.state = DisplayState()
        self.loader = RecordingLoader()

    def test_single_file_goes_to_current_target(self):
        event_handler.handle_drop(self.state, self.loader, ["a.png"])
        self.assertEqual(self.loader.submitted, [(SLOT_BASE, "a.png")])

        self.state.toggle_drop_target()
        event_handler.handle_drop(self.state, self.loader, ["d.png"])
        self.assertEqual(self.loader.submitted[-1], (SLOT_DEPTH, "d.png"))

    def test_pair_fills_both_slots(self):
        event_handler.handle_drop(self.state, self.loader, ["a.png", "d.png", "extra.png"])
        self.assertEqual(self.loader.submitted, [(SLOT_BASE, "a.png"), (SLOT_DEPTH, "d.png")])

    def test_empty_drop(self):
        event_handler.handle_drop(self.state, self.loader, [])
        self.assertEqual(self.loader.submitted, [])


class DisplayHelpersTest(unittest.TestCase):
    def test_parse_gl_version(self):
        self.assertEqual(display_manager._parse_gl_version("4.6.0 NVIDIA 535.54"), 460)
        self.assertEqual(display_manager._parse_gl_version("OpenGL ES 3.1 Mesa 23.0"), 310)
        self.assertIsNone(display_manager._parse_gl_version(None))
        self.assertIsNone(display_manager._parse_gl_version("garbage"))

    def test_context_attempts(self):
        self.assertEqual(display_manager._context_attempts(False), [("gl", 330), ("gles", 300)])
        self.assertEqual(display_manager._context_attempts(True), [("gles", 300)])

    def test_force_gles_from_environment(self):
        with mock.patch.dict(os.environ, {"FORCE_GLES": "1"}):
            self.assertTrue(display_manager._force_gles())


if __name__ == "__main__":
    unittest.main()
