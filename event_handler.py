try:
    import glfw
except ImportError:
    glfw = None

import display_manager
from export import print_export
from renderer import SLOT_BASE, SLOT_DEPTH


def handle_cursor_pos(window, state, x, y):
    """Window coordinates (top-left origin) -> bottom-up surface pixels."""
    fx, fy = display_manager.window_to_framebuffer(window, x, y)
    _, fb_h = display_manager.framebuffer_size(window)
    state.pointer.move_top_left(fx, fy, fb_h)


def handle_cursor_leave(state):
    if state.surface is not None:
        state.pointer.recenter(state.surface)


def handle_drop(state, loader, paths):
    """First dropped file goes to the current target slot, a second to the other."""
    if not paths:
        return
    first = state.drop_target
    other = SLOT_DEPTH if first == SLOT_BASE else SLOT_BASE
    for slot, path in zip((first, other), paths):
        loader.submit(slot, path)


def register_callbacks(window, state, loader=None):
    """Register GLFW callbacks for pointer, keys and file drops to update state."""
    if glfw is None:
        return

    def on_key(win, key, scancode, action, mods):
        if action != glfw.PRESS:
            return
        if key == glfw.KEY_Q or key == glfw.KEY_ESCAPE:
            state.run_mode = False    # Quit the display loop
        elif key == glfw.KEY_R:
            state.params.reset()
            print("[EVENT] Parameters reset to defaults")
        elif key == glfw.KEY_E:
            print_export(state.params.snapshot())
        elif key == glfw.KEY_F:
            display_manager.toggle_fullscreen(win, state)
        elif key == glfw.KEY_TAB:
            print(f"[EVENT] Drop target: {state.toggle_drop_target()}")
        elif key == glfw.KEY_B and loader is not None:
            loader.pending.clear(SLOT_BASE)
        elif key == glfw.KEY_D and loader is not None:
            loader.pending.clear(SLOT_DEPTH)

    def on_cursor_pos(win, x, y):
        handle_cursor_pos(win, state, x, y)

    def on_cursor_enter(win, entered):
        if not entered:
            handle_cursor_leave(state)

    def on_drop(win, paths):
        if loader is not None:
            handle_drop(state, loader, paths)

    glfw.set_key_callback(window, on_key)
    glfw.set_cursor_pos_callback(window, on_cursor_pos)
    glfw.set_cursor_enter_callback(window, on_cursor_enter)
    glfw.set_drop_callback(window, on_drop)
