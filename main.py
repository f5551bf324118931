import argparse
import os
import sys
import threading
import time
import traceback

# 1. Import Settings FIRST so we can patch them
import settings
from params import ParameterError, ParameterStore, TuningParameters, parse_override
from export import EXPORT_TABS, get_export


class Tee:
    def __init__(self, stream, log_file):
        self.stream = stream
        self.log_file = log_file
        self.lock = threading.Lock()

    def write(self, data):
        with self.lock:
            self.stream.write(data)
            self.log_file.write(data)
            if '\n' in data: self.stream.flush()

    def flush(self):
        with self.lock:
            self.stream.flush()
            self.log_file.flush()


def _parse_size(text):
    try:
        w, h = (int(v) for v in text.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected WIDTHxHEIGHT, got '{text}'") from None
    if w <= 0 or h <= 0:
        raise argparse.ArgumentTypeError(f"Size must be positive, got '{text}'")
    return w, h


def build_parser():
    parser = argparse.ArgumentParser(description="Depth-map parallax preview")
    parser.add_argument("--image", help="Base image file")
    parser.add_argument("--depth", help="Grayscale depth map file")
    parser.add_argument(
        "--set", dest="overrides", action="append", default=[], metavar="NAME=VALUE",
        help="Override a tuning parameter (repeatable), e.g. --set masterGain=3"
    )
    parser.add_argument("--size", type=_parse_size, help="Window size WIDTHxHEIGHT")
    parser.add_argument("--fullscreen", action="store_true", help="Start fullscreen")
    parser.add_argument("--fps", type=int, help="Frame cap (0 = paced by vsync only)")
    parser.add_argument("--gles", action="store_true", help="Request an OpenGL ES 3.0 context")
    parser.add_argument(
        "--export", choices=EXPORT_TABS,
        help="Print settings or shader source and exit without opening a window"
    )
    parser.add_argument("--no-log", action="store_true", help="Do not write a log file")
    return parser


def configure_runtime(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    params = TuningParameters.defaults()
    for text in args.overrides:
        try:
            name, value = parse_override(text)
        except ParameterError as e:
            parser.error(str(e))
        params = params.with_value(name, value)

    if args.size:
        settings.WINDOW_SIZE = args.size
    if args.fullscreen:
        settings.FULLSCREEN_MODE = True
    if args.fps is not None:
        settings.FPS = max(0, args.fps)
    if args.gles:
        settings.FORCE_GLES = True
    settings.BASE_IMAGE_PATH = args.image
    settings.DEPTH_IMAGE_PATH = args.depth

    return args, params


def open_log_file():
    os.makedirs(settings.LOGS_DIR, exist_ok=True)
    stamp = time.strftime("%Y%m%d_%H%M%S")
    path = os.path.join(settings.LOGS_DIR, f"runtime_{stamp}.log")
    settings.LOG_FILE_PATH = path
    return open(path, "w", buffering=1, encoding="utf-8")


def run_preview(params):
    # Display modules are imported late so CLI patches to settings apply.
    import display_manager
    from event_handler import register_callbacks
    from image_loader import ImageLoader
    from render_loop import RenderLoop
    from renderer import ResourceManager, SLOT_BASE, SLOT_DEPTH
    from shared_state import DisplayState

    state = DisplayState(ParameterStore(params))
    state.fullscreen = settings.FULLSCREEN_MODE

    window, ctx, is_gles = display_manager.display_init(state)
    loader = ImageLoader()
    loop = None

    def poll():
        display_manager.poll_events()
        if display_manager.should_close(window):
            state.run_mode = False

    try:
        resources = ResourceManager(ctx, is_gles=is_gles).initialize()
        loop = RenderLoop(
            resources, state,
            surface_size=lambda: display_manager.framebuffer_size(window),
            present=lambda: display_manager.present(window),
            poll_events=poll,
            pending=loader.pending,
        )
        register_callbacks(window, state, loader)

        if settings.BASE_IMAGE_PATH:
            loader.submit(SLOT_BASE, settings.BASE_IMAGE_PATH)
        if settings.DEPTH_IMAGE_PATH:
            loader.submit(SLOT_DEPTH, settings.DEPTH_IMAGE_PATH)

        print("[MAIN] Keys: Q/ESC quit | R reset | E export | F fullscreen | TAB drop target | B/D clear")
        loop.run()
        print(f"[MAIN] Rendered {loop.stats.frames} frames")
    finally:
        if loop is not None:
            loop.shutdown()
        loader.shutdown(wait=False)
        display_manager.close_window(window)


def main(argv=None):
    args, params = configure_runtime(argv)

    if args.export:
        text = get_export(args.export, params)
        sys.stdout.write(text if text.endswith("\n") else text + "\n")
        return 0

    original_stdout, original_stderr = sys.stdout, sys.stderr
    log_file = None
    if not args.no_log:
        try:
            log_file = open_log_file()
            sys.stdout = Tee(sys.stdout, log_file)
            sys.stderr = Tee(sys.stderr, log_file)
            print(f"[MAIN] Logging to {settings.LOG_FILE_PATH}")
        except OSError as e:
            print(f"⚠️  Logging setup failed: {e}")

    from display_manager import ContextCreationError
    from renderer import ShaderBuildError

    status = 0
    try:
        run_preview(params)
    except KeyboardInterrupt:
        print("\n[MAIN] Shutdown requested via Ctrl+C")
    except (ContextCreationError, ShaderBuildError) as e:
        print("\n" + "!" * 60)
        print(f"❌ PREVIEW CANNOT START: {e}")
        print("!" * 60 + "\n")
        status = 1
    except Exception as e:
        print(f"\n[MAIN] CRASH DETAILS: {e}")
        traceback.print_exc()
        status = 1
    finally:
        print("[MAIN] Exiting...")
        sys.stdout.flush()
        sys.stderr.flush()
        sys.stdout = original_stdout
        sys.stderr = original_stderr
        if log_file is not None:
            try:
                log_file.close()
            except OSError as e:
                original_stderr.write(f"⚠️  Error closing log file: {e}\n")
    return status


if __name__ == "__main__":
    sys.exit(main())
