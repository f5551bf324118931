# settings.py
from constantStorage.display_constants import *
from constantStorage.parallax_constants import *

# -------------------------
# Display Mode & Performance
# -------------------------
# 0 = uncapped (paced only by the vsync'd swap); >0 adds a sleep-based cap
FPS = 0
FPS_REPORT_INTERVAL = 5.0  # seconds between [RENDER] fps lines, 0 disables

# Request an OpenGL ES 3.0 context instead of desktop 3.3 core
# (also enabled with FORCE_GLES=1 in the environment)
FORCE_GLES = False

# -------------------------
# Image Inputs (patched by main.py from the CLI)
# -------------------------
BASE_IMAGE_PATH = None
DEPTH_IMAGE_PATH = None
LOADER_WORKERS = 2

# -------------------------
# Logs
# -------------------------
LOGS_DIR = "logs"
LOG_FILE_PATH = None
