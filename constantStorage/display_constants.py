#display_constants.py

# -------------------------
# Window
# -------------------------
WINDOW_TITLE = "DepthFX Parallax Preview"
WINDOW_SIZE = (1280, 800)          # Initial windowed size (width, height)
FULLSCREEN_MODE = False
VSYNC = True                       # Swap interval 1: frames paced by display refresh

# -------------------------
# Colors
# -------------------------
BACKGROUND_COLOR = (13, 13, 13)            # Clear color (RGB), ~0.05 normalized
PLACEHOLDER_COLOR = (50, 50, 55, 255)      # 1x1 texture used while a slot has no image

# -------------------------
# Texture Units
# -------------------------
BASE_TEXTURE_UNIT = 0
DEPTH_TEXTURE_UNIT = 1
