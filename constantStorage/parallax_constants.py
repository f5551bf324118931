#parallax_constants.py

# -------------------------
# Tuning Parameter Defaults
# -------------------------
DEFAULT_PARAMS = {
    "masterGain": 2.490,
    "trackIntensity": 0.110,
    "overallMultiplier": 0.350,
    "tiltAmount": 0.047,
    "baseCoverScale": 1.020,
    "parallaxAmount": 0.057,
    "depthContrastGamma": 1.300,
}

# name, label, min, max, step
PARAM_CONFIG = (
    ("masterGain", "Master Gain", 0.0, 5.0, 0.01),
    ("trackIntensity", "Baseline Intensity", 0.0, 1.0, 0.01),
    ("overallMultiplier", "Overall Multiplier", 0.0, 3.0, 0.01),
    ("tiltAmount", "Tilt Amount", 0.0, 0.2, 0.001),
    ("baseCoverScale", "Base Scale (Cover)", 1.0, 1.5, 0.01),
    ("parallaxAmount", "Parallax Amount", 0.0, 0.2, 0.001),
    ("depthContrastGamma", "Depth Contrast (Gamma)", 0.1, 3.0, 0.01),
)
