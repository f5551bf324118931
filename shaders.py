"""
shaders.py – GLSL sources for the parallax preview and the names the
renderer binds against.

The sources are exported verbatim (see export.py); tuning values arrive as
uniforms, never by editing the text.
"""

GLSL_CORE_HEADER = "#version 330 core"
GLSL_ES_HEADER = "#version 300 es"

# Vertex attribute inputs, in buffer order
ATTR_POSITION = "aVertexPosition"
ATTR_TEXCOORD = "aTextureCoord"

# Sampler uniforms
U_BASE_TEXTURE = "uTexture"
U_DEPTH_TEXTURE = "uDepthTexture"

# Per-frame uniforms
U_RESOLUTION = "uResolution"
U_MOUSE_POS = "uMousePos"
U_IMAGE_RESOLUTION = "uImageResolution"

# Tuning uniforms, keyed by exported parameter name
PARAM_UNIFORMS = {
    "masterGain": "uMasterGain",
    "trackIntensity": "uTrackIntensity",
    "overallMultiplier": "uOverallMultiplier",
    "tiltAmount": "uTiltAmount",
    "baseCoverScale": "uBaseCoverScale",
    "parallaxAmount": "uParallaxAmount",
    "depthContrastGamma": "uDepthContrastGamma",
}

VERTEX_SHADER_SOURCE = """#version 330 core
precision highp float;

in vec3 aVertexPosition;
in vec2 aTextureCoord;

uniform vec2 uMousePos;
uniform vec2 uResolution;

uniform float uMasterGain;
uniform float uTrackIntensity;
uniform float uOverallMultiplier;
uniform float uTiltAmount;
uniform float uBaseCoverScale;

out vec2 vTextureCoord;
out vec2 vMouseDelta;
out float vStrength;

void main() {
  vTextureCoord = aTextureCoord;

  // Mouse -> UV
  vec2 safeRes = max(uResolution, vec2(1.0));
  vec2 mouseUV = clamp(uMousePos / safeRes, 0.0, 1.0);

  // Points from the pointer towards this vertex
  vMouseDelta = aTextureCoord - mouseUV;

  // Strength: intensity spans [0.08, 0.8], multiplier never attenuates
  float baseStrength = (0.08 + 0.72 * clamp(uTrackIntensity, 0.0, 1.0))
                     * max(uOverallMultiplier, 1.0);
  vStrength = baseStrength * uMasterGain;

  // Mesh tilt; geometry depth is a constant 1.0, per-pixel depth is fragment-only
  float depth = 1.0;
  vec2 geoOffset = vMouseDelta * vStrength * uTiltAmount * depth;

  // Oversize the quad so the tilted mesh never exposes its edges
  float cover = uBaseCoverScale + 0.01 * vStrength;
  vec2 scaledXY = aVertexPosition.xy * cover;

  gl_Position = vec4(scaledXY + geoOffset, 0.0, 1.0);
}
"""

FRAGMENT_SHADER_SOURCE = """#version 330 core
precision highp float;

in vec2 vTextureCoord;
in vec2 vMouseDelta;
in float vStrength;

uniform sampler2D uTexture;        // base image
uniform sampler2D uDepthTexture;   // depth map
uniform vec2 uResolution;          // surface size
uniform vec2 uImageResolution;     // base image size

uniform float uParallaxAmount;
uniform float uDepthContrastGamma;

out vec4 fragColor;

vec2 clamp01(vec2 uv) {
  return clamp(uv, 0.0, 1.0);
}

float remapDepth(float x) {
  // [0,1] -> [-1,1], then gamma-shape the magnitude; mid-grey never shifts
  float s = clamp(x, 0.0, 1.0) * 2.0 - 1.0;
  return sign(s) * pow(abs(s), uDepthContrastGamma);
}

void main() {
  // Cover-fit: fill the surface, keep the image aspect, crop the overflow
  vec2 safeRes = max(uResolution, vec2(1.0));
  vec2 safeImage = max(uImageResolution, vec2(1.0));
  float screenAspect = safeRes.x / safeRes.y;
  float imageAspect = safeImage.x / safeImage.y;
  float ratio = screenAspect / imageAspect;

  vec2 uvScale;
  if (ratio > 1.0) {
    // Surface is wider: keep U, crop top/bottom
    uvScale = vec2(1.0, 1.0 / ratio);
  } else {
    // Surface is taller: keep V, crop left/right
    uvScale = vec2(ratio, 1.0);
  }
  vec2 uvCover = (vTextureCoord - 0.5) * uvScale + 0.5;

  // Depth-weighted parallax
  float rawDepth = texture(uDepthTexture, clamp01(uvCover)).r;
  float depth = remapDepth(rawDepth);

  vec2 aspectFix = vec2(screenAspect, 1.0);
  float parallaxStrength = uParallaxAmount * vStrength;
  vec2 uvOffset = vMouseDelta * aspectFix * parallaxStrength * depth;

  vec2 finalUV = clamp01(uvCover + uvOffset);
  fragColor = texture(uTexture, finalUV);
}
"""


def for_context(source: str, is_gles: bool) -> str:
    """Swap the version line for an OpenGL ES 3.0 context."""
    if not is_gles:
        return source
    first, _, rest = source.partition("\n")
    if first.strip() != GLSL_CORE_HEADER:
        return source
    return f"{GLSL_ES_HEADER}\n{rest}"
