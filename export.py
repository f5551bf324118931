"""
export.py – Text exports of the current settings and the shader sources.

The shader tabs always return the parameterized source text; the values
live in the settings tabs.
"""
import shaders

EXPORT_TABS = ("json", "text", "vertex", "fragment")


def get_export(tab, params):
    if tab == "json":
        return params.to_json()
    if tab == "text":
        return params.to_key_value()
    if tab == "vertex":
        return shaders.VERTEX_SHADER_SOURCE
    if tab == "fragment":
        return shaders.FRAGMENT_SHADER_SOURCE
    raise ValueError(f"Unknown export '{tab}' (expected one of: {', '.join(EXPORT_TABS)})")


def export_bundle(params):
    """Settings and both shader sources as one printable block."""
    sections = [
        ("Settings (JSON)", get_export("json", params)),
        ("Vertex Shader", get_export("vertex", params)),
        ("Fragment Shader", get_export("fragment", params)),
    ]
    out = []
    for title, body in sections:
        out.append(f"// ---- {title} ----")
        out.append(body.rstrip("\n"))
    return "\n".join(out) + "\n"


def print_export(params):
    print("[EXPORT] Current configuration:")
    print(export_bundle(params))
