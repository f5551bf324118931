"""
params.py – The seven-field tuning record read by the shaders every frame.

Field names are snake_case in Python; the exported names are the stable
camelCase names shown in the control panel and in copied settings.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, replace

from settings import DEFAULT_PARAMS, PARAM_CONFIG


class ParameterError(KeyError):
    """Unknown parameter name or malformed override."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


@dataclass(frozen=True)
class ParamSpec:
    name: str       # exported (camelCase) name
    attr: str       # python attribute on TuningParameters
    label: str
    minimum: float
    maximum: float
    step: float

    def clamp(self, value: float) -> float:
        return min(max(float(value), self.minimum), self.maximum)


def _to_attr(name: str) -> str:
    out = []
    for ch in name:
        if ch.isupper():
            out.append("_")
            out.append(ch.lower())
        else:
            out.append(ch)
    return "".join(out)


PARAM_SPECS: tuple[ParamSpec, ...] = tuple(
    ParamSpec(name, _to_attr(name), label, lo, hi, step)
    for name, label, lo, hi, step in PARAM_CONFIG
)
_BY_NAME = {spec.name: spec for spec in PARAM_SPECS}
_BY_ATTR = {spec.attr: spec for spec in PARAM_SPECS}


def get_spec(name: str) -> ParamSpec:
    """Look up a parameter by exported name or python attribute name."""
    spec = _BY_NAME.get(name) or _BY_ATTR.get(name)
    if spec is None:
        valid = ", ".join(_BY_NAME)
        raise ParameterError(f"Unknown parameter '{name}' (expected one of: {valid})")
    return spec


@dataclass(frozen=True)
class TuningParameters:
    master_gain: float
    track_intensity: float
    overall_multiplier: float
    tilt_amount: float
    base_cover_scale: float
    parallax_amount: float
    depth_contrast_gamma: float

    @classmethod
    def defaults(cls) -> "TuningParameters":
        return cls(**{get_spec(k).attr: float(v) for k, v in DEFAULT_PARAMS.items()})

    @classmethod
    def from_dict(cls, values: dict) -> "TuningParameters":
        """Build a full record; every field must be present."""
        missing = [spec.name for spec in PARAM_SPECS
                   if spec.name not in values and spec.attr not in values]
        if missing:
            raise ParameterError(f"Missing parameters: {', '.join(missing)}")
        kwargs = {}
        for key, value in values.items():
            spec = get_spec(key)
            kwargs[spec.attr] = spec.clamp(value)
        return cls(**kwargs)

    def with_value(self, name: str, value: float) -> "TuningParameters":
        """Return a copy with one field replaced, clamped to its range."""
        spec = get_spec(name)
        return replace(self, **{spec.attr: spec.clamp(value)})

    def to_dict(self) -> dict[str, float]:
        return {spec.name: getattr(self, spec.attr) for spec in PARAM_SPECS}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def to_key_value(self) -> str:
        return "\n".join(f"{name} = {value:.3f}" for name, value in self.to_dict().items())


def parse_override(text: str) -> tuple[str, float]:
    """Parse a ``name=value`` CLI override."""
    name, sep, raw = text.partition("=")
    if not sep:
        raise ParameterError(f"Expected NAME=VALUE, got '{text}'")
    spec = get_spec(name.strip())
    try:
        value = float(raw.strip())
    except ValueError:
        raise ParameterError(f"Value for '{spec.name}' is not a number: '{raw.strip()}'") from None
    return spec.name, value


class ParameterStore:
    """
    Holds the current record. Writers replace it whole; the render loop
    takes one snapshot per frame and never mutates it.
    """

    def __init__(self, initial: TuningParameters | None = None) -> None:
        self._current = initial or TuningParameters.defaults()

    def snapshot(self) -> TuningParameters:
        return self._current

    def set(self, name: str, value: float) -> TuningParameters:
        self._current = self._current.with_value(name, value)
        return self._current

    def reset(self) -> TuningParameters:
        self._current = TuningParameters.defaults()
        return self._current
