"""Mutable render configuration with range-clamped knobs and reset-to-default."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from flowmap.data.parsers import INVALID, coerce_bool

LOGGER = logging.getLogger(__name__)

# Flow colour ramps, low magnitude -> high magnitude
COLOR_SCHEMES: dict[str, list[tuple[int, int, int]]] = {
    "teal": [(209, 238, 234), (42, 187, 155), (4, 82, 117)],
    "magenta": [(243, 203, 211), (202, 105, 157), (99, 24, 121)],
    "orange": [(254, 224, 182), (241, 105, 19), (127, 39, 4)],
    "blues": [(222, 235, 247), (107, 174, 214), (8, 48, 107)],
    "grayscale": [(240, 240, 240), (150, 150, 150), (37, 37, 37)],
}
DEFAULT_COLOR_SCHEME = "teal"


@dataclass(frozen=True)
class KnobSpec:
    kind: str  # "float", "int", "bool" or "choice"
    default: Any
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    def coerce(self, name: str, value: Any) -> Any:
        """Clamp numbers into range; raise ValueError only for values of the wrong type."""
        if self.kind == "bool":
            flag = coerce_bool(value)
            if flag is INVALID:
                raise ValueError(f"{name} expects a boolean, got {value!r}")
            return flag
        if self.kind == "choice":
            scheme = str(value).strip().lower()
            if scheme not in COLOR_SCHEMES:
                LOGGER.warning("Unknown %s %r, using %r", name, value, self.default)
                return self.default
            return scheme
        try:
            number = float(str(value).strip())
        except (TypeError, ValueError):
            number = math.nan
        # +-inf is clamped like any out-of-range number
        if math.isnan(number):
            raise ValueError(f"{name} expects a number, got {value!r}")
        clamped = min(max(number, self.minimum), self.maximum)
        if clamped != number:
            LOGGER.info("Clamped %s from %s to %s", name, number, clamped)
        return int(round(clamped)) if self.kind == "int" else float(clamped)


KNOBS: dict[str, KnobSpec] = {
    "opacity": KnobSpec("float", 0.8, 0.0, 1.0),
    "animation_enabled": KnobSpec("bool", True),
    "animation_speed": KnobSpec("float", 1.0, 0.1, 5.0),
    "max_particle_count": KnobSpec("int", 5000, 0, 50000),
    "flow_line_thickness": KnobSpec("float", 1.0, 0.1, 20.0),
    "draw_points": KnobSpec("bool", True),
    "point_radius": KnobSpec("float", 4.0, 1.0, 50.0),
    "color_scheme": KnobSpec("choice", DEFAULT_COLOR_SCHEME),
    "dark_mode": KnobSpec("bool", True),
}

Listener = Callable[["RenderConfig"], None]


class RenderConfig:
    """Single owner of visual parameters.

    All writes go through ``set``/``update``/``reset_to_default`` so range
    clamping lives in one place. The store is in the "default" state when
    every knob equals the default snapshot and "edited" otherwise.
    """

    def __init__(self, defaults: Optional[Mapping[str, Any]] = None) -> None:
        snapshot = {name: spec.default for name, spec in KNOBS.items()}
        for name, value in (defaults or {}).items():
            snapshot[name] = self._spec(name).coerce(name, value)
        self._defaults = snapshot
        self._values = dict(snapshot)
        self._listeners: list[Listener] = []

    @classmethod
    def from_settings(cls, settings) -> "RenderConfig":
        return cls(
            defaults={
                "color_scheme": settings.color_scheme,
                "draw_points": settings.show_points,
                "dark_mode": settings.base_map == "dark",
            }
        )

    @staticmethod
    def _spec(name: str) -> KnobSpec:
        try:
            return KNOBS[name]
        except KeyError:
            raise KeyError(f"Unknown render knob: {name}") from None

    def get(self, name: str) -> Any:
        self._spec(name)
        return self._values[name]

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_") or name not in KNOBS:
            raise AttributeError(name)
        return self._values[name]

    def set(self, name: str, value: Any) -> Any:
        """Store a clamped value and return what was stored."""
        stored = self._spec(name).coerce(name, value)
        if self._values[name] != stored:
            self._values[name] = stored
            self._notify()
        return stored

    def update(self, values: Mapping[str, Any]) -> None:
        for name, value in values.items():
            self.set(name, value)

    def reset_to_default(self) -> None:
        if self._values == self._defaults:
            return
        self._values = dict(self._defaults)
        self._notify()

    def is_default(self) -> bool:
        return self._values == self._defaults

    @property
    def state(self) -> str:
        return "default" if self.is_default() else "edited"

    def snapshot(self) -> dict[str, Any]:
        return dict(self._values)

    def defaults(self) -> dict[str, Any]:
        return dict(self._defaults)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a synchronous change callback; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def __repr__(self) -> str:
        return f"RenderConfig(state={self.state!r}, values={self._values!r})"
