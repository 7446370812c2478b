"""Initial settings handed to the pipeline once at startup."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

from flowmap.data.parsers import INVALID, coerce_bool, coerce_float, coerce_int

LOGGER = logging.getLogger(__name__)

BASE_MAPS = {"dark", "light"}

# camelCase option names -> dataclass field names
OPTION_ALIASES = {
    "locationsFile": "locations_file",
    "flowsFile": "flows_file",
    "centerLon": "center_lon",
    "centerLat": "center_lat",
    "zoom": "zoom",
    "baseMap": "base_map",
    "colorScheme": "color_scheme",
    "title": "title",
    "minFlow": "min_flow",
    "maxDistance": "max_distance",
    "showControls": "show_controls",
    "showPoints": "show_points",
}


@dataclass(frozen=True)
class FlowmapSettings:
    locations_file: str = "data/locations.csv"
    flows_file: str = "data/flows.csv"
    center_lon: float = -70.65
    center_lat: float = -33.45
    zoom: float = 6.0
    base_map: str = "dark"
    color_scheme: str = "teal"
    title: str = "Flow map"
    min_flow: int = 1
    max_distance: Optional[float] = None
    show_controls: bool = True
    show_points: bool = True

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "FlowmapSettings":
        """Build settings from a flat option mapping; unparsable values keep their default."""

        defaults = cls()
        values: dict[str, Any] = {}
        names = {f.name for f in fields(cls)}
        for key, raw in options.items():
            name = OPTION_ALIASES.get(key, key)
            if name not in names or raw is None or (isinstance(raw, str) and not raw.strip()):
                continue
            parsed = _parse_option(name, raw)
            if parsed is INVALID:
                LOGGER.warning("Ignoring unparsable option %s=%r, using %r", key, raw, getattr(defaults, name))
                continue
            values[name] = parsed
        return cls(**values)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "FlowmapSettings":
        """Read FLOWMAP_<FIELD> variables, e.g. FLOWMAP_MAX_DISTANCE=500."""

        environ = os.environ if environ is None else environ
        prefix = "FLOWMAP_"
        options = {
            key[len(prefix):].lower(): value for key, value in environ.items() if key.startswith(prefix)
        }
        return cls.from_mapping(options)


def _parse_option(name: str, raw: Any) -> Any:
    if name in {"center_lon", "center_lat", "zoom", "max_distance"}:
        value = coerce_float(raw)
        if value is not INVALID and name == "max_distance" and value < 0:
            return INVALID
        return value
    if name == "min_flow":
        value = coerce_int(raw)
        if value is not INVALID and value < 1:
            return INVALID
        return value
    if name in {"show_controls", "show_points"}:
        return coerce_bool(raw)
    if name == "base_map":
        text = str(raw).strip().lower()
        return text if text in BASE_MAPS else INVALID
    return str(raw).strip()
