"""Project render config and filtered data into the structure the map renderer consumes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Sequence

import numpy as np
import pydeck as pdk

from flowmap.data.normalizer import max_count, speed_for_count
from flowmap.data.parsers import Location
from flowmap.data.pipeline import FilteredFlow
from flowmap.errors import EmptyDatasetError
from flowmap.render.config_model import COLOR_SCHEMES, DEFAULT_COLOR_SCHEME, RenderConfig

# Tokenless CARTO basemaps
DARK_MAP_STYLE = "https://basemaps.cartocdn.com/gl/dark-matter-gl-style/style.json"
LIGHT_MAP_STYLE = "https://basemaps.cartocdn.com/gl/positron-gl-style/style.json"

POINT_COLOR_DARK = (245, 245, 245)
POINT_COLOR_LIGHT = (40, 40, 40)


@dataclass(frozen=True)
class PickEvent:
    """What the pointer hit: a location, a flow, or nothing."""

    kind: Optional[str]
    record: Any = None

    @classmethod
    def for_record(cls, record: Any) -> "PickEvent":
        if isinstance(record, Location):
            return cls("location", record)
        if isinstance(record, FilteredFlow):
            return cls("flow", record)
        return cls(None, record)


PickHandler = Callable[[PickEvent], None]


@dataclass(frozen=True)
class EventHooks:
    on_hover: Optional[PickHandler] = None
    on_click: Optional[PickHandler] = None


@dataclass(frozen=True)
class BaseLayer:
    id: str
    map_style: str
    dark_mode: bool


@dataclass(frozen=True)
class FlowLayer:
    id: str
    locations: tuple[Location, ...]
    flows: tuple[FilteredFlow, ...]
    get_location_id: Callable[[Location], str]
    get_location_lat: Callable[[Location], float]
    get_location_lon: Callable[[Location], float]
    get_flow_origin_id: Callable[[FilteredFlow], str]
    get_flow_dest_id: Callable[[FilteredFlow], str]
    get_flow_magnitude: Callable[[FilteredFlow], int]
    get_flow_thickness: Callable[[FilteredFlow], float]
    get_flow_color: Callable[[FilteredFlow], list[int]]
    get_animation_speed: Callable[[FilteredFlow], float]
    params: dict[str, Any] = field(default_factory=dict)
    hooks: EventHooks = EventHooks()

    def hover(self, record: Any) -> None:
        if self.hooks.on_hover is not None:
            self.hooks.on_hover(PickEvent.for_record(record))

    def click(self, record: Any) -> None:
        if self.hooks.on_click is not None:
            self.hooks.on_click(PickEvent.for_record(record))

    def record_for(self, picked: Optional[Mapping[str, Any]]) -> Any:
        """Map a picked plain object (as returned by the renderer) back to its record."""
        if not picked:
            return None
        if "origin" in picked and "dest" in picked:
            return next(
                (f for f in self.flows if f.origin == picked["origin"] and f.dest == picked["dest"]),
                None,
            )
        if "id" in picked:
            return next((loc for loc in self.locations if loc.id == picked["id"]), None)
        return None

    def flow_records(self) -> list[dict[str, Any]]:
        """One plain dict per flow with every accessor resolved."""
        records = []
        for flow in self.flows:
            records.append(
                {
                    "origin": self.get_flow_origin_id(flow),
                    "dest": self.get_flow_dest_id(flow),
                    "origin_name": flow.origin_location.name or flow.origin,
                    "dest_name": flow.dest_location.name or flow.dest,
                    "count": flow.count,
                    "magnitude": self.get_flow_magnitude(flow),
                    "distance_km": round(flow.distance_km, 1),
                    "source": [flow.origin_location.lon, flow.origin_location.lat],
                    "target": [flow.dest_location.lon, flow.dest_location.lat],
                    "width": self.get_flow_thickness(flow),
                    "color": self.get_flow_color(flow),
                    "speed": self.get_animation_speed(flow),
                }
            )
            record = records[-1]
            record["tooltip"] = (
                f"<b>{record['origin_name']}</b> to <b>{record['dest_name']}</b><br/>"
                f"Count: {record['count']}<br/>Distance: {record['distance_km']} km"
            )
        return records

    def location_records(self) -> list[dict[str, Any]]:
        records = []
        for loc in self.locations:
            lat, lon = self.get_location_lat(loc), self.get_location_lon(loc)
            records.append(
                {
                    "id": self.get_location_id(loc),
                    "name": loc.name or loc.id,
                    "position": [lon, lat],
                    "tooltip": f"<b>{loc.name or loc.id}</b><br/>{lat:.4f}, {lon:.4f}",
                }
            )
        return records


@dataclass(frozen=True)
class LayerDescription:
    base_layer: BaseLayer
    flow_layer: FlowLayer


def _interpolate_color(ramp: Sequence[tuple[int, int, int]], t: float) -> list[int]:
    t = float(np.clip(t, 0.0, 1.0))
    scaled = t * (len(ramp) - 1)
    idx = min(int(scaled), len(ramp) - 2)
    frac = scaled - idx
    start, end = ramp[idx], ramp[idx + 1]
    return [int(start[c] + (end[c] - start[c]) * frac) for c in range(3)]


def build_layer_description(
    config: RenderConfig,
    locations: Sequence[Location],
    flows: Sequence[FilteredFlow],
    hooks: Optional[EventHooks] = None,
) -> LayerDescription:
    """Pure projection of the current config and data; safe to call after every edit."""

    values = config.snapshot()
    dark = values["dark_mode"]
    thickness = values["flow_line_thickness"]
    alpha = int(round(values["opacity"] * 255))
    ramp = COLOR_SCHEMES.get(values["color_scheme"], COLOR_SCHEMES[DEFAULT_COLOR_SCHEME])

    top = max_count(flows) if flows else None
    top_magnitude = max((f.display_magnitude for f in flows), default=1)

    def get_animation_speed(flow: FilteredFlow) -> float:
        if top is None:
            raise EmptyDatasetError("No flows to derive animation speed from.")
        return speed_for_count(flow.count, top)

    def get_flow_color(flow: FilteredFlow) -> list[int]:
        return _interpolate_color(ramp, flow.display_magnitude / top_magnitude) + [alpha]

    base_layer = BaseLayer(
        id="basemap",
        map_style=DARK_MAP_STYLE if dark else LIGHT_MAP_STYLE,
        dark_mode=dark,
    )
    flow_layer = FlowLayer(
        id="flowmap",
        locations=tuple(locations),
        flows=tuple(flows),
        get_location_id=lambda loc: loc.id,
        get_location_lat=lambda loc: loc.lat,
        get_location_lon=lambda loc: loc.lon,
        get_flow_origin_id=lambda flow: flow.origin,
        get_flow_dest_id=lambda flow: flow.dest,
        get_flow_magnitude=lambda flow: flow.display_magnitude,
        get_flow_thickness=lambda flow: thickness,
        get_flow_color=get_flow_color,
        get_animation_speed=get_animation_speed,
        params={
            "opacity": values["opacity"],
            "animation_enabled": values["animation_enabled"],
            "animation_speed": values["animation_speed"],
            "max_particle_count": values["max_particle_count"],
            "flow_line_thickness": thickness,
            "draw_points": values["draw_points"],
            "point_radius": values["point_radius"],
            "color_scheme": values["color_scheme"],
            "dark_mode": dark,
            "max_magnitude": top_magnitude,
        },
        hooks=hooks or EventHooks(),
    )
    return LayerDescription(base_layer=base_layer, flow_layer=flow_layer)


@dataclass(frozen=True)
class ViewSettings:
    longitude: float
    latitude: float
    zoom: float


def to_pydeck(description: LayerDescription, view: ViewSettings):
    """Build a pydeck Deck from a description. Particle animation is left to the renderer."""

    base_layer = description.base_layer
    flow_layer = description.flow_layer
    params = flow_layer.params
    layers = [
        pdk.Layer(
            "ArcLayer",
            flow_layer.flow_records(),
            id=flow_layer.id,
            pickable=True,
            auto_highlight=True,
            get_source_position="source",
            get_target_position="target",
            get_source_color="color",
            get_target_color="color",
            get_width="width",
            width_units="pixels",
            opacity=params["opacity"],
        )
    ]
    if params["draw_points"]:
        point_color = POINT_COLOR_DARK if base_layer.dark_mode else POINT_COLOR_LIGHT
        layers.append(
            pdk.Layer(
                "ScatterplotLayer",
                flow_layer.location_records(),
                id=f"{flow_layer.id}-points",
                pickable=True,
                get_position="position",
                get_radius=params["point_radius"],
                radius_units="pixels",
                get_fill_color=[*point_color, 220],
            )
        )
    # Flow and location records both carry a pre-rendered "tooltip" field
    tooltip = {"html": "{tooltip}"}
    return pdk.Deck(
        layers=layers,
        initial_view_state=pdk.ViewState(latitude=view.latitude, longitude=view.longitude, zoom=view.zoom),
        tooltip=tooltip,
        map_style=base_layer.map_style,
    )
