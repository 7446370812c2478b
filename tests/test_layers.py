"""Tests for the layer description handed to the map renderer."""

import importlib.util

import pytest


if importlib.util.find_spec("pydeck") is None:
    pytest.skip("pydeck not installed", allow_module_level=True)

from flowmap.config import MAX_SPEED, MIN_SPEED  # noqa: E402
from flowmap.data.parsers import Flow, Location  # noqa: E402
from flowmap.data.pipeline import FilterOptions, filter_flows  # noqa: E402
from flowmap.errors import EmptyDatasetError  # noqa: E402
from flowmap.render.config_model import RenderConfig  # noqa: E402
from flowmap.render.layers import (  # noqa: E402
    DARK_MAP_STYLE,
    LIGHT_MAP_STYLE,
    POINT_COLOR_LIGHT,
    EventHooks,
    PickEvent,
    ViewSettings,
    build_layer_description,
    to_pydeck,
)
from flowmap.settings import FlowmapSettings  # noqa: E402

LOCATIONS = [Location("A", 0.0, 0.0, "Alpha"), Location("B", 0.0, 1.0, "Beta"), Location("C", 1.0, 1.0)]


def _flows():
    return filter_flows(
        [Flow("A", "B", 0), Flow("B", "C", 50), Flow("C", "A", 100)],
        LOCATIONS,
        FilterOptions(min_flow_threshold=1),
    )


class TestBuildLayerDescription:
    def test_named_slots(self) -> None:
        description = build_layer_description(RenderConfig(), LOCATIONS, _flows())
        assert description.base_layer.id == "basemap"
        assert description.flow_layer.id == "flowmap"
        assert description.base_layer.map_style == DARK_MAP_STYLE

    def test_accessors(self) -> None:
        layer = build_layer_description(RenderConfig(), LOCATIONS, _flows()).flow_layer
        first = layer.flows[0]
        assert layer.get_location_id(LOCATIONS[1]) == "B"
        assert layer.get_location_lat(LOCATIONS[2]) == 1.0
        assert layer.get_location_lon(LOCATIONS[1]) == 1.0
        assert layer.get_flow_origin_id(first) == "A"
        assert layer.get_flow_dest_id(first) == "B"
        assert layer.get_flow_magnitude(first) == 1
        assert layer.get_animation_speed(first) == pytest.approx(MIN_SPEED)
        assert layer.get_animation_speed(layer.flows[2]) == pytest.approx(MAX_SPEED)

    def test_visual_params_follow_config(self) -> None:
        config = RenderConfig()
        config.update({"opacity": 0.5, "flow_line_thickness": 3, "dark_mode": False, "max_particle_count": 100})
        description = build_layer_description(config, LOCATIONS, _flows())
        layer = description.flow_layer
        assert layer.params["opacity"] == 0.5
        assert layer.params["max_particle_count"] == 100
        assert layer.get_flow_thickness(layer.flows[0]) == 3.0
        assert layer.get_flow_color(layer.flows[0])[3] == 128
        assert description.base_layer.map_style == LIGHT_MAP_STYLE

    def test_rebuild_reflects_edit_and_reset(self) -> None:
        config = RenderConfig()
        config.set("point_radius", 12)
        assert build_layer_description(config, LOCATIONS, _flows()).flow_layer.params["point_radius"] == 12.0
        config.reset_to_default()
        assert build_layer_description(config, LOCATIONS, _flows()).flow_layer.params["point_radius"] == 4.0

    def test_build_does_not_mutate_config(self) -> None:
        config = RenderConfig()
        config.set("opacity", 0.4)
        before = config.snapshot()
        build_layer_description(config, LOCATIONS, _flows())
        assert config.snapshot() == before
        assert config.state == "edited"

    def test_empty_flows_speed_raises(self) -> None:
        layer = build_layer_description(RenderConfig(), LOCATIONS, []).flow_layer
        assert layer.flow_records() == []
        flow = _flows()[0]
        with pytest.raises(EmptyDatasetError):
            layer.get_animation_speed(flow)

    def test_flow_records(self) -> None:
        records = build_layer_description(RenderConfig(), LOCATIONS, _flows()).flow_layer.flow_records()
        assert [r["origin"] for r in records] == ["A", "B", "C"]
        assert records[0]["source"] == [0.0, 0.0]
        assert records[0]["target"] == [1.0, 0.0]
        assert records[1]["dest_name"] == "C"
        assert records[2]["speed"] == pytest.approx(MAX_SPEED)


class TestEventHooks:
    def test_click_forwards_picked_flow(self) -> None:
        seen = []
        hooks = EventHooks(on_click=seen.append)
        layer = build_layer_description(RenderConfig(), LOCATIONS, _flows(), hooks).flow_layer
        layer.click(layer.flows[1])
        assert seen == [PickEvent("flow", layer.flows[1])]

    def test_hover_forwards_location_and_nothing(self) -> None:
        seen = []
        layer = build_layer_description(
            RenderConfig(), LOCATIONS, _flows(), EventHooks(on_hover=seen.append)
        ).flow_layer
        layer.hover(LOCATIONS[0])
        layer.hover(None)
        assert seen == [PickEvent("location", LOCATIONS[0]), PickEvent(None, None)]

    def test_missing_handler_is_ignored(self) -> None:
        layer = build_layer_description(RenderConfig(), LOCATIONS, _flows()).flow_layer
        layer.click(LOCATIONS[0])

    def test_record_for_picked_objects(self) -> None:
        layer = build_layer_description(RenderConfig(), LOCATIONS, _flows()).flow_layer
        assert layer.record_for({"origin": "B", "dest": "C", "count": 50}) is layer.flows[1]
        assert layer.record_for({"id": "C", "name": "C"}) is LOCATIONS[2]
        assert layer.record_for({}) is None
        assert layer.record_for({"origin": "Q", "dest": "A"}) is None


def test_to_pydeck_layers() -> None:
    config = RenderConfig()
    deck = to_pydeck(build_layer_description(config, LOCATIONS, _flows()), ViewSettings(-70.65, -33.45, 6))
    assert [layer.id for layer in deck.layers] == ["flowmap", "flowmap-points"]

    config.set("draw_points", False)
    deck = to_pydeck(build_layer_description(config, LOCATIONS, _flows()), ViewSettings(-70.65, -33.45, 6))
    assert [layer.id for layer in deck.layers] == ["flowmap"]


def test_to_pydeck_basemap_follows_base_layer() -> None:
    config = RenderConfig()
    config.set("dark_mode", False)
    description = build_layer_description(config, LOCATIONS, _flows())
    deck = to_pydeck(description, ViewSettings(-70.65, -33.45, 6))
    assert deck.map_style == LIGHT_MAP_STYLE
    assert deck.layers[1].get_fill_color[:3] == list(POINT_COLOR_LIGHT)


def test_tooltip_fields_present_on_every_pickable_record() -> None:
    layer = build_layer_description(RenderConfig(), LOCATIONS, _flows()).flow_layer
    flow_tip = layer.flow_records()[1]["tooltip"]
    assert "<b>Beta</b> to <b>C</b>" in flow_tip
    assert "Count: 50" in flow_tip
    location_tips = [r["tooltip"] for r in layer.location_records()]
    assert location_tips[0] == "<b>Alpha</b><br/>0.0000, 0.0000"
    assert location_tips[2].startswith("<b>C</b>")


def test_osm_base_map_is_not_offered() -> None:
    settings = FlowmapSettings.from_mapping({"baseMap": "osm"})
    assert settings.base_map == "dark"
    description = build_layer_description(RenderConfig.from_settings(settings), LOCATIONS, _flows())
    assert description.base_layer.map_style == DARK_MAP_STYLE
