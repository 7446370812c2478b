"""Tests for the render config store."""

from __future__ import annotations

import pytest

from flowmap.render.config_model import DEFAULT_COLOR_SCHEME, KNOBS, RenderConfig
from flowmap.settings import FlowmapSettings

EDITS = {
    "opacity": 0.3,
    "animation_enabled": False,
    "animation_speed": 2.5,
    "max_particle_count": 12000,
    "flow_line_thickness": 4.0,
    "draw_points": False,
    "point_radius": 10.0,
    "color_scheme": "magenta",
    "dark_mode": False,
}


def test_starts_in_default_state() -> None:
    config = RenderConfig()
    assert config.state == "default"
    assert config.snapshot() == {name: spec.default for name, spec in KNOBS.items()}


def test_edit_moves_to_edited_state() -> None:
    config = RenderConfig()
    config.set("opacity", 0.5)
    assert config.state == "edited"
    assert config.opacity == 0.5


def test_setting_default_value_stays_default() -> None:
    config = RenderConfig()
    config.set("opacity", KNOBS["opacity"].default)
    assert config.is_default()


@pytest.mark.parametrize(
    "knob, value, expected",
    [
        ("opacity", 1.7, 1.0),
        ("opacity", -0.2, 0.0),
        ("animation_speed", 0.0, 0.1),
        ("max_particle_count", 10**9, 50000),
        ("max_particle_count", -5, 0),
        ("flow_line_thickness", 0.0, 0.1),
        ("point_radius", 500, 50.0),
        ("opacity", float("inf"), 1.0),
        ("opacity", float("-inf"), 0.0),
        ("max_particle_count", "inf", 50000),
    ],
)
def test_out_of_range_values_are_clamped(knob, value, expected) -> None:
    config = RenderConfig()
    assert config.set(knob, value) == expected
    assert config.get(knob) == expected


def test_int_knob_is_rounded() -> None:
    config = RenderConfig()
    assert config.set("max_particle_count", "2500.6") == 2501


def test_numeric_strings_accepted() -> None:
    config = RenderConfig()
    assert config.set("opacity", "0.25") == 0.25


def test_non_numeric_value_rejected() -> None:
    config = RenderConfig()
    with pytest.raises(ValueError, match="expects a number"):
        config.set("opacity", "opaque")
    with pytest.raises(ValueError, match="expects a number"):
        config.set("opacity", float("nan"))
    assert config.is_default()


def test_bool_knob_parses_strings() -> None:
    config = RenderConfig()
    assert config.set("dark_mode", "false") is False
    with pytest.raises(ValueError, match="expects a boolean"):
        config.set("dark_mode", "dim")


def test_unknown_color_scheme_falls_back() -> None:
    config = RenderConfig()
    config.set("color_scheme", "blues")
    assert config.set("color_scheme", "rainbow") == DEFAULT_COLOR_SCHEME


def test_unknown_knob_raises() -> None:
    config = RenderConfig()
    with pytest.raises(KeyError, match="Unknown render knob"):
        config.set("glow", 1)
    with pytest.raises(AttributeError):
        config.glow


def test_reset_restores_every_default() -> None:
    config = RenderConfig()
    config.update(EDITS)
    assert config.snapshot() != config.defaults()
    config.reset_to_default()
    assert config.state == "default"
    assert config.snapshot() == config.defaults()


@pytest.mark.parametrize("knob, value", sorted(EDITS.items()))
def test_set_then_reset_per_knob(knob, value) -> None:
    config = RenderConfig()
    config.set(knob, value)
    config.reset_to_default()
    assert config.get(knob) == KNOBS[knob].default


def test_seeded_defaults_become_reset_snapshot() -> None:
    settings = FlowmapSettings(color_scheme="orange", show_points=False, base_map="light")
    config = RenderConfig.from_settings(settings)
    assert config.color_scheme == "orange"
    assert config.draw_points is False
    assert config.dark_mode is False
    config.set("color_scheme", "teal")
    config.reset_to_default()
    assert config.color_scheme == "orange"


def test_seeded_defaults_are_clamped() -> None:
    config = RenderConfig(defaults={"opacity": 3})
    assert config.defaults()["opacity"] == 1.0


def test_listeners_notified_on_effective_change_only() -> None:
    config = RenderConfig()
    seen = []
    unsubscribe = config.subscribe(lambda cfg: seen.append(cfg.opacity))
    config.set("opacity", 0.4)
    config.set("opacity", 0.4)
    config.reset_to_default()
    config.reset_to_default()
    unsubscribe()
    config.set("opacity", 0.2)
    assert seen == [0.4, KNOBS["opacity"].default]
