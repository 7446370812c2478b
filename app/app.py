"""Streamlit page for the animated flow map."""

from __future__ import annotations

import sys
from dataclasses import asdict
from pathlib import Path

import streamlit as st

# Ensure app directory and repository root are importable when Streamlit launches from project root.
APP_DIR = Path(__file__).resolve().parent
for path in (APP_DIR, APP_DIR.parent):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from utils.error_handler import logger, safe_execute, show_startup_error

from flowmap.render.config_model import COLOR_SCHEMES, KNOBS
from flowmap.render.layers import EventHooks, PickEvent
from flowmap.session import FlowmapSession, InitOutcome, initialize
from flowmap.settings import FlowmapSettings

OUTCOME_KEY = "flowmap_outcome"
PICKED_KEY = "flowmap_picked"
DEFAULT_DISTANCE_KM = 500.0


def _load_settings() -> FlowmapSettings:
    settings = FlowmapSettings.from_env()
    query = st.query_params.to_dict()
    if query:
        settings = FlowmapSettings.from_mapping({**asdict(settings), **query})
    return settings


def _clear_outcome() -> None:
    st.session_state.pop(OUTCOME_KEY, None)
    st.session_state.pop(PICKED_KEY, None)


def _get_outcome(settings: FlowmapSettings) -> InitOutcome:
    outcome = st.session_state.get(OUTCOME_KEY)
    if outcome is None:
        with st.spinner("Loading locations and flows..."):
            outcome = initialize(settings)
        if outcome.ok:
            st.session_state[OUTCOME_KEY] = outcome
    return outcome


def _slider(label: str, knob: str, session: FlowmapSession, step: float) -> None:
    spec = KNOBS[knob]
    current = session.config.get(knob)
    if spec.kind == "int":
        value = st.slider(label, int(spec.minimum), int(spec.maximum), int(current), step=int(step))
    else:
        value = st.slider(label, float(spec.minimum), float(spec.maximum), float(current), step=step)
    session.config.set(knob, value)


def _render_controls(session: FlowmapSession) -> None:
    config = session.config
    with st.sidebar:
        st.subheader("Display")
        _slider("Opacity", "opacity", session, 0.05)
        _slider("Line thickness", "flow_line_thickness", session, 0.1)
        _slider("Max particles", "max_particle_count", session, 500)
        config.set("animation_enabled", st.toggle("Animate flows", value=config.animation_enabled))
        _slider("Animation speed", "animation_speed", session, 0.1)
        config.set("draw_points", st.toggle("Show locations", value=config.draw_points))
        _slider("Point radius", "point_radius", session, 1.0)
        schemes = list(COLOR_SCHEMES)
        config.set(
            "color_scheme",
            st.selectbox("Colour scheme", schemes, index=schemes.index(config.color_scheme)),
        )
        config.set("dark_mode", st.toggle("Dark basemap", value=config.dark_mode))
        if st.button("Reset to defaults", disabled=config.is_default()):
            config.reset_to_default()
            st.rerun()

        st.subheader("Filters")
        current_km = session.options.max_distance_km
        limit = st.toggle("Limit distance", value=current_km is not None)
        km = st.number_input(
            "Max distance (km)",
            min_value=0.0,
            value=float(current_km if current_km is not None else DEFAULT_DISTANCE_KM),
            step=50.0,
            disabled=not limit,
        )
        min_flow = st.number_input(
            "Minimum flow", min_value=1, value=int(session.options.min_flow_threshold), step=1
        )
        _apply_filters(session, float(km) if limit else None, int(min_flow))


@safe_execute("Apply filters", reset_callback=_clear_outcome)
def _apply_filters(session: FlowmapSession, max_distance_km: float | None, min_flow: int) -> None:
    session.apply_filters(max_distance_km, min_flow)


def _render_summary(session: FlowmapSession) -> None:
    result = session.filtered
    cols = st.columns(4)
    cols[0].metric("Locations", len(session.locations))
    cols[1].metric("Flows drawn", len(result))
    cols[2].metric("Unknown locations", result.dangling_dropped)
    cols[3].metric("Beyond max distance", result.distance_dropped)
    if session.flow_report is not None and session.flow_report.dropped:
        st.caption(f"{session.flow_report.dropped} flow rows could not be parsed and were skipped.")


def _remember_pick(event: PickEvent) -> None:
    st.session_state[PICKED_KEY] = event


def _render_map(session: FlowmapSession) -> None:
    hooks = EventHooks(on_click=_remember_pick)
    description = session.layer_description(hooks)
    deck = session.deck(hooks)
    event = st.pydeck_chart(deck, on_select="rerun", selection_mode="single-object", key="flowmap_chart")
    objects = (event.selection or {}).get("objects", {}) if event is not None else {}
    for picked in objects.values():
        if picked:
            description.flow_layer.click(description.flow_layer.record_for(picked[0]))
            break

    picked_event = st.session_state.get(PICKED_KEY)
    if picked_event is not None and picked_event.kind == "flow":
        flow = picked_event.record
        st.info(f"{flow.origin} to {flow.dest}: {flow.count} ({flow.distance_km:.0f} km)")
    elif picked_event is not None and picked_event.kind == "location":
        loc = picked_event.record
        st.info(f"{loc.name or loc.id} ({loc.lat:.4f}, {loc.lon:.4f})")


def main() -> None:
    st.set_page_config(page_title="Flow map", layout="wide")
    settings = _load_settings()
    outcome = _get_outcome(settings)
    if not outcome.ok:
        logger.info("Startup error shown to user")
        show_startup_error(outcome.error or "Unknown error", outcome.retriable, on_retry=_clear_outcome)
        return

    session = outcome.session
    st.title(settings.title)
    if settings.show_controls:
        _render_controls(session)
    _render_summary(session)
    _render_map(session)


if __name__ == "__main__":
    main()
