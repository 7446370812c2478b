"""Startup pipeline and the runtime session that owns the render config."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Optional

from flowmap.data.loader import load_table_async
from flowmap.data.parsers import Flow, Location, ParseReport, parse_flows, parse_locations
from flowmap.data.pipeline import FilterOptions, FilterResult, filter_flows
from flowmap.errors import EmptyDatasetError, ResourceUnavailable
from flowmap.render.config_model import RenderConfig
from flowmap.render.layers import EventHooks, LayerDescription, ViewSettings, build_layer_description, to_pydeck
from flowmap.settings import FlowmapSettings

LOGGER = logging.getLogger(__name__)


class FlowmapSession:
    """Loaded datasets, the current filtered flow set and the render config.

    Locations and raw flows never change after load. The filtered set is
    re-derived, not edited, when the distance or magnitude threshold changes.
    """

    def __init__(
        self,
        settings: FlowmapSettings,
        locations: tuple[Location, ...],
        flows: tuple[Flow, ...],
        location_report: Optional[ParseReport] = None,
        flow_report: Optional[ParseReport] = None,
        config: Optional[RenderConfig] = None,
    ) -> None:
        self.settings = settings
        self.locations = locations
        self.flows = flows
        self.location_report = location_report
        self.flow_report = flow_report
        self.config = config or RenderConfig.from_settings(settings)
        self.options = FilterOptions(max_distance_km=settings.max_distance, min_flow_threshold=settings.min_flow)
        self.filtered = self._derive(self.options)

    def _derive(self, options: FilterOptions) -> FilterResult:
        result = filter_flows(self.flows, self.locations, options)
        if not result:
            raise EmptyDatasetError(
                f"No valid flows after filtering ({result.input_count} read, "
                f"{result.dangling_dropped} with unknown locations, {result.distance_dropped} too far)."
            )
        return result

    def _refilter(self, options: FilterOptions) -> FilterResult:
        # On EmptyDatasetError the previous set and options stay in place
        self.filtered = self._derive(options)
        self.options = options
        return self.filtered

    def set_max_distance(self, max_distance_km: Optional[float]) -> FilterResult:
        return self._refilter(replace(self.options, max_distance_km=max_distance_km))

    def set_min_flow(self, min_flow: int) -> FilterResult:
        return self._refilter(replace(self.options, min_flow_threshold=min_flow))

    def apply_filters(self, max_distance_km: Optional[float], min_flow: int) -> FilterResult:
        """Re-derive only when a value differs. None disables the distance limit; 0 is a limit."""
        options = replace(self.options, max_distance_km=max_distance_km, min_flow_threshold=min_flow)
        if options == self.options:
            return self.filtered
        return self._refilter(options)

    def layer_description(self, hooks: Optional[EventHooks] = None) -> LayerDescription:
        return build_layer_description(self.config, self.locations, self.filtered.flows, hooks)

    def view(self) -> ViewSettings:
        return ViewSettings(
            longitude=self.settings.center_lon,
            latitude=self.settings.center_lat,
            zoom=self.settings.zoom,
        )

    def deck(self, hooks: Optional[EventHooks] = None):
        return to_pydeck(self.layer_description(hooks), self.view())


async def load_session(settings: FlowmapSettings) -> FlowmapSession:
    """Fetch both datasets concurrently, then parse and filter."""

    locations_table, flows_table = await asyncio.gather(
        load_table_async(settings.locations_file),
        load_table_async(settings.flows_file),
    )
    locations = parse_locations(locations_table)
    flows = parse_flows(flows_table)
    return FlowmapSession(
        settings,
        locations.records,
        flows.records,
        location_report=locations.report,
        flow_report=flows.report,
    )


@dataclass(frozen=True)
class InitOutcome:
    session: Optional[FlowmapSession] = None
    error: Optional[str] = None
    retriable: bool = False

    @property
    def ok(self) -> bool:
        return self.session is not None


def initialize(settings: FlowmapSettings) -> InitOutcome:
    """Run the startup pipeline and turn failures into one user-facing message."""

    try:
        session = asyncio.run(load_session(settings))
    except ResourceUnavailable as exc:
        LOGGER.error("Startup failed, resource unavailable: %s", exc)
        return InitOutcome(error=f"Data not available. {exc}", retriable=True)
    except EmptyDatasetError as exc:
        LOGGER.error("Startup failed, no data: %s", exc)
        return InitOutcome(error=f"No data to display. {exc}", retriable=True)
    LOGGER.info("Session ready: %d locations, %d flows", len(session.locations), len(session.filtered))
    return InitOutcome(session=session)
