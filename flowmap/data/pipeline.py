"""Join flows against known locations, prune by distance and clamp magnitudes."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Protocol

import numpy as np
import pandas as pd

from flowmap.config import MIN_FLOW_THRESHOLD_DEFAULT
from flowmap.data.parsers import Location
from flowmap.data.spatial_ops import haversine_km_array

LOGGER = logging.getLogger(__name__)


class FlowLike(Protocol):
    origin: str
    dest: str
    count: int


@dataclass(frozen=True)
class FilterOptions:
    max_distance_km: Optional[float] = None
    min_flow_threshold: int = MIN_FLOW_THRESHOLD_DEFAULT
    drop_self_loops: bool = False

    def __post_init__(self) -> None:
        # Every rendered flow needs a non-zero stroke weight
        if self.min_flow_threshold < 1:
            object.__setattr__(self, "min_flow_threshold", 1)


@dataclass(frozen=True)
class FilteredFlow:
    origin: str
    dest: str
    count: int
    origin_location: Location
    dest_location: Location
    display_magnitude: int
    distance_km: float


@dataclass(frozen=True)
class FilterResult(Sequence[FilteredFlow]):
    """Filtered flows in input order, plus how many were dropped at each step."""

    flows: tuple[FilteredFlow, ...]
    input_count: int
    dangling_dropped: int = 0
    self_loops_dropped: int = 0
    distance_dropped: int = 0

    def __getitem__(self, index):
        return self.flows[index]

    def __len__(self) -> int:
        return len(self.flows)

    def __iter__(self) -> Iterator[FilteredFlow]:
        return iter(self.flows)

    def to_frame(self) -> pd.DataFrame:
        columns = ["origin", "dest", "count", "display_magnitude", "distance_km"]
        return pd.DataFrame(
            [
                {
                    "origin": f.origin,
                    "dest": f.dest,
                    "count": f.count,
                    "display_magnitude": f.display_magnitude,
                    "distance_km": f.distance_km,
                }
                for f in self.flows
            ],
            columns=columns,
        )


def index_locations(locations: Iterable[Location]) -> dict[str, Location]:
    """Map id -> Location; a repeated id keeps the last record."""
    return {loc.id: loc for loc in locations}


def filter_flows(
    flows: Iterable[FlowLike],
    locations: Iterable[Location],
    options: FilterOptions = FilterOptions(),
) -> FilterResult:
    """Drop dangling flows, optionally prune by great-circle distance, clamp magnitudes.

    Step order matters: distances are only computed for flows whose endpoints
    both resolved in the identity join.
    """

    flows = list(flows)
    known = index_locations(locations)

    joined = [f for f in flows if f.origin in known and f.dest in known]
    dangling = len(flows) - len(joined)

    self_loops = 0
    if options.drop_self_loops:
        kept = [f for f in joined if f.origin != f.dest]
        self_loops = len(joined) - len(kept)
        joined = kept

    if joined:
        origins = [known[f.origin] for f in joined]
        dests = [known[f.dest] for f in joined]
        distances = haversine_km_array(
            np.array([o.lat for o in origins]),
            np.array([o.lon for o in origins]),
            np.array([d.lat for d in dests]),
            np.array([d.lon for d in dests]),
        )
    else:
        distances = np.array([], dtype=float)

    result: list[FilteredFlow] = []
    too_far = 0
    for flow, distance in zip(joined, distances):
        if options.max_distance_km is not None and not distance <= options.max_distance_km:
            too_far += 1
            continue
        result.append(
            FilteredFlow(
                origin=flow.origin,
                dest=flow.dest,
                count=flow.count,
                origin_location=known[flow.origin],
                dest_location=known[flow.dest],
                display_magnitude=max(flow.count, options.min_flow_threshold),
                distance_km=float(distance),
            )
        )

    LOGGER.info(
        "Filtered flows: %d kept of %d (dangling=%d, self_loops=%d, too_far=%d)",
        len(result),
        len(flows),
        dangling,
        self_loops,
        too_far,
    )
    return FilterResult(
        flows=tuple(result),
        input_count=len(flows),
        dangling_dropped=dangling,
        self_loops_dropped=self_loops,
        distance_dropped=too_far,
    )
