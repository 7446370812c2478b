"""Per-flow animation speed relative to the largest flow in the set."""

from __future__ import annotations

from typing import Sequence

from flowmap.config import MAX_SPEED, MIN_SPEED
from flowmap.data.pipeline import FlowLike
from flowmap.errors import EmptyDatasetError


def max_count(flows: Sequence[FlowLike]) -> int:
    if not flows:
        raise EmptyDatasetError("Cannot derive animation speed from an empty flow set.")
    return max(f.count for f in flows)


def speed_for_count(count: int, max_count: int) -> float:
    """Linear map of count/max_count onto [MIN_SPEED, MAX_SPEED]."""
    if max_count <= 0:
        return MIN_SPEED
    speed = MIN_SPEED + (count / max_count) * (MAX_SPEED - MIN_SPEED)
    return min(max(speed, MIN_SPEED), MAX_SPEED)


def animation_speed(flow: FlowLike, all_flows: Sequence[FlowLike]) -> float:
    """Speed for one flow. The maximum is recomputed on every call."""
    return speed_for_count(flow.count, max_count(all_flows))


def animation_speeds(flows: Sequence[FlowLike]) -> list[float]:
    top = max_count(flows)
    return [speed_for_count(f.count, top) for f in flows]
