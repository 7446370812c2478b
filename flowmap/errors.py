"""Exception taxonomy for the flow map pipeline."""

from __future__ import annotations


class FlowmapError(Exception):
    """Base class for pipeline failures."""


class ResourceUnavailable(FlowmapError):
    """A dataset could not be fetched or read."""

    def __init__(self, resource_id: str, reason: str) -> None:
        super().__init__(f"Could not load {resource_id}: {reason}")
        self.resource_id = resource_id
        self.reason = reason


class ParseError(FlowmapError):
    """A row failed required coercion. Recorded per row, not raised by the parsers."""

    def __init__(self, row_number: int, reason: str) -> None:
        super().__init__(f"Row {row_number}: {reason}")
        self.row_number = row_number
        self.reason = reason


class EmptyDatasetError(FlowmapError):
    """No flows left to normalize or render."""
