"""Project-wide configuration constants."""

from __future__ import annotations

# Geodesy
EARTH_RADIUS_KM = 6371.0

# Coordinate validity
LAT_RANGE = (-90.0, 90.0)
LON_RANGE = (-180.0, 180.0)

# Flow magnitude floor applied before rendering
MIN_FLOW_THRESHOLD_DEFAULT = 1

# Animation speed range for flow particles
MIN_SPEED = 0.1
MAX_SPEED = 2.0

# Resource fetching
FETCH_TIMEOUT_SECONDS = 30

# Expected dataset schemas
LOCATION_COLUMNS = ("id", "lat", "lon", "name")
FLOW_COLUMNS = ("origin", "dest", "count")
