"""Run the load/parse/filter pipeline and print a validation summary."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import asdict
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from flowmap.data.normalizer import animation_speeds
from flowmap.errors import EmptyDatasetError, ResourceUnavailable
from flowmap.session import load_session
from flowmap.settings import FlowmapSettings


def _configure_logging() -> None:
    Path("logs").mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename="logs/validate_datasets.log",
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--locations", default=None, help="Locations CSV path or URL (id,lat,lon,name)")
    parser.add_argument("--flows", default=None, help="Flows CSV path or URL (origin,dest,count)")
    parser.add_argument("--max-distance", type=float, default=None, help="Drop flows longer than this (km)")
    parser.add_argument("--min-flow", type=int, default=None, help="Display magnitude floor")
    parser.add_argument("--export", type=Path, default=None, help="Write the filtered flows to this CSV")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    _configure_logging()
    args = _parse_args(argv)
    options = {
        "locations_file": args.locations,
        "flows_file": args.flows,
        "max_distance": args.max_distance,
        "min_flow": args.min_flow,
    }
    overrides = {key: value for key, value in options.items() if value is not None}
    settings = FlowmapSettings.from_mapping({**asdict(FlowmapSettings.from_env()), **overrides})

    try:
        session = asyncio.run(load_session(settings))
    except ResourceUnavailable as exc:
        print(f"FAIL: {exc}")
        return 2
    except EmptyDatasetError as exc:
        print(f"FAIL: {exc}")
        return 3

    print("== Locations ==")
    report = session.location_report
    print(f"Rows: {report.total_rows}  parsed: {report.parsed}  dropped: {report.dropped}  duplicates: {report.duplicates}")
    for reason, count in sorted(report.reasons().items()):
        print(f"  {reason}: {count}")

    print("\n== Flows ==")
    report = session.flow_report
    print(f"Rows: {report.total_rows}  parsed: {report.parsed}  dropped: {report.dropped}")
    for reason, count in sorted(report.reasons().items()):
        print(f"  {reason}: {count}")

    result = session.filtered
    print("\n== Filter ==")
    print(f"Kept: {len(result)} of {result.input_count}")
    print(f"Unknown locations: {result.dangling_dropped}")
    print(f"Beyond max distance: {result.distance_dropped}")

    frame = result.to_frame()
    frame["animation_speed"] = animation_speeds(result)
    print("\n== Magnitudes ==")
    print(frame[["count", "display_magnitude", "distance_km", "animation_speed"]].describe().round(2).to_string())

    if args.export is not None:
        args.export.parent.mkdir(parents=True, exist_ok=True)
        frame.to_csv(args.export, index=False)
        print(f"\nWrote {args.export}")

    print("\nOK: datasets validated")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
