"""Build a standalone deck.gl HTML snapshot of the flow map."""

from __future__ import annotations

import argparse
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from flowmap.session import initialize
from flowmap.settings import FlowmapSettings


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--out", type=Path, default=Path("build") / "flowmap.html")
    args = parser.parse_args()

    outcome = initialize(FlowmapSettings.from_env())
    if not outcome.ok:
        print(outcome.error)
        return 1

    args.out.parent.mkdir(parents=True, exist_ok=True)
    outcome.session.deck().to_html(str(args.out), open_browser=False)
    print(f"Wrote {args.out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
