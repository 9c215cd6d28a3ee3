from __future__ import annotations

import _bootstrap  # noqa: F401

import argparse
from pathlib import Path

from osmhistory.analytics.pois import save_pois
from osmhistory.logging_config import configure_logging
from osmhistory.pipeline import run_pipeline
from osmhistory.settings import load_config


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Extract the region, build yearly snapshots and query POIs in one run."
    )
    parser.add_argument("--config", default=None, help="Config YAML (default: OSMHISTORY_CONFIG or configs/config.yaml).")
    parser.add_argument("--skip-extract", action="store_true", help="Reuse the existing regional extract.")
    parser.add_argument("--skip-time-filter", action="store_true", help="Reuse existing yearly snapshots.")
    parser.add_argument("--out", default=None, help="Write POIs to .parquet or .geojson.")
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging(level="DEBUG" if args.verbose else None)

    config = load_config(args.config)
    result = run_pipeline(
        config,
        skip_extract=args.skip_extract,
        skip_time_filter=args.skip_time_filter,
    )

    print(f"Run: {result.run_id}")
    print(result.counts.to_string(index=False))
    if args.out:
        out = save_pois(result.pois, Path(args.out))
        print(f"Saved POIs: {out}")


if __name__ == "__main__":
    main()
