from __future__ import annotations

import _bootstrap  # noqa: F401

import argparse
from pathlib import Path

from osmhistory.analytics.pois import count_by_year, extract_pois, save_pois
from osmhistory.logging_config import configure_logging
from osmhistory.pipeline import validate_run_config
from osmhistory.settings import get_config
from osmhistory.storage.duckdb_backend import connect_for
from osmhistory.storage.snapshots import registry_from_config


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Query POIs across all yearly snapshots.")
    parser.add_argument("--tag-key", default=None, help="Tag key to match (default: config query.tag_key).")
    parser.add_argument(
        "--tag-value",
        default=None,
        help="Tag value to match; use '*' for any value (default: config query.tag_value).",
    )
    parser.add_argument("--kind", default=None, help="OSM element kind (default: config query.kind).")
    parser.add_argument(
        "--out",
        default=None,
        help="Write POIs to .parquet or .geojson (default: output_dir/<prefix>-<key>-<value>.parquet).",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging()

    config = get_config()
    _, years = validate_run_config(config)

    overrides: dict[str, object] = {}
    if args.tag_key:
        overrides["tag_key"] = args.tag_key
    if args.tag_value:
        overrides["tag_value"] = None if args.tag_value == "*" else args.tag_value
    if args.kind:
        overrides["kind"] = args.kind
    poi_filter = config.query.model_copy(update=overrides)

    with connect_for(config) as con:
        pois = extract_pois(
            con, years.years(), registry_from_config(config), poi_filter, fmt=config.snapshots.format
        )

    value = poi_filter.tag_value or "any"
    out = (
        Path(args.out)
        if args.out
        else config.paths.output_dir / f"{config.snapshots.prefix}-{poi_filter.tag_key}-{value}.parquet"
    )
    save_pois(pois, out)

    print(count_by_year(pois, years.years()).to_string(index=False))
    print(f"Saved POIs: {out} ({len(pois):,} rows)")


if __name__ == "__main__":
    main()
