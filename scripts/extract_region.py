from __future__ import annotations

import _bootstrap  # noqa: F401

import argparse
from pathlib import Path

from osmhistory.extraction.osmium import OsmiumCli, extract_region
from osmhistory.logging_config import configure_logging
from osmhistory.pipeline import validate_run_config
from osmhistory.settings import get_config
from osmhistory.storage.snapshots import extract_path


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Cut the history archive down to the configured bounding box (osmium extract --with-history)."
    )
    parser.add_argument("--source", default=None, help="History archive (default: config source.archive_path).")
    parser.add_argument("--out", default=None, help="Regional extract path (default: data_dir/extract_name).")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging()

    config = get_config()
    region, _ = validate_run_config(config)
    source = Path(args.source) if args.source else config.source.archive_path
    output = Path(args.out) if args.out else extract_path(config)

    result = extract_region(OsmiumCli.from_settings(config.osmium), source, region, output)
    print(f"Saved regional extract: {result.output}")
    if result.diagnostics:
        print(result.diagnostics)


if __name__ == "__main__":
    main()
