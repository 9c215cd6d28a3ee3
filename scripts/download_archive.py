from __future__ import annotations

import _bootstrap  # noqa: F401

import argparse
from pathlib import Path

from osmhistory.logging_config import configure_logging
from osmhistory.settings import get_config
from osmhistory.sources.archive import download_archive


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Download a full-history OSM archive (.osh.pbf).")
    parser.add_argument("--url", default=None, help="Archive URL (default: config source.url).")
    parser.add_argument(
        "--out",
        default=None,
        help="Destination path (default: config source.archive_path).",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging()

    config = get_config()
    url = args.url or config.source.url or ""
    dest = Path(args.out) if args.out else config.source.archive_path

    path = download_archive(url, dest, settings=config.source)
    print(f"Saved archive: {path}")


if __name__ == "__main__":
    main()
