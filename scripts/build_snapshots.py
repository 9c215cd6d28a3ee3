from __future__ import annotations

import _bootstrap  # noqa: F401

import argparse
import sys

from osmhistory.errors import TimeSliceFailures, ToolInvocationError
from osmhistory.extraction.osmium import OsmiumCli
from osmhistory.extraction.time_slices import build_time_slices
from osmhistory.logging_config import configure_logging
from osmhistory.pipeline import validate_run_config
from osmhistory.settings import get_config
from osmhistory.storage.snapshots import extract_path, registry_from_config


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build one time-filtered snapshot per configured year.")
    parser.add_argument(
        "--on-error",
        choices=["abort", "continue"],
        default=None,
        help="Stop at the first failing year or try every year (default: config osmium.on_error).",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging()

    config = get_config()
    _, years = validate_run_config(config)
    policy = args.on_error or config.osmium.on_error

    try:
        report = build_time_slices(
            OsmiumCli.from_settings(config.osmium),
            extract_path(config),
            years.years(),
            registry_from_config(config),
            on_error=policy,
        )
    except (ToolInvocationError, TimeSliceFailures) as exc:
        report = exc.report
        if report is not None:
            for result in report.results:
                print(f"[{result.year}] {'ok' if result.ok else 'FAILED'} {result.path}")
                if result.diagnostics:
                    print(f"  {result.diagnostics}")
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    for result in report.results:
        print(f"[{result.year}] ok {result.path}")


if __name__ == "__main__":
    main()
