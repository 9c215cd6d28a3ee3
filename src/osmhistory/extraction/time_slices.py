from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Literal, Optional

from osmhistory.errors import ConfigurationError, TimeSliceFailures, ToolInvocationError
from osmhistory.extraction.osmium import OsmiumCli, time_filter_args
from osmhistory.storage.snapshots import SnapshotRegistry, ensure_parent_dir

logger = logging.getLogger(__name__)

ErrorPolicy = Literal["abort", "continue"]


@dataclass(frozen=True)
class TimeSliceResult:
    year: int
    path: Path
    ok: bool
    diagnostics: str = ""
    error: Optional[str] = None
    exception: Optional[ToolInvocationError] = field(default=None, compare=False, repr=False)


@dataclass
class TimeSliceReport:
    results: list[TimeSliceResult] = field(default_factory=list)

    def succeeded(self) -> list[TimeSliceResult]:
        return [result for result in self.results if result.ok]

    def failed(self) -> list[TimeSliceResult]:
        return [result for result in self.results if not result.ok]

    @property
    def ok(self) -> bool:
        return not self.failed()

    def raise_for_failures(self) -> None:
        if not self.ok:
            raise TimeSliceFailures(self)


def build_time_slices(
    cli: OsmiumCli,
    extract: Path,
    years: Iterable[int],
    registry: SnapshotRegistry,
    *,
    on_error: ErrorPolicy = "abort",
) -> TimeSliceReport:
    """Write one snapshot per year, sequentially and in the given order.

    With `on_error="abort"` the first failing year stops the loop and its
    `ToolInvocationError` propagates. With `"continue"` every year is attempted
    and `TimeSliceFailures` is raised at the end if any of them failed.
    """

    if on_error not in ("abort", "continue"):
        raise ConfigurationError(f"Unknown time-slice error policy: {on_error!r}")
    if not Path(extract).exists():
        raise ConfigurationError(f"Regional extract not found: {extract}")

    report = TimeSliceReport()
    for year in years:
        output = registry.path(year)
        ensure_parent_dir(output)
        try:
            result = cli.invoke(time_filter_args(Path(extract), year, output), output=output, year=year)
        except ToolInvocationError as exc:
            logger.error("Time-slice for %s failed: %s", year, exc)
            report.results.append(
                TimeSliceResult(
                    year=year,
                    path=output,
                    ok=False,
                    diagnostics=exc.diagnostics,
                    error=str(exc),
                    exception=exc,
                )
            )
            if on_error == "abort":
                exc.report = report
                raise
            continue

        logger.info("Wrote snapshot %s for %s", output, year)
        report.results.append(
            TimeSliceResult(year=year, path=output, ok=True, diagnostics=result.diagnostics)
        )

    report.raise_for_failures()
    return report
