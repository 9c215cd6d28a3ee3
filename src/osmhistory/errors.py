from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence


class PipelineError(RuntimeError):
    """Base class for every failure that stops a pipeline run."""


class ConfigurationError(PipelineError, ValueError):
    """Raised for invalid region, year range or paths, before any external call."""


class ToolInvocationError(PipelineError):
    """Raised when the external osmium binary fails, times out or cannot be started."""

    def __init__(
        self,
        message: str,
        *,
        args: Sequence[str] = (),
        returncode: Optional[int] = None,
        diagnostics: str = "",
        year: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.command = list(args)
        self.returncode = returncode
        self.diagnostics = diagnostics
        self.year = year
        # Set by the time-slice loop so callers can see which years already succeeded.
        self.report: Optional[Any] = None

    def __str__(self) -> str:
        text = super().__str__()
        if self.diagnostics:
            return f"{text}\n{self.diagnostics}"
        return text


class MissingSnapshotError(PipelineError):
    def __init__(self, year: int, path: Path) -> None:
        super().__init__(f"Snapshot for year {year} not found: {path}")
        self.year = year
        self.path = path


class SnapshotQueryError(PipelineError):
    """Raised when DuckDB rejects or fails the union query; wraps the engine error."""


class TimeSliceFailures(PipelineError):
    """Raised after a best-effort time-slice run in which some years failed."""

    def __init__(self, report: Any) -> None:
        failed = ", ".join(str(result.year) for result in report.failed())
        super().__init__(f"Time-slice failed for year(s): {failed}")
        self.report = report


class ArchiveDownloadError(PipelineError):
    """Raised when the history archive download fails after retries."""


@dataclass(frozen=True)
class PipelineErrorInfo:
    code: str
    kind: str
    message: str


def classify_pipeline_error(exc: Exception) -> PipelineErrorInfo:
    """Classify pipeline failures into stable codes for the run ledger."""

    text = str(exc)

    if isinstance(exc, ConfigurationError):
        return PipelineErrorInfo(code="invalid_config", kind="config", message=text)

    if isinstance(exc, ToolInvocationError):
        if exc.returncode is None and "timed out" in text:
            return PipelineErrorInfo(code="tool_timeout", kind="tool", message=text)
        if exc.returncode is None:
            return PipelineErrorInfo(code="tool_unavailable", kind="tool", message=text)
        return PipelineErrorInfo(code=f"tool_exit_{exc.returncode}", kind="tool", message=text)

    if isinstance(exc, TimeSliceFailures):
        return PipelineErrorInfo(code="time_slice_failures", kind="tool", message=text)

    if isinstance(exc, MissingSnapshotError):
        return PipelineErrorInfo(code="missing_snapshot", kind="query", message=text)

    if isinstance(exc, SnapshotQueryError):
        return PipelineErrorInfo(code="query_error", kind="query", message=text)

    if isinstance(exc, ArchiveDownloadError):
        return PipelineErrorInfo(code="download_failed", kind="network", message=text)

    if isinstance(exc, OSError):
        return PipelineErrorInfo(code="os_error", kind="io", message=text)

    return PipelineErrorInfo(code="unknown", kind="unknown", message=text)
