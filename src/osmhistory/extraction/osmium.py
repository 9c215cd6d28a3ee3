"""Thin wrapper around the `osmium` command-line tool.

Two osmium commands are used by the pipeline:
- `extract --with-history`: cut a full-history archive down to a bounding box.
- `time-filter`: derive the state of a history extract at one instant.

All argument lists are built here so the flags cannot drift between call sites.
Invocations are synchronous, capture stdout/stderr as text and turn any failure
(non-zero exit, timeout, missing binary) into `ToolInvocationError` with the
captured diagnostics attached. Nothing is retried.
"""

from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from osmhistory.errors import ConfigurationError, ToolInvocationError
from osmhistory.schemas import Region
from osmhistory.settings import OsmiumSection
from osmhistory.storage.snapshots import ensure_parent_dir
from osmhistory.utils.time import snapshot_timestamp

logger = logging.getLogger(__name__)


def extract_args(source: Path, region: Region, output: Path) -> list[str]:
    return [
        "extract",
        str(source),
        "--with-history",
        "-b",
        region.as_osmium_bbox(),
        "-o",
        str(output),
        "--overwrite",
    ]


def time_filter_args(extract: Path, year: int, output: Path) -> list[str]:
    return [
        "time-filter",
        str(extract),
        snapshot_timestamp(year),
        "-o",
        str(output),
        "--overwrite",
    ]


def _join_output(stdout: Optional[str], stderr: Optional[str]) -> str:
    return "\n".join(part.strip() for part in (stdout, stderr) if part and part.strip())


@dataclass(frozen=True)
class OsmiumResult:
    """Outcome of one successful invocation."""

    output: Path
    command: list[str]
    diagnostics: str
    duration_seconds: float


class OsmiumCli:
    def __init__(self, binary: str = "osmium", *, timeout_seconds: Optional[float] = None) -> None:
        self.binary = binary
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: OsmiumSection) -> "OsmiumCli":
        return cls(settings.binary, timeout_seconds=settings.timeout_seconds)

    def invoke(self, args: Sequence[str], *, output: Path, year: Optional[int] = None) -> OsmiumResult:
        command = [self.binary, *args]
        logger.debug("Running %s", " ".join(command))
        start = time.monotonic()
        try:
            completed = subprocess.run(
                command,
                check=False,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
            )
        except FileNotFoundError as exc:
            raise ToolInvocationError(
                f"osmium binary not found: {self.binary}", args=command, year=year
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise ToolInvocationError(
                f"{args[0]} timed out after {self.timeout_seconds} seconds",
                args=command,
                diagnostics=_join_output(_text(exc.stdout), _text(exc.stderr)),
                year=year,
            ) from exc

        diagnostics = _join_output(completed.stdout, completed.stderr)
        if completed.returncode != 0:
            raise ToolInvocationError(
                f"{args[0]} failed (exit {completed.returncode})",
                args=command,
                returncode=completed.returncode,
                diagnostics=diagnostics,
                year=year,
            )

        return OsmiumResult(
            output=Path(output),
            command=command,
            diagnostics=diagnostics,
            duration_seconds=time.monotonic() - start,
        )


def _text(value: bytes | str | None) -> Optional[str]:
    # TimeoutExpired carries bytes even when text=True was requested.
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def extract_region(cli: OsmiumCli, source: Path, region: Region, output: Path) -> OsmiumResult:
    """Cut `source` down to `region`, keeping the full edit history."""

    if not Path(source).exists():
        raise ConfigurationError(f"History archive not found: {source}")
    ensure_parent_dir(Path(output))
    logger.info("Extracting %s to %s (bbox %s)", source, output, region.as_osmium_bbox())
    result = cli.invoke(extract_args(Path(source), region, Path(output)), output=Path(output))
    logger.info("Wrote regional extract %s in %.1fs", output, result.duration_seconds)
    return result
