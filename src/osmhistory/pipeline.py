from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import geopandas as gpd
import pandas as pd
from pydantic import ValidationError

from osmhistory.analytics.pois import count_by_year, extract_pois
from osmhistory.errors import ConfigurationError, PipelineError, classify_pipeline_error
from osmhistory.extraction.osmium import OsmiumCli, extract_region
from osmhistory.extraction.time_slices import TimeSliceReport, build_time_slices
from osmhistory.schemas import Region, YearRange
from osmhistory.settings import AppConfig
from osmhistory.storage.duckdb_backend import connect_for
from osmhistory.storage.ledger import new_run_id, safe_append_ledger_entry
from osmhistory.storage.snapshots import extract_path, registry_from_config
from osmhistory.utils.time import utc_now_iso

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    run_id: str
    extract: Path
    snapshots: dict[int, Path]
    pois: gpd.GeoDataFrame
    counts: pd.DataFrame
    time_slices: Optional[TimeSliceReport] = None


def validate_run_config(config: AppConfig) -> tuple[Region, YearRange]:
    """Re-validate region and years; sections built with `model_copy` skip validation."""

    try:
        region = Region.model_validate(config.region.model_dump())
        years = YearRange.model_validate(config.years.model_dump())
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid region or year range: {exc}") from exc
    if config.osmium.on_error not in ("abort", "continue"):
        raise ConfigurationError(f"Unknown osmium.on_error policy: {config.osmium.on_error!r}")
    if not config.snapshots.prefix:
        raise ConfigurationError("snapshots.prefix must not be empty")
    return region, years


def _record(config: AppConfig, run_id: str, stage: str, status: str, **extra: Any) -> None:
    entry: dict[str, Any] = {
        "run_id": run_id,
        "ts": utc_now_iso(),
        "stage": stage,
        "status": status,
    }
    entry.update(extra)
    safe_append_ledger_entry(config.paths.ledger_path, entry)


def _record_failure(config: AppConfig, run_id: str, stage: str, exc: Exception, **extra: Any) -> None:
    info = classify_pipeline_error(exc)
    _record(
        config,
        run_id,
        stage,
        "error",
        error_code=info.code,
        error_kind=info.kind,
        error=info.message,
        **extra,
    )


def run_pipeline(
    config: AppConfig,
    *,
    skip_extract: bool = False,
    skip_time_filter: bool = False,
    cli: Optional[OsmiumCli] = None,
) -> PipelineResult:
    """Extract the region, build yearly snapshots and query POIs across all years.

    Stages run strictly in order and any failure stops the run. Skipped stages
    reuse files left on disk by an earlier run.
    """

    region, years = validate_run_config(config)
    year_list = years.years()
    run_id = new_run_id()
    cli = cli or OsmiumCli.from_settings(config.osmium)
    registry = registry_from_config(config)
    extract = extract_path(config)

    logger.info("Run %s: %d year(s) %s-%s", run_id, len(year_list), years.start, years.end)

    if not skip_extract:
        try:
            extract_region(cli, config.source.archive_path, region, extract)
        except PipelineError as exc:
            _record_failure(config, run_id, "extract", exc)
            raise
        _record(config, run_id, "extract", "ok", path=str(extract))

    report: Optional[TimeSliceReport] = None
    if not skip_time_filter:
        try:
            report = build_time_slices(
                cli, extract, year_list, registry, on_error=config.osmium.on_error
            )
        except PipelineError as exc:
            failed_report = getattr(exc, "report", None)
            if failed_report is not None:
                for result in failed_report.results:
                    if result.ok:
                        _record(
                            config, run_id, "time_filter", "ok", year=result.year, path=str(result.path)
                        )
                    else:
                        _record_failure(
                            config,
                            run_id,
                            "time_filter",
                            result.exception or exc,
                            year=result.year,
                            path=str(result.path),
                        )
            else:
                _record_failure(config, run_id, "time_filter", exc, year=getattr(exc, "year", None))
            raise
        for result in report.results:
            _record(config, run_id, "time_filter", "ok", year=result.year, path=str(result.path))

    try:
        with connect_for(config) as con:
            pois = extract_pois(con, year_list, registry, config.query, fmt=config.snapshots.format)
    except PipelineError as exc:
        _record_failure(config, run_id, "query", exc)
        raise

    counts = count_by_year(pois, year_list)
    _record(config, run_id, "query", "ok", rows=int(len(pois)))

    return PipelineResult(
        run_id=run_id,
        extract=extract,
        snapshots=registry.paths(year_list),
        pois=pois,
        counts=counts,
        time_slices=report,
    )
