from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from osmhistory.errors import ConfigurationError
from osmhistory.schemas import PoiFilter
from osmhistory.storage.duckdb_backend import reader_expression
from osmhistory.storage.snapshots import SnapshotRegistry

DEFAULT_CTE_NAME = "snapshots"
POI_COLUMNS = ["id", "tags", "lat", "lon", "year"]


@dataclass(frozen=True)
class SnapshotQuery:
    sql: str
    params: list[object]
    years: list[int]
    paths: list[Path]


def _year_clause(path: Path, fmt: str) -> str:
    return f"SELECT *, CAST(? AS INTEGER) AS year FROM {reader_expression(path, fmt)}"


def build_union_expression(
    years: Iterable[int], registry: SnapshotRegistry, *, fmt: str = "osm"
) -> tuple[str, list[object], list[int], list[Path]]:
    """One year-tagged SELECT per snapshot file, joined with UNION ALL."""

    year_list = [int(year) for year in years]
    if not year_list:
        raise ConfigurationError("At least one year is required to build the snapshot query")
    if len(set(year_list)) != len(year_list):
        raise ConfigurationError(f"Duplicate years in snapshot query: {year_list}")

    paths = [registry.path(year) for year in year_list]
    clauses = [_year_clause(path, fmt) for path in paths]
    return "\nUNION ALL\n".join(clauses), list(year_list), year_list, paths


def _tag_predicate(poi_filter: PoiFilter) -> tuple[str, list[object]]:
    # map_extract returns a list of matches on every DuckDB version.
    if poi_filter.tag_value is None:
        return "len(map_extract(tags, CAST(? AS VARCHAR))) > 0", [poi_filter.tag_key]
    return (
        "map_extract(tags, CAST(? AS VARCHAR))[1] = CAST(? AS VARCHAR)",
        [poi_filter.tag_key, poi_filter.tag_value],
    )


def build_poi_query(
    years: Iterable[int],
    registry: SnapshotRegistry,
    poi_filter: PoiFilter,
    *,
    fmt: str = "osm",
    cte_name: str = DEFAULT_CTE_NAME,
) -> SnapshotQuery:
    if not cte_name.isidentifier():
        raise ConfigurationError(f"Invalid table expression name: {cte_name!r}")

    union_sql, params, year_list, paths = build_union_expression(years, registry, fmt=fmt)
    predicate_sql, predicate_params = _tag_predicate(poi_filter)

    sql = (
        f"WITH {cte_name} AS (\n{union_sql}\n)\n"
        f"SELECT {', '.join(POI_COLUMNS)} FROM {cte_name}\n"
        f"WHERE kind = CAST(? AS VARCHAR) AND {predicate_sql}\n"
        "ORDER BY year, id"
    )
    params.append(poi_filter.kind)
    params.extend(predicate_params)
    return SnapshotQuery(sql=sql, params=params, years=year_list, paths=paths)
