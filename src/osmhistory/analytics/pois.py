from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

import duckdb
import geopandas as gpd
import pandas as pd

from osmhistory.analytics.union_query import POI_COLUMNS, build_poi_query
from osmhistory.errors import ConfigurationError, MissingSnapshotError, SnapshotQueryError
from osmhistory.schemas import PoiFilter, PoiRecord
from osmhistory.storage.snapshots import SnapshotRegistry, ensure_parent_dir

logger = logging.getLogger(__name__)

GEOGRAPHIC_CRS = "EPSG:4326"
OUTPUT_COLUMNS = ["id", "tags", "lon", "lat", "year"]


def _tags_to_dict(value: Any) -> dict[str, str]:
    """Normalize a DuckDB MAP value as returned by `fetchdf` into a plain dict."""

    if value is None:
        return {}
    if isinstance(value, dict):
        # Older DuckDB releases return MAPs as {"key": [...], "value": [...]}.
        if set(value) == {"key", "value"} and not isinstance(value["key"], str):
            return {str(k): str(v) for k, v in zip(value["key"], value["value"])}
        return {str(k): str(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return {str(k): str(v) for k, v in value}
    return {}


def _empty_pois() -> gpd.GeoDataFrame:
    frame = pd.DataFrame({col: pd.Series(dtype="object") for col in OUTPUT_COLUMNS})
    return gpd.GeoDataFrame(frame, geometry=gpd.GeoSeries([], crs=GEOGRAPHIC_CRS), crs=GEOGRAPHIC_CRS)


def extract_pois(
    con: duckdb.DuckDBPyConnection,
    years: Iterable[int],
    registry: SnapshotRegistry,
    poi_filter: PoiFilter,
    *,
    fmt: str = "osm",
) -> gpd.GeoDataFrame:
    """Run the year-tagged union query and return matching POIs as points in EPSG:4326."""

    query = build_poi_query(years, registry, poi_filter, fmt=fmt)

    for year, path in zip(query.years, query.paths):
        if not path.exists():
            raise MissingSnapshotError(year, path)

    logger.info(
        "Querying %d snapshot(s) for %s=%s (%s)",
        len(query.years),
        poi_filter.tag_key,
        poi_filter.tag_value if poi_filter.tag_value is not None else "*",
        poi_filter.kind,
    )
    try:
        df = con.execute(query.sql, query.params).fetchdf()
    except duckdb.Error as exc:
        raise SnapshotQueryError(str(exc)) from exc

    if df.empty:
        logger.info("No POIs matched")
        return _empty_pois()

    df = df[POI_COLUMNS].copy()
    missing_coords = df["lon"].isna() | df["lat"].isna()
    if missing_coords.any():
        logger.warning("Dropping %d POI row(s) without coordinates", int(missing_coords.sum()))
        df = df.loc[~missing_coords]

    df["id"] = df["id"].astype("int64")
    df["year"] = df["year"].astype("int64")
    df["lon"] = df["lon"].astype(float)
    df["lat"] = df["lat"].astype(float)
    df["tags"] = df["tags"].map(_tags_to_dict)

    gdf = gpd.GeoDataFrame(
        df[OUTPUT_COLUMNS].reset_index(drop=True),
        geometry=gpd.points_from_xy(df["lon"], df["lat"]),
        crs=GEOGRAPHIC_CRS,
    )
    logger.info("Extracted %d POI(s)", len(gdf))
    return gdf


def to_records(gdf: gpd.GeoDataFrame) -> list[PoiRecord]:
    return [
        PoiRecord(
            id=int(row.id),
            tags=dict(row.tags),
            lon=float(row.lon),
            lat=float(row.lat),
            year=int(row.year),
        )
        for row in gdf[OUTPUT_COLUMNS].itertuples(index=False)
    ]


def count_by_year(gdf: gpd.GeoDataFrame, years: Iterable[int]) -> pd.DataFrame:
    """POI counts per year, with explicit zero rows for years without matches."""

    year_list = [int(year) for year in years]
    if gdf.empty:
        counts = pd.Series(0, index=year_list, dtype="int64")
    else:
        counts = gdf.groupby("year").size().reindex(year_list, fill_value=0).astype("int64")
    return pd.DataFrame({"year": year_list, "count": counts.to_numpy()})


def save_pois(gdf: gpd.GeoDataFrame, path: Path) -> Path:
    """Write POIs as GeoParquet (`.parquet`) or GeoJSON (`.geojson`/`.json`)."""

    suffix = path.suffix.lower()
    if suffix not in {".parquet", ".geojson", ".json"}:
        raise ConfigurationError(f"Unsupported POI output format: {path}")

    ensure_parent_dir(path)
    out = gdf.copy()
    # Tag sets vary per feature, so they are stored as JSON text.
    out["tags"] = out["tags"].map(lambda tags: json.dumps(tags, ensure_ascii=False, sort_keys=True))
    if suffix == ".parquet":
        out.to_parquet(path, index=False)
    else:
        # GDAL would otherwise turn the JSON text back into nested objects.
        out.to_file(
            path,
            driver="GeoJSON",
            engine="pyogrio",
            layer_options={"AUTODETECT_JSON_STRINGS": "NO"},
        )
    return path
