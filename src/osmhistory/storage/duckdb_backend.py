from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import duckdb

from osmhistory.errors import ConfigurationError, SnapshotQueryError
from osmhistory.settings import AppConfig, DuckdbSection

logger = logging.getLogger(__name__)

# Table functions used to scan one snapshot file, keyed by `snapshots.format`.
READERS = {
    "osm": "ST_ReadOSM",
    "parquet": "read_parquet",
}


def _sql_literal(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def reader_expression(path: Path, fmt: str = "osm") -> str:
    try:
        reader = READERS[fmt]
    except KeyError as exc:
        raise ConfigurationError(
            f"Unknown snapshot format {fmt!r}; expected one of {sorted(READERS)}"
        ) from exc
    return f"{reader}({_sql_literal(Path(path).as_posix())})"


@contextmanager
def connect(settings: DuckdbSection, *, spatial: bool = False) -> Iterator[duckdb.DuckDBPyConnection]:
    """Open the single DuckDB handle used for a run and always close it."""

    try:
        con = duckdb.connect(database=settings.database)
    except duckdb.Error as exc:
        raise SnapshotQueryError(f"Could not open DuckDB database {settings.database}: {exc}") from exc

    try:
        try:
            if settings.threads:
                con.execute(f"SET threads = {int(settings.threads)}")
            if settings.memory_limit:
                con.execute(f"SET memory_limit = {_sql_literal(settings.memory_limit)}")
            if spatial:
                logger.debug("Loading DuckDB spatial extension")
                con.execute("INSTALL spatial")
                con.execute("LOAD spatial")
        except duckdb.Error as exc:
            raise SnapshotQueryError(f"Could not prepare DuckDB connection: {exc}") from exc
        yield con
    finally:
        con.close()


def connect_for(config: AppConfig):
    """Connection context for `config`, loading `spatial` only when OSM files are scanned."""

    needs_spatial = config.snapshots.format == "osm" and config.duckdb.load_spatial
    return connect(config.duckdb, spatial=needs_spatial)
