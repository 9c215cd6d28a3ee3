from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import duckdb
import pytest

SnapshotRow = tuple[str, int, dict[str, str], Optional[float], Optional[float]]


def write_parquet_snapshot(path: Path, rows: list[SnapshotRow]) -> Path:
    """Write rows shaped like ST_ReadOSM output (kind, id, tags, lat, lon) to Parquet."""

    path.parent.mkdir(parents=True, exist_ok=True)
    con = duckdb.connect(database=":memory:")
    try:
        con.execute(
            "CREATE TABLE snapshot (kind VARCHAR, id BIGINT, tags MAP(VARCHAR, VARCHAR), lat DOUBLE, lon DOUBLE)"
        )
        for kind, osm_id, tags, lat, lon in rows:
            con.execute(
                "INSERT INTO snapshot VALUES (?, ?, MAP(?::VARCHAR[], ?::VARCHAR[]), ?, ?)",
                [kind, osm_id, list(tags.keys()), list(tags.values()), lat, lon],
            )
        escaped = path.as_posix().replace("'", "''")
        con.execute(f"COPY snapshot TO '{escaped}' (FORMAT PARQUET)")
    finally:
        con.close()
    return path


@pytest.fixture
def write_snapshot() -> Callable[[Path, list[SnapshotRow]], Path]:
    return write_parquet_snapshot
