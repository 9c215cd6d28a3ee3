from __future__ import annotations

import duckdb
import pytest

from osmhistory.errors import SnapshotQueryError
from osmhistory.settings import DuckdbSection
from osmhistory.storage.duckdb_backend import connect


def test_connect_applies_settings_and_closes() -> None:
    with connect(DuckdbSection(threads=2, memory_limit="512MB")) as con:
        threads = con.execute("SELECT current_setting('threads')").fetchone()[0]
        assert int(threads) == 2

    with pytest.raises(duckdb.Error):
        con.execute("SELECT 1")


def test_connect_wraps_setup_errors() -> None:
    with pytest.raises(SnapshotQueryError, match="Could not prepare DuckDB connection"):
        with connect(DuckdbSection(memory_limit="lots of memory")):
            pass
