from __future__ import annotations

from pathlib import Path

from osmhistory.errors import (
    ConfigurationError,
    MissingSnapshotError,
    ToolInvocationError,
    classify_pipeline_error,
)


def test_classify_tool_failures() -> None:
    exit_error = ToolInvocationError("time-filter failed (exit 1)", returncode=1, diagnostics="boom")
    missing_binary = ToolInvocationError("osmium binary not found: osmium")
    timeout = ToolInvocationError("extract timed out after 5 seconds")

    assert classify_pipeline_error(exit_error).code == "tool_exit_1"
    assert classify_pipeline_error(missing_binary).code == "tool_unavailable"
    assert classify_pipeline_error(timeout).code == "tool_timeout"


def test_classify_config_and_query_failures() -> None:
    assert classify_pipeline_error(ConfigurationError("bad bbox")).kind == "config"
    info = classify_pipeline_error(MissingSnapshotError(2013, Path("togo-2013.osm.pbf")))
    assert info.code == "missing_snapshot"
    assert "togo-2013.osm.pbf" in info.message
    assert classify_pipeline_error(KeyError("x")).code == "unknown"
