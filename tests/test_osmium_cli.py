from __future__ import annotations

import subprocess

import pytest

from osmhistory.errors import ConfigurationError, ToolInvocationError, classify_pipeline_error
from osmhistory.extraction.osmium import OsmiumCli, extract_args, extract_region, time_filter_args
from osmhistory.schemas import Region
from osmhistory.utils.time import snapshot_timestamp

REGION = Region(min_lon=-0.15, min_lat=5.9, max_lon=1.81, max_lat=11.14)


def test_snapshot_timestamp_is_first_of_january_utc() -> None:
    assert snapshot_timestamp(2020) == "2020-01-01T00:00:00Z"


def test_extract_args(tmp_path) -> None:
    args = extract_args(tmp_path / "africa.osh.pbf", REGION, tmp_path / "togo.osh.pbf")
    assert args == [
        "extract",
        str(tmp_path / "africa.osh.pbf"),
        "--with-history",
        "-b",
        "-0.15,5.9,1.81,11.14",
        "-o",
        str(tmp_path / "togo.osh.pbf"),
        "--overwrite",
    ]


def test_time_filter_args_use_midnight_timestamp(tmp_path) -> None:
    args = time_filter_args(tmp_path / "togo.osh.pbf", 2020, tmp_path / "togo-2020.osm.pbf")
    assert args == [
        "time-filter",
        str(tmp_path / "togo.osh.pbf"),
        "2020-01-01T00:00:00Z",
        "-o",
        str(tmp_path / "togo-2020.osm.pbf"),
        "--overwrite",
    ]


def test_invoke_attaches_diagnostics_on_nonzero_exit(monkeypatch, tmp_path) -> None:
    def fake_run(cmd, **kwargs):
        return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="Open failed for 'missing.osh.pbf'")

    monkeypatch.setattr("osmhistory.extraction.osmium.subprocess.run", fake_run)

    cli = OsmiumCli("osmium")
    with pytest.raises(ToolInvocationError) as excinfo:
        cli.invoke(["time-filter", "missing.osh.pbf"], output=tmp_path / "out.pbf", year=2014)

    assert excinfo.value.returncode == 1
    assert excinfo.value.year == 2014
    assert "Open failed" in excinfo.value.diagnostics
    assert "Open failed" in str(excinfo.value)


def test_invoke_reports_missing_binary(monkeypatch, tmp_path) -> None:
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr("osmhistory.extraction.osmium.subprocess.run", fake_run)

    with pytest.raises(ToolInvocationError, match="not found"):
        OsmiumCli("/nonexistent/osmium").invoke(["extract"], output=tmp_path / "out.pbf")


def test_invoke_passes_timeout(monkeypatch, tmp_path) -> None:
    seen: dict[str, object] = {}

    def fake_run(cmd, **kwargs):
        seen.update(kwargs)
        return subprocess.CompletedProcess(cmd, 0, stdout="done", stderr="")

    monkeypatch.setattr("osmhistory.extraction.osmium.subprocess.run", fake_run)

    result = OsmiumCli("osmium", timeout_seconds=5.0).invoke(["extract"], output=tmp_path / "out.pbf")
    assert seen["timeout"] == 5.0
    assert seen["capture_output"] is True
    assert result.diagnostics == "done"


def test_extract_region_requires_source(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        extract_region(OsmiumCli(), tmp_path / "missing.osh.pbf", REGION, tmp_path / "togo.osh.pbf")


def test_extract_region_invokes_once(monkeypatch, tmp_path) -> None:
    source = tmp_path / "africa.osh.pbf"
    source.write_bytes(b"")
    calls: list[list[str]] = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    monkeypatch.setattr("osmhistory.extraction.osmium.subprocess.run", fake_run)

    output = tmp_path / "out" / "togo.osh.pbf"
    extract_region(OsmiumCli("osmium"), source, REGION, output)

    assert len(calls) == 1
    assert calls[0][:2] == ["osmium", "extract"]
    assert output.parent.is_dir()


def test_extract_bbox_keeps_osm_coordinate_precision(tmp_path) -> None:
    region = Region(min_lon=10.1234567, min_lat=45.7654321, max_lon=123.4567891, max_lat=46.0000001)
    args = extract_args(tmp_path / "in.osh.pbf", region, tmp_path / "out.osh.pbf")
    assert args[4] == "10.1234567,45.7654321,123.4567891,46.0000001"

    tiny = Region(min_lon=0.00001, min_lat=0.00002, max_lon=0.5, max_lat=0.5)
    assert tiny.as_osmium_bbox() == "0.00001,0.00002,0.5,0.5"


def test_invoke_timeout_carries_decoded_diagnostics(monkeypatch, tmp_path) -> None:
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, 5, output=b"partial output", stderr=b"still reading")

    monkeypatch.setattr("osmhistory.extraction.osmium.subprocess.run", fake_run)

    with pytest.raises(ToolInvocationError) as excinfo:
        OsmiumCli("osmium", timeout_seconds=5).invoke(["time-filter"], output=tmp_path / "out.pbf", year=2016)

    assert excinfo.value.returncode is None
    assert excinfo.value.year == 2016
    assert excinfo.value.diagnostics == "partial output\nstill reading"
    assert classify_pipeline_error(excinfo.value).code == "tool_timeout"
