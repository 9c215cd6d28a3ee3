from __future__ import annotations

import pytest

from osmhistory.errors import ConfigurationError
from osmhistory.pipeline import validate_run_config
from osmhistory.schemas import Region, YearRange
from osmhistory.settings import AppConfig, load_config


def test_load_config_reads_yaml_and_resolves_paths(monkeypatch, tmp_path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "paths:\n"
        f"  snapshot_dir: {tmp_path / 'snaps'}\n"
        "region: {min_lon: 1.0, min_lat: 6.0, max_lon: 1.5, max_lat: 6.5}\n"
        "years: {start: 2015, end: 2017}\n"
        "snapshots: {prefix: lome}\n"
        "query: {tag_key: shop, tag_value: bakery}\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("OSMHISTORY_CONFIG", str(config_path))

    config = load_config()

    assert config.paths.snapshot_dir == tmp_path / "snaps"
    assert config.paths.ledger_path.is_absolute()
    assert config.region.as_osmium_bbox() == "1,6,1.5,6.5"
    assert config.years.years() == [2015, 2016, 2017]
    assert config.snapshots.prefix == "lome"
    assert config.query.tag_value == "bakery"


def test_load_config_rejects_inverted_region(tmp_path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "region: {min_lon: 2.0, min_lat: 6.0, max_lon: 1.0, max_lat: 7.0}\n", encoding="utf-8"
    )

    with pytest.raises(ConfigurationError, match="min_lon"):
        load_config(config_path)


@pytest.mark.parametrize(
    "bounds",
    [
        {"min_lon": -181, "min_lat": 0, "max_lon": 1, "max_lat": 1},
        {"min_lon": 0, "min_lat": -91, "max_lon": 1, "max_lat": 1},
        {"min_lon": 0, "min_lat": 1, "max_lon": 1, "max_lat": 1},
    ],
)
def test_region_validation(bounds) -> None:
    with pytest.raises(ValueError):
        Region(**bounds)


def test_year_range_validation() -> None:
    assert YearRange(start=2012, end=2012).years() == [2012]
    with pytest.raises(ValueError):
        YearRange(start=2014, end=2012)
    with pytest.raises(ValueError):
        YearRange(start=1999, end=2012)
    with pytest.raises(ValueError):
        YearRange(start=2012, end=3000)


def test_validate_run_config_catches_unvalidated_copies(tmp_path) -> None:
    base = AppConfig()
    bad = base.model_copy(
        update={"years": base.years.model_copy(update={"start": 2020, "end": 2010})}
    ).resolve_paths(root=tmp_path)

    with pytest.raises(ConfigurationError):
        validate_run_config(bad)

    region, years = validate_run_config(base.resolve_paths(root=tmp_path))
    assert region == base.region
    assert years.years()[0] == 2012
