from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from osmhistory.errors import ConfigurationError
from osmhistory.schemas import PoiFilter, Region, YearRange


def project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(root: Path, value: str | Path) -> Path:
    path = Path(value)
    return path if path.is_absolute() else (root / path)


class AppSection(BaseModel):
    name: str = "osmhistory"


class PathsSection(BaseModel):
    data_dir: Path = Path("data")
    snapshot_dir: Path = Path("data/snapshots")
    output_dir: Path = Path("data/output")
    ledger_path: Path = Path("data/cache/runs.jsonl")


class SourceSection(BaseModel):
    archive_path: Path = Path("data/africa-internal.osh.pbf")
    url: Optional[str] = None
    cookie_env: str = "GEOFABRIK_COOKIE"
    request_timeout_seconds: int = 60
    max_retries: int = 3
    retry_backoff_seconds: float = 2.0


class SnapshotsSection(BaseModel):
    prefix: str = "togo"
    extension: str = "osm.pbf"
    extract_name: str = "togo-history.osh.pbf"
    format: Literal["osm", "parquet"] = "osm"


class OsmiumSection(BaseModel):
    binary: str = "osmium"
    timeout_seconds: Optional[float] = None
    on_error: Literal["abort", "continue"] = "abort"


class DuckdbSection(BaseModel):
    database: str = ":memory:"
    threads: Optional[int] = None
    memory_limit: Optional[str] = None
    load_spatial: bool = True


class AppConfig(BaseModel):
    app: AppSection = Field(default_factory=AppSection)
    paths: PathsSection = Field(default_factory=PathsSection)
    source: SourceSection = Field(default_factory=SourceSection)
    region: Region = Field(
        default_factory=lambda: Region(min_lon=-0.15, min_lat=5.9, max_lon=1.81, max_lat=11.14)
    )
    years: YearRange = Field(default_factory=lambda: YearRange(start=2012, end=2024))
    snapshots: SnapshotsSection = Field(default_factory=SnapshotsSection)
    osmium: OsmiumSection = Field(default_factory=OsmiumSection)
    query: PoiFilter = Field(default_factory=PoiFilter)
    duckdb: DuckdbSection = Field(default_factory=DuckdbSection)

    def resolve_paths(self, root: Optional[Path] = None) -> "AppConfig":
        repo_root = project_root() if root is None else root
        updated_paths = self.paths.model_copy(
            update={
                "data_dir": _resolve_path(repo_root, self.paths.data_dir),
                "snapshot_dir": _resolve_path(repo_root, self.paths.snapshot_dir),
                "output_dir": _resolve_path(repo_root, self.paths.output_dir),
                "ledger_path": _resolve_path(repo_root, self.paths.ledger_path),
            }
        )
        updated_source = self.source.model_copy(
            update={"archive_path": _resolve_path(repo_root, self.source.archive_path)}
        )
        return self.model_copy(update={"paths": updated_paths, "source": updated_source})


def _maybe_load_dotenv() -> None:
    try:
        from dotenv import load_dotenv  # type: ignore
    except ImportError:
        return

    load_dotenv()


def load_config(config_path: str | Path | None = None) -> AppConfig:
    _maybe_load_dotenv()

    root = project_root()
    candidate = config_path or os.getenv("OSMHISTORY_CONFIG", "configs/config.yaml")
    path = _resolve_path(root, candidate)
    if not path.exists():
        path = root / "configs/config.example.yaml"

    data: dict[str, Any] = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    try:
        config = AppConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration in {path}: {exc}") from exc
    return config.resolve_paths(root)


_CONFIG: AppConfig | None = None


def get_config() -> AppConfig:
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = load_config()
    return _CONFIG
