from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from osmhistory.settings import AppConfig


def ensure_parent_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def snapshot_path(root: Path, year: int, *, prefix: str, extension: str) -> Path:
    return Path(root) / f"{prefix}-{int(year)}.{extension.lstrip('.')}"


def extract_path(config: AppConfig) -> Path:
    return config.paths.data_dir / config.snapshots.extract_name


@dataclass(frozen=True)
class SnapshotRegistry:
    """Maps a year to its snapshot file.

    The time-slice writer and the union query reader both go through the same
    registry so their file names cannot drift apart.
    """

    root: Path
    prefix: str
    extension: str = "osm.pbf"

    def path(self, year: int) -> Path:
        return snapshot_path(self.root, year, prefix=self.prefix, extension=self.extension)

    def paths(self, years: Iterable[int]) -> dict[int, Path]:
        return {int(year): self.path(year) for year in years}

    def missing(self, years: Iterable[int]) -> dict[int, Path]:
        return {year: path for year, path in self.paths(years).items() if not path.exists()}


def registry_from_config(config: AppConfig) -> SnapshotRegistry:
    return SnapshotRegistry(
        root=config.paths.snapshot_dir,
        prefix=config.snapshots.prefix,
        extension=config.snapshots.extension,
    )
