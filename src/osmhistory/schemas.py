from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# OpenStreetMap started collecting data in 2004; earlier snapshots are empty.
FIRST_OSM_YEAR = 2004


def _format_coordinate(value: float) -> str:
    text = f"{value:.7f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


class Region(BaseModel):
    """Bounding box in geographic coordinates (WGS84 lon/lat)."""

    model_config = ConfigDict(frozen=True)

    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    @model_validator(mode="after")
    def _check_bounds(self) -> "Region":
        if not (-180.0 <= self.min_lon <= 180.0 and -180.0 <= self.max_lon <= 180.0):
            raise ValueError(f"longitude out of range [-180, 180]: {self.min_lon}, {self.max_lon}")
        if not (-90.0 <= self.min_lat <= 90.0 and -90.0 <= self.max_lat <= 90.0):
            raise ValueError(f"latitude out of range [-90, 90]: {self.min_lat}, {self.max_lat}")
        if self.min_lon >= self.max_lon:
            raise ValueError(f"min_lon ({self.min_lon}) must be < max_lon ({self.max_lon})")
        if self.min_lat >= self.max_lat:
            raise ValueError(f"min_lat ({self.min_lat}) must be < max_lat ({self.max_lat})")
        return self

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.min_lon, self.min_lat, self.max_lon, self.max_lat)

    def as_osmium_bbox(self) -> str:
        # OSM stores coordinates with 7 decimal places.
        return ",".join(_format_coordinate(value) for value in self.as_tuple())


class YearRange(BaseModel):
    """Inclusive, contiguous range of snapshot years."""

    model_config = ConfigDict(frozen=True)

    start: int
    end: int

    @model_validator(mode="after")
    def _check_range(self) -> "YearRange":
        if self.start > self.end:
            raise ValueError(f"start year ({self.start}) must be <= end year ({self.end})")
        if self.start < FIRST_OSM_YEAR:
            raise ValueError(f"start year ({self.start}) predates OpenStreetMap ({FIRST_OSM_YEAR})")
        current = datetime.now(timezone.utc).year
        if self.end > current:
            raise ValueError(f"end year ({self.end}) is in the future (current year {current})")
        return self

    def years(self) -> list[int]:
        return list(range(self.start, self.end + 1))


class PoiFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str = "node"
    tag_key: str = "amenity"
    # None matches any feature carrying `tag_key`.
    tag_value: Optional[str] = "restaurant"


class PoiRecord(BaseModel):
    id: int
    tags: dict[str, str] = Field(default_factory=dict)
    lon: float
    lat: float
    year: int
