from __future__ import annotations

from datetime import datetime, timezone


def snapshot_datetime(year: int) -> datetime:
    """Midnight UTC on January 1st of `year`."""
    return datetime(int(year), 1, 1, tzinfo=timezone.utc)


def snapshot_timestamp(year: int) -> str:
    return snapshot_datetime(year).strftime("%Y-%m-%dT%H:%M:%SZ")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
