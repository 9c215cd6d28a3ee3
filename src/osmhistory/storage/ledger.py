from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


def new_run_id() -> str:
    return uuid.uuid4().hex[:12]


def safe_append_ledger_entry(path: Path, entry: dict[str, Any]) -> None:
    """Append a single JSON line to the run ledger.

    This is best-effort: a run should not fail because the ledger cannot be written.
    """

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(entry, ensure_ascii=False, separators=(",", ":"), default=str)
        with path.open("a", encoding="utf-8") as handle:
            handle.write(payload + "\n")
    except (OSError, TypeError, ValueError) as exc:
        logger.warning("Could not append to run ledger %s: %s", path, exc)


def read_ledger_entries(path: Path, *, run_id: Optional[str] = None) -> list[dict[str, Any]]:
    """Return every valid entry (optionally for one run), skipping corrupt lines."""

    if not path.exists():
        return []

    entries: list[dict[str, Any]] = []
    with path.open("r", encoding="utf-8", errors="ignore") as handle:
        for line in handle:
            line = line.strip()
            if not line:
                continue
            try:
                parsed = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(parsed, dict):
                continue
            if run_id is not None and parsed.get("run_id") != run_id:
                continue
            entries.append(parsed)
    return entries


def read_latest_ledger_entry(path: Path) -> dict[str, Any] | None:
    entries = read_ledger_entries(path)
    return entries[-1] if entries else None
