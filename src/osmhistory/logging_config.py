from __future__ import annotations

import logging.config
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from osmhistory.settings import project_root

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _default_config(level: str) -> dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"standard": {"format": LOG_FORMAT}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "standard",
                "stream": "ext://sys.stderr",
            }
        },
        # httpx logs every request at INFO; archive downloads only need failures.
        "loggers": {"httpx": {"level": "WARNING"}},
        "root": {"level": level, "handlers": ["console"]},
    }


def configure_logging(
    logging_config_path: str | Path | None = None, *, level: Optional[str] = None
) -> None:
    """Configure logging from YAML, or a stderr console handler when no file exists.

    `level` overrides the root level either way (scripts pass it for `--verbose`).
    """

    root = project_root()
    candidate = logging_config_path or os.getenv(
        "OSMHISTORY_LOGGING_CONFIG", "configs/logging.yaml"
    )
    path = Path(candidate)
    if not path.is_absolute():
        path = root / path

    if path.exists():
        config: dict[str, Any] = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    else:
        config = _default_config(level or "INFO")

    if level:
        config.setdefault("root", {})["level"] = level.upper()
    logging.config.dictConfig(config)
