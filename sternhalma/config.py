"""Environment-driven configuration for the Sternhalma engine.

Values are read once at import time. Each setting has a ``STERNHALMA_``
prefixed environment variable and a default suitable for local play.
"""

from __future__ import annotations

import os
from pathlib import Path

from sternhalma.errors import ConfigurationError


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"{name} must be an integer",
            context={"value": raw},
        ) from exc
    if value < 1:
        raise ConfigurationError(f"{name} must be >= 1", context={"value": value})
    return value


_STATE_DIR = Path(os.getenv("STERNHALMA_HOME", str(Path.home() / ".sternhalma")))

EVOLVED_GENOME_PATH = Path(
    os.getenv("STERNHALMA_EVOLVED_GENOME", str(_STATE_DIR / "evolved_genome.json"))
)
LEARNING_DATA_PATH = Path(
    os.getenv("STERNHALMA_LEARNING_DATA", str(_STATE_DIR / "learning.json"))
)
CHECKPOINT_DIR = Path(os.getenv("STERNHALMA_CHECKPOINT_DIR", "runs/training"))

AI_WORKERS = _env_int("STERNHALMA_AI_WORKERS", max(1, (os.cpu_count() or 2) - 1))
DISTANCE_CACHE_SIZE = _env_int("STERNHALMA_DISTANCE_CACHE_SIZE", 50)
LEARNING_ENABLED = _env_flag("STERNHALMA_LEARNING_ENABLED", "true")
LOG_LEVEL = os.getenv("STERNHALMA_LOG_LEVEL", "INFO").upper()
