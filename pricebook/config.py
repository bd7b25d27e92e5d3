from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

DEFAULT_BATCH_SIZE = 25
DEFAULT_UNDO_WINDOW_SECONDS = 30
DEFAULT_MAX_AGE_SECONDS = 120
DEFAULT_IDLE_SECONDS = 30
DEFAULT_POLL_SECONDS = 2.0


@dataclass(frozen=True)
class JobEngineConfig:
    batch_size: int = DEFAULT_BATCH_SIZE
    undo_window_seconds: int = DEFAULT_UNDO_WINDOW_SECONDS
    max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS
    idle_seconds: int = DEFAULT_IDLE_SECONDS
    poll_seconds: float = DEFAULT_POLL_SECONDS

    def __post_init__(self) -> None:
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be > 0, got {self.batch_size}")
        if self.undo_window_seconds < 0:
            raise ValueError("undo_window_seconds must be >= 0")
        if self.max_age_seconds <= 0 or self.idle_seconds <= 0:
            raise ValueError("stuck-job thresholds must be > 0")
        if self.poll_seconds < 0:
            raise ValueError("poll_seconds must be >= 0")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def load_job_config_from_env() -> JobEngineConfig:
    """
    Настройки движка задач из переменных окружения.
    """
    return JobEngineConfig(
        batch_size=_env_int("PRICING_JOB_BATCH_SIZE", DEFAULT_BATCH_SIZE),
        undo_window_seconds=_env_int(
            "PRICING_UNDO_WINDOW_SECONDS", DEFAULT_UNDO_WINDOW_SECONDS
        ),
        max_age_seconds=_env_int("PRICING_JOB_MAX_AGE_SECONDS", DEFAULT_MAX_AGE_SECONDS),
        idle_seconds=_env_int("PRICING_JOB_IDLE_SECONDS", DEFAULT_IDLE_SECONDS),
        poll_seconds=_env_float("PRICING_JOB_POLL_SECONDS", DEFAULT_POLL_SECONDS),
    )
