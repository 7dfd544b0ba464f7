"""
Configuration - Settings read from the environment.

Values may also come from a .env file in the working directory.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError


def _float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    # Strategy selection
    scoring_strategy: str = "weighted"
    weakpoint_strategy: str = "threshold"

    # Scoring parameters
    inheritance_decay: float = 0.5
    recency_half_life_days: float = 14.0
    discipline_saturation: float = 3.0
    confidence_saturation: float = 2.0

    # Weak point policy
    weakpoint_threshold: float = 0.6
    weakpoint_min_confidence: float = 0.7

    # Pipeline
    max_workers: int = 4
    log_level: str = "INFO"

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """Build settings from ELEVIO_* and REDIS_* environment variables."""
        if dotenv:
            load_dotenv()

        return cls(
            scoring_strategy=os.getenv("ELEVIO_SCORING_STRATEGY", "weighted"),
            weakpoint_strategy=os.getenv("ELEVIO_WEAKPOINT_STRATEGY", "threshold"),
            inheritance_decay=_float("ELEVIO_INHERITANCE_DECAY", 0.5),
            recency_half_life_days=_float("ELEVIO_RECENCY_HALF_LIFE_DAYS", 14.0),
            discipline_saturation=_float("ELEVIO_DISCIPLINE_SATURATION", 3.0),
            confidence_saturation=_float("ELEVIO_CONFIDENCE_SATURATION", 2.0),
            weakpoint_threshold=_float("ELEVIO_WEAKPOINT_THRESHOLD", 0.6),
            weakpoint_min_confidence=_float("ELEVIO_WEAKPOINT_MIN_CONFIDENCE", 0.7),
            max_workers=_int("ELEVIO_MAX_WORKERS", 4),
            log_level=os.getenv("ELEVIO_LOG_LEVEL", "INFO").upper(),
            redis_host=os.getenv("REDIS_HOST", "localhost"),
            redis_port=_int("REDIS_PORT", 6379),
            redis_password=os.getenv("REDIS_PASSWORD", None),
        )
