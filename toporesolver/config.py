"""
Central configuration loaded from environment variables with sensible defaults.
Resolver constructors fall back to these values when an argument is omitted.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


def _optional_str(name: str) -> Optional[str]:
    raw = os.getenv(name, "").strip()
    return raw or None


@dataclass(frozen=True)
class ResolverConfig:
    # SPIDER/WMD
    wmd_iterations: int = int(os.getenv("TR_WMD_ITERATIONS", "10"))
    # Seed for the random backoff resolver (unset = nondeterministic)
    random_seed: Optional[int] = field(default_factory=lambda: _optional_int("TR_RANDOM_SEED"))
    # Probabilistic blending
    pop_component_coefficient: float = float(os.getenv("TR_POP_COEFFICIENT", "0.0"))
    context_window_size: int = int(os.getenv("TR_CONTEXT_WINDOW", "20"))
    # Number of ranked cells kept from the log (-1 = all ranks present)
    cell_knn: int = int(os.getenv("TR_CELL_KNN", "-1"))
    # C in the mixing coefficient f(t) / (f(t) + C)
    mixing_constant: float = float(os.getenv("TR_MIXING_CONSTANT", "1e-4"))
    stoplist_path: Optional[str] = field(default_factory=lambda: _optional_str("TR_STOPLIST"))


@dataclass(frozen=True)
class EvaluationConfig:
    # Characters kept on each side of a toponym when building a signature
    signature_window: int = int(os.getenv("TR_SIGNATURE_WINDOW", "20"))
    distance_threshold_km: float = float(os.getenv("TR_DISTANCE_THRESHOLD_KM", "161.0"))
    errors_path: Optional[str] = field(
        default_factory=lambda: os.getenv("TR_ERRORS_PATH", "errors.txt") or None
    )


@dataclass(frozen=True)
class Settings:
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    evaluation: EvaluationConfig = field(default_factory=EvaluationConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    env: str = os.getenv("APP_ENV", "development")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
