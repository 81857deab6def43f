"""Data-volume confidence: more history, more confidence, capped."""

from __future__ import annotations

from kisansense.config import EngineConfig

_DEFAULT_ENGINE = EngineConfig()


def confidence_percent(n_points: int, config: EngineConfig = _DEFAULT_ENGINE) -> int:
    """Return ``min(cap, base + per_point * n)``; 40 + 2n capped at 95 by default.

    Negative counts are treated as zero.
    """
    n = max(0, n_points)
    return min(config.confidence_cap, config.confidence_base + config.confidence_per_point * n)
