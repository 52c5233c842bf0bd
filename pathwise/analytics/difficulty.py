"""
Difficulty Adapter.

Keeps learners in the optimal learning zone (~70-75% accuracy) by mapping
accuracy to a 1-10 difficulty level and nudging it one step at a time.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from pathwise.exceptions import InvalidInputError

# (upper bound of accuracy band, difficulty) - first band that fits wins
DIFFICULTY_BANDS: tuple[tuple[float, int], ...] = (
    (50.0, 3),  # Very easy
    (60.0, 5),  # Easy
    (70.0, 6),  # Medium-easy
    (80.0, 7),  # Medium
    (90.0, 8),  # Medium-hard
)
TOP_DIFFICULTY = 9


@dataclass
class DifficultyConfig:
    target_accuracy: float = 72.5
    tolerance: float = 10.0
    min_samples: int = 10  # Adjust only with strictly more samples
    min_level: int = 1
    max_level: int = 10
    default_score: float = 50.0  # Used when no average score exists yet


class DifficultyAdapter:
    """Maps accuracy to difficulty and adjusts it from rolling accuracy."""

    def __init__(self, config: DifficultyConfig | None = None):
        self.config = config or DifficultyConfig()

    @property
    def target_band(self) -> tuple[float, float]:
        cfg = self.config
        return (cfg.target_accuracy - cfg.tolerance, cfg.target_accuracy + cfg.tolerance)

    def calculate_optimal_difficulty(self, avg_score: float | None) -> int:
        """Step function from average accuracy to a starting difficulty (3-9)."""
        accuracy = avg_score or self.config.default_score
        for upper, level in DIFFICULTY_BANDS:
            if accuracy < upper:
                return level
        return TOP_DIFFICULTY

    def adjust_difficulty(self, current: int, accuracy: float, sample_count: int) -> int:
        """
        Move difficulty one step toward the target accuracy band.

        Unchanged while accuracy stays inside the band or there are too few
        samples to trust it.
        """
        cfg = self.config
        if not cfg.min_level <= current <= cfg.max_level:
            raise InvalidInputError(
                f"Difficulty must be within [{cfg.min_level}, {cfg.max_level}], got {current}"
            )
        if sample_count <= cfg.min_samples:
            return current

        low, high = self.target_band
        if accuracy > high:
            adjusted = min(current + 1, cfg.max_level)
        elif accuracy < low:
            adjusted = max(current - 1, cfg.min_level)
        else:
            adjusted = current

        if adjusted != current:
            logger.debug(f"Difficulty {current} -> {adjusted} (accuracy {accuracy:.1f}%)")
        return adjusted
