"""Policy definitions for preference scoring.

This module contains the configurable constants and curves used when turning
schedule metrics into 0-100 sub-scores. Policies are kept separate from the
scoring engine so they can be tested and tuned on their own.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass


class ScoringPolicy(ABC):
    """Abstract base class for scoring policies."""

    @abstractmethod
    def clamp_weight(self, weight: float) -> float:
        """Clamp a user-supplied weight into the allowed range.

        Non-finite weights are treated as 0.
        """
        pass

    @abstractmethod
    def max_expected_blocks(self, block_length: int) -> int:
        """Block count at which the block preference score reaches 0.

        Args:
            block_length: Block length in days (4 or 5).
        """
        pass

    @abstractmethod
    def block_preference_score(self, count: int, desired: int, block_length: int) -> float:
        """Score how close a block count is to the desired count.

        Args:
            count: Blocks of the given length in the schedule.
            desired: Blocks of that length the user wants.
            block_length: Block length in days.

        Returns:
            Score from 0 to 100.
        """
        pass

    @abstractmethod
    def exposure_score(self, hits: int, pairs: int) -> float:
        """Score weekend exposure; fewer worked weekend days scores higher.

        Args:
            hits: Weekend pairs counted against the user.
            pairs: Total weekend pairs in the period.

        Returns:
            Score from 0 to 100.
        """
        pass

    @abstractmethod
    def neutral_score(self) -> float:
        """Score returned when no factor is active."""
        pass

    @abstractmethod
    def empty_schedule_score(self) -> float:
        """Score returned for a schedule with no worked shifts."""
        pass


@dataclass
class DefaultScoringPolicy(ScoringPolicy):
    """Default scoring policy implementation.

    Weights:
    - Clamped to [0, 5]; a weight of 0 drops the factor

    Block preference:
    - 100 at the desired count, falling linearly to 0 at
      6 blocks away (5-day) or 8 blocks away (4-day)

    Fallbacks:
    - No active factor: 0
    - No worked shifts: 0
    """

    min_weight: float = 0.0
    max_weight: float = 5.0

    max_expected_5day_blocks: int = 6
    max_expected_4day_blocks: int = 8

    neutral: float = 0.0
    empty_schedule: float = 0.0

    def clamp_weight(self, weight: float) -> float:
        try:
            value = float(weight)
        except (TypeError, ValueError):
            return self.min_weight
        if not math.isfinite(value):
            return self.min_weight
        return max(self.min_weight, min(self.max_weight, value))

    def max_expected_blocks(self, block_length: int) -> int:
        if block_length == 5:
            return self.max_expected_5day_blocks
        if block_length == 4:
            return self.max_expected_4day_blocks
        raise ValueError(f"No block preference for {block_length}-day blocks")

    def block_preference_score(self, count: int, desired: int, block_length: int) -> float:
        max_expected = self.max_expected_blocks(block_length)
        if max_expected <= 0:
            return 100.0 if count == desired else 0.0
        return max(0.0, 100.0 - abs(count - desired) / max_expected * 100.0)

    def exposure_score(self, hits: int, pairs: int) -> float:
        if pairs <= 0:
            return 100.0
        ratio = min(1.0, max(0.0, hits / pairs))
        return 100.0 * (1.0 - ratio)

    def neutral_score(self) -> float:
        return self.neutral

    def empty_schedule_score(self) -> float:
        return self.empty_schedule
