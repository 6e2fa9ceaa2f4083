"""
vidaudio.progress - Weighted, monotonic job progress.

Maps a sequence of weighted stages onto one 0-100 value. The aggregator is
the single source of truth for a job's progress: engine progress events
are routed to whichever stage is current, and the emitted value never
goes backwards even if the engine reports a transient regression.
"""

from __future__ import annotations

from typing import Callable

from vidaudio.logging import get_logger

logger = get_logger("progress")

TRANSCODE_SHARE = 0.7
MERGE_SHARE = 0.3

ProgressListener = Callable[[int, str], None]


def batch_weights(input_count: int) -> list[float]:
    """Per-file transcodes share 70% evenly; the merge/segment stage gets 30%."""
    if input_count < 1:
        raise ValueError("input_count must be at least 1")
    per_file = TRANSCODE_SHARE / input_count
    return [per_file] * input_count + [MERGE_SHARE]


def single_weights() -> list[float]:
    return [1.0]


class ProgressAggregator:
    """Weighted progress over an ordered list of stages."""

    def __init__(self, weights: list[float], listener: ProgressListener | None = None) -> None:
        if not weights:
            raise ValueError("at least one stage weight is required")
        if any(w <= 0.0 or w > 1.0 for w in weights):
            raise ValueError("stage weights must be in (0, 1]")
        if abs(sum(weights) - 1.0) > 1e-6:
            raise ValueError(f"stage weights must sum to 1, got {sum(weights):.6f}")
        self._weights = list(weights)
        self._offsets = [sum(self._weights[:i]) for i in range(len(self._weights))]
        self._listener = listener
        self._current = 0
        self._label = ""
        self._value = 0

    @property
    def value(self) -> int:
        return self._value

    @property
    def stage_count(self) -> int:
        return len(self._weights)

    @property
    def current_stage(self) -> int:
        return self._current

    def weight(self, stage_index: int) -> float:
        return self._weights[stage_index]

    def begin_stage(self, stage_index: int, label: str) -> int:
        """Make stage_index the target of subsequent update() calls."""
        if not 0 <= stage_index < len(self._weights):
            raise IndexError(f"stage {stage_index} out of range")
        self._current = stage_index
        self._label = label
        return self.report(stage_index, 0.0)

    def update(self, fraction: float) -> int:
        """Engine progress callback: fraction of the current stage."""
        return self.report(self._current, fraction)

    def report(self, stage_index: int, fraction: float) -> int:
        """Record partial completion of a stage and return the overall percent.

        Args:
            stage_index: Index of the stage the fraction belongs to
            fraction: Completion of that stage, clamped to [0, 1]

        Returns:
            Overall percent in [0, 100], never lower than the last value
        """
        fraction = min(max(fraction, 0.0), 1.0)
        raw = 100 * (self._offsets[stage_index] + self._weights[stage_index] * fraction)
        percent = min(100, round(raw))
        if percent < self._value:
            logger.debug("Ignoring progress regression %d -> %d", self._value, percent)
            percent = self._value
        self._value = percent
        self._emit()
        return percent

    def complete(self, label: str = "Done") -> int:
        self._current = len(self._weights) - 1
        self._label = label
        self._value = 100
        self._emit()
        return 100

    def _emit(self) -> None:
        if self._listener:
            self._listener(self._value, self._label)
