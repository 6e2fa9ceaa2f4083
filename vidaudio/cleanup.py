"""
vidaudio.cleanup - Guaranteed removal of job artifacts.

Every name a job writes into the engine's file store is registered here
before the engine call that creates it. When the job scope exits, by
success or by exception, each remaining name is deleted exactly once.
Deletion failures are collected and logged; they never replace the job's
own outcome.
"""

from __future__ import annotations

from vidaudio.engine.base import Engine
from vidaudio.exceptions import ArtifactNotFoundError, EngineError
from vidaudio.logging import get_logger

logger = get_logger("cleanup")


class CleanupSet:
    """Names registered for deletion during the active job."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._names: dict[str, None] = {}
        self.errors: list[EngineError] = []

    def __enter__(self) -> CleanupSet:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.finalize()
        return False

    def __contains__(self, name: str) -> bool:
        return name in self._names

    def __len__(self) -> int:
        return len(self._names)

    @property
    def pending(self) -> list[str]:
        return list(self._names)

    def register(self, name: str) -> None:
        self._names.setdefault(name, None)

    def release(self, name: str) -> None:
        """Delete one registered name now and stop tracking it."""
        self._names.pop(name, None)
        self._delete(name)

    def finalize(self) -> list[EngineError]:
        """Attempt deletion of every remaining name.

        Returns:
            Deletion errors encountered (missing files are not errors)
        """
        names = list(self._names)
        self._names.clear()
        for name in names:
            self._delete(name)
        if self.errors:
            logger.warning("Cleanup left %d artifact(s) behind", len(self.errors))
        return list(self.errors)

    def _delete(self, name: str) -> None:
        try:
            self.engine.delete(name)
        except ArtifactNotFoundError:
            logger.debug("Already clean: %s", name)
        except EngineError as e:
            logger.warning("Failed to delete %s: %s", name, e)
            self.errors.append(e)
