"""
vidaudio.engine.base - Transcoding engine boundary.

An engine owns a flat, private file store (its "virtual filesystem") and
runs transcode commands against it. It publishes two event streams:
"log" (one text line per event) and "progress" (a fraction in [0, 1]
for the command currently running). One command runs at a time.
"""

from __future__ import annotations

from typing import Any, Callable

from vidaudio.exceptions import EngineError

EVENTS = ("log", "progress")


class Engine:
    """Base class for transcoding engines."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Callable[[Any], None]]] = {e: [] for e in EVENTS}

    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        if event not in self._listeners:
            raise ValueError(f"Unknown engine event: {event}")
        if handler not in self._listeners[event]:
            self._listeners[event].append(handler)

    def off(self, event: str, handler: Callable[[Any], None]) -> None:
        if event not in self._listeners:
            raise ValueError(f"Unknown engine event: {event}")
        if handler in self._listeners[event]:
            self._listeners[event].remove(handler)

    def emit(self, event: str, value: Any) -> None:
        for handler in list(self._listeners[event]):
            handler(value)

    def __enter__(self) -> Engine:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    def close(self) -> None:
        """Release engine resources. The default engine holds none."""
        pass

    @property
    def loaded(self) -> bool:
        raise NotImplementedError

    def load(self) -> None:
        """Prepare the engine for use.

        Raises:
            EngineUnavailableError: If the engine cannot be initialized
        """
        raise NotImplementedError

    def write(self, name: str, data: bytes) -> None:
        raise NotImplementedError

    def exec(self, args: list[str]) -> None:
        """Run one command to completion.

        Raises:
            EngineError: If the command fails
        """
        raise NotImplementedError

    def read(self, name: str) -> bytes:
        raise NotImplementedError

    def delete(self, name: str) -> None:
        """Remove a file from the store.

        Raises:
            ArtifactNotFoundError: If name does not exist
        """
        raise NotImplementedError

    def list(self, directory: str = ".") -> list[str]:
        """Names in the store, sorted."""
        raise NotImplementedError


def check_name(name: str) -> str:
    """Reject names that would escape a flat file store."""
    if not name or name in (".", "..") or "/" in name or "\\" in name:
        raise EngineError(f"Invalid artifact name: {name!r}")
    return name
