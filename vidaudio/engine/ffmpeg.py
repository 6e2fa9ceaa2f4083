"""
vidaudio.engine.ffmpeg - FFmpeg-backed transcoding engine.

The engine's file store is a private temporary directory; commands run
with that directory as the working directory so every artifact is
addressed by a bare name. Progress is read from ffmpeg's machine-readable
``-progress pipe:1`` stream and turned into a fraction using the input
duration announced in the log header.
"""

from __future__ import annotations

import re
import shutil
import subprocess
import tempfile
from collections import deque
from pathlib import Path

from vidaudio.engine.base import Engine, check_name
from vidaudio.exceptions import ArtifactNotFoundError, EngineError, EngineUnavailableError
from vidaudio.logging import get_logger

logger = get_logger("engine.ffmpeg")

INSTALL_HINT = "Install with: brew install ffmpeg (macOS) or apt install ffmpeg (Linux)"

_DURATION_RE = re.compile(r"Duration:\s*(\d+:\d+:\d+(?:\.\d+)?)")
_PROGRESS_LINE_RE = re.compile(r"^([a-z0-9_]+)=(.*)$")
_PROGRESS_KEYS = {
    "frame",
    "fps",
    "bitrate",
    "total_size",
    "out_time_us",
    "out_time_ms",
    "out_time",
    "dup_frames",
    "drop_frames",
    "speed",
    "progress",
}

LOG_TAIL_LINES = 20


def hms_to_seconds(value: str) -> float:
    """Convert "HH:MM:SS.ss" (or plain seconds) to seconds; 0.0 if unparseable."""
    value = value.strip()
    try:
        parts = value.split(":")
        if len(parts) == 3:
            return int(parts[0]) * 3600 + int(parts[1]) * 60 + float(parts[2])
        return float(value)
    except ValueError:
        return 0.0


def parse_duration(line: str) -> float | None:
    match = _DURATION_RE.search(line)
    if not match:
        return None
    seconds = hms_to_seconds(match.group(1))
    return seconds if seconds > 0 else None


def parse_progress_line(line: str) -> tuple[str, str] | None:
    """Split a ``-progress`` key=value line; None for ordinary log lines."""
    match = _PROGRESS_LINE_RE.match(line)
    if not match:
        return None
    key = match.group(1)
    if key in _PROGRESS_KEYS or key.startswith("stream_"):
        return key, match.group(2).strip()
    return None


class FFmpegEngine(Engine):
    """Runs the ffmpeg executable against a private working directory."""

    def __init__(self, binary: str = "ffmpeg", workdir: Path | None = None) -> None:
        super().__init__()
        self.binary = binary
        self._requested_workdir = workdir
        self._owns_workdir = False
        self._resolved: str | None = None
        self.workdir: Path | None = None

    @property
    def loaded(self) -> bool:
        return self._resolved is not None and self.workdir is not None

    def load(self) -> None:
        if self.loaded:
            return
        resolved = shutil.which(self.binary)
        if not resolved:
            raise EngineUnavailableError(
                "ffmpeg", f"'{self.binary}' not found in PATH", INSTALL_HINT
            )
        if self._requested_workdir is not None:
            self._requested_workdir.mkdir(parents=True, exist_ok=True)
            self.workdir = self._requested_workdir
        else:
            try:
                self.workdir = Path(tempfile.mkdtemp(prefix="vidaudio-"))
            except OSError as e:
                raise EngineUnavailableError("ffmpeg", f"Cannot create working directory: {e}") from e
            self._owns_workdir = True
        self._resolved = resolved
        logger.debug("Loaded %s with store %s", resolved, self.workdir)

    def close(self) -> None:
        """Drop the working directory if this engine created it."""
        if self.workdir is not None and self._owns_workdir:
            shutil.rmtree(self.workdir, ignore_errors=True)
        self.workdir = None
        self._owns_workdir = False
        self._resolved = None

    def _path(self, name: str) -> Path:
        if not self.loaded:
            raise EngineError("Engine not loaded")
        return self.workdir / check_name(name)

    def write(self, name: str, data: bytes) -> None:
        path = self._path(name)
        try:
            path.write_bytes(data)
        except OSError as e:
            raise EngineError(f"Cannot write {name}: {e}") from e

    def read(self, name: str) -> bytes:
        path = self._path(name)
        if not path.is_file():
            raise ArtifactNotFoundError(name)
        try:
            return path.read_bytes()
        except OSError as e:
            raise EngineError(f"Cannot read {name}: {e}") from e

    def delete(self, name: str) -> None:
        path = self._path(name)
        if not path.is_file():
            raise ArtifactNotFoundError(name)
        try:
            path.unlink()
        except OSError as e:
            raise EngineError(f"Cannot delete {name}: {e}") from e

    def list(self, directory: str = ".") -> list[str]:
        if not self.loaded:
            raise EngineError("Engine not loaded")
        root = self.workdir if directory in (".", "") else self._path(directory)
        if not root.is_dir():
            raise ArtifactNotFoundError(directory)
        return sorted(p.name for p in root.iterdir() if p.is_file())

    def exec(self, args: list[str]) -> None:
        if not self.loaded:
            raise EngineError("Engine not loaded")

        cmd = [
            self._resolved,
            "-hide_banner",
            "-nostdin",
            "-y",
            "-nostats",
            "-progress",
            "pipe:1",
            *args,
        ]
        logger.debug("Running: %s", " ".join(cmd))

        try:
            proc = subprocess.Popen(
                cmd,
                cwd=self.workdir,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as e:
            raise EngineError(f"Cannot start {self.binary}: {e}") from e

        tail: deque[str] = deque(maxlen=LOG_TAIL_LINES)

        try:
            duration = self._pump(proc, tail)
        except BaseException:
            proc.kill()
            proc.wait()
            raise

        returncode = proc.wait()
        if returncode != 0:
            detail = "\n".join(tail)
            raise EngineError(f"{self.binary} exited with code {returncode}\n{detail}".rstrip())
        logger.debug("Finished in store %s (input duration %s)", self.workdir, duration)

    def _pump(self, proc: subprocess.Popen, tail: deque[str]) -> float | None:
        """Dispatch ffmpeg output lines as log and progress events until EOF."""
        duration: float | None = None
        for raw in proc.stdout:
            line = raw.rstrip("\r\n")
            if not line:
                continue
            progress = parse_progress_line(line)
            if progress is None:
                tail.append(line)
                if duration is None:
                    duration = parse_duration(line)
                self.emit("log", line)
                continue

            key, value = progress
            if key in ("out_time_us", "out_time_ms") and duration:
                try:
                    seconds = int(value) / 1_000_000
                except ValueError:
                    continue
                self.emit("progress", min(max(seconds / duration, 0.0), 1.0))
            elif key == "progress" and value == "end":
                self.emit("progress", 1.0)
        return duration
