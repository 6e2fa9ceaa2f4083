"""
Test configuration and shared fixtures.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from vidaudio.engine.base import Engine, check_name
from vidaudio.exceptions import ArtifactNotFoundError, EngineError, EngineUnavailableError
from vidaudio.job import InputFile


def _manifest_entries(manifest: bytes) -> list[str]:
    names = []
    for line in manifest.decode("utf-8").splitlines():
        if not line.startswith("file "):
            continue
        quoted = line[len("file ") :]
        names.append(quoted[1:-1].replace("'\\''", "'"))
    return names


class FakeEngine(Engine):
    """In-memory engine that imitates ffmpeg's transcode/concat/segment behavior.

    Transcoding prefixes the source bytes with b"mp3:"; concatenation joins the
    listed files; segmenting writes ``segment_count`` files.
    """

    def __init__(
        self,
        segment_count: int = 3,
        progress_steps: tuple[float, ...] = (0.25, 0.6, 0.4, 1.0),
    ) -> None:
        super().__init__()
        self.files: dict[str, bytes] = {}
        self.execs: list[list[str]] = []
        self.ops: list[tuple[str, str]] = []
        self.segment_count = segment_count
        self.progress_steps = progress_steps
        self.fail_load = False
        self.fail_exec_on: str | None = None
        self.fail_delete: set[str] = set()
        self.is_loaded = False
        self.closed = False

    @property
    def loaded(self) -> bool:
        return self.is_loaded

    def load(self) -> None:
        self.ops.append(("load", ""))
        if self.fail_load:
            raise EngineUnavailableError("fake", "refused to load", "try again")
        self.is_loaded = True

    def close(self) -> None:
        self.closed = True

    def write(self, name: str, data: bytes) -> None:
        self.ops.append(("write", name))
        self.files[check_name(name)] = bytes(data)

    def read(self, name: str) -> bytes:
        self.ops.append(("read", name))
        if name not in self.files:
            raise ArtifactNotFoundError(name)
        return self.files[name]

    def delete(self, name: str) -> None:
        self.ops.append(("delete", name))
        if name in self.fail_delete:
            raise EngineError(f"cannot delete {name}")
        if name not in self.files:
            raise ArtifactNotFoundError(name)
        del self.files[name]

    def list(self, directory: str = ".") -> list[str]:
        self.ops.append(("list", directory))
        return sorted(self.files)

    def exec(self, args: list[str]) -> None:
        self.ops.append(("exec", " ".join(args)))
        self.execs.append(list(args))
        self.emit("log", "ffmpeg " + " ".join(args))
        for fraction in self.progress_steps:
            self.emit("progress", fraction)

        if self.fail_exec_on is not None and self.fail_exec_on in args:
            if "segment" in args:
                self.files["output_000.mp3"] = b"partial"
            raise EngineError(f"simulated failure on {self.fail_exec_on}")

        source = args[args.index("-i") + 1]
        if source not in self.files:
            raise EngineError(f"{source}: No such file or directory")

        if "concat" in args:
            parts = []
            for name in _manifest_entries(self.files[source]):
                if name not in self.files:
                    raise EngineError(f"{name}: No such file or directory")
                parts.append(self.files[name])
            merged = b"".join(parts)
            if "segment" in args:
                pattern = args[-1]
                for index in range(self.segment_count):
                    self.files[pattern % index] = merged + f"#{index}".encode()
            else:
                self.files[args[-1]] = merged
        else:
            self.files[args[-1]] = b"mp3:" + self.files[source]


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def video_a() -> InputFile:
    return InputFile(name="a.mp4", data=b"video-a")


@pytest.fixture
def video_b() -> InputFile:
    return InputFile(name="b.mp4", data=b"video-b")


@pytest.fixture
def video_files(tmp_path: Path) -> list[Path]:
    """Two small stand-in video files on disk."""
    paths = []
    for name in ("first.mp4", "second.mp4"):
        path = tmp_path / "videos" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(f"fake video {name}".encode())
        paths.append(path)
    return paths


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Directory holding a vidaudio.yaml with the podcast profile."""
    directory = tmp_path / "config"
    directory.mkdir()
    config = {"profile": "podcast", "output_dir": "audio"}
    with open(directory / "vidaudio.yaml", "w") as f:
        yaml.dump(config, f)
    return directory


@pytest.fixture
def sample_config_dict() -> dict:
    """Return a sample configuration dictionary."""
    return {
        "profile": "default",
        "speed": 1.5,
        "downsample": True,
        "split_seconds": 30,
        "output_dir": "out",
        "ffmpeg_binary": "ffmpeg",
    }
