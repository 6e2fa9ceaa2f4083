"""
vidaudio.validation - Dependency checks and validation utilities.

Validates environment, dependencies, and input files before processing.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Any

from vidaudio.engine.ffmpeg import INSTALL_HINT
from vidaudio.exceptions import DependencyError, ValidationError


def check_ffmpeg(binary: str = "ffmpeg") -> dict[str, str]:
    """Check if FFmpeg is installed and get its version.

    Args:
        binary: Executable name or path

    Returns:
        Dict with 'ffmpeg_path' and 'ffmpeg_version'

    Raises:
        DependencyError: If FFmpeg not found
    """
    ffmpeg_path = shutil.which(binary)
    if not ffmpeg_path:
        raise DependencyError("ffmpeg", f"'{binary}' not found in PATH", INSTALL_HINT)

    result = {"ffmpeg_path": ffmpeg_path}
    try:
        proc = subprocess.run(
            [ffmpeg_path, "-version"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        version_line = proc.stdout.split("\n")[0]
        result["ffmpeg_version"] = version_line.split()[2] if version_line else "unknown"
    except (subprocess.TimeoutExpired, IndexError, OSError):
        result["ffmpeg_version"] = "unknown"

    return result


def check_disk_space(path: Path, required_mb: int) -> dict[str, Any]:
    """Check if there's enough disk space at the given path.

    Args:
        path: Path to check (nearest existing parent is used)
        required_mb: Required space in megabytes

    Returns:
        Dict with 'available_mb', 'required_mb', 'sufficient'

    Raises:
        ValidationError: If no parent of path exists
    """
    check_path = path.parent if path.is_file() else path
    while not check_path.exists() and check_path != check_path.parent:
        check_path = check_path.parent

    try:
        stat = shutil.disk_usage(check_path)
        available_mb = stat.free // (1024 * 1024)

        return {
            "available_mb": available_mb,
            "required_mb": required_mb,
            "sufficient": available_mb >= required_mb,
        }
    except OSError as e:
        raise ValidationError(f"Cannot check disk space: {e}") from e


def estimate_required_mb(input_sizes: list[int]) -> int:
    """Upper bound for output size: the audio never outweighs its videos.

    Args:
        input_sizes: Input file sizes in bytes

    Returns:
        Required space in megabytes, at least 1
    """
    return max(1, sum(input_sizes) // (1024 * 1024) + 1)


def validate_video_file(path: Path) -> dict[str, Any]:
    """Validate a video file exists and is a regular file.

    Args:
        path: Path to video file

    Returns:
        Dict with validation results

    Raises:
        ValidationError: If file doesn't exist or is invalid
    """
    if not path.exists():
        raise ValidationError(f"File not found: {path}")

    if not path.is_file():
        raise ValidationError(f"Not a file: {path}")

    size = path.stat().st_size
    if size == 0:
        raise ValidationError(f"File is empty: {path}")

    return {
        "path": str(path),
        "exists": True,
        "size_bytes": size,
        "size_mb": size // (1024 * 1024),
    }
