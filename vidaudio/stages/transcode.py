"""
vidaudio.stages.transcode - Video to MP3 transcode stage.

Drops the video stream and encodes the audio with LAME at the highest VBR
quality, optionally resampling to 22.05 kHz and time-stretching with
ffmpeg's atempo filter.
"""

from __future__ import annotations

import math

from vidaudio.cleanup import CleanupSet
from vidaudio.engine.base import Engine
from vidaudio.exceptions import EngineError, StageFailureError
from vidaudio.job import InputFile, JobOptions
from vidaudio.logging import get_logger

logger = get_logger("stages.transcode")

AUDIO_CODEC = "libmp3lame"
AUDIO_QUALITY = "0"
DOWNSAMPLE_RATE = 22050

ATEMPO_MIN = 0.5
ATEMPO_MAX = 2.0


def tempo_factors(speed: float) -> list[float]:
    """Split speed into atempo factors that each stay within [0.5, 2.0].

    >>> tempo_factors(1.25)
    [1.25]
    >>> tempo_factors(4.0)
    [2.0, 2.0]
    """
    if not (math.isfinite(speed) and speed > 0):
        raise ValueError(f"speed must be a finite positive number, got {speed}")
    factors = []
    remaining = speed
    while remaining > ATEMPO_MAX:
        factors.append(ATEMPO_MAX)
        remaining /= ATEMPO_MAX
    while remaining < ATEMPO_MIN:
        factors.append(ATEMPO_MIN)
        remaining /= ATEMPO_MIN
    factors.append(remaining)
    return factors


def build_tempo_filter(speed: float) -> str:
    """Chained atempo filter; factors keep 15 significant digits."""
    return ",".join(f"atempo={f:.15g}" for f in tempo_factors(speed))


def build_transcode_command(
    source: str,
    target: str,
    speed: float = 1.0,
    downsample: bool = False,
) -> list[str]:
    """Engine arguments that turn source into an MP3 named target."""
    cmd = ["-i", source, "-vn", "-acodec", AUDIO_CODEC, "-q:a", AUDIO_QUALITY]
    if downsample:
        cmd += ["-ar", str(DOWNSAMPLE_RATE)]
    if speed != 1.0:
        cmd += ["-filter:a", build_tempo_filter(speed)]
    cmd.append(target)
    return cmd


def run_transcode(
    engine: Engine,
    cleanup: CleanupSet,
    source: InputFile,
    target: str,
    options: JobOptions,
) -> str:
    """Transcode one input inside the engine's file store.

    Args:
        engine: Loaded engine
        cleanup: Job cleanup set; the input and target are registered first
        source: Input file to write into the store
        target: Name of the audio artifact to produce
        options: Shared job options (speed, downsample)

    Returns:
        The target name, now present in the store

    Raises:
        StageFailureError: If any engine operation fails
    """
    cleanup.register(source.name)
    cleanup.register(target)

    cmd = build_transcode_command(source.name, target, options.speed, options.downsample)
    logger.info("Transcoding %s -> %s", source.name, target)

    try:
        engine.write(source.name, source.data)
        engine.exec(cmd)
        if target not in engine.list():
            raise EngineError(f"engine reported success but {target} was not produced")
        cleanup.release(source.name)
    except EngineError as e:
        raise StageFailureError("transcode", f"Failed to transcode {source.name}: {e}") from e

    return target
