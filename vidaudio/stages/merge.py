"""
vidaudio.stages.merge - Concatenate intermediates, optionally segment.

Builds an ffmpeg concat-demuxer manifest in input order and stream-copies
the result either into a single file or into fixed-duration segments.
"""

from __future__ import annotations

from vidaudio.cleanup import CleanupSet
from vidaudio.engine.base import Engine
from vidaudio.exceptions import EngineError, SegmentationMismatchError, StageFailureError
from vidaudio.logging import get_logger
from vidaudio.naming import (
    MANIFEST_NAME,
    MERGED_OUTPUT_NAME,
    SEGMENT_PATTERN,
    filter_segments,
    segment_index,
)

logger = get_logger("stages.merge")


def quote_manifest_path(name: str) -> str:
    """Quote a name for a concat manifest: it -> 'it', with ' written as '\\''."""
    return "'" + name.replace("'", "'\\''") + "'"


def build_manifest(names: list[str]) -> bytes:
    """One ``file '<name>'`` line per intermediate, order preserved."""
    lines = [f"file {quote_manifest_path(n)}" for n in names]
    return ("\n".join(lines) + "\n").encode("utf-8")


def build_merge_command(manifest: str, split_seconds: int | None = None) -> list[str]:
    cmd = ["-f", "concat", "-safe", "0", "-i", manifest, "-c", "copy"]
    if split_seconds:
        cmd += ["-f", "segment", "-segment_time", str(split_seconds), SEGMENT_PATTERN]
    else:
        cmd.append(MERGED_OUTPUT_NAME)
    return cmd


def collect_segments(names: list[str]) -> list[str]:
    """Segment names from a store listing, ordered and checked for gaps.

    Raises:
        SegmentationMismatchError: If there are none, or indices are not 0..n-1
    """
    segments = filter_segments(names)
    if not segments:
        raise SegmentationMismatchError("segment", "segmentation produced no output files")
    indices = [segment_index(n) for n in segments]
    if indices != list(range(len(segments))):
        raise SegmentationMismatchError(
            "segment", f"segment indices are not contiguous from 0: {indices}"
        )
    return segments


def run_merge(
    engine: Engine,
    cleanup: CleanupSet,
    intermediates: list[str],
    split_seconds: int | None = None,
) -> list[str]:
    """Merge intermediates into the job's final artifact name(s).

    Args:
        engine: Loaded engine holding every intermediate
        cleanup: Job cleanup set
        intermediates: Intermediate names in input order
        split_seconds: Segment length, or None for one merged file

    Returns:
        Final artifact names, in playback order

    Raises:
        StageFailureError: If the engine fails
        SegmentationMismatchError: If segmenting yields no usable files
    """
    if not intermediates:
        raise StageFailureError("merge", "nothing to merge")

    cleanup.register(MANIFEST_NAME)
    if not split_seconds:
        cleanup.register(MERGED_OUTPUT_NAME)

    cmd = build_merge_command(MANIFEST_NAME, split_seconds)
    if split_seconds:
        logger.info("Merging %d file(s) into %ds segments", len(intermediates), split_seconds)
    else:
        logger.info("Merging %d file(s) into %s", len(intermediates), MERGED_OUTPUT_NAME)

    try:
        engine.write(MANIFEST_NAME, build_manifest(intermediates))
        try:
            engine.exec(cmd)
        finally:
            if split_seconds:
                _register_segments(engine, cleanup)
        listing = engine.list()
    except EngineError as e:
        raise StageFailureError("merge", f"Failed to merge {len(intermediates)} file(s): {e}") from e

    if split_seconds:
        return collect_segments(listing)
    if MERGED_OUTPUT_NAME not in listing:
        raise StageFailureError("merge", f"engine reported success but {MERGED_OUTPUT_NAME} was not produced")
    return [MERGED_OUTPUT_NAME]


def _register_segments(engine: Engine, cleanup: CleanupSet) -> None:
    try:
        names = engine.list()
    except EngineError as e:
        logger.warning("Cannot list segments for cleanup: %s", e)
        return
    for name in filter_segments(names):
        cleanup.register(name)
