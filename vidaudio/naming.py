"""
vidaudio.naming - Deterministic artifact names.

Pure functions; every name the pipeline writes into the engine's file
store is derived here.
"""

from __future__ import annotations

import re

AUDIO_EXTENSION = ".mp3"
INTERMEDIATE_PREFIX = "temp_"
MANIFEST_NAME = "concat_list.txt"
MERGED_OUTPUT_NAME = "output.mp3"
SEGMENT_PATTERN = "output_%03d.mp3"

_SEGMENT_RE = re.compile(r"^output_(\d{3,})\.mp3$")


def strip_extension(name: str) -> str:
    """Drop the last extension: "a.b.mp4" → "a.b". Names without one are kept."""
    stem, dot, _ = name.rpartition(".")
    if not dot or not stem:
        return name
    return stem


def intermediate_name(input_name: str) -> str:
    return f"{INTERMEDIATE_PREFIX}{input_name}{AUDIO_EXTENSION}"


def final_name_single(input_name: str) -> str:
    return f"{strip_extension(input_name)}{AUDIO_EXTENSION}"


def segment_name(index: int) -> str:
    return SEGMENT_PATTERN % index


def segment_index(name: str) -> int | None:
    """Return the segment index encoded in name, or None if it is not a segment."""
    match = _SEGMENT_RE.match(name)
    if not match:
        return None
    return int(match.group(1))


def filter_segments(names: list[str]) -> list[str]:
    """Keep segment names only, ordered by their index."""
    indexed = [(segment_index(n), n) for n in names]
    return [n for i, n in sorted((i, n) for i, n in indexed if i is not None)]
