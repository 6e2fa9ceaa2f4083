"""
vidaudio.utils - Shared utility functions.

Contains common functions used across multiple modules to avoid duplication.
"""

from __future__ import annotations


def format_size(num_bytes: int) -> str:
    """Format a byte count in human-readable form.

    Args:
        num_bytes: Size in bytes

    Returns:
        Formatted string such as "1.5 MB"
    """
    size = float(num_bytes)
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"

