"""
vidaudio.engine - Transcoding engine boundary and its ffmpeg implementation.
"""

from __future__ import annotations

from vidaudio.engine.base import Engine
from vidaudio.engine.ffmpeg import FFmpegEngine

__all__ = ["Engine", "FFmpegEngine"]
