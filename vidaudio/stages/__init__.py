"""
vidaudio.stages - Engine-driving pipeline stages.

Stage 1: transcode each input to audio.
Stage 2: concatenate the intermediates, optionally splitting into
fixed-length segments.
"""

from __future__ import annotations
