"""
vidaudio - Batch audio extraction from video files.

Turns one or more videos into MP3 audio through a small staged pipeline:
per-file transcode → optional concatenation → optional fixed-length
segmentation, with a single monotonic progress value for the whole job.
"""

__version__ = "0.1.0"
