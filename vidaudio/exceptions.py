"""
vidaudio.exceptions - Custom exception classes.

All vidaudio-specific exceptions inherit from VidAudioError.
"""


class VidAudioError(Exception):
    """Base exception for all vidaudio errors."""

    pass


class ConfigError(VidAudioError):
    """Configuration loading or validation error."""

    pass


class InvalidSpecificationError(VidAudioError):
    """Job specification violates an invariant (rejected before any engine call)."""

    pass


class ValidationError(VidAudioError):
    """Input file or environment validation error."""

    pass


class DependencyError(VidAudioError):
    """Required dependency missing or misconfigured."""

    def __init__(self, dependency: str, message: str, install_hint: str | None = None):
        self.dependency = dependency
        self.message = message
        self.install_hint = install_hint
        super().__init__(f"{dependency}: {message}")


class EngineUnavailableError(DependencyError):
    """Transcoding engine could not be loaded."""

    pass


class EngineError(VidAudioError):
    """A transcoding engine operation failed."""

    pass


class ArtifactNotFoundError(EngineError):
    """Named artifact does not exist in the engine's file store."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No such artifact: {name}")


class StageFailureError(VidAudioError):
    """A pipeline stage failed; the engine error is kept as __cause__."""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        self.message = message
        super().__init__(f"{stage}: {message}")


class SegmentationMismatchError(StageFailureError):
    """Segmentation produced no (or non-contiguous) output files."""

    pass


class JobInProgressError(VidAudioError):
    """A job was started while another one is still running."""

    pass


class JobCancelledError(VidAudioError):
    """The running job was cancelled between stages."""

    pass
