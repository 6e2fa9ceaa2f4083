"""
vidaudio.pipeline - Batch extraction orchestrator.

Runs one JobSpecification to completion against an engine:

    idle → preparing → transcoding (once per input) → merging (batch only)
         → finalizing → completed | failed

A single input without splitting takes the "single" path: one transcode
straight to ``<stem>.mp3``. Anything else takes the "batch" path: each
input becomes an intermediate, then one merge/segment stage produces
``output.mp3`` or ``output_000.mp3``, ``output_001.mp3``, ...

Every artifact written during the job is removed from the engine's store
before run() returns or raises.
"""

from __future__ import annotations

import math
import threading
from enum import Enum
from typing import Callable, Literal

from pydantic import BaseModel, ConfigDict, Field

from vidaudio.cleanup import CleanupSet
from vidaudio.engine.base import Engine
from vidaudio.exceptions import (
    EngineError,
    InvalidSpecificationError,
    JobCancelledError,
    JobInProgressError,
    StageFailureError,
)
from vidaudio.job import JobSpecification, check_inputs, parse_split
from vidaudio.logging import get_logger
from vidaudio.naming import (
    MANIFEST_NAME,
    MERGED_OUTPUT_NAME,
    final_name_single,
    intermediate_name,
    segment_index,
)
from vidaudio.progress import ProgressAggregator, ProgressListener, batch_weights, single_weights
from vidaudio.stages.merge import run_merge
from vidaudio.stages.transcode import run_transcode

logger = get_logger("pipeline")

LogListener = Callable[[str], None]


class JobState(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    TRANSCODING = "transcoding"
    MERGING = "merging"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"


ACTIVE_STATES = {
    JobState.PREPARING,
    JobState.TRANSCODING,
    JobState.MERGING,
    JobState.FINALIZING,
}


class Artifact(BaseModel):
    """A final output file, read out of the engine's store."""

    model_config = ConfigDict(frozen=True)

    name: str
    data: bytes = Field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


class TranscodeTask(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str
    target: str


class MergeTask(BaseModel):
    model_config = ConfigDict(frozen=True)

    inputs: tuple[str, ...]
    split_seconds: int | None = None


class StagePlan(BaseModel):
    """Read-only stage layout derived from one JobSpecification."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["single", "batch"]
    transcodes: tuple[TranscodeTask, ...]
    merge: MergeTask | None = None

    @property
    def stage_count(self) -> int:
        return len(self.transcodes) + (1 if self.merge else 0)

    def weights(self) -> list[float]:
        if self.mode == "single":
            return single_weights()
        return batch_weights(len(self.transcodes))

    @classmethod
    def from_job(cls, spec: JobSpecification) -> StagePlan:
        """Compute the plan, rejecting jobs whose names would collide.

        Raises:
            InvalidSpecificationError: If the job violates an invariant
        """
        validate_job(spec)
        split_seconds = spec.options.split_seconds
        names = [item.name for item in spec.inputs]

        if len(names) == 1 and split_seconds is None:
            plan = cls(
                mode="single",
                transcodes=(TranscodeTask(source=names[0], target=final_name_single(names[0])),),
            )
        else:
            transcodes = tuple(TranscodeTask(source=n, target=intermediate_name(n)) for n in names)
            plan = cls(
                mode="batch",
                transcodes=transcodes,
                merge=MergeTask(
                    inputs=tuple(t.target for t in transcodes),
                    split_seconds=split_seconds,
                ),
            )

        _check_collisions(plan, names)
        return plan


def validate_job(spec: JobSpecification) -> None:
    """Re-check JobSpecification invariants, for specs built without validation.

    Raises:
        InvalidSpecificationError: If any invariant is violated
    """
    try:
        check_inputs(spec.inputs)
        parse_split(spec.options.split)
    except ValueError as e:
        raise InvalidSpecificationError(str(e)) from e
    speed = spec.options.speed
    if not (math.isfinite(speed) and speed > 0):
        raise InvalidSpecificationError(f"speed must be a finite number greater than 0, got {speed}")


def _check_collisions(plan: StagePlan, input_names: list[str]) -> None:
    produced = [t.target for t in plan.transcodes]
    if plan.merge:
        produced.append(MANIFEST_NAME)
        if not plan.merge.split_seconds:
            produced.append(MERGED_OUTPUT_NAME)
    for name in input_names:
        if name in produced or (plan.merge and plan.merge.split_seconds and segment_index(name) is not None):
            raise InvalidSpecificationError(
                f"input name {name!r} collides with a file this job writes; rename it"
            )


class Pipeline:
    """Runs extraction jobs, one at a time, against a single engine.

    Args:
        engine: Transcoding engine; loaded on first use if needed
        on_progress: Called with (percent, label) on every progress change
        on_log: Called with each engine log line and pipeline status message
    """

    def __init__(
        self,
        engine: Engine,
        on_progress: ProgressListener | None = None,
        on_log: LogListener | None = None,
    ) -> None:
        self.engine = engine
        self.on_progress = on_progress
        self.on_log = on_log
        self._state = JobState.IDLE
        self._cancel = threading.Event()
        self._progress: ProgressAggregator | None = None
        self.plan: StagePlan | None = None

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def progress(self) -> int:
        return self._progress.value if self._progress else 0

    def cancel(self) -> None:
        """Ask the running job to stop at the next stage boundary."""
        if self._state in ACTIVE_STATES:
            logger.info("Cancellation requested")
            self._cancel.set()

    def run(self, spec: JobSpecification) -> list[Artifact]:
        """Run one job to completion.

        Returns:
            Final artifacts in output order

        Raises:
            JobInProgressError: If another job is running on this pipeline
            InvalidSpecificationError: Before any engine call, if spec is invalid
            EngineUnavailableError: If the engine cannot be loaded
            StageFailureError: If any stage fails (cleanup has already run)
            JobCancelledError: If cancel() was called (cleanup has already run)
        """
        if self._state in ACTIVE_STATES:
            raise JobInProgressError(f"A job is already {self._state.value}")
        self._cancel.clear()
        self._transition(JobState.PREPARING)

        try:
            plan = StagePlan.from_job(spec)
            if not self.engine.loaded:
                self.engine.load()
        except BaseException:
            self._transition(JobState.FAILED)
            raise

        self.plan = plan
        self._progress = ProgressAggregator(plan.weights(), self._emit_progress)
        cleanup = CleanupSet(self.engine)
        self.engine.on("progress", self._progress.update)
        self.engine.on("log", self._emit_log)

        try:
            with cleanup:
                finals = self._run_stages(spec, plan, cleanup)
                self._transition(JobState.FINALIZING)
                artifacts = self._read_finals(finals, cleanup)
        except BaseException as e:
            self._transition(JobState.FAILED)
            self._say(f"Job failed: {e}")
            raise
        finally:
            self.engine.off("progress", self._progress.update)
            self.engine.off("log", self._emit_log)

        self._progress.complete()
        self._transition(JobState.COMPLETED)
        self._say(f"Done: {len(artifacts)} file(s)")
        return artifacts

    def _run_stages(self, spec: JobSpecification, plan: StagePlan, cleanup: CleanupSet) -> list[str]:
        self._transition(JobState.TRANSCODING)
        total = len(plan.transcodes)
        for index, (task, source) in enumerate(zip(plan.transcodes, spec.inputs)):
            self._check_cancelled()
            self._progress.begin_stage(index, f"Transcoding {task.source} ({index + 1}/{total})")
            self._say(f"Transcoding {task.source} ({index + 1}/{total})")
            run_transcode(self.engine, cleanup, source, task.target, spec.options)
            self._progress.report(index, 1.0)

        if plan.merge is None:
            return [plan.transcodes[0].target]

        self._check_cancelled()
        self._transition(JobState.MERGING)
        merge = plan.merge
        if merge.split_seconds:
            label = f"Merging and splitting into {merge.split_seconds}s segments"
        else:
            label = f"Merging into {MERGED_OUTPUT_NAME}"
        self._progress.begin_stage(total, label)
        self._say(label)
        finals = run_merge(self.engine, cleanup, list(merge.inputs), merge.split_seconds)
        self._progress.report(total, 1.0)

        for name in (*merge.inputs, MANIFEST_NAME):
            cleanup.release(name)
        return finals

    def _read_finals(self, finals: list[str], cleanup: CleanupSet) -> list[Artifact]:
        artifacts = []
        for name in finals:
            cleanup.register(name)
            try:
                data = self.engine.read(name)
            except EngineError as e:
                raise StageFailureError("finalize", f"Failed to read {name}: {e}") from e
            cleanup.release(name)
            artifacts.append(Artifact(name=name, data=data))
        return artifacts

    def _check_cancelled(self) -> None:
        if self._cancel.is_set():
            raise JobCancelledError("Job cancelled")

    def _transition(self, state: JobState) -> None:
        logger.debug("Job state: %s -> %s", self._state.value, state.value)
        self._state = state

    def _emit_progress(self, percent: int, label: str) -> None:
        if self.on_progress:
            self.on_progress(percent, label)

    def _emit_log(self, line: str) -> None:
        logger.debug("engine: %s", line)
        if self.on_log:
            self.on_log(line)

    def _say(self, message: str) -> None:
        logger.info(message)
        if self.on_log:
            self.on_log(message)
