"""Tests for vidaudio.stages (transcode and merge/segment)."""

from __future__ import annotations

import pytest

from vidaudio.cleanup import CleanupSet
from vidaudio.exceptions import EngineError, SegmentationMismatchError, StageFailureError
from vidaudio.job import InputFile, JobOptions
from vidaudio.stages.merge import (
    build_manifest,
    build_merge_command,
    collect_segments,
    quote_manifest_path,
    run_merge,
)
from vidaudio.stages.transcode import (
    build_tempo_filter,
    build_transcode_command,
    run_transcode,
    tempo_factors,
)

from .conftest import FakeEngine


class TestTempo:
    def test_within_range_is_single_filter(self) -> None:
        assert tempo_factors(1.25) == [1.25]
        assert build_tempo_filter(1.25) == "atempo=1.25"

    def test_fast_speed_is_chained(self) -> None:
        assert tempo_factors(3.0) == pytest.approx([2.0, 1.5])
        assert build_tempo_filter(3.0) == "atempo=2,atempo=1.5"

    def test_slow_speed_is_chained(self) -> None:
        assert tempo_factors(0.25) == pytest.approx([0.5, 0.5])

    def test_product_equals_speed(self) -> None:
        for speed in (0.3, 0.75, 2.5, 7.0):
            product = 1.0
            for factor in tempo_factors(speed):
                assert 0.5 <= factor <= 2.0
                product *= factor
            assert product == pytest.approx(speed)

    def test_non_positive_rejected(self) -> None:
        with pytest.raises(ValueError):
            tempo_factors(0)

    def test_infinite_rejected(self) -> None:
        with pytest.raises(ValueError):
            tempo_factors(float("inf"))

    def test_filter_keeps_precision(self) -> None:
        assert build_tempo_filter(1.0000001) == "atempo=1.0000001"
        assert build_tempo_filter(0.3) == "atempo=0.5,atempo=0.6"


class TestBuildTranscodeCommand:
    def test_defaults(self) -> None:
        cmd = build_transcode_command("a.mp4", "a.mp3")
        assert cmd == ["-i", "a.mp4", "-vn", "-acodec", "libmp3lame", "-q:a", "0", "a.mp3"]

    def test_downsample(self) -> None:
        cmd = build_transcode_command("a.mp4", "a.mp3", downsample=True)
        assert cmd[cmd.index("-ar") + 1] == "22050"
        assert "-filter:a" not in cmd

    def test_speed(self) -> None:
        cmd = build_transcode_command("a.mp4", "a.mp3", speed=1.25)
        assert cmd[cmd.index("-filter:a") + 1] == "atempo=1.25"
        assert "-ar" not in cmd
        assert cmd[-1] == "a.mp3"


class TestRunTranscode:
    def test_success(self, engine: FakeEngine, video_a: InputFile) -> None:
        engine.load()
        cleanup = CleanupSet(engine)

        target = run_transcode(engine, cleanup, video_a, "temp_a.mp4.mp3", JobOptions())

        assert target == "temp_a.mp4.mp3"
        assert engine.files == {"temp_a.mp4.mp3": b"mp3:video-a"}
        assert "temp_a.mp4.mp3" in cleanup
        assert "a.mp4" not in cleanup

    def test_registers_before_engine_call(self, engine: FakeEngine, video_a: InputFile) -> None:
        engine.fail_exec_on = "a.mp4"
        cleanup = CleanupSet(engine)

        with pytest.raises(StageFailureError) as exc_info:
            run_transcode(engine, cleanup, video_a, "a.mp3", JobOptions())

        assert exc_info.value.stage == "transcode"
        assert isinstance(exc_info.value.__cause__, EngineError)
        assert set(cleanup.pending) == {"a.mp4", "a.mp3"}
        cleanup.finalize()
        assert engine.files == {}

    def test_missing_output_is_failure(self, engine: FakeEngine, video_a: InputFile) -> None:
        engine.exec = lambda args: None
        cleanup = CleanupSet(engine)
        with pytest.raises(StageFailureError, match="was not produced"):
            run_transcode(engine, cleanup, video_a, "a.mp3", JobOptions())

    def test_passes_options(self, engine: FakeEngine, video_a: InputFile) -> None:
        cleanup = CleanupSet(engine)
        run_transcode(engine, cleanup, video_a, "a.mp3", JobOptions(speed=1.5, downsample=True))
        args = engine.execs[0]
        assert "atempo=1.5" in args
        assert "22050" in args


class TestManifest:
    def test_one_line_per_file_in_order(self) -> None:
        manifest = build_manifest(["temp_b.mp4.mp3", "temp_a.mp4.mp3"])
        assert manifest == b"file 'temp_b.mp4.mp3'\nfile 'temp_a.mp4.mp3'\n"

    def test_quotes_escaped(self) -> None:
        assert quote_manifest_path("it's.mp3") == "'it'\\''s.mp3'"

    def test_merge_command_unsplit(self) -> None:
        cmd = build_merge_command("concat_list.txt")
        assert cmd == ["-f", "concat", "-safe", "0", "-i", "concat_list.txt", "-c", "copy", "output.mp3"]

    def test_merge_command_segmented(self) -> None:
        cmd = build_merge_command("concat_list.txt", 30)
        assert cmd[-5:] == ["-f", "segment", "-segment_time", "30", "output_%03d.mp3"]


class TestCollectSegments:
    def test_ordered(self) -> None:
        names = ["output_001.mp3", "output_000.mp3", "temp_a.mp4.mp3"]
        assert collect_segments(names) == ["output_000.mp3", "output_001.mp3"]

    def test_none_is_mismatch(self) -> None:
        with pytest.raises(SegmentationMismatchError):
            collect_segments(["output.mp3"])

    def test_gap_is_mismatch(self) -> None:
        with pytest.raises(SegmentationMismatchError, match="contiguous"):
            collect_segments(["output_000.mp3", "output_002.mp3"])

    def test_mismatch_is_stage_failure(self) -> None:
        assert issubclass(SegmentationMismatchError, StageFailureError)


class TestRunMerge:
    def _seed(self, engine: FakeEngine) -> list[str]:
        engine.files = {"temp_a.mp4.mp3": b"A", "temp_b.mp4.mp3": b"B"}
        return ["temp_a.mp4.mp3", "temp_b.mp4.mp3"]

    def test_unsplit(self, engine: FakeEngine) -> None:
        names = self._seed(engine)
        cleanup = CleanupSet(engine)

        finals = run_merge(engine, cleanup, names)

        assert finals == ["output.mp3"]
        assert engine.files["output.mp3"] == b"AB"
        assert "concat_list.txt" in cleanup
        assert "output.mp3" in cleanup

    def test_order_preserved(self, engine: FakeEngine) -> None:
        names = self._seed(engine)
        run_merge(engine, CleanupSet(engine), list(reversed(names)))
        assert engine.files["output.mp3"] == b"BA"

    def test_segmented(self, engine: FakeEngine) -> None:
        names = self._seed(engine)
        cleanup = CleanupSet(engine)

        finals = run_merge(engine, cleanup, names, split_seconds=30)

        assert finals == ["output_000.mp3", "output_001.mp3", "output_002.mp3"]
        assert all(name in cleanup for name in finals)
        assert "30" in engine.execs[0]

    def test_zero_segments_is_failure(self) -> None:
        engine = FakeEngine(segment_count=0)
        names = self._seed(engine)
        with pytest.raises(SegmentationMismatchError):
            run_merge(engine, CleanupSet(engine), names, split_seconds=30)

    def test_partial_segments_registered_on_failure(self, engine: FakeEngine) -> None:
        names = self._seed(engine)
        engine.fail_exec_on = "segment"
        cleanup = CleanupSet(engine)

        with pytest.raises(StageFailureError) as exc_info:
            run_merge(engine, cleanup, names, split_seconds=10)

        assert exc_info.value.stage == "merge"
        assert "output_000.mp3" in cleanup
        assert "concat_list.txt" in cleanup

    def test_nothing_to_merge(self, engine: FakeEngine) -> None:
        with pytest.raises(StageFailureError):
            run_merge(engine, CleanupSet(engine), [])
