"""Unit tests for core.pipeline."""

import contextlib
import struct

import numpy as np
import pytest
from conftest import build_wav, chunk, pcm_bytes

from wavsmith.core.errors import ContainerFormatError, IoError, PipelineError, TransformError
from wavsmith.core.io import BufferSink, BufferSource
from wavsmith.core.pipeline import Pipeline, PipelineConfig, build, pipeline
from wavsmith.core.transforms import Gain, Normalize, RunningPeak, TransformChain


def _samples(data: bytes) -> list[int]:
    return list(struct.unpack(f"<{len(data) // 2}h", data))


class _FailOnFrame:
    name = "fail"
    stateful = False

    def __init__(self, index):
        self.index = index

    def initial_state(self):
        return None

    def apply(self, frame, state=None):
        if frame.index == self.index:
            raise TransformError(f"refusing frame {frame.index}")
        return frame, state


class _BrokenSink:
    label = "broken"
    format_hint = "wav"

    @contextlib.contextmanager
    def open(self):
        raise RuntimeError("disk on fire")
        yield


class TestPipelineRun:
    def test_empty_chain_round_trips_byte_for_byte(self, stereo_wav, tmp_path):
        out = tmp_path / "out.wav"
        summary = build(stereo_wav, [], out).run()

        assert out.read_bytes() == stereo_wav.read_bytes()
        assert summary.packets == 2
        assert summary.samples == 2048
        assert summary.clipped == 0
        assert summary.duration_seconds == pytest.approx(2048 / 44100)

    def test_round_trip_with_uneven_frame_size(self, stereo_wav, tmp_path):
        out = tmp_path / "out.wav"
        summary = build(stereo_wav, TransformChain(), out, frame_size=333).run()

        assert out.read_bytes() == stereo_wav.read_bytes()
        assert summary.packets == 7

    @pytest.mark.parametrize("bit_depth", [8, 24, 32])
    def test_round_trip_other_bit_depths(self, bit_depth):
        full = 1 << (bit_depth - 1)
        values = np.linspace(-full, full - 1, 501).astype(np.int64)
        data = build_wav(pcm_bytes(values, bit_depth), bit_depth=bit_depth, sample_rate=8000)
        sink = BufferSink()

        build(BufferSource(data), [], sink, frame_size=64).run()

        assert sink.getvalue() == data

    def test_output_header_is_canonical(self):
        data = pcm_bytes([1, 2, 3, 4], 16)
        source = BufferSource(build_wav(data, before_data=chunk(b"LIST", b"INFOisft")))
        sink = BufferSink()

        build(source, [], sink).run()

        assert sink.getvalue() == build_wav(data)

    def test_gain_scales_and_saturates(self, capsys):
        source = BufferSource(build_wav(pcm_bytes([1000, -1000, 20000], 16)))
        sink = BufferSink()

        summary = build(source, [Gain(2.0)], sink).run()

        assert _samples(sink.getvalue()[44:]) == [2000, -2000, 32767]
        assert summary.clipped == 1
        assert "1 sample(s) clamped" in capsys.readouterr().err

    def test_normalize_uses_running_peak(self, capsys):
        source = BufferSource(build_wav(pcm_bytes([8192, -4096, 16384, 4096], 16)))
        sink = BufferSink()

        summary = build(source, [Normalize()], sink, frame_size=2).run()

        assert _samples(sink.getvalue()[44:]) == [32767, -16384, 32767, 8192]
        assert summary.transform_states == (RunningPeak(peak=0.5, frames=2),)
        # Reaching full scale is not a clamp.
        assert summary.clipped == 0
        assert "clamped" not in capsys.readouterr().err

    def test_each_run_starts_with_fresh_state(self):
        source = BufferSource(build_wav(pcm_bytes([4096, -2048, 1024, 512], 16)))
        sink = BufferSink()
        p = build(source, [Normalize()], sink, frame_size=2)

        first = p.run()
        first_bytes = sink.getvalue()
        second = p.run()

        assert sink.getvalue() == first_bytes
        assert first.transform_states == second.transform_states


class TestPipelineFailures:
    def test_construction_performs_no_io(self, tmp_path):
        out = tmp_path / "out.wav"
        build(tmp_path / "missing.wav", [Gain(2.0)], out)
        assert not out.exists()

    def test_missing_input_is_io_error(self, tmp_path):
        out = tmp_path / "out.wav"
        with pytest.raises(IoError) as exc_info:
            build(tmp_path / "missing.wav", [], out).run()

        assert exc_info.value.path == str(tmp_path / "missing.wav")
        assert not out.exists()

    def test_malformed_input_never_opens_sink(self, malformed_wav, tmp_path):
        out = tmp_path / "out.wav"
        with pytest.raises(ContainerFormatError):
            build(malformed_wav, [], out).run()
        assert not out.exists()

    def test_output_over_input_is_refused(self, stereo_wav, tmp_path):
        before = stereo_wav.read_bytes()
        alias = tmp_path / "." / stereo_wav.name

        with pytest.raises(PipelineError, match="overwrite its input"):
            build(stereo_wav, [Gain(1.0)], alias).run()

        assert stereo_wav.read_bytes() == before

    def test_unwritable_output_is_io_error(self, stereo_wav, tmp_path):
        with pytest.raises(IoError):
            build(stereo_wav, [], tmp_path / "no-such-dir" / "out.wav").run()

    def test_failure_halts_without_finalizing(self):
        source = BufferSource(build_wav(pcm_bytes(list(range(2048)), 16)))
        sink = BufferSink()

        with pytest.raises(TransformError, match="refusing frame 1"):
            build(source, [_FailOnFrame(1)], sink, frame_size=1024).run()

        written = sink.getvalue()
        assert len(written) == 44 + 2048
        assert written[40:44] == b"\x00\x00\x00\x00"
        assert _samples(written[44:]) == list(range(1024))

    def test_unexpected_exception_becomes_pipeline_error(self, stereo_wav):
        with pytest.raises(PipelineError, match="disk on fire") as exc_info:
            build(stereo_wav, [], _BrokenSink()).run()
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_frame_size_must_be_positive(self, stereo_wav, tmp_path):
        with pytest.raises(PipelineError, match="frame_size"):
            build(stereo_wav, [], tmp_path / "out.wav", frame_size=0)

    def test_rejects_unusable_endpoints(self):
        with pytest.raises(PipelineError, match="source"):
            build(42, [], BufferSink())


class TestPipelineConfig:
    def test_builder_runs_chain_in_order(self):
        source = BufferSource(build_wav(pcm_bytes([4096, -8192], 16)))
        sink = BufferSink()

        summary = pipeline().input(source).map("normalize").map(Gain(0.5)).output(sink).run()

        assert _samples(sink.getvalue()[44:]) == [8192, -16384]
        assert summary.packets == 1

    def test_builder_steps_do_not_mutate(self):
        base = pipeline().input(b"RIFF")
        louder = base.map("gain=2.0")

        assert len(base.transforms) == 0
        assert len(louder.transforms) == 1
        assert isinstance(base, PipelineConfig)

    def test_chain_and_frame_size(self, stereo_wav, tmp_path):
        built = (
            pipeline()
            .input(stereo_wav)
            .chain(TransformChain([Gain(1.0), Normalize()]))
            .with_frame_size(256)
            .output(tmp_path / "out.wav")
            .build()
        )
        assert isinstance(built, Pipeline)
        assert built.frame_size == 256
        assert [t.name for t in built.transforms] == ["gain", "normalize"]

    def test_build_requires_input_and_output(self):
        with pytest.raises(PipelineError, match="no input"):
            pipeline().output(BufferSink()).build()
        with pytest.raises(PipelineError, match="no output"):
            pipeline().input(b"").build()
