"""Unit tests for core.inspection."""

import pytest
from conftest import build_wav, pcm_bytes

from wavsmith.core.errors import ContainerFormatError, IoError
from wavsmith.core.inspection import FrameSummary, describe, inspect
from wavsmith.core.io import BufferSource


def test_frame_lines_for_stereo_file(stereo_wav) -> None:
    lines = [s.to_line() for s in inspect(stereo_wav)]

    assert lines == [
        "Frame 0: pts=0, samples=1024, channels=2, rate=44100",
        "Frame 1: pts=1024, samples=1024, channels=2, rate=44100",
    ]


def test_trailing_partial_frame() -> None:
    source = BufferSource(build_wav(pcm_bytes([0] * 1500, 16), sample_rate=8000))
    summaries = list(inspect(source, frame_size=1024))

    assert summaries[-1] == FrameSummary(index=1, pts=1024, samples=476, channels=1, sample_rate=8000)


def test_inspect_is_lazy(tmp_path) -> None:
    summaries = inspect(tmp_path / "missing.wav")

    with pytest.raises(IoError):
        next(summaries)


def test_inspect_malformed_input(malformed_wav) -> None:
    with pytest.raises(ContainerFormatError):
        list(inspect(malformed_wav))


def test_describe_reports_file_and_stream(stereo_wav) -> None:
    info = describe(stereo_wav, limit=1).to_dict()

    assert info["file"]["path"] == str(stereo_wav)
    assert info["file"]["size"] == stereo_wav.stat().st_size
    assert info["file"]["duration"] == round(2048 / 44100, 6)

    (stream,) = info["streams"]
    assert stream["channels"] == 2
    assert stream["sample_rate"] == 44100
    assert stream["bit_depth"] == 16
    assert stream["total_samples"] == 2048

    assert info["frames"] == [
        {"index": 0, "pts": 0, "samples": 1024, "channels": 2, "sample_rate": 44100}
    ]


def test_describe_without_limit_lists_every_frame(stereo_wav) -> None:
    info = describe(stereo_wav, frame_size=512)
    assert [f.pts for f in info.frames] == [0, 512, 1024, 1536]
    assert info.duration_seconds == pytest.approx(2048 / 44100)
