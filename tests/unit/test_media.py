"""Unit tests for core.media, core.errors and core.registry."""

import errno

import numpy as np
import pytest

from wavsmith.codecs.pcm import PcmCodec
from wavsmith.container.wav import WavContainer
from wavsmith.core.errors import CodecError, IoError, UnsupportedFormatError, WavsmithError
from wavsmith.core.media import ContainerDescriptor, Frame, Packet
from wavsmith.core.registry import FormatRegistry, MediaFormat, get_format_registry


class TestContainerDescriptor:
    def test_derived_sizes(self):
        d = ContainerDescriptor("wav", 48000, 2, 24)
        assert d.bytes_per_sample == 3
        assert d.block_align == 6
        assert d.byte_rate == 288000
        assert d.time_base == (1, 48000)

    def test_is_immutable(self):
        d = ContainerDescriptor("wav", 48000, 2, 24)
        with pytest.raises(AttributeError):
            d.channels = 1  # type: ignore[misc]


class TestFrame:
    def test_samples_are_read_only_copies(self):
        source = np.zeros((2, 4))
        frame = Frame(pts=0, sample_rate=8000, samples=source)

        source[0, 0] = 1.0
        assert frame.samples[0, 0] == 0.0
        with pytest.raises(ValueError):
            frame.samples[0, 0] = 1.0

    def test_with_samples_keeps_metadata(self):
        frame = Frame(pts=1024, sample_rate=8000, samples=np.ones((1, 4)), index=1)
        scaled = frame.with_samples(frame.samples * 0.5)

        assert (scaled.pts, scaled.sample_rate, scaled.index) == (1024, 8000, 1)
        assert scaled.samples.tolist() == [[0.5] * 4]
        assert frame.samples.tolist() == [[1.0] * 4]

    def test_peak_across_channels(self):
        frame = Frame(pts=0, sample_rate=8000, samples=np.array([[0.1, -0.2], [0.7, -0.9]]))
        assert frame.peak() == 0.9

    def test_empty_frame_peak_is_zero(self):
        frame = Frame(pts=0, sample_rate=8000, samples=np.zeros((1, 0)))
        assert frame.peak() == 0.0
        assert frame.sample_count == 0

    def test_rejects_one_dimensional_samples(self):
        with pytest.raises(CodecError, match="2-D"):
            Frame(pts=0, sample_rate=8000, samples=np.zeros(4))

    def test_packet_size(self):
        assert Packet(data=b"abcd", index=0, pts=0).size == 4


class TestErrors:
    def test_suggestion_is_rendered(self):
        err = WavsmithError("Broken", "Try again")
        assert str(err) == "Broken\nSuggestion: Try again"
        assert err.message == "Broken"

    def test_io_error_from_os_error(self):
        err = IoError.from_os_error(
            FileNotFoundError(errno.ENOENT, "No such file or directory", "/x/in.wav")
        )
        assert err.path == "/x/in.wav"
        assert "No such file or directory" in str(err)
        assert isinstance(err, WavsmithError)


class TestFormatRegistry:
    def test_builtin_wav_format(self):
        fmt = get_format_registry().get("wav")
        assert isinstance(fmt.container, WavContainer)
        assert isinstance(fmt.codec, PcmCodec)
        assert ".wav" in get_format_registry().extensions()

    def test_resolve_by_extension_and_hint(self):
        registry = get_format_registry()
        assert registry.resolve(None, "song.WAV").name == "wav"
        assert registry.resolve("wav", "song.bin").name == "wav"
        assert registry.resolve(None, None).name == "wav"

    def test_unknown_extension_raises(self):
        with pytest.raises(UnsupportedFormatError, match="song.mp3"):
            get_format_registry().for_path("song.mp3")

    def test_unknown_name_raises(self):
        with pytest.raises(UnsupportedFormatError, match="flac"):
            get_format_registry().get("flac")

    def test_custom_registry(self):
        registry = FormatRegistry()
        wav = WavContainer()
        registry.register(MediaFormat("wave", (".wv",), wav, PcmCodec()))

        assert registry.names() == ["wave"]
        assert registry.for_path("a.wv").container is wav
