"""Pytest configuration and fixtures."""

import struct
import sys
from pathlib import Path

import numpy as np
import pytest

# Add src to path (for 'wavsmith.*' imports without an install)
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root / "src"))


def pcm_bytes(values, bit_depth: int) -> bytes:
    """Interleave (channels, n) integer sample values into PCM bytes.

    Written independently of wavsmith.codecs so tests do not check the codec
    against itself.
    """
    arr = np.asarray(values, dtype=np.int64)
    if arr.ndim == 1:
        arr = arr.reshape(1, -1)
    flat = arr.T.reshape(-1)

    if bit_depth == 8:
        return bytes(int(v) + 128 for v in flat)
    if bit_depth == 16:
        return struct.pack(f"<{len(flat)}h", *(int(v) for v in flat))
    if bit_depth == 24:
        return b"".join(int(v).to_bytes(3, "little", signed=True) for v in flat)
    if bit_depth == 32:
        return struct.pack(f"<{len(flat)}i", *(int(v) for v in flat))
    raise ValueError(bit_depth)


def chunk(chunk_id: bytes, body: bytes) -> bytes:
    """One RIFF chunk, pad byte included."""
    pad = b"\x00" if len(body) % 2 else b""
    return chunk_id + struct.pack("<I", len(body)) + body + pad


def fmt_body(
    channels: int = 1,
    sample_rate: int = 44100,
    bit_depth: int = 16,
    format_code: int = 1,
    block_align: int | None = None,
) -> bytes:
    if block_align is None:
        block_align = channels * (bit_depth // 8)
    return struct.pack(
        "<HHIIHH",
        format_code,
        channels,
        sample_rate,
        sample_rate * block_align,
        block_align,
        bit_depth,
    )


def build_wav(
    data: bytes,
    channels: int = 1,
    sample_rate: int = 44100,
    bit_depth: int = 16,
    format_code: int = 1,
    fmt: bytes | None = None,
    before_fmt: bytes = b"",
    before_data: bytes = b"",
    data_size: int | None = None,
    riff_size: int | None = None,
    magic: bytes = b"RIFF",
) -> bytes:
    """Assemble WAV bytes; defaults give the canonical 44-byte header layout."""
    if fmt is None:
        fmt = fmt_body(channels, sample_rate, bit_depth, format_code)
    pad = b"\x00" if len(data) % 2 else b""
    declared = len(data) if data_size is None else data_size
    data_chunk = b"data" + struct.pack("<I", declared) + data + pad

    body = b"WAVE" + before_fmt + chunk(b"fmt ", fmt) + before_data + data_chunk
    size = len(body) if riff_size is None else riff_size
    return magic + struct.pack("<I", size) + body


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path, monkeypatch):
    """Keep user config files and WAVSMITH_* variables out of every test."""
    import os

    for key in list(os.environ):
        if key.startswith("WAVSMITH_"):
            monkeypatch.delenv(key)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))


@pytest.fixture(autouse=True)
def _reset_logging():
    """Restore default verbosity and drop log subscribers after each test."""
    from wavsmith.core.log_bus import get_log_bus
    from wavsmith.core.logging import VerbosityLevel, set_colors, set_log_sink, set_verbosity

    yield
    set_log_sink(None)
    get_log_bus().clear()
    set_verbosity(VerbosityLevel.NORMAL)
    set_colors(True)


@pytest.fixture
def stereo_wav(tmp_path):
    """2048 samples of 16-bit stereo noise at 44100 Hz, canonical header.

    Returns:
        Path to the WAV file
    """
    rng = np.random.default_rng(1234)
    values = rng.integers(-20000, 20000, size=(2, 2048))
    path = tmp_path / "stereo.wav"
    path.write_bytes(build_wav(pcm_bytes(values, 16), channels=2))
    return path


@pytest.fixture
def malformed_wav(tmp_path):
    """File with a .wav extension that is not a RIFF file."""
    path = tmp_path / "broken.wav"
    path.write_bytes(b"JUNK" + b"\x00" * 60)
    return path
