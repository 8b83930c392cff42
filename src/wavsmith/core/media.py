"""Media primitives: container descriptor, packets and frames.

Pure data containers. Packets carry encoded bytes, Frames carry decoded
samples as float64 arrays in [-1.0, 1.0], one row per channel.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from wavsmith.core.errors import CodecError


@dataclass(frozen=True)
class ContainerDescriptor:
    """Format metadata fixed for the lifetime of one container instance.

    format_tag:
        Registry name of the container format ("wav").
    byte_order:
        "little" for RIFF/WAVE.
    time_base:
        Seconds per pts tick as (numerator, denominator); one tick per sample.
    """

    format_tag: str
    sample_rate: int
    channels: int
    bit_depth: int
    byte_order: str = "little"

    @property
    def bytes_per_sample(self) -> int:
        return self.bit_depth // 8

    @property
    def block_align(self) -> int:
        """Bytes per interleaved sample frame (all channels)."""
        return self.bytes_per_sample * self.channels

    @property
    def byte_rate(self) -> int:
        return self.sample_rate * self.block_align

    @property
    def time_base(self) -> tuple[int, int]:
        return (1, self.sample_rate)


@dataclass
class Packet:
    """Opaque chunk of encoded bytes.

    pts is the stream position of the first sample, in samples per channel.
    partial marks a trailing slice shorter than the configured frame size.
    clipped counts samples saturated while encoding this packet.
    """

    data: bytes
    index: int
    pts: int
    partial: bool = False
    clipped: int = 0

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class Frame:
    """Decoded, uncompressed unit of per-channel samples.

    samples has shape (channels, sample_count) and is read-only; transforms
    build new Frames with with_samples() instead of mutating.
    """

    pts: int
    sample_rate: int
    samples: np.ndarray = field(repr=False)
    index: int = 0

    def __post_init__(self) -> None:
        arr = np.asarray(self.samples, dtype=np.float64)
        if arr.ndim != 2:
            raise CodecError(f"Frame samples must be 2-D (channels, samples), got {arr.ndim}-D")
        if arr.shape[0] < 1:
            raise CodecError("Frame must carry at least one channel")
        if arr is self.samples and arr.flags.writeable:
            arr = arr.copy()
        arr.setflags(write=False)
        object.__setattr__(self, "samples", arr)

    @property
    def channels(self) -> int:
        return int(self.samples.shape[0])

    @property
    def sample_count(self) -> int:
        return int(self.samples.shape[1])

    def channel(self, ch: int) -> np.ndarray:
        """Sample buffer of one channel."""
        return self.samples[ch]

    def peak(self) -> float:
        """Peak absolute sample value across all channels."""
        if self.samples.size == 0:
            return 0.0
        return float(np.max(np.abs(self.samples)))

    def with_samples(self, samples: np.ndarray) -> Frame:
        """New Frame with the same timing/format metadata and new samples."""
        return Frame(pts=self.pts, sample_rate=self.sample_rate, samples=samples, index=self.index)
