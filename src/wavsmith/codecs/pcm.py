"""Linear PCM codec.

Decode interprets packet bytes as interleaved little-endian integer samples,
de-interleaves them and scales to float64 by 1 / 2**(bits - 1), so values
land in [-1.0, 1.0). 8-bit PCM is unsigned with a 128 offset.

Encode is the inverse. Scaled values are rounded to nearest with ties to
even, then saturated to the integer range of the bit depth: anything a
transform pushes past full scale encodes as the max/min representable
sample, never a wrapped value. This clamp is the only lossy point of a
pipeline; the number of saturated samples is reported on the packet.
Exactly +1.0 (the level normalize produces at a positive peak) encodes as
the top code 2**(bits-1) - 1 and is not counted as clamped.
"""

from __future__ import annotations

import numpy as np

from wavsmith.core.errors import CodecError, UnsupportedFormatError
from wavsmith.core.media import ContainerDescriptor, Frame, Packet


def _full_scale(bit_depth: int) -> int:
    return 1 << (bit_depth - 1)


def unpack_samples(data: bytes, bit_depth: int) -> np.ndarray:
    """Interleaved PCM bytes -> flat int64 array of signed sample values."""
    if bit_depth == 8:
        return np.frombuffer(data, dtype=np.uint8).astype(np.int64) - 128
    if bit_depth == 16:
        return np.frombuffer(data, dtype="<i2").astype(np.int64)
    if bit_depth == 24:
        raw = np.frombuffer(data, dtype=np.uint8).reshape(-1, 3).astype(np.int64)
        values = raw[:, 0] | (raw[:, 1] << 8) | (raw[:, 2] << 16)
        return np.where(values & 0x800000, values - 0x1000000, values)
    if bit_depth == 32:
        return np.frombuffer(data, dtype="<i4").astype(np.int64)
    raise UnsupportedFormatError(f"Unsupported bit depth: {bit_depth}")


def pack_samples(values: np.ndarray, bit_depth: int) -> bytes:
    """Flat array of in-range signed sample values -> interleaved PCM bytes."""
    if bit_depth == 8:
        return (values + 128).astype(np.uint8).tobytes()
    if bit_depth == 16:
        return values.astype("<i2").tobytes()
    if bit_depth == 24:
        wide = values.astype("<i4").view(np.uint8).reshape(-1, 4)
        return np.ascontiguousarray(wide[:, :3]).tobytes()
    if bit_depth == 32:
        return values.astype("<i4").tobytes()
    raise UnsupportedFormatError(f"Unsupported bit depth: {bit_depth}")


class PcmCodec:
    """Linear PCM decode/encode capability."""

    name = "pcm"

    def decode(self, packet: Packet, descriptor: ContainerDescriptor) -> Frame:
        stride = descriptor.block_align
        if packet.size % stride:
            raise CodecError(
                f"Packet {packet.index} is {packet.size} bytes, "
                f"not a multiple of the {stride}-byte frame stride"
            )

        sample_count = packet.size // stride
        values = unpack_samples(packet.data, descriptor.bit_depth)
        scaled = values.astype(np.float64) / _full_scale(descriptor.bit_depth)
        samples = np.ascontiguousarray(scaled.reshape(sample_count, descriptor.channels).T)

        return Frame(
            pts=packet.pts,
            sample_rate=descriptor.sample_rate,
            samples=samples,
            index=packet.index,
        )

    def encode(self, frame: Frame, descriptor: ContainerDescriptor) -> Packet:
        if frame.channels != descriptor.channels:
            raise CodecError(
                f"Frame {frame.index} has {frame.channels} channel(s), "
                f"container expects {descriptor.channels}"
            )
        if frame.sample_rate != descriptor.sample_rate:
            raise CodecError(
                f"Frame {frame.index} is at {frame.sample_rate} Hz, "
                f"container expects {descriptor.sample_rate} Hz"
            )
        if not np.all(np.isfinite(frame.samples)):
            raise CodecError(f"Frame {frame.index} contains non-finite samples")

        full_scale = _full_scale(descriptor.bit_depth)
        lo, hi = -full_scale, full_scale - 1

        # (channels, n) -> (n, channels): flattening in C order interleaves.
        scaled = np.rint(frame.samples.T * full_scale)
        # +1.0 maps to the top code without counting as a clamp.
        clipped = int(np.count_nonzero((scaled < lo) | (scaled > full_scale)))
        values = np.clip(scaled, lo, hi).astype(np.int64).reshape(-1)

        return Packet(
            data=pack_samples(values, descriptor.bit_depth),
            index=frame.index,
            pts=frame.pts,
            clipped=clipped,
        )
