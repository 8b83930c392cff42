"""RIFF/WAVE container: demux into packets, mux packets back into a file.

Read path walks the RIFF chunk list until it has seen "fmt " and "data",
skipping anything else (LIST, fact, ...). Write path always emits the
canonical 44-byte header with format code 1.

All multi-byte header fields are little-endian.
"""

from __future__ import annotations

import io
import struct
from collections.abc import Iterable, Iterator
from typing import BinaryIO

from wavsmith.core.config import DEFAULT_FRAME_SIZE
from wavsmith.core.errors import CodecError, ContainerFormatError, UnsupportedFormatError
from wavsmith.core.media import ContainerDescriptor, Packet

WAVE_FORMAT_PCM = 0x0001
WAVE_FORMAT_EXTENSIBLE = 0xFFFE

# Tail shared by every KSDATAFORMAT_SUBTYPE_* GUID; the first two bytes carry the format code.
_SUBTYPE_GUID_TAIL = b"\x00\x00\x00\x00\x10\x00\x80\x00\x00\xaa\x00\x38\x9b\x71"

SUPPORTED_BIT_DEPTHS = (8, 16, 24, 32)
MAX_CHANNELS = 8

CANONICAL_HEADER_SIZE = 44
_MAX_DATA_SIZE = 0xFFFFFFFF - (CANONICAL_HEADER_SIZE - 8) - 1

_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")
_CHUNK = struct.Struct("<4sI")
_FMT = struct.Struct("<HHIIHH")


def check_descriptor(descriptor: ContainerDescriptor) -> None:
    """Reject descriptors this container cannot represent.

    Raises:
        UnsupportedFormatError: Bit depth, channel count or byte order out of range
        ContainerFormatError: Non-positive sample rate
    """
    if descriptor.bit_depth not in SUPPORTED_BIT_DEPTHS:
        raise UnsupportedFormatError(
            f"Unsupported bit depth: {descriptor.bit_depth}",
            "Supported PCM bit depths are 8, 16, 24 and 32",
        )
    if not 1 <= descriptor.channels <= MAX_CHANNELS:
        raise UnsupportedFormatError(
            f"Unsupported channel layout: {descriptor.channels} channel(s)",
            f"Supported channel counts are 1 to {MAX_CHANNELS}",
        )
    if descriptor.byte_order != "little":
        raise UnsupportedFormatError(f"Unsupported byte order: {descriptor.byte_order}")
    if descriptor.sample_rate <= 0:
        raise ContainerFormatError(f"Invalid sample rate: {descriptor.sample_rate}")


def build_header(descriptor: ContainerDescriptor, data_size: int) -> bytes:
    """Canonical 44-byte RIFF/WAVE header for a payload of data_size bytes."""
    pad = data_size % 2
    return _HEADER.pack(
        b"RIFF",
        CANONICAL_HEADER_SIZE - 8 + data_size + pad,
        b"WAVE",
        b"fmt ",
        16,
        WAVE_FORMAT_PCM,
        descriptor.channels,
        descriptor.sample_rate,
        descriptor.byte_rate,
        descriptor.block_align,
        descriptor.bit_depth,
        b"data",
        data_size,
    )


class WavReader:
    """Forward-only packet reader over a seekable binary stream.

    The header is parsed and validated on construction; packets are read
    lazily, one fixed-size slice of the data payload at a time.
    """

    def __init__(self, stream: BinaryIO, frame_size: int = DEFAULT_FRAME_SIZE) -> None:
        if frame_size < 1:
            raise ValueError(f"frame_size must be >= 1, got {frame_size}")
        self._stream = stream
        self.frame_size = frame_size
        self._total = self._measure(stream)
        self.descriptor, self.data_size = self._read_header()
        self._remaining = self.data_size
        self._index = 0
        self._pts = 0

    @property
    def packet_bytes(self) -> int:
        return self.frame_size * self.descriptor.block_align

    @staticmethod
    def _measure(stream: BinaryIO) -> int:
        start = stream.tell()
        end = stream.seek(0, io.SEEK_END)
        stream.seek(start)
        return end

    def _read_exact(self, n: int, what: str) -> bytes:
        data = self._stream.read(n)
        if len(data) < n:
            raise ContainerFormatError(
                f"Truncated header: expected {n} bytes for {what}, got {len(data)}"
            )
        return data

    def _read_header(self) -> tuple[ContainerDescriptor, int]:
        head = self._stream.read(12)
        if len(head) < 12:
            raise ContainerFormatError(
                f"Truncated header: file is {len(head)} bytes, a RIFF header needs 12"
            )

        if head[0:4] == b"RIFX":
            raise UnsupportedFormatError("Big-endian RIFX files are not supported")
        if head[0:4] != b"RIFF":
            raise ContainerFormatError("Not a RIFF file (bad magic)")
        if head[8:12] != b"WAVE":
            raise ContainerFormatError("Not a WAVE file (bad RIFF form type)")

        (riff_size,) = struct.unpack("<I", head[4:8])

        descriptor: ContainerDescriptor | None = None

        while True:
            chunk_header = self._stream.read(_CHUNK.size)
            if len(chunk_header) < _CHUNK.size:
                missing = "'fmt '" if descriptor is None else "'data'"
                raise ContainerFormatError(f"Truncated header: no {missing} chunk found")

            chunk_id, chunk_size = _CHUNK.unpack(chunk_header)

            if chunk_id == b"fmt ":
                if chunk_size < _FMT.size:
                    raise ContainerFormatError(f"fmt chunk too small: {chunk_size} bytes")
                body = self._read_exact(chunk_size, "fmt chunk")
                self._skip_pad(chunk_size)
                descriptor = self._parse_fmt(body)

            elif chunk_id == b"data":
                if descriptor is None:
                    raise ContainerFormatError("'data' chunk appears before 'fmt ' chunk")
                remaining = self._total - self._stream.tell()
                if chunk_size > remaining:
                    raise ContainerFormatError(
                        f"Size mismatch: data chunk declares {chunk_size} bytes "
                        f"but only {remaining} remain"
                    )
                if riff_size + 8 > self._total:
                    raise ContainerFormatError(
                        f"Size mismatch: RIFF chunk declares {riff_size + 8} bytes "
                        f"but file is {self._total}"
                    )
                return descriptor, chunk_size

            else:
                skip = chunk_size + (chunk_size % 2)
                if self._stream.tell() + skip > self._total:
                    raise ContainerFormatError(
                        f"Truncated header: chunk {chunk_id!r} runs past end of file"
                    )
                self._stream.seek(skip, io.SEEK_CUR)

    def _skip_pad(self, chunk_size: int) -> None:
        if chunk_size % 2:
            self._stream.read(1)

    def _parse_fmt(self, body: bytes) -> ContainerDescriptor:
        format_code, channels, sample_rate, _byte_rate, block_align, bit_depth = _FMT.unpack(
            body[: _FMT.size]
        )

        if format_code == WAVE_FORMAT_EXTENSIBLE:
            if len(body) < 40:
                raise ContainerFormatError(
                    f"fmt chunk too small for WAVE_FORMAT_EXTENSIBLE: {len(body)} bytes"
                )
            subformat = body[24:40]
            if subformat[2:] != _SUBTYPE_GUID_TAIL:
                raise UnsupportedFormatError("Unsupported WAVE_FORMAT_EXTENSIBLE sub-format GUID")
            (format_code,) = struct.unpack("<H", subformat[:2])

        if format_code != WAVE_FORMAT_PCM:
            raise UnsupportedFormatError(
                f"Unsupported audio format code: 0x{format_code:04x}",
                "Only linear PCM (format code 1) is supported",
            )

        descriptor = ContainerDescriptor(
            format_tag="wav",
            sample_rate=sample_rate,
            channels=channels,
            bit_depth=bit_depth,
        )
        check_descriptor(descriptor)

        if block_align != descriptor.block_align:
            raise ContainerFormatError(
                f"Size mismatch: block align {block_align} does not match "
                f"{channels} channel(s) x {bit_depth} bits"
            )

        return descriptor

    def read_packet(self) -> Packet | None:
        if self._remaining == 0:
            return None

        want = min(self.packet_bytes, self._remaining)
        data = self._stream.read(want)
        if len(data) < want:
            raise ContainerFormatError(
                f"Truncated payload: expected {want} bytes at packet {self._index}, got {len(data)}"
            )

        self._remaining -= len(data)
        packet = Packet(
            data=data,
            index=self._index,
            pts=self._pts,
            partial=len(data) < self.packet_bytes,
        )
        self._index += 1
        self._pts += len(data) // self.descriptor.block_align
        return packet

    def __iter__(self) -> Iterator[Packet]:
        while True:
            packet = self.read_packet()
            if packet is None:
                return
            yield packet


class WavWriter:
    """Packet writer over a seekable binary stream.

    A placeholder header goes out on construction; finalize() appends the
    RIFF pad byte when needed and patches the size fields.
    """

    def __init__(self, stream: BinaryIO, descriptor: ContainerDescriptor) -> None:
        check_descriptor(descriptor)
        self._stream = stream
        self.descriptor = descriptor
        self.data_size = 0
        self._start = stream.tell()
        self._finalized = False
        stream.write(build_header(descriptor, 0))

    def write_packet(self, packet: Packet) -> None:
        if self._finalized:
            raise ContainerFormatError("Cannot write packets after finalize()")
        if packet.size % self.descriptor.block_align:
            raise CodecError(
                f"Packet {packet.index} is {packet.size} bytes, "
                f"not a multiple of block align {self.descriptor.block_align}"
            )
        if self.data_size + packet.size > _MAX_DATA_SIZE:
            raise ContainerFormatError("Payload exceeds the 4 GiB RIFF size limit")

        self._stream.write(packet.data)
        self.data_size += packet.size

    def finalize(self) -> None:
        if self._finalized:
            return
        if self.data_size % 2:
            self._stream.write(b"\x00")
        end = self._stream.tell()
        self._stream.seek(self._start)
        self._stream.write(build_header(self.descriptor, self.data_size))
        self._stream.seek(end)
        self._stream.flush()
        self._finalized = True


class WavContainer:
    """PCM/WAV demux/mux capability."""

    name = "wav"
    extensions = (".wav", ".wave")

    def open_reader(self, stream: BinaryIO, frame_size: int = DEFAULT_FRAME_SIZE) -> WavReader:
        return WavReader(stream, frame_size)

    def open_writer(self, stream: BinaryIO, descriptor: ContainerDescriptor) -> WavWriter:
        return WavWriter(stream, descriptor)

    def demux(
        self, data: bytes, frame_size: int = DEFAULT_FRAME_SIZE
    ) -> tuple[list[Packet], ContainerDescriptor]:
        """Parse WAV bytes into packets plus the container descriptor."""
        reader = self.open_reader(io.BytesIO(data), frame_size)
        return list(reader), reader.descriptor

    def mux(self, descriptor: ContainerDescriptor, packets: Iterable[Packet]) -> bytes:
        """Serialize packets into WAV bytes, header first."""
        buf = io.BytesIO()
        writer = self.open_writer(buf, descriptor)
        for packet in packets:
            writer.write_packet(packet)
        writer.finalize()
        return buf.getvalue()
