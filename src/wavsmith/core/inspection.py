"""Inspection view: read-only frame header summaries.

Runs demux and decode only; no transform, encode or mux stage is involved.
inspect() is a generator: the source is opened on the first next() and
closed when iteration ends, so a summary stream cannot be restarted without
calling inspect() again.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import asdict, dataclass, field
from itertools import islice
from typing import Any

from wavsmith.core.config import DEFAULT_FRAME_SIZE
from wavsmith.core.errors import IoError
from wavsmith.core.interfaces import IPacketReader, ISource
from wavsmith.core.io import as_source
from wavsmith.core.media import ContainerDescriptor
from wavsmith.core.registry import FormatRegistry, MediaFormat, get_format_registry


@dataclass(frozen=True)
class FrameSummary:
    index: int
    pts: int
    samples: int
    channels: int
    sample_rate: int

    def to_line(self) -> str:
        return (
            f"Frame {self.index}: pts={self.pts}, samples={self.samples}, "
            f"channels={self.channels}, rate={self.sample_rate}"
        )

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class MediaInfo:
    """Whole-file view used by JSON output."""

    path: str
    size: int | None
    descriptor: ContainerDescriptor
    total_samples: int
    frames: list[FrameSummary] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        return self.total_samples / self.descriptor.sample_rate

    def to_dict(self) -> dict[str, Any]:
        d = self.descriptor
        return {
            "file": {
                "path": self.path,
                "size": self.size,
                "duration": round(self.duration_seconds, 6),
            },
            "streams": [
                {
                    "index": 0,
                    "type": "audio",
                    "format": d.format_tag,
                    "codec": "pcm",
                    "channels": d.channels,
                    "sample_rate": d.sample_rate,
                    "bit_depth": d.bit_depth,
                    "byte_order": d.byte_order,
                    "total_samples": self.total_samples,
                }
            ],
            "frames": [f.to_dict() for f in self.frames],
        }


def _resolve(source: ISource, registry: FormatRegistry | None) -> MediaFormat:
    registry = registry or get_format_registry()
    return registry.resolve(source.format_hint, getattr(source, "path", None))


def _summaries(reader: IPacketReader, fmt: MediaFormat) -> Iterator[FrameSummary]:
    descriptor = reader.descriptor
    for packet in reader:
        frame = fmt.codec.decode(packet, descriptor)
        yield FrameSummary(
            index=frame.index,
            pts=frame.pts,
            samples=frame.sample_count,
            channels=frame.channels,
            sample_rate=frame.sample_rate,
        )


def inspect(
    source: Any,
    frame_size: int = DEFAULT_FRAME_SIZE,
    registry: FormatRegistry | None = None,
) -> Iterator[FrameSummary]:
    """Lazily yield one FrameSummary per decoded frame.

    Raises (on iteration):
        ContainerFormatError, UnsupportedFormatError, CodecError, IoError
    """
    src = as_source(source)
    fmt = _resolve(src, registry)
    try:
        with src.open() as fin:
            reader = fmt.container.open_reader(fin, frame_size)
            yield from _summaries(reader, fmt)
    except OSError as e:
        raise IoError.from_os_error(e, e.filename or src.label) from e


def describe(
    source: Any,
    frame_size: int = DEFAULT_FRAME_SIZE,
    limit: int | None = None,
    registry: FormatRegistry | None = None,
) -> MediaInfo:
    """Collect file, stream and (up to `limit`) frame information."""
    src = as_source(source)
    fmt = _resolve(src, registry)
    size_of = getattr(src, "size", None)
    try:
        size = size_of() if callable(size_of) else None
        with src.open() as fin:
            reader = fmt.container.open_reader(fin, frame_size)
            descriptor = reader.descriptor
            total = reader.data_size // descriptor.block_align
            frames = list(islice(_summaries(reader, fmt), limit))
    except OSError as e:
        raise IoError.from_os_error(e, e.filename or src.label) from e

    return MediaInfo(
        path=src.label,
        size=size,
        descriptor=descriptor,
        total_samples=total,
        frames=frames,
    )
