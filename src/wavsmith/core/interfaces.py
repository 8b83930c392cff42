"""Capability interfaces for formats, codecs, transforms and endpoints.

Container and codec formats are pluggable: any object conforming to these
protocols can be registered with the format registry, and Pipeline and the
batch driver never need to change.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Any, BinaryIO, ContextManager, Protocol

if TYPE_CHECKING:
    from wavsmith.core.media import ContainerDescriptor, Frame, Packet


class IPacketReader(Protocol):
    """Forward-only packet stream produced by a container's demuxer."""

    descriptor: ContainerDescriptor
    data_size: int  # encoded payload length in bytes

    def read_packet(self) -> Packet | None:
        """Return the next packet, or None when the payload is exhausted.

        Raises:
            ContainerFormatError: If the stream ends inside the declared payload
            IoError: If the underlying read fails
        """
        ...

    def __iter__(self) -> Iterator[Packet]: ...


class IPacketWriter(Protocol):
    """Packet sink produced by a container's muxer."""

    def write_packet(self, packet: Packet) -> None: ...

    def finalize(self) -> None:
        """Write any deferred header fields. Called once, after the last packet."""
        ...


class IContainer(Protocol):
    """Demux/mux capability of one container format.

    demux/mux work on whole byte strings; open_reader/open_writer stream
    over seekable binary files.
    """

    name: str

    def demux(self, data: bytes, frame_size: int = ...) -> tuple[list[Packet], ContainerDescriptor]:
        """Split container bytes into packets.

        Raises:
            ContainerFormatError: Malformed/truncated header or size fields
            UnsupportedFormatError: Valid header with unsupported parameters
        """
        ...

    def mux(self, descriptor: ContainerDescriptor, packets: Iterable[Packet]) -> bytes: ...

    def open_reader(self, stream: BinaryIO, frame_size: int = ...) -> IPacketReader: ...

    def open_writer(self, stream: BinaryIO, descriptor: ContainerDescriptor) -> IPacketWriter: ...


class ICodec(Protocol):
    """Decode/encode capability of one codec."""

    name: str

    def decode(self, packet: Packet, descriptor: ContainerDescriptor) -> Frame:
        """Decode one packet into one frame.

        Raises:
            CodecError: If the packet does not fit the descriptor
        """
        ...

    def encode(self, frame: Frame, descriptor: ContainerDescriptor) -> Packet:
        """Encode one frame into one packet.

        Raises:
            CodecError: If the frame does not fit the descriptor
        """
        ...


class ITransform(Protocol):
    """Frame -> Frame mapping.

    Stateless transforms ignore `state` and return it unchanged. A stateful
    transform returns a fresh accumulator from initial_state() and the
    updated accumulator from apply(); the pipeline owns that value and
    threads it from frame to frame within one run.
    """

    name: str
    stateful: bool

    def initial_state(self) -> Any: ...

    def apply(self, frame: Frame, state: Any = None) -> tuple[Frame, Any]:
        """Apply transform to one frame.

        Raises:
            TransformError: If the transform cannot be applied
        """
        ...


class ISource(Protocol):
    """Input endpoint. Opening it is the first I/O a pipeline run performs."""

    label: str
    format_hint: str | None

    def open(self) -> ContextManager[BinaryIO]: ...


class ISink(Protocol):
    """Output endpoint."""

    label: str
    format_hint: str | None

    def open(self) -> ContextManager[BinaryIO]: ...
