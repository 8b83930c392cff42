"""Pipeline endpoints: file paths and in-memory buffers.

Constructing an endpoint never touches storage; open() does. OSError raised
while opening is converted to IoError.
"""

from __future__ import annotations

import contextlib
import io
from collections.abc import Iterator
from pathlib import Path
from typing import Any, BinaryIO

from wavsmith.core.errors import IoError, PipelineError
from wavsmith.core.interfaces import ISink, ISource


class PathSource:
    """Read endpoint backed by a file."""

    def __init__(self, path: str | Path, format_hint: str | None = None) -> None:
        self.path = Path(path)
        self.label = str(path)
        self.format_hint = format_hint

    @contextlib.contextmanager
    def open(self) -> Iterator[BinaryIO]:
        try:
            f = open(self.path, "rb")
        except OSError as e:
            raise IoError.from_os_error(e, self.path) from e
        with f:
            yield f

    def size(self) -> int:
        try:
            return self.path.stat().st_size
        except OSError as e:
            raise IoError.from_os_error(e, self.path) from e

    def __repr__(self) -> str:
        return f"PathSource({self.label!r})"


class PathSink:
    """Write endpoint backed by a file. The parent directory must exist."""

    def __init__(self, path: str | Path, format_hint: str | None = None) -> None:
        self.path = Path(path)
        self.label = str(path)
        self.format_hint = format_hint

    @contextlib.contextmanager
    def open(self) -> Iterator[BinaryIO]:
        try:
            f = open(self.path, "wb")
        except OSError as e:
            raise IoError.from_os_error(e, self.path) from e
        with f:
            yield f

    def __repr__(self) -> str:
        return f"PathSink({self.label!r})"


class BufferSource:
    """Read endpoint over bytes already in memory."""

    def __init__(self, data: bytes, label: str = "<memory>", format_hint: str | None = "wav") -> None:
        self.data = bytes(data)
        self.label = label
        self.format_hint = format_hint

    @contextlib.contextmanager
    def open(self) -> Iterator[BinaryIO]:
        with io.BytesIO(self.data) as buf:
            yield buf

    def size(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"BufferSource({self.label!r}, {len(self.data)} bytes)"


class BufferSink:
    """Write endpoint collecting output in memory.

    Whatever was written before a failure is kept in `data`.
    """

    def __init__(self, label: str = "<memory>", format_hint: str | None = "wav") -> None:
        self.label = label
        self.format_hint = format_hint
        self.data = b""

    @contextlib.contextmanager
    def open(self) -> Iterator[BinaryIO]:
        buf = io.BytesIO()
        try:
            yield buf
        finally:
            self.data = buf.getvalue()

    def getvalue(self) -> bytes:
        return self.data

    def __repr__(self) -> str:
        return f"BufferSink({self.label!r})"


def as_source(obj: Any) -> ISource:
    """Coerce a path or bytes into a source; sources pass through."""
    if isinstance(obj, (str, Path)):
        return PathSource(obj)
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return BufferSource(bytes(obj))
    if hasattr(obj, "open") and hasattr(obj, "label"):
        return obj
    raise PipelineError(f"Cannot use {obj!r} as a pipeline source")


def as_sink(obj: Any) -> ISink:
    """Coerce a path into a sink; sinks pass through."""
    if isinstance(obj, (str, Path)):
        return PathSink(obj)
    if hasattr(obj, "open") and hasattr(obj, "label"):
        return obj
    raise PipelineError(f"Cannot use {obj!r} as a pipeline sink")
