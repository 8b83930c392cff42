"""FormatRegistry: single source of truth for container/codec pairs.

A format binds one container (demux/mux) to one codec (decode/encode) under a
name and a set of file extensions. Pipeline and the batch driver look formats
up here and never name a concrete implementation.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path

from wavsmith.core.errors import UnsupportedFormatError
from wavsmith.core.interfaces import ICodec, IContainer


@dataclass(frozen=True)
class MediaFormat:
    name: str
    extensions: tuple[str, ...]
    container: IContainer
    codec: ICodec


class FormatRegistry:
    """Name/extension -> MediaFormat lookup."""

    def __init__(self) -> None:
        self._formats: dict[str, MediaFormat] = {}

    def register(self, fmt: MediaFormat) -> None:
        self._formats[fmt.name] = fmt

    def names(self) -> list[str]:
        return sorted(self._formats)

    def extensions(self) -> list[str]:
        return sorted(ext for fmt in self._formats.values() for ext in fmt.extensions)

    def get(self, name: str) -> MediaFormat:
        fmt = self._formats.get(name.lower())
        if fmt is None:
            raise UnsupportedFormatError(
                f"Unknown media format '{name}'",
                f"Known formats: {', '.join(self.names())}",
            )
        return fmt

    def for_path(self, path: str | Path) -> MediaFormat:
        """Resolve a format from a file extension."""
        suffix = Path(path).suffix.lower()
        for fmt in self._formats.values():
            if suffix in fmt.extensions:
                return fmt
        raise UnsupportedFormatError(
            f"Unsupported file format: '{path}'",
            f"Supported extensions: {', '.join(self.extensions())}",
        )

    def resolve(self, hint: str | None, path: str | Path | None = None) -> MediaFormat:
        """Explicit format name wins over the path extension."""
        if hint:
            return self.get(hint)
        if path is not None:
            return self.for_path(path)
        return self.get("wav")


_REGISTRY: FormatRegistry | None = None
_REGISTRY_LOCK = threading.Lock()


def _register_builtin(registry: FormatRegistry) -> None:
    from wavsmith.codecs.pcm import PcmCodec
    from wavsmith.container.wav import WavContainer

    wav = WavContainer()
    registry.register(
        MediaFormat(name="wav", extensions=wav.extensions, container=wav, codec=PcmCodec())
    )


def get_format_registry() -> FormatRegistry:
    global _REGISTRY
    with _REGISTRY_LOCK:
        if _REGISTRY is None:
            registry = FormatRegistry()
            _register_builtin(registry)
            _REGISTRY = registry
    return _REGISTRY
