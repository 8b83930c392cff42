"""Error taxonomy with friendly messages."""

from __future__ import annotations

from pathlib import Path


class WavsmithError(Exception):
    """Base exception for all wavsmith errors."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\nSuggestion: {self.suggestion}"
        return self.message


class ContainerFormatError(WavsmithError):
    """Malformed or truncated container header, magic mismatch, bad size fields."""

    pass


class UnsupportedFormatError(WavsmithError):
    """Valid container carrying a bit depth, layout or format code we do not handle."""

    pass


class CodecError(WavsmithError):
    """Decode/encode-internal inconsistency."""

    pass


class TransformError(WavsmithError):
    """Invalid transform parameter or transform invariant violation."""

    pass


class IoError(WavsmithError):
    """Underlying read/write failure from the storage layer.

    Kept distinct from the format errors so callers can retry at the I/O layer.
    """

    def __init__(self, message: str, path: str | Path | None = None) -> None:
        self.path = None if path is None else str(path)
        super().__init__(message)

    @classmethod
    def from_os_error(cls, exc: OSError, path: str | Path | None = None) -> IoError:
        target = path if path is not None else exc.filename
        reason = exc.strerror or str(exc)
        if target is not None:
            return cls(f"I/O error on '{target}': {reason}", path=target)
        return cls(f"I/O error: {reason}")


class PipelineError(WavsmithError):
    """Pipeline construction or planning error."""

    pass


class ConfigError(WavsmithError):
    """Configuration error."""

    pass
