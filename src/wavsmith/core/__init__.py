"""wavsmith core: media types, capability interfaces, pipeline.

Everything format-specific lives in wavsmith.container and wavsmith.codecs
and is reached through the format registry.
"""

from wavsmith.core.config import ConfigResolver, LoggingPolicy
from wavsmith.core.errors import (
    CodecError,
    ConfigError,
    ContainerFormatError,
    IoError,
    PipelineError,
    TransformError,
    UnsupportedFormatError,
    WavsmithError,
)
from wavsmith.core.inspection import FrameSummary, MediaInfo, describe, inspect
from wavsmith.core.interfaces import (
    ICodec,
    IContainer,
    IPacketReader,
    IPacketWriter,
    ISink,
    ISource,
    ITransform,
)
from wavsmith.core.io import BufferSink, BufferSource, PathSink, PathSource
from wavsmith.core.logging import (
    VerbosityLevel,
    get_logger,
    get_verbosity,
    set_colors,
    set_verbosity,
)
from wavsmith.core.media import ContainerDescriptor, Frame, Packet
from wavsmith.core.pipeline import Pipeline, PipelineConfig, RunSummary, build, pipeline
from wavsmith.core.registry import FormatRegistry, MediaFormat, get_format_registry
from wavsmith.core.transforms import (
    Gain,
    Normalize,
    RunningPeak,
    TransformChain,
    build_chain,
    load_chain,
    parse_transform,
)

__all__ = [
    # Media
    "ContainerDescriptor",
    "Packet",
    "Frame",
    # Interfaces
    "IContainer",
    "ICodec",
    "IPacketReader",
    "IPacketWriter",
    "ITransform",
    "ISource",
    "ISink",
    # Endpoints
    "PathSource",
    "PathSink",
    "BufferSource",
    "BufferSink",
    # Formats
    "FormatRegistry",
    "MediaFormat",
    "get_format_registry",
    # Transforms
    "Gain",
    "Normalize",
    "RunningPeak",
    "TransformChain",
    "parse_transform",
    "build_chain",
    "load_chain",
    # Pipeline
    "Pipeline",
    "PipelineConfig",
    "RunSummary",
    "pipeline",
    "build",
    # Inspection
    "FrameSummary",
    "MediaInfo",
    "inspect",
    "describe",
    # Config
    "ConfigResolver",
    "LoggingPolicy",
    # Errors
    "WavsmithError",
    "ContainerFormatError",
    "UnsupportedFormatError",
    "CodecError",
    "TransformError",
    "IoError",
    "PipelineError",
    "ConfigError",
    # Logging
    "VerbosityLevel",
    "get_logger",
    "set_verbosity",
    "get_verbosity",
    "set_colors",
]
