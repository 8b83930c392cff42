"""wavsmith - deterministic PCM/WAV transformation and inspection.

Library surface: demux/decode/encode/mux primitives, Frame/Transform/Pipeline
types and the batch driver. The command surface lives in wavsmith.cli.
"""

__version__ = "0.1.0"

from wavsmith.codecs.pcm import PcmCodec
from wavsmith.container.wav import WavContainer
from wavsmith.core import (
    BufferSink,
    BufferSource,
    CodecError,
    ConfigError,
    ContainerDescriptor,
    ContainerFormatError,
    Frame,
    FrameSummary,
    Gain,
    IoError,
    Normalize,
    Packet,
    PathSink,
    PathSource,
    Pipeline,
    PipelineConfig,
    PipelineError,
    RunningPeak,
    RunSummary,
    TransformChain,
    TransformError,
    UnsupportedFormatError,
    WavsmithError,
    build,
    describe,
    inspect,
    parse_transform,
    pipeline,
)
from wavsmith.parallel import BatchDriver, BatchItem, ItemResult, expand, run_all

__all__ = [
    "__version__",
    "WavContainer",
    "PcmCodec",
    "ContainerDescriptor",
    "Packet",
    "Frame",
    "Gain",
    "Normalize",
    "RunningPeak",
    "TransformChain",
    "parse_transform",
    "Pipeline",
    "PipelineConfig",
    "RunSummary",
    "pipeline",
    "build",
    "PathSource",
    "PathSink",
    "BufferSource",
    "BufferSink",
    "FrameSummary",
    "inspect",
    "describe",
    "BatchDriver",
    "BatchItem",
    "ItemResult",
    "expand",
    "run_all",
    "WavsmithError",
    "ContainerFormatError",
    "UnsupportedFormatError",
    "CodecError",
    "TransformError",
    "IoError",
    "PipelineError",
    "ConfigError",
    "main",
]


def main() -> None:
    """Console-script entry point."""
    import sys

    from wavsmith.cli import main as cli_main

    sys.exit(cli_main())
