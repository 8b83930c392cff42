"""Pipeline: demux -> decode -> transform chain -> encode -> mux.

Construction is pure configuration; run() performs all I/O. Execution is a
single forward pass, one packet at a time:

    read packet -> decode -> apply each transform in order -> encode -> write

Packet N finishes its whole cycle before packet N+1 is read. The first
failure halts the run and is raised to the caller. Packets already written
to the sink stay there: there is no rollback and, after a failure, no
header finalization.

Builder form:
    summary = (
        pipeline()
        .input("in.wav")
        .map(Gain(2.0))
        .map("normalize")
        .output("out.wav")
        .run()
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from wavsmith.core.config import DEFAULT_FRAME_SIZE
from wavsmith.core.errors import IoError, PipelineError, WavsmithError
from wavsmith.core.interfaces import ISink, ISource, ITransform
from wavsmith.core.io import as_sink, as_source
from wavsmith.core.logging import get_logger
from wavsmith.core.media import ContainerDescriptor
from wavsmith.core.registry import FormatRegistry, get_format_registry
from wavsmith.core.transforms import TransformChain, parse_transform

log = get_logger(__name__)


@dataclass(frozen=True)
class RunSummary:
    """Outcome of one successful pipeline run."""

    source: str
    sink: str
    descriptor: ContainerDescriptor
    packets: int
    samples: int  # per channel
    clipped: int
    transform_states: tuple[Any, ...] = ()

    @property
    def duration_seconds(self) -> float:
        return self.samples / self.descriptor.sample_rate


class Pipeline:
    """Ordered transform chain bound to one source and one sink."""

    def __init__(
        self,
        source: ISource,
        transforms: TransformChain,
        sink: ISink,
        frame_size: int = DEFAULT_FRAME_SIZE,
        registry: FormatRegistry | None = None,
    ) -> None:
        if frame_size < 1:
            raise PipelineError(f"frame_size must be >= 1, got {frame_size}")
        self.source = source
        self.transforms = transforms
        self.sink = sink
        self.frame_size = frame_size
        self.registry = registry

    def run(self) -> RunSummary:
        """Execute the pipeline.

        Returns:
            RunSummary with packet/sample counts and final transform states

        Raises:
            ContainerFormatError, UnsupportedFormatError: Bad input container
            CodecError: Packet/frame inconsistent with the descriptor
            TransformError: Transform failure
            IoError: Storage read/write failure
            PipelineError: Output would overwrite the input, or any other
                failure inside a stage
        """
        self._check_not_in_place()
        try:
            return self._run()
        except WavsmithError:
            raise
        except OSError as e:
            raise IoError.from_os_error(e, e.filename or self.source.label) from e
        except Exception as e:
            raise PipelineError(f"Pipeline {self.source.label} -> {self.sink.label} failed: {e}") from e

    def _check_not_in_place(self) -> None:
        # The sink truncates its file on open, while the reader still needs it.
        src_path = getattr(self.source, "path", None)
        sink_path = getattr(self.sink, "path", None)
        if src_path is None or sink_path is None:
            return
        if Path(src_path).resolve() == Path(sink_path).resolve():
            raise PipelineError(
                f"Output '{self.sink.label}' would overwrite its input",
                "Write to a different file, then replace the input if needed",
            )

    def _run(self) -> RunSummary:
        registry = self.registry or get_format_registry()
        in_fmt = registry.resolve(self.source.format_hint, getattr(self.source, "path", None))
        out_fmt = registry.resolve(self.sink.format_hint, getattr(self.sink, "path", None))

        # One fresh set of accumulators per run; nothing carries over between runs.
        states = self.transforms.initial_states()

        log.verbose(
            f"Running {self.source.label} -> {self.sink.label} "
            f"({len(self.transforms)} transform(s))"
        )

        packets = 0
        samples = 0
        clipped = 0

        with self.source.open() as fin:
            reader = in_fmt.container.open_reader(fin, self.frame_size)
            descriptor = reader.descriptor
            if out_fmt.name != descriptor.format_tag:
                out_descriptor = replace(descriptor, format_tag=out_fmt.name)
            else:
                out_descriptor = descriptor

            log.debug(
                f"{self.source.label}: {descriptor.channels} ch, {descriptor.sample_rate} Hz, "
                f"{descriptor.bit_depth}-bit"
            )

            # Sink is opened only once the input header is known to be good.
            with self.sink.open() as fout:
                writer = out_fmt.container.open_writer(fout, out_descriptor)

                for packet in reader:
                    frame = in_fmt.codec.decode(packet, descriptor)
                    frame, states = self.transforms.apply(frame, states)
                    encoded = out_fmt.codec.encode(frame, out_descriptor)
                    writer.write_packet(encoded)

                    packets += 1
                    samples += frame.sample_count
                    clipped += encoded.clipped

                writer.finalize()

        if clipped:
            log.warning(
                f"{self.sink.label}: {clipped} sample(s) clamped to full scale during encode"
            )
        log.debug(f"{self.sink.label}: wrote {packets} packet(s), {samples} sample(s) per channel")

        return RunSummary(
            source=self.source.label,
            sink=self.sink.label,
            descriptor=out_descriptor,
            packets=packets,
            samples=samples,
            clipped=clipped,
            transform_states=tuple(states),
        )

    def __repr__(self) -> str:
        return f"Pipeline({self.source!r}, {self.transforms!r}, {self.sink!r})"


@dataclass(frozen=True)
class PipelineConfig:
    """Incrementally built pipeline configuration.

    Each builder method returns a new config; nothing is opened until run().
    """

    source: ISource | None = None
    sink: ISink | None = None
    transforms: TransformChain = field(default_factory=TransformChain)
    frame_size: int = DEFAULT_FRAME_SIZE

    def input(self, source: Any) -> PipelineConfig:
        return replace(self, source=as_source(source))

    def map(self, transform: ITransform | str) -> PipelineConfig:
        """Append one transform (object or `name[=param]` specifier)."""
        if isinstance(transform, str):
            transform = parse_transform(transform)
        return replace(self, transforms=self.transforms.then(transform))

    def chain(self, chain: TransformChain) -> PipelineConfig:
        return replace(self, transforms=self.transforms.extend(chain))

    def output(self, sink: Any) -> PipelineConfig:
        return replace(self, sink=as_sink(sink))

    def with_frame_size(self, frame_size: int) -> PipelineConfig:
        return replace(self, frame_size=frame_size)

    def build(self) -> Pipeline:
        if self.source is None:
            raise PipelineError("Pipeline has no input", "Call .input(path) before .build()")
        if self.sink is None:
            raise PipelineError("Pipeline has no output", "Call .output(path) before .build()")
        return Pipeline(self.source, self.transforms, self.sink, frame_size=self.frame_size)

    def run(self) -> RunSummary:
        return self.build().run()


def pipeline() -> PipelineConfig:
    """Start an empty pipeline configuration."""
    return PipelineConfig()


def build(
    source: Any,
    transforms: TransformChain | list[ITransform],
    sink: Any,
    frame_size: int = DEFAULT_FRAME_SIZE,
) -> Pipeline:
    """Bind a source, an ordered transform list and a sink. Performs no I/O."""
    chain = transforms if isinstance(transforms, TransformChain) else TransformChain(transforms)
    return Pipeline(as_source(source), chain, as_sink(sink), frame_size=frame_size)
