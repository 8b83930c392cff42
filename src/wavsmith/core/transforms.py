"""Frame transforms and transform chains.

Transforms are Frame -> Frame mappings. Gain is pure. Normalize is the one
stateful transform: it scales each frame by the reciprocal of the running
peak seen so far in the stream. That running peak lives in an explicit
accumulator (RunningPeak) which the pipeline creates fresh for every run and
threads from frame to frame; the Normalize object itself holds no state, so
one chain can be shared by any number of pipelines.

Streaming normalization is single-pass with bounded memory. The cost: early
frames are scaled by an incomplete peak estimate, so a loud passage late in
the stream does not lower the level of quiet frames before it. Every frame
after the global peak is scaled exactly as two-pass normalization would.

Example YAML chain file:
    chain:
      name: loud
      transforms:
        - gain: 2.0
        - normalize
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from numbers import Real
from pathlib import Path
from typing import Any

import yaml

from wavsmith.core.errors import PipelineError, TransformError, WavsmithError
from wavsmith.core.interfaces import ITransform
from wavsmith.core.media import Frame


@dataclass(frozen=True)
class RunningPeak:
    """Normalize accumulator: peak absolute sample seen so far in one run."""

    peak: float = 0.0
    frames: int = 0

    def update(self, frame_peak: float) -> RunningPeak:
        return RunningPeak(peak=max(self.peak, frame_peak), frames=self.frames + 1)


class Gain:
    """Multiply every sample in every channel by a constant factor."""

    name = "gain"
    stateful = False

    def __init__(self, factor: float) -> None:
        if isinstance(factor, bool) or not isinstance(factor, Real):
            raise TransformError(f"gain factor must be numeric, got {factor!r}")
        factor = float(factor)
        if not math.isfinite(factor):
            raise TransformError(f"gain factor must be finite, got {factor!r}")
        self.factor = factor

    def initial_state(self) -> None:
        return None

    def apply(self, frame: Frame, state: Any = None) -> tuple[Frame, Any]:
        return frame.with_samples(frame.samples * self.factor), state

    def __repr__(self) -> str:
        return f"Gain({self.factor!r})"


class Normalize:
    """Rescale each frame by 1 / running peak (streaming peak normalization)."""

    name = "normalize"
    stateful = True

    def initial_state(self) -> RunningPeak:
        return RunningPeak()

    def apply(self, frame: Frame, state: Any = None) -> tuple[Frame, RunningPeak]:
        if state is None:
            state = self.initial_state()
        if not isinstance(state, RunningPeak):
            raise TransformError(
                f"normalize expects a RunningPeak accumulator, got {type(state).__name__}"
            )

        state = state.update(frame.peak())
        # Silence so far: nothing to scale against.
        if state.peak == 0.0:
            return frame, state
        return frame.with_samples(frame.samples / state.peak), state

    def __repr__(self) -> str:
        return "Normalize()"


def _make_gain(param: str | None) -> ITransform:
    if param is None or param.strip() == "":
        raise TransformError(
            "gain requires a numeric factor",
            "Use gain=<factor>, e.g. gain=2.0",
        )
    try:
        factor = float(param)
    except ValueError as e:
        raise TransformError(f"gain factor must be numeric, got {param!r}") from e
    return Gain(factor)


def _make_normalize(param: str | None) -> ITransform:
    if param is not None:
        raise TransformError(f"normalize takes no parameter, got {param!r}")
    return Normalize()


TRANSFORM_FACTORIES: dict[str, Callable[[str | None], ITransform]] = {
    "gain": _make_gain,
    "normalize": _make_normalize,
}


def parse_transform(spec: str) -> ITransform:
    """Build a transform from a `name[=param]` specifier.

    Raises:
        TransformError: Unknown name or invalid parameter
    """
    name, sep, param = spec.partition("=")
    name = name.strip().lower()
    factory = TRANSFORM_FACTORIES.get(name)
    if factory is None:
        raise TransformError(
            f"Unknown transform '{name}'",
            f"Available transforms: {', '.join(sorted(TRANSFORM_FACTORIES))}",
        )
    return factory(param if sep else None)


class TransformChain:
    """Ordered, immutable sequence of transforms.

    Transforms run in the exact order they were added. The chain holds no
    per-run state: initial_states() hands out fresh accumulators and apply()
    returns the updated ones.
    """

    def __init__(self, transforms: Iterable[ITransform] = (), name: str = "chain") -> None:
        self.transforms: tuple[ITransform, ...] = tuple(transforms)
        self.name = name

    def __len__(self) -> int:
        return len(self.transforms)

    def __iter__(self) -> Iterator[ITransform]:
        return iter(self.transforms)

    def is_empty(self) -> bool:
        return not self.transforms

    def then(self, transform: ITransform) -> TransformChain:
        """New chain with `transform` appended."""
        return TransformChain(self.transforms + (transform,), name=self.name)

    def extend(self, other: Iterable[ITransform]) -> TransformChain:
        return TransformChain(self.transforms + tuple(other), name=self.name)

    def initial_states(self) -> list[Any]:
        return [t.initial_state() for t in self.transforms]

    def apply(self, frame: Frame, states: list[Any]) -> tuple[Frame, list[Any]]:
        """Run one frame through every transform, in order.

        Args:
            frame: Decoded frame
            states: Accumulators from initial_states() or the previous call

        Returns:
            (transformed frame, updated accumulators)

        Raises:
            TransformError: If a transform fails or breaks frame invariants
        """
        if len(states) != len(self.transforms):
            raise TransformError(
                f"Chain has {len(self.transforms)} transform(s) but {len(states)} state slot(s)"
            )

        new_states = list(states)
        for i, transform in enumerate(self.transforms):
            try:
                out, new_states[i] = transform.apply(frame, new_states[i])
            except WavsmithError:
                raise
            except Exception as e:
                raise TransformError(
                    f"Transform '{transform.name}' failed on frame {frame.index}: {e}"
                ) from e
            _check_frame_invariants(transform, frame, out)
            frame = out

        return frame, new_states

    def __repr__(self) -> str:
        return f"TransformChain({list(self.transforms)!r})"


def _check_frame_invariants(transform: ITransform, before: Frame, after: Any) -> None:
    if not isinstance(after, Frame):
        raise TransformError(
            f"Transform '{transform.name}' returned {type(after).__name__}, expected Frame"
        )
    if (
        after.channels != before.channels
        or after.sample_count != before.sample_count
        or after.sample_rate != before.sample_rate
        or after.pts != before.pts
    ):
        raise TransformError(
            f"Transform '{transform.name}' changed frame layout on frame {before.index}"
        )


def build_chain(specs: Iterable[str], name: str = "chain") -> TransformChain:
    """Parse `name[=param]` specifiers into a chain, preserving order."""
    return TransformChain((parse_transform(s) for s in specs), name=name)


def load_chain(yaml_path: Path) -> TransformChain:
    """Load a transform chain from YAML.

    Raises:
        PipelineError: If the file is missing or not a chain document
        TransformError: If an entry is not a valid transform
    """
    if not yaml_path.exists():
        raise PipelineError(f"Chain file not found: {yaml_path}")

    try:
        with open(yaml_path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise PipelineError(f"Failed to load chain: {e}") from e

    if not isinstance(data, dict) or "chain" not in data:
        raise PipelineError("Invalid chain YAML: missing 'chain' key")

    chain_data = data["chain"] or {}
    if not isinstance(chain_data, dict):
        raise PipelineError("Invalid chain YAML: 'chain' must be a mapping")

    entries = chain_data.get("transforms") or []
    if not isinstance(entries, list):
        raise PipelineError("Invalid chain YAML: 'transforms' must be a list")

    transforms = [_transform_from_entry(entry) for entry in entries]
    return TransformChain(transforms, name=str(chain_data.get("name", yaml_path.stem)))


def _transform_from_entry(entry: Any) -> ITransform:
    if isinstance(entry, str):
        return parse_transform(entry)
    if isinstance(entry, dict) and len(entry) == 1:
        ((name, param),) = entry.items()
        if param is None:
            return parse_transform(str(name))
        return parse_transform(f"{name}={param}")
    raise TransformError(f"Invalid transform entry in chain file: {entry!r}")
