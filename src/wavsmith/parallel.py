"""Batch driver - run independent pipelines over many inputs concurrently."""

from __future__ import annotations

import asyncio
import glob
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from wavsmith.core.config import DEFAULT_FRAME_SIZE
from wavsmith.core.errors import IoError, PipelineError, WavsmithError
from wavsmith.core.logging import get_logger
from wavsmith.core.pipeline import RunSummary, build
from wavsmith.core.registry import get_format_registry
from wavsmith.core.transforms import TransformChain

log = get_logger(__name__)

_GLOB_CHARS = frozenset("*?[")


@dataclass(frozen=True)
class BatchItem:
    input_path: Path
    output_path: Path


@dataclass(frozen=True)
class ItemResult:
    """Outcome of one batch item: exactly one of summary / error is set."""

    item: BatchItem
    summary: RunSummary | None = None
    error: WavsmithError | None = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.summary is not None


ProgressCallback = Callable[[int, int, ItemResult], None]


def is_batch_pattern(spec: str) -> bool:
    return any(c in _GLOB_CHARS for c in spec)


def expand(spec: str) -> list[Path]:
    """Resolve an input specifier into an ordered list of input paths.

    A glob pattern expands to the matching files (sorted), a directory to
    its files with a registered media extension (sorted), anything else to
    itself.

    Raises:
        IoError: If a pattern or directory yields no files
    """
    if is_batch_pattern(spec):
        matches = sorted(Path(p) for p in glob.glob(spec, recursive=True) if Path(p).is_file())
        if not matches:
            raise IoError(f"No files matching pattern: {spec}")
        return matches

    path = Path(spec)
    if path.is_dir():
        extensions = set(get_format_registry().extensions())
        files = sorted(p for p in path.iterdir() if p.is_file() and p.suffix.lower() in extensions)
        if not files:
            raise IoError(f"No media files in directory: {spec}", path=path)
        return files

    return [path]


def plan_outputs(inputs: Sequence[Path], output_dir: Path) -> list[BatchItem]:
    """Map inputs 1:1 onto output_dir/<input basename>.

    Raises:
        PipelineError: If two inputs share a basename or an output would
            overwrite its own input
    """
    items: list[BatchItem] = []
    claimed: dict[Path, Path] = {}

    for input_path in inputs:
        output_path = output_dir / input_path.name
        key = output_path.resolve()
        if key in claimed:
            raise PipelineError(
                f"Inputs '{claimed[key]}' and '{input_path}' would both write '{output_path}'",
                "Give batch inputs distinct file names",
            )
        if key == input_path.resolve():
            raise PipelineError(
                f"Output '{output_path}' would overwrite its input",
                "Choose an output directory different from the input directory",
            )
        claimed[key] = input_path
        items.append(BatchItem(input_path=input_path, output_path=output_path))

    return items


class BatchDriver:
    """Process many inputs, each through its own independent Pipeline.

    Items share the transform chain definition but nothing else: each run
    gets fresh transform accumulators, its own descriptor and buffers. One
    item's failure is recorded in its result and never stops the others.
    Results come back in input order whatever the completion order.
    """

    def __init__(
        self,
        transforms: TransformChain,
        max_workers: int = 4,
        frame_size: int = DEFAULT_FRAME_SIZE,
        timeout: float | None = None,
    ) -> None:
        """Initialize batch driver.

        Args:
            transforms: Transform chain applied to every item
            max_workers: Maximum concurrently running pipelines
            frame_size: Samples per channel per packet
            timeout: Seconds after which not-yet-started items are cancelled
        """
        if max_workers < 1:
            raise PipelineError(f"max_workers must be >= 1, got {max_workers}")
        self.transforms = transforms
        self.max_workers = max_workers
        self.frame_size = frame_size
        self.timeout = timeout
        self._cancel = threading.Event()

    def cancel(self) -> None:
        """Best-effort cancel: items not yet started are skipped.

        In-flight items run to completion or failure. A cancel issued before
        a batch starts skips every item of that batch. The flag resets when
        the batch ends.
        """
        self._cancel.set()

    def run_item(self, item: BatchItem) -> ItemResult:
        """Build and run one pipeline synchronously."""
        try:
            pipeline = build(
                item.input_path, self.transforms, item.output_path, frame_size=self.frame_size
            )
            summary = pipeline.run()
        except WavsmithError as e:
            log.debug(f"{item.input_path}: failed: {e.message}")
            return ItemResult(item=item, error=e)
        return ItemResult(item=item, summary=summary)

    async def process_item(self, item: BatchItem, semaphore: asyncio.Semaphore) -> ItemResult:
        async with semaphore:
            if self._cancel.is_set():
                return ItemResult(
                    item=item,
                    error=PipelineError(f"Cancelled before start: {item.input_path}"),
                    cancelled=True,
                )
            return await asyncio.to_thread(self.run_item, item)

    async def process_batch(
        self,
        items: Sequence[BatchItem],
        progress_callback: ProgressCallback | None = None,
    ) -> list[ItemResult]:
        """Process items concurrently.

        Args:
            items: Batch items
            progress_callback: Called as (done, total, result) after each item

        Returns:
            One result per item, in input order
        """
        try:
            return await self._process(items, progress_callback)
        finally:
            self._cancel.clear()

    async def _process(
        self,
        items: Sequence[BatchItem],
        progress_callback: ProgressCallback | None,
    ) -> list[ItemResult]:
        if not items:
            return []

        semaphore = asyncio.Semaphore(self.max_workers)
        # One slot per item, each written exactly once by its own task.
        slots: list[ItemResult | None] = [None] * len(items)
        done = 0
        total = len(items)

        async def _fill(index: int, item: BatchItem) -> None:
            nonlocal done
            result = await self.process_item(item, semaphore)
            slots[index] = result
            done += 1
            if progress_callback is not None:
                try:
                    progress_callback(done, total, result)
                except Exception as e:
                    log.warning(f"Progress callback raised; ignored: {e}")

        tasks = [asyncio.create_task(_fill(i, item)) for i, item in enumerate(items)]
        _finished, pending = await asyncio.wait(tasks, timeout=self.timeout)

        if pending:
            log.warning(
                f"Batch timeout after {self.timeout}s: cancelling {len(pending)} unfinished item(s) "
                "not yet started"
            )
            self._cancel.set()
            await asyncio.gather(*pending)

        results = [r for r in slots if r is not None]
        if len(results) != total:
            raise PipelineError(f"Batch lost results: {len(results)} of {total} recorded")
        return results

    def run_all(
        self,
        items: Iterable[BatchItem],
        progress_callback: ProgressCallback | None = None,
    ) -> list[ItemResult]:
        """Synchronous entry point over process_batch()."""
        return asyncio.run(self.process_batch(list(items), progress_callback))


def run_all(
    pairs: Iterable[tuple[str | Path, str | Path]],
    transforms: TransformChain,
    max_workers: int = 4,
    frame_size: int = DEFAULT_FRAME_SIZE,
    timeout: float | None = None,
    progress_callback: ProgressCallback | None = None,
) -> list[ItemResult]:
    """Run one independent pipeline per (input, output) pair."""
    items = [BatchItem(input_path=Path(i), output_path=Path(o)) for i, o in pairs]
    driver = BatchDriver(transforms, max_workers=max_workers, frame_size=frame_size, timeout=timeout)
    return driver.run_all(items, progress_callback)
