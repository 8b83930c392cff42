"""Command-line interface.

    wavsmith -i in.wav -o out.wav --apply gain=2.0 --apply normalize
    wavsmith -i 'music/*.wav' -o processed/ --apply normalize
    wavsmith -i in.wav --show

Exit status: 0 when every item succeeded, 1 when any failed, 2 on usage
errors, 130 on interrupt.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass, field
from itertools import islice
from pathlib import Path
from typing import Any

from wavsmith import __version__
from wavsmith.core.config import ConfigResolver
from wavsmith.core.errors import IoError, WavsmithError
from wavsmith.core.inspection import describe, inspect
from wavsmith.core.logging import apply_logging_policy, get_logger, set_colors
from wavsmith.core.pipeline import build
from wavsmith.core.transforms import TransformChain, build_chain, load_chain
from wavsmith.parallel import BatchDriver, ItemResult, expand, is_batch_pattern, plan_outputs

log = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


@dataclass(frozen=True)
class CLIArgs:
    inputs: list[str]
    output: str | None = None
    transforms: list[str] = field(default_factory=list)
    chain_file: str | None = None
    show: bool = False
    json: bool = False
    frames: int | None = None
    frame_size: int | None = None
    workers: int | None = None
    timeout: float | None = None
    level: str | None = None
    no_color: bool = False


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="wavsmith",
        description="Deterministic PCM/WAV transformation and inspection.",
    )

    p.add_argument(
        "-i", "--input", dest="inputs", action="append", required=True, metavar="PATH|GLOB",
        help="input file, directory or glob pattern (repeatable)",
    )
    p.add_argument(
        "-o", "--output", default=None, metavar="PATH|DIR",
        help="output file (single input) or directory (batch)",
    )
    p.add_argument(
        "--apply", dest="transforms", action="append", default=[], metavar="NAME[=PARAM]",
        help="append a transform: gain=<factor> or normalize (order is kept)",
    )
    p.add_argument(
        "--chain", dest="chain_file", default=None, metavar="FILE",
        help="YAML transform chain, applied before any --apply transforms",
    )

    p.add_argument("--show", action="store_true", help="print frame information instead of processing")
    p.add_argument("--json", action="store_true", help="with --show: print file info as JSON")
    p.add_argument("--frames", type=int, default=None, metavar="N", help="with --show: list at most N frames")

    p.add_argument("--frame-size", type=int, default=None, metavar="SAMPLES")
    p.add_argument("--workers", type=int, default=None, metavar="N", help="parallel batch pipelines")
    p.add_argument("--timeout", type=float, default=None, metavar="SECONDS")

    verbosity = p.add_mutually_exclusive_group()
    verbosity.add_argument("-q", "--quiet", dest="level", action="store_const", const="quiet")
    verbosity.add_argument("-v", "--verbose", dest="level", action="store_const", const="verbose")
    verbosity.add_argument("-d", "--debug", dest="level", action="store_const", const="debug")
    p.add_argument("--no-color", action="store_true")

    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return p


def parse_cli_args(argv: list[str]) -> CLIArgs:
    """Parse argv for unit tests and main()."""
    ns = _build_parser().parse_args(argv)

    return CLIArgs(
        inputs=list(ns.inputs),
        output=ns.output,
        transforms=list(ns.transforms),
        chain_file=ns.chain_file,
        show=bool(ns.show),
        json=bool(ns.json),
        frames=ns.frames,
        frame_size=ns.frame_size,
        workers=ns.workers,
        timeout=ns.timeout,
        level=ns.level,
        no_color=bool(ns.no_color),
    )


def _cli_overrides(args: CLIArgs) -> dict[str, Any]:
    """Translate flags into nested ConfigResolver CLI overrides."""
    overrides: dict[str, Any] = {}
    if args.frame_size is not None:
        overrides["frame_size"] = args.frame_size
    if args.workers is not None:
        overrides.setdefault("batch", {})["workers"] = args.workers
    if args.timeout is not None:
        overrides.setdefault("batch", {})["timeout"] = args.timeout
    if args.level is not None:
        overrides["logging"] = {"level": args.level}
    if args.no_color:
        overrides.setdefault("logging", {})["color"] = False
    return overrides


def _transform_chain(args: CLIArgs) -> TransformChain:
    chain = TransformChain()
    if args.chain_file:
        chain = load_chain(Path(args.chain_file))
    return chain.extend(build_chain(args.transforms))


def _expand_inputs(specs: list[str]) -> list[Path]:
    inputs: list[Path] = []
    for spec in specs:
        inputs.extend(expand(spec))
    return inputs


def _is_batch(args: CLIArgs) -> bool:
    if len(args.inputs) > 1:
        return True
    spec = args.inputs[0]
    if is_batch_pattern(spec) or Path(spec).is_dir():
        return True
    return args.output is not None and Path(args.output).is_dir()


def _run_show(args: CLIArgs, frame_size: int) -> int:
    if args.frames is not None and args.frames < 0:
        log.error(f"--frames must be >= 0, got {args.frames}")
        return EXIT_USAGE

    paths = _expand_inputs(args.inputs)
    status = EXIT_OK

    if args.json:
        infos: list[dict[str, Any]] = []
        for path in paths:
            try:
                infos.append(describe(path, frame_size=frame_size, limit=args.frames).to_dict())
            except WavsmithError as e:
                log.error(f"{path}: {e}")
                status = EXIT_FAILED
        payload: Any = infos[0] if len(paths) == 1 and infos else infos
        print(json.dumps(payload, indent=2))
        return status

    for path in paths:
        if len(paths) > 1:
            print(f"==> {path} <==")
        try:
            for summary in islice(inspect(path, frame_size=frame_size), args.frames):
                print(summary.to_line())
        except WavsmithError as e:
            log.error(f"{path}: {e}")
            status = EXIT_FAILED

    return status


def _run_single(args: CLIArgs, chain: TransformChain, frame_size: int) -> int:
    input_path = Path(args.inputs[0])
    if args.output is None:
        log.error("An output path is required (-o PATH), or use --show to inspect")
        return EXIT_USAGE

    try:
        build(input_path, chain, args.output, frame_size=frame_size).run()
    except WavsmithError as e:
        log.error(f"{input_path}: {e}")
        return EXIT_FAILED

    log.info(f"ok: {input_path} -> {args.output}")
    return EXIT_OK


def _run_batch(
    args: CLIArgs, resolver: ConfigResolver, chain: TransformChain, frame_size: int
) -> int:
    inputs = _expand_inputs(args.inputs)
    output_dir = Path(args.output) if args.output else Path(str(resolver.resolve("output_dir")[0]))
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IoError.from_os_error(e, output_dir) from e

    items = plan_outputs(inputs, output_dir)
    driver = BatchDriver(
        chain,
        max_workers=resolver.resolve_int("batch.workers", minimum=1),
        frame_size=frame_size,
        timeout=resolver.resolve_optional_float("batch.timeout"),
    )

    def _progress(done: int, total: int, result: ItemResult) -> None:
        state = "ok" if result.ok else "failed"
        log.verbose(f"[{done}/{total}] {state}: {result.item.input_path}")

    log.verbose(f"Batch: {len(items)} item(s) -> {output_dir} ({driver.max_workers} worker(s))")
    results = driver.run_all(items, progress_callback=_progress)

    failed = 0
    for result in results:
        if result.ok:
            log.info(f"ok: {result.item.input_path} -> {result.item.output_path}")
        else:
            failed += 1
            log.error(f"{result.item.input_path}: {result.error}")

    if failed:
        log.warning(f"{failed} of {len(results)} item(s) failed")
        return EXIT_FAILED
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return the process exit status."""
    args = parse_cli_args(sys.argv[1:] if argv is None else argv)
    resolver = ConfigResolver(cli_args=_cli_overrides(args))

    try:
        apply_logging_policy(resolver.resolve_logging_policy())
        set_colors(resolver.resolve_bool("logging.color"))
        frame_size = resolver.resolve_int("frame_size", minimum=1)

        if args.show:
            return _run_show(args, frame_size)

        chain = _transform_chain(args)
        if _is_batch(args):
            return _run_batch(args, resolver, chain, frame_size)
        return _run_single(args, chain, frame_size)

    except WavsmithError as e:
        log.error(str(e))
        return EXIT_FAILED
    except KeyboardInterrupt:
        log.error("Interrupted")
        return EXIT_INTERRUPTED
