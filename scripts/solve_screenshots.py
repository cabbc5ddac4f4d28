#!/usr/bin/env python3
"""
Solve a coding problem from screenshot files.

Usage:
    python scripts/solve_screenshots.py problem.png
    python scripts/solve_screenshots.py part1.png part2.png --language java
    python scripts/solve_screenshots.py problem.png --verbose

The images go through the same primary pipeline the desktop host uses:
extract the problem, then generate a solution. Partial model output is
streamed to stderr; the final solution JSON is printed to stdout.

Configuration:
    ~/.snapsolve/config.json, overridden by SNAPSOLVE_API_URL,
    SNAPSOLVE_API_KEY (or OPENAI_API_KEY) and SNAPSOLVE_MODEL.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import tempfile
from pathlib import Path

# Allow running from a source checkout without installing.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from snapsolve.collaborators import StaticLanguage
from snapsolve.config import SnapSolveConfig
from snapsolve.events import EventType, PipelineEvent
from snapsolve.frame_store import DiskStorage, FrameStore, Lane
from snapsolve.gateway import AIGateway
from snapsolve.orchestrator import Orchestrator

FAILURE_EVENTS = {
    EventType.NO_FRAMES,
    EventType.EXTRACTION_FAILED,
    EventType.OUT_OF_QUOTA,
    EventType.INVALID_CREDENTIAL,
}


class ConsoleSink:
    """Streams partial output to stderr and remembers the outcome."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.solution = None
        self.failure: PipelineEvent | None = None

    def emit(self, event: PipelineEvent) -> None:
        if event.type is EventType.PARTIAL_DELTA:
            sys.stderr.write(event.payload)
            sys.stderr.flush()
        elif event.type is EventType.PROBLEM_EXTRACTED:
            sys.stderr.write("\n\n--- problem extracted, generating solution ---\n\n")
        elif event.type is EventType.SOLUTION_SUCCESS:
            self.solution = event.payload
        elif event.type in FAILURE_EVENTS:
            self.failure = event
        elif self.verbose:
            sys.stderr.write(f"[{event.type.value}]\n")


async def solve(images: list[Path], config: SnapSolveConfig, language: str | None, verbose: bool) -> int:
    sink = ConsoleSink(verbose=verbose)
    with tempfile.TemporaryDirectory(prefix="snapsolve-") as tmp:
        # All given images must survive eviction.
        store = FrameStore(DiskStorage(tmp), max_frames=max(len(images), config.store.max_frames))
        for image in images:
            await store.push(Lane.PRIMARY, image.read_bytes())

        orchestrator = Orchestrator(
            store,
            AIGateway(config.gateway),
            sink,
            languages=StaticLanguage(language, default=config.default_language),
            default_language=config.default_language,
        )
        try:
            await orchestrator.run(Lane.PRIMARY)
        finally:
            await orchestrator.aclose()

    sys.stderr.write("\n")
    if sink.failure is not None:
        reason = sink.failure.payload or sink.failure.type.value
        print(f"Error: {reason}", file=sys.stderr)
        return 1
    if sink.solution is None:
        print("Error: no solution produced", file=sys.stderr)
        return 1
    print(sink.solution.model_dump_json(exclude={"raw"}, indent=2))
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Solve a coding problem from screenshots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python scripts/solve_screenshots.py problem.png
    python scripts/solve_screenshots.py a.png b.png --language go
        """,
    )
    parser.add_argument("images", nargs="+", type=Path, help="Screenshot files, in order")
    parser.add_argument("--language", "-l", help="Solution language (default from config)")
    parser.add_argument("--config", "-c", type=Path, help="Config file (default ~/.snapsolve/config.json)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging and event names")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    missing = [str(p) for p in args.images if not p.is_file()]
    if missing:
        parser.error(f"Image file(s) not found: {', '.join(missing)}")

    try:
        config = SnapSolveConfig.load(args.config)
        exit_code = asyncio.run(solve(args.images, config, args.language, args.verbose))
    except KeyboardInterrupt:
        print("\n[interrupted]", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
