"""
Command-line entry point: compare two packaged builds.

    wasmrepro-compare artifacts/arm/20240101T000000 artifacts/x86/20240101T000000

Exit status reflects whether the comparison could run, not its outcome.
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from artifact_compare.io.report import render_text
from artifact_compare.runner import ComparisonInputError, compare_directories
from wasm_builder.config import BuilderSettings
from wasm_builder.core.process import SubprocessRunner

logger = logging.getLogger("artifact_compare")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="wasmrepro-compare",
        description="artifact_compare — diff two packaged wasm builds (e.g. arm vs x86)",
    )
    parser.add_argument("left", type=Path, help="First packaged directory")
    parser.add_argument("right", type=Path, help="Second packaged directory")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON instead of text",
    )
    parser.add_argument(
        "--no-disassemble",
        action="store_true",
        help="Never run wasm2wat when a side lacks lib.wat",
    )
    parser.add_argument(
        "--max-diff-lines",
        type=int,
        default=200,
        help="Cap on printed disassembly diff lines (default: %(default)s)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    settings = BuilderSettings()
    runner = None if args.no_disassemble else SubprocessRunner()

    try:
        report = compare_directories(
            args.left,
            args.right,
            runner=runner,
            disassembler=settings.wasm2wat_tool(),
        )
    except ComparisonInputError as e:
        logger.error(str(e))
        return 2

    if args.json:
        print(report.model_dump_json(indent=2))
    else:
        sys.stdout.write(render_text(report, max_diff_lines=args.max_diff_lines))
    return 0


if __name__ == "__main__":
    sys.exit(main())
