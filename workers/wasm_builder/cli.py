"""
Command-line entry point: build, convert and package one project.

    wasmrepro-build --project path/to/crate --features std --stack-size 65536
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from wasm_builder.config import BuilderSettings
from wasm_builder.errors import PipelineError
from wasm_builder.policy.profile import BuildConfig, StageName
from wasm_builder.runner import run_pipeline

logger = logging.getLogger("wasm_builder")


def _parse_args(argv: Optional[List[str]], settings: BuilderSettings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="wasmrepro-build",
        description="wasm_builder — deterministic wasm32 build with packaged, hashed artifacts",
    )
    parser.add_argument(
        "--project",
        type=Path,
        default=Path.cwd(),
        help="Project root containing Cargo.toml (default: current directory)",
    )
    parser.add_argument(
        "--output-root",
        type=Path,
        default=None,
        help=f"Packaging root (default: <project>/{settings.ARTIFACTS_SUBDIR})",
    )
    parser.add_argument(
        "--features",
        nargs="*",
        default=[],
        help="Cargo features to enable",
    )
    parser.add_argument(
        "--no-default-features",
        action="store_true",
        help="Disable the crate's default features",
    )
    parser.add_argument(
        "--stack-size",
        type=int,
        default=settings.DEFAULT_STACK_SIZE,
        help="Linear-memory stack size in bytes (default: %(default)s)",
    )
    parser.add_argument(
        "--skip-stage",
        action="append",
        default=[],
        choices=[s.value for s in StageName],
        help="Disable an optional conversion stage (repeatable)",
    )
    parser.add_argument(
        "--arch",
        default=None,
        help="Override the architecture tag used in the output path",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    settings = BuilderSettings()
    args = _parse_args(argv, settings)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    config = BuildConfig.create(
        features=args.features,
        no_default_features=args.no_default_features,
        stack_size=args.stack_size,
        disabled_stages=args.skip_stage,
    )
    project = args.project.resolve()
    output_root = args.output_root or project / settings.ARTIFACTS_SUBDIR

    try:
        result = run_pipeline(
            project,
            config=config,
            output_root=output_root,
            tools=settings.conversion_tools(),
            arch=args.arch,
            cargo=settings.CARGO_BIN,
            rustc=settings.RUSTC_BIN,
        )
    except PipelineError as e:
        logger.error(f"Build failed at stage `{e.stage}`: {e}")
        return 1

    print(f"{result.target.artifact_name} -> {result.packaged.directory}")
    for artifact in result.packaged.artifacts:
        print(f"  sha256({artifact.name}): {artifact.sha256}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
