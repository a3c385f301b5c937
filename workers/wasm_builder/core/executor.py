"""
Build executor — one ``cargo build`` for wasm32, in an isolated target dir.

The isolated directory keeps deterministic builds from sharing cached
partial artifacts with ordinary ``cargo build`` runs.  A non-zero exit is
fatal and never retried.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from wasm_builder import WASM_TARGET
from wasm_builder.core.flags import DeterministicEnvironment
from wasm_builder.core.metadata import BuildTargetDescriptor, ProjectHandle
from wasm_builder.core.process import ProcessRunner
from wasm_builder.errors import BuildError
from wasm_builder.policy.profile import BuildConfig

logger = logging.getLogger(__name__)

ISOLATED_TARGET_SUBDIR = "deterministic"
RELEASE_PROFILE_DIR = "release"


class BuildExecutor:
    """Runs the release build and returns the primary wasm path."""

    def __init__(self, runner: ProcessRunner, cargo: str = "cargo"):
        self.runner = runner
        self.cargo = cargo

    @staticmethod
    def isolated_target_dir(project: ProjectHandle) -> Path:
        return project.target_directory / ISOLATED_TARGET_SUBDIR

    def build_args(self, project: ProjectHandle, config: BuildConfig) -> List[str]:
        args = [
            "build",
            "--target", WASM_TARGET,
            "--release",
            "--manifest-path", str(project.manifest_path),
            "--target-dir", str(self.isolated_target_dir(project)),
            "--color=never",
            "--locked",
        ]
        if config.no_default_features:
            args.append("--no-default-features")
        if config.features:
            args += ["--features", ",".join(config.features)]
        return args

    def artifact_path(self, project: ProjectHandle, target: BuildTargetDescriptor) -> Path:
        return (
            self.isolated_target_dir(project)
            / WASM_TARGET
            / RELEASE_PROFILE_DIR
            / target.artifact_name
        )

    def build(
        self,
        project: ProjectHandle,
        target: BuildTargetDescriptor,
        config: BuildConfig,
        env: DeterministicEnvironment,
    ) -> Path:
        args = self.build_args(project, config)
        logger.info(f"Building {target.artifact_name}: {self.cargo} {' '.join(args)}")

        result = self.runner.run(self.cargo, args, env=env.env, cwd=project.root)
        if not result.ok:
            raise BuildError(
                f"cargo build failed with exit code {result.exit_code}",
                exit_code=result.exit_code,
                cause=result.stderr_tail(),
                path=project.manifest_path,
            )

        wasm_path = self.artifact_path(project, target)
        if not wasm_path.is_file():
            raise BuildError(
                "cargo build succeeded but the wasm artifact is missing",
                exit_code=result.exit_code,
                path=wasm_path,
            )

        logger.info(f"Primary artifact: {wasm_path}")
        return wasm_path
