"""
Pipeline runner — top-level orchestration: project → packaged artifacts.

This module ties metadata resolution, flag construction, the cargo build,
the conversion chain, packaging and the manifest together into a single
``run_pipeline`` function that can be called from the CLI or the API.

Steps run strictly in sequence; the first error propagates unchanged and
nothing after it runs.  A build failure therefore never leaves a packaged
directory behind, and the manifest (written last) marks completion.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from wasm_builder.core.conversion import ArtifactPaths, Converter, FormatConversionChain
from wasm_builder.core.executor import BuildExecutor
from wasm_builder.core.flags import DeterministicEnvironment, build_deterministic_environment
from wasm_builder.core.metadata import BuildTargetDescriptor, load_project, select_artifact_target
from wasm_builder.core.process import ProcessRunner, SubprocessRunner
from wasm_builder.core.toolchain import ToolchainIdentity, capture_toolchain
from wasm_builder.io.manifest import ManifestWriter
from wasm_builder.io.packager import ArtifactPackager, Clock
from wasm_builder.io.schema import PackagedArtifactSet
from wasm_builder.policy.profile import BuildConfig, StageName

logger = logging.getLogger(__name__)

SCRATCH_SUBDIR = "scratch"
DEFAULT_OUTPUT_SUBDIR = "artifacts"


@dataclass(frozen=True)
class PipelineResult:
    target: BuildTargetDescriptor
    environment: DeterministicEnvironment
    toolchain: ToolchainIdentity
    paths: ArtifactPaths
    packaged: PackagedArtifactSet
    manifest_path: Path


def run_pipeline(
    project_root: Path,
    config: Optional[BuildConfig] = None,
    runner: Optional[ProcessRunner] = None,
    output_root: Optional[Path] = None,
    tools: Optional[Mapping[StageName, Converter]] = None,
    arch: Optional[str] = None,
    clock: Optional[Clock] = None,
    environ: Optional[Mapping[str, str]] = None,
    cargo: str = "cargo",
    rustc: str = "rustc",
) -> PipelineResult:
    """
    Build, convert and package one project.

    Parameters
    ----------
    project_root : Path
        Directory holding Cargo.toml.
    config : BuildConfig, optional
        Defaults to BuildConfig.default().
    runner : ProcessRunner, optional
        Defaults to a SubprocessRunner over os.environ, with ``environ``
        entries layered on top.
    output_root : Path, optional
        Packaging root; defaults to <project_root>/artifacts.
    environ : Mapping, optional
        Environment snapshot for flag construction; defaults to os.environ,
        read once here.
    """
    if config is None:
        config = BuildConfig.default()
    if runner is None:
        child_env = dict(os.environ)
        child_env.update(environ or {})
        runner = SubprocessRunner(base_env=child_env)
    project_root = Path(project_root).resolve()
    if output_root is None:
        output_root = project_root / DEFAULT_OUTPUT_SUBDIR

    # ── Step 1: resolve the one wasm-producing target ────────────────
    project = load_project(project_root, runner, cargo=cargo)
    target = select_artifact_target(project.metadata)

    # ── Step 2: deterministic flags + provenance snapshot ────────────
    env = build_deterministic_environment(project.root, config, environ=environ)
    toolchain = capture_toolchain(runner, project.root, cargo=cargo, rustc=rustc)

    # ── Step 3: compile ──────────────────────────────────────────────
    executor = BuildExecutor(runner, cargo=cargo)
    wasm_path = executor.build(project, target, config, env)

    # ── Step 4: derive secondary forms ───────────────────────────────
    chain = FormatConversionChain(runner, tools=tools)
    scratch_dir = executor.isolated_target_dir(project) / SCRATCH_SUBDIR
    paths = chain.run(wasm_path, scratch_dir, disabled=config.disabled_stages)

    # ── Step 5: package + manifest ───────────────────────────────────
    packaged = ArtifactPackager(output_root, arch=arch, clock=clock).package(paths)
    manifest_path = ManifestWriter(clock=clock).write(
        packaged,
        toolchain,
        target=env.host_target or toolchain.host_triple,
    )

    logger.info(
        f"Build of {target.artifact_name} complete: "
        f"{len(packaged.artifacts)} artifacts in {packaged.directory}"
    )
    return PipelineResult(
        target=target,
        environment=env,
        toolchain=toolchain,
        paths=paths,
        packaged=packaged,
        manifest_path=manifest_path,
    )
