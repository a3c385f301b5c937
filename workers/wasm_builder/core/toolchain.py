"""
Toolchain discovery — provenance facts captured once at the start of a run.

All probes are best-effort: a missing git checkout or a tool that fails to
report its version leaves the field ``None`` and the manifest omits it.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel

from wasm_builder.core.process import ProcessRunner

logger = logging.getLogger(__name__)


class ToolchainIdentity(BaseModel):
    """Immutable record of the build environment."""
    commit: Optional[str] = None
    rustc_version: Optional[str] = None
    cargo_version: Optional[str] = None
    host_triple: Optional[str] = None


def _run_quiet(runner: ProcessRunner, command: str, args: List[str], cwd: Optional[Path] = None) -> Optional[str]:
    """Run a probe and return trimmed stdout, or None on any failure."""
    result = runner.run(command, args, cwd=cwd)
    if not result.ok:
        logger.warning(f"Probe `{command} {' '.join(args)}` failed (exit {result.exit_code})")
        return None
    out = result.stdout.strip()
    return out or None


def _host_from_verbose_version(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    for line in text.splitlines():
        if line.startswith("host:"):
            return line.split(":", 1)[1].strip() or None
    return None


def capture_toolchain(
    runner: ProcessRunner,
    project_root: Path,
    cargo: str = "cargo",
    rustc: str = "rustc",
) -> ToolchainIdentity:
    """Capture commit, compiler versions and host triple."""
    commit = _run_quiet(runner, "git", ["rev-parse", "HEAD"], cwd=project_root)
    rustc_version = _run_quiet(runner, rustc, ["--version"])
    cargo_version = _run_quiet(runner, cargo, ["--version"])
    host_triple = _host_from_verbose_version(_run_quiet(runner, rustc, ["-vV"]))

    identity = ToolchainIdentity(
        commit=commit,
        rustc_version=rustc_version,
        cargo_version=cargo_version,
        host_triple=host_triple,
    )
    logger.info(f"Toolchain: {identity.rustc_version or 'rustc ?'} / {identity.cargo_version or 'cargo ?'}")
    return identity
