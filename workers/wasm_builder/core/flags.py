"""
Deterministic flags — the rustc flag set that makes wasm output
byte-identical across machines and host architectures.

The flag order is fixed and downstream code must preserve it.  Toolchain
roots are resolved once here (environment override, else a fixed default)
and threaded through the run; nothing re-reads the environment later.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from wasm_builder.errors import ConfigurationError
from wasm_builder.policy.profile import BuildConfig

logger = logging.getLogger(__name__)

# Fixed defaults: the locations used by the official rust container image
DEFAULT_CARGO_HOME = Path("/usr/local/cargo")
DEFAULT_RUSTUP_HOME = Path("/usr/local/rustup")

# Architecture-independent placeholders for remapped path prefixes
REMAP_PROJECT = "/project"
REMAP_CARGO = "/cargo"
REMAP_RUSTUP = "/rustup"

# cargo splits CARGO_ENCODED_RUSTFLAGS on the ASCII unit separator
RUSTFLAGS_SEPARATOR = "\x1f"


@dataclass(frozen=True)
class DeterministicEnvironment:
    rustflags: Tuple[str, ...]
    env: Mapping[str, str]
    project_root: Path
    cargo_home: Path
    rustup_home: Path
    host_target: Optional[str] = None
    captured: Mapping[str, str] = field(default_factory=dict, repr=False)

    @property
    def encoded_rustflags(self) -> str:
        return RUSTFLAGS_SEPARATOR.join(self.rustflags)


def _env_path(environ: Mapping[str, str], name: str, default: Path) -> Path:
    value = environ.get(name, "").strip()
    return Path(value) if value else default


def deterministic_rustflags(
    project_root: Path,
    cargo_home: Path,
    rustup_home: Path,
    stack_size: int,
) -> Tuple[str, ...]:
    """The ordered rustc flag list."""
    return (
        "-C", f"link-arg=-zstack-size={stack_size}",
        "-C", "panic=abort",
        "-C", "target-feature=+bulk-memory",
        "-C", "codegen-units=1",
        "-C", "incremental=false",
        f"--remap-path-prefix={project_root}={REMAP_PROJECT}",
        f"--remap-path-prefix={cargo_home}={REMAP_CARGO}",
        f"--remap-path-prefix={rustup_home}={REMAP_RUSTUP}",
    )


def build_deterministic_environment(
    project_root: Path,
    config: BuildConfig,
    environ: Optional[Mapping[str, str]] = None,
) -> DeterministicEnvironment:
    """
    Capture the environment once and derive flags + env overrides.

    Resolution order for toolchain roots:
      CARGO_HOME  → $CARGO_HOME,  else /usr/local/cargo
      RUSTUP_HOME → $RUSTUP_HOME, else /usr/local/rustup
    """
    if config.stack_size <= 0:
        raise ConfigurationError(f"stack size must be positive, got {config.stack_size}")

    snapshot: Dict[str, str] = dict(os.environ if environ is None else environ)
    project_root = Path(project_root).resolve()
    cargo_home = _env_path(snapshot, "CARGO_HOME", DEFAULT_CARGO_HOME)
    rustup_home = _env_path(snapshot, "RUSTUP_HOME", DEFAULT_RUSTUP_HOME)
    host_target = snapshot.get("TARGET", "").strip() or None

    flags = deterministic_rustflags(project_root, cargo_home, rustup_home, config.stack_size)
    env = {
        "CARGO_ENCODED_RUSTFLAGS": RUSTFLAGS_SEPARATOR.join(flags),
        "CARGO_INCREMENTAL": "0",
    }

    logger.debug(f"cargo home={cargo_home} rustup home={rustup_home} target={host_target}")
    return DeterministicEnvironment(
        rustflags=flags,
        env=env,
        project_root=project_root,
        cargo_home=cargo_home,
        rustup_home=rustup_home,
        host_target=host_target,
        captured=snapshot,
    )
