"""
Project metadata resolver — find the one target that produces a .wasm.

Responsibilities:
  - Check the project root carries a Cargo.toml.
  - Load ``cargo metadata`` and parse it into ``CargoMetadata``.
  - Scan the default workspace members (not the dependency graph) for
    ``bin`` or ``cdylib`` targets.
  - Return exactly one ``BuildTargetDescriptor``; zero or several is fatal.

No side effects beyond running ``cargo metadata``.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum, unique
from pathlib import Path
from typing import List

from pydantic import ValidationError

from wasm_builder.core.process import ProcessRunner
from wasm_builder.errors import AmbiguousArtifactTarget, MetadataError, NoArtifactTarget
from wasm_builder.io.schema import CargoMetadata

logger = logging.getLogger(__name__)

CARGO_MANIFEST = "Cargo.toml"
WASM_EXTENSION = "wasm"


@unique
class TargetKind(str, Enum):
    BIN = "bin"
    CDYLIB = "cdylib"


@dataclass(frozen=True)
class ProjectHandle:
    """Resolved project root plus the metadata snapshot taken at run start."""
    root: Path
    manifest_path: Path
    target_directory: Path
    metadata: CargoMetadata


@dataclass(frozen=True)
class BuildTargetDescriptor:
    name: str
    kind: TargetKind
    package: str

    @property
    def artifact_name(self) -> str:
        return f"{self.name}.{WASM_EXTENSION}"


def parse_metadata(raw: str, source: Path) -> CargoMetadata:
    """Parse ``cargo metadata`` JSON; any defect is a MetadataError."""
    try:
        return CargoMetadata.model_validate(json.loads(raw))
    except json.JSONDecodeError as e:
        raise MetadataError("cargo metadata is not valid JSON", cause=str(e), path=source) from e
    except ValidationError as e:
        raise MetadataError("cargo metadata has an unexpected shape", cause=str(e), path=source) from e


def load_project(root: Path, runner: ProcessRunner, cargo: str = "cargo") -> ProjectHandle:
    """Load the project graph rooted at *root*."""
    root = Path(root).resolve()
    manifest_path = root / CARGO_MANIFEST
    if not manifest_path.is_file():
        raise MetadataError("project descriptor not found", path=manifest_path)

    logger.info(f"Loading cargo metadata for {manifest_path}")
    result = runner.run(
        cargo,
        ["metadata", "--format-version", "1", "--manifest-path", str(manifest_path)],
        cwd=root,
    )
    if not result.ok:
        raise MetadataError(
            f"cargo metadata exited with code {result.exit_code}",
            cause=result.stderr_tail(),
            path=manifest_path,
        )

    metadata = parse_metadata(result.stdout, manifest_path)
    return ProjectHandle(
        root=root,
        manifest_path=manifest_path,
        target_directory=Path(metadata.target_directory),
        metadata=metadata,
    )


def _qualifying_kind(kind: List[str], crate_types: List[str]) -> TargetKind | None:
    # Both `bin` and `cdylib` crates produce a `.wasm` file
    for candidate in (TargetKind.BIN, TargetKind.CDYLIB):
        if candidate.value in kind and candidate.value in crate_types:
            return candidate
    return None


def select_artifact_target(metadata: CargoMetadata) -> BuildTargetDescriptor:
    """
    Pick the single wasm-producing target from the default members.

    Raises NoArtifactTarget / AmbiguousArtifactTarget rather than guess.
    """
    members = metadata.workspace_default_members
    if members is None:
        members = metadata.workspace_members

    found: List[BuildTargetDescriptor] = []
    for member_id in members:
        package = metadata.package_by_id(member_id)
        if package is None:
            raise MetadataError(f"cannot find package for default member {member_id}")
        for target in package.targets:
            kind = _qualifying_kind(target.kind, target.crate_types)
            if kind is not None:
                found.append(BuildTargetDescriptor(name=target.name, kind=kind, package=package.name))

    label = members[0] if members else "<workspace>"
    if not found:
        raise NoArtifactTarget(
            f"no WASM artifact found to build in package `{label}`; "
            "define exactly one `bin` or `cdylib` target"
        )
    if len(found) > 1:
        names = [t.artifact_name for t in found]
        raise AmbiguousArtifactTarget(
            f"multiple WASM artifacts found in package `{label}`: {', '.join(names)}; "
            "define exactly one `bin` or `cdylib` target",
            candidates=names,
        )

    target = found[0]
    logger.info(f"Resolved build target {target.name} ({target.kind.value}) -> {target.artifact_name}")
    return target


def resolve_build_target(root: Path, runner: ProcessRunner, cargo: str = "cargo"):
    """Load the project and select its artifact target in one call."""
    project = load_project(root, runner, cargo=cargo)
    return project, select_artifact_target(project.metadata)
