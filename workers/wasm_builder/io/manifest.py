"""
Manifest writer — BUILD-INFO.md, written once, last.

Format (one fact per line):
    sha256(<name>): <hex>      one per packaged artifact
    commit: <rev>              best-effort
    rustc: <version>           best-effort
    cargo: <version>           best-effort
    target: <triple>           required
    build_time: <ISO-8601>     always

The file is created exclusively; its presence marks a complete package.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from wasm_builder.core.toolchain import ToolchainIdentity
from wasm_builder.errors import ManifestError
from wasm_builder.io.packager import Clock
from wasm_builder.io.schema import (
    MANIFEST_FILENAME,
    BuildManifest,
    HashLine,
    PackagedArtifactSet,
    ProvenanceLine,
    parse_manifest,
    utc_now,
)

logger = logging.getLogger(__name__)


class ManifestWriter:
    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or utc_now

    def build(
        self,
        packaged: PackagedArtifactSet,
        toolchain: ToolchainIdentity,
        target: Optional[str],
    ) -> BuildManifest:
        if not target:
            raise ManifestError("target triple is unknown", path=Path(packaged.directory))

        manifest = BuildManifest(
            hashes=[HashLine(name=a.name, sha256=a.sha256) for a in packaged.artifacts],
        )

        optional = (
            ("commit", toolchain.commit),
            ("rustc", toolchain.rustc_version),
            ("cargo", toolchain.cargo_version),
        )
        for key, value in optional:
            if value:
                manifest.provenance.append(ProvenanceLine(key=key, value=value))
            else:
                logger.warning(f"Provenance `{key}` unavailable, omitting")

        manifest.provenance.append(ProvenanceLine(key="target", value=target))
        manifest.provenance.append(ProvenanceLine(key="build_time", value=self.clock().isoformat()))
        return manifest

    def write(
        self,
        packaged: PackagedArtifactSet,
        toolchain: ToolchainIdentity,
        target: Optional[str],
    ) -> Path:
        manifest = self.build(packaged, toolchain, target)
        path = Path(packaged.directory) / MANIFEST_FILENAME
        try:
            with open(path, "x", encoding="utf-8") as f:
                f.write(manifest.render())
        except OSError as e:
            raise ManifestError("cannot write manifest", cause=str(e), path=path) from e

        logger.info(f"Manifest saved: {path}")
        return path


def read_manifest(directory: Path) -> BuildManifest:
    """Load and parse BUILD-INFO.md from a packaged directory."""
    path = Path(directory) / MANIFEST_FILENAME
    return parse_manifest(path.read_text(encoding="utf-8"))
