"""
Schema — Pydantic models for everything the builder reads or writes.

Inputs:
  - ``cargo metadata --format-version 1`` JSON (only the fields we use).

Outputs:
  - PackagedArtifactSet: what was copied into artifacts/<arch>/<timestamp>/.
  - BuildManifest: the BUILD-INFO.md line format, rendered and parsed.
"""
from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

# Canonical artifact names inside a packaged directory, in manifest order
PRIMARY_WASM = "lib.wasm"
PRIMARY_WAT = "lib.wat"
STRIPPED_WASM = "lib.stripped.wasm"
STRIPPED_WAT = "lib.stripped.wat"
RWASM = "lib.rwasm"
CWASM = "lib.cwasm"
CANONICAL_ARTIFACTS = (PRIMARY_WASM, PRIMARY_WAT, STRIPPED_WASM, STRIPPED_WAT, RWASM, CWASM)

MANIFEST_FILENAME = "BUILD-INFO.md"

# Provenance keys, in the order they are written
PROVENANCE_KEYS = ("commit", "rustc", "cargo", "target", "build_time")


# =============================================================================
# cargo metadata
# =============================================================================

class CargoTarget(BaseModel):
    name: str
    kind: List[str] = Field(default_factory=list)
    crate_types: List[str] = Field(default_factory=list)
    src_path: Optional[str] = None


class CargoPackage(BaseModel):
    id: str
    name: str
    version: str = ""
    manifest_path: Optional[str] = None
    targets: List[CargoTarget] = Field(default_factory=list)


class CargoMetadata(BaseModel):
    """Subset of ``cargo metadata`` output needed to pick the build target."""
    packages: List[CargoPackage] = Field(default_factory=list)
    workspace_members: List[str] = Field(default_factory=list)
    # Older cargo releases do not report default members
    workspace_default_members: Optional[List[str]] = None
    target_directory: str
    workspace_root: Optional[str] = None

    def package_by_id(self, package_id: str) -> Optional[CargoPackage]:
        for pkg in self.packages:
            if pkg.id == package_id:
                return pkg
        return None


# =============================================================================
# Packaging
# =============================================================================

class CopiedArtifact(BaseModel):
    """One artifact copied into the packaged directory."""
    name: str
    source: str
    sha256: str
    size_bytes: int


class PackagedArtifactSet(BaseModel):
    directory: str
    arch: str
    timestamp: str  # YYYYMMDDTHHMMSS
    artifacts: List[CopiedArtifact] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)

    def hashes(self) -> Dict[str, str]:
        return {a.name: a.sha256 for a in self.artifacts}


# =============================================================================
# Manifest (BUILD-INFO.md)
# =============================================================================

class HashLine(BaseModel):
    name: str
    sha256: str

    def render(self) -> str:
        return f"sha256({self.name}): {self.sha256}"


class ProvenanceLine(BaseModel):
    key: str
    value: str

    def render(self) -> str:
        return f"{self.key}: {self.value}"


class BuildManifest(BaseModel):
    """
    Line-oriented build record: hash lines first, provenance after.

    Parseable by splitting each line on the first ``": "``.
    """
    hashes: List[HashLine] = Field(default_factory=list)
    provenance: List[ProvenanceLine] = Field(default_factory=list)
    # Lines that fit neither shape (only ever populated by parse)
    unparsed: List[str] = Field(default_factory=list)

    def render(self) -> str:
        lines = [h.render() for h in self.hashes]
        lines += [p.render() for p in self.provenance]
        return "".join(line + "\n" for line in lines)

    def hash_map(self) -> Dict[str, str]:
        return {h.name: h.sha256 for h in self.hashes}

    def provenance_map(self) -> Dict[str, str]:
        return {p.key: p.value for p in self.provenance}

    @classmethod
    def parse(cls, text: str) -> "BuildManifest":
        manifest = cls()
        for raw in text.splitlines():
            line = raw.strip()
            if not line:
                continue
            key, sep, value = line.partition(": ")
            if not sep:
                manifest.unparsed.append(line)
            elif key.startswith("sha256(") and key.endswith(")"):
                manifest.hashes.append(HashLine(name=key[len("sha256("):-1], sha256=value))
            else:
                manifest.provenance.append(ProvenanceLine(key=key, value=value))
        return manifest


def parse_manifest(text: str) -> BuildManifest:
    """Parse BUILD-INFO.md text; lines that fit no known shape land in ``unparsed``."""
    return BuildManifest.parse(text)


# =============================================================================
# Helpers
# =============================================================================

def hash_file(path: Path) -> str:
    """SHA-256 of a file, hex-encoded."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
