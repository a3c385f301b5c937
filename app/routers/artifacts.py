"""
Artifacts Router
Read-only access to packaged wasm builds under ARTIFACTS_PATH.

Layout: <ARTIFACTS_PATH>/<arch>/<YYYYMMDDTHHMMSS>/{lib.*, BUILD-INFO.md}
A build without BUILD-INFO.md is listed as incomplete.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Tuple

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from app.config import settings
from artifact_compare.io.schema import ComparisonReport  # type: ignore
from artifact_compare.runner import compare_directories  # type: ignore
from wasm_builder.core.process import SubprocessRunner  # type: ignore
from wasm_builder.io.manifest import read_manifest  # type: ignore
from wasm_builder.io.schema import CANONICAL_ARTIFACTS, MANIFEST_FILENAME, BuildManifest  # type: ignore

log = logging.getLogger(__name__)

router = APIRouter()

_ARCH_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_TIMESTAMP_RE = re.compile(r"^\d{8}T\d{6}$")


# =============================================================================
# Response Models
# =============================================================================

class PackagedBuild(BaseModel):
    arch: str
    timestamp: str
    complete: bool
    artifacts: List[str] = Field(default_factory=list)


class PackagedBuildList(BaseModel):
    root: str
    builds: List[PackagedBuild] = Field(default_factory=list)


# =============================================================================
# Path helpers
# =============================================================================

def _artifacts_root() -> Path:
    return Path(settings.ARTIFACTS_PATH)


def _build_dir(arch: str, timestamp: str) -> Path:
    """Validate one (arch, timestamp) pair and return its directory."""
    if not _ARCH_RE.match(arch) or not _TIMESTAMP_RE.match(timestamp):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid build reference: {arch}/{timestamp}",
        )
    d = _artifacts_root() / arch / timestamp
    if not d.is_dir():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No packaged build {arch}/{timestamp}",
        )
    return d


def _split_ref(ref: str) -> Tuple[str, str]:
    arch, sep, timestamp = ref.partition("/")
    if not sep:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Build reference must be <arch>/<timestamp>, got {ref!r}",
        )
    return arch, timestamp


# =============================================================================
# Endpoints
# =============================================================================

@router.get(
    "",
    response_model=PackagedBuildList,
    summary="List packaged builds",
)
async def list_builds():
    root = _artifacts_root()
    result = PackagedBuildList(root=str(root))
    if not root.is_dir():
        return result

    for arch_dir in sorted(p for p in root.iterdir() if p.is_dir()):
        for build_dir in sorted(p for p in arch_dir.iterdir() if p.is_dir()):
            if not _TIMESTAMP_RE.match(build_dir.name):
                continue
            result.builds.append(PackagedBuild(
                arch=arch_dir.name,
                timestamp=build_dir.name,
                complete=(build_dir / MANIFEST_FILENAME).is_file(),
                artifacts=[n for n in CANONICAL_ARTIFACTS if (build_dir / n).is_file()],
            ))
    return result


@router.get(
    "/compare",
    response_model=ComparisonReport,
    summary="Compare two packaged builds (e.g. arm vs x86)",
)
async def compare_builds(
    left: str = Query(..., description="<arch>/<timestamp> of the first build"),
    right: str = Query(..., description="<arch>/<timestamp> of the second build"),
):
    left_dir = _build_dir(*_split_ref(left))
    right_dir = _build_dir(*_split_ref(right))
    runner = SubprocessRunner() if settings.COMPARE_DISASSEMBLE else None
    log.info("comparing %s <-> %s", left_dir, right_dir)
    return compare_directories(left_dir, right_dir, runner=runner)


@router.get(
    "/{arch}/{timestamp}/manifest",
    response_model=BuildManifest,
    summary="Parsed BUILD-INFO.md of one packaged build",
)
async def get_manifest(arch: str, timestamp: str):
    d = _build_dir(arch, timestamp)
    if not (d / MANIFEST_FILENAME).is_file():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Build {arch}/{timestamp} is incomplete: no {MANIFEST_FILENAME}",
        )
    return read_manifest(d)
