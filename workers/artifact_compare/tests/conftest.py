"""
Shared pytest fixtures for artifact_compare tests.

Each fixture is one packaged build directory; see packaged.py for the layout.
"""
from pathlib import Path

import pytest

from artifact_compare.tests.packaged import BASE_FILES, provenance, write_packaged


@pytest.fixture
def arm_build(tmp_path: Path) -> Path:
    return write_packaged(
        tmp_path / "artifacts" / "arm" / "20250314T092653",
        BASE_FILES,
        provenance("aarch64-unknown-linux-gnu", "2025-03-14T09:26:53+00:00"),
    )


@pytest.fixture
def x86_build(tmp_path: Path) -> Path:
    return write_packaged(
        tmp_path / "artifacts" / "x86" / "20250314T093010",
        BASE_FILES,
        provenance("x86_64-unknown-linux-gnu", "2025-03-14T09:30:10+00:00"),
    )


@pytest.fixture
def x86_build_divergent(tmp_path: Path) -> Path:
    """Same source, but lib.wasm differs in one byte; lib.wat is identical."""
    files = dict(BASE_FILES)
    files["lib.wasm"] = b"\x00asm\x01\x00\x00\x00poW"
    return write_packaged(
        tmp_path / "artifacts" / "x86" / "20250314T093500",
        files,
        provenance("x86_64-unknown-linux-gnu", "2025-03-14T09:35:00+00:00"),
    )
