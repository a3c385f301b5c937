"""
Shared pytest fixtures for wasm_builder tests.

Nothing here needs a Rust toolchain: every external process goes through
FakeRunner (see fakes.py), which answers cargo/rustc/git probes and writes
conversion outputs derived from the input bytes.
"""
from datetime import datetime, timezone
from pathlib import Path

import pytest

from wasm_builder.tests.fakes import FakeRunner, cargo_metadata, target

FIXED_TIME = datetime(2025, 3, 14, 9, 26, 53, tzinfo=timezone.utc)

CARGO_TOML = """\
[package]
name = "power_calculator"
version = "0.1.0"
edition = "2021"

[[bin]]
name = "power_calculator"
path = "src/main.rs"
"""


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_TIME


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """A crate directory with a Cargo.toml; sources are never compiled."""
    root = tmp_path / "power_calculator"
    (root / "src").mkdir(parents=True)
    (root / "Cargo.toml").write_text(CARGO_TOML)
    (root / "src" / "main.rs").write_text("fn main() {}\n")
    return root.resolve()


@pytest.fixture
def single_bin_metadata(project_root: Path) -> dict:
    return cargo_metadata(
        project_root / "target",
        {"power_calculator": [target("power_calculator", "bin")]},
    )


@pytest.fixture
def fake_runner(single_bin_metadata: dict) -> FakeRunner:
    return FakeRunner(metadata=single_bin_metadata)


@pytest.fixture
def environ() -> dict:
    """A minimal, explicit environment snapshot."""
    return {
        "CARGO_HOME": "/home/builder/.cargo",
        "RUSTUP_HOME": "/home/builder/.rustup",
        "TARGET": "x86_64-unknown-linux-gnu",
    }
