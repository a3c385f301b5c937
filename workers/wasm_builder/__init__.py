"""
wasm_builder — Deterministic WASM Builder

Compile a single-crate Rust project to wasm32 under pinned reproducibility
flags; derive stripped, textual, rWASM and precompiled forms; package every
artifact with SHA-256 hashes and a BUILD-INFO.md provenance manifest.

Target: wasm32-unknown-unknown
"""

__version__ = "0.1.0"
BUILDER_NAME = "wasm_builder"
BUILDER_VERSION = "v1"
WASM_TARGET = "wasm32-unknown-unknown"
