"""
Test doubles for the process runner.

FakeRunner records every call and imitates the tools the pipeline drives:
  - cargo metadata / build / --version
  - rustc --version / -vV, git rev-parse
  - any conversion tool invoked as ``... <input> -o <output>``

Conversion outputs depend only on input bytes, never on paths, so two
runs over identical inputs produce identical files.
"""
from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from wasm_builder.core.process import ProcessResult

WASM_MAGIC = b"\x00asm\x01\x00\x00\x00"
DEFAULT_WASM = WASM_MAGIC + b"\x01\x07\x01\x60\x02\x7f\x7f\x01\x7f"

HOST_TRIPLE = "x86_64-unknown-linux-gnu"
RUSTC_VERSION = "rustc 1.87.0 (17067e9ac 2025-05-09)"
CARGO_VERSION = "cargo 1.87.0 (99624be96 2025-05-06)"
COMMIT = "3f1c2a9d5e7b8c0a1f2e3d4c5b6a79881726354a"


@dataclass
class Call:
    command: str
    args: List[str]
    env: Dict[str, str]
    cwd: Optional[Path]

    @property
    def key(self) -> str:
        return f"{self.command} {self.args[0]}" if self.args else self.command


def wat_for(data: bytes) -> str:
    digest = hashlib.sha256(data).hexdigest()
    return f"(module\n  ;; content {digest[:16]}\n  (memory 1)\n)\n"


def default_transform(command: str, data: bytes) -> bytes:
    if command == "wasm2wat":
        return wat_for(data).encode("utf-8")
    return command.encode("utf-8") + b":" + data


def cargo_metadata(
    target_directory: Path,
    packages: Mapping[str, List[Dict[str, Any]]],
    default_members: Optional[Sequence[str]] = None,
    extra_packages: Optional[Mapping[str, List[Dict[str, Any]]]] = None,
    report_default_members: bool = True,
) -> Dict[str, Any]:
    """
    Build a ``cargo metadata`` document.

    *packages* maps workspace package names to target dicts; *extra_packages*
    are dependencies that are not workspace members.
    """
    def pkg(name: str, targets: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "id": f"{name} 0.1.0 (path+file:///work/{name})",
            "name": name,
            "version": "0.1.0",
            "targets": targets,
        }

    members = [pkg(n, t) for n, t in packages.items()]
    deps = [pkg(n, t) for n, t in (extra_packages or {}).items()]
    member_ids = [p["id"] for p in members]
    if default_members is None:
        default_ids = member_ids
    else:
        default_ids = [p["id"] for p in members if p["name"] in default_members]

    doc: Dict[str, Any] = {
        "packages": members + deps,
        "workspace_members": member_ids,
        "target_directory": str(target_directory),
        "workspace_root": str(target_directory.parent),
        "version": 1,
    }
    if report_default_members:
        doc["workspace_default_members"] = default_ids
    return doc


def target(name: str, kind: str, crate_types: Optional[List[str]] = None) -> Dict[str, Any]:
    return {
        "name": name,
        "kind": [kind],
        "crate_types": crate_types if crate_types is not None else [kind],
        "src_path": f"/work/src/{name}.rs",
    }


@dataclass
class FakeRunner:
    metadata: Optional[Dict[str, Any]] = None
    metadata_raw: Optional[str] = None
    artifact_name: str = "power_calculator.wasm"
    wasm_bytes: bytes = DEFAULT_WASM
    build_exit_code: int = 0
    build_writes_artifact: bool = True
    # command -> exit code for conversion tools that should fail
    fail: Dict[str, int] = field(default_factory=dict)
    # commands that exit 0 but write nothing
    silent: Set[str] = field(default_factory=set)
    # probe keys ("git rev-parse", "rustc --version", ...) that should fail
    failing_probes: Set[str] = field(default_factory=set)
    host_triple: str = HOST_TRIPLE
    calls: List[Call] = field(default_factory=list)

    def run(self, command, args, env=None, cwd=None) -> ProcessResult:
        call = Call(command=command, args=list(args), env=dict(env or {}), cwd=cwd)
        self.calls.append(call)

        if call.key in self.failing_probes:
            return ProcessResult(exit_code=128, stderr=f"{call.key}: not available")

        if command == "cargo" and args and args[0] == "metadata":
            if self.metadata_raw is not None:
                return ProcessResult(exit_code=0, stdout=self.metadata_raw)
            return ProcessResult(exit_code=0, stdout=json.dumps(self.metadata))
        if command == "cargo" and args and args[0] == "build":
            return self._cargo_build(call)
        if command == "cargo" and list(args) == ["--version"]:
            return ProcessResult(exit_code=0, stdout=CARGO_VERSION + "\n")
        if command == "rustc" and list(args) == ["--version"]:
            return ProcessResult(exit_code=0, stdout=RUSTC_VERSION + "\n")
        if command == "rustc" and list(args) == ["-vV"]:
            return ProcessResult(
                exit_code=0,
                stdout=f"{RUSTC_VERSION}\nbinary: rustc\nhost: {self.host_triple}\nrelease: 1.87.0\n",
            )
        if command == "git":
            return ProcessResult(exit_code=0, stdout=COMMIT + "\n")
        if "-o" in args:
            return self._convert(call)
        return ProcessResult(exit_code=127, stderr=f"{command}: command not found")

    # ------------------------------------------------------------------

    def _cargo_build(self, call: Call) -> ProcessResult:
        if self.build_exit_code != 0:
            return ProcessResult(exit_code=self.build_exit_code, stderr="error[E0425]: cannot find value `x`\n")
        if self.build_writes_artifact:
            target_dir = Path(call.args[call.args.index("--target-dir") + 1])
            out = target_dir / "wasm32-unknown-unknown" / "release" / self.artifact_name
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_bytes(self.wasm_bytes)
        return ProcessResult(exit_code=0, stderr="    Finished `release` profile [optimized]\n")

    def _convert(self, call: Call) -> ProcessResult:
        if call.command in self.fail:
            return ProcessResult(exit_code=self.fail[call.command], stderr=f"{call.command}: invalid input\n")
        i = call.args.index("-o")
        src = Path(call.args[i - 1])
        dst = Path(call.args[i + 1])
        if call.command not in self.silent:
            dst.write_bytes(default_transform(call.command, src.read_bytes()))
        return ProcessResult(exit_code=0)

    # ------------------------------------------------------------------

    def calls_to(self, key: str) -> List[Call]:
        return [c for c in self.calls if c.key == key or c.command == key]
