"""
Disassembly diff — unified diff of the two primary-binary text forms.

Prefers the packaged lib.wat.  When a side lacks it but still has
lib.wasm, and a runner is available, the wasm is disassembled into a
temporary directory; the packaged directory itself is never written.
"""
from __future__ import annotations

import difflib
import logging
import tempfile
from pathlib import Path
from typing import List, Optional, Tuple

from artifact_compare.io.schema import DisassemblyDiff
from wasm_builder.core.conversion import WASM2WAT, ToolSpec
from wasm_builder.core.process import ProcessRunner
from wasm_builder.io.schema import PRIMARY_WASM, PRIMARY_WAT

logger = logging.getLogger(__name__)


def _load_text(
    directory: Path,
    runner: Optional[ProcessRunner],
    tool: ToolSpec,
) -> Tuple[Optional[List[str]], Optional[str], Optional[str]]:
    """Return (lines, source, note) for one side."""
    wat = directory / PRIMARY_WAT
    if wat.is_file():
        try:
            return wat.read_text(encoding="utf-8", errors="replace").splitlines(), "packaged", None
        except OSError as e:
            return None, None, f"cannot read {wat}: {e}"

    wasm = directory / PRIMARY_WASM
    if not wasm.is_file():
        return None, None, f"{directory} has neither {PRIMARY_WAT} nor {PRIMARY_WASM}"
    if runner is None:
        return None, None, f"{directory} has no {PRIMARY_WAT} and no disassembler is configured"

    with tempfile.TemporaryDirectory(prefix="wasm-compare-") as tmp:
        out = Path(tmp) / PRIMARY_WAT
        result = runner.run(tool.command, tool.render_args(wasm, out))
        if not result.ok or not out.is_file():
            return None, None, f"{tool.command} failed on {wasm} (exit {result.exit_code})"
        return out.read_text(encoding="utf-8", errors="replace").splitlines(), "disassembled", None


def diff_disassembly(
    left_dir: Path,
    right_dir: Path,
    runner: Optional[ProcessRunner] = None,
    tool: ToolSpec = WASM2WAT,
) -> DisassemblyDiff:
    left, left_src, left_note = _load_text(left_dir, runner, tool)
    right, right_src, right_note = _load_text(right_dir, runner, tool)

    if left is None or right is None:
        note = "; ".join(n for n in (left_note, right_note) if n)
        logger.warning(f"Disassembly diff unavailable: {note}")
        return DisassemblyDiff(available=False, left_source=left_src, right_source=right_src, note=note)

    diff = list(difflib.unified_diff(
        left,
        right,
        fromfile=str(left_dir / PRIMARY_WAT),
        tofile=str(right_dir / PRIMARY_WAT),
        lineterm="",
    ))
    added = sum(1 for line in diff if line.startswith("+") and not line.startswith("+++"))
    removed = sum(1 for line in diff if line.startswith("-") and not line.startswith("---"))

    return DisassemblyDiff(
        available=True,
        identical=not diff,
        left_source=left_src,
        right_source=right_src,
        added=added,
        removed=removed,
        diff=diff,
    )
