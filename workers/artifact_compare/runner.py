"""
Comparison runner — two packaged directories → ComparisonReport.

Order: hash comparison, disassembly diff, manifest diff.  Mismatches are
results, not failures; the only error is being pointed at something that
is not a directory.
"""
import logging
from pathlib import Path
from typing import Optional

from artifact_compare.core.disasm import diff_disassembly
from artifact_compare.core.hashes import compare_hashes
from artifact_compare.core.manifest_diff import diff_manifests
from artifact_compare.io.schema import ComparisonReport
from wasm_builder.core.conversion import WASM2WAT, ToolSpec
from wasm_builder.core.process import ProcessRunner

logger = logging.getLogger(__name__)


class ComparisonInputError(Exception):
    """A comparison input is missing or not a directory."""


def compare_directories(
    left: Path,
    right: Path,
    runner: Optional[ProcessRunner] = None,
    disassembler: ToolSpec = WASM2WAT,
) -> ComparisonReport:
    """
    Compare two packaged build directories.

    Parameters
    ----------
    left, right : Path
        artifacts/<arch>/<timestamp>/ directories.
    runner : ProcessRunner, optional
        Used only to disassemble lib.wasm when lib.wat is absent.
        If None, that fallback is skipped.
    """
    left = Path(left)
    right = Path(right)
    for d in (left, right):
        if not d.is_dir():
            raise ComparisonInputError(f"not a directory: {d}")

    logger.info(f"Comparing {left} <-> {right}")
    report = ComparisonReport(left=str(left), right=str(right))
    report.artifacts = compare_hashes(left, right)
    report.disassembly = diff_disassembly(left, right, runner=runner, tool=disassembler)
    report.manifest = diff_manifests(left, right)

    logger.info(
        f"Comparison done: {len(report.mismatches)} mismatch(es), "
        f"{len(report.manifest.unexpected)} unexpected manifest difference(s)"
    )
    return report
