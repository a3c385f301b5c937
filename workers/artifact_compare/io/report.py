"""
Report — render a ComparisonReport as human-readable text.
"""
from typing import List

from artifact_compare.io.schema import ArtifactStatus, ComparisonReport

_STATUS_LABEL = {
    ArtifactStatus.MATCH: "MATCH",
    ArtifactStatus.MISMATCH: "MISMATCH",
    ArtifactStatus.MISSING_LEFT: "missing (left)",
    ArtifactStatus.MISSING_RIGHT: "missing (right)",
    ArtifactStatus.MISSING_BOTH: "absent",
}


def render_text(report: ComparisonReport, max_diff_lines: int = 200) -> str:
    out: List[str] = []
    out.append(f"left:  {report.left}")
    out.append(f"right: {report.right}")

    out.append("")
    out.append("SHA256 hashes:")
    for a in report.artifacts:
        out.append(f"  {a.name:<20} {_STATUS_LABEL[a.status]}")
        if a.status == ArtifactStatus.MISMATCH:
            out.append(f"    left  {a.left_sha256}")
            out.append(f"    right {a.right_sha256}")

    out.append("")
    out.append("Disassembly (lib.wat):")
    d = report.disassembly
    if not d.available:
        out.append(f"  unavailable: {d.note}")
    elif d.identical:
        out.append("  identical")
    else:
        out.append(f"  {d.removed} line(s) removed, {d.added} line(s) added")
        shown = d.diff[:max_diff_lines]
        out.extend(f"  {line}" for line in shown)
        if len(d.diff) > len(shown):
            out.append(f"  ... {len(d.diff) - len(shown)} more diff line(s)")

    out.append("")
    out.append("BUILD-INFO.md:")
    m = report.manifest
    if not m.available:
        out.append(f"  unavailable: {m.note}")
    else:
        if not m.differences and not m.structural:
            out.append("  identical")
        for diff in m.differences:
            tag = "expected" if diff.expected else "UNEXPECTED"
            out.append(f"  [{tag}] {diff.key}: {diff.left!s} != {diff.right!s}")
        for note in m.structural:
            out.append(f"  [STRUCTURE] {note}")

    out.append("")
    verdict = "reproducible" if report.reproducible else "NOT reproducible"
    detail = f"{len(report.mismatches)} artifact mismatch(es)"
    if report.missing:
        detail += f", missing on one side: {', '.join(report.missing)}"
    out.append(f"Result: {verdict} ({detail})")
    return "\n".join(out) + "\n"
