"""
Schema — Pydantic models for the comparison report.

One report per (left, right) pair of packaged directories:
  1. artifacts    — per-kind SHA-256 comparison.
  2. disassembly  — line diff of the two lib.wat files.
  3. manifest     — provenance differences, expected vs unexpected.
"""
from enum import Enum, unique
from typing import List, Optional

from pydantic import BaseModel, Field

from artifact_compare import PACKAGE_NAME, REPORT_VERSION


@unique
class ArtifactStatus(str, Enum):
    MATCH = "match"
    MISMATCH = "mismatch"
    MISSING_LEFT = "missing_left"
    MISSING_RIGHT = "missing_right"
    MISSING_BOTH = "missing_both"


class ArtifactComparison(BaseModel):
    name: str
    status: ArtifactStatus
    left_sha256: Optional[str] = None
    right_sha256: Optional[str] = None


class DisassemblyDiff(BaseModel):
    available: bool = False
    identical: bool = False
    left_source: Optional[str] = None    # "packaged" | "disassembled"
    right_source: Optional[str] = None
    added: int = 0
    removed: int = 0
    diff: List[str] = Field(default_factory=list)
    note: Optional[str] = None


class ProvenanceDifference(BaseModel):
    key: str
    left: Optional[str] = None
    right: Optional[str] = None
    expected: bool = False


class ManifestDiff(BaseModel):
    available: bool = False
    differences: List[ProvenanceDifference] = Field(default_factory=list)
    # Key-set, ordering and format differences between the two manifests
    structural: List[str] = Field(default_factory=list)
    note: Optional[str] = None

    @property
    def unexpected(self) -> List[ProvenanceDifference]:
        return [d for d in self.differences if not d.expected]


class ComparisonReport(BaseModel):
    package_name: str = PACKAGE_NAME
    report_version: str = REPORT_VERSION
    left: str
    right: str
    artifacts: List[ArtifactComparison] = Field(default_factory=list)
    disassembly: DisassemblyDiff = Field(default_factory=DisassemblyDiff)
    manifest: ManifestDiff = Field(default_factory=ManifestDiff)

    def status_of(self, name: str) -> Optional[ArtifactStatus]:
        for a in self.artifacts:
            if a.name == name:
                return a.status
        return None

    @property
    def mismatches(self) -> List[str]:
        return [a.name for a in self.artifacts if a.status == ArtifactStatus.MISMATCH]

    @property
    def missing(self) -> List[str]:
        """Kinds present on exactly one side."""
        one_sided = (ArtifactStatus.MISSING_LEFT, ArtifactStatus.MISSING_RIGHT)
        return [a.name for a in self.artifacts if a.status in one_sided]

    @property
    def reproducible(self) -> bool:
        """Both builds are complete and every shared artifact and provenance line agrees.

        A kind absent on both sides (a disabled stage) does not count against the verdict.
        """
        return (
            not self.mismatches
            and not self.missing
            and self.manifest.available
            and not self.manifest.unexpected
            and not self.manifest.structural
        )
