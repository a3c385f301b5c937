"""
Hash comparison — SHA-256 of each canonical artifact kind on both sides.

Hashes are computed from the files themselves, not read from the
manifests, so a tampered or stale manifest cannot hide a difference.
"""
import logging
from pathlib import Path
from typing import List, Optional

from artifact_compare.io.schema import ArtifactComparison, ArtifactStatus
from wasm_builder.io.schema import CANONICAL_ARTIFACTS, hash_file

logger = logging.getLogger(__name__)


def _hash_or_none(path: Path) -> Optional[str]:
    if not path.is_file():
        return None
    try:
        return hash_file(path)
    except OSError as e:
        logger.warning(f"Cannot read {path}: {e}")
        return None


def classify(left: Optional[str], right: Optional[str]) -> ArtifactStatus:
    if left is None and right is None:
        return ArtifactStatus.MISSING_BOTH
    if left is None:
        return ArtifactStatus.MISSING_LEFT
    if right is None:
        return ArtifactStatus.MISSING_RIGHT
    return ArtifactStatus.MATCH if left == right else ArtifactStatus.MISMATCH


def compare_hashes(left_dir: Path, right_dir: Path) -> List[ArtifactComparison]:
    results: List[ArtifactComparison] = []
    for name in CANONICAL_ARTIFACTS:
        lh = _hash_or_none(left_dir / name)
        rh = _hash_or_none(right_dir / name)
        results.append(ArtifactComparison(
            name=name,
            status=classify(lh, rh),
            left_sha256=lh,
            right_sha256=rh,
        ))
    return results
