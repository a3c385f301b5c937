"""
Manifest diff — compare two BUILD-INFO.md files line by line.

Builds of the same source on different hosts are expected to differ in
when they ran, which commit was checked out and the host triple.  Every
other difference (hashes, toolchain versions) is flagged as unexpected,
as are differences in which keys are present or their order.
"""
import logging
from pathlib import Path
from typing import List, Optional

from artifact_compare.io.schema import ManifestDiff, ProvenanceDifference
from wasm_builder.io.schema import MANIFEST_FILENAME, BuildManifest, parse_manifest

logger = logging.getLogger(__name__)

EXPECTED_TO_DIFFER = frozenset({"build_time", "commit", "target"})


def _load(directory: Path) -> Optional[BuildManifest]:
    path = directory / MANIFEST_FILENAME
    if not path.is_file():
        return None
    try:
        return parse_manifest(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Cannot read {path}: {e}")
        return None


def _ordered_keys(manifest: BuildManifest) -> List[str]:
    return [f"sha256({h.name})" for h in manifest.hashes] + [p.key for p in manifest.provenance]


def compare_manifests(left: BuildManifest, right: BuildManifest) -> ManifestDiff:
    result = ManifestDiff(available=True)

    left_values = {f"sha256({k})": v for k, v in left.hash_map().items()}
    left_values.update(left.provenance_map())
    right_values = {f"sha256({k})": v for k, v in right.hash_map().items()}
    right_values.update(right.provenance_map())

    left_keys = _ordered_keys(left)
    right_keys = _ordered_keys(right)

    only_left = [k for k in left_keys if k not in right_values]
    only_right = [k for k in right_keys if k not in left_values]
    if only_left:
        result.structural.append(f"only in left: {', '.join(only_left)}")
    if only_right:
        result.structural.append(f"only in right: {', '.join(only_right)}")

    common_left = [k for k in left_keys if k in right_values]
    common_right = [k for k in right_keys if k in left_values]
    if common_left != common_right:
        result.structural.append("line order differs")

    for side, manifest in (("left", left), ("right", right)):
        for line in manifest.unparsed:
            result.structural.append(f"unparsed line in {side}: {line!r}")

    for key in left_keys:
        lv = left_values.get(key)
        rv = right_values.get(key)
        if lv is None or rv is None or lv == rv:
            continue
        result.differences.append(ProvenanceDifference(
            key=key,
            left=lv,
            right=rv,
            expected=key in EXPECTED_TO_DIFFER,
        ))

    return result


def diff_manifests(left_dir: Path, right_dir: Path) -> ManifestDiff:
    left = _load(left_dir)
    right = _load(right_dir)
    if left is None or right is None:
        missing = [str(d) for d, m in ((left_dir, left), (right_dir, right)) if m is None]
        return ManifestDiff(available=False, note=f"{MANIFEST_FILENAME} missing in {', '.join(missing)}")
    return compare_manifests(left, right)
