"""
Packager — copy produced artifacts into artifacts/<arch>/<timestamp>/.

Filesystem layout per build:
    <output_root>/<arch>/<YYYYMMDDTHHMMSS>/lib.wasm
                                          /lib.wat
                                          /lib.stripped.wasm
                                          /lib.stripped.wat
                                          /lib.rwasm
                                          /lib.cwasm

An artifact whose source is absent (its stage was disabled) is skipped,
not an error.  Failing to create the directory or to copy a present file
is fatal.
"""
from __future__ import annotations

import logging
import platform
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from wasm_builder.core.conversion import ArtifactPaths
from wasm_builder.errors import PackagingError
from wasm_builder.io.schema import CopiedArtifact, PackagedArtifactSet, hash_file, utc_now

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S"

Clock = Callable[[], datetime]


def arch_tag(machine: Optional[str] = None) -> str:
    """Map a machine name to the short tag used in the artifact path."""
    m = (machine if machine is not None else platform.machine()).lower()
    if m in ("x86_64", "amd64", "x64") or (len(m) == 4 and m[0] == "i" and m.endswith("86")):
        return "x86"
    if m.startswith(("arm", "aarch64")):
        return "arm"
    return m or "unknown"


class ArtifactPackager:
    def __init__(
        self,
        output_root: Path,
        arch: Optional[str] = None,
        clock: Optional[Clock] = None,
    ):
        self.output_root = Path(output_root)
        self.arch = arch or arch_tag()
        self.clock = clock or utc_now

    def _create_destination(self) -> tuple[Path, str]:
        timestamp = self.clock().strftime(TIMESTAMP_FORMAT)
        dest = self.output_root / self.arch / timestamp
        try:
            # A fresh directory per build; an existing one belongs to another run
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.mkdir()
        except FileExistsError as e:
            raise PackagingError("destination directory already exists", cause=str(e), path=dest) from e
        except OSError as e:
            raise PackagingError("cannot create destination directory", cause=str(e), path=dest) from e
        return dest, timestamp

    def package(self, paths: ArtifactPaths) -> PackagedArtifactSet:
        dest, timestamp = self._create_destination()
        logger.info(f"Packaging into {dest}")

        packaged = PackagedArtifactSet(directory=str(dest), arch=self.arch, timestamp=timestamp)
        for name, src in paths.items():
            if src is None or not src.is_file():
                logger.debug(f"Skipping {name}: no source")
                packaged.skipped.append(name)
                continue

            target = dest / name
            try:
                shutil.copyfile(src, target)
                digest = hash_file(target)
                size = target.stat().st_size
            except OSError as e:
                raise PackagingError(f"cannot copy {name}", cause=str(e), path=src) from e

            packaged.artifacts.append(CopiedArtifact(
                name=name,
                source=str(src),
                sha256=digest,
                size_bytes=size,
            ))
            logger.info(f"  {name}: sha256={digest}")

        return packaged
