"""
Format conversion chain — derive secondary representations of the wasm.

Stages (in order):
  strip         wasm          → <stem>.stripped.wasm   (beside primary)
  wat           wasm          → <stem>.wat             (beside primary)
  stripped_wat  stripped wasm → <stem>.stripped.wat    (beside primary)
  rwasm         wasm          → <stem>.rwasm           (scratch dir)
  cwasm         wasm          → <stem>.cwasm           (scratch dir)

A stage that starts and fails aborts the run.  A stage disabled by the
BuildConfig (or whose input stage was disabled) is skipped and its path
stays ``None``; the packager later skips that artifact kind.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, FrozenSet, List, Mapping, Optional, Protocol, Sequence, Tuple

from wasm_builder.core.process import ProcessRunner
from wasm_builder.errors import ConversionError
from wasm_builder.io.schema import CWASM, PRIMARY_WASM, PRIMARY_WAT, RWASM, STRIPPED_WASM, STRIPPED_WAT
from wasm_builder.policy.profile import StageName

logger = logging.getLogger(__name__)

INPUT_PLACEHOLDER = "{input}"
OUTPUT_PLACEHOLDER = "{output}"


# =============================================================================
# Artifact paths
# =============================================================================

@dataclass
class ArtifactPaths:
    """Locations of the primary wasm and every derived form produced so far."""
    wasm: Path
    wat: Optional[Path] = None
    stripped_wasm: Optional[Path] = None
    stripped_wat: Optional[Path] = None
    rwasm: Optional[Path] = None
    cwasm: Optional[Path] = None

    def items(self) -> List[Tuple[str, Optional[Path]]]:
        """(canonical packaged name, source path) pairs in manifest order."""
        return [
            (PRIMARY_WASM, self.wasm),
            (PRIMARY_WAT, self.wat),
            (STRIPPED_WASM, self.stripped_wasm),
            (STRIPPED_WAT, self.stripped_wat),
            (RWASM, self.rwasm),
            (CWASM, self.cwasm),
        ]


# =============================================================================
# Converters
# =============================================================================

class Converter(Protocol):
    def convert(self, runner: ProcessRunner, stage: StageName, src: Path, dst: Path) -> None:
        ...


@dataclass(frozen=True)
class ToolSpec:
    """An external tool taking an input path and an output path."""
    command: str
    args: Tuple[str, ...]

    @classmethod
    def from_command_line(cls, line: Sequence[str]) -> "ToolSpec":
        if not line:
            raise ValueError("empty tool command line")
        return cls(command=line[0], args=tuple(line[1:]))

    def render_args(self, src: Path, dst: Path) -> List[str]:
        return [
            a.replace(INPUT_PLACEHOLDER, str(src)).replace(OUTPUT_PLACEHOLDER, str(dst))
            for a in self.args
        ]

    def convert(self, runner: ProcessRunner, stage: StageName, src: Path, dst: Path) -> None:
        result = runner.run(self.command, self.render_args(src, dst))
        if not result.ok:
            raise ConversionError(
                f"{self.command} exited with code {result.exit_code}",
                stage=stage.value,
                exit_code=result.exit_code,
                cause=result.stderr_tail(),
                path=src,
            )


@dataclass(frozen=True)
class FunctionTool:
    """An in-process ``bytes -> bytes`` compiler plugged into a stage."""
    fn: Callable[[bytes], bytes]

    def convert(self, runner: ProcessRunner, stage: StageName, src: Path, dst: Path) -> None:
        try:
            dst.write_bytes(self.fn(src.read_bytes()))
        except Exception as e:
            raise ConversionError(
                "in-process conversion failed",
                stage=stage.value,
                cause=f"{type(e).__name__}: {e}",
                path=src,
            ) from e


WASM2WAT = ToolSpec("wasm2wat", (INPUT_PLACEHOLDER, "-o", OUTPUT_PLACEHOLDER))

DEFAULT_TOOLS: Dict[StageName, Converter] = {
    StageName.STRIP: ToolSpec("wasm-tools", ("strip", "-a", INPUT_PLACEHOLDER, "-o", OUTPUT_PLACEHOLDER)),
    StageName.WAT: WASM2WAT,
    StageName.STRIPPED_WAT: WASM2WAT,
    StageName.RWASM: ToolSpec("rwasm", ("compile", INPUT_PLACEHOLDER, "-o", OUTPUT_PLACEHOLDER)),
    StageName.CWASM: ToolSpec("wasmtime", ("compile", INPUT_PLACEHOLDER, "-o", OUTPUT_PLACEHOLDER)),
}


# =============================================================================
# Chain
# =============================================================================

@dataclass(frozen=True)
class StageSpec:
    name: StageName
    source: str   # ArtifactPaths field read
    target: str   # ArtifactPaths field written
    suffix: str
    scratch: bool  # output lands in the scratch dir instead of beside the primary


STAGES: Tuple[StageSpec, ...] = (
    StageSpec(StageName.STRIP, "wasm", "stripped_wasm", ".stripped.wasm", scratch=False),
    StageSpec(StageName.WAT, "wasm", "wat", ".wat", scratch=False),
    StageSpec(StageName.STRIPPED_WAT, "stripped_wasm", "stripped_wat", ".stripped.wat", scratch=False),
    StageSpec(StageName.RWASM, "wasm", "rwasm", ".rwasm", scratch=True),
    StageSpec(StageName.CWASM, "wasm", "cwasm", ".cwasm", scratch=True),
)


class FormatConversionChain:
    def __init__(
        self,
        runner: ProcessRunner,
        tools: Optional[Mapping[StageName, Converter]] = None,
    ):
        self.runner = runner
        self.tools: Dict[StageName, Converter] = dict(DEFAULT_TOOLS)
        if tools:
            self.tools.update(tools)

    def run(
        self,
        wasm_path: Path,
        scratch_dir: Path,
        disabled: FrozenSet[StageName] = frozenset(),
    ) -> ArtifactPaths:
        paths = ArtifactPaths(wasm=wasm_path)
        stem = wasm_path.stem

        try:
            scratch_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConversionError("cannot create scratch directory", cause=str(e), path=scratch_dir) from e

        for stage in STAGES:
            if stage.name in disabled:
                logger.info(f"Stage {stage.name.value}: disabled, skipping")
                continue
            src = getattr(paths, stage.source)
            if src is None:
                logger.info(f"Stage {stage.name.value}: input skipped, skipping")
                continue

            out_dir = scratch_dir if stage.scratch else wasm_path.parent
            dst = out_dir / f"{stem}{stage.suffix}"
            self._run_stage(stage.name, src, dst)
            setattr(paths, stage.target, dst)

        return paths

    def _run_stage(self, stage: StageName, src: Path, dst: Path) -> None:
        logger.info(f"Stage {stage.value}: {src.name} -> {dst}")
        # A stale file from an earlier run must not pass for this run's output
        try:
            dst.unlink(missing_ok=True)
        except OSError as e:
            raise ConversionError("cannot clear previous output", stage=stage.value, cause=str(e), path=dst) from e

        self.tools[stage].convert(self.runner, stage, src, dst)

        if not dst.is_file():
            raise ConversionError("tool reported success but wrote no output", stage=stage.value, path=dst)
