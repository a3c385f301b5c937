"""
Process runner — the single seam through which the pipeline spawns tools.

Orchestration code never calls ``subprocess`` directly; it receives a
``ProcessRunner`` and calls ``run``.  Tests substitute a fake that records
arguments and writes canned outputs.
"""
from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Protocol, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of one child process."""
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def stderr_tail(self, lines: int = 20) -> str:
        """Last few stderr lines, for error messages."""
        return "\n".join(self.stderr.strip().splitlines()[-lines:])


class ProcessRunner(Protocol):
    def run(
        self,
        command: str,
        args: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
    ) -> ProcessResult:
        ...


class SubprocessRunner:
    """
    Blocking child-process runner.

    ``env`` entries are layered over the environment captured when the
    runner was created, so a long build never sees later mutations of
    ``os.environ``.  No timeout: a hung tool blocks the run.
    """

    def __init__(self, base_env: Optional[Mapping[str, str]] = None):
        self.base_env = dict(os.environ if base_env is None else base_env)

    def run(
        self,
        command: str,
        args: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
    ) -> ProcessResult:
        cmd = [command, *args]
        full_env = dict(self.base_env)
        if env:
            full_env.update(env)

        logger.debug("exec: %s (cwd=%s)", " ".join(cmd), cwd)
        try:
            result = subprocess.run(
                cmd,
                cwd=str(cwd) if cwd is not None else None,
                env=full_env,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            # Executable missing or not runnable: same shape as a shell's 127
            return ProcessResult(exit_code=127, stderr=f"{command}: {e}")

        return ProcessResult(
            exit_code=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
