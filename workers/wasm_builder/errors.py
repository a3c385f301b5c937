"""
Errors — one exception family for the whole build pipeline.

Every error names the stage that failed, the underlying cause and, when
there is one, the filesystem path involved.  Nothing in the pipeline
retries: the same command with the same inputs fails the same way.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence


class PipelineError(Exception):
    """Base class for every fatal pipeline failure."""

    stage: str = "pipeline"

    def __init__(
        self,
        message: str,
        *,
        stage: Optional[str] = None,
        path: Optional[Path] = None,
        cause: Optional[str] = None,
    ):
        if stage is not None:
            self.stage = stage
        self.message = message
        self.path = path
        self.cause = cause
        super().__init__(str(self))

    def __str__(self) -> str:
        text = f"[{self.stage}] {self.message}"
        if self.cause:
            text += f": {self.cause}"
        if self.path is not None:
            text += f" ({self.path})"
        return text


# =============================================================================
# Configuration
# =============================================================================

class ConfigurationError(PipelineError):
    """Malformed or missing project metadata, or an invalid BuildConfig."""
    stage = "configuration"


class MetadataError(ConfigurationError):
    stage = "metadata"


class NoArtifactTarget(ConfigurationError):
    """No bin/cdylib target among the default workspace members."""
    stage = "metadata"


class AmbiguousArtifactTarget(ConfigurationError):
    """More than one bin/cdylib target; the resolver refuses to pick one."""
    stage = "metadata"

    def __init__(self, message: str, candidates: Sequence[str], **kwargs):
        self.candidates = list(candidates)
        super().__init__(message, **kwargs)


# =============================================================================
# External tools
# =============================================================================

class ToolInvocationError(PipelineError):
    """An external process exited non-zero or produced no output."""
    stage = "tool"

    def __init__(self, message: str, *, exit_code: Optional[int] = None, **kwargs):
        self.exit_code = exit_code
        super().__init__(message, **kwargs)


class BuildError(ToolInvocationError):
    stage = "build"


class ConversionError(ToolInvocationError):
    """A conversion stage failed; ``stage`` is the conversion stage name."""
    stage = "conversion"


# =============================================================================
# Filesystem
# =============================================================================

class ArtifactIOError(PipelineError):
    stage = "io"


class PackagingError(ArtifactIOError):
    stage = "packaging"


class ManifestError(ArtifactIOError):
    stage = "manifest"
