"""
Profile — the build policy knobs, kept out of core/.

``BuildConfig`` is the caller-supplied, per-run value: features, the
default-feature toggle, the linear-memory stack size and which optional
conversion stages to run.  It is frozen; a build never mutates it.
"""
from dataclasses import dataclass, field
from enum import Enum, unique
from typing import FrozenSet, Iterable, Tuple

# 128 KiB, baked into the link step as -zstack-size
DEFAULT_STACK_SIZE = 128 * 1024


@unique
class StageName(str, Enum):
    """Conversion stages, in execution order."""
    STRIP = "strip"
    WAT = "wat"
    STRIPPED_WAT = "stripped_wat"
    RWASM = "rwasm"
    CWASM = "cwasm"


@dataclass(frozen=True)
class BuildConfig:
    """Immutable per-run build configuration."""

    features: Tuple[str, ...] = ()
    no_default_features: bool = False
    stack_size: int = DEFAULT_STACK_SIZE
    disabled_stages: FrozenSet[StageName] = field(default_factory=frozenset)

    @classmethod
    def default(cls) -> "BuildConfig":
        return cls()

    @classmethod
    def create(
        cls,
        features: Iterable[str] = (),
        no_default_features: bool = False,
        stack_size: int = DEFAULT_STACK_SIZE,
        disabled_stages: Iterable[str] = (),
    ) -> "BuildConfig":
        """Build from loose inputs (CLI lists, strings) into the frozen form."""
        return cls(
            features=tuple(features),
            no_default_features=no_default_features,
            stack_size=stack_size,
            disabled_stages=frozenset(StageName(s) for s in disabled_stages),
        )

    def stage_enabled(self, stage: StageName) -> bool:
        return stage not in self.disabled_stages
