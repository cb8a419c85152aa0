"""
Core data structures shared by the cache, toolchain and orchestrator.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Union


class Stage(enum.Enum):
    """The two external tool invocations of a compilation job."""
    LATEX = "latex"          # .tex -> .dvi
    CONVERSION = "dvisvgm"   # .dvi -> .svg


@dataclass(frozen=True)
class CompileSuccess:
    """An SVG artifact is available at ``svg_path``."""
    svg_path: Path
    from_cache: bool
    fingerprint: str

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True)
class CompileFailure:
    """
    One of the stages failed.

    ``message`` is the stage-tagged summary shown to users; ``output`` is
    the raw combined stdout/stderr of the failing tool, if any.
    """
    stage: Stage
    message: str
    fingerprint: str
    output: str = ""

    @property
    def success(self) -> bool:
        return False


CompileResult = Union[CompileSuccess, CompileFailure]


@dataclass
class CompilationConfig:
    """Full configuration for a compiler instance."""
    cache_dir: Path | None = None        # None = auto (~/.cache/tikzsvg/svg)
    tex_bin_path: str | None = None      # None/"" = resolve from $PATH
    workspace_root: Path | None = None   # None = system temp dir
    debug_log_path: Path | None = None   # None = <cache parent>/tikz-debug.log
    stage_timeout_s: float = 60.0
    max_workers: int = 0                 # 0 = auto-detect from CPU count
