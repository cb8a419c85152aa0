"""
tikzsvg -- TikZ fragment to SVG compiler with a content-addressed cache.

Wraps author-supplied TikZ code into a standalone document, runs
latex and dvisvgm in an isolated workspace, and keeps the resulting
SVG keyed by a fingerprint of the inputs.
"""

__version__ = "0.1.0"

from tikzsvg.compiler import TikzCompiler, compile_tikz, extract_tikz_blocks
from tikzsvg.types import (
    CompilationConfig,
    CompileFailure,
    CompileResult,
    CompileSuccess,
    Stage,
)

__all__ = [
    "CompilationConfig",
    "CompileFailure",
    "CompileResult",
    "CompileSuccess",
    "Stage",
    "TikzCompiler",
    "compile_tikz",
    "extract_tikz_blocks",
]
