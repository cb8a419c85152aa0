"""
Toolchain binary resolution and command-line construction.

Handles:
  - Locating ``latex`` and ``dvisvgm`` either inside a configured TeX
    ``bin`` directory or on the ambient ``$PATH``.
  - Building the argument vectors for both stages.
  - Rendering a quoted command line for the diagnostic log.

Commands are always argument lists passed straight to the OS, never
shell strings, so paths containing whitespace need no extra escaping.
"""

from __future__ import annotations

import os
import shlex
import subprocess
from pathlib import Path

LATEX = "latex"
DVISVGM = "dvisvgm"

# Fixed filenames inside a job workspace.
TEX_FILENAME = "temp.tex"
DVI_FILENAME = "temp.dvi"
SVG_FILENAME = "temp.svg"


# ---------------------------------------------------------------------------
# Binary resolution
# ---------------------------------------------------------------------------

def executable_name(name: str) -> str:
    """Return the platform-specific executable filename."""
    if os.name == "nt" and not name.lower().endswith(".exe"):
        return name + ".exe"
    return name


def resolve_binary(name: str, tex_bin_path: str | os.PathLike | None = None) -> str:
    """
    Return the command used to invoke a toolchain binary.

    With a configured directory the binary is ``<dir>/<name>``;
    without one the bare name is returned and the OS resolves it
    through ``$PATH``.
    """
    if tex_bin_path:
        return str(Path(tex_bin_path) / executable_name(name))
    return name


# ---------------------------------------------------------------------------
# Command-line builders
# ---------------------------------------------------------------------------

def build_latex_command(
    latex: str,
    tex_path: Path,
    output_dir: Path,
) -> list[str]:
    """
    Build the DVI-producing LaTeX command.

    Runs non-interactively (nonstopmode) and writes every output file
    into ``output_dir``, the job's isolated workspace.
    """
    return [
        latex,
        "-interaction=nonstopmode",
        f"-output-directory={output_dir}",
        str(tex_path),
    ]


def build_dvisvgm_command(
    dvisvgm: str,
    dvi_path: Path,
    svg_path: Path,
) -> list[str]:
    """Build the DVI-to-SVG command writing straight to ``svg_path``."""
    return [
        dvisvgm,
        "--no-fonts",
        str(dvi_path),
        "-o",
        str(svg_path),
    ]


def format_command(cmd: list[str]) -> str:
    """Render a command vector as a readable, quoted command line."""
    if os.name == "nt":
        return subprocess.list2cmdline(cmd)
    return shlex.join(cmd)
