"""
Toolchain probing and diagnostics.

Checks that ``latex`` and ``dvisvgm`` can be found (either in the
configured TeX directory or on ``$PATH``) and reports their versions,
with install hints when something is missing.
"""

from __future__ import annotations

import logging
import platform
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from tikzsvg.engine import DVISVGM, LATEX, resolve_binary

logger = logging.getLogger(__name__)


@dataclass
class ToolProbe:
    """Result of probing a single external tool."""
    name: str
    found: bool
    path: Optional[str]
    version: Optional[str]
    notes: Optional[str] = None


def _locate(name: str, tex_bin_path: Optional[str]) -> Optional[str]:
    command = resolve_binary(name, tex_bin_path)
    if tex_bin_path:
        return command if Path(command).is_file() else None
    return shutil.which(command)


def _probe_tool(name: str, tex_bin_path: Optional[str] = None,
                version_flag: str = "--version") -> ToolProbe:
    path = _locate(name, tex_bin_path)
    if path is None:
        return ToolProbe(name=name, found=False, path=None, version=None)
    try:
        result = subprocess.run(
            [path, version_flag], capture_output=True, timeout=10,
        )
        output = (result.stdout or result.stderr).decode(errors="replace")
        first_line = output.strip().split("\n")[0].strip()
        return ToolProbe(name=name, found=True, path=path,
                         version=first_line or "unknown")
    except (subprocess.TimeoutExpired, OSError) as exc:
        logger.debug("Version check for %s failed: %s", path, exc)
        return ToolProbe(name=name, found=True, path=path,
                         version=None, notes=f"Version check failed: {exc}")


def probe_toolchain(tex_bin_path: Optional[str] = None) -> Dict[str, ToolProbe]:
    """Probe both toolchain binaries."""
    return {
        LATEX: _probe_tool(LATEX, tex_bin_path),
        DVISVGM: _probe_tool(DVISVGM, tex_bin_path),
    }


def _install_hint() -> str:
    os_name = platform.system()
    if os_name == "Darwin":
        return "Install MacTeX (brew install --cask mactex) or set tex_bin_path."
    if os_name == "Linux":
        return ("Install TeX Live: sudo apt-get install texlive-latex-extra "
                "texlive-pictures dvisvgm")
    if os_name == "Windows":
        return "Install MiKTeX or TeX Live and set tex_bin_path to its bin directory."
    return "Install a TeX distribution providing latex and dvisvgm."


def print_diagnostics(tex_bin_path: Optional[str] = None) -> str:
    """Return a human-readable diagnostics report."""
    probes = probe_toolchain(tex_bin_path)
    lines = ["tikzsvg toolchain diagnostics", "=" * 40,
             f"Platform: {platform.system()} {platform.release()}",
             f"Python:   {platform.python_version()}",
             f"TeX bin:  {tex_bin_path or '(resolved from PATH)'}", "",
             "External tools:"]
    for name in (LATEX, DVISVGM):
        p = probes[name]
        status = "FOUND" if p.found else "NOT FOUND"
        ver = f"  ({p.version})" if p.version else ""
        path = f"  [{p.path}]" if p.path else ""
        lines.append(f"  {name:20s} {status}{ver}{path}")
        if p.notes:
            lines.append(f"    {p.notes}")
    if not all(p.found for p in probes.values()):
        lines += ["", _install_hint()]
    return "\n".join(lines)
