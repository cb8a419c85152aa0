"""
Shared fixtures for the tikzsvg test suite.

Most tests drive the pipeline through fake ``latex`` and ``dvisvgm``
shell scripts placed in a temporary bin directory, which the compiler
receives as its ``tex_bin_path``.  The scripts record every invocation
so tests can count how often each stage ran.
"""

from __future__ import annotations

import shutil
import stat
import subprocess
from dataclasses import dataclass
from pathlib import Path

import pytest

from tikzsvg.cache import SvgCache
from tikzsvg.compiler import TikzCompiler
from tikzsvg.diagnostics import DiagnosticLog
from tikzsvg.toolchain import ToolchainInvoker
from tikzsvg.types import CompilationConfig

_FAKE_LATEX = """\
#!/bin/sh
case "$1" in --version) echo "pdfTeX 3.141592653 (fake)"; exit 0 ;; esac
echo latex >> "@CALLS@"
@PRE@
outdir=.
tex=
for arg in "$@"; do
  case "$arg" in
    -output-directory=*) outdir="${arg#-output-directory=}" ;;
    -*) ;;
    *) tex="$arg" ;;
  esac
done
if grep -q 'badcommand' "$tex"; then
  echo "! Undefined control sequence."
  echo "No pages of output."
  exit 1
fi
@DVI@
echo "Output written on temp.dvi (1 page)."
"""

_FAKE_DVISVGM = """\
#!/bin/sh
case "$1" in --version) echo "dvisvgm 3.2 (fake)"; exit 0 ;; esac
echo dvisvgm >> "@CALLS@"
@PRE@
out=
while [ $# -gt 0 ]; do
  case "$1" in
    -o) out="$2"; shift 2 ;;
    *) shift ;;
  esac
done
@BODY@
"""

_SVG_OK = """\
printf '<svg xmlns="http://www.w3.org/2000/svg" width="10pt" height="10pt"/>' > "$out"
echo "output written to $out"
"""

_SVG_FAIL = """\
printf '<svg' > "$out"
echo "ERROR: font map not found"
exit 1
"""


@dataclass
class FakeToolchain:
    """Handle on a directory of fake TeX binaries."""
    bin_dir: Path
    calls_file: Path

    def calls(self, name: str | None = None) -> list[str]:
        if not self.calls_file.is_file():
            return []
        lines = self.calls_file.read_text().split()
        return [c for c in lines if name is None or c == name]


def _write_script(path: Path, text: str) -> None:
    path.write_text(text)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


@pytest.fixture
def make_toolchain(tmp_path):
    """
    Factory for fake toolchains.

    Options: ``latex_delay`` / ``dvisvgm_delay`` (seconds), ``latex_writes_dvi``,
    ``dvisvgm_fails`` and ``hang`` ("latex" or "dvisvgm"; the script is
    replaced by ``exec sleep`` so a timeout kill reaches it).
    """
    counter = [0]

    def _make(
        latex_delay: float = 0.0,
        latex_writes_dvi: bool = True,
        dvisvgm_delay: float = 0.0,
        dvisvgm_fails: bool = False,
        hang: str | None = None,
    ) -> FakeToolchain:
        counter[0] += 1
        bin_dir = tmp_path / f"tex bin {counter[0]}"
        bin_dir.mkdir()
        calls = bin_dir / "calls.txt"

        latex_pre = f"sleep {latex_delay}" if latex_delay else ""
        if hang == "latex":
            latex_pre = "exec sleep 30"
        latex = (_FAKE_LATEX
                 .replace("@CALLS@", str(calls))
                 .replace("@PRE@", latex_pre)
                 .replace("@DVI@", "printf 'DVI' > \"$outdir/temp.dvi\""
                          if latex_writes_dvi else ""))
        _write_script(bin_dir / "latex", latex)

        dvisvgm_pre = f"sleep {dvisvgm_delay}" if dvisvgm_delay else ""
        if hang == "dvisvgm":
            dvisvgm_pre = "exec sleep 30"
        dvisvgm = (_FAKE_DVISVGM
                   .replace("@CALLS@", str(calls))
                   .replace("@PRE@", dvisvgm_pre)
                   .replace("@BODY@", _SVG_FAIL if dvisvgm_fails else _SVG_OK))
        _write_script(bin_dir / "dvisvgm", dvisvgm)
        return FakeToolchain(bin_dir=bin_dir, calls_file=calls)

    return _make


@pytest.fixture
def fake_toolchain(make_toolchain) -> FakeToolchain:
    return make_toolchain()


@pytest.fixture
def workspace_root(tmp_path) -> Path:
    root = tmp_path / "workspaces"
    root.mkdir()
    return root


@pytest.fixture
def cache(tmp_path) -> SvgCache:
    return SvgCache(tmp_path / "cache" / "svg")


@pytest.fixture
def debug_log(tmp_path) -> DiagnosticLog:
    return DiagnosticLog(tmp_path / "tikz-debug.log")


@pytest.fixture
def invoker(cache, debug_log, workspace_root) -> ToolchainInvoker:
    return ToolchainInvoker(cache, debug_log, workspace_root=workspace_root,
                            stage_timeout_s=10.0)


@pytest.fixture
def config(tmp_path, workspace_root, fake_toolchain) -> CompilationConfig:
    return CompilationConfig(
        cache_dir=tmp_path / "cache" / "svg",
        tex_bin_path=str(fake_toolchain.bin_dir),
        workspace_root=workspace_root,
        debug_log_path=tmp_path / "tikz-debug.log",
        stage_timeout_s=10.0,
    )


@pytest.fixture
def compiler(config) -> TikzCompiler:
    return TikzCompiler(config)


# ---------------------------------------------------------------------------
# Real toolchain detection
# ---------------------------------------------------------------------------

_REQUIRED_STY = ("vietnam.sty", "tkz-tab.sty", "tkz-euclide.sty", "pgfplots.sty")


@pytest.fixture(scope="session")
def has_tex_toolchain() -> bool:
    if shutil.which("latex") is None or shutil.which("dvisvgm") is None:
        return False
    kpsewhich = shutil.which("kpsewhich")
    if kpsewhich is None:
        return False
    for sty in _REQUIRED_STY:
        found = subprocess.run([kpsewhich, sty], capture_output=True, text=True)
        if not found.stdout.strip():
            return False
    return True
