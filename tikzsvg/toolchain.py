"""
Two-stage external toolchain: LaTeX -> DVI -> SVG.

Architecture
------------
Every job runs as one coroutine.  The two external tools are started
with ``asyncio.create_subprocess_exec`` so many jobs can be in flight on
a single event loop without tying up worker threads, while inside a job
the stages stay strictly sequential:

    Created -> DocumentWritten -> LatexRunning -> {LatexFailed | DviProduced}
            -> ConverterRunning -> {ConversionFailed | SvgProduced} -> Cleaned

Isolated working directories
----------------------------
Each job gets a fresh ``<workspace_root>/tikz_<fingerprint>_<random>``
directory, so two processes compiling the same fragment never share
one.  ``temp.tex`` is written there, LaTeX puts its ``.dvi``/``.aux``/
``.log`` next to it and the converter writes ``temp.svg`` beside them.
Only a complete, non-empty SVG is copied into the cache, where it is
renamed over the canonical path; a failed job never touches the cache.
The workspace is always removed afterwards; a failed removal is logged
and otherwise ignored.

Error handling
--------------
A non-zero exit, a launch error, a timeout, or a missing output file
turns into a ``CompileFailure`` tagged with the failing stage.  The
message carries the tool's combined stdout/stderr verbatim.  Nothing is
retried.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path

from tikzsvg.cache import SvgCache
from tikzsvg.diagnostics import DiagnosticLog
from tikzsvg.engine import (
    DVI_FILENAME,
    DVISVGM,
    LATEX,
    SVG_FILENAME,
    TEX_FILENAME,
    build_dvisvgm_command,
    build_latex_command,
    format_command,
    resolve_binary,
)
from tikzsvg.exceptions import CompilationError, ConverterError
from tikzsvg.types import CompileFailure, CompileResult, CompileSuccess, Stage

logger = logging.getLogger(__name__)

LATEX_FAILED = "LaTeX compilation failed"
CONVERSION_FAILED = "SVG conversion failed"


class ToolchainInvoker:
    """Runs the LaTeX and dvisvgm stages for one fingerprint at a time."""

    def __init__(
        self,
        cache: SvgCache,
        diagnostics: DiagnosticLog,
        workspace_root: Path | None = None,
        stage_timeout_s: float = 60.0,
    ) -> None:
        self.cache = cache
        self.diagnostics = diagnostics
        self.workspace_root = (
            Path(workspace_root) if workspace_root is not None
            else Path(tempfile.gettempdir())
        )
        self.stage_timeout_s = stage_timeout_s

    def create_workspace(self, fingerprint: str) -> Path:
        """Create a fresh directory for one job, unique even per fingerprint."""
        self.workspace_root.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix=f"tikz_{fingerprint}_",
                                     dir=self.workspace_root))

    # -- Public entry point ------------------------------------------------

    async def run(
        self,
        document: str,
        fingerprint: str,
        tex_bin_path: str | None = None,
    ) -> CompileResult:
        """
        Compile an assembled document into ``cache.path_for(fingerprint)``.

        Never raises for tool failures; returns a ``CompileFailure``
        instead.  The workspace is removed in every case.
        """
        workspace: Path | None = None
        try:
            workspace = self._prepare_workspace(document, fingerprint)
            tex_path = workspace / TEX_FILENAME
            dvi_path = await self._run_latex(
                tex_path, workspace, fingerprint, tex_bin_path,
            )
            job_svg = await self._run_dvisvgm(
                dvi_path, workspace, fingerprint, tex_bin_path,
            )
            svg_path = self._install(job_svg, fingerprint)
        except CompilationError as exc:
            return CompileFailure(Stage.LATEX, str(exc), fingerprint,
                                  output=exc.log_content)
        except ConverterError as exc:
            return CompileFailure(Stage.CONVERSION, str(exc), fingerprint,
                                  output=exc.log_content)
        finally:
            if workspace is not None:
                self._cleanup(workspace, fingerprint)

        logger.info("Compiled %s -> %s", fingerprint, svg_path)
        return CompileSuccess(svg_path=svg_path, from_cache=False,
                              fingerprint=fingerprint)

    # -- Stages ------------------------------------------------------------

    def _prepare_workspace(self, document: str, fingerprint: str) -> Path:
        workspace = None
        try:
            workspace = self.create_workspace(fingerprint)
            tex_path = workspace / TEX_FILENAME
            tex_path.write_text(document, encoding="utf-8")
        except OSError as exc:
            if workspace is not None:
                self._cleanup(workspace, fingerprint)
            message = f"{LATEX_FAILED}: cannot prepare workspace: {exc}"
            self.diagnostics.write(f"LaTeX Error: {message}")
            raise CompilationError(message, log_content=str(exc)) from exc
        logger.debug("[%s] document written to %s", fingerprint[:8], tex_path)
        return workspace

    async def _run_latex(
        self,
        tex_path: Path,
        workspace: Path,
        fingerprint: str,
        tex_bin_path: str | None,
    ) -> Path:
        cmd = build_latex_command(
            resolve_binary(LATEX, tex_bin_path), tex_path, workspace,
        )
        logger.debug("[%s] latex running", fingerprint[:8])
        ok, detail = await self._run_stage(cmd, workspace, "Compiling")
        if not ok:
            self.diagnostics.write(f"LaTeX Error: {detail}")
            raise CompilationError(f"{LATEX_FAILED}: {detail}", log_content=detail)

        dvi_path = workspace / DVI_FILENAME
        if not dvi_path.is_file():
            detail = detail or f"{LATEX} exited successfully but produced no DVI output."
            self.diagnostics.write(f"LaTeX Error: no DVI produced. {detail}")
            raise CompilationError(f"{LATEX_FAILED}: {detail}", log_content=detail)
        logger.debug("[%s] dvi produced", fingerprint[:8])
        return dvi_path

    async def _run_dvisvgm(
        self,
        dvi_path: Path,
        workspace: Path,
        fingerprint: str,
        tex_bin_path: str | None,
    ) -> Path:
        svg_path = workspace / SVG_FILENAME
        cmd = build_dvisvgm_command(
            resolve_binary(DVISVGM, tex_bin_path), dvi_path, svg_path,
        )
        logger.debug("[%s] converter running", fingerprint[:8])
        ok, detail = await self._run_stage(cmd, workspace, "Converting")
        if not ok:
            self.diagnostics.write(f"dvisvgm Error: {detail}")
            raise ConverterError(f"{CONVERSION_FAILED}: {detail}", log_content=detail)

        if not svg_path.is_file() or svg_path.stat().st_size == 0:
            detail = detail or f"{DVISVGM} exited successfully but wrote no SVG."
            self.diagnostics.write(f"dvisvgm Error: empty output. {detail}")
            raise ConverterError(f"{CONVERSION_FAILED}: {detail}", log_content=detail)
        logger.debug("[%s] svg produced", fingerprint[:8])
        return svg_path

    def _install(self, job_svg: Path, fingerprint: str) -> Path:
        try:
            return self.cache.install(fingerprint, job_svg)
        except OSError as exc:
            message = f"{CONVERSION_FAILED}: cannot store {job_svg.name} in cache: {exc}"
            self.diagnostics.write(f"dvisvgm Error: {message}")
            raise ConverterError(message, log_content=str(exc)) from exc

    # -- Process plumbing --------------------------------------------------

    async def _run_stage(
        self,
        cmd: list[str],
        cwd: Path,
        label: str,
    ) -> tuple[bool, str]:
        """
        Run one external command to completion.

        Returns ``(ok, detail)`` where ``detail`` is the combined output,
        or the process error text when nothing was captured.
        """
        self.diagnostics.write(f"{label}: {format_command(cmd)}")
        try:
            returncode, output = await self._exec(cmd, cwd)
        except asyncio.TimeoutError:
            return False, f"{cmd[0]} timed out after {self.stage_timeout_s:g}s."
        except OSError as exc:
            return False, str(exc)

        output = output.strip()
        if returncode != 0:
            return False, output or f"{cmd[0]} exited with status {returncode}."
        return True, output

    async def _exec(self, cmd: list[str], cwd: Path) -> tuple[int, str]:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(cwd),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        try:
            stdout, _ = await asyncio.wait_for(
                proc.communicate(), timeout=self.stage_timeout_s,
            )
        except (asyncio.TimeoutError, asyncio.CancelledError):
            if proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
            await proc.wait()
            raise
        return proc.returncode, stdout.decode("utf-8", errors="replace")

    # -- Cleanup -----------------------------------------------------------

    def _cleanup(self, workspace: Path, fingerprint: str) -> None:
        try:
            shutil.rmtree(workspace)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Temp cleanup failed for %s: %s", workspace, exc)
        else:
            logger.debug("[%s] workspace cleaned", fingerprint[:8])
