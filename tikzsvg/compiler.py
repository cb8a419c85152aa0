"""
Compilation orchestrator: cache check -> assemble -> toolchain -> cache.

``TikzCompiler.compile`` is the single public entry point used by the
presentation front end.  It serves cache hits without touching the
toolchain, and collapses concurrent requests for the same fingerprint
into one toolchain job: the first request starts the job and registers
it as in flight, later requests await that same job.

Batch preloading
----------------
A slide deck usually embeds many ``tikzpicture`` environments.
``extract_tikz_blocks`` pulls the unique blocks out of arbitrary text
and ``TikzCompiler.precompile`` renders them ahead of time:

  Phase 1: serve every block already in the cache.
  Phase 2: compile the rest concurrently, at most ``max_workers`` jobs
           at a time.  Failures are reported, never raised.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
from typing import Callable, Iterable, Sequence

from tikzsvg.cache import SvgCache
from tikzsvg.diagnostics import DEBUG_LOG_NAME, DiagnosticLog
from tikzsvg.tex_gen import build_document, fingerprint
from tikzsvg.toolchain import ToolchainInvoker
from tikzsvg.types import CompilationConfig, CompileResult, CompileSuccess

logger = logging.getLogger(__name__)

_RE_TIKZPICTURE = re.compile(
    r"\\begin\{tikzpicture\}.*?\\end\{tikzpicture\}",
    re.DOTALL,
)


class TikzCompiler:
    """
    Compiles TikZ fragments to cached SVG files.

    All collaborators are injected; by default the cache directory,
    workspace root and diagnostic log are derived from ``config``.
    """

    def __init__(
        self,
        config: CompilationConfig | None = None,
        cache: SvgCache | None = None,
        invoker: ToolchainInvoker | None = None,
    ) -> None:
        self.config = config or CompilationConfig()
        self.cache = cache or SvgCache(self.config.cache_dir)
        if invoker is None:
            log_path = (
                self.config.debug_log_path
                or self.cache.root.parent / DEBUG_LOG_NAME
            )
            invoker = ToolchainInvoker(
                self.cache,
                DiagnosticLog(log_path),
                workspace_root=self.config.workspace_root,
                stage_timeout_s=self.config.stage_timeout_s,
            )
        self.invoker = invoker
        self._in_flight: dict[str, asyncio.Future[CompileResult]] = {}

    # -- Single fragment ---------------------------------------------------

    async def compile(
        self,
        source: str,
        preamble: str = "",
        tex_bin_path: str | None = None,
    ) -> CompileResult:
        """
        Compile one fragment, or return its cached SVG.

        ``tex_bin_path`` overrides the configured toolchain directory
        for this request.
        """
        fp = fingerprint(source, preamble)

        cached = self.cache.lookup(fp)
        if cached is not None:
            logger.debug("Cache hit for %s", fp)
            return CompileSuccess(svg_path=cached, from_cache=True, fingerprint=fp)

        job = self._in_flight.get(fp)
        if job is None or job.done():
            if tex_bin_path is None:
                tex_bin_path = self.config.tex_bin_path
            document = build_document(source, preamble)
            job = asyncio.ensure_future(
                self.invoker.run(document, fp, tex_bin_path)
            )
            self._in_flight[fp] = job
            job.add_done_callback(lambda done, fp=fp: self._forget(fp, done))
        else:
            logger.info("Joining in-flight compilation of %s", fp)

        # Shielded so a cancelled caller does not cancel a shared job.
        return await asyncio.shield(job)

    def _forget(self, fp: str, job: asyncio.Future[CompileResult]) -> None:
        if self._in_flight.get(fp) is job:
            del self._in_flight[fp]

    @property
    def in_flight(self) -> int:
        """Number of toolchain jobs currently running."""
        return len(self._in_flight)

    def clear_cache(self) -> bool:
        """Remove every cached SVG. Returns False if any delete failed."""
        return self.cache.clear_all()

    # -- Batch preloading --------------------------------------------------

    def worker_count(self) -> int:
        """Determine how many toolchain jobs ``precompile`` runs at once."""
        if self.config.max_workers > 0:
            return self.config.max_workers
        cpu = os.cpu_count() or 2
        return max(1, cpu - 1)

    async def precompile(
        self,
        blocks: Sequence[str],
        preamble: str = "",
        tex_bin_path: str | None = None,
        on_done: Callable[[CompileResult], None] | None = None,
    ) -> list[CompileResult]:
        """
        Compile many fragments, returning results in input order.

        ``on_done`` is invoked once per block as its result becomes
        available, cache hits first.
        """
        results: list[CompileResult | None] = [None] * len(blocks)
        pending: list[int] = []

        # -- Phase 1: Check cache ------------------------------------------
        for i, block in enumerate(blocks):
            fp = fingerprint(block, preamble)
            cached = self.cache.lookup(fp)
            if cached is None:
                pending.append(i)
                continue
            results[i] = CompileSuccess(svg_path=cached, from_cache=True,
                                        fingerprint=fp)
            if on_done is not None:
                on_done(results[i])

        logger.info(
            "%d/%d fragments cached, compiling %d.",
            len(blocks) - len(pending), len(blocks), len(pending),
        )
        if not pending:
            return results  # type: ignore[return-value]

        # -- Phase 2: Bounded concurrent compilation -----------------------
        semaphore = asyncio.Semaphore(self.worker_count())

        async def _one(index: int) -> None:
            async with semaphore:
                result = await self.compile(blocks[index], preamble, tex_bin_path)
            results[index] = result
            if not result.success:
                logger.warning("Fragment %d failed: %s", index, result.message)
            if on_done is not None:
                on_done(result)

        await asyncio.gather(*(_one(i) for i in pending))
        return results  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def extract_tikz_blocks(texts: Iterable[str]) -> list[str]:
    """Return the unique tikzpicture environments, in first-seen order."""
    seen: dict[str, None] = {}
    for text in texts:
        if not text:
            continue
        for m in _RE_TIKZPICTURE.finditer(text):
            seen.setdefault(m.group(0), None)
    return list(seen)


def compile_tikz(
    source: str,
    preamble: str = "",
    tex_bin_path: str | None = None,
    config: CompilationConfig | None = None,
) -> CompileResult:
    """Synchronous convenience wrapper around ``TikzCompiler.compile``."""
    compiler = TikzCompiler(config)
    return asyncio.run(compiler.compile(source, preamble, tex_bin_path))
