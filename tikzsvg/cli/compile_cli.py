"""
CLI commands for compiling fragments.

Usage:
    tikzsvg compile drawing.tex --preamble-file macros.tex
    tikzsvg preload slides/*.tex
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from tqdm import tqdm

from ..compiler import TikzCompiler, extract_tikz_blocks
from ..types import CompilationConfig, CompileResult


def _read_input(name: str) -> str | None:
    """Read a UTF-8 input file, or report why not and return None."""
    path = Path(name)
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return None
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Error: cannot read {path}: {exc}", file=sys.stderr)
        return None


def _read_preamble(args: argparse.Namespace) -> str | None:
    if not args.preamble_file:
        return ""
    return _read_input(args.preamble_file)


def cmd_compile(args: argparse.Namespace, config: CompilationConfig) -> int:
    """Handler for ``tikzsvg compile``."""
    source = _read_input(args.tex_file)
    preamble = _read_preamble(args)
    if source is None or preamble is None:
        return 1

    compiler = TikzCompiler(config)
    result = asyncio.run(compiler.compile(source, preamble))

    if not result.success:
        print(f"[{result.stage.value}] {result.message}", file=sys.stderr)
        return 1
    suffix = " (cached)" if result.from_cache else ""
    print(f"{result.svg_path}{suffix}")
    return 0


def cmd_preload(args: argparse.Namespace, config: CompilationConfig) -> int:
    """Handler for ``tikzsvg preload``."""
    texts: list[str] = []
    for name in args.files:
        text = _read_input(name)
        if text is None:
            return 1
        texts.append(text)
    preamble = _read_preamble(args)
    if preamble is None:
        return 1

    blocks = extract_tikz_blocks(texts)
    if not blocks:
        print("No tikzpicture environments found.")
        return 0

    compiler = TikzCompiler(config)
    bar = tqdm(total=len(blocks), desc="Compiling", unit="fig",
               file=sys.stderr, dynamic_ncols=True)

    def _on_done(result: CompileResult) -> None:
        bar.set_postfix_str("cached" if getattr(result, "from_cache", False) else "")
        bar.update(1)

    try:
        results = asyncio.run(compiler.precompile(
            blocks, preamble, on_done=_on_done,
        ))
    finally:
        bar.close()

    failed = [r for r in results if not r.success]
    for r in failed[:5]:
        print(f"  {r.fingerprint}: {r.message.splitlines()[0] if r.message else ''}",
              file=sys.stderr)
    print(f"Done! {len(results) - len(failed)}/{len(results)} figures available.")
    return 1 if failed else 0


def build_compile_parsers(subparsers: argparse._SubParsersAction) -> None:
    """Register the ``compile`` and ``preload`` subcommands."""
    p = subparsers.add_parser(
        "compile",
        help="Compile one TikZ fragment to SVG",
        description="Compile a TikZ fragment (the document body) into a cached SVG.",
    )
    p.add_argument("tex_file", help="File containing the TikZ fragment")
    p.add_argument(
        "--preamble-file", default=None,
        help="File with extra preamble lines (macros, packages)",
    )
    p.set_defaults(func=cmd_compile)

    p = subparsers.add_parser(
        "preload",
        help="Pre-render every tikzpicture found in the given files",
    )
    p.add_argument("files", nargs="+", help="Source files to scan")
    p.add_argument(
        "--preamble-file", default=None,
        help="File with extra preamble lines (macros, packages)",
    )
    p.set_defaults(func=cmd_preload)
