"""CLI commands for cache maintenance and toolchain diagnostics."""

from __future__ import annotations

import argparse

from ..cache import SvgCache
from ..detection import print_diagnostics
from ..types import CompilationConfig


def cmd_clear_cache(args: argparse.Namespace, config: CompilationConfig) -> int:
    cache = SvgCache(config.cache_dir)
    if cache.clear_all():
        print(f"Cleared {cache.root}")
        return 0
    print(f"Some entries in {cache.root} could not be removed.")
    return 1


def cmd_stats(args: argparse.Namespace, config: CompilationConfig) -> int:
    stats = SvgCache(config.cache_dir).stats()
    print(f"Root:    {stats['root']}")
    print(f"Entries: {stats['entries']}")
    print(f"Size:    {stats['size_mb']} MB")
    return 0


def cmd_doctor(args: argparse.Namespace, config: CompilationConfig) -> int:
    print(print_diagnostics(config.tex_bin_path))
    return 0


def build_cache_parsers(subparsers: argparse._SubParsersAction) -> None:
    """Register ``clear-cache``, ``stats`` and ``doctor``."""
    p = subparsers.add_parser("clear-cache", help="Delete every cached SVG")
    p.set_defaults(func=cmd_clear_cache)

    p = subparsers.add_parser("stats", help="Show cache statistics")
    p.set_defaults(func=cmd_stats)

    p = subparsers.add_parser("doctor", help="Check the LaTeX toolchain")
    p.set_defaults(func=cmd_doctor)
