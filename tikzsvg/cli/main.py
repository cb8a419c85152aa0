"""Main CLI entry point for tikzsvg."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .. import __version__
from ..config import load_settings
from ..exceptions import TikzSvgError
from ..types import CompilationConfig
from .cache_cli import build_cache_parsers
from .compile_cli import build_compile_parsers


def build_config(args: argparse.Namespace) -> CompilationConfig:
    """Merge the settings file with command-line overrides."""
    settings = load_settings(Path(args.settings) if args.settings else None)
    if args.tex_bin is not None:
        settings.tex_bin_path = args.tex_bin
    if args.cache_dir is not None:
        settings.cache_dir = args.cache_dir
    if args.timeout is not None:
        settings.stage_timeout_s = args.timeout
    settings.validate()
    return settings.to_config()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="tikzsvg",
        description="Compile TikZ fragments to cached SVG images",
    )
    parser.add_argument("--version", action="version", version=f"tikzsvg {__version__}")
    parser.add_argument(
        "--settings", default=None,
        help="Settings YAML file (default: ~/.config/tikzsvg/settings.yaml)",
    )
    parser.add_argument(
        "--tex-bin", default=None,
        help="Directory containing latex and dvisvgm (default: from settings or PATH)",
    )
    parser.add_argument(
        "--cache-dir", default=None,
        help="SVG cache directory (default: ~/.cache/tikzsvg/svg)",
    )
    parser.add_argument(
        "--timeout", type=float, default=None,
        help="Timeout per toolchain stage in seconds (default: 60)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command")
    build_compile_parsers(subparsers)
    build_cache_parsers(subparsers)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0
    try:
        return args.func(args, build_config(args))
    except TikzSvgError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def cli_entry() -> None:
    sys.exit(main())
