"""
Runtime configuration and TeX installation discovery.

Settings are read from a YAML file in the user's config directory and
may be overridden per process through environment variables:

    TIKZSVG_TEX_BIN     directory holding ``latex`` and ``dvisvgm``
    TIKZSVG_CACHE_DIR   directory holding the cached SVG files

Example ``settings.yaml``::

    tex_bin_path: /usr/local/texlive/2024/bin/x86_64-linux
    cache_dir: ~/.cache/tikzsvg/svg
    stage_timeout_s: 60
    max_workers: 0

When no TeX directory is configured anywhere, a handful of well-known
installation locations are probed; if none exists the binaries are
resolved through ``$PATH``.
"""

from __future__ import annotations

import glob
import os
import platform
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import yaml

from tikzsvg.engine import LATEX, executable_name
from tikzsvg.exceptions import ConfigError
from tikzsvg.types import CompilationConfig

ENV_TEX_BIN = "TIKZSVG_TEX_BIN"
ENV_CACHE_DIR = "TIKZSVG_CACHE_DIR"
SETTINGS_FILENAME = "settings.yaml"

_WINDOWS_TEX_DIRS = (
    r"C:\Program Files\MiKTeX\miktex\bin\x64",
    r"C:\Program Files (x86)\MiKTeX\miktex\bin",
    r"C:\texlive\*\bin\windows",
    r"C:\texlive\*\bin\win64",
    r"C:\texlive\*\bin\win32",
)
_POSIX_TEX_DIRS = (
    "/Library/TeX/texbin",
    "/usr/local/texlive/*/bin/*",
    "/opt/texlive/*/bin/*",
)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@dataclass
class Settings:
    """User-editable settings persisted as YAML."""
    tex_bin_path: str = ""
    cache_dir: str | None = None
    stage_timeout_s: float = 60.0
    max_workers: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")
        settings = cls(**data)
        settings.validate()
        return settings

    def validate(self) -> None:
        if not isinstance(self.tex_bin_path, str):
            raise ConfigError("tex_bin_path must be a string.")
        if self.cache_dir is not None and not isinstance(self.cache_dir, str):
            raise ConfigError("cache_dir must be a string.")
        if not isinstance(self.stage_timeout_s, (int, float)) or self.stage_timeout_s <= 0:
            raise ConfigError("stage_timeout_s must be a positive number.")
        if not isinstance(self.max_workers, int) or self.max_workers < 0:
            raise ConfigError("max_workers must be a non-negative integer.")

    def to_config(self) -> CompilationConfig:
        """Build the compiler configuration these settings describe."""
        return CompilationConfig(
            cache_dir=Path(self.cache_dir).expanduser() if self.cache_dir else None,
            tex_bin_path=self.tex_bin_path or None,
            stage_timeout_s=float(self.stage_timeout_s),
            max_workers=self.max_workers,
        )


def default_config_dir() -> Path:
    """Return the platform-appropriate configuration directory."""
    if os.name == "nt":
        base = Path(os.environ.get(
            "APPDATA",
            str(Path.home() / "AppData" / "Roaming"),
        ))
    else:
        xdg = os.environ.get("XDG_CONFIG_HOME")
        base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "tikzsvg"


def default_settings_path() -> Path:
    return default_config_dir() / SETTINGS_FILENAME


def load_settings(
    path: Path | None = None,
    autodetect: bool = True,
) -> Settings:
    """
    Load settings from YAML, apply environment overrides, and fill in
    the TeX directory by auto-detection when still unset.

    Raises
    ------
    ConfigError
        If the file exists but is not valid YAML or has bad values.
    """
    path = path or default_settings_path()
    data: dict[str, Any] = {}
    if path.is_file():
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Cannot read settings file {path}: {exc}") from exc
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigError(f"Settings file {path} must contain a mapping.")
        data = loaded or {}

    settings = Settings.from_dict(data)

    env_bin = os.environ.get(ENV_TEX_BIN)
    if env_bin:
        settings.tex_bin_path = env_bin
    env_cache = os.environ.get(ENV_CACHE_DIR)
    if env_cache:
        settings.cache_dir = env_cache

    if autodetect and not settings.tex_bin_path:
        settings.tex_bin_path = autodetect_tex_bin_path()
    return settings


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Persist settings as YAML. Returns the file written."""
    settings.validate()
    path = path or default_settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump(asdict(settings), sort_keys=False),
        encoding="utf-8",
    )
    return path


# ---------------------------------------------------------------------------
# TeX installation discovery
# ---------------------------------------------------------------------------

def candidate_tex_dirs(system: str | None = None) -> list[str]:
    """Well-known TeX ``bin`` directories for this platform, newest first."""
    system = system or platform.system()
    patterns = _WINDOWS_TEX_DIRS if system == "Windows" else _POSIX_TEX_DIRS
    found: list[str] = []
    for pattern in patterns:
        if "*" in pattern:
            found.extend(sorted(glob.glob(pattern), reverse=True))
        else:
            found.append(pattern)
    return found


def autodetect_tex_bin_path(candidates: list[str] | None = None) -> str:
    """
    Return the first candidate directory that contains ``latex``.

    An empty string means nothing was found and ``$PATH`` applies.
    """
    for directory in candidates if candidates is not None else candidate_tex_dirs():
        if (Path(directory) / executable_name(LATEX)).is_file():
            return directory
    return ""
