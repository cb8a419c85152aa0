"""
Content-addressable SVG cache.

Each compiled fragment is stored as a single file named by the
fingerprint of its ``(source, preamble)`` pair.  The existence of that
file *is* the cache-hit signal: there is no index and no metadata, so
any external tool can inspect, prune or restore the directory by
convention alone.

Directory layout
----------------
~/.cache/tikzsvg/
    svg/
        <fingerprint>.svg
        <fingerprint>.svg
        ...
    tikz-debug.log

Cache invalidation
------------------
- Entry-level: entries are never mutated.  A changed fragment or
  preamble produces a new fingerprint, hence a new file.

- Manual: ``clear_all()`` removes every entry in the directory.

Entries are not validated on lookup; a truncated SVG is still a hit.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

from tikzsvg.exceptions import CacheError

logger = logging.getLogger(__name__)

SVG_SUFFIX = ".svg"
PART_SUFFIX = ".part"


# ---------------------------------------------------------------------------
# Default cache root
# ---------------------------------------------------------------------------

def default_cache_root() -> Path:
    """Return the platform-appropriate default root for tikzsvg data."""
    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg:
        base = Path(xdg)
    elif os.name == "nt":
        base = Path(os.environ.get(
            "LOCALAPPDATA",
            str(Path.home() / "AppData" / "Local"),
        ))
    else:
        base = Path.home() / ".cache"
    return base / "tikzsvg"


def default_cache_dir() -> Path:
    """Return the default directory holding the cached SVG files."""
    return default_cache_root() / "svg"


# ---------------------------------------------------------------------------
# Cache manager
# ---------------------------------------------------------------------------

class SvgCache:
    """
    Flat fingerprint -> SVG file store.

    No locking is needed: entries are written under a temporary name
    and renamed into place, so a reader sees a whole file or nothing.
    """

    def __init__(self, root: Path | None = None) -> None:
        self.root = Path(root) if root is not None else default_cache_dir()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheError(
                f"Cannot create cache directory {self.root}: {exc}"
            ) from exc

    # -- Lookup ------------------------------------------------------------

    def path_for(self, fingerprint: str) -> Path:
        """Return the canonical artifact path for a fingerprint."""
        return self.root / f"{fingerprint}{SVG_SUFFIX}"

    def lookup(self, fingerprint: str) -> Path | None:
        """Return the cached SVG path, or None if not cached."""
        path = self.path_for(fingerprint)
        return path if path.is_file() else None

    def resolve_asset(self, name: str) -> Path | None:
        """
        Resolve a ``tikz://<name>`` style asset name to a cached file.

        Returns None when the name points outside the cache directory
        or no such file exists.
        """
        root = self.root.resolve()
        candidate = (root / name.lstrip("/\\")).resolve()
        if candidate.parent != root:
            logger.warning("Rejected cache asset outside %s: %r", root, name)
            return None
        return candidate if candidate.is_file() else None

    # -- Store -------------------------------------------------------------

    def store(self, fingerprint: str, svg_bytes: bytes) -> Path:
        """Write SVG bytes at the canonical path. Returns that path."""
        fd, tmp = tempfile.mkstemp(prefix=f".{fingerprint}.", suffix=PART_SUFFIX,
                                   dir=self.root)
        with os.fdopen(fd, "wb") as fh:
            fh.write(svg_bytes)
        return self._publish(Path(tmp), fingerprint)

    def install(self, fingerprint: str, svg_path: Path) -> Path:
        """
        Copy a finished SVG into the cache. Returns the canonical path.

        The copy lands under a temporary name in the cache directory and
        is then renamed over the canonical path, so readers never see a
        partial file and concurrent installs of one fingerprint simply
        replace each other.
        """
        fd, tmp = tempfile.mkstemp(prefix=f".{fingerprint}.", suffix=PART_SUFFIX,
                                   dir=self.root)
        os.close(fd)
        try:
            shutil.copyfile(svg_path, tmp)
        except OSError:
            Path(tmp).unlink(missing_ok=True)
            raise
        return self._publish(Path(tmp), fingerprint)

    def _publish(self, tmp: Path, fingerprint: str) -> Path:
        dest = self.path_for(fingerprint)
        try:
            os.replace(tmp, dest)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
        return dest

    # -- Clearing ----------------------------------------------------------

    def clear_all(self) -> bool:
        """
        Remove every entry in the cache directory.

        Best-effort: a failed delete is logged and the sweep continues.
        Returns True only if every entry was removed.
        """
        try:
            entries = list(self.root.iterdir())
        except FileNotFoundError:
            return True
        except OSError as exc:
            logger.error("Failed to list cache directory %s: %s", self.root, exc)
            return False

        ok = True
        for entry in entries:
            try:
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
            except OSError as exc:
                logger.warning("Failed to remove cache entry %s: %s", entry, exc)
                ok = False
        logger.info("Cleared %d entries from %s.", len(entries), self.root)
        return ok

    # -- Statistics --------------------------------------------------------

    def stats(self) -> dict[str, Any]:
        """Return cache statistics."""
        total = 0
        size_bytes = 0
        if self.root.is_dir():
            for entry in self.root.iterdir():
                if entry.is_file() and entry.suffix == SVG_SUFFIX:
                    total += 1
                    size_bytes += entry.stat().st_size
        return {
            "entries": total,
            "size_mb": round(size_bytes / (1024 * 1024), 2),
            "root": str(self.root),
        }
