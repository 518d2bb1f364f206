"""Project locator — find the project root and the manifests under it.

Upward search: the nearest ancestor (inclusive) holding any project
marker file is the project root.

Downward search: a depth-first walk collecting manifest files, pruning
every subdirectory that carries its own marker (a nested, unrelated
project) and the usual build-output / VCS directories.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_MARKERS: tuple[str, ...] = (
    "stack.yaml",
    "cabal.project",
    "cabal.project.local",
)
DEFAULT_COMPOUND_MARKER: str = "cabal.project"
DEFAULT_MANIFEST_SUFFIX: str = ".cabal"

DEFAULT_SKIP_DIRS: frozenset[str] = frozenset(
    {
        ".git",
        ".hg",
        ".stack-work",
        "dist",
        "dist-newstyle",
        "node_modules",
    }
)


def has_marker(directory: Path, markers: tuple[str, ...] = DEFAULT_PROJECT_MARKERS) -> bool:
    """True when *directory* directly contains any of *markers*."""
    return any((directory / m).is_file() for m in markers)


def locate_root(
    start_dir: str | Path,
    markers: tuple[str, ...] = DEFAULT_PROJECT_MARKERS,
) -> Path | None:
    """Walk upward from *start_dir* to the first directory holding a marker.

    Returns ``None`` when the filesystem root is reached without a match.
    """
    current = Path(start_dir).resolve()
    if current.is_file():
        current = current.parent

    for candidate in (current, *current.parents):
        if has_marker(candidate, markers):
            logger.debug("[locator] root %s (from %s)", candidate, start_dir)
            return candidate
    return None


def manifests_in(directory: Path, suffix: str = DEFAULT_MANIFEST_SUFFIX) -> list[Path]:
    """Manifest files directly inside *directory*, sorted by name."""
    try:
        names = sorted(os.listdir(directory))
    except OSError:
        return []
    return [
        directory / n
        for n in names
        if n.endswith(suffix) and len(n) > len(suffix) and (directory / n).is_file()
    ]


def find_manifests(
    root_dir: str | Path,
    *,
    markers: tuple[str, ...] = DEFAULT_PROJECT_MARKERS,
    suffix: str = DEFAULT_MANIFEST_SUFFIX,
    skip_dirs: frozenset[str] = DEFAULT_SKIP_DIRS,
) -> list[Path]:
    """Collect manifests below *root_dir*, excluding nested projects.

    The root itself is never pruned, even though it carries a marker.
    """
    root = Path(root_dir).resolve()
    found: list[Path] = []

    for dirpath_str, dirnames, filenames in os.walk(root):
        dirpath = Path(dirpath_str)

        kept: list[str] = []
        for d in sorted(dirnames):
            if d in skip_dirs:
                continue
            if has_marker(dirpath / d, markers):
                logger.debug("[locator] pruning nested project %s", dirpath / d)
                continue
            kept.append(d)
        dirnames[:] = kept

        for fname in sorted(filenames):
            if fname.endswith(suffix) and len(fname) > len(suffix):
                found.append(dirpath / fname)

    found.sort()
    return found
