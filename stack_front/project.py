"""Project cache — loaded package records kept in step with the disk.

``ProjectCache.prepare`` is the one refresh entry point.  It resolves
the project root, decides between a full reload and a selective refresh,
and never reparses a manifest whose mtime has not advanced.

A ``ProjectCache`` is a plain object (not a singleton) so tests and
multi-project hosts can hold as many as they need.  It performs no
locking; hosts that add concurrency must serialise ``prepare``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from stack_front.errors import (
    ManifestNotFound,
    NoManifestFound,
    NoProjectFound,
    UnknownPackage,
)
from stack_front.locator import (
    DEFAULT_COMPOUND_MARKER,
    DEFAULT_MANIFEST_SUFFIX,
    DEFAULT_PROJECT_MARKERS,
    find_manifests,
    locate_root,
    manifests_in,
)
from stack_front.manifest import PackageRecord, empty_record, parse_manifest

logger = logging.getLogger(__name__)

ManifestParser = Callable[[Path], PackageRecord]


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


@dataclass
class ProjectState:
    """The currently loaded project."""

    root_directory: Path
    project_name: str
    is_compound: bool = False
    packages: list[PackageRecord] = field(default_factory=list)
    current_package: PackageRecord | None = None
    marker_mtime: float | None = None
    # package name -> last target chosen for it
    selections: dict[str, str] = field(default_factory=dict)

    def package_named(self, name: str) -> PackageRecord | None:
        for pkg in self.packages:
            if pkg.name == name:
                return pkg
        return None

    def package_names(self) -> list[str]:
        return [pkg.name for pkg in self.packages]

    def select_package(self, name: str) -> PackageRecord:
        """Make *name* the current package.  Raises ``UnknownPackage`` if unknown."""
        pkg = self.package_named(name)
        if pkg is None:
            raise UnknownPackage(name, self.package_names())
        self.current_package = pkg
        return pkg


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


class ProjectCache:
    """Owns at most one ``ProjectState`` and refreshes it on demand.

    Parameters
    ----------
    markers:
        File names, any of which marks a project root.
    compound_marker:
        File name whose presence at the root makes the project compound.
    manifest_suffix:
        Extension of package manifest files.
    parser:
        Callable turning a manifest path into a ``PackageRecord``.
        Defaults to ``parse_manifest``; tests inject a counting wrapper.
    """

    def __init__(
        self,
        *,
        markers: tuple[str, ...] = DEFAULT_PROJECT_MARKERS,
        compound_marker: str = DEFAULT_COMPOUND_MARKER,
        manifest_suffix: str = DEFAULT_MANIFEST_SUFFIX,
        parser: ManifestParser = parse_manifest,
    ) -> None:
        self._markers = markers
        self._compound_marker = compound_marker
        self._suffix = manifest_suffix
        self._parser = parser
        self._state: ProjectState | None = None

    @property
    def state(self) -> ProjectState | None:
        return self._state

    def reset(self) -> None:
        """Forget the loaded project."""
        self._state = None

    # -- prepare ------------------------------------------------------------

    def prepare(self, start_dir: str | Path) -> ProjectState:
        """Load or refresh the project enclosing *start_dir*.

        Raises
        ------
        NoProjectFound
            No marker file up the directory chain.
        NoManifestFound
            A simple project root holds zero (or several) manifests.
        """
        root = locate_root(start_dir, self._markers)
        if root is None:
            raise NoProjectFound(str(start_dir), self._markers)

        marker = root / self._compound_marker
        compound = marker.is_file()
        marker_mtime = _mtime(marker) if compound else None

        single: Path | None = None
        if compound:
            project_name = root.name
        else:
            found = manifests_in(root, self._suffix)
            if len(found) != 1:
                raise NoManifestFound(str(root), [p.name for p in found])
            single = found[0]
            project_name = single.name[: -len(self._suffix)]

        previous = self._state
        different_project = previous is None or previous.root_directory != root
        need_full_reload = different_project or (
            compound
            and (previous.marker_mtime is None or previous.marker_mtime < marker_mtime)
        )
        if not need_full_reload and single is not None:
            # the simple project's manifest was renamed or replaced
            cached = [p.manifest_path for p in previous.packages]
            need_full_reload = cached != [single.resolve()]

        if need_full_reload:
            paths = find_manifests(
                root, markers=self._markers, suffix=self._suffix,
            ) if compound else [single]
            logger.info(
                "[project] full reload root=%s manifests=%d", root, len(paths),
            )
            packages = [self._load(p) for p in paths]
        else:
            packages = [self._refresh(p) for p in previous.packages]

        if different_project:
            state = ProjectState(root_directory=root, project_name=project_name)
        else:
            state = previous
            state.project_name = project_name

        current_path = (
            state.current_package.manifest_path
            if state.current_package is not None
            else None
        )
        state.packages = packages
        state.is_compound = len(packages) > 1
        state.marker_mtime = marker_mtime

        if different_project or current_path is None:
            state.current_package = packages[0] if packages else None
            state.selections.clear()
        else:
            state.current_package = next(
                (p for p in packages if p.manifest_path == current_path),
                packages[0] if packages else None,
            )

        if not packages:
            logger.warning("[project] %s contains no manifests", root)

        self._state = state
        return state

    # -- internal -----------------------------------------------------------

    def _load(self, path: Path) -> PackageRecord:
        try:
            return self._parser(path)
        except ManifestNotFound as exc:
            logger.warning("[project] %s, using empty record", exc)
            return empty_record(path)

    def _refresh(self, record: PackageRecord) -> PackageRecord:
        current = _mtime(record.manifest_path)
        if current is not None and current <= record.manifest_mtime:
            return record
        logger.info("[project] reparsing changed manifest %s", record.manifest_path)
        return self._load(record.manifest_path)


def _mtime(path: Path) -> float | None:
    try:
        return path.stat().st_mtime
    except OSError:
        return None
