"""Installed-package registry — cached ``name → [versions]`` mapping.

The cache is filled by a single external query (``ghc-pkg list
--simple-output`` by default) on first use and is never invalidated
automatically; call ``refresh()`` to re-run the query.
"""

from __future__ import annotations

import logging
import re
import shlex
import subprocess
from functools import reduce
from typing import Callable

from stack_front.errors import ExternalToolMissing, RegistryQueryFailed

logger = logging.getLogger(__name__)

DEFAULT_QUERY: str = "ghc-pkg list --simple-output"

# ghc-pkg decorates hidden packages with () and broken ones with {}
_DECORATION = "(){}"

_PACKAGE_TOKEN_RE = re.compile(
    r"^(?P<name>[A-Za-z0-9][A-Za-z0-9-]*?)-(?P<version>\d+(?:\.\d+)*)$"
)


# ---------------------------------------------------------------------------
# Version helpers
# ---------------------------------------------------------------------------


def version_key(version: str) -> tuple[int, ...]:
    """Sort key for dotted-numeric versions (``"1.10" > "1.9"``).

    Non-numeric segments count as 0.
    """
    parts: list[int] = []
    for seg in version.split("."):
        parts.append(int(seg) if seg.isdigit() else 0)
    return tuple(parts)


def version_greater(a: str, b: str) -> bool:
    """True when *a* is strictly newer than *b*."""
    return version_key(a) > version_key(b)


def latest_version(versions: list[str]) -> str:
    """Newest entry of *versions* by numeric segment comparison.

    Returns ``""`` for an empty list.
    """
    if not versions:
        return ""
    return reduce(lambda best, v: v if version_greater(v, best) else best, versions)


def parse_package_listing(text: str) -> dict[str, list[str]]:
    """Group ``<name>-<version>`` tokens from *text* by package name.

    Every occurrence is kept, so a package installed in two databases
    appears twice.  Tokens that do not look like a package id are
    ignored.
    """
    installed: dict[str, list[str]] = {}
    for raw in text.split():
        token = raw.strip(_DECORATION)
        m = _PACKAGE_TOKEN_RE.match(token)
        if not m:
            continue
        installed.setdefault(m.group("name"), []).append(m.group("version"))
    return installed


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def run_query(command: str) -> str:
    """Run the package query *command* and return its stdout.

    Raises
    ------
    ExternalToolMissing
        The query executable does not exist or is not executable.
    RegistryQueryFailed
        The query exited non-zero, or the OS refused to run it.
    """
    argv = shlex.split(command)
    try:
        result = subprocess.run(argv, capture_output=True, text=True)
    except (FileNotFoundError, PermissionError) as exc:
        raise ExternalToolMissing(argv[0] if argv else command) from exc
    except OSError as exc:
        raise RegistryQueryFailed(command, -1, exc.strerror or str(exc)) from exc
    if result.returncode != 0:
        raise RegistryQueryFailed(command, result.returncode, result.stderr or "")
    return result.stdout or ""


class PackageRegistry:
    """Lazily filled cache of installed packages and their versions.

    Parameters
    ----------
    query_command:
        Shell-style command line whose stdout lists installed packages.
    query:
        Override for the query itself, a zero-argument callable
        returning the listing text.  Used by tests and by hosts that
        obtain the listing some other way.
    """

    def __init__(
        self,
        query_command: str = DEFAULT_QUERY,
        *,
        query: Callable[[], str] | None = None,
    ) -> None:
        self._query_command = query_command
        self._query = query or (lambda: run_query(self._query_command))
        self._installed: dict[str, list[str]] | None = None

    @property
    def loaded(self) -> bool:
        return self._installed is not None

    def _ensure(self) -> dict[str, list[str]]:
        if self._installed is None:
            self.refresh()
        return self._installed  # type: ignore[return-value]

    def refresh(self) -> None:
        """Re-run the query and replace the cache wholesale."""
        listing = parse_package_listing(self._query())
        logger.info("[registry] loaded %d installed packages", len(listing))
        self._installed = listing

    def installed_packages(self) -> set[str]:
        return set(self._ensure())

    def versions(self, name: str) -> list[str]:
        """All installed versions of *name* (possibly with duplicates)."""
        return list(self._ensure().get(name, []))

    def latest_installed(self, name: str) -> str:
        return latest_version(self.versions(name))

    def __repr__(self) -> str:
        size = len(self._installed) if self._installed is not None else "unloaded"
        return f"PackageRegistry(packages={size})"
