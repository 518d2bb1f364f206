"""Package manifest parser — ``*.cabal`` text → ``PackageRecord``.

Parsing happens in two steps so ordering and edge cases can be tested
in isolation:

1. ``scan_manifest`` runs every line through a small line classifier
   (pattern → field) and produces a ``ManifestScan``.
2. ``assemble_targets`` turns the scan into target strings in the fixed
   order lib, exe, test, bench, independent of stanza order in the file.

Missing ``name`` / ``version`` fields become empty strings; callers are
expected to cope with an unnamed package.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from stack_front.errors import ManifestNotFound

logger = logging.getLogger(__name__)

TargetKind = Literal["lib", "exe", "test", "bench"]

TARGET_KINDS: tuple[str, ...] = ("lib", "exe", "test", "bench")


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class PackageRecord(BaseModel):
    """Structured metadata for one manifest file."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="", description="Package name (may be empty)")
    version: str = Field(default="", description="Dotted-numeric version")
    targets: tuple[str, ...] = Field(
        default=(), description="Target strings in lib/exe/test/bench order",
    )
    directory: Path = Field(..., description="Directory holding the manifest")
    manifest_path: Path = Field(..., description="Absolute manifest path")
    manifest_mtime: float = Field(
        default=0.0, description="Manifest mtime captured at parse time",
    )
    homepage: str = Field(default="", description="Value of the homepage: key")
    location: str = Field(default="", description="source-repository location")


@dataclass
class ManifestScan:
    """Intermediate form produced by the line classifier."""

    name: str = ""
    version: str = ""
    homepage: str = ""
    location: str = ""
    has_library: bool = False
    executables: list[str] = field(default_factory=list)
    test_suites: list[str] = field(default_factory=list)
    benchmarks: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Line classifier
# ---------------------------------------------------------------------------

_FIELD_RE: dict[str, re.Pattern[str]] = {
    "name": re.compile(r"^[ \t]*name[ \t]*:[ \t]*(\S+)", re.IGNORECASE),
    "version": re.compile(r"^[ \t]*version[ \t]*:[ \t]*(\S+)", re.IGNORECASE),
    "homepage": re.compile(r"^[ \t]*homepage[ \t]*:[ \t]*(\S+)", re.IGNORECASE),
    "location": re.compile(r"^[ \t]*location[ \t]*:[ \t]*(\S+)", re.IGNORECASE),
}

_LIBRARY_RE = re.compile(r"^[ \t]*library(?:[ \t]|$)", re.IGNORECASE)

# stanza header → ManifestScan list attribute
_STANZA_RE: dict[str, re.Pattern[str]] = {
    "executables": re.compile(r"^[ \t]*executable[ \t]+(\S+)", re.IGNORECASE),
    "test_suites": re.compile(r"^[ \t]*test-suite[ \t]+(\S+)", re.IGNORECASE),
    "benchmarks": re.compile(r"^[ \t]*benchmark[ \t]+(\S+)", re.IGNORECASE),
}


def classify_line(line: str) -> tuple[str, str] | None:
    """Classify a single manifest line.

    Returns ``(field, value)`` where *field* is one of ``name``,
    ``version``, ``homepage``, ``location``, ``library``,
    ``executables``, ``test_suites``, ``benchmarks``; or ``None`` when
    the line carries nothing the engine cares about.
    """
    for key, pattern in _FIELD_RE.items():
        m = pattern.match(line)
        if m:
            return key, m.group(1)

    if _LIBRARY_RE.match(line):
        return "library", ""

    for key, pattern in _STANZA_RE.items():
        m = pattern.match(line)
        if m:
            return key, m.group(1)

    return None


def scan_manifest(text: str) -> ManifestScan:
    """Run every line of *text* through ``classify_line``.

    Scalar fields keep their first occurrence; stanza headers accumulate
    in file order.
    """
    scan = ManifestScan()
    for line in text.splitlines():
        hit = classify_line(line)
        if hit is None:
            continue
        key, value = hit
        if key == "library":
            scan.has_library = True
        elif key in _STANZA_RE:
            getattr(scan, key).append(value)
        elif not getattr(scan, key):
            setattr(scan, key, value)
    return scan


def assemble_targets(scan: ManifestScan) -> tuple[str, ...]:
    """Build target strings from *scan* in lib, exe, test, bench order."""
    name = scan.name
    targets: list[str] = []
    if scan.has_library:
        targets.append(f"{name}:lib")
    targets.extend(f"{name}:exe:{ident}" for ident in scan.executables)
    targets.extend(f"{name}:test:{ident}" for ident in scan.test_suites)
    targets.extend(f"{name}:bench:{ident}" for ident in scan.benchmarks)
    return tuple(targets)


def target_kind(target: str) -> str | None:
    """Return the kind segment of a target string, or None for a bare name."""
    parts = target.split(":")
    if len(parts) >= 2 and parts[1] in TARGET_KINDS:
        return parts[1]
    return None


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def parse_manifest(path: str | Path) -> PackageRecord:
    """Parse the manifest at *path* into a ``PackageRecord``.

    Raises
    ------
    ManifestNotFound
        When the file does not exist or cannot be read.
    """
    manifest = Path(path).resolve()
    try:
        mtime = manifest.stat().st_mtime
        text = manifest.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise ManifestNotFound(str(manifest), exc.strerror or str(exc)) from exc

    scan = scan_manifest(text)
    if not scan.name:
        logger.warning("[manifest] %s has no name: field", manifest)

    record = PackageRecord(
        name=scan.name,
        version=scan.version,
        targets=assemble_targets(scan),
        directory=manifest.parent,
        manifest_path=manifest,
        manifest_mtime=mtime,
        homepage=scan.homepage,
        location=scan.location,
    )
    logger.debug(
        "[manifest] parsed %s name=%s version=%s targets=%d",
        manifest.name, record.name, record.version, len(record.targets),
    )
    return record


def empty_record(path: str | Path) -> PackageRecord:
    """Placeholder for a manifest that could not be read.

    Name and version are empty and the mtime is taken from the file if
    it still exists, so the next ``prepare`` only retries after the file
    changes again.
    """
    manifest = Path(path).resolve()
    try:
        mtime = manifest.stat().st_mtime
    except OSError:
        mtime = 0.0
    return PackageRecord(
        directory=manifest.parent,
        manifest_path=manifest,
        manifest_mtime=mtime,
    )
