"""Output scanner — find artifact locations in finished build output.

``scan_output`` is a pure function over the complete output text.  It
recognises at most one coverage report and at most one Haddock index;
for Haddock the phrasings are tried in ``HADDOCK_PATTERNS`` order and
the first match wins.

``OutputScanner`` wires that into the runner's finish notification and
hands resolved locations to an ``Opener`` when auto-open is enabled.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field

from stack_front.commands import is_engine_channel
from stack_front.prompter import Opener
from stack_front.runner import ProcessOutcome

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

COVERAGE_PATTERN = re.compile(
    r"(?:coverage report for [^\n]*?|generated HTML coverage reports)"
    r" is available at\s+(?P<path>\S+?\.html)",
    re.IGNORECASE,
)

HADDOCK_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"Updating Haddock index for [^\n]*?\bin\s+(?P<path>\S+?\.html)",
        re.IGNORECASE,
    ),
    re.compile(
        r"Documentation created:\s+(?P<path>\S+?\.html)",
        re.IGNORECASE,
    ),
)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class ArtifactScan(BaseModel):
    """Artifact locations found in one run's output."""

    model_config = ConfigDict(frozen=True)

    coverage: str | None = Field(default=None, description="Coverage report path")
    haddock: str | None = Field(default=None, description="Haddock index path")

    @property
    def empty(self) -> bool:
        return self.coverage is None and self.haddock is None


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def scan_output(text: str) -> ArtifactScan:
    """Extract the coverage and Haddock locations from *text*."""
    coverage = None
    m = COVERAGE_PATTERN.search(text)
    if m:
        coverage = m.group("path")

    haddock = None
    for pattern in HADDOCK_PATTERNS:
        m = pattern.search(text)
        if m:
            haddock = m.group("path")
            break

    return ArtifactScan(coverage=coverage, haddock=haddock)


def resolve_location(location: str, base_dir: Path) -> str:
    """URLs and absolute paths pass through; relative paths join *base_dir*."""
    if "://" in location:
        return location
    path = Path(location)
    if path.is_absolute():
        return str(path)
    return str((base_dir / path).resolve())


# ---------------------------------------------------------------------------
# Finish hook
# ---------------------------------------------------------------------------


class OutputScanner:
    """Finish callback that opens artifacts named in build output.

    Parameters
    ----------
    opener:
        Receives each resolved location.
    directory_for:
        Maps a channel key to the directory relative paths resolve
        against (normally the package directory).
    auto_open_coverage / auto_open_haddock:
        Per-artifact-class switches.
    """

    def __init__(
        self,
        opener: Opener,
        directory_for: Callable[[str], Path],
        *,
        auto_open_coverage: bool = True,
        auto_open_haddock: bool = True,
    ) -> None:
        self._opener = opener
        self._directory_for = directory_for
        self.auto_open_coverage = auto_open_coverage
        self.auto_open_haddock = auto_open_haddock

    def __call__(self, outcome: ProcessOutcome) -> ArtifactScan | None:
        return self.on_finish(outcome)

    def on_finish(self, outcome: ProcessOutcome) -> ArtifactScan | None:
        """Scan a finished run.  Returns the resolved scan, or None if skipped."""
        if not is_engine_channel(outcome.channel_key):
            return None
        if outcome.status != "finished":
            return None

        found = scan_output(outcome.output)
        if found.empty:
            return found

        base = self._directory_for(outcome.channel_key)
        resolved = ArtifactScan(
            coverage=resolve_location(found.coverage, base) if found.coverage else None,
            haddock=resolve_location(found.haddock, base) if found.haddock else None,
        )

        if resolved.coverage and self.auto_open_coverage:
            logger.info("[scanner] coverage report at %s", resolved.coverage)
            self._opener.open(resolved.coverage)
        if resolved.haddock and self.auto_open_haddock:
            logger.info("[scanner] haddock index at %s", resolved.haddock)
            self._opener.open(resolved.haddock)
        return resolved
