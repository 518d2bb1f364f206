"""Target selection for a single package."""

from __future__ import annotations

from typing import Callable

from stack_front.errors import InvalidSelection
from stack_front.manifest import PackageRecord, target_kind

Chooser = Callable[[str, list[str]], str]


def candidate_targets(package: PackageRecord, fragment: str | None = None) -> list[str]:
    """The bare package name followed by its targets.

    When *fragment* is given only targets containing it survive; the
    bare package name is always offered.
    """
    targets = list(package.targets)
    if fragment:
        targets = [t for t in targets if fragment in t]
    return [package.name, *targets]


def targets_of_kind(package: PackageRecord, kind: str) -> list[str]:
    return [t for t in package.targets if target_kind(t) == kind]


def resolve_target(
    package: PackageRecord,
    fragment: str | None = None,
    *,
    auto: bool = False,
    chooser: Chooser | None = None,
    prompt: str | None = None,
) -> str:
    """Pick the target to act on.

    In *auto* mode the bare package name is returned and *chooser* is
    never called.  Otherwise the chooser's answer must be one of the
    candidates.
    """
    if auto:
        return package.name
    if chooser is None:
        raise ValueError("a chooser is required unless auto is set")

    candidates = candidate_targets(package, fragment)
    choice = chooser(prompt or f"Target of {package.name}", candidates)
    if choice not in candidates:
        raise InvalidSelection(choice, candidates)
    return choice
