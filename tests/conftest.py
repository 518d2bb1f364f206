"""Shared test fixtures for the stack_front suite.

Provides:
- ``clean_env``: autouse fixture isolating tests from ``STACK_FRONT_*``
  variables and any ``.env`` file in the working directory
- ``write_manifest``: writes a ``*.cabal`` file with a pinned mtime
- ``simple_project`` / ``compound_project``: ready-made project trees
- ``FakePrompter`` / ``FakeOpener``: scripted capabilities
- ``CountingParser``: ``parse_manifest`` wrapper that records calls
"""

from __future__ import annotations

import os
import textwrap
from pathlib import Path

import pytest

from stack_front.manifest import PackageRecord, parse_manifest


# ---------------------------------------------------------------------------
# Marker registration
# ---------------------------------------------------------------------------


def pytest_configure(config):
    """Register custom markers.

    Tests that spawn real child processes are decorated with
    ``@pytest.mark.process``; run ``-m 'not process'`` to skip them.
    """
    config.addinivalue_line(
        "markers",
        "process: tests that spawn real child processes",
    )


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path_factory):
    """Strip engine env vars and run from an empty directory."""
    for key in list(os.environ):
        if key.startswith("STACK_FRONT_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path_factory.mktemp("cwd"))


# ---------------------------------------------------------------------------
# Manifest / project builders
# ---------------------------------------------------------------------------

BASE_MTIME = 1_000_000.0

APP_CABAL = textwrap.dedent("""\
    cabal-version:      2.4
    name:               my-app
    version:            0.1.0.0
    homepage:           https://example.com/my-app

    source-repository head
      type:     git
      location: https://github.com/example/my-app

    library
        exposed-modules:  MyLib
        build-depends:    base ^>=4.14

    executable my-app
        main-is:          Main.hs

    test-suite my-app-test
        type:             exitcode-stdio-1.0
        main-is:          Spec.hs
""")


def make_cabal(name: str, *, library: bool = True, exes=(), tests=(), benches=()) -> str:
    lines = [f"name: {name}", "version: 1.0.0"]
    if library:
        lines += ["", "library", "  exposed-modules: Lib"]
    for e in exes:
        lines += ["", f"executable {e}", "  main-is: Main.hs"]
    for t in tests:
        lines += ["", f"test-suite {t}", "  type: exitcode-stdio-1.0"]
    for b in benches:
        lines += ["", f"benchmark {b}", "  type: exitcode-stdio-1.0"]
    return "\n".join(lines) + "\n"


def pin_mtime(path: Path, mtime: float) -> None:
    os.utime(path, (mtime, mtime))


@pytest.fixture()
def write_manifest():
    """Return a helper writing *text* to *path* with mtime *mtime*."""

    def _write(path: Path, text: str, mtime: float = BASE_MTIME) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        pin_mtime(path, mtime)
        return path

    return _write


@pytest.fixture()
def simple_project(tmp_path: Path, write_manifest) -> Path:
    """``stack.yaml`` + one manifest at the root."""
    root = tmp_path / "my-app"
    root.mkdir()
    (root / "stack.yaml").write_text("resolver: lts-22.0\n", encoding="utf-8")
    write_manifest(root / "my-app.cabal", APP_CABAL)
    (root / "src").mkdir()
    return root


@pytest.fixture()
def compound_project(tmp_path: Path, write_manifest) -> Path:
    """``cabal.project`` root with packages ``alpha`` and ``beta``."""
    root = tmp_path / "mono"
    root.mkdir()
    marker = root / "cabal.project"
    marker.write_text("packages: alpha beta\n", encoding="utf-8")
    pin_mtime(marker, BASE_MTIME)
    write_manifest(root / "alpha" / "alpha.cabal", make_cabal("alpha", exes=["alpha-cli"]))
    write_manifest(root / "beta" / "beta.cabal", make_cabal("beta", tests=["beta-spec"]))
    return root


# ---------------------------------------------------------------------------
# Scripted capabilities
# ---------------------------------------------------------------------------


class FakePrompter:
    """Answers ``select`` from a script and records every call."""

    def __init__(self, choices=(), edit=None) -> None:
        self.choices = list(choices)
        self.edit = edit
        self.select_calls: list[tuple[str, list[str]]] = []
        self.edit_calls: list[str] = []

    def select(self, prompt: str, options: list[str]) -> str:
        self.select_calls.append((prompt, list(options)))
        if self.choices:
            return self.choices.pop(0)
        return options[0]

    def edit_text(self, initial: str) -> str:
        self.edit_calls.append(initial)
        return self.edit(initial) if self.edit else initial


class FakeOpener:
    def __init__(self) -> None:
        self.opened: list[str] = []

    def open(self, location: str) -> None:
        self.opened.append(location)


class CountingParser:
    """``parse_manifest`` that remembers which paths it parsed."""

    def __init__(self) -> None:
        self.calls: list[Path] = []

    def __call__(self, path: Path) -> PackageRecord:
        self.calls.append(Path(path))
        return parse_manifest(path)

    @property
    def count(self) -> int:
        return len(self.calls)


@pytest.fixture()
def prompter() -> FakePrompter:
    return FakePrompter()


@pytest.fixture()
def opener() -> FakeOpener:
    return FakeOpener()


@pytest.fixture()
def counting_parser() -> CountingParser:
    return CountingParser()
