"""Injected capabilities for everything interactive.

The engine never reads a terminal or opens a browser itself.  A UI layer
supplies a ``Prompter`` (choose among options, edit a line of text) and
an ``Opener`` (show a file or URL).  Tests use scripted fakes.
"""

from __future__ import annotations

import logging
import webbrowser
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Prompter(Protocol):
    def select(self, prompt: str, options: list[str]) -> str:
        """Return one of *options*."""
        ...

    def edit_text(self, initial: str) -> str:
        """Let the user edit *initial* and return the result."""
        ...


@runtime_checkable
class Opener(Protocol):
    def open(self, location: str) -> None:
        ...


class ConsolePrompter:
    """``input()``-based prompter for the CLI."""

    def __init__(self, input_fn=input, output_fn=print) -> None:
        self._input = input_fn
        self._print = output_fn

    def select(self, prompt: str, options: list[str]) -> str:
        for i, opt in enumerate(options, 1):
            self._print(f"  {i}) {opt}")
        while True:
            answer = self._input(f"{prompt} [1-{len(options)}]: ").strip()
            if answer in options:
                return answer
            if answer.isdigit() and 1 <= int(answer) <= len(options):
                return options[int(answer) - 1]
            self._print(f"  '{answer}' is not a valid choice")

    def edit_text(self, initial: str) -> str:
        self._print(f"  {initial}")
        answer = self._input("Command (empty keeps it): ").strip()
        return answer or initial


class BrowserOpener:
    """Opens locations with the ``webbrowser`` module."""

    def open(self, location: str) -> None:
        target = location
        if "://" not in location:
            target = Path(location).resolve().as_uri()
        logger.info("[opener] opening %s", target)
        webbrowser.open(target)
