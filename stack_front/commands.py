"""Command construction — (tool, operation, args) → quoted command text.

Each token is quoted on its own with ``shlex.quote`` and the tokens are
joined with single spaces in the fixed order ``tool operation args…``.
An optional *edit* hook sees the assembled text and may rewrite it; the
rewritten text is used verbatim and never parsed back.

Also holds the catalogue of build-tool operations and the option flags
each of them accepts.
"""

from __future__ import annotations

import logging
import re
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Literal, Sequence

from pydantic import BaseModel, ConfigDict, Field

from stack_front.errors import UnknownOperation, UnknownOption

logger = logging.getLogger(__name__)

CHANNEL_SUFFIX: str = "-stack-log"
FALLBACK_CHANNEL_NAME: str = "project"

_WHITESPACE_RE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Operation catalogue
# ---------------------------------------------------------------------------

Scope = Literal["package", "project", "global"]


@dataclass(frozen=True)
class OperationSpec:
    """What an operation acts on and which flags it understands.

    ``package`` operations take a target argument, ``project`` ones run
    at the project root, and ``global`` ones need no project at all.
    Flags ending in ``=`` take a value (``--ghc-options=-O2``).
    """

    name: str
    scope: Scope
    flags: tuple[str, ...] = ()


_BUILD_FLAGS: tuple[str, ...] = (
    "--dry-run", "--pedantic", "--fast", "--only-dependencies",
    "--file-watch", "--file-watch-poll", "--force-dirty",
    "--test", "--no-run-tests", "--no-rerun-tests", "--coverage",
    "--bench", "--no-run-benchmarks", "--haddock", "--copy-bins",
    "--ghc-options=", "--test-arguments=", "--benchmark-arguments=",
)

OPERATIONS: dict[str, OperationSpec] = {
    spec.name: spec
    for spec in (
        OperationSpec("build", "package", _BUILD_FLAGS),
        OperationSpec("test", "package", (
            "--fast", "--pedantic", "--coverage", "--no-rerun-tests",
            "--file-watch", "--ghc-options=", "--test-arguments=",
        )),
        OperationSpec("bench", "package", (
            "--fast", "--pedantic", "--no-run-benchmarks", "--file-watch",
            "--ghc-options=", "--benchmark-arguments=",
        )),
        OperationSpec("haddock", "package", (
            "--fast", "--no-haddock-deps", "--haddock-hyperlink-source",
        )),
        OperationSpec("install", "package", ("--fast", "--pedantic", "--ghc-options=")),
        OperationSpec("ghci", "package", ("--no-build", "--ghc-options=")),
        OperationSpec("clean", "package", ("--full",)),
        OperationSpec("sdist", "package", ("--ignore-check", "--pvp-bounds=")),
        OperationSpec("upload", "package", ("--ignore-check", "--no-signature")),
        OperationSpec("exec", "project", ()),
        OperationSpec("setup", "project", ("--reinstall", "--upgrade-cabal")),
        OperationSpec("update", "project", ()),
        OperationSpec("init", "project", ("--force", "--omit-packages")),
        OperationSpec("new", "global", ("--bare", "--force")),
    )
}


def operation_spec(operation: str) -> OperationSpec:
    try:
        return OPERATIONS[operation]
    except KeyError:
        raise UnknownOperation(operation, sorted(OPERATIONS)) from None


def option_args(operation: str, options: Iterable[str]) -> list[str]:
    """Validate *options* against the flags *operation* accepts.

    Returns the options as a list, in the order given.
    """
    spec = operation_spec(operation)
    out: list[str] = []
    for opt in options:
        if "=" in opt:
            ok = opt.split("=", 1)[0] + "=" in spec.flags
        else:
            ok = opt in spec.flags
        if not ok:
            raise UnknownOption(operation, opt)
        out.append(opt)
    return out


# ---------------------------------------------------------------------------
# Command model
# ---------------------------------------------------------------------------


class Command(BaseModel):
    """A fully assembled build-tool invocation."""

    model_config = ConfigDict(frozen=True)

    tool_path: str = Field(..., description="Build tool executable")
    operation: str = Field(..., description="Build tool sub-command")
    positional_args: tuple[str, ...] = Field(default=())
    working_directory: Path = Field(..., description="Directory to run in")
    log_channel_key: str = Field(..., description="Output channel name")
    text: str = Field(..., description="Final shell text of the command")
    edited: bool = Field(
        default=False, description="True when text came from the edit hook",
    )

    @property
    def argv(self) -> list[str]:
        """Unquoted argument vector ``[tool, operation, *args]``."""
        return [self.tool_path, self.operation, *self.positional_args]


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def log_channel_key(package_name: str | None) -> str:
    """Output channel for operations on *package_name*.

    Same package → same channel; no package → a shared fallback channel.
    """
    base = (package_name or "").strip().lower() or FALLBACK_CHANNEL_NAME
    return _WHITESPACE_RE.sub("-", base) + CHANNEL_SUFFIX


def is_engine_channel(key: str) -> bool:
    return key.endswith(CHANNEL_SUFFIX)


def quote_token(token: str, *, force: bool = False) -> str:
    """Shell-quote one token.  *force* single-quotes even safe words."""
    if not force:
        return shlex.quote(token)
    return "'" + token.replace("'", "'\"'\"'") + "'"


def build_command(
    tool_path: str,
    operation: str,
    args: Sequence[str | None] = (),
    *,
    working_directory: str | Path = ".",
    package_name: str | None = None,
    extra_quoting: bool = False,
    edit: Callable[[str], str] | None = None,
) -> Command:
    """Assemble a ``Command``.

    ``None`` entries in *args* are dropped.  When *edit* is given the
    assembled text is passed through it and the result becomes the final
    command text.
    """
    kept = tuple(a for a in args if a is not None)
    tokens = [
        quote_token(tool_path, force=extra_quoting),
        quote_token(operation, force=extra_quoting),
        *(quote_token(a, force=extra_quoting) for a in kept),
    ]
    text = " ".join(tokens)

    edited = False
    if edit is not None:
        new_text = edit(text)
        edited = new_text != text
        text = new_text
        if edited:
            logger.info("[commands] command edited to: %s", text)

    return Command(
        tool_path=tool_path,
        operation=operation,
        positional_args=kept,
        working_directory=Path(working_directory),
        log_channel_key=log_channel_key(package_name),
        text=text,
        edited=edited,
    )
