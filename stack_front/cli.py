"""Command-line front-end for the engine.

Examples::

    python -m stack_front info
    python -m stack_front targets --kind test
    python -m stack_front do build --opt fast --opt ghc-options=-Wall
    python -m stack_front do test --fragment spec --opt coverage
    python -m stack_front new my-app simple --dir ~/src
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from stack_front.commands import OPERATIONS
from stack_front.config import VERSION, get_settings
from stack_front.errors import NoPackageSelected, StackFrontError
from stack_front.prompter import BrowserOpener, ConsolePrompter
from stack_front.runner import OUTPUT_LOGGER_PREFIX, ProcessOutcome
from stack_front.session import Session
from stack_front.targets import targets_of_kind

logger = logging.getLogger(__name__)


class _ColorFormatter(logging.Formatter):
    """ANSI-colored log formatter for terminal output."""

    _COLORS = {
        logging.DEBUG:    "\033[36m",     # cyan
        logging.INFO:     "\033[32m",     # green
        logging.WARNING:  "\033[33m",     # yellow
        logging.ERROR:    "\033[31m",     # red
        logging.CRITICAL: "\033[1;31m",   # bold red
    }
    _RESET = "\033[0m"
    _DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self._COLORS.get(record.levelno, "")
        ts = self.formatTime(record, "%H:%M:%S")
        name = record.name.split(".")[-1][:12]
        return (
            f"{self._DIM}{ts}{self._RESET} "
            f"{color}{record.levelname:<8s}{self._RESET} "
            f"{self._DIM}[{name:>12s}]{self._RESET} "
            f"{color}{record.getMessage()}{self._RESET}"
        )


def configure_logging(level: str) -> None:
    """Colour logs on stderr; build output goes to stdout unformatted."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_ColorFormatter())
    root.handlers[:] = [handler]

    output = logging.getLogger(OUTPUT_LOGGER_PREFIX)
    output.setLevel(logging.DEBUG)
    output.propagate = False
    out_handler = logging.StreamHandler(sys.stdout)
    out_handler.setFormatter(logging.Formatter("%(message)s"))
    output.handlers[:] = [out_handler]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stack-front",
        description="Discover a Haskell project and drive the stack build tool",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("--dir", default=".", help="Directory inside the project")
    parser.add_argument("--auto", action="store_true", help="Never prompt for a target")
    parser.add_argument("--edit", action="store_true", help="Edit each command before it runs")
    parser.add_argument("--quote", action="store_true", help="Single-quote every command token")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("info", help="Show the project summary")
    sub.add_parser("packages", help="List packages in the project")

    p = sub.add_parser("targets", help="List targets of a package")
    p.add_argument("--package", help="Package name (default: current)")
    p.add_argument("--kind", choices=["lib", "exe", "test", "bench"])

    p = sub.add_parser("installed", help="List installed packages or versions")
    p.add_argument("name", nargs="?")
    p.add_argument("--refresh", action="store_true")

    p = sub.add_parser("homepage", help="Open the package homepage")
    p.add_argument("--package")

    p = sub.add_parser("new", help="Create a new project")
    p.add_argument("name")
    p.add_argument("template", nargs="?")
    p.add_argument("--opt", action="append", default=[], metavar="FLAG")

    p = sub.add_parser("do", help="Run a build-tool operation")
    p.add_argument("operation", choices=sorted(OPERATIONS))
    p.add_argument("--package")
    p.add_argument("--fragment", help="Only offer targets containing this text")
    p.add_argument("--target")
    p.add_argument("--opt", action="append", default=[], metavar="FLAG",
                   help="Flag without leading dashes, e.g. fast or ghc-options=-O2")
    p.add_argument("--arg", action="append", default=[], metavar="ARG",
                   help="Extra positional argument passed through")
    return parser


def _flags(opts: list[str]) -> list[str]:
    return [o if o.startswith("-") else f"--{o}" for o in opts]


def _print_info(session: Session) -> None:
    state = session.state
    if state is None:
        raise NoPackageSelected()
    kind = "compound" if state.is_compound else "simple"
    print(f"project:  {state.project_name} ({kind})")
    print(f"root:     {state.root_directory}")
    if state.current_package is not None:
        pkg = state.current_package
        print(f"package:  {pkg.name or '<unnamed>'} {pkg.version}")
        if pkg.homepage:
            print(f"homepage: {pkg.homepage}")
        if pkg.location:
            print(f"repo:     {pkg.location}")


async def _run(session: Session, args: argparse.Namespace) -> int:
    if args.cmd == "new":
        cmd = session.new_project_command(
            args.name, args.template, directory=Path(args.dir), options=_flags(args.opt),
        )
    else:
        if args.package:
            session.select_package(args.package)
        spec = OPERATIONS[args.operation]
        if spec.scope == "package":
            cmd = session.package_command(
                args.operation,
                fragment=args.fragment,
                target=args.target,
                options=_flags(args.opt),
                extra_args=args.arg,
            )
        else:
            cmd = session.project_command(
                args.operation, options=_flags(args.opt), extra_args=args.arg,
            )

    task = await session.dispatch(cmd)
    outcome: ProcessOutcome = await task
    return 0 if outcome.succeeded else (outcome.exit_code or 1)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    overrides = {}
    if args.auto:
        overrides["AUTO_TARGET"] = True
    if args.edit:
        overrides["EDIT_BEFORE_RUN"] = True
    if args.quote:
        overrides["EXTRA_QUOTING"] = True
    settings = get_settings(**overrides)
    configure_logging(args.log_level or settings.LOG_LEVEL)

    session = Session(settings, prompter=ConsolePrompter(), opener=BrowserOpener())
    try:
        if args.cmd not in ("new", "installed"):
            session.prepare(args.dir)

        if args.cmd == "info":
            _print_info(session)
        elif args.cmd == "packages":
            state = session.state
            for pkg in state.packages:
                mark = "*" if pkg is state.current_package else " "
                print(f"{mark} {pkg.name or '<unnamed>'} {pkg.version}  {pkg.directory}")
        elif args.cmd == "targets":
            pkg = session.select_package(args.package) if args.package else session.current_package()
            for t in (targets_of_kind(pkg, args.kind) if args.kind else pkg.targets):
                print(t)
        elif args.cmd == "installed":
            if args.refresh:
                session.registry.refresh()
            if args.name:
                versions = session.registry.versions(args.name)
                print(" ".join(versions) or f"{args.name} is not installed")
            else:
                for name in sorted(session.registry.installed_packages()):
                    print(f"{name} {session.registry.latest_installed(name)}")
        elif args.cmd == "homepage":
            if args.package:
                session.select_package(args.package)
            if session.open_homepage() is None:
                print("no homepage declared")
        else:
            return asyncio.run(_run(session, args))
    except StackFrontError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0
