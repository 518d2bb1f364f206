"""The context object a UI layer holds on to.

A ``Session`` owns one ``ProjectCache``, one ``PackageRegistry`` and one
``ProcessRunner``, plus the injected ``Prompter`` / ``Opener``.  Nothing
is module-global, so a host can keep one session per project window and
tests can build throwaway sessions.

Usage::

    session = Session(get_settings(), prompter=my_prompter, opener=my_opener)
    session.prepare("/path/inside/project")
    cmd = session.package_command("build", options=["--fast"])
    await session.dispatch(cmd)
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Sequence

from stack_front.commands import (
    Command,
    build_command,
    log_channel_key,
    operation_spec,
    option_args,
)
from stack_front.config import Settings
from stack_front.errors import ExternalToolMissing, NoPackageSelected
from stack_front.manifest import PackageRecord
from stack_front.project import ProjectCache, ProjectState
from stack_front.prompter import Opener, Prompter
from stack_front.registry import PackageRegistry
from stack_front.runner import ProcessRunner
from stack_front.scanner import OutputScanner
from stack_front.targets import resolve_target

logger = logging.getLogger(__name__)


class Session:
    """Holds project state and turns user choices into commands."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        prompter: Prompter,
        opener: Opener,
        runner: ProcessRunner | None = None,
        registry: PackageRegistry | None = None,
        cache: ProjectCache | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.prompter = prompter
        self.opener = opener
        self.cache = cache or ProjectCache(
            markers=self.settings.PROJECT_MARKERS,
            compound_marker=self.settings.COMPOUND_MARKER,
            manifest_suffix=self.settings.MANIFEST_SUFFIX,
        )
        self.registry = registry or PackageRegistry(self.settings.PKG_QUERY)
        self.runner = runner or ProcessRunner()
        self.scanner = OutputScanner(
            opener,
            self._directory_for_channel,
            auto_open_coverage=self.settings.AUTO_OPEN_COVERAGE,
            auto_open_haddock=self.settings.AUTO_OPEN_HADDOCK,
        )
        self.runner.on_finish(self.scanner)
        self._tool: str | None = None

    # -- tool & project -------------------------------------------------------

    def check_tool(self) -> str:
        """Resolve the build tool once; raise ``ExternalToolMissing`` if absent."""
        if self._tool is None:
            found = shutil.which(self.settings.TOOL_PATH)
            if found is None:
                raise ExternalToolMissing(self.settings.TOOL_PATH)
            logger.debug("[session] build tool %s", found)
            self._tool = found
        return self._tool

    def prepare(self, start_dir: str | Path) -> ProjectState:
        return self.cache.prepare(start_dir)

    @property
    def state(self) -> ProjectState | None:
        return self.cache.state

    def current_package(self) -> PackageRecord:
        state = self.cache.state
        if state is None or state.current_package is None:
            raise NoPackageSelected()
        return state.current_package

    def select_package(self, name: str) -> PackageRecord:
        state = self.cache.state
        if state is None:
            raise NoPackageSelected()
        return state.select_package(name)

    def last_target(self, package_name: str) -> str | None:
        state = self.cache.state
        return state.selections.get(package_name) if state else None

    # -- command construction -------------------------------------------------

    def package_command(
        self,
        operation: str,
        *,
        fragment: str | None = None,
        target: str | None = None,
        options: Sequence[str] = (),
        extra_args: Sequence[str] = (),
    ) -> Command:
        """Command for *operation* on the current package.

        The target is resolved through the prompter unless given or
        ``AUTO_TARGET`` is set.
        """
        spec = operation_spec(operation)
        if spec.scope != "package":
            raise ValueError(f"'{operation}' is not a package operation")
        tool = self.check_tool()
        pkg = self.current_package()
        flags = option_args(operation, options)

        if target is None:
            last = self.last_target(pkg.name)
            prompt = f"Target of {pkg.name}" + (f" (last: {last})" if last else "")
            target = resolve_target(
                pkg,
                fragment,
                auto=self.settings.AUTO_TARGET,
                chooser=self.prompter.select,
                prompt=prompt,
            )
        self.cache.state.selections[pkg.name] = target

        # a nameless package resolves to "", which the tool must not see
        return self._build(
            tool, operation, [target or None, *flags, *extra_args],
            working_directory=pkg.directory,
            package_name=pkg.name,
        )

    def project_command(
        self,
        operation: str,
        *,
        options: Sequence[str] = (),
        extra_args: Sequence[str] = (),
    ) -> Command:
        """Command for a project-wide *operation*, run at the project root."""
        spec = operation_spec(operation)
        if spec.scope == "global":
            raise ValueError(f"'{operation}' does not run inside a project")
        tool = self.check_tool()
        state = self.cache.state
        if state is None:
            raise NoPackageSelected()
        flags = option_args(operation, options)
        return self._build(
            tool, operation, [*flags, *extra_args],
            working_directory=state.root_directory,
            package_name=state.project_name,
        )

    def new_project_command(
        self,
        name: str,
        template: str | None = None,
        *,
        directory: str | Path,
        options: Sequence[str] = (),
    ) -> Command:
        """``new`` needs no loaded project; it runs in *directory*."""
        tool = self.check_tool()
        flags = option_args("new", options)
        return self._build(
            tool, "new", [name, template, *flags],
            working_directory=Path(directory),
            package_name=name,
        )

    def _build(
        self,
        tool: str,
        operation: str,
        args: Sequence[str | None],
        *,
        working_directory: Path,
        package_name: str | None,
    ) -> Command:
        edit = self.prompter.edit_text if self.settings.EDIT_BEFORE_RUN else None
        return build_command(
            tool,
            operation,
            args,
            working_directory=working_directory,
            package_name=package_name,
            extra_quoting=self.settings.EXTRA_QUOTING,
            edit=edit,
        )

    # -- dispatch & helpers -----------------------------------------------------

    async def dispatch(self, command: Command) -> asyncio.Task:
        """Launch *command*; the returned task resolves to a ``ProcessOutcome``."""
        return await self.runner.run(command)

    def open_homepage(self) -> str | None:
        """Open the current package's homepage, if it declares one."""
        url = self.current_package().homepage
        if not url:
            logger.info("[session] %s has no homepage", self.current_package().name)
            return None
        self.opener.open(url)
        return url

    def _directory_for_channel(self, key: str) -> Path:
        state = self.cache.state
        if state is None:
            return Path.cwd()
        for pkg in state.packages:
            if log_channel_key(pkg.name) == key:
                return pkg.directory
        return state.root_directory
