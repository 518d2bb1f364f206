"""Engine error hierarchy.

Every error carries typed fields (not just a message string),
supports ``to_dict()`` for serialisation into a UI layer's error
payload, and has a readable ``__str__`` for logging.
"""

from __future__ import annotations


class StackFrontError(Exception):
    """Base error for all engine failures."""

    def __init__(self, message: str, *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    def to_dict(self) -> dict:
        return {"error": type(self).__name__, "message": self.message, **self.detail}

    def __str__(self) -> str:
        return self.message


class NoProjectFound(StackFrontError):
    """No project marker file exists up the directory chain."""

    def __init__(self, start_dir: str, markers: tuple[str, ...] = ()) -> None:
        self.start_dir = start_dir
        self.markers = markers
        wanted = ", ".join(markers) if markers else "a project marker"
        super().__init__(
            f"No project found: no {wanted} in '{start_dir}' or any parent directory",
            detail={"start_dir": start_dir, "markers": list(markers)},
        )


class NoManifestFound(StackFrontError):
    """A simple project root does not hold exactly one manifest."""

    def __init__(self, root_dir: str, found: list[str] | None = None) -> None:
        self.root_dir = root_dir
        self.found = found or []
        if self.found:
            msg = (
                f"Expected exactly one manifest in '{root_dir}', "
                f"found {len(self.found)}: {', '.join(self.found)}"
            )
        else:
            msg = f"No manifest found in '{root_dir}'"
        super().__init__(msg, detail={"root_dir": root_dir, "found": self.found})


class ManifestNotFound(StackFrontError):
    """A manifest file is missing or unreadable."""

    def __init__(self, path: str, reason: str | None = None) -> None:
        self.path = path
        self.reason = reason or ""
        msg = f"Cannot read manifest '{path}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, detail={"path": path, "reason": self.reason})


class ExternalToolMissing(StackFrontError):
    """The external build tool (or query tool) cannot be located."""

    def __init__(self, tool_path: str) -> None:
        self.tool_path = tool_path
        super().__init__(
            f"Build tool '{tool_path}' not found or not executable",
            detail={"tool_path": tool_path},
        )


class ProcessSpawnError(StackFrontError):
    """The operating system refused to start a child process."""

    def __init__(self, command: str, reason: str) -> None:
        self.command = command
        self.reason = reason
        super().__init__(
            f"Failed to start '{command}': {reason}",
            detail={"command": command, "reason": reason},
        )


class RegistryQueryFailed(StackFrontError):
    """The installed-package query exited with a non-zero status."""

    def __init__(self, command: str, exit_code: int, stderr: str = "") -> None:
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(
            f"Package query '{command}' exited with status {exit_code}",
            detail={"command": command, "exit_code": exit_code, "stderr": stderr},
        )


class InvalidSelection(StackFrontError):
    """A chooser returned something outside the offered candidates."""

    def __init__(self, choice: str, candidates: list[str]) -> None:
        self.choice = choice
        self.candidates = candidates
        super().__init__(
            f"'{choice}' is not one of: {', '.join(candidates)}",
            detail={"choice": choice, "candidates": candidates},
        )


class UnknownOption(StackFrontError):
    """An option flag is not valid for the requested operation."""

    def __init__(self, operation: str, option: str) -> None:
        self.operation = operation
        self.option = option
        super().__init__(
            f"Option '{option}' is not valid for '{operation}'",
            detail={"operation": operation, "option": option},
        )


class NoPackageSelected(StackFrontError):
    """A package-scoped operation was requested before ``prepare``."""

    def __init__(self) -> None:
        super().__init__("No package selected; prepare a project first")


class UnknownOperation(StackFrontError):
    """The requested operation is not in the catalogue."""

    def __init__(self, operation: str, known: list[str]) -> None:
        self.operation = operation
        self.known = known
        super().__init__(
            f"Unknown operation '{operation}'. Known: {', '.join(known)}",
            detail={"operation": operation, "known": known},
        )


class UnknownPackage(StackFrontError):
    """No package of that name is loaded in the current project."""

    def __init__(self, name: str, known: list[str]) -> None:
        self.name = name
        self.known = known
        super().__init__(
            f"Unknown package '{name}'. Known: {', '.join(known)}",
            detail={"name": name, "known": known},
        )
