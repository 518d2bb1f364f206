"""Haskell project discovery and build-command engine.

Public API
----------
Session::

    Session: owns the project cache, registry and runner

Manifests::

    PackageRecord, ManifestScan,
    parse_manifest, scan_manifest, classify_line, assemble_targets,

Project discovery::

    ProjectCache, ProjectState,
    locate_root, find_manifests,

Installed packages::

    PackageRegistry, latest_version, version_key, parse_package_listing,

Targets & commands::

    resolve_target, candidate_targets, targets_of_kind,
    Command, build_command, log_channel_key, option_args, OPERATIONS,

Processes & output::

    ProcessRunner, ProcessOutcome, OutputChannel,
    OutputScanner, ArtifactScan, scan_output,

Capabilities::

    Prompter, Opener, ConsolePrompter, BrowserOpener,

Errors::

    StackFrontError, NoProjectFound, NoManifestFound, ManifestNotFound,
    ExternalToolMissing, ProcessSpawnError, RegistryQueryFailed,
    InvalidSelection, UnknownOperation, UnknownOption, UnknownPackage,
    NoPackageSelected,
"""

from stack_front.commands import (
    OPERATIONS,
    Command,
    build_command,
    log_channel_key,
    option_args,
)
from stack_front.config import Settings, get_settings
from stack_front.errors import (
    ExternalToolMissing,
    InvalidSelection,
    ManifestNotFound,
    NoManifestFound,
    NoPackageSelected,
    NoProjectFound,
    ProcessSpawnError,
    RegistryQueryFailed,
    StackFrontError,
    UnknownOperation,
    UnknownOption,
    UnknownPackage,
)
from stack_front.locator import find_manifests, locate_root
from stack_front.manifest import (
    ManifestScan,
    PackageRecord,
    assemble_targets,
    classify_line,
    parse_manifest,
    scan_manifest,
)
from stack_front.project import ProjectCache, ProjectState
from stack_front.prompter import BrowserOpener, ConsolePrompter, Opener, Prompter
from stack_front.registry import (
    PackageRegistry,
    latest_version,
    parse_package_listing,
    version_key,
)
from stack_front.runner import OutputChannel, ProcessOutcome, ProcessRunner
from stack_front.scanner import ArtifactScan, OutputScanner, scan_output
from stack_front.session import Session
from stack_front.targets import candidate_targets, resolve_target, targets_of_kind

__all__ = [
    # Session
    "Session",
    "Settings",
    "get_settings",
    # Manifests
    "PackageRecord",
    "ManifestScan",
    "parse_manifest",
    "scan_manifest",
    "classify_line",
    "assemble_targets",
    # Project discovery
    "ProjectCache",
    "ProjectState",
    "locate_root",
    "find_manifests",
    # Installed packages
    "PackageRegistry",
    "latest_version",
    "version_key",
    "parse_package_listing",
    # Targets & commands
    "resolve_target",
    "candidate_targets",
    "targets_of_kind",
    "Command",
    "build_command",
    "log_channel_key",
    "option_args",
    "OPERATIONS",
    # Processes & output
    "ProcessRunner",
    "ProcessOutcome",
    "OutputChannel",
    "OutputScanner",
    "ArtifactScan",
    "scan_output",
    # Capabilities
    "Prompter",
    "Opener",
    "ConsolePrompter",
    "BrowserOpener",
    # Errors
    "StackFrontError",
    "NoProjectFound",
    "NoManifestFound",
    "ManifestNotFound",
    "ExternalToolMissing",
    "ProcessSpawnError",
    "RegistryQueryFailed",
    "InvalidSelection",
    "UnknownOperation",
    "UnknownOption",
    "UnknownPackage",
    "NoPackageSelected",
]
