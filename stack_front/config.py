"""Engine configuration loaded from environment variables.

Uses ``pydantic-settings`` for env-var loading, type coercion and
``.env`` file support.  Every variable is prefixed ``STACK_FRONT_``
(e.g. ``STACK_FRONT_TOOL_PATH=/opt/bin/stack``).
"""

VERSION = "0.1.0"

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings, sourced from environment / ``.env`` file."""

    model_config = SettingsConfigDict(
        env_prefix="STACK_FRONT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -- external tools --
    TOOL_PATH: str = "stack"
    PKG_QUERY: str = "ghc-pkg list --simple-output"

    # -- behaviour toggles --
    AUTO_TARGET: bool = False  # pick the bare package name, never prompt
    EDIT_BEFORE_RUN: bool = False
    EXTRA_QUOTING: bool = False  # single-quote every token, even safe ones
    AUTO_OPEN_COVERAGE: bool = True
    AUTO_OPEN_HADDOCK: bool = True

    LOG_LEVEL: str = "INFO"

    # -- project layout --
    PROJECT_MARKERS: tuple[str, ...] = Field(
        default=("stack.yaml", "cabal.project", "cabal.project.local"),
        description="Any one of these files marks a project root",
    )
    COMPOUND_MARKER: str = "cabal.project"
    MANIFEST_SUFFIX: str = ".cabal"

    @field_validator("PROJECT_MARKERS")
    @classmethod
    def _non_empty_markers(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            raise ValueError("PROJECT_MARKERS must name at least one file")
        return v

    @field_validator("MANIFEST_SUFFIX")
    @classmethod
    def _dotted_suffix(cls, v: str) -> str:
        return v if v.startswith(".") else f".{v}"


def get_settings(**overrides) -> Settings:
    """Build a fresh ``Settings`` instance, applying keyword overrides."""
    return Settings(**overrides)
