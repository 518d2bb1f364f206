"""Tests for stack_front.commands: quoting, channels and the option catalogue."""

from __future__ import annotations

import shlex
from pathlib import Path

import pytest

from stack_front.commands import (
    CHANNEL_SUFFIX,
    OPERATIONS,
    Command,
    build_command,
    is_engine_channel,
    log_channel_key,
    operation_spec,
    option_args,
    quote_token,
)
from stack_front.errors import UnknownOperation, UnknownOption


# ═══════════════════════════════════════════════════════════════════════════
# build_command
# ═══════════════════════════════════════════════════════════════════════════


class TestBuildCommand:
    def test_none_dropped_and_order_kept(self):
        cmd = build_command("stack", "build", ["my-app:lib", None, "--fast"])
        assert cmd.argv == ["stack", "build", "my-app:lib", "--fast"]
        assert cmd.positional_args == ("my-app:lib", "--fast")
        assert cmd.text == "stack build my-app:lib --fast"
        assert shlex.split(cmd.text) == cmd.argv

    def test_each_token_quoted_independently(self):
        cmd = build_command(
            "/opt/my tools/stack", "exec", ["--", "echo", "a b; rm -rf /", "it's"],
        )
        assert shlex.split(cmd.text) == [
            "/opt/my tools/stack", "exec", "--", "echo", "a b; rm -rf /", "it's",
        ]
        assert "'a b; rm -rf /'" in cmd.text

    def test_extra_quoting_forces_quotes(self):
        cmd = build_command("stack", "build", ["app:lib"], extra_quoting=True)
        assert cmd.text == "'stack' 'build' 'app:lib'"
        assert shlex.split(cmd.text) == ["stack", "build", "app:lib"]

    def test_extra_quoting_with_single_quote(self):
        assert shlex.split(quote_token("it's", force=True)) == ["it's"]

    def test_metadata(self, tmp_path: Path):
        cmd = build_command(
            "stack", "test", [], working_directory=tmp_path, package_name="My App",
        )
        assert cmd.working_directory == tmp_path
        assert cmd.log_channel_key == "my-app" + CHANNEL_SUFFIX
        assert cmd.edited is False

    def test_edit_hook_replaces_text(self):
        seen = []

        def edit(text: str) -> str:
            seen.append(text)
            return text + " --pedantic"

        cmd = build_command("stack", "build", ["app"], edit=edit)
        assert seen == ["stack build app"]
        assert cmd.text == "stack build app --pedantic"
        assert cmd.edited is True
        # structured fields are not re-derived from the edited text
        assert cmd.argv == ["stack", "build", "app"]

    def test_edit_hook_returning_same_text(self):
        cmd = build_command("stack", "build", ["app"], edit=lambda t: t)
        assert cmd.edited is False

    def test_command_frozen(self):
        cmd = build_command("stack", "build")
        with pytest.raises(Exception):
            cmd.text = "x"  # type: ignore[misc]
        assert isinstance(cmd, Command)


# ═══════════════════════════════════════════════════════════════════════════
# Channels
# ═══════════════════════════════════════════════════════════════════════════


class TestLogChannelKey:
    def test_lowercase_and_hyphens(self):
        assert log_channel_key("My  Cool\tApp") == "my-cool-app" + CHANNEL_SUFFIX

    def test_same_package_same_channel(self):
        assert log_channel_key("App") == log_channel_key("app")

    def test_different_packages_differ(self):
        assert log_channel_key("alpha") != log_channel_key("beta")

    def test_fallback(self):
        assert log_channel_key(None) == log_channel_key("")
        assert log_channel_key(None).startswith("project")

    def test_is_engine_channel(self):
        assert is_engine_channel(log_channel_key("x"))
        assert not is_engine_channel("*compilation*")


# ═══════════════════════════════════════════════════════════════════════════
# Operation catalogue
# ═══════════════════════════════════════════════════════════════════════════


class TestOptionArgs:
    def test_valid_flags(self):
        assert option_args("build", ["--fast", "--coverage"]) == ["--fast", "--coverage"]

    def test_valued_flag(self):
        assert option_args("build", ["--ghc-options=-O2 -Wall"]) == ["--ghc-options=-O2 -Wall"]

    def test_invalid_flag(self):
        with pytest.raises(UnknownOption) as exc:
            option_args("clean", ["--fast"])
        assert exc.value.operation == "clean"

    def test_value_on_plain_flag_rejected(self):
        with pytest.raises(UnknownOption):
            option_args("build", ["--fast=yes"])

    def test_unknown_operation(self):
        with pytest.raises(UnknownOperation) as exc:
            operation_spec("deploy")
        assert "build" in exc.value.known

    def test_scopes(self):
        assert OPERATIONS["build"].scope == "package"
        assert OPERATIONS["setup"].scope == "project"
        assert OPERATIONS["new"].scope == "global"
