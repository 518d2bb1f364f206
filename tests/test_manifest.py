"""Tests for stack_front.manifest: line classifier and manifest parsing."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from stack_front.errors import ManifestNotFound
from stack_front.manifest import (
    ManifestScan,
    PackageRecord,
    assemble_targets,
    classify_line,
    empty_record,
    parse_manifest,
    scan_manifest,
    target_kind,
)
from tests.conftest import APP_CABAL, BASE_MTIME


# ═══════════════════════════════════════════════════════════════════════════
# classify_line
# ═══════════════════════════════════════════════════════════════════════════


class TestClassifyLine:
    def test_name(self):
        assert classify_line("name: my-app") == ("name", "my-app")

    def test_name_case_insensitive_and_indented(self):
        assert classify_line("   Name:   Foo") == ("name", "Foo")

    def test_version(self):
        assert classify_line("version:            0.1.0.0") == ("version", "0.1.0.0")

    def test_cabal_version_is_not_version(self):
        assert classify_line("cabal-version: 2.4") is None

    def test_homepage_and_location(self):
        assert classify_line("homepage: https://x.org") == ("homepage", "https://x.org")
        assert classify_line("  location: git://x") == ("location", "git://x")

    def test_library_presence(self):
        assert classify_line("library") == ("library", "")
        assert classify_line("  LIBRARY  ") == ("library", "")

    def test_library_dirs_field_is_not_a_stanza(self):
        assert classify_line("  library-dirs: /usr/lib") is None

    def test_stanzas(self):
        assert classify_line("executable my-app") == ("executables", "my-app")
        assert classify_line("Test-Suite spec") == ("test_suites", "spec")
        assert classify_line("\tbenchmark bench-all") == ("benchmarks", "bench-all")

    def test_unrelated_lines(self):
        assert classify_line("  build-depends: base") is None
        assert classify_line("") is None
        assert classify_line("-- executable commented") is None


# ═══════════════════════════════════════════════════════════════════════════
# scan_manifest / assemble_targets
# ═══════════════════════════════════════════════════════════════════════════


class TestScanManifest:
    def test_full_scan(self):
        scan = scan_manifest(APP_CABAL)
        assert scan.name == "my-app"
        assert scan.version == "0.1.0.0"
        assert scan.homepage == "https://example.com/my-app"
        assert scan.location == "https://github.com/example/my-app"
        assert scan.has_library is True
        assert scan.executables == ["my-app"]
        assert scan.test_suites == ["my-app-test"]
        assert scan.benchmarks == []

    def test_first_name_wins(self):
        scan = scan_manifest("name: first\nname: second\n")
        assert scan.name == "first"

    def test_repeated_stanzas_in_file_order(self):
        scan = scan_manifest("executable b\nexecutable a\nexecutable c\n")
        assert scan.executables == ["b", "a", "c"]

    def test_missing_name_and_version(self):
        scan = scan_manifest("library\n")
        assert scan.name == ""
        assert scan.version == ""


class TestAssembleTargets:
    def test_fixed_kind_order_regardless_of_file_order(self):
        text = textwrap.dedent("""\
            name: pkg
            benchmark speed
            executable e1
            test-suite t1
            library
            executable e2
        """)
        assert assemble_targets(scan_manifest(text)) == (
            "pkg:lib",
            "pkg:exe:e1",
            "pkg:exe:e2",
            "pkg:test:t1",
            "pkg:bench:speed",
        )

    def test_library_and_two_executables(self):
        text = "executable e1\nname: app\nexecutable e2\nlibrary\n"
        assert assemble_targets(scan_manifest(text)) == (
            "app:lib", "app:exe:e1", "app:exe:e2",
        )

    def test_no_library(self):
        scan = ManifestScan(name="x", executables=["x"])
        assert assemble_targets(scan) == ("x:exe:x",)

    def test_empty_name_still_builds_targets(self):
        scan = ManifestScan(has_library=True)
        assert assemble_targets(scan) == (":lib",)


class TestTargetKind:
    @pytest.mark.parametrize(
        "target,kind",
        [("a:lib", "lib"), ("a:exe:b", "exe"), ("a:test:t", "test"),
         ("a:bench:b", "bench"), ("a", None), ("a:weird:b", None)],
    )
    def test_kinds(self, target, kind):
        assert target_kind(target) == kind


# ═══════════════════════════════════════════════════════════════════════════
# parse_manifest
# ═══════════════════════════════════════════════════════════════════════════


class TestParseManifest:
    def test_record_fields(self, tmp_path: Path, write_manifest):
        path = write_manifest(tmp_path / "my-app.cabal", APP_CABAL)
        rec = parse_manifest(path)
        assert rec.name == "my-app"
        assert rec.version == "0.1.0.0"
        assert rec.targets == ("my-app:lib", "my-app:exe:my-app", "my-app:test:my-app-test")
        assert rec.directory == tmp_path.resolve()
        assert rec.manifest_path == path.resolve()
        assert rec.manifest_mtime == BASE_MTIME
        assert rec.homepage == "https://example.com/my-app"

    def test_missing_file_raises(self, tmp_path: Path):
        with pytest.raises(ManifestNotFound) as exc:
            parse_manifest(tmp_path / "nope.cabal")
        assert "nope.cabal" in exc.value.path

    def test_nameless_manifest_is_not_an_error(self, tmp_path: Path, write_manifest):
        path = write_manifest(tmp_path / "x.cabal", "library\n")
        rec = parse_manifest(path)
        assert rec.name == ""
        assert rec.version == ""
        assert rec.targets == (":lib",)

    def test_record_is_frozen(self, tmp_path: Path, write_manifest):
        rec = parse_manifest(write_manifest(tmp_path / "a.cabal", "name: a\n"))
        with pytest.raises(Exception):
            rec.name = "b"  # type: ignore[misc]


class TestEmptyRecord:
    def test_missing_file(self, tmp_path: Path):
        rec = empty_record(tmp_path / "gone.cabal")
        assert isinstance(rec, PackageRecord)
        assert rec.name == "" and rec.version == ""
        assert rec.manifest_mtime == 0.0

    def test_existing_file_keeps_mtime(self, tmp_path: Path, write_manifest):
        path = write_manifest(tmp_path / "a.cabal", "name: a\n", mtime=42.0)
        assert empty_record(path).manifest_mtime == 42.0
