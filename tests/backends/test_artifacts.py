"""
Tests for artifact discovery and the canonical output directory.
"""

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from cxxkit.backends.artifacts import (
    ArtifactNormalizer,
    canonical_output_dir,
    find_executables,
    find_libraries,
    is_executable,
    is_library,
    runnable,
)
from cxxkit.backends.optimization import resolve_profile
from cxxkit.core.filesystem import IS_WINDOWS
from tests.fixtures.projects import make_executable

pytestmark = pytest.mark.skipif(IS_WINDOWS, reason="POSIX executable bits")


@pytest.fixture
def build_tree(tmp_path) -> Path:
    """A build directory with final outputs mixed with byproducts."""
    tree = tmp_path / "build"
    make_executable(tree / "demo")
    make_executable(tree / "demo_test")
    make_executable(tree / "demo_bench")
    make_executable(tree / "configure.sh")
    (tree / "libdemo.a").write_text("lib")
    (tree / "libdemo.so.1").write_text("lib")
    (tree / "main.o").write_text("obj")
    (tree / "README").write_text("not executable")
    make_executable(tree / "CMakeFiles" / "compiler_id")
    make_executable(tree / "demo.p" / "inner")
    make_executable(tree / "tools" / "helper")
    make_executable(tree / "tools" / "deep" / "deeper")
    return tree


class TestClassification:
    def test_canonical_output_dir(self, tmp_path):
        profile = resolve_profile(opt_level="2", sanitizer="asan")
        assert canonical_output_dir(tmp_path, profile) == tmp_path / ".bin" / "native" / "O2-asan"

    def test_libraries(self):
        assert is_library(Path("libfoo.a"))
        assert is_library(Path("libfoo.so.1.2"))
        assert is_library(Path("foo.dll"))
        assert not is_library(Path("foo"))

    def test_executables(self, build_tree):
        assert is_executable(build_tree / "demo")
        assert not is_executable(build_tree / "configure.sh")
        assert not is_executable(build_tree / "README")
        assert not is_executable(build_tree / "missing")

    def test_runnable_drops_tests_and_benchmarks(self, build_tree):
        paths = [build_tree / "demo", build_tree / "demo_test", build_tree / "demo_bench"]
        assert runnable(paths) == [build_tree / "demo"]


class TestDiscovery:
    def test_root_only_by_default(self, build_tree):
        names = [p.name for p in find_executables(build_tree)]
        assert names == ["demo", "demo_bench", "demo_test"]

    def test_depth_and_skipped_dirs(self, build_tree):
        names = {p.name for p in find_executables(build_tree, max_depth=2)}
        assert "helper" in names
        assert "deeper" not in names
        assert "compiler_id" not in names
        assert "inner" not in names

    def test_libraries(self, build_tree):
        assert [p.name for p in find_libraries(build_tree)] == ["libdemo.a", "libdemo.so.1"]

    def test_missing_root(self, tmp_path):
        assert find_executables(tmp_path / "missing") == []


class TestArtifactNormalizer:
    def test_reset_replaces_previous_contents(self, tmp_path):
        output = tmp_path / ".bin" / "native" / "debug"
        output.mkdir(parents=True)
        (output / "stale").write_text("old")

        normalizer = ArtifactNormalizer(output)
        normalizer.reset()

        assert output.is_dir()
        assert list(output.iterdir()) == []

    def test_collect_copies_outputs(self, tmp_path, build_tree, fake_runner):
        output = tmp_path / "out"
        normalizer = ArtifactNormalizer(output, fake_runner)
        normalizer.reset()

        copied = normalizer.collect(build_tree)

        assert {p.name for p in copied} == {
            "demo",
            "demo_test",
            "demo_bench",
            "libdemo.a",
            "libdemo.so.1",
        }
        assert is_executable(output / "demo")

    def test_duplicate_names_copied_once(self, tmp_path, fake_runner):
        first = make_executable(tmp_path / "a" / "tool", "#!/bin/sh\necho a\n")
        second = make_executable(tmp_path / "b" / "tool", "#!/bin/sh\necho b\n")
        normalizer = ArtifactNormalizer(tmp_path / "out", fake_runner)
        normalizer.reset()

        normalizer.copy([first, second])

        assert (tmp_path / "out" / "tool").read_text().endswith("echo a\n")

    def test_copy_failure_is_warning(self, tmp_path, build_tree, fake_runner, caplog):
        normalizer = ArtifactNormalizer(tmp_path / "out", fake_runner)
        normalizer.reset()

        with patch("cxxkit.backends.artifacts.shutil.copy2", side_effect=OSError("busy")):
            with caplog.at_level(logging.WARNING):
                copied = normalizer.copy([build_tree / "demo"])

        assert copied == []
        assert "busy" in caplog.text

    def test_macos_binaries_resigned(self, tmp_path, build_tree, fake_runner):
        normalizer = ArtifactNormalizer(tmp_path / "out", fake_runner)
        normalizer.reset()

        with patch("cxxkit.backends.artifacts.sys.platform", "darwin"):
            normalizer.copy([build_tree / "demo", build_tree / "libdemo.a"])

        signed = fake_runner.commands("codesign")
        assert signed == [["codesign", "-s", "-", "--force", str(tmp_path / "out" / "demo")]]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
