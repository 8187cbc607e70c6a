"""
Tests for the external process runner.

These run the current Python interpreter as the child process, so no
build tools are needed.
"""

import os
import sys

import pytest

from cxxkit.core.exceptions import ToolNotFoundError
from cxxkit.core.process import (
    CAPTURE,
    INTERACTIVE,
    STREAM,
    ProcessResult,
    ProcessRunner,
)


def python(code: str):
    return [sys.executable, "-c", code]


class TestProcessResult:
    def test_ok(self):
        assert ProcessResult(["true"], 0).ok
        assert not ProcessResult(["false"], 1).ok


class TestCaptureMode:
    """Quiet capture for queries."""

    def test_captures_stdout_and_stderr_separately(self):
        result = ProcessRunner().run(
            python("import sys; print('out'); print('err', file=sys.stderr)"),
            mode=CAPTURE,
        )
        assert result.ok
        assert result.output.strip() == "out"
        assert result.stderr.strip() == "err"

    def test_nonzero_exit(self):
        result = ProcessRunner().run(python("raise SystemExit(4)"), mode=CAPTURE)
        assert result.returncode == 4
        assert not result.ok

    def test_runs_in_given_directory(self, tmp_path):
        before = os.getcwd()
        result = ProcessRunner().run(
            python("import os; print(os.getcwd())"), cwd=tmp_path, mode=CAPTURE
        )
        assert os.path.samefile(result.output.strip(), tmp_path)
        assert os.getcwd() == before

    def test_uses_given_environment(self):
        env = dict(os.environ, CXXKIT_TEST_VALUE="42")
        result = ProcessRunner().run(
            python("import os; print(os.environ['CXXKIT_TEST_VALUE'])"),
            env=env,
            mode=CAPTURE,
        )
        assert result.output.strip() == "42"
        assert "CXXKIT_TEST_VALUE" not in os.environ


class TestStreamMode:
    """Output is echoed live and kept for error reports."""

    def test_echoes_and_captures_combined_output(self, capsys):
        result = ProcessRunner().run(
            python("import sys; print('compiling'); print('warning', file=sys.stderr)"),
            mode=STREAM,
        )
        captured = capsys.readouterr()
        assert "compiling" in captured.out
        assert "compiling" in result.output
        assert "warning" in result.output
        assert result.ok

    def test_failure_output_preserved(self, capsys):
        result = ProcessRunner().run(
            python("print('error: missing ;'); raise SystemExit(2)"), mode=STREAM
        )
        assert result.returncode == 2
        assert "error: missing ;" in result.output


class TestInteractiveMode:
    def test_exit_code_propagates(self):
        result = ProcessRunner().run(python("raise SystemExit(7)"), mode=INTERACTIVE)
        assert result.returncode == 7
        assert result.output == ""


class TestErrors:
    def test_missing_tool(self):
        with pytest.raises(ToolNotFoundError) as exc_info:
            ProcessRunner().run(["cxxkit-no-such-tool-xyz", "--version"], mode=CAPTURE)
        assert exc_info.value.tool == "cxxkit-no-such-tool-xyz"

    def test_missing_known_tool_has_install_hint(self, tmp_path):
        missing = tmp_path / "bin" / "cmake"
        with pytest.raises(ToolNotFoundError, match="cmake not found") as exc_info:
            ProcessRunner().run([str(missing), "--version"], mode=CAPTURE)
        assert "cmake.org" in exc_info.value.hint

    def test_unknown_mode(self):
        with pytest.raises(ValueError, match="Unknown process mode"):
            ProcessRunner().run(python("pass"), mode="detached")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
