"""
External process execution for cxxkit.

All build tools are driven through a ProcessRunner so backends never call
subprocess directly and can be exercised in tests with a fake runner.

Modes:
    stream: child output is echoed to the console line by line and captured
    capture: output is captured quietly (queries, introspection)
    interactive: standard streams are inherited (running user programs)

Example:
    runner = ProcessRunner()
    result = runner.run(["cmake", "--version"], cwd=project_root, mode=CAPTURE)
    if result.ok:
        print(result.output)
"""

import logging
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

from cxxkit.core.exceptions import ToolNotFoundError

logger = logging.getLogger(__name__)

STREAM = "stream"
CAPTURE = "capture"
INTERACTIVE = "interactive"

# Grace period for a child to exit after SIGTERM before it is killed.
TERMINATE_TIMEOUT = 5.0

INSTALL_HINTS: Dict[str, str] = {
    "cmake": "install CMake: https://cmake.org/download/",
    "ctest": "install CMake: https://cmake.org/download/",
    "ninja": "install Ninja: https://ninja-build.org/",
    "bazel": "install Bazelisk: https://bazel.build/install/bazelisk",
    "meson": "install Meson: pip install meson",
    "vcpkg": "install vcpkg: https://vcpkg.io/en/getting-started.html",
}


@dataclass
class ProcessResult:
    """
    Outcome of one external command.

    Attributes:
        args: Command line that was executed
        returncode: Exit status of the child
        output: Captured stdout (stdout and stderr combined in stream mode)
        stderr: Captured stderr in capture mode, empty otherwise
    """

    args: List[str]
    returncode: int
    output: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ProcessRunner:
    """Runs external commands with an explicit working directory and environment."""

    def run(
        self,
        args: List[str],
        cwd: Optional[Union[str, Path]] = None,
        env: Optional[Dict[str, str]] = None,
        mode: str = STREAM,
    ) -> ProcessResult:
        """
        Run a command to completion.

        Args:
            args: Command and arguments
            cwd: Working directory for the child (the caller's cwd is never changed)
            env: Complete environment for the child, or None to inherit
            mode: One of STREAM, CAPTURE or INTERACTIVE

        Returns:
            ProcessResult with the exit status and any captured output

        Raises:
            ToolNotFoundError: If the executable does not exist
            ValueError: If mode is unknown
        """
        args = [str(a) for a in args]
        logger.debug(f"Running ({mode}): {' '.join(args)}")

        try:
            if mode == STREAM:
                return self._run_streaming(args, cwd, env)
            if mode == CAPTURE:
                completed = subprocess.run(
                    args,
                    cwd=cwd,
                    env=env,
                    capture_output=True,
                    text=True,
                    errors="replace",
                )
                return ProcessResult(
                    args, completed.returncode, completed.stdout, completed.stderr
                )
            if mode == INTERACTIVE:
                completed = subprocess.run(args, cwd=cwd, env=env)
                return ProcessResult(args, completed.returncode)
        except FileNotFoundError:
            tool = Path(args[0]).name
            logger.error(f"{tool} not found in PATH")
            raise ToolNotFoundError(tool, INSTALL_HINTS.get(tool, ""))

        raise ValueError(f"Unknown process mode: {mode}")

    def _run_streaming(
        self, args: List[str], cwd, env: Optional[Dict[str, str]]
    ) -> ProcessResult:
        """Echo child output to the console while keeping a copy."""
        proc = subprocess.Popen(
            args,
            cwd=cwd,
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            bufsize=1,
        )
        lines: List[str] = []
        try:
            for line in proc.stdout:
                sys.stdout.write(line)
                sys.stdout.flush()
                lines.append(line)
            returncode = proc.wait()
        except KeyboardInterrupt:
            _terminate(proc)
            raise
        finally:
            proc.stdout.close()

        return ProcessResult(args, returncode, "".join(lines))


def _terminate(proc: subprocess.Popen) -> None:
    """Stop a child process, escalating to kill if it ignores SIGTERM."""
    logger.debug(f"Terminating child process {proc.pid}")
    proc.terminate()
    try:
        proc.wait(timeout=TERMINATE_TIMEOUT)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()


__all__ = [
    "STREAM",
    "CAPTURE",
    "INTERACTIVE",
    "ProcessResult",
    "ProcessRunner",
]
