"""External site generator invocation for sitefactory.

This module runs Hugo against a materialized site directory.

Key classes:
- HugoRunner: Builds the Hugo command line and runs it with an explicit working
  directory, an enforced timeout, and interrupt forwarding.
- GeneratorOutcome: Exit status and captured output of a successful run.
"""

from __future__ import annotations

import logging
import os
import shutil
import signal
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .errors import ExternalToolError
from .models import BuildRequest

logger = logging.getLogger(__name__)

DEFAULT_GENERATOR = "hugo"


def locate_generator(executable: str, project_root: Path | None = None) -> str | None:
    """Find the generator binary.

    A name containing a path separator is taken as a path, relative to the
    project root when one is given. A bare name is looked up in PATH and then
    in the project's node_modules/.bin, where npm packages such as hugo-bin
    install it. For example, "hugo" may resolve to /usr/local/bin/hugo, and
    "bin/hugo" with project root /my/project to /my/project/bin/hugo when that
    file is executable.

    Returns:
        Path to the binary, or None when it cannot be found.
    """
    if os.sep in executable or (os.altsep and os.altsep in executable):
        path = Path(executable).expanduser()
        if not path.is_absolute() and project_root is not None:
            path = project_root / path
        if path.is_file() and os.access(path, os.X_OK):
            return str(path)
        return None

    found = shutil.which(executable)
    if found:
        return found
    if project_root is not None:
        local = shutil.which(executable, path=str(project_root / "node_modules" / ".bin"))
        if local:
            return local
    return None


@dataclass
class GeneratorOutcome:
    """Exit status and captured output of a generator run."""

    command: list[str]
    exit_code: int
    stdout: str = ""
    stderr: str = ""


class HugoRunner:
    """Runs the Hugo binary for one build.

    Attributes:
        executable: Name or path of the generator binary.
        project_root: Project root used to look up node_modules/.bin.
        grace_period: Seconds to wait for the generator to exit after an
            interrupt is forwarded before killing it.
    """

    def __init__(
        self,
        executable: str = DEFAULT_GENERATOR,
        project_root: Path | None = None,
        grace_period: float = 5.0,
    ):
        self.executable = executable
        self.project_root = project_root
        self.grace_period = grace_period

    def arguments(self, request: BuildRequest) -> list[str]:
        """Translate request flags into generator arguments."""
        args = ["--environment", request.environment.value]
        if request.minify:
            args.append("--minify")
        if request.draft:
            args.append("--buildDrafts")
        if request.future:
            args.append("--buildFuture")
        if request.base_url:
            args.extend(["--baseURL", request.base_url])
        return args

    def run(self, cwd: Path, request: BuildRequest) -> GeneratorOutcome:
        """Run Hugo rooted at cwd.

        Args:
            cwd: Materialized site directory.
            request: Build request (flags and timeout).

        Returns:
            GeneratorOutcome with exit code 0.

        Raises:
            ExternalToolError: If Hugo is missing, exits non-zero, exceeds the
                timeout, or the build is interrupted.
        """
        binary = locate_generator(self.executable, self.project_root)
        if not binary:
            raise ExternalToolError(
                [self.executable],
                f"Site generator '{self.executable}' not found. "
                "Install Hugo or add it to PATH.",
            )

        cmd = [binary, *self.arguments(request)]
        logger.info("Running %s in %s", " ".join(cmd), cwd)
        try:
            process = subprocess.Popen(
                cmd,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as exc:
            raise ExternalToolError(
                cmd, f"Failed to start {self.executable}: {exc}"
            ) from exc

        try:
            stdout, stderr = process.communicate(timeout=request.timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            stdout, stderr = process.communicate()
            raise ExternalToolError(
                cmd,
                f"{self.executable} timed out after {request.timeout} seconds",
                exit_code=process.returncode,
                stderr=stderr or "",
                timed_out=True,
            ) from None
        except KeyboardInterrupt:
            stderr = self._interrupt(process)
            raise ExternalToolError(
                cmd,
                "Build aborted while the site generator was running",
                exit_code=process.returncode,
                stderr=stderr,
                aborted=True,
            ) from None

        if process.returncode != 0:
            raise ExternalToolError(
                cmd,
                f"{self.executable} exited with status {process.returncode}",
                exit_code=process.returncode,
                stderr=(stderr or "").strip(),
            )
        return GeneratorOutcome(
            command=cmd, exit_code=process.returncode, stdout=stdout or "", stderr=stderr or ""
        )

    def _interrupt(self, process: subprocess.Popen) -> str:
        """Forward an interrupt to the generator and reap it.

        A second interrupt during the grace period kills the generator at once.
        """
        stderr = ""
        try:
            if process.poll() is None:
                process.send_signal(signal.SIGINT)
            try:
                _stdout, stderr = process.communicate(timeout=self.grace_period)
            except (subprocess.TimeoutExpired, KeyboardInterrupt):
                process.kill()
                _stdout, stderr = process.communicate()
        finally:
            if process.poll() is None:
                process.kill()
                process.wait()
        return stderr or ""
