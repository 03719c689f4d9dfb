"""
sitedeploy - Site Builder

Runs the project's build command (``pnpm run build`` by default) and
surfaces its output on the console.

Usage:
    builder = SiteBuilder()
    result = builder.build()
"""

import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from config.logging import get_logger
from config.settings import DEFAULT_BUILD_COMMAND
from publishing.exceptions import BuildError


logger = get_logger(__name__)

BUILD_PHASE = {"phase": "build"}


@dataclass
class BuildResult:
    """Result of a successful build."""

    command: str
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""

    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> float:
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return 0.0


class SiteBuilder:
    """
    Invokes the external build tool as a subprocess.

    The command runs through the shell so package-manager scripts and
    compound commands work as typed. There is no timeout and no retry.
    """

    def __init__(
        self,
        command: str = DEFAULT_BUILD_COMMAND,
        cwd: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize the builder.

        Args:
            command: Shell command that produces the build directory
            cwd: Directory to run the command in (current directory if None)
        """
        self.command = command
        self.cwd = Path(cwd) if cwd else None

    def build(self) -> BuildResult:
        """
        Run the build command and wait for it to finish.

        Returns:
            BuildResult with captured output

        Raises:
            BuildError: if the command cannot be started or exits non-zero
        """
        result = BuildResult(command=self.command)

        logger.info(f"Building site: {self.command}", extra=BUILD_PHASE)

        try:
            completed = subprocess.run(
                self.command,
                shell=True,
                cwd=str(self.cwd) if self.cwd else None,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            logger.error(f"Build failed: {e}", extra=BUILD_PHASE)
            raise BuildError(f"Could not run build command '{self.command}': {e}") from e

        result.returncode = completed.returncode
        result.stdout = completed.stdout or ""
        result.stderr = completed.stderr or ""
        result.completed_at = datetime.now()

        self._echo_output(result)

        if completed.returncode != 0:
            message = (
                f"Build command '{self.command}' exited with status {completed.returncode}"
            )
            logger.error(f"Build failed: {message}", extra=BUILD_PHASE)
            raise BuildError(
                message,
                returncode=completed.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            )

        logger.info(
            f"Build completed successfully. ({result.duration_seconds:.1f}s)",
            extra=BUILD_PHASE,
        )
        return result

    def _echo_output(self, result: BuildResult) -> None:
        """Write the captured build output to the console log."""
        if result.stdout.strip():
            logger.info(result.stdout.rstrip(), extra=BUILD_PHASE)
        if result.stderr.strip():
            logger.warning(result.stderr.rstrip(), extra=BUILD_PHASE)


__all__ = [
    "BuildResult",
    "SiteBuilder",
]
