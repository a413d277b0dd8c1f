from __future__ import annotations

import logging
import shlex
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence


@dataclass(slots=True)
class CommandResult:
    """Represents the outcome of an external command execution."""

    command: Sequence[str]
    return_code: Optional[int]
    stdout: str
    stderr: str
    duration: float
    tool_available: bool
    exception: Optional[BaseException] = None

    def succeeded(self) -> bool:
        """Return True when the command finished successfully."""
        return self.return_code == 0 and self.tool_available


class CommandRunner:
    """Thin wrapper over subprocess that captures execution metadata.

    Commands are always executed as argument lists, never through a shell.
    When ``stream_output`` is set the child inherits stdout/stderr so build
    logs show up live in the CI console; nothing is captured in that case.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        stream_output: bool = False,
        display: Optional[str] = None,
    ) -> CommandResult:
        """
        Execute a command and record its exit status, output and duration.

        Args:
            command: Argument list; never interpreted by a shell.
            cwd: Working directory.
            env: Full replacement environment for the child.
            stream_output: Inherit stdout/stderr instead of capturing them.
            display: Rendering logged in place of the raw arguments.
        """
        start = time.time()
        try:
            self.logger.debug("Executing command: %s (cwd=%s)", display or shlex.join(command), cwd)
            completed = subprocess.run(
                list(command),
                capture_output=not stream_output,
                text=True,
                cwd=str(cwd) if cwd else None,
                env=dict(env) if env else None,
            )
            return CommandResult(
                command=command,
                return_code=completed.returncode,
                stdout=completed.stdout or "",
                stderr=completed.stderr or "",
                duration=time.time() - start,
                tool_available=True,
            )
        except FileNotFoundError as exc:
            self.logger.error("Command not found: %s", command[0])
            return CommandResult(
                command=command,
                return_code=None,
                stdout="",
                stderr=f"Command not found: {command[0]}",
                duration=time.time() - start,
                tool_available=False,
                exception=exc,
            )
