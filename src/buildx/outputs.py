"""GitHub Actions step outputs and workflow command annotations."""
from __future__ import annotations

import sys
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Mapping, Optional, TextIO

DEFAULT_DELIMITER = "EOF"
BLOCK_OUTPUTS = ("metadata",)


def _delimiter_for(value: str) -> str:
    if DEFAULT_DELIMITER not in value.splitlines():
        return DEFAULT_DELIMITER
    return f"ghadelimiter_{uuid.uuid4().hex}"


def format_output(key: str, value: str, block: bool = False) -> str:
    """Format one output entry; multi-line values and block outputs use the heredoc form."""
    if not block and "\n" not in value and "\r" not in value:
        return f"{key}={value}\n"
    delimiter = _delimiter_for(value)
    return f"{key}<<{delimiter}\n{value}\n{delimiter}\n"


class GitHubOutputWriter:
    """Append step outputs to the ``GITHUB_OUTPUT`` file, or print them locally."""

    def __init__(
        self,
        path: Optional[Path] = None,
        stream: Optional[TextIO] = None,
        block_keys: Iterable[str] = BLOCK_OUTPUTS,
    ) -> None:
        self.path = Path(path) if path else None
        self.stream = stream
        self.block_keys = frozenset(block_keys)

    def write(self, outputs: Mapping[str, str]) -> None:
        payload = "".join(format_output(key, value, block=key in self.block_keys) for key, value in outputs.items())
        if not payload:
            return
        if self.path is None:
            (self.stream or sys.stdout).write(payload)
            return
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(payload)


class WorkflowCommands:
    """Emit ``::command::`` lines understood by the Actions runner."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream or sys.stdout

    def _emit(self, line: str) -> None:
        self.stream.write(line + "\n")
        self.stream.flush()

    def error(self, message: str) -> None:
        self._emit(f"::error::{_escape(message)}")

    def warning(self, message: str) -> None:
        self._emit(f"::warning::{_escape(message)}")

    @contextmanager
    def group(self, title: str) -> Iterator[None]:
        self._emit(f"::group::{title}")
        try:
            yield
        finally:
            self._emit("::endgroup::")


def _escape(message: str) -> str:
    # workflow command data escaping
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
