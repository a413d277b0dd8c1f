"""Shared fakes for the build runner and docker daemon."""

from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, List, Optional, Sequence

import pytest
from docker.errors import ImageNotFound

from src.common.command_runner import CommandResult


class FakeCommandRunner:
    """Records commands and simulates buildx writing its metadata file."""

    def __init__(self, return_code: int = 0, metadata: Optional[dict] = None, tool_available: bool = True) -> None:
        self.return_code = return_code
        self.metadata = metadata
        self.tool_available = tool_available
        self.commands: List[List[str]] = []

    def run(self, command: Sequence[str], **kwargs) -> CommandResult:
        args = list(command)
        self.commands.append(args)
        if self.metadata is not None and "--metadata-file" in args:
            path = Path(args[args.index("--metadata-file") + 1])
            path.write_text(json.dumps(self.metadata), encoding="utf-8")
        return CommandResult(
            command=args,
            return_code=self.return_code if self.tool_available else None,
            stdout="",
            stderr="" if self.tool_available else f"Command not found: {args[0]}",
            duration=0.1,
            tool_available=self.tool_available,
        )


class FakeImages:
    def __init__(self, images: Dict[str, str]) -> None:
        self.images = images
        self.lookups: List[str] = []

    def get(self, name: str):
        self.lookups.append(name)
        if name not in self.images:
            raise ImageNotFound(f"No such image: {name}")
        return SimpleNamespace(id=self.images[name])


class FakeDockerClient:
    def __init__(self, images: Optional[Dict[str, str]] = None) -> None:
        self.images = FakeImages(images or {})


@pytest.fixture
def metadata_file(tmp_path: Path) -> Path:
    return tmp_path / "build-metadata.json"


@pytest.fixture
def make_runner():
    return FakeCommandRunner


@pytest.fixture
def make_docker_client():
    return FakeDockerClient
