"""Run buildx and extract the outputs later pipeline steps consume."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import docker
from docker.errors import DockerException

from src.common.command_runner import CommandResult, CommandRunner
from src.common.models import BuildRequest, ImageReference

from .command import BuildCommand, build_command
from .errors import BuildToolError
from .issues import BuildIssue

DIGEST_KEY = "containerimage.digest"
SHORT_ID_LENGTH = 12
TOOL_NOT_FOUND_EXIT_CODE = 127

_DIGEST_PATTERN = re.compile(r'"' + re.escape(DIGEST_KEY) + r'"\s*:\s*"([^"]*)"')


@dataclass(slots=True)
class BuildResult:
    """Outputs of a successful build; optional fields are set only when available."""

    image_name: str
    app_name: Optional[str] = None
    tag: Optional[str] = None
    image_id: Optional[str] = None
    digest: Optional[str] = None
    metadata: Optional[str] = None
    command: Optional[BuildCommand] = None
    command_result: Optional[CommandResult] = None
    issues: List[BuildIssue] = field(default_factory=list)

    def to_outputs(self) -> Dict[str, str]:
        """Return step outputs keyed by their action output names."""
        candidates = [
            ("image-name", self.image_name),
            ("app-name", self.app_name),
            ("tag", self.tag),
            ("image-id", self.image_id),
            ("digest", self.digest),
            ("metadata", self.metadata),
        ]
        return {key: value for key, value in candidates if value}


def parse_digest(metadata_text: str) -> Optional[str]:
    """Extract the image digest from buildx metadata JSON."""
    try:
        payload = json.loads(metadata_text)
    except json.JSONDecodeError:
        payload = None
    if isinstance(payload, dict):
        digest = payload.get(DIGEST_KEY)
        return digest if isinstance(digest, str) and digest else None
    match = _DIGEST_PATTERN.search(metadata_text)
    return match.group(1) if match and match.group(1) else None


def short_image_id(image_id: str) -> str:
    """Shorten ``sha256:<hex>`` the way ``docker images -q`` prints it."""
    return image_id.split(":", 1)[-1][:SHORT_ID_LENGTH]


class BuildxImageBuilder:
    """Build Docker images with buildx and collect the resulting outputs."""

    def __init__(
        self,
        command_runner: CommandRunner,
        docker_client=None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.command_runner = command_runner
        self._docker_client = docker_client
        self.logger = logger or logging.getLogger(__name__)

    def build(
        self,
        request: BuildRequest,
        reference: ImageReference,
        *,
        metadata_file: Path,
        docker_bin: str = "docker",
        dry_run: bool = False,
    ) -> BuildResult:
        """
        Build the image described by ``request`` and tag it with ``reference``.

        Args:
            request: Build inputs.
            reference: Resolved image reference.
            metadata_file: Path where buildx writes its metadata JSON.
            docker_bin: Docker CLI executable.
            dry_run: Assemble and log the command without executing it.

        Raises:
            BuildToolError: If the build tool is missing or exits non-zero.
        """
        metadata_file = Path(metadata_file)
        self.logger.info("Build context: %s", request.context)
        self.logger.info("Dockerfile: %s", request.dockerfile)

        command = build_command(request, reference, metadata_file=metadata_file, docker_bin=docker_bin)
        result = BuildResult(
            image_name=reference.image_name,
            app_name=reference.app_name if reference.is_composed else None,
            tag=reference.tag if reference.is_composed else None,
            command=command,
            issues=list(command.issues),
        )

        rendered = command.render(sanitize=True)
        self.logger.info("Executing build command...")
        self.logger.info("%s", rendered)
        if dry_run:
            self.logger.info("Dry run: skipping build of %s", reference)
            return result

        self._remove_stale_metadata(metadata_file)
        command_result = self.command_runner.run(
            command.args,
            stream_output=True,
            display=rendered,
        )
        result.command_result = command_result
        self._handle_build_result(command_result, reference)
        self.logger.info("Docker image built successfully: %s (%.1fs)", reference, command_result.duration)

        if request.queries_image_id:
            result.image_id = self._lookup_image_id(reference.image_name)
        if request.push:
            result.digest = self._read_digest(metadata_file)
        result.metadata = self._read_metadata(metadata_file)
        return result

    def _handle_build_result(self, command_result: CommandResult, reference: ImageReference) -> None:
        if not command_result.tool_available:
            raise BuildToolError(
                f"Docker build failed: {command_result.stderr or 'docker CLI not available'}",
                TOOL_NOT_FOUND_EXIT_CODE,
            )
        if not command_result.succeeded():
            self.logger.error(
                "Docker buildx failed for %s with exit code %s", reference, command_result.return_code
            )
            raise BuildToolError("Docker build failed", command_result.return_code or 1)

    def _remove_stale_metadata(self, metadata_file: Path) -> None:
        if metadata_file.exists():
            self.logger.debug("Removing stale metadata file %s", metadata_file)
            metadata_file.unlink()

    def _client(self):
        if self._docker_client is None:
            self._docker_client = docker.from_env()
        return self._docker_client

    def _lookup_image_id(self, image_name: str) -> Optional[str]:
        try:
            image = self._client().images.get(image_name)
        except DockerException as exc:
            self.logger.warning("Could not look up image id for %s: %s", image_name, exc)
            return None
        if not image.id:
            return None
        image_id = short_image_id(image.id)
        self.logger.info("Image ID: %s", image_id)
        return image_id

    def _read_metadata(self, metadata_file: Path) -> Optional[str]:
        if not metadata_file.is_file():
            self.logger.debug("No metadata file at %s", metadata_file)
            return None
        return metadata_file.read_text(encoding="utf-8").rstrip("\n") or None

    def _read_digest(self, metadata_file: Path) -> Optional[str]:
        metadata = self._read_metadata(metadata_file)
        if metadata is None:
            return None
        digest = parse_digest(metadata)
        if digest:
            self.logger.info("Image digest: %s", digest)
        else:
            self.logger.warning("No %s entry in %s", DIGEST_KEY, metadata_file)
        return digest
