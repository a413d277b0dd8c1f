"""Assemble ``docker buildx build`` argument lists from a build request."""
from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence

from src.common.models import BuildRequest, ImageReference

from .issues import BuildIssue

logger = logging.getLogger(__name__)

REDACTED = "***"
BUILD_ARG_FLAG = "--build-arg"
LABEL_FLAG = "--label"


@dataclass(slots=True)
class BuildCommand:
    """Ordered argument tokens for the build tool plus assembly warnings."""

    args: List[str]
    issues: List[BuildIssue] = field(default_factory=list)

    def render(self, sanitize: bool = True) -> str:
        """Render the command as a single shell-quoted line."""
        tokens = sanitize_args(self.args) if sanitize else list(self.args)
        return shlex.join(tokens)


def sanitize_args(args: Sequence[str]) -> List[str]:
    """Replace build-arg values with a placeholder; label values are kept."""
    sanitized: List[str] = []
    redact_next = False
    for token in args:
        if redact_next:
            name, sep, _ = token.partition("=")
            sanitized.append(f"{name}={REDACTED}" if sep else token)
            redact_next = False
            continue
        if token.startswith(BUILD_ARG_FLAG + "="):
            name, sep, _ = token[len(BUILD_ARG_FLAG) + 1:].partition("=")
            sanitized.append(f"{BUILD_ARG_FLAG}={name}={REDACTED}" if sep else token)
            continue
        redact_next = token == BUILD_ARG_FLAG
        sanitized.append(token)
    return sanitized


def build_command(
    request: BuildRequest,
    reference: ImageReference,
    *,
    metadata_file: Path | str,
    docker_bin: str = "docker",
) -> BuildCommand:
    """
    Build the buildx argument list for a request.

    Args:
        request: Build inputs.
        reference: Resolved image reference passed to ``-t``.
        metadata_file: Path buildx writes its metadata JSON to.
        docker_bin: Docker CLI executable.
    """
    issues: List[BuildIssue] = []
    args = [docker_bin, "buildx", "build", "-f", request.dockerfile, "-t", str(reference)]

    if request.build_args:
        logger.info("Adding build arguments...")
    for build_arg in request.build_args:
        args.extend([BUILD_ARG_FLAG, build_arg])
        # only the name; values may be secrets
        logger.info("  - %s", build_arg.split("=", 1)[0])

    if request.platforms:
        logger.info("Target platforms: %s", request.platforms)
        args.extend(["--platform", request.platforms])

    if request.cache_from:
        logger.info("Using cache from: %s", request.cache_from)
        args.extend(["--cache-from", request.cache_from])

    if request.cache_to:
        logger.info("Exporting cache to: %s", request.cache_to)
        args.extend(["--cache-to", request.cache_to])

    if request.labels:
        logger.info("Adding labels...")
    for label in request.labels:
        args.extend([LABEL_FLAG, label])
        logger.info("  - %s", label.split("=", 1)[0])

    if request.target:
        logger.info("Target build stage: %s", request.target)
        args.extend(["--target", request.target])

    if request.no_cache:
        logger.info("Building without cache")
        args.append("--no-cache")

    if request.pull:
        logger.info("Always pulling base images")
        args.append("--pull")

    if request.push:
        logger.info("Image will be pushed after build")
        args.append("--push")
    elif request.load:
        if request.multi_platform:
            issue = BuildIssue(
                code="LOAD_SKIPPED_MULTI_PLATFORM",
                message="Cannot load multi-platform builds into docker daemon; image will be built but not loaded",
                severity="warning",
                subject=request.platforms,
            )
            logger.warning(issue.message)
            issues.append(issue)
        else:
            logger.info("Image will be loaded into docker daemon")
            args.append("--load")

    args.extend(["--metadata-file", str(metadata_file)])
    args.append(request.context)

    return BuildCommand(args=args, issues=issues)
