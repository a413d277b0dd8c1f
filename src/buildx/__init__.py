"""Resolve, assemble and run ``docker buildx build`` for CI pipelines."""

from .builder import BuildResult, BuildxImageBuilder
from .command import BuildCommand, build_command, sanitize_args
from .config import ActionSettings, load_settings
from .errors import BuildToolError, ConfigurationError, DockerBuildActionError
from .issues import BuildIssue, IssueSeverity
from .outputs import GitHubOutputWriter, WorkflowCommands
from .resolver import ImageResolution, resolve_image_reference

__all__ = [
    "BuildResult",
    "BuildxImageBuilder",
    "BuildCommand",
    "build_command",
    "sanitize_args",
    "ActionSettings",
    "load_settings",
    "BuildToolError",
    "ConfigurationError",
    "DockerBuildActionError",
    "BuildIssue",
    "IssueSeverity",
    "GitHubOutputWriter",
    "WorkflowCommands",
    "ImageResolution",
    "resolve_image_reference",
]
