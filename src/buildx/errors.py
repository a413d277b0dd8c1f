"""Fatal error kinds raised while preparing or running a build."""
from __future__ import annotations

SIGNAL_EXIT_BASE = 128


class DockerBuildActionError(Exception):
    """Base class for fatal build action failures."""

    exit_code: int = 1


class ConfigurationError(DockerBuildActionError):
    """Identity or input configuration is missing or invalid; no build is attempted."""

    exit_code = 1


class BuildToolError(DockerBuildActionError):
    """The external build tool failed; carries the exit code to propagate."""

    def __init__(self, message: str, exit_code: int) -> None:
        super().__init__(message)
        # negative return codes mean the child died from a signal
        if exit_code < 0:
            exit_code = SIGNAL_EXIT_BASE - exit_code
        self.exit_code = exit_code or 1
