"""Settings for a build action run, loaded from the environment and files."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from src.common.models import BuildRequest, RepositoryContext, parse_flag

from .errors import ConfigurationError

DEFAULT_METADATA_FILE = "/tmp/build-metadata.json"

# Field name -> environment variable names, first match wins.
REQUEST_ENV: Dict[str, Tuple[str, ...]] = {
    "context": ("CONTEXT", "BUILD_CONTEXT"),
    "dockerfile": ("DOCKERFILE",),
    "app_name": ("APP_NAME",),
    "tag": ("TAG",),
    "image_name": ("IMAGE_NAME",),
    "build_args": ("BUILD_ARGS",),
    "platforms": ("PLATFORMS",),
    "cache_from": ("CACHE_FROM",),
    "cache_to": ("CACHE_TO",),
    "push": ("PUSH",),
    "load": ("LOAD",),
    "labels": ("LABELS",),
    "target": ("TARGET",),
    "no_cache": ("NO_CACHE",),
    "pull": ("PULL",),
}
CONTEXT_ENV: Dict[str, Tuple[str, ...]] = {
    "repository": ("GITHUB_REPOSITORY",),
    "ref": ("GITHUB_REF",),
    "sha": ("GITHUB_SHA",),
}
SETTINGS_ENV: Dict[str, Tuple[str, ...]] = {
    "metadata_file": ("METADATA_FILE",),
    "github_output": ("GITHUB_OUTPUT",),
    "docker_bin": ("DOCKER_BIN",),
    "git_context": ("GIT_CONTEXT",),
}


class ActionSettings(BaseModel):
    """Everything a single build run needs: inputs, CI context and tool settings."""

    request: BuildRequest = Field(default_factory=BuildRequest)
    context: RepositoryContext = Field(default_factory=RepositoryContext)
    metadata_file: Path = Field(
        default=Path(DEFAULT_METADATA_FILE),
        description="File buildx writes its metadata JSON to",
    )
    github_output: Optional[Path] = Field(default=None, description="GitHub Actions output file")
    docker_bin: str = Field(default="docker", description="Docker CLI executable")
    git_context: bool = Field(default=False, description="Fill missing CI context from the local git checkout")

    @field_validator("git_context", mode="before")
    @classmethod
    def _parse_flag(cls, value: Any) -> bool:
        return parse_flag(value)


def _is_unset(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return not value
    return False


def _normalize_key(key: str) -> str:
    return str(key).strip().upper().replace("-", "_")


def read_inputs_file(path: Path | str) -> Dict[str, Any]:
    """Load an inputs mapping from a YAML or JSON file, normalizing key names."""
    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Inputs file not found: {file_path}")
    text = file_path.read_text(encoding="utf-8")
    try:
        if file_path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Failed to parse inputs from {file_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Inputs document at {file_path} must be a mapping.")
    return {_normalize_key(key): value for key, value in data.items()}


def _collect(table: Dict[str, Tuple[str, ...]], *layers: Mapping[str, Any]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for layer in layers:
        for field_name, names in table.items():
            for name in names:
                value = layer.get(name)
                if not _is_unset(value):
                    values[field_name] = value
                    break
    return values


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    *,
    inputs_file: Optional[Path | str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> ActionSettings:
    """
    Build settings from layered sources.

    Precedence, lowest first: model defaults, inputs file, environment,
    explicit overrides (CLI flags). Blank values never mask a lower layer.

    Args:
        environ: Environment mapping (defaults to ``os.environ``).
        inputs_file: Optional YAML/JSON file with action inputs.
        overrides: Field-name keyed values; ``None`` entries are ignored.

    Raises:
        ConfigurationError: If the inputs file or a value is invalid.
    """
    environ = os.environ if environ is None else environ
    file_inputs = read_inputs_file(inputs_file) if inputs_file else {}
    layers = (file_inputs, environ)

    request_values = _collect(REQUEST_ENV, *layers)
    context_values = _collect(CONTEXT_ENV, *layers)
    settings_values = _collect(SETTINGS_ENV, *layers)

    for key, value in (overrides or {}).items():
        if _is_unset(value):
            continue
        if key in REQUEST_ENV:
            request_values[key] = value
        elif key in CONTEXT_ENV:
            context_values[key] = value
        elif key in SETTINGS_ENV:
            settings_values[key] = value
        else:
            raise ConfigurationError(f"Unknown setting: {key}")

    try:
        return ActionSettings(
            request=BuildRequest(**request_values),
            context=RepositoryContext(**context_values),
            **settings_values,
        )
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid build inputs: {exc}") from exc
