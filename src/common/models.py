"""Shared data models for build inputs, CI context and image references."""
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

TRUTHY = "true"


def parse_flag(value: Any) -> bool:
    """Interpret an action-style boolean input; only the exact string ``"true"`` counts."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value) == TRUTHY


def split_lines(value: Any) -> List[str]:
    """Split newline-delimited KEY=VALUE input, dropping blank lines."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.splitlines()
    else:
        items = [str(item) for item in value]
    return [item.strip() for item in items if item.strip()]


class BuildRequest(BaseModel):
    """Inputs of a single ``docker buildx build`` invocation."""

    context: str = Field(default=".", description="Build context path")
    dockerfile: str = Field(default="Dockerfile", description="Path to the Dockerfile")
    app_name: Optional[str] = Field(default=None, description="Application name (image repository)")
    tag: Optional[str] = Field(default=None, description="Image tag")
    image_name: Optional[str] = Field(default=None, description="Full image reference, used verbatim")
    build_args: List[str] = Field(default_factory=list, description="KEY=VALUE build arguments")
    platforms: Optional[str] = Field(default=None, description="Comma separated target platforms")
    cache_from: Optional[str] = Field(default=None, description="External cache source")
    cache_to: Optional[str] = Field(default=None, description="Cache export destination")
    push: bool = Field(default=False, description="Push the image after build")
    load: bool = Field(default=True, description="Load the image into the local docker daemon")
    labels: List[str] = Field(default_factory=list, description="KEY=VALUE image labels")
    target: Optional[str] = Field(default=None, description="Target build stage")
    no_cache: bool = Field(default=False, description="Do not use cache when building")
    pull: bool = Field(default=False, description="Always attempt to pull newer base images")

    @field_validator("build_args", "labels", mode="before")
    @classmethod
    def _split_lines(cls, value: Any) -> List[str]:
        return split_lines(value)

    @field_validator("push", "load", "no_cache", "pull", mode="before")
    @classmethod
    def _parse_flag(cls, value: Any) -> bool:
        return parse_flag(value)

    @field_validator(
        "app_name", "tag", "image_name", "platforms", "cache_from", "cache_to", "target", mode="before"
    )
    @classmethod
    def _blank_to_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @field_validator("context", "dockerfile", mode="before")
    @classmethod
    def _strip_path(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @property
    def multi_platform(self) -> bool:
        """True when an explicit platform list was requested."""
        return bool(self.platforms)

    @property
    def queries_image_id(self) -> bool:
        """True when load was requested for a single-platform build."""
        return self.load and not self.multi_platform


class RepositoryContext(BaseModel):
    """Ambient CI information used to derive default image names and tags."""

    repository: Optional[str] = Field(default=None, description="Repository identifier (owner/repo)")
    ref: Optional[str] = Field(default=None, description="Fully-formed git ref (refs/heads/main)")
    sha: Optional[str] = Field(default=None, description="Commit SHA")

    @field_validator("repository", "ref", "sha", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None


class ImageReference(BaseModel):
    """A resolved ``repository:tag`` reference.

    ``app_name`` and ``tag`` are only populated when the reference was
    composed from them; an explicitly supplied image name is kept verbatim.
    """

    image_name: str
    app_name: Optional[str] = None
    tag: Optional[str] = None

    @classmethod
    def explicit(cls, image_name: str) -> "ImageReference":
        return cls(image_name=image_name)

    @classmethod
    def compose(cls, app_name: str, tag: str) -> "ImageReference":
        return cls(image_name=f"{app_name}:{tag}", app_name=app_name, tag=tag)

    @property
    def is_composed(self) -> bool:
        return self.app_name is not None and self.tag is not None

    def __str__(self) -> str:
        return self.image_name
