"""Resolve the image reference to build from explicit inputs and CI context."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from src.common.models import ImageReference, RepositoryContext

from .errors import ConfigurationError
from .issues import BuildIssue, error_issues

logger = logging.getLogger(__name__)

TAG_REF_PREFIX = "refs/tags/"
BRANCH_REF_PREFIX = "refs/heads/"
MAIN_BRANCH = "main"
FALLBACK_TAG = "latest"

APP_NAME_REQUIRED_MESSAGE = (
    "app-name is required when image-name is not provided and not running in GitHub Actions"
)


@dataclass(slots=True)
class ImageResolution:
    """Outcome of image reference resolution: a reference or an error issue."""

    reference: Optional[ImageReference]
    issues: List[BuildIssue] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.reference is not None and not error_issues(self.issues)

    def unwrap(self) -> ImageReference:
        """Return the resolved reference or raise ConfigurationError."""
        if not self.success:
            messages = [issue.message for issue in error_issues(self.issues)]
            raise ConfigurationError("; ".join(messages) or "Unable to resolve image reference")
        return self.reference


def repository_name(repository: Optional[str]) -> Optional[str]:
    """Return the last path segment of an ``owner/repo`` identifier."""
    if not repository:
        return None
    return repository.rstrip("/").rsplit("/", 1)[-1] or None


def classify_ref(ref: Optional[str], sha: Optional[str]) -> Tuple[str, str, str]:
    """
    Derive a tag from a git ref.

    Returns:
        Tuple of (tag, issue code, human readable source description).
    """
    ref = ref or ""
    if ref.startswith(TAG_REF_PREFIX) and ref[len(TAG_REF_PREFIX):]:
        tag = ref[len(TAG_REF_PREFIX):]
        return tag, "TAG_FROM_GIT_TAG", f"Using git tag: {tag}"
    if ref == BRANCH_REF_PREFIX + MAIN_BRANCH and sha:
        return sha, "TAG_FROM_MAIN_SHA", f"Using commit SHA for main branch: {sha}"
    if ref.startswith(BRANCH_REF_PREFIX) and ref != BRANCH_REF_PREFIX + MAIN_BRANCH and ref[len(BRANCH_REF_PREFIX):]:
        branch = ref[len(BRANCH_REF_PREFIX):]
        return branch, "TAG_FROM_BRANCH", f"Using branch name: {branch}"
    if sha:
        return sha, "TAG_FROM_SHA", f"Using commit SHA: {sha}"
    return FALLBACK_TAG, "TAG_FALLBACK_LATEST", f"No tag information available, using '{FALLBACK_TAG}'"


def resolve_image_reference(
    image_name: Optional[str],
    app_name: Optional[str],
    tag: Optional[str],
    context: Optional[RepositoryContext] = None,
) -> ImageResolution:
    """
    Resolve the image reference for a build.

    An explicit image name always wins and is used verbatim. Otherwise the
    app name comes from the explicit input or the repository name, and the
    tag from the explicit input or the git ref classification.

    Args:
        image_name: Full image reference supplied by the caller.
        app_name: Explicit application name.
        tag: Explicit tag.
        context: Ambient repository/ref/sha information.
    """
    context = context or RepositoryContext()
    issues: List[BuildIssue] = []

    if image_name:
        issues.append(BuildIssue("IMAGE_NAME_EXPLICIT", f"Using provided image name: {image_name}", "info"))
        return _finish(ImageReference.explicit(image_name), issues)

    if app_name:
        resolved_app = app_name
        issues.append(BuildIssue("APP_NAME_EXPLICIT", f"Using provided app name: {app_name}", "info"))
    else:
        resolved_app = repository_name(context.repository)
        if not resolved_app:
            issues.append(BuildIssue("APP_NAME_REQUIRED", APP_NAME_REQUIRED_MESSAGE, subject="app-name"))
            return _finish(None, issues)
        issues.append(
            BuildIssue("APP_NAME_FROM_REPOSITORY", f"Using repository name as app name: {resolved_app}", "info")
        )

    if tag:
        resolved_tag = tag
        issues.append(BuildIssue("TAG_EXPLICIT", f"Using provided tag: {tag}", "info"))
    else:
        resolved_tag, code, message = classify_ref(context.ref, context.sha)
        severity = "warning" if code == "TAG_FALLBACK_LATEST" else "info"
        issues.append(BuildIssue(code, message, severity, subject=context.ref))

    reference = ImageReference.compose(resolved_app, resolved_tag)
    issues.append(BuildIssue("IMAGE_NAME_COMPOSED", f"Constructed image name: {reference}", "info"))
    return _finish(reference, issues)


def _finish(reference: Optional[ImageReference], issues: List[BuildIssue]) -> ImageResolution:
    for issue in issues:
        if issue.is_error():
            logger.error(issue.message)
        elif issue.severity == "warning":
            logger.warning(issue.message)
        else:
            logger.info(issue.message)
    return ImageResolution(reference=reference, issues=issues)
