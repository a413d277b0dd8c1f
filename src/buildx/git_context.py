"""Fill CI context from a local git checkout when not running in GitHub Actions."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from git import InvalidGitRepositoryError, NoSuchPathError, Repo

from src.common.models import RepositoryContext

logger = logging.getLogger(__name__)

_REMOTE_PATTERN = re.compile(r"[:/]([^/:]+)/([^/]+?)(?:\.git)?/?$")


def repository_from_remote(url: str) -> Optional[str]:
    """Return ``owner/repo`` from an https or scp-style remote URL."""
    match = _REMOTE_PATTERN.search(url.strip())
    if not match:
        return None
    return f"{match.group(1)}/{match.group(2)}"


def _head_tag(repo: Repo) -> Optional[str]:
    head = repo.head.commit
    names = []
    for tag in repo.tags:
        try:
            if tag.commit == head:
                names.append(tag.name)
        except ValueError:
            # tag points at a tree or blob
            continue
    return sorted(names)[0] if names else None


def read_git_context(path: Path | str = ".") -> RepositoryContext:
    """Read repository, ref and commit SHA from the checkout at ``path``."""
    try:
        repo = Repo(path, search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError):
        logger.debug("No git repository at %s", path)
        return RepositoryContext()

    try:
        sha = repo.head.commit.hexsha
    except ValueError:
        logger.debug("Repository at %s has no commits", path)
        return RepositoryContext()

    ref = None
    tag = _head_tag(repo)
    if tag:
        ref = f"refs/tags/{tag}"
    elif not repo.head.is_detached:
        ref = f"refs/heads/{repo.active_branch.name}"

    repository = None
    if "origin" in [remote.name for remote in repo.remotes]:
        repository = repository_from_remote(repo.remotes.origin.url)

    return RepositoryContext(repository=repository, ref=ref, sha=sha)


def merge_git_context(context: RepositoryContext, path: Path | str = ".") -> RepositoryContext:
    """Return ``context`` with missing values filled from the local checkout."""
    if context.repository and context.ref and context.sha:
        return context
    local = read_git_context(path)
    merged = RepositoryContext(
        repository=context.repository or local.repository,
        ref=context.ref or local.ref,
        sha=context.sha or local.sha,
    )
    logger.debug("Git context: %s", merged)
    return merged
