"""Shared issue representation for image resolution, assembly and builds."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Literal, Optional

IssueSeverity = Literal["error", "warning", "info"]


@dataclass(slots=True)
class BuildIssue:
    """Lightweight issue representation for build operations."""

    code: str
    message: str
    severity: IssueSeverity = "error"
    subject: Optional[str] = None

    def is_error(self) -> bool:
        """Return True when the issue is considered an error."""
        return self.severity == "error"


def error_issues(issues: Iterable[BuildIssue]) -> List[BuildIssue]:
    return [issue for issue in issues if issue.is_error()]


def warning_issues(issues: Iterable[BuildIssue]) -> List[BuildIssue]:
    return [issue for issue in issues if issue.severity == "warning"]
