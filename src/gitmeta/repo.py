"""Repository target parsing.

Turns user input (``owner/name`` or a github.com URL) into a RepoTarget.
"""

import re

from gitmeta.models import RepoTarget

__all__ = ["ValidationFailure", "parse_repo_target"]

_REPO_PATTERN = re.compile(
    r"^(?:https?://github\.com/)?(?P<owner>[A-Za-z0-9_.-]+)/"
    r"(?P<name>[A-Za-z0-9_.-]+?)(?:\.git)?/?$"
)


class ValidationFailure(ValueError):
    """Raised when repository input cannot be parsed.

    Attributes:
        reason: "empty_input" or "invalid_repo_url"
        message: Text suitable for showing to the user
    """

    def __init__(self, message: str, reason: str) -> None:
        self.message = message
        self.reason = reason
        super().__init__(message)


def parse_repo_target(value: str) -> RepoTarget:
    """Parse ``owner/name`` or ``https://github.com/owner/name[.git]``.

    Raises:
        ValidationFailure: On empty or malformed input
    """
    normalized = (value or "").strip()
    if not normalized:
        raise ValidationFailure("Provide a GitHub repository URL.", "empty_input")

    match = _REPO_PATTERN.match(normalized)
    if match is None:
        raise ValidationFailure(
            "Expected https://github.com/owner/name", "invalid_repo_url"
        )
    return RepoTarget(owner=match.group("owner"), repo=match.group("name"))
