"""Data models for a GitHub repository snapshot.

Every entity is a frozen dataclass decoded from one REST API payload by
``from_api()``. The verbatim payload is kept in ``raw`` so the archive can
write it back out unchanged; formatters only read the typed fields.
"""

from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "Issue",
    "IssueComment",
    "PullRequest",
    "PullReview",
    "PullReviewComment",
    "Release",
    "RepoSummary",
    "RepoTarget",
    "Snapshot",
    "User",
]

UNKNOWN_LOGIN = "unknown"


def _raw_field() -> Any:
    return field(default_factory=dict, repr=False, compare=False)


@dataclass(frozen=True)
class RepoTarget:
    """Owner/repository pair identifying one GitHub repository."""

    owner: str
    repo: str

    def __post_init__(self) -> None:
        if not self.owner or not self.repo:
            raise ValueError("RepoTarget owner and repo must be non-empty")

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def https_url(self) -> str:
        return f"https://github.com/{self.owner}/{self.repo}"

    @property
    def api_path(self) -> str:
        """REST path prefix for every repository-scoped endpoint."""
        return f"/repos/{self.owner}/{self.repo}"


@dataclass(frozen=True)
class User:
    login: str

    @classmethod
    def from_api(cls, data: dict | None) -> "User":
        return cls(login=(data or {}).get("login") or UNKNOWN_LOGIN)


def _optional_user(data: dict | None) -> User | None:
    if not data or not data.get("login"):
        return None
    return User(login=data["login"])


def _names(items: list[dict] | None, key: str) -> tuple[str, ...]:
    return tuple(item[key] for item in (items or []) if item and item.get(key))


@dataclass(frozen=True)
class RepoSummary:
    full_name: str
    description: str | None
    default_branch: str
    pushed_at: str | None
    stargazers_count: int
    forks_count: int
    open_issues_count: int
    raw: dict = _raw_field()

    @classmethod
    def from_api(cls, data: dict) -> "RepoSummary":
        return cls(
            full_name=data.get("full_name", ""),
            description=data.get("description"),
            default_branch=data.get("default_branch", ""),
            pushed_at=data.get("pushed_at"),
            stargazers_count=data.get("stargazers_count") or 0,
            forks_count=data.get("forks_count") or 0,
            open_issues_count=data.get("open_issues_count") or 0,
            raw=data,
        )


@dataclass(frozen=True)
class _RepoItem:
    """Fields shared by issues and pull requests."""

    number: int
    title: str
    state: str
    user: User
    created_at: str | None
    closed_at: str | None
    body: str | None
    labels: tuple[str, ...] = ()
    assignees: tuple[str, ...] = ()
    milestone: str | None = None

    @staticmethod
    def _common(data: dict) -> dict[str, Any]:
        return {
            "number": data["number"],
            "title": data.get("title") or "",
            "state": data.get("state") or "",
            "user": User.from_api(data.get("user")),
            "created_at": data.get("created_at"),
            "closed_at": data.get("closed_at"),
            "body": data.get("body"),
            "labels": _names(data.get("labels"), "name"),
            "assignees": _names(data.get("assignees"), "login"),
            "milestone": (data.get("milestone") or {}).get("title"),
        }


@dataclass(frozen=True)
class Issue(_RepoItem):
    is_pull_request: bool = False
    raw: dict = _raw_field()

    @classmethod
    def from_api(cls, data: dict) -> "Issue":
        # The issues endpoint also lists pulls; they carry a pull_request key
        return cls(
            **cls._common(data),
            is_pull_request="pull_request" in data,
            raw=data,
        )


@dataclass(frozen=True)
class PullRequest(_RepoItem):
    merged_at: str | None = None
    raw: dict = _raw_field()

    @property
    def merged(self) -> bool:
        return self.merged_at is not None

    @classmethod
    def from_api(cls, data: dict) -> "PullRequest":
        return cls(**cls._common(data), merged_at=data.get("merged_at"), raw=data)


@dataclass(frozen=True)
class IssueComment:
    id: int
    user: User
    body: str
    created_at: str | None
    updated_at: str | None
    issue_url: str
    raw: dict = _raw_field()

    @classmethod
    def from_api(cls, data: dict) -> "IssueComment":
        return cls(
            id=data["id"],
            user=User.from_api(data.get("user")),
            body=data.get("body") or "",
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            issue_url=data.get("issue_url") or "",
            raw=data,
        )


@dataclass(frozen=True)
class PullReview:
    id: int
    user: User | None
    body: str | None
    state: str
    submitted_at: str | None
    pull_request_url: str
    raw: dict = _raw_field()

    @property
    def author(self) -> str:
        # Reviews by deleted accounts come back with user: null
        return self.user.login if self.user else UNKNOWN_LOGIN

    @classmethod
    def from_api(cls, data: dict) -> "PullReview":
        return cls(
            id=data["id"],
            user=_optional_user(data.get("user")),
            body=data.get("body"),
            state=data.get("state") or "",
            submitted_at=data.get("submitted_at"),
            pull_request_url=data.get("pull_request_url") or "",
            raw=data,
        )


@dataclass(frozen=True)
class PullReviewComment:
    id: int
    user: User
    body: str
    created_at: str | None
    updated_at: str | None
    pull_request_url: str
    raw: dict = _raw_field()

    @classmethod
    def from_api(cls, data: dict) -> "PullReviewComment":
        return cls(
            id=data["id"],
            user=User.from_api(data.get("user")),
            body=data.get("body") or "",
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            pull_request_url=data.get("pull_request_url") or "",
            raw=data,
        )


@dataclass(frozen=True)
class Release:
    id: int
    tag_name: str
    name: str | None
    created_at: str | None
    published_at: str | None
    body: str | None
    raw: dict = _raw_field()

    @classmethod
    def from_api(cls, data: dict) -> "Release":
        return cls(
            id=data["id"],
            tag_name=data.get("tag_name") or "",
            name=data.get("name"),
            created_at=data.get("created_at"),
            published_at=data.get("published_at"),
            body=data.get("body"),
            raw=data,
        )


@dataclass(frozen=True)
class Snapshot:
    """Everything fetched for one repository during one export.

    Built once by the snapshot builder and only read afterwards. Comment and
    review parent numbers are not guaranteed to resolve to an issue or pull
    in the same snapshot.
    """

    summary: RepoSummary
    issues: tuple[Issue, ...] = ()
    pulls: tuple[PullRequest, ...] = ()
    issue_comments: tuple[IssueComment, ...] = ()
    releases: tuple[Release, ...] = ()
    reviews: tuple[PullReview, ...] = ()
    review_comments: tuple[PullReviewComment, ...] = ()

    def counts(self) -> dict[str, int]:
        """Per-kind counts, keyed as in sync_state.json."""
        return {
            "issues": len(self.issues),
            "pulls": len(self.pulls),
            "issueComments": len(self.issue_comments),
            "reviewComments": len(self.review_comments),
            "reviews": len(self.reviews),
            "releases": len(self.releases),
        }
