"""Data classes for skill deployments.

This module defines the values that flow through a single deployment
attempt: the submitted files, the tree entries built from them, the
commit and ref they end up in, the target the deployment is aimed at,
and the result handed back to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

MODE_FILE = "100644"
MODE_EXECUTABLE = "100755"


class ErrorKind(str, Enum):
    """Failure categories reported in a DeploymentResult."""

    NAME_CONFLICT = "name_conflict"
    REPOSITORY_NOT_FOUND = "repository_not_found"
    FAST_FORWARD_CONFLICT = "fast_forward_conflict"
    TRANSPORT_FAILURE = "transport_failure"
    INVALID_INPUT = "invalid_input"


@dataclass
class FileEntry:
    """One file of a deployment.

    Attributes:
        path: POSIX relative path (no leading slash, no '..' segments)
        content: Raw file bytes. Strings are encoded as UTF-8.
        executable: Whether the file is committed with the executable mode
    """

    path: str
    content: bytes
    executable: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.content, str):
            self.content = self.content.encode("utf-8")

    @property
    def mode(self) -> str:
        return MODE_EXECUTABLE if self.executable else MODE_FILE


@dataclass
class TreeEntry:
    """A path-to-blob mapping inside a tree object."""

    path: str
    mode: str
    sha: str
    type: str = "blob"

    def to_api(self) -> dict[str, str]:
        """Convert to the payload shape of the tree creation endpoint."""
        return {
            "path": self.path,
            "mode": self.mode,
            "type": self.type,
            "sha": self.sha,
        }


@dataclass
class Commit:
    """A commit created during a deployment."""

    sha: str
    tree_sha: str
    parent_sha: str | None
    message: str

    @property
    def is_root(self) -> bool:
        return self.parent_sha is None


@dataclass
class BranchRef:
    """A branch name and the commit it points at."""

    name: str
    sha: str

    @property
    def ref_path(self) -> str:
        return f"heads/{self.name}"


@dataclass
class NewRepository:
    """Deploy into a repository that does not exist yet.

    Attributes:
        name: Repository name, created under the authenticated user
        visibility: 'public' or 'private'
        description: Repository description shown on the hosting service
        owner: Login of the authenticated user, if the caller already resolved it
    """

    name: str
    visibility: Literal["public", "private"] = "public"
    description: str = ""
    owner: str | None = None

    @property
    def private(self) -> bool:
        return self.visibility == "private"


@dataclass
class ExistingRepository:
    """Deploy alongside the content of an existing repository.

    Attributes:
        full_name: Repository in 'owner/repo' format
        base_path: Optional directory under which the skill folder is placed
    """

    full_name: str
    base_path: str | None = None

    @property
    def owner(self) -> str:
        return self.full_name.split("/", 1)[0]

    @property
    def repo(self) -> str:
        return self.full_name.split("/", 1)[1] if "/" in self.full_name else ""


DeploymentTarget = NewRepository | ExistingRepository


@dataclass
class Deployment:
    """A unit of content to publish.

    Attributes:
        name: Deployment unit name (the skill name); used as the folder
            name inside existing repositories and in commit messages
        files: Files to commit, in submission order
        description: Human-readable description of the content
    """

    name: str
    files: list[FileEntry] = field(default_factory=list)
    description: str = ""


@dataclass
class DeploymentResult:
    """Outcome of one deployment attempt."""

    success: bool
    location: str | None = None
    full_name: str | None = None
    commit_sha: str | None = None
    error_kind: ErrorKind | None = None
    error_message: str | None = None

    @classmethod
    def ok(
        cls,
        location: str,
        full_name: str | None = None,
        commit_sha: str | None = None,
    ) -> DeploymentResult:
        return cls(success=True, location=location, full_name=full_name, commit_sha=commit_sha)

    @classmethod
    def fail(cls, error_kind: ErrorKind, error_message: str) -> DeploymentResult:
        return cls(success=False, error_kind=error_kind, error_message=error_message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "success": self.success,
            "location": self.location,
            "full_name": self.full_name,
            "commit_sha": self.commit_sha,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error_message": self.error_message,
        }
