"""Exceptions raised while building a deployment commit."""

from __future__ import annotations

from typing import Any

from skillship.deploy.models import ErrorKind


class DeployError(Exception):
    """Base class for deployment failures."""

    kind: ErrorKind = ErrorKind.TRANSPORT_FAILURE


class InvalidInputError(DeployError):
    """Raised when the submitted files or names are malformed."""

    kind = ErrorKind.INVALID_INPUT


class NameConflictError(DeployError):
    """Raised when the target repository name is already taken."""

    kind = ErrorKind.NAME_CONFLICT


class RepositoryNotFoundError(DeployError):
    """Raised when an existing-repository target does not resolve."""

    kind = ErrorKind.REPOSITORY_NOT_FOUND


class FastForwardConflictError(DeployError):
    """Raised when the target branch moved since it was read."""

    kind = ErrorKind.FAST_FORWARD_CONFLICT


class RefConflictError(FastForwardConflictError):
    """Raised by the transport when a ref create or update is rejected."""

    def __init__(self, message: str, branch: str, status_code: int = 422):
        super().__init__(message)
        self.branch = branch
        self.status_code = status_code


class TransportError(DeployError):
    """Raised for network, auth, rate-limit and other remote API errors."""

    kind = ErrorKind.TRANSPORT_FAILURE

    def __init__(self, message: str, status_code: int | None = None, response_body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body

    def __str__(self) -> str:
        message = super().__str__()
        if self.status_code is not None:
            return f"{message} (HTTP {self.status_code})"
        return message
