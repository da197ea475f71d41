"""Ref moving stage.

The branch ref is the only shared mutable resource a deployment touches.
Creating it fails if someone else created it first; advancing it is
conditional on the tip observed earlier in the same attempt, so a
concurrent writer's commit is never discarded.
"""

from __future__ import annotations

import logging
from enum import Enum

from skillship.deploy.errors import DeployError, FastForwardConflictError, RefConflictError
from skillship.deploy.models import BranchRef
from skillship.github.store import RemoteStore

logger = logging.getLogger(__name__)


class RefState(str, Enum):
    """Progress of a single ref write."""

    NOT_STARTED = "not_started"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    CONFLICT = "conflict"
    TRANSPORT_FAILURE = "transport_failure"


class RefMover:
    """Points a branch at a new commit, once.

    A mover is used for a single ref write. There is no retry and no
    rebase: a conflict is reported to the caller, who may start a fresh
    attempt.
    """

    def __init__(self, store: RemoteStore) -> None:
        self._store = store
        self._state = RefState.NOT_STARTED

    @property
    def state(self) -> RefState:
        return self._state

    def _begin(self) -> None:
        if self._state is not RefState.NOT_STARTED:
            raise RuntimeError(f"Ref write already attempted (state: {self._state.value})")
        self._state = RefState.ATTEMPTING

    async def create(self, full_name: str, branch: str, sha: str) -> BranchRef:
        """Create a branch that is expected not to exist yet.

        Raises:
            FastForwardConflictError: If the branch already exists and points
                somewhere else
        """
        self._begin()
        try:
            await self._store.create_ref(full_name, branch, sha)
        except RefConflictError:
            current = await self._read_tip_after_conflict(full_name, branch)
            if current == sha:
                logger.info(f"Branch {branch} of {full_name} already points at {sha[:7]}")
                self._state = RefState.SUCCEEDED
                return BranchRef(name=branch, sha=sha)
            self._state = RefState.CONFLICT
            raise FastForwardConflictError(
                f"Branch {branch} of {full_name} was created concurrently by another writer"
            ) from None
        except BaseException:
            self._state = RefState.TRANSPORT_FAILURE
            raise

        self._state = RefState.SUCCEEDED
        logger.info(f"Created branch {branch} of {full_name} at {sha[:7]}")
        return BranchRef(name=branch, sha=sha)

    async def advance(
        self,
        full_name: str,
        branch: str,
        sha: str,
        expected_sha: str,
    ) -> BranchRef:
        """Move an existing branch from expected_sha to sha.

        Raises:
            FastForwardConflictError: If the branch moved since expected_sha
                was read
        """
        self._begin()
        try:
            await self._store.update_ref(full_name, branch, sha, expected_sha)
        except FastForwardConflictError:
            self._state = RefState.CONFLICT
            logger.warning(f"Branch {branch} of {full_name} moved since {expected_sha[:7]} was read")
            raise
        except BaseException:
            self._state = RefState.TRANSPORT_FAILURE
            raise

        self._state = RefState.SUCCEEDED
        logger.info(f"Advanced branch {branch} of {full_name} from {expected_sha[:7]} to {sha[:7]}")
        return BranchRef(name=branch, sha=sha)

    async def _read_tip_after_conflict(self, full_name: str, branch: str) -> str | None:
        try:
            return await self._store.get_branch_tip(full_name, branch)
        except DeployError as e:
            self._state = RefState.CONFLICT
            raise FastForwardConflictError(
                f"Branch {branch} of {full_name} already exists and could not be re-read: {e}"
            ) from e
