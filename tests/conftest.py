"""Pytest configuration and shared fixtures for Skillship tests."""

from __future__ import annotations

import asyncio
import hashlib
import tempfile
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from skillship.config.app import SkillshipConfig
from skillship.deploy.errors import DeployError, NameConflictError, RefConflictError, TransportError
from skillship.deploy.models import MODE_FILE, TreeEntry
from skillship.github.store import RepositoryInfo


@dataclass
class FakeCommit:
    tree: str
    parents: list[str]
    message: str


@dataclass
class FakeRemoteStore:
    """In-memory content-addressed store with GitHub-like semantics.

    Blobs and trees are addressed by the hash of their content, commits are
    always distinct, ref creation fails if the ref exists and ref updates
    fail unless the ref still points at the expected commit.
    """

    login: str = "octocat"
    repos: dict[str, RepositoryInfo] = field(default_factory=dict)
    blobs: dict[str, bytes] = field(default_factory=dict)
    trees: dict[str, dict[str, tuple[str, str]]] = field(default_factory=dict)
    commits: dict[str, FakeCommit] = field(default_factory=dict)
    refs: dict[tuple[str, str], str] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    failures: dict[str, DeployError] = field(default_factory=dict)
    delays: dict[str, float] = field(default_factory=dict)
    _counter: int = 0

    async def _enter(self, name: str) -> None:
        self.calls.append(name)
        await asyncio.sleep(self.delays.get(name, 0))
        if name in self.failures:
            raise self.failures[name]

    def _require_repo(self, full_name: str) -> None:
        if full_name not in self.repos:
            raise TransportError(f"Not Found: {full_name}", status_code=404)

    # Test helpers

    def add_repository(self, full_name: str, default_branch: str = "main") -> RepositoryInfo:
        repo = RepositoryInfo(
            name=full_name.split("/", 1)[1],
            full_name=full_name,
            html_url=f"https://github.com/{full_name}",
            default_branch=default_branch,
        )
        self.repos[full_name] = repo
        return repo

    def seed(self, full_name: str, files: dict[str, bytes], branch: str = "main") -> str:
        """Create a repository with one commit holding files; return the commit sha."""
        if full_name not in self.repos:
            self.add_repository(full_name, default_branch=branch)
        entries = {path: (MODE_FILE, self._store_blob(content)) for path, content in files.items()}
        tree_sha = self._store_tree(entries)
        commit_sha = self._store_commit(tree_sha, [], "seed")
        self.refs[(full_name, branch)] = commit_sha
        return commit_sha

    def files_at(self, full_name: str, branch: str = "main") -> dict[str, bytes]:
        """Return the files of the commit a branch points at."""
        commit = self.commits[self.refs[(full_name, branch)]]
        return {path: self.blobs[sha] for path, (_, sha) in self.trees[commit.tree].items()}

    def count(self, name: str) -> int:
        return self.calls.count(name)

    def _store_blob(self, content: bytes) -> str:
        sha = hashlib.sha1(b"blob %d\x00" % len(content) + content).hexdigest()
        self.blobs[sha] = content
        return sha

    def _store_tree(self, entries: dict[str, tuple[str, str]]) -> str:
        digest = "".join(f"{mode} {path} {sha}\n" for path, (mode, sha) in sorted(entries.items()))
        sha = hashlib.sha1(b"tree " + digest.encode()).hexdigest()
        self.trees[sha] = dict(entries)
        return sha

    def _store_commit(self, tree: str, parents: list[str], message: str) -> str:
        self._counter += 1
        payload = f"{tree}|{','.join(parents)}|{message}|{self._counter}"
        sha = hashlib.sha1(payload.encode()).hexdigest()
        self.commits[sha] = FakeCommit(tree=tree, parents=list(parents), message=message)
        return sha

    # RemoteStore implementation

    async def get_authenticated_user(self) -> str:
        await self._enter("get_authenticated_user")
        return self.login

    async def get_repository(self, full_name: str) -> RepositoryInfo | None:
        await self._enter("get_repository")
        return self.repos.get(full_name)

    async def create_repository(self, name: str, description: str, private: bool) -> RepositoryInfo:
        await self._enter("create_repository")
        full_name = f"{self.login}/{name}"
        if full_name in self.repos:
            raise NameConflictError(f"name already exists on this account: {name}")
        return self.add_repository(full_name)

    async def list_repositories(self, limit: int = 100) -> list[RepositoryInfo]:
        await self._enter("list_repositories")
        return list(self.repos.values())[:limit]

    async def get_branch_tip(self, full_name: str, branch: str) -> str | None:
        await self._enter("get_branch_tip")
        self._require_repo(full_name)
        return self.refs.get((full_name, branch))

    async def get_commit_tree(self, full_name: str, commit_sha: str) -> str:
        await self._enter("get_commit_tree")
        return self.commits[commit_sha].tree

    async def create_blob(self, full_name: str, content: bytes) -> str:
        await self._enter("create_blob")
        self._require_repo(full_name)
        return self._store_blob(content)

    async def create_tree(
        self,
        full_name: str,
        entries: list[TreeEntry],
        base_tree: str | None = None,
    ) -> str:
        await self._enter("create_tree")
        layered = dict(self.trees[base_tree]) if base_tree else {}
        for entry in entries:
            if entry.sha not in self.blobs:
                raise TransportError(f"Unknown blob {entry.sha}", status_code=422)
            layered[entry.path] = (entry.mode, entry.sha)
        return self._store_tree(layered)

    async def create_commit(
        self,
        full_name: str,
        message: str,
        tree_sha: str,
        parents: list[str],
    ) -> str:
        await self._enter("create_commit")
        return self._store_commit(tree_sha, parents, message)

    async def create_ref(self, full_name: str, branch: str, sha: str) -> None:
        await self._enter("create_ref")
        if (full_name, branch) in self.refs:
            raise RefConflictError("Reference already exists", branch=branch)
        self.refs[(full_name, branch)] = sha

    async def update_ref(self, full_name: str, branch: str, sha: str, expected_sha: str) -> None:
        await self._enter("update_ref")
        if self.refs.get((full_name, branch)) != expected_sha:
            raise RefConflictError(f"Expected {branch} to point at {expected_sha[:7]}", branch=branch)
        self.refs[(full_name, branch)] = sha


@pytest.fixture
def store() -> FakeRemoteStore:
    """Create an empty in-memory remote store."""
    return FakeRemoteStore()


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def default_config() -> SkillshipConfig:
    """Create a default SkillshipConfig for testing."""
    return SkillshipConfig()
