"""Tests for GitHubClient."""

from __future__ import annotations

import base64
import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from skillship.deploy.errors import (
    NameConflictError,
    RefConflictError,
    RepositoryNotFoundError,
    TransportError,
)
from skillship.deploy.models import MODE_FILE, TreeEntry
from skillship.github.client import GitHubClient, graphql_url
from skillship.github.store import RemoteStore

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]

REPO_JSON = {
    "name": "hub",
    "full_name": "user/hub",
    "html_url": "https://github.com/user/hub",
    "default_branch": "main",
    "node_id": "R_kgDOhub",
}


def make_client(
    handler: Callable[[httpx.Request], httpx.Response],
    requests: list[httpx.Request] | None = None,
) -> GitHubClient:
    def recording(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return handler(request)

    return GitHubClient(token="ghp_test", transport=httpx.MockTransport(recording))


def body(request: httpx.Request) -> dict[str, Any]:
    return json.loads(request.content)


class TestGitHubClientBasics:
    """Tests for client construction and headers."""

    async def test_satisfies_remote_store(self) -> None:
        client = make_client(lambda r: httpx.Response(200, json={}))
        assert isinstance(client, RemoteStore)
        await client.close()

    async def test_sends_auth_and_version_headers(self) -> None:
        requests: list[httpx.Request] = []
        async with make_client(lambda r: httpx.Response(200, json={"login": "octocat"}), requests) as client:
            login = await client.get_authenticated_user()

        assert login == "octocat"
        request = requests[0]
        assert request.url.path == "/user"
        assert request.headers["Authorization"] == "Bearer ghp_test"
        assert request.headers["Accept"] == "application/vnd.github+json"
        assert request.headers["X-GitHub-Api-Version"] == "2022-11-28"

    async def test_api_url_trailing_slash(self) -> None:
        client = GitHubClient(token="t", api_url="https://ghe.example.com/api/v3/")
        assert client.api_url == "https://ghe.example.com/api/v3"
        await client.close()


class TestRepositories:
    """Tests for repository metadata calls."""

    async def test_get_repository(self) -> None:
        async with make_client(lambda r: httpx.Response(200, json=REPO_JSON)) as client:
            repo = await client.get_repository("user/hub")

        assert repo is not None
        assert repo.full_name == "user/hub"
        assert repo.default_branch == "main"

    async def test_get_repository_missing(self) -> None:
        async with make_client(lambda r: httpx.Response(404, json={"message": "Not Found"})) as client:
            assert await client.get_repository("user/missing") is None

    async def test_create_repository_payload(self) -> None:
        requests: list[httpx.Request] = []
        async with make_client(lambda r: httpx.Response(201, json=REPO_JSON), requests) as client:
            repo = await client.create_repository("hub", "Agent Skill: demo", private=True)

        assert repo.html_url == "https://github.com/user/hub"
        assert requests[0].method == "POST"
        assert requests[0].url.path == "/user/repos"
        assert body(requests[0]) == {
            "name": "hub",
            "description": "Agent Skill: demo",
            "private": True,
            "auto_init": False,
            "has_issues": True,
            "has_wiki": False,
        }

    async def test_create_repository_name_taken(self) -> None:
        response = httpx.Response(
            422, json={"message": "Repository creation failed.", "errors": [{"message": "name already exists"}]}
        )
        async with make_client(lambda r: response) as client:
            with pytest.raises(NameConflictError):
                await client.create_repository("hub", "", private=False)

    async def test_list_repositories(self) -> None:
        requests: list[httpx.Request] = []
        async with make_client(lambda r: httpx.Response(200, json=[REPO_JSON, REPO_JSON]), requests) as client:
            repos = await client.list_repositories(limit=1)

        assert len(repos) == 1
        assert requests[0].url.params["sort"] == "updated"
        assert requests[0].url.params["per_page"] == "1"


class TestGitData:
    """Tests for blob, tree, commit and ref calls."""

    async def test_get_branch_tip(self) -> None:
        requests: list[httpx.Request] = []
        response = httpx.Response(200, json={"ref": "refs/heads/main", "object": {"sha": "abc123"}})
        async with make_client(lambda r: response, requests) as client:
            tip = await client.get_branch_tip("user/hub", "main")

        assert tip == "abc123"
        assert requests[0].url.path == "/repos/user/hub/git/ref/heads/main"

    @pytest.mark.parametrize("status", [404, 409])
    async def test_get_branch_tip_without_commits(self, status: int) -> None:
        async with make_client(lambda r: httpx.Response(status, json={"message": "Git Repository is empty."})) as client:
            assert await client.get_branch_tip("user/hub", "main") is None

    async def test_get_commit_tree(self) -> None:
        response = httpx.Response(200, json={"sha": "abc", "tree": {"sha": "tree1"}})
        async with make_client(lambda r: response) as client:
            assert await client.get_commit_tree("user/hub", "abc") == "tree1"

    async def test_create_blob_base64(self) -> None:
        requests: list[httpx.Request] = []
        async with make_client(lambda r: httpx.Response(201, json={"sha": "blob1"}), requests) as client:
            sha = await client.create_blob("user/hub", b"\x00\x01binary")

        assert sha == "blob1"
        payload = body(requests[0])
        assert payload["encoding"] == "base64"
        assert base64.b64decode(payload["content"]) == b"\x00\x01binary"

    async def test_create_tree_with_base(self) -> None:
        requests: list[httpx.Request] = []
        entries = [TreeEntry(path="skills/demo/SKILL.md", mode=MODE_FILE, sha="blob1")]
        async with make_client(lambda r: httpx.Response(201, json={"sha": "tree2"}), requests) as client:
            sha = await client.create_tree("user/hub", entries, base_tree="tree1")

        assert sha == "tree2"
        assert body(requests[0]) == {
            "tree": [{"path": "skills/demo/SKILL.md", "mode": "100644", "type": "blob", "sha": "blob1"}],
            "base_tree": "tree1",
        }

    async def test_create_tree_without_base(self) -> None:
        requests: list[httpx.Request] = []
        async with make_client(lambda r: httpx.Response(201, json={"sha": "tree2"}), requests) as client:
            await client.create_tree("user/hub", [])

        assert "base_tree" not in body(requests[0])

    async def test_create_commit(self) -> None:
        requests: list[httpx.Request] = []
        async with make_client(lambda r: httpx.Response(201, json={"sha": "c1"}), requests) as client:
            sha = await client.create_commit("user/hub", "msg", "tree1", ["p1"])

        assert sha == "c1"
        assert body(requests[0]) == {"message": "msg", "tree": "tree1", "parents": ["p1"]}

    async def test_create_ref(self) -> None:
        requests: list[httpx.Request] = []
        async with make_client(lambda r: httpx.Response(201, json={}), requests) as client:
            await client.create_ref("user/hub", "main", "c1")

        assert requests[0].url.path == "/repos/user/hub/git/refs"
        assert body(requests[0]) == {"ref": "refs/heads/main", "sha": "c1"}

    async def test_create_ref_exists(self) -> None:
        response = httpx.Response(422, json={"message": "Reference already exists"})
        async with make_client(lambda r: response) as client:
            with pytest.raises(RefConflictError, match="Reference already exists"):
                await client.create_ref("user/hub", "main", "c1")

    async def test_update_ref_sends_expected_tip(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/graphql":
                return httpx.Response(200, json={"data": {"updateRefs": {"clientMutationId": None}}})
            return httpx.Response(200, json=REPO_JSON)

        async with make_client(handler, requests) as client:
            await client.update_ref("user/hub", "main", "b" * 40, "a" * 40)
            await client.update_ref("user/hub", "main", "c" * 40, "b" * 40)

        assert [r.url.path for r in requests] == ["/repos/user/hub", "/graphql", "/graphql"]
        payload = body(requests[1])
        assert "updateRefs" in payload["query"]
        assert payload["variables"] == {
            "repositoryId": "R_kgDOhub",
            "refUpdates": [
                {
                    "name": "refs/heads/main",
                    "afterOid": "b" * 40,
                    "beforeOid": "a" * 40,
                    "force": False,
                }
            ],
        }

    async def test_update_ref_reuses_known_repository_id(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/graphql":
                return httpx.Response(200, json={"data": {"updateRefs": {"clientMutationId": None}}})
            return httpx.Response(200, json=REPO_JSON)

        async with make_client(handler, requests) as client:
            await client.get_repository("user/hub")
            await client.update_ref("user/hub", "main", "b" * 40, "a" * 40)

        assert [r.url.path for r in requests] == ["/repos/user/hub", "/graphql"]

    async def test_update_ref_rejects_moved_branch(self) -> None:
        """A branch rewound or advanced past the observed tip is a conflict."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/graphql":
                return httpx.Response(
                    200,
                    json={
                        "data": {"updateRefs": None},
                        "errors": [{"message": "Expected refs/heads/main to point to aaaaaaa"}],
                    },
                )
            return httpx.Response(200, json=REPO_JSON)

        async with make_client(handler) as client:
            with pytest.raises(RefConflictError) as exc_info:
                await client.update_ref("user/hub", "main", "b" * 40, "a" * 40)

        assert exc_info.value.branch == "main"
        assert "Expected refs/heads/main" in str(exc_info.value)

    async def test_update_ref_access_error_is_transport(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/graphql":
                return httpx.Response(
                    200,
                    json={"data": None, "errors": [{"type": "FORBIDDEN", "message": "Resource not accessible"}]},
                )
            return httpx.Response(200, json=REPO_JSON)

        async with make_client(handler) as client:
            with pytest.raises(TransportError) as exc_info:
                await client.update_ref("user/hub", "main", "b" * 40, "a" * 40)

        assert not isinstance(exc_info.value, RefConflictError)

    async def test_update_ref_missing_repository(self) -> None:
        async with make_client(lambda r: httpx.Response(404, json={"message": "Not Found"})) as client:
            with pytest.raises(RepositoryNotFoundError):
                await client.update_ref("user/gone", "main", "b" * 40, "a" * 40)

    @pytest.mark.parametrize(
        ("api_url", "expected"),
        [
            ("https://api.github.com", "https://api.github.com/graphql"),
            ("https://ghe.example.com/api/v3/", "https://ghe.example.com/api/graphql"),
        ],
    )
    async def test_graphql_url(self, api_url: str, expected: str) -> None:
        assert graphql_url(api_url) == expected


class TestTransportErrors:
    """Tests for error mapping."""

    async def test_http_error_carries_status(self) -> None:
        response = httpx.Response(401, json={"message": "Bad credentials"})
        async with make_client(lambda r: response) as client:
            with pytest.raises(TransportError) as exc_info:
                await client.get_authenticated_user()

        assert exc_info.value.status_code == 401
        assert "Bad credentials" in str(exc_info.value)

    async def test_rate_limit_message(self) -> None:
        response = httpx.Response(
            403,
            json={"message": "API rate limit exceeded"},
            headers={"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1700000000"},
        )
        async with make_client(lambda r: response) as client:
            with pytest.raises(TransportError) as exc_info:
                await client.create_blob("user/hub", b"x")

        assert exc_info.value.status_code == 403
        assert "rate limit exhausted" in str(exc_info.value)

    async def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_client(handler) as client:
            with pytest.raises(TransportError, match="timed out") as exc_info:
                await client.get_repository("user/hub")

        assert exc_info.value.status_code is None

    async def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(TransportError, match="request failed"):
                await client.get_repository("user/hub")

    async def test_non_json_error_body(self) -> None:
        async with make_client(lambda r: httpx.Response(502, text="Bad Gateway")) as client:
            with pytest.raises(TransportError) as exc_info:
                await client.create_commit("user/hub", "m", "t", [])

        assert exc_info.value.status_code == 502
        assert exc_info.value.response_body == "Bad Gateway"
