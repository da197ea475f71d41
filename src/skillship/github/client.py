"""Async GitHub client.

Implements the RemoteStore interface on top of the GitHub REST API,
using the low-level Git data endpoints (blobs, trees, commits, refs)
rather than a working copy. Branch updates go through the GraphQL
updateRefs mutation, which accepts the expected current tip.
"""

from __future__ import annotations

import base64
import logging
from typing import Any

import httpx

from skillship.deploy.errors import (
    NameConflictError,
    RefConflictError,
    RepositoryNotFoundError,
    TransportError,
)
from skillship.deploy.models import BranchRef, TreeEntry
from skillship.github.store import RepositoryInfo

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_API_VERSION = "2022-11-28"

UPDATE_REFS_MUTATION = """
mutation($repositoryId: ID!, $refUpdates: [RefUpdate!]!) {
  updateRefs(input: {repositoryId: $repositoryId, refUpdates: $refUpdates}) {
    clientMutationId
  }
}
"""

# GraphQL error types that mean the request was refused, not that the ref moved
_GRAPHQL_ACCESS_ERRORS = {"FORBIDDEN", "NOT_FOUND", "UNAUTHORIZED", "RATE_LIMITED", "INSUFFICIENT_SCOPES"}


def _error_message(response: httpx.Response) -> str:
    """Pull the provider's message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase


def graphql_url(api_url: str) -> str:
    """GraphQL endpoint for a REST base URL (Enterprise serves it beside /api/v3)."""
    api_url = api_url.rstrip("/")
    if api_url.endswith("/v3"):
        return f"{api_url.removesuffix('/v3')}/graphql"
    return f"{api_url}/graphql"


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class GitHubClient:
    """Async HTTP client for the GitHub REST API.

    Every request is bounded by the client timeout, so an abandoned
    deployment cannot hang on a stalled connection.

    Args:
        token: OAuth or personal access token. Never logged.
        api_url: API base URL (GitHub Enterprise installs differ)
        timeout: Per-request timeout in seconds
        user_agent: User-Agent header value
        api_version: Value of the X-GitHub-Api-Version header
        transport: Optional httpx transport, used by tests
    """

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        user_agent: str = "skillship",
        api_version: str = DEFAULT_API_VERSION,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_url = api_url.rstrip("/")
        self._graphql_url = graphql_url(self._api_url)
        self._timeout = timeout
        self._node_ids: dict[str, str] = {}

        headers: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": api_version,
            "User-Agent": user_agent,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=self._api_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @property
    def api_url(self) -> str:
        return self._api_url

    @property
    def timeout(self) -> float:
        return self._timeout

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        allow_status: tuple[int, ...] = (),
    ) -> httpx.Response:
        """Send a request and raise TransportError for unexpected failures.

        Responses whose status is listed in allow_status are returned to the
        caller for endpoint-specific handling.
        """
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.TimeoutException as e:
            raise TransportError(f"GitHub request timed out: {method} {path}") from e
        except httpx.RequestError as e:
            raise TransportError(f"GitHub request failed: {method} {path}: {e}") from e

        if response.is_success or response.status_code in allow_status:
            return response

        message = _error_message(response)
        if response.status_code in (403, 429) and response.headers.get("x-ratelimit-remaining") == "0":
            reset = response.headers.get("x-ratelimit-reset", "unknown")
            message = f"{message} (rate limit exhausted, resets at {reset})"

        logger.warning(f"GitHub API error: {response.status_code} for {method} {path}: {message}")
        raise TransportError(
            f"GitHub API error on {method} {path}: {message}",
            status_code=response.status_code,
            response_body=_response_body(response),
        )

    async def get_authenticated_user(self) -> str:
        response = await self._request("GET", "/user")
        login: str = response.json()["login"]
        return login

    async def get_repository(self, full_name: str) -> RepositoryInfo | None:
        response = await self._request("GET", f"/repos/{full_name}", allow_status=(404,))
        if response.status_code == 404:
            return None
        return self._remember(RepositoryInfo.from_api(response.json()))

    async def create_repository(
        self, name: str, description: str, private: bool
    ) -> RepositoryInfo:
        body = {
            "name": name,
            "description": description,
            "private": private,
            "auto_init": False,
            "has_issues": True,
            "has_wiki": False,
        }
        response = await self._request("POST", "/user/repos", json=body, allow_status=(422,))
        if response.status_code == 422:
            raise NameConflictError(f"Repository {name} could not be created: {_error_message(response)}")
        return self._remember(RepositoryInfo.from_api(response.json()))

    async def list_repositories(self, limit: int = 100) -> list[RepositoryInfo]:
        params = {"sort": "updated", "per_page": min(max(limit, 1), 100)}
        response = await self._request("GET", "/user/repos", params=params)
        return [RepositoryInfo.from_api(item) for item in response.json()][:limit]

    async def get_branch_tip(self, full_name: str, branch: str) -> str | None:
        # 409 is returned for a repository without any commits
        response = await self._request(
            "GET",
            f"/repos/{full_name}/git/ref/heads/{branch}",
            allow_status=(404, 409),
        )
        if response.status_code in (404, 409):
            return None
        sha: str = response.json()["object"]["sha"]
        return sha

    async def get_commit_tree(self, full_name: str, commit_sha: str) -> str:
        response = await self._request("GET", f"/repos/{full_name}/git/commits/{commit_sha}")
        tree_sha: str = response.json()["tree"]["sha"]
        return tree_sha

    async def create_blob(self, full_name: str, content: bytes) -> str:
        body = {
            "content": base64.b64encode(content).decode("ascii"),
            "encoding": "base64",
        }
        response = await self._request("POST", f"/repos/{full_name}/git/blobs", json=body)
        sha: str = response.json()["sha"]
        return sha

    async def create_tree(
        self,
        full_name: str,
        entries: list[TreeEntry],
        base_tree: str | None = None,
    ) -> str:
        body: dict[str, Any] = {"tree": [entry.to_api() for entry in entries]}
        if base_tree:
            body["base_tree"] = base_tree
        response = await self._request("POST", f"/repos/{full_name}/git/trees", json=body)
        sha: str = response.json()["sha"]
        return sha

    async def create_commit(
        self,
        full_name: str,
        message: str,
        tree_sha: str,
        parents: list[str],
    ) -> str:
        body = {"message": message, "tree": tree_sha, "parents": parents}
        response = await self._request("POST", f"/repos/{full_name}/git/commits", json=body)
        sha: str = response.json()["sha"]
        return sha

    async def create_ref(self, full_name: str, branch: str, sha: str) -> None:
        body = {"ref": f"refs/{BranchRef(name=branch, sha=sha).ref_path}", "sha": sha}
        response = await self._request(
            "POST", f"/repos/{full_name}/git/refs", json=body, allow_status=(422,)
        )
        if response.status_code == 422:
            raise RefConflictError(
                f"Branch {branch} of {full_name} could not be created: {_error_message(response)}",
                branch=branch,
            )

    async def update_ref(
        self,
        full_name: str,
        branch: str,
        sha: str,
        expected_sha: str,
    ) -> None:
        # The REST ref endpoint only checks for a fast-forward. updateRefs
        # takes the observed tip as beforeOid and rejects any other value.
        ref = BranchRef(name=branch, sha=sha)
        variables = {
            "repositoryId": await self._repository_id(full_name),
            "refUpdates": [
                {
                    "name": f"refs/{ref.ref_path}",
                    "afterOid": sha,
                    "beforeOid": expected_sha,
                    "force": False,
                }
            ],
        }
        response = await self._request(
            "POST",
            self._graphql_url,
            json={"query": UPDATE_REFS_MUTATION, "variables": variables},
        )
        payload = response.json()
        errors = payload.get("errors") if isinstance(payload, dict) else None
        if not errors:
            return

        message = "; ".join(str(error.get("message", error)) for error in errors)
        if any(error.get("type") in _GRAPHQL_ACCESS_ERRORS for error in errors):
            logger.warning(f"GitHub GraphQL error updating {branch} of {full_name}: {message}")
            raise TransportError(
                f"GitHub GraphQL error updating {branch} of {full_name}: {message}",
                status_code=response.status_code,
                response_body=payload,
            )
        raise RefConflictError(
            f"Branch {branch} of {full_name} no longer points at {expected_sha[:7]}: {message}",
            branch=branch,
            status_code=response.status_code,
        )

    async def _repository_id(self, full_name: str) -> str:
        """Return the repository's GraphQL node ID, looking it up once."""
        node_id = self._node_ids.get(full_name)
        if node_id is None:
            repo = await self.get_repository(full_name)
            if repo is None:
                raise RepositoryNotFoundError(f"Repository {full_name} not found")
            if not repo.node_id:
                raise TransportError(f"GitHub returned no node_id for {full_name}")
            node_id = repo.node_id
        return node_id

    def _remember(self, repo: RepositoryInfo) -> RepositoryInfo:
        if repo.node_id:
            self._node_ids[repo.full_name] = repo.node_id
        return repo
