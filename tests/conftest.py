"""Pytest configuration and fixtures."""

from collections.abc import Callable

import httpx
import pytest

from pkgtrust.analyzers.github import GitHubClient
from pkgtrust.models.schemas import MetricKind, MetricResult, NetScoreResult, RepositoryIdentity

RESET_EPOCH = 1_900_000_000


def github_handler(
    routes: dict,
    remaining: int = 4999,
    limit: int = 5000,
    reset: int = RESET_EPOCH,
    calls: list[str] | None = None,
) -> Callable[[httpx.Request], httpx.Response]:
    """Build a MockTransport handler that fakes the GitHub REST API.

    routes maps a request path to a JSON body (served with status 200), a
    (status, body) tuple, or an exception instance to raise. Unknown paths
    return 404. Every response carries X-RateLimit-* headers.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if calls is not None:
            calls.append(path)

        if path == "/rate_limit":
            core = {"remaining": remaining, "limit": limit, "reset": reset}
            return httpx.Response(200, json={"resources": {"core": core}, "rate": core})

        headers = {
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Reset": str(reset),
        }
        route = routes.get(path)
        if route is None:
            return httpx.Response(404, json={"message": "Not Found"}, headers=headers)
        if isinstance(route, Exception):
            raise route
        if isinstance(route, tuple):
            status, body = route
            return httpx.Response(status, json=body, headers=headers)

        # Paginated endpoints only have a first page
        if isinstance(route, list) and request.url.params.get("page", "1") != "1":
            return httpx.Response(200, json=[], headers=headers)
        return httpx.Response(200, json=route, headers=headers)

    return handler


def make_github_client(routes: dict, **kwargs) -> GitHubClient:
    """GitHubClient wired to a fake API."""
    transport = httpx.MockTransport(github_handler(routes, **kwargs))
    return GitHubClient(token="test-token", client=httpx.AsyncClient(transport=transport))


def healthy_repo_routes(owner: str = "acme", repo: str = "widget") -> dict:
    """Routes for a well-run repository with an approved license."""
    base = f"/repos/{owner}/{repo}"
    return {
        f"{base}/readme": {"name": "README.md", "size": 8000},
        f"{base}/contents": [
            {"name": "docs", "type": "dir"},
            {"name": "examples", "type": "dir"},
            {"name": "CONTRIBUTING.md", "type": "file"},
        ],
        f"{base}/contributors": [
            {"login": "alice", "type": "User", "contributions": 50},
            {"login": "bob", "type": "User", "contributions": 50},
            {"login": "carol", "type": "User", "contributions": 50},
            {"login": "dependabot[bot]", "type": "Bot", "contributions": 500},
        ],
        f"{base}/issues": [
            {"state": "closed", "created_at": "2024-01-01T00:00:00Z", "closed_at": "2024-01-02T00:00:00Z"},
            {"state": "closed", "created_at": "2024-01-03T00:00:00Z", "closed_at": "2024-01-04T00:00:00Z"},
            {"state": "closed", "created_at": "2024-01-05T00:00:00Z", "closed_at": "2024-01-06T00:00:00Z"},
            {"state": "open", "created_at": "2024-01-07T00:00:00Z", "closed_at": None},
        ],
        f"{base}/actions/runs": {
            "workflow_runs": [
                {"status": "completed", "conclusion": "success"},
                {"status": "completed", "conclusion": "success"},
            ]
        },
        f"{base}/license": {"license": {"key": "mit", "spdx_id": "MIT"}},
    }


def unlicensed_repo_routes(owner: str = "solo", repo: str = "gadget") -> dict:
    """Routes for a single-maintainer repository with no license."""
    base = f"/repos/{owner}/{repo}"
    return {
        f"{base}/readme": {"name": "README.md", "size": 300},
        f"{base}/contents": [{"name": "index.js", "type": "file"}],
        f"{base}/contributors": [{"login": "solo", "type": "User", "contributions": 120}],
        f"{base}/issues": [
            {"state": "open", "created_at": "2024-01-01T00:00:00Z", "closed_at": None},
            {"state": "closed", "created_at": "2024-01-01T00:00:00Z", "closed_at": "2024-03-01T00:00:00Z"},
        ],
    }


@pytest.fixture
def repository() -> RepositoryIdentity:
    return RepositoryIdentity.for_github("acme", "widget")


@pytest.fixture
def sample_result(repository: RepositoryIdentity) -> NetScoreResult:
    """A scored package with fixed sub-metric values."""
    scores = [0.5, 0.6, 0.7, 1.0, 0.4]
    return NetScoreResult(
        repository=repository,
        sub_metrics=tuple(
            MetricResult(name=kind, score=score, latency_seconds=0.01 * (i + 1))
            for i, (kind, score) in enumerate(zip(MetricKind, scores))
        ),
        net_score=0.68,
        net_score_latency_seconds=0.25,
    )
