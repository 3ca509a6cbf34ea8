"""Quota-aware GitHub REST client."""

import logging
from datetime import datetime, timezone

import httpx

from pkgtrust.models.schemas import QuotaStatus

logger = logging.getLogger(__name__)


class GitHubClient:
    """Fetches repository signals from the GitHub API and tracks the call budget.

    One instance is shared by every evaluator in a run, so its quota counter is
    the single view of the remaining budget. The counter is only ever written
    by the client itself, from responses it receives.

    Set GITHUB_TOKEN in the environment or pass token to the constructor;
    unauthenticated clients get a much smaller budget.
    """

    BASE_URL = "https://api.github.com"

    def __init__(
        self,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            token: GitHub personal access token.
            client: Optional httpx client. If not provided, one is created and
                owned by this instance.
        """
        self._token = token
        self._client = client
        self._owns_client = client is None

        # Rate limit tracking
        self.rate_limit_remaining: int = 5000 if token else 60
        self.rate_limit_total: int = 5000 if token else 60
        self.rate_limit_reset: datetime | None = None

    async def __aenter__(self) -> "GitHubClient":
        await self._get_client()
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> dict[str, str]:
        """Get headers for GitHub API requests."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=30.0, headers=self._headers())
        return self._client

    @property
    def quota(self) -> QuotaStatus:
        """Last known quota, without a network call."""
        return QuotaStatus(
            remaining=max(0, self.rate_limit_remaining),
            limit=max(1, self.rate_limit_total),
            reset_at=self.rate_limit_reset,
        )

    def _update_rate_limits(self, response: httpx.Response) -> None:
        """Fold rate limit headers from a response into the shared counter.

        Responses to concurrent requests can arrive out of order, so within one
        reset window the counter only moves down. A later reset time means the
        budget was replenished and the header value is taken as is.
        """
        remaining = response.headers.get("X-RateLimit-Remaining")
        limit = response.headers.get("X-RateLimit-Limit")
        reset = response.headers.get("X-RateLimit-Reset")

        if limit is not None:
            self.rate_limit_total = int(limit)

        reset_at = None
        if reset is not None:
            reset_at = datetime.fromtimestamp(int(reset), tz=timezone.utc)

        if remaining is None:
            return

        new_window = (
            reset_at is not None
            and (self.rate_limit_reset is None or reset_at > self.rate_limit_reset)
        )
        if new_window:
            self.rate_limit_remaining = int(remaining)
            self.rate_limit_reset = reset_at
        else:
            self.rate_limit_remaining = min(self.rate_limit_remaining, int(remaining))

    async def _request(self, path: str, params: dict | None = None) -> httpx.Response:
        """Issue a quota-consuming GET and account for it."""
        client = await self._get_client()
        url = f"{self.BASE_URL}{path}"
        logger.debug(f"GET {url} {params or ''}")
        response = await client.get(url, params=params, headers=self._headers())
        self.rate_limit_remaining = max(0, self.rate_limit_remaining - 1)
        self._update_rate_limits(response)
        return response

    async def _fetch(self, path: str, params: dict | None = None) -> dict | list | None:
        """Fetch from GitHub API.

        Returns None if 404, raises on other errors.
        """
        response = await self._request(path, params)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    async def _fetch_all_pages(
        self,
        path: str,
        params: dict | None = None,
        max_pages: int = 10,
    ) -> list:
        """Fetch all pages from a paginated endpoint."""
        params = dict(params or {})
        params.setdefault("per_page", 100)

        results = []
        page = 1

        while page <= max_pages:
            params["page"] = page
            response = await self._request(path, params)
            if response.status_code == 404:
                break
            response.raise_for_status()

            data = response.json()
            if not data:
                break

            results.extend(data)

            # Check if there are more pages
            if len(data) < params["per_page"]:
                break
            page += 1

        return results

    async def get_quota_status(self) -> QuotaStatus:
        """Fetch the current core API budget.

        The /rate_limit endpoint does not count against the budget.
        """
        client = await self._get_client()
        response = await client.get(f"{self.BASE_URL}/rate_limit", headers=self._headers())
        response.raise_for_status()
        data = response.json()
        core = data.get("resources", {}).get("core") or data.get("rate", {})

        self.rate_limit_remaining = int(core.get("remaining", self.rate_limit_remaining))
        self.rate_limit_total = int(core.get("limit", self.rate_limit_total))
        if core.get("reset"):
            self.rate_limit_reset = datetime.fromtimestamp(int(core["reset"]), tz=timezone.utc)

        status = self.quota
        logger.debug(f"Rate limit status: {status.remaining} remaining out of {status.limit}")
        return status

    # --- Repository signals ---

    async def fetch_repo_info(self, owner: str, repo: str) -> dict | None:
        """Fetch basic repository information."""
        return await self._fetch(f"/repos/{owner}/{repo}")

    async def fetch_readme(self, owner: str, repo: str) -> dict | None:
        """Fetch README metadata (size, encoded content), None if absent."""
        return await self._fetch(f"/repos/{owner}/{repo}/readme")

    async def fetch_root_contents(self, owner: str, repo: str) -> list[dict]:
        """List files and directories at the repository root."""
        data = await self._fetch(f"/repos/{owner}/{repo}/contents")
        return data if isinstance(data, list) else []

    async def fetch_contributors(self, owner: str, repo: str, max_pages: int = 2) -> list[dict]:
        """Fetch contributors ordered by contribution count."""
        return await self._fetch_all_pages(
            f"/repos/{owner}/{repo}/contributors",
            max_pages=max_pages,
        )

    async def fetch_issues(
        self,
        owner: str,
        repo: str,
        state: str = "all",
        max_pages: int = 3,
        include_pulls: bool = False,
        sort: str = "created",
    ) -> list[dict]:
        """Fetch issues; the issues endpoint also returns pull requests."""
        issues = await self._fetch_all_pages(
            f"/repos/{owner}/{repo}/issues",
            params={"state": state, "sort": sort, "direction": "desc"},
            max_pages=max_pages,
        )
        if include_pulls:
            return issues
        # Filter out pull requests (they're included in issues endpoint)
        return [i for i in issues if "pull_request" not in i]

    async def fetch_workflow_runs(self, owner: str, repo: str, limit: int = 20) -> list[dict]:
        """Fetch the most recent GitHub Actions workflow runs."""
        data = await self._fetch(
            f"/repos/{owner}/{repo}/actions/runs",
            params={"per_page": limit},
        )
        if not isinstance(data, dict):
            return []
        return data.get("workflow_runs", [])

    async def fetch_license(self, owner: str, repo: str) -> dict | None:
        """Fetch the detected license, None if the repository has none."""
        return await self._fetch(f"/repos/{owner}/{repo}/license")
