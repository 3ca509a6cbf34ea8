"""NPM registry adapter: resolves npm package URLs to GitHub repositories."""

import logging

import httpx

from pkgtrust.adapters.base import ResolutionError, parse_repo_url
from pkgtrust.models.schemas import RepositoryIdentity

logger = logging.getLogger(__name__)


class NpmAdapter:
    """Adapter for the NPM package registry.

    Data source:
    - Package metadata: https://registry.npmjs.org/{package}
    """

    REGISTRY_URL = "https://registry.npmjs.org"

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the adapter.

        Args:
            client: Optional httpx client for making requests.
        """
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create an HTTP client."""
        if self._client is not None:
            return self._client
        return httpx.AsyncClient(timeout=30.0)

    async def _fetch_json(self, url: str) -> dict:
        """Fetch JSON from a URL."""
        client = await self._get_client()
        try:
            response = await client.get(url)
            response.raise_for_status()
            return response.json()
        finally:
            if self._client is None:
                await client.aclose()

    @staticmethod
    def package_name_from_url(npm_url: str) -> str | None:
        """Extract the package name from an npmjs.com URL.

        Supports scoped packages (https://www.npmjs.com/package/@org/pkg).
        """
        parts = NpmAdapter._path_parts(npm_url)
        if not parts:
            return None
        if parts[0].startswith("@"):
            return "/".join(parts[:2]) if len(parts) >= 2 else None
        return parts[0]

    @staticmethod
    def version_from_url(npm_url: str) -> str | None:
        """Extract the version from a .../package/<name>/v/<version> URL."""
        parts = NpmAdapter._path_parts(npm_url)
        name_length = 2 if parts and parts[0].startswith("@") else 1
        rest = parts[name_length:]
        if len(rest) >= 2 and rest[0] == "v" and rest[1]:
            return rest[1]
        return None

    @staticmethod
    def _path_parts(npm_url: str) -> list[str]:
        marker = "npmjs.com/package/"
        if marker not in npm_url:
            return []
        path = npm_url.split(marker, 1)[1].split("?", 1)[0].split("#", 1)[0].strip("/")
        return [part for part in path.split("/") if part]

    async def resolve(self, npm_url: str) -> RepositoryIdentity:
        """Resolve an npm package URL to its GitHub repository.

        Args:
            npm_url: URL like https://www.npmjs.com/package/axios.

        Returns:
            RepositoryIdentity whose origin_url is the npm URL and whose
            registry_name, version and dependencies come from the registry.

        Raises:
            ResolutionError: If the package does not exist, the registry reply
                is unusable, or the package has no GitHub repository.
        """
        name = self.package_name_from_url(npm_url)
        if not name:
            raise ResolutionError(npm_url, "not an npm package URL")

        # URL-encode scoped package names
        encoded_name = name.replace("/", "%2F")
        try:
            data = await self._fetch_json(f"{self.REGISTRY_URL}/{encoded_name}")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise ResolutionError(npm_url, "npm package not found") from e
            raise ResolutionError(npm_url, f"npm registry error {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ResolutionError(npm_url, f"npm registry unreachable ({e})") from e
        except ValueError as e:
            raise ResolutionError(npm_url, "invalid npm registry response") from e

        if not isinstance(data, dict):
            raise ResolutionError(npm_url, "invalid npm registry response")

        dist_tags = data.get("dist-tags") or {}
        versions = data.get("versions") or {}
        if not isinstance(dist_tags, dict) or not isinstance(versions, dict):
            raise ResolutionError(npm_url, "invalid npm registry response")

        version = self.version_from_url(npm_url) or dist_tags.get("latest")
        version_data = versions.get(version, {}) if version else {}
        if not isinstance(version_data, dict):
            raise ResolutionError(npm_url, "invalid npm registry response")

        repo_url = self._extract_repo_url(data.get("repository"))
        if repo_url is None:
            repo_url = self._extract_repo_url(version_data.get("repository"))

        identity = parse_repo_url(repo_url or "", origin_url=npm_url, version=version)
        if identity is None:
            raise ResolutionError(npm_url, "npm package has no GitHub repository")

        dependencies = self._dependency_urls(version_data.get("dependencies"))
        logger.info(
            f"Found GitHub URL for {npm_url}: {identity.canonical_url} "
            f"({len(dependencies)} dependencies)"
        )
        return identity.model_copy(update={"registry_name": name, "dependencies": dependencies})

    @staticmethod
    def _dependency_urls(dependencies: dict | None) -> tuple[str, ...]:
        """Turn a package.json dependencies map into dependency URLs.

        Specs that are already URLs (git, tarball, internal registry) are kept;
        plain semver ranges point at the package's npmjs.com page.
        """
        if not isinstance(dependencies, dict):
            return ()
        urls = []
        for dep_name, spec in dependencies.items():
            spec = str(spec)
            if "://" in spec or spec.startswith("git+"):
                urls.append(spec)
            else:
                urls.append(f"https://www.npmjs.com/package/{dep_name}")
        return tuple(urls)

    def _extract_repo_url(self, repository: dict | str | None) -> str | None:
        """Extract repository URL from npm repository field.

        Handles various formats:
        - {"type": "git", "url": "git+https://github.com/owner/repo.git"}
        - "github:owner/repo"
        - "owner/repo"
        - "https://github.com/owner/repo"
        """
        if not repository:
            return None

        if isinstance(repository, str):
            url = repository
        elif isinstance(repository, dict):
            url = repository.get("url", "")
        else:
            return None

        if not url:
            return None

        # Bare owner/repo shorthand defaults to GitHub
        if ":" not in url and url.count("/") == 1:
            url = f"https://github.com/{url}"

        return url
