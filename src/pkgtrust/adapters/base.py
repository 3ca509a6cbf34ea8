"""Repository URL parsing shared by the reference adapters."""

import re

from pkgtrust.models.schemas import RepositoryIdentity


def normalize_git_url(url: str) -> str:
    """Rewrite the git transport forms npm metadata uses into https URLs.

    Handles:
    - git+https://github.com/owner/repo.git
    - git://github.com/owner/repo.git
    - ssh://git@github.com/owner/repo.git
    - git@github.com:owner/repo.git
    - github:owner/repo
    """
    url = url.strip()
    url = re.sub(r"^git\+", "", url)
    url = re.sub(r"^ssh://git@github\.com[:/]", "https://github.com/", url)
    url = re.sub(r"^git@github\.com:", "https://github.com/", url)
    url = re.sub(r"^git://", "https://", url)
    if url.startswith("github:"):
        url = f"https://github.com/{url[7:]}"
    return url.removesuffix("/").removesuffix(".git")


def parse_repo_url(url: str, origin_url: str | None = None, version: str | None = None) -> RepositoryIdentity | None:
    """Parse a GitHub repository URL into a RepositoryIdentity.

    Args:
        url: Repository URL in any of the forms accepted by normalize_git_url.
        origin_url: The reference the URL was resolved from. Defaults to url.
        version: Package version, when known.

    Returns:
        RepositoryIdentity if the URL points at a GitHub repository, None otherwise.
    """
    if not url:
        return None

    normalized = normalize_git_url(url)
    # https://github.com/owner/repo
    # https://github.com/owner/repo/tree/main/subpath
    match = re.match(r"(?:https?://)?(?:www\.)?github\.com/([^/\s]+)/([^/\s#?]+)", normalized)
    if not match:
        return None

    owner = match.group(1)
    name = match.group(2).removesuffix(".git")
    if not name:
        return None
    return RepositoryIdentity.for_github(owner, name, origin_url=origin_url or url.strip(), version=version)


def is_internal(url: str, internal_domain: str) -> bool:
    """Return True when url contains the internal registry domain.

    The test is a case-sensitive substring match; an empty domain matches nothing.
    """
    if not internal_domain:
        return False
    return internal_domain in url


class ResolutionError(Exception):
    """Raised when a batch reference cannot be turned into a repository."""

    def __init__(self, reference: str, reason: str = "unresolvable reference") -> None:
        self.reference = reference
        self.reason = reason
        super().__init__(f"{reason}: {reference}")
