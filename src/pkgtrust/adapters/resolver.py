"""Turns batch references into repository identities."""

from pkgtrust.adapters.base import ResolutionError, parse_repo_url
from pkgtrust.adapters.npm import NpmAdapter
from pkgtrust.models.schemas import RepositoryIdentity


class ReferenceResolver:
    """Resolves GitHub and npm package URLs.

    GitHub URLs are parsed locally; npm URLs go through the npm registry.
    """

    def __init__(self, npm: NpmAdapter | None = None) -> None:
        self.npm = npm or NpmAdapter()

    async def resolve(self, reference: str) -> RepositoryIdentity:
        """Resolve one reference.

        Raises:
            ResolutionError: If the reference is malformed or on an unsupported host.
        """
        reference = reference.strip()
        if "github.com" in reference:
            identity = parse_repo_url(reference)
            if identity is None:
                raise ResolutionError(reference, "malformed GitHub URL")
            return identity
        if "npmjs.com" in reference:
            return await self.npm.resolve(reference)
        raise ResolutionError(reference)
