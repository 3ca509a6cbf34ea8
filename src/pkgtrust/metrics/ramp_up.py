"""Ramp-up metric: how quickly a new engineer can start using the package."""

import math

from pkgtrust.analyzers.github import GitHubClient
from pkgtrust.metrics.base import MetricSpec
from pkgtrust.models.schemas import MetricKind, RepositoryIdentity

# README size (bytes) at which the documentation component reaches ~63%
README_SCALE_BYTES = 4000
README_WEIGHT = 0.75

# Root entries that shorten onboarding; each group counts once
ONBOARDING_ENTRIES = (
    {"docs", "doc", "documentation"},
    {"examples", "example", "samples"},
    {"contributing.md", "contributing", "contributing.rst"},
)


def readme_score(size_bytes: int) -> float:
    """Saturating score for README length.

    1 - exp(-size / scale): 2 KB ~ 0.39, 4 KB ~ 0.63, 10 KB ~ 0.92, so very
    long READMEs gain little over thorough ones.
    """
    if size_bytes <= 0:
        return 0.0
    return 1.0 - math.exp(-size_bytes / README_SCALE_BYTES)


def onboarding_score(entries: list[dict]) -> float:
    """Fraction of onboarding entry groups present at the repository root."""
    names = {str(entry.get("name", "")).lower() for entry in entries}
    found = sum(1 for group in ONBOARDING_ENTRIES if names & group)
    return found / len(ONBOARDING_ENTRIES)


async def measure_ramp_up(repository: RepositoryIdentity, client: GitHubClient) -> float | None:
    readme = await client.fetch_readme(repository.owner, repository.name)
    entries = await client.fetch_root_contents(repository.owner, repository.name)

    if readme is None and not entries:
        return None

    size = int(readme.get("size", 0)) if readme else 0
    return README_WEIGHT * readme_score(size) + (1 - README_WEIGHT) * onboarding_score(entries)


METRIC = MetricSpec(
    kind=MetricKind.RAMP_UP,
    measure=measure_ramp_up,
    fallback=0.0,
    neutral=0.0,
    max_calls=2,
)
