"""Bus factor metric: how concentrated the contribution history is."""

from pkgtrust.analyzers.github import GitHubClient
from pkgtrust.metrics.base import MetricSpec
from pkgtrust.models.schemas import MetricKind, RepositoryIdentity

# Bot patterns to exclude
BOT_KEYWORDS = (
    "[bot]",
    "dependabot",
    "renovate",
    "github-actions",
    "greenkeeper",
    "snyk-bot",
    "actions-user",
)


def is_bot(contributor: dict) -> bool:
    """Check if a contributor entry appears to be a bot."""
    if contributor.get("type") == "Bot":
        return True
    login = str(contributor.get("login", "")).lower()
    return any(keyword in login for keyword in BOT_KEYWORDS)


def concentration_score(contributions: list[int]) -> float | None:
    """One minus the Herfindahl index of contribution shares.

    A single contributor scores 0, n equal contributors score 1 - 1/n.
    Returns None when there is no contribution volume.
    """
    total = sum(c for c in contributions if c > 0)
    if total == 0:
        return None
    hhi = sum((c / total) ** 2 for c in contributions if c > 0)
    return 1.0 - hhi


async def measure_bus_factor(repository: RepositoryIdentity, client: GitHubClient) -> float | None:
    contributors = await client.fetch_contributors(repository.owner, repository.name)
    humans = [c for c in contributors if not is_bot(c)]
    return concentration_score([int(c.get("contributions", 0)) for c in humans])


METRIC = MetricSpec(
    kind=MetricKind.BUS_FACTOR,
    measure=measure_bus_factor,
    fallback=0.0,
    neutral=0.0,
    max_calls=2,
)
