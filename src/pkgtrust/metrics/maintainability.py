"""Maintainability metric: how quickly issues and pull requests get closed."""

import statistics
from datetime import datetime

from pkgtrust.analyzers.github import GitHubClient
from pkgtrust.metrics.base import MetricSpec
from pkgtrust.models.schemas import MetricKind, RepositoryIdentity

# Median close time (days) at which the score halves
HALF_SCORE_DAYS = 7.0


def _parse(timestamp: str) -> datetime:
    return datetime.fromisoformat(timestamp.replace("Z", "+00:00"))


def close_times_days(items: list[dict]) -> list[float]:
    """Days from creation to close for each closed item."""
    durations = []
    for item in items:
        created = item.get("created_at")
        closed = item.get("closed_at")
        if not created or not closed:
            continue
        seconds = (_parse(closed) - _parse(created)).total_seconds()
        durations.append(max(0.0, seconds) / 86400)
    return durations


def responsiveness_score(median_days: float) -> float:
    """Inverted close time: 0 days -> 1.0, 7 days -> 0.5, 28 days -> 0.2."""
    return 1.0 / (1.0 + median_days / HALF_SCORE_DAYS)


async def measure_maintainability(repository: RepositoryIdentity, client: GitHubClient) -> float | None:
    closed = await client.fetch_issues(
        repository.owner,
        repository.name,
        state="closed",
        max_pages=1,
        include_pulls=True,
        sort="updated",
    )
    durations = close_times_days(closed)
    if not durations:
        # Nothing closed yet
        return None
    return responsiveness_score(statistics.median(durations))


METRIC = MetricSpec(
    kind=MetricKind.MAINTAINABILITY,
    measure=measure_maintainability,
    fallback=0.5,
    neutral=0.5,
    max_calls=1,
)
