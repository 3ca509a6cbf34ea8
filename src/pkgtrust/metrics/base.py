"""
Shared metric types and the timed evaluation runner.
"""

import logging
import math
import time
from typing import Awaitable, Callable, NamedTuple

from pkgtrust.analyzers.github import GitHubClient
from pkgtrust.models.schemas import MetricKind, MetricResult, RepositoryIdentity

logger = logging.getLogger(__name__)

# Reads the raw signals for one repository and normalizes them to [0, 1].
# Returns None when the signal is structurally absent from the repository.
Measure = Callable[[RepositoryIdentity, GitHubClient], Awaitable[float | None]]


class MetricSpec(NamedTuple):
    """Specification for a metric evaluator."""

    kind: MetricKind
    measure: Measure
    fallback: float  # Score when the data fetch fails
    neutral: float  # Score when the signal does not exist
    max_calls: int  # Worst-case GitHub API calls made by measure


def clamp(score: float) -> float:
    """Clamp a score to [0, 1]."""
    return min(1.0, max(0.0, score))


async def evaluate_metric(
    spec: MetricSpec,
    repository: RepositoryIdentity,
    client: GitHubClient,
) -> MetricResult:
    """Run one evaluator, timing it and absorbing any failure.

    Always returns a well-formed MetricResult. Failures degrade to the
    metric's fallback score and are logged as warnings.
    """
    start = time.perf_counter()
    try:
        raw = await spec.measure(repository, client)
    except Exception as e:
        logger.warning(
            f"{spec.kind.value} degraded for {repository.slug}: {type(e).__name__}: {e}. "
            f"Using fallback score {spec.fallback}"
        )
        score = spec.fallback
    else:
        if raw is None:
            logger.debug(f"{spec.kind.value}: no signal for {repository.slug}, using {spec.neutral}")
            score = spec.neutral
        elif math.isnan(raw):
            logger.warning(f"{spec.kind.value}: undefined score for {repository.slug}")
            score = spec.fallback
        else:
            score = raw
    latency = time.perf_counter() - start

    return MetricResult(name=spec.kind, score=clamp(score), latency_seconds=latency)
