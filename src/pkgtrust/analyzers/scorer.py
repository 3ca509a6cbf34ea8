"""Net score aggregation over the five sub-metrics."""

import asyncio
import logging
import time
from collections.abc import Sequence

from pkgtrust.analyzers.github import GitHubClient
from pkgtrust.metrics.base import evaluate_metric
from pkgtrust.metrics.registry import EVALUATORS, expected_call_cost
from pkgtrust.models.schemas import (
    MetricKind,
    MetricResult,
    NetScoreResult,
    QuotaStatus,
    RepositoryIdentity,
)

logger = logging.getLogger(__name__)

# Percentage weights per metric (total 100%):
# - Correctness: 25%
# - License: 25%
# - Bus Factor: 20%
# - Ramp Up: 15%
# - Maintainability: 15%
WEIGHTS: dict[MetricKind, int] = {
    MetricKind.RAMP_UP: 15,
    MetricKind.BUS_FACTOR: 20,
    MetricKind.CORRECTNESS: 25,
    MetricKind.LICENSE: 25,
    MetricKind.MAINTAINABILITY: 15,
}


class QuotaExhaustedError(Exception):
    """Raised when the GitHub budget is below the floor for one more package."""

    def __init__(self, status: QuotaStatus, floor: int) -> None:
        self.status = status
        self.floor = floor
        super().__init__(
            f"GitHub API quota exhausted: {status.remaining} of {status.limit} calls left, "
            f"{floor} needed per package"
        )


class AggregationError(Exception):
    """Raised when the sub-metrics of a package are not exactly one per kind."""


def compute_net_score(sub_metrics: Sequence[MetricResult]) -> float:
    """Weighted sum of the sub-metric scores.

    Raises:
        AggregationError: Unless there is exactly one result per MetricKind.
    """
    kinds = [result.name for result in sub_metrics]
    if sorted(kinds, key=list(MetricKind).index) != list(MetricKind):
        raise AggregationError(
            f"Need one result per metric, got {[kind.value for kind in kinds]}"
        )

    total = sum(WEIGHTS[result.name] * result.score for result in sub_metrics) / 100
    return min(1.0, max(0.0, total))


class NetScorer:
    """Scores one repository: quota pre-flight, concurrent sub-metrics, weighting."""

    def __init__(self, client: GitHubClient, quota_floor: int | None = None) -> None:
        """Initialize the scorer.

        Args:
            client: Shared quota-aware GitHub client.
            quota_floor: Minimum remaining calls required before scoring a
                package. Defaults to the evaluators' combined worst-case cost.
        """
        self.client = client
        self.quota_floor = quota_floor if quota_floor is not None else expected_call_cost()

    async def check_quota(self) -> QuotaStatus:
        """Raise QuotaExhaustedError if another package cannot be afforded."""
        status = await self.client.get_quota_status()
        if status.remaining < self.quota_floor:
            raise QuotaExhaustedError(status, self.quota_floor)
        return status

    async def score(self, repository: RepositoryIdentity) -> NetScoreResult:
        """Calculate all sub-metrics and the net score for a repository.

        Raises:
            QuotaExhaustedError: If the remaining budget is below the floor.
            AggregationError: If the evaluators did not produce one result per metric.
        """
        start = time.perf_counter()

        await self.check_quota()

        sub_metrics = await asyncio.gather(
            *(evaluate_metric(EVALUATORS[kind], repository, self.client) for kind in MetricKind)
        )
        net_score = compute_net_score(sub_metrics)
        latency = time.perf_counter() - start

        logger.debug(
            f"{repository.slug}: net score {net_score:.3f} in {latency:.3f}s "
            f"({', '.join(f'{m.name.value}={m.score:.2f}' for m in sub_metrics)})"
        )

        return NetScoreResult(
            repository=repository,
            sub_metrics=tuple(sub_metrics),
            net_score=net_score,
            net_score_latency_seconds=latency,
        )
