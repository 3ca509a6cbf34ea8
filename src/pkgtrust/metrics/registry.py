"""Lookup table from metric kind to evaluator."""

from pkgtrust.analyzers.github import GitHubClient
from pkgtrust.metrics import bus_factor, correctness, license, maintainability, ramp_up
from pkgtrust.metrics.base import MetricSpec, evaluate_metric
from pkgtrust.models.schemas import MetricKind, MetricResult, RepositoryIdentity

EVALUATORS: dict[MetricKind, MetricSpec] = {
    MetricKind.RAMP_UP: ramp_up.METRIC,
    MetricKind.BUS_FACTOR: bus_factor.METRIC,
    MetricKind.CORRECTNESS: correctness.METRIC,
    MetricKind.LICENSE: license.METRIC,
    MetricKind.MAINTAINABILITY: maintainability.METRIC,
}


def expected_call_cost() -> int:
    """Worst-case GitHub calls needed to evaluate one package."""
    return sum(spec.max_calls for spec in EVALUATORS.values())


async def evaluate(
    kind: MetricKind,
    repository: RepositoryIdentity,
    client: GitHubClient,
) -> MetricResult:
    """Evaluate one metric for a repository."""
    return await evaluate_metric(EVALUATORS[kind], repository, client)
