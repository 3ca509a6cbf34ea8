"""Correctness metric: resolved-issue ratio blended with CI pass rate."""

from pkgtrust.analyzers.github import GitHubClient
from pkgtrust.metrics.base import MetricSpec
from pkgtrust.models.schemas import MetricKind, RepositoryIdentity

ISSUE_WEIGHT = 0.7
CI_SAMPLE_SIZE = 20


def resolved_ratio(issues: list[dict]) -> float | None:
    """Share of reported issues that are closed, None without issues."""
    if not issues:
        return None
    closed = sum(1 for issue in issues if issue.get("state") == "closed")
    return closed / len(issues)


def ci_pass_rate(runs: list[dict]) -> float | None:
    """Share of completed workflow runs that succeeded, None without runs."""
    completed = [run for run in runs if run.get("status") == "completed"]
    if not completed:
        return None
    successful = sum(1 for run in completed if run.get("conclusion") == "success")
    return successful / len(completed)


def combine(resolved: float | None, ci: float | None) -> float | None:
    if resolved is not None and ci is not None:
        return ISSUE_WEIGHT * resolved + (1 - ISSUE_WEIGHT) * ci
    if resolved is not None:
        return resolved
    return ci


async def measure_correctness(repository: RepositoryIdentity, client: GitHubClient) -> float | None:
    issues = await client.fetch_issues(repository.owner, repository.name, state="all", max_pages=3)
    runs = await client.fetch_workflow_runs(repository.owner, repository.name, limit=CI_SAMPLE_SIZE)
    return combine(resolved_ratio(issues), ci_pass_rate(runs))


METRIC = MetricSpec(
    kind=MetricKind.CORRECTNESS,
    measure=measure_correctness,
    fallback=0.0,
    neutral=0.5,
    max_calls=4,
)
