"""License compatibility metric."""

from pkgtrust.analyzers.github import GitHubClient
from pkgtrust.metrics.base import MetricSpec
from pkgtrust.models.schemas import MetricKind, RepositoryIdentity

# SPDX identifiers the registry accepts for redistribution alongside LGPL-2.1 code
APPROVED_LICENSES = frozenset(
    {
        "MIT",
        "MIT-0",
        "BSD-2-Clause",
        "BSD-3-Clause",
        "0BSD",
        "ISC",
        "Zlib",
        "Unlicense",
        "CC0-1.0",
        "Apache-2.0",
        "LGPL-2.1",
        "LGPL-2.1-only",
        "LGPL-2.1-or-later",
        "LGPL-3.0",
        "LGPL-3.0-only",
        "LGPL-3.0-or-later",
        "MPL-2.0",
        "Artistic-2.0",
    }
)


def license_score(spdx_id: str | None) -> float:
    """1.0 for an approved SPDX id, 0.0 for anything else."""
    return 1.0 if spdx_id in APPROVED_LICENSES else 0.0


async def measure_license(repository: RepositoryIdentity, client: GitHubClient) -> float | None:
    data = await client.fetch_license(repository.owner, repository.name)
    if not data:
        return None

    spdx_id = (data.get("license") or {}).get("spdx_id")
    if not spdx_id or spdx_id == "NOASSERTION":
        return None
    return license_score(spdx_id)


METRIC = MetricSpec(
    kind=MetricKind.LICENSE,
    measure=measure_license,
    fallback=0.0,
    neutral=0.0,
    max_calls=1,
)
