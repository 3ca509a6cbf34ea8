"""Data models and schemas."""

from pkgtrust.models.schemas import (
    DependencyRecord,
    MetricKind,
    MetricResult,
    NetScoreResult,
    PackageRecord,
    QuotaStatus,
    RepositoryIdentity,
)

__all__ = [
    "DependencyRecord",
    "MetricKind",
    "MetricResult",
    "NetScoreResult",
    "PackageRecord",
    "QuotaStatus",
    "RepositoryIdentity",
]
