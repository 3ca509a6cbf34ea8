"""Pydantic models for package trust scoring."""

import json
import re
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

GITHUB_URL_PATTERN = re.compile(r"^https://github\.com/([^/\s]+)/([^/\s]+)$")


class MetricKind(str, Enum):
    """The five sub-metrics. Declaration order is the reporting order."""

    RAMP_UP = "RampUp"
    BUS_FACTOR = "BusFactor"
    CORRECTNESS = "Correctness"
    LICENSE = "License"
    MAINTAINABILITY = "Maintainability"


class RepositoryIdentity(BaseModel):
    """A package resolved to its GitHub repository."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(min_length=1)
    name: str = Field(min_length=1)
    canonical_url: str
    origin_url: str  # As given in the batch input (may be an npm URL)
    version: str | None = None
    registry_name: str | None = None  # npm package name, when resolved through the registry
    dependencies: tuple[str, ...] = ()  # Dependency URLs from the registry document

    @model_validator(mode="after")
    def _check_canonical_url(self) -> "RepositoryIdentity":
        match = GITHUB_URL_PATTERN.match(self.canonical_url)
        if not match:
            raise ValueError(f"Not a GitHub repository URL: {self.canonical_url}")
        if (match.group(1), match.group(2)) != (self.owner, self.name):
            raise ValueError(
                f"{self.canonical_url} does not point at {self.owner}/{self.name}"
            )
        return self

    @classmethod
    def for_github(
        cls,
        owner: str,
        name: str,
        origin_url: str | None = None,
        version: str | None = None,
        registry_name: str | None = None,
        dependencies: tuple[str, ...] = (),
    ) -> "RepositoryIdentity":
        """Build an identity from owner and repository name."""
        canonical = f"https://github.com/{owner}/{name}"
        return cls(
            owner=owner,
            name=name,
            canonical_url=canonical,
            origin_url=origin_url or canonical,
            version=version,
            registry_name=registry_name,
            dependencies=dependencies,
        )

    @property
    def package_name(self) -> str:
        """Registry name for npm packages, repository name otherwise."""
        return self.registry_name or self.name

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"


class MetricResult(BaseModel):
    """Score and computation cost of one sub-metric."""

    model_config = ConfigDict(frozen=True)

    name: MetricKind
    score: float = Field(ge=0, le=1, allow_inf_nan=False)
    latency_seconds: float = Field(ge=0, allow_inf_nan=False)


class NetScoreResult(BaseModel):
    """All sub-metrics of one package plus their weighted combination."""

    model_config = ConfigDict(frozen=True)

    repository: RepositoryIdentity
    sub_metrics: tuple[MetricResult, ...]
    net_score: float = Field(ge=0, le=1, allow_inf_nan=False)
    net_score_latency_seconds: float = Field(ge=0, allow_inf_nan=False)

    @model_validator(mode="after")
    def _check_sub_metrics(self) -> "NetScoreResult":
        kinds = tuple(result.name for result in self.sub_metrics)
        if kinds != tuple(MetricKind):
            expected = ", ".join(kind.value for kind in MetricKind)
            got = ", ".join(kind.value for kind in kinds) or "nothing"
            raise ValueError(f"Expected sub-metrics [{expected}], got [{got}]")
        return self

    def metric(self, kind: MetricKind) -> MetricResult:
        """Return the sub-metric result for a kind."""
        return self.sub_metrics[list(MetricKind).index(kind)]

    def summary_line(self) -> str:
        """One NDJSON line: URL, net score, then each sub-metric in order."""
        fields: dict[str, str | float] = {
            "URL": self.repository.origin_url,
            "NetScore": round(self.net_score, 3),
            "NetScore_Latency": round(self.net_score_latency_seconds, 3),
        }
        for result in self.sub_metrics:
            fields[result.name.value] = round(result.score, 3)
            fields[f"{result.name.value}_Latency"] = round(result.latency_seconds, 3)
        return json.dumps(fields)


class QuotaStatus(BaseModel):
    """Snapshot of the GitHub API call budget."""

    model_config = ConfigDict(frozen=True)

    remaining: int = Field(ge=0)
    limit: int = Field(gt=0)
    reset_at: datetime | None = None


# --- Persistence Models ---


class MetricScore(BaseModel):
    """A persisted (score, latency) pair."""

    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=0, le=1)
    latency_seconds: float = Field(ge=0)


class DependencyRecord(BaseModel):
    """A dependency URL and whether it lives on the internal registry."""

    model_config = ConfigDict(frozen=True)

    url: str
    is_internal: bool = False


class PackageRecord(BaseModel):
    """Row-level shape handed to the persistence sinks."""

    model_config = ConfigDict(frozen=True)

    package_name: str
    package_version: str
    repo_link: str
    origin_url: str
    is_internal: bool = False
    dependencies: list[DependencyRecord] = Field(default_factory=list)
    metrics: dict[MetricKind, MetricScore]
    net_score: float = Field(ge=0, le=1)
    net_score_latency_seconds: float = Field(ge=0)

    @classmethod
    def from_result(
        cls,
        result: NetScoreResult,
        is_internal: bool,
        default_version: str = "1.0.0",
        dependencies: list[DependencyRecord] | None = None,
    ) -> "PackageRecord":
        """Flatten a scoring result for storage."""
        repository = result.repository
        return cls(
            package_name=repository.package_name,
            package_version=repository.version or default_version,
            repo_link=repository.canonical_url,
            origin_url=repository.origin_url,
            is_internal=is_internal,
            dependencies=dependencies or [],
            metrics={
                metric.name: MetricScore(
                    score=metric.score, latency_seconds=metric.latency_seconds
                )
                for metric in result.sub_metrics
            },
            net_score=result.net_score,
            net_score_latency_seconds=result.net_score_latency_seconds,
        )
