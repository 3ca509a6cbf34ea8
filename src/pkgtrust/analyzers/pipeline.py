"""Batch scoring pipeline: resolve, score, emit, persist."""

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import httpx
import psycopg2
from pydantic import ValidationError

from pkgtrust.adapters.base import ResolutionError, is_internal
from pkgtrust.adapters.resolver import ReferenceResolver
from pkgtrust.analyzers.scorer import AggregationError, NetScorer, QuotaExhaustedError
from pkgtrust.config import DEFAULT_INTERNAL_DOMAIN, DEFAULT_PACKAGE_VERSION
from pkgtrust.models.schemas import DependencyRecord, NetScoreResult, PackageRecord
from pkgtrust.storage.base import ResultSink

logger = logging.getLogger(__name__)


def read_references(path: Path) -> list[str]:
    """Read one package reference per line, skipping blank lines."""
    with open(path, encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip()]


@dataclass
class BatchSummary:
    """Outcome of a batch run."""

    processed: int = 0
    skipped: int = 0
    quota_exhausted: bool = False
    results: list[NetScoreResult] = field(default_factory=list)


class ScoringPipeline:
    """Scores a batch of package references one at a time, in input order.

    Pipeline stages per reference:
    1. Resolve the reference to a GitHub repository
    2. Check the API quota and compute the five sub-metrics
    3. Emit the summary line
    4. Write the record to every sink
    """

    def __init__(
        self,
        resolver: ReferenceResolver,
        scorer: NetScorer,
        sinks: Sequence[ResultSink] = (),
        internal_domain: str = DEFAULT_INTERNAL_DOMAIN,
        default_version: str = DEFAULT_PACKAGE_VERSION,
        emit: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            resolver: Turns references into repository identities.
            scorer: Net scorer bound to the run's GitHub client.
            sinks: Persistence destinations for scored packages.
            internal_domain: Domain marking internal-registry packages.
            default_version: Version recorded when the registry gives none.
            emit: Called with each summary line. Defaults to print.
        """
        self.resolver = resolver
        self.scorer = scorer
        self.sinks = list(sinks)
        self.internal_domain = internal_domain
        self.default_version = default_version
        self.emit = emit or print

    async def score_reference(self, reference: str) -> NetScoreResult:
        """Resolve and score a single reference.

        Raises:
            ResolutionError: If the reference cannot be resolved.
            QuotaExhaustedError: If the API budget is below the floor.
            AggregationError: If the sub-metrics are inconsistent.
        """
        repository = await self.resolver.resolve(reference)
        return await self.scorer.score(repository)

    def _persist(self, result: NetScoreResult) -> None:
        dependencies = [
            DependencyRecord(url=url, is_internal=is_internal(url, self.internal_domain))
            for url in result.repository.dependencies
        ]
        record = PackageRecord.from_result(
            result,
            is_internal=is_internal(result.repository.origin_url, self.internal_domain),
            default_version=self.default_version,
            dependencies=dependencies,
        )
        for sink in self.sinks:
            try:
                sink.write(record)
            except (psycopg2.Error, OSError) as e:
                # Result was already emitted; keep going with the batch
                logger.error(f"Failed to persist {record.package_name} to {type(sink).__name__}: {e}")

    async def run(self, references: Iterable[str]) -> BatchSummary:
        """Score every reference in order.

        Stops early, without evaluating further references, once the API
        budget falls below the quota floor.
        """
        summary = BatchSummary()

        for reference in references:
            try:
                result = await self.score_reference(reference)
            except ResolutionError as e:
                logger.warning(f"Skipping {reference}: {e.reason}")
                summary.skipped += 1
                continue
            except QuotaExhaustedError as e:
                logger.error(f"Stopping before {reference}: {e}")
                summary.quota_exhausted = True
                break
            except (AggregationError, ValidationError) as e:
                logger.error(f"Error scoring {reference}: {e}")
                summary.skipped += 1
                continue
            except httpx.HTTPError as e:
                # Quota pre-flight could not reach GitHub
                logger.error(f"Error scoring {reference}: {e}")
                summary.skipped += 1
                continue

            self.emit(result.summary_line())
            self._persist(result)
            summary.results.append(result)
            summary.processed += 1

        logger.info(
            f"Batch done: {summary.processed} processed, {summary.skipped} skipped"
            + (" (quota exhausted)" if summary.quota_exhausted else "")
        )
        return summary

    def close(self) -> None:
        """Close every sink."""
        for sink in self.sinks:
            sink.close()
