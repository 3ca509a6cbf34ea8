"""End-to-end tests for the batch pipeline."""

import json
from pathlib import Path

import httpx
import psycopg2
import pytest

from conftest import healthy_repo_routes, make_github_client, unlicensed_repo_routes
from pkgtrust.adapters.npm import NpmAdapter
from pkgtrust.adapters.resolver import ReferenceResolver
from pkgtrust.analyzers.pipeline import ScoringPipeline, read_references
from pkgtrust.analyzers.scorer import NetScorer
from pkgtrust.models.schemas import MetricKind, PackageRecord


class RecordingSink:
    """Sink that keeps records in memory."""

    def __init__(self) -> None:
        self.records: list[PackageRecord] = []
        self.closed = False

    def write(self, record: PackageRecord) -> None:
        self.records.append(record)

    def close(self) -> None:
        self.closed = True


class FailingSink:
    def write(self, record: PackageRecord) -> None:
        raise psycopg2.OperationalError("connection lost")

    def close(self) -> None:
        pass


def npm_registry(packages: dict[str, dict]) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        name = request.url.raw_path.decode().lstrip("/").replace("%2F", "/")
        if name in packages:
            return httpx.Response(200, json=packages[name])
        return httpx.Response(404, json={"error": "Not found"})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def build_pipeline(
    routes: dict,
    sinks: list,
    emitted: list[str],
    npm_packages: dict | None = None,
    **client_kwargs,
) -> ScoringPipeline:
    github = make_github_client(routes, **client_kwargs)
    return ScoringPipeline(
        resolver=ReferenceResolver(NpmAdapter(client=npm_registry(npm_packages or {}))),
        scorer=NetScorer(github),
        sinks=sinks,
        internal_domain="internal.acme.com",
        emit=emitted.append,
    )


class TestReadReferences:
    def test_skips_blank_lines(self, tmp_path: Path) -> None:
        path = tmp_path / "urls.txt"
        path.write_text("https://github.com/a/b\n\n   \n  https://www.npmjs.com/package/c  \n")
        assert read_references(path) == ["https://github.com/a/b", "https://www.npmjs.com/package/c"]


class TestScoringPipeline:
    """Tests for ScoringPipeline.run."""

    @pytest.mark.asyncio
    async def test_two_packages_in_order(self) -> None:
        sink = RecordingSink()
        emitted: list[str] = []
        pipeline = build_pipeline(
            {**healthy_repo_routes("acme", "widget"), **unlicensed_repo_routes("solo", "gadget")},
            [sink],
            emitted,
        )

        summary = await pipeline.run(
            ["https://github.com/acme/widget", "https://github.com/solo/gadget"]
        )

        assert summary.processed == 2
        assert summary.skipped == 0
        assert not summary.quota_exhausted

        assert [r.repo_link for r in sink.records] == [
            "https://github.com/acme/widget",
            "https://github.com/solo/gadget",
        ]
        licensed, unlicensed = sink.records
        assert licensed.metrics[MetricKind.LICENSE].score == 1.0
        assert unlicensed.metrics[MetricKind.LICENSE].score == 0.0
        assert licensed.net_score > unlicensed.net_score

        assert [json.loads(line)["URL"] for line in emitted] == [
            "https://github.com/acme/widget",
            "https://github.com/solo/gadget",
        ]

    @pytest.mark.asyncio
    async def test_quota_below_floor_evaluates_nothing(self) -> None:
        sink = RecordingSink()
        emitted: list[str] = []
        calls: list[str] = []
        pipeline = build_pipeline(
            healthy_repo_routes(), [sink], emitted, remaining=3, calls=calls
        )

        summary = await pipeline.run(
            ["https://github.com/acme/widget", "https://github.com/acme/widget"]
        )

        assert summary.quota_exhausted
        assert summary.processed == 0
        assert sink.records == []
        assert emitted == []
        assert all(path == "/rate_limit" for path in calls)

    @pytest.mark.asyncio
    async def test_unresolvable_reference_is_skipped(self) -> None:
        sink = RecordingSink()
        emitted: list[str] = []
        pipeline = build_pipeline(healthy_repo_routes(), [sink], emitted)

        summary = await pipeline.run(
            [
                "https://pypi.org/project/requests",
                "https://www.npmjs.com/package/does-not-exist",
                "https://github.com/acme/widget",
            ]
        )

        assert summary.skipped == 2
        assert summary.processed == 1
        assert len(sink.records) == 1

    @pytest.mark.asyncio
    async def test_npm_reference_records_package_version(self) -> None:
        sink = RecordingSink()
        pipeline = build_pipeline(
            healthy_repo_routes(),
            [sink],
            [],
            npm_packages={
                "widget": {
                    "dist-tags": {"latest": "2.1.0"},
                    "repository": {"url": "git+https://github.com/acme/widget.git"},
                }
            },
        )

        await pipeline.run(["https://www.npmjs.com/package/widget"])

        record = sink.records[0]
        assert record.package_name == "widget"
        assert record.package_version == "2.1.0"
        assert record.origin_url == "https://www.npmjs.com/package/widget"
        assert not record.is_internal

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("reference", "version"),
        [
            ("https://www.npmjs.com/package/widget/v/1.0.0", "1.0.0"),
            ("https://www.npmjs.com/package/widget?activeTab=versions", "2.1.0"),
        ],
    )
    async def test_npm_url_suffix_does_not_leak_into_package_name(
        self, reference: str, version: str
    ) -> None:
        sink = RecordingSink()
        pipeline = build_pipeline(
            healthy_repo_routes(),
            [sink],
            [],
            npm_packages={
                "widget": {
                    "dist-tags": {"latest": "2.1.0"},
                    "versions": {"1.0.0": {}, "2.1.0": {}},
                    "repository": {"url": "git+https://github.com/acme/widget.git"},
                }
            },
        )

        await pipeline.run([reference])

        record = sink.records[0]
        assert record.package_name == "widget"
        assert record.package_version == version
        assert record.origin_url == reference

    @pytest.mark.asyncio
    async def test_malformed_registry_reply_skips_only_that_package(self) -> None:
        sink = RecordingSink()
        emitted: list[str] = []
        github = make_github_client(healthy_repo_routes())

        def proxy_error(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>proxy error</html>")

        pipeline = ScoringPipeline(
            resolver=ReferenceResolver(
                NpmAdapter(client=httpx.AsyncClient(transport=httpx.MockTransport(proxy_error)))
            ),
            scorer=NetScorer(github),
            sinks=[sink],
            emit=emitted.append,
        )

        summary = await pipeline.run(
            ["https://www.npmjs.com/package/widget", "https://github.com/acme/widget"]
        )

        assert summary.skipped == 1
        assert summary.processed == 1
        assert [json.loads(line)["URL"] for line in emitted] == ["https://github.com/acme/widget"]

    @pytest.mark.asyncio
    async def test_npm_dependencies_are_classified(self) -> None:
        sink = RecordingSink()
        pipeline = build_pipeline(
            healthy_repo_routes(),
            [sink],
            [],
            npm_packages={
                "widget": {
                    "dist-tags": {"latest": "2.1.0"},
                    "versions": {
                        "2.1.0": {
                            "dependencies": {
                                "lodash": "^4.17.21",
                                "acme-logger": "https://internal.acme.com/acme-logger-1.2.0.tgz",
                            }
                        }
                    },
                    "repository": {"url": "git+https://github.com/acme/widget.git"},
                }
            },
        )

        await pipeline.run(["https://www.npmjs.com/package/widget"])

        assert [(d.url, d.is_internal) for d in sink.records[0].dependencies] == [
            ("https://www.npmjs.com/package/lodash", False),
            ("https://internal.acme.com/acme-logger-1.2.0.tgz", True),
        ]

    @pytest.mark.asyncio
    async def test_github_reference_uses_default_version(self) -> None:
        sink = RecordingSink()
        pipeline = build_pipeline(healthy_repo_routes(), [sink], [])
        await pipeline.run(["https://github.com/acme/widget"])
        assert sink.records[0].package_version == "1.0.0"

    @pytest.mark.asyncio
    async def test_sink_failure_does_not_stop_batch(self) -> None:
        sink = RecordingSink()
        emitted: list[str] = []
        pipeline = build_pipeline(
            {**healthy_repo_routes("acme", "widget"), **unlicensed_repo_routes("solo", "gadget")},
            [FailingSink(), sink],
            emitted,
        )

        summary = await pipeline.run(
            ["https://github.com/acme/widget", "https://github.com/solo/gadget"]
        )

        assert summary.processed == 2
        assert len(emitted) == 2
        assert len(sink.records) == 2

    def test_close_closes_sinks(self) -> None:
        sink = RecordingSink()
        build_pipeline({}, [sink], []).close()
        assert sink.closed
