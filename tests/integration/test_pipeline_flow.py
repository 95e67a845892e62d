"""Integration tests for the documentation pipeline.

The analysis API is served by an httpx mock transport and the external
tools are replaced with doubles that write the files graph2md and pssg
would produce, so every stage between them runs for real.
"""

import json
import threading
from pathlib import Path
from typing import Any
from unittest.mock import patch

import httpx
import pytest

from archdocs.client import JobClient
from archdocs.config import ArchDocsConfig, EndpointConfig, load_config_from_dict
from archdocs.pipeline import DocsPipeline, PipelineError, PipelineOptions
from archdocs.site import SiteBuilder, count_files
from tests.fixtures import copy_content
from tests.fixtures.http import api_response

GRAPH_PATH = "/v1/graphs/supermodel"
IMPACT_PATH = "/v1/analysis/impact"
COVERAGE_PATH = "/v1/analysis/test-coverage-map"
CIRCULAR_PATH = "/v1/analysis/circular-dependencies"


class AnalysisAPI:
    """Serves one envelope per endpoint path and records requests."""

    def __init__(self, responses: dict[str, httpx.Response]) -> None:
        self.responses = responses
        self.requests: list[httpx.Request] = []
        self._lock = threading.Lock()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        return self.responses[request.url.path]

    def factory(self, config: ArchDocsConfig) -> JobClient:
        return JobClient(
            config.api.api_key or "",
            http_client=httpx.Client(transport=httpx.MockTransport(self)),
        )


class FakeGenerator:
    """Writes the sample markdown tree instead of running graph2md."""

    def __init__(self) -> None:
        self.graph_paths: list[Path] = []

    def generate(
        self, graph_path: Path, content_dir: Path, repo_name: str = "", repo_url: str = ""
    ) -> int:
        self.graph_paths.append(graph_path)
        copy_content(content_dir)
        return count_files(content_dir, ".md")


class FakeBuilder(SiteBuilder):
    """Renders the real pssg.yaml but writes pages instead of running pssg."""

    def build(self, config_path: Path, output_dir: Path) -> int:
        output_dir.mkdir(parents=True, exist_ok=True)
        (output_dir / "index.html").write_text(
            '<a href="/src/api/handler.py.html">handler</a>', encoding="utf-8"
        )
        (output_dir / "search.js").write_text('fetch("/search-index.json")', encoding="utf-8")
        return count_files(output_dir, ".html")


@pytest.fixture
def config(workspace: Path, tmp_path: Path) -> ArchDocsConfig:
    return load_config_from_dict(
        {
            "workspace": str(workspace),
            "api": {"api_key": "test-key", "base_url": "https://api.example.com"},
            "site": {
                "name": "Widgets Docs",
                "base_url": "https://acme.github.io/widgets",
                "repo_url": "https://github.com/acme/widgets",
                "repo_name": "widgets",
                "output_dir": str(tmp_path / "site"),
                "templates_dir": str(tmp_path / "templates"),
            },
        }
    )


@pytest.fixture
def api(
    graph_payload: dict[str, Any],
    impact_payload: dict[str, Any],
    coverage_payload: dict[str, Any],
    circular_payload: dict[str, Any],
) -> AnalysisAPI:
    return AnalysisAPI(
        {
            GRAPH_PATH: api_response("completed", result=graph_payload, job_id="graph"),
            IMPACT_PATH: api_response("completed", result=impact_payload, job_id="impact"),
            COVERAGE_PATH: api_response("completed", result=coverage_payload, job_id="cov"),
            CIRCULAR_PATH: api_response("completed", result=circular_payload, job_id="cyc"),
        }
    )


def make_pipeline(config: ArchDocsConfig, api: AnalysisAPI) -> DocsPipeline:
    return DocsPipeline(
        config,
        client_factory=api.factory,
        generator=FakeGenerator(),
        builder=FakeBuilder(config.tools),
    )


class TestDocsPipeline:
    """End-to-end pipeline runs."""

    def test_full_run(self, config: ArchDocsConfig, api: AnalysisAPI, tmp_path: Path) -> None:
        """Test that every stage runs and the result reports the counts."""
        work_dir = tmp_path / "work"

        result = make_pipeline(config, api).run(PipelineOptions(work_dir=work_dir))

        assert result.site_path == (tmp_path / "site").resolve()
        assert result.entity_count == 5
        assert result.page_count == 1
        assert result.enriched_count == 4
        assert not result.has_warnings()

        assert (work_dir / "repo.zip").exists()
        assert (work_dir / "results" / "graph.json").exists()
        assert (work_dir / "results" / "circular-deps.json").exists()
        assert (work_dir / "pssg.yaml").exists()

        handler = (work_dir / "content" / "src" / "api" / "handler.py.md").read_text()
        assert 'impact_level: "High"' in handler
        assert 'dependency_health: "In Cycle"' in handler

    def test_requests_carry_credentials(self, config: ArchDocsConfig, api: AnalysisAPI) -> None:
        """Test one authenticated submission per endpoint."""
        make_pipeline(config, api).run()

        assert sorted(r.url.path for r in api.requests) == sorted(
            [GRAPH_PATH, IMPACT_PATH, COVERAGE_PATH, CIRCULAR_PATH]
        )
        assert all(r.headers["X-Api-Key"] == "test-key" for r in api.requests)
        keys = {r.headers["Idempotency-Key"] for r in api.requests}
        assert len(keys) == 4

    def test_paths_rewritten_for_project_site(
        self, config: ArchDocsConfig, api: AnalysisAPI
    ) -> None:
        """Test that root-relative links gain the base URL path."""
        result = make_pipeline(config, api).run()

        index = (result.site_path / "index.html").read_text()
        assert 'href="/widgets/src/api/handler.py.html"' in index
        assert 'fetch("/widgets/search-index.json")' in (result.site_path / "search.js").read_text()

    def test_optional_failure_degrades(
        self, config: ArchDocsConfig, api: AnalysisAPI, tmp_path: Path
    ) -> None:
        """Test that a failed optional analysis becomes a warning."""
        api.responses[CIRCULAR_PATH] = api_response("failed", error="analysis crashed")
        work_dir = tmp_path / "work"

        result = make_pipeline(config, api).run(PipelineOptions(work_dir=work_dir))

        assert result.warnings == [
            "circular-deps endpoint failed: circular-deps: API returned failure: analysis crashed"
        ]
        assert not (work_dir / "results" / "circular-deps.json").exists()
        handler = (work_dir / "content" / "src" / "api" / "handler.py.md").read_text()
        assert "dependency_health" not in handler
        assert 'impact_level: "High"' in handler

    def test_skip_enrichment(self, config: ArchDocsConfig, api: AnalysisAPI) -> None:
        """Test that enrichment can be turned off."""
        result = make_pipeline(config, api).run(PipelineOptions(skip_enrichment=True))

        assert result.enriched_count == 0
        assert result.entity_count == 5

    def test_required_failure_is_fatal(self, config: ArchDocsConfig, api: AnalysisAPI) -> None:
        """Test that a failed graph analysis stops the run."""
        api.responses[GRAPH_PATH] = api_response("failed", error="unsupported archive")
        pipeline = make_pipeline(config, api)

        with pytest.raises(PipelineError) as exc_info:
            pipeline.run()

        assert exc_info.value.stage == "analysis"
        assert "unsupported archive" in str(exc_info.value)
        assert not (config.output_path / "index.html").exists()

    def test_missing_api_key(self, config: ArchDocsConfig) -> None:
        """Test that the default client factory needs an API key."""
        config.api.api_key = None
        pipeline = DocsPipeline(config, generator=FakeGenerator(), builder=FakeBuilder())

        with pytest.raises(PipelineError) as exc_info:
            pipeline.run()

        assert exc_info.value.stage == "configuration"

    def test_github_outputs(
        self,
        config: ArchDocsConfig,
        api: AnalysisAPI,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that step outputs are published."""
        output_file = tmp_path / "github_output"
        monkeypatch.setenv("GITHUB_OUTPUT", str(output_file))

        result = make_pipeline(config, api).run(PipelineOptions(github_outputs=True))

        assert output_file.read_text().splitlines() == [
            f"site-path={result.site_path}",
            "entity-count=5",
            "page-count=1",
        ]

    def test_graph_saved_as_received(
        self,
        config: ArchDocsConfig,
        api: AnalysisAPI,
        graph_payload: dict[str, Any],
        tmp_path: Path,
    ) -> None:
        """Test that graph.json holds the graph text exactly as the API sent it."""
        graph_text = json.dumps(graph_payload, indent=2)
        api.responses[GRAPH_PATH] = httpx.Response(
            200, text='{"status": "completed", "jobId": "graph", "result": ' + graph_text + "}"
        )
        work_dir = tmp_path / "work"

        make_pipeline(config, api).run(PipelineOptions(work_dir=work_dir))

        saved = (work_dir / "results" / "graph.json").read_text(encoding="utf-8")
        assert saved == graph_text

    def test_invalid_endpoint_set_is_pipeline_error(
        self, config: ArchDocsConfig, api: AnalysisAPI
    ) -> None:
        """Test that an endpoint set without a required endpoint fails the analysis stage."""
        config.api.endpoints = [
            EndpointConfig("supermodel", "https://api.example.com" + GRAPH_PATH),
        ]

        with pytest.raises(PipelineError) as exc_info:
            make_pipeline(config, api).run()

        assert exc_info.value.stage == "analysis"
        assert "Exactly one required" in str(exc_info.value)
        assert api.requests == []

    def test_rewrite_failure_is_pipeline_error(
        self, config: ArchDocsConfig, api: AnalysisAPI
    ) -> None:
        """Test that an unwritable site fails the rewrite stage cleanly."""
        with patch(
            "archdocs.pipeline.rewrite_path_prefix",
            side_effect=PermissionError("read-only file system"),
        ):
            with pytest.raises(PipelineError) as exc_info:
                make_pipeline(config, api).run()

        assert exc_info.value.stage == "rewrite"
        assert "read-only file system" in str(exc_info.value)
