"""End-to-end documentation pipeline.

The pipeline sequence:
1. Archive the workspace
2. Run every analysis endpoint concurrently (graph required, others optional)
3. Save the analysis payloads
4. Generate markdown from the graph (graph2md)
5. Enrich the markdown with impact/coverage/cycle data
6. Render pssg.yaml and build the static site (pssg)
7. Rewrite root-relative links for subdirectory deployments
8. Publish GitHub Actions outputs
"""

import logging
import tempfile
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from archdocs.client import JobClient
from archdocs.config import ArchDocsConfig
from archdocs.enrichment import EnrichmentEngine
from archdocs.models.bundle import GRAPH
from archdocs.orchestrator import Orchestrator, RequiredEndpointError
from archdocs.site import (
    MarkdownGenerator,
    SiteBuilder,
    ToolExecutionError,
    ToolNotAvailableError,
    create_workspace_archive,
    extract_path_prefix,
    resolve_templates_dir,
    rewrite_path_prefix,
)
from archdocs.utils.github import log_group, set_output
from archdocs.utils.logging import get_logger

logger = get_logger(__name__)


class PipelineError(Exception):
    """Raised when a pipeline stage fails and no site can be produced."""

    def __init__(self, stage: str, message: str) -> None:
        self.stage = stage
        self.message = message
        super().__init__(f"{stage}: {message}")


@dataclass
class PipelineOptions:
    """Options for controlling pipeline execution.

    Attributes:
        skip_enrichment: Leave the generated markdown untouched
        work_dir: Keep intermediate files here instead of a temp directory
        github_outputs: Publish site-path/entity-count/page-count step outputs
        log_groups: Fold each stage's output into a workflow log group
    """

    skip_enrichment: bool = False
    work_dir: Path | None = None
    github_outputs: bool = False
    log_groups: bool = False


@dataclass
class PipelineResult:
    """Outcome of a successful pipeline run.

    Attributes:
        site_path: Directory containing the built site
        entity_count: Markdown documents generated
        page_count: HTML pages built
        enriched_count: Documents that received analysis data
        warnings: Optional analyses that failed
        elapsed: Total run time in seconds
    """

    site_path: Path
    entity_count: int = 0
    page_count: int = 0
    enriched_count: int = 0
    warnings: list[str] = field(default_factory=list)
    elapsed: float = 0.0

    def has_warnings(self) -> bool:
        return bool(self.warnings)


def create_job_client(config: ArchDocsConfig) -> JobClient:
    """Build a JobClient from the API configuration."""
    if not config.api.api_key:
        raise PipelineError(
            "configuration",
            "supermodel-api-key is required (input or SUPERMODEL_API_KEY)",
        )
    return JobClient(
        config.api.api_key,
        request_timeout=config.api.request_timeout,
        poll_timeout=config.api.poll_timeout,
        default_interval=config.api.default_poll_interval,
        max_interval=config.api.max_poll_interval,
    )


class DocsPipeline:
    """Runs every stage from workspace archive to published site.

    Usage:
        pipeline = DocsPipeline(config)
        result = pipeline.run()
    """

    def __init__(
        self,
        config: ArchDocsConfig,
        client_factory: Callable[[ArchDocsConfig], JobClient] = create_job_client,
        generator: MarkdownGenerator | None = None,
        builder: SiteBuilder | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Fully resolved configuration
            client_factory: Builds the JobClient used for every endpoint
            generator: graph2md runner (built from config.tools if None)
            builder: pssg runner (built from config.tools if None)
        """
        self.config = config
        self._client_factory = client_factory
        self._generator = generator or MarkdownGenerator(config.tools)
        self._builder = builder or SiteBuilder(config.tools)

    def run(self, options: PipelineOptions | None = None) -> PipelineResult:
        """Execute the full pipeline.

        Returns:
            PipelineResult describing the built site

        Raises:
            PipelineError: If any stage fails fatally
        """
        options = options or PipelineOptions()
        started = time.monotonic()

        if options.work_dir is not None:
            options.work_dir.mkdir(parents=True, exist_ok=True)
            result = self._run_in(options.work_dir, options)
        else:
            with tempfile.TemporaryDirectory(prefix="archdocs-") as tmp:
                result = self._run_in(Path(tmp), options)

        result.elapsed = time.monotonic() - started
        logger.structured(
            logging.INFO,
            "Architecture docs generated successfully!",
            site_path=str(result.site_path),
            entity_count=result.entity_count,
            page_count=result.page_count,
            enriched_count=result.enriched_count,
            warnings=len(result.warnings),
        )
        return result

    def _run_in(self, work_dir: Path, options: PipelineOptions) -> PipelineResult:
        config = self.config
        workspace = config.workspace_path.resolve()

        def stage(title: str):
            return log_group(title, enabled=options.log_groups)

        # Stage 1: archive
        with stage("Creating workspace archive"):
            try:
                archive = create_workspace_archive(
                    workspace, config.archive, work_dir / "repo.zip"
                )
            except (OSError, ValueError) as e:
                raise PipelineError("archive", str(e)) from e

        # Stage 2: analyses
        with stage("Running analyses"):
            orchestration = self._analyze(archive.path)
            for warning in orchestration.warnings:
                logger.warning(warning)

        # Stage 3: save payloads
        try:
            saved = orchestration.bundle.save(work_dir / "results")
        except OSError as e:
            raise PipelineError("save", str(e)) from e
        graph_path = saved.get(GRAPH)
        if graph_path is None:
            raise PipelineError("analysis", "dependency graph result was empty")

        # Stage 4: markdown
        content_dir = work_dir / "content"
        with stage("Generating markdown"):
            entity_count = self._run_tool_stage(
                "graph2md",
                lambda: self._generator.generate(
                    graph_path,
                    content_dir,
                    repo_name=config.site.repo_name,
                    repo_url=config.site.repo_url,
                ),
            )

        # Stage 5: enrichment
        enriched_count = 0
        if options.skip_enrichment:
            logger.info("Skipping enrichment")
        elif orchestration.bundle.has_enrichments:
            with stage("Enriching markdown"):
                engine = EnrichmentEngine.from_bundle(orchestration.bundle)
                enriched_count = engine.enrich(content_dir)

        # Stage 6: site
        output_dir = config.output_path.resolve()
        with stage("Building static site"):
            templates_dir = resolve_templates_dir(config.site.templates_dir, workspace)
            try:
                config_path = self._builder.write_config(
                    work_dir / "pssg.yaml",
                    config.site,
                    content_dir=content_dir,
                    templates_dir=templates_dir,
                    output_dir=output_dir,
                    source_dir=workspace,
                )
            except OSError as e:
                raise PipelineError("site config", str(e)) from e
            page_count = self._run_tool_stage(
                "pssg", lambda: self._builder.build(config_path, output_dir)
            )

        # Stage 7: path prefix
        prefix = extract_path_prefix(config.site.base_url)
        if prefix:
            with stage(f"Rewriting paths for prefix {prefix}"):
                try:
                    rewrite_path_prefix(output_dir, prefix)
                except OSError as e:
                    raise PipelineError("rewrite", str(e)) from e

        result = PipelineResult(
            site_path=output_dir,
            entity_count=entity_count,
            page_count=page_count,
            enriched_count=enriched_count,
            warnings=list(orchestration.warnings),
        )

        # Stage 8: outputs
        if options.github_outputs:
            set_output("site-path", output_dir)
            set_output("entity-count", result.entity_count)
            set_output("page-count", result.page_count)

        return result

    def _analyze(self, archive_path: Path):
        job_client = self._client_factory(self.config)
        try:
            orchestrator = Orchestrator(self.config.api.endpoints, job_client)
            return orchestrator.run(archive_path)
        except (RequiredEndpointError, ValueError) as e:
            raise PipelineError("analysis", str(e)) from e
        finally:
            job_client.close()

    @staticmethod
    def _run_tool_stage(name: str, action: Callable[[], int]) -> int:
        try:
            return action()
        except (ToolExecutionError, ToolNotAvailableError) as e:
            raise PipelineError(name, str(e)) from e
