"""archdocs CLI interface.

Commands:
- generate: Analyze the workspace and build the architecture docs site
- enrich: Merge saved analysis JSON into an existing markdown tree
- check: Validate external tool availability
- init: Initialize archdocs configuration

Global options:
- --config: Path to configuration file
- --verbose: Enable verbose output with timestamps
- --quiet: Suppress info messages
- --ci: JSON log output
- --github / --no-github: GitHub Actions workflow commands (auto-detected)
- --version: Show version and exit
"""

import json
from pathlib import Path
from typing import Annotated, Any

import typer

from archdocs import __version__
from archdocs.config import (
    ArchDocsConfig,
    apply_environment,
    create_default_config,
    load_config,
)
from archdocs.utils.logging import LogMode, configure_from_cli, get_logger

app = typer.Typer(
    name="archdocs",
    help="Architecture documentation generator backed by the Supermodel analysis API",
    add_completion=False,
    no_args_is_help=True,
)

# Global state
_config: ArchDocsConfig | None = None
_github = False
_logger = get_logger()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"archdocs {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output with timestamps"),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress info messages (warnings and errors only)"),
    ] = False,
    ci: Annotated[
        bool,
        typer.Option("--ci", help="Enable CI mode with JSON output"),
    ] = False,
    github: Annotated[
        bool | None,
        typer.Option(
            "--github/--no-github",
            help="Emit GitHub Actions workflow commands (default: detect GITHUB_ACTIONS)",
            show_default=False,
        ),
    ] = None,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """archdocs - Architecture documentation for a repository.

    Uploads the workspace to the analysis API, turns the dependency graph
    into markdown, enriches it with impact, coverage and cycle data, and
    builds a static site.
    """
    global _config, _github

    mode = configure_from_cli(verbose=verbose, quiet=quiet, ci=ci, github=github)
    _github = mode == LogMode.GITHUB

    try:
        _config = load_config(config_path=config)
        if _config.config_path:
            _logger.debug(f"Loaded config from: {_config.config_path}")
    except FileNotFoundError as e:
        _logger.error(str(e))
        raise typer.Exit(1)
    except (ValueError, OSError) as e:
        _logger.error(f"Failed to load config: {e}")
        raise typer.Exit(1)

    if _config.ci.json_output and not ci:
        configure_from_cli(verbose=verbose, quiet=quiet, ci=True)


def _get_config() -> ArchDocsConfig:
    return _config if _config is not None else ArchDocsConfig()


# =============================================================================
# check command
# =============================================================================


@app.command()
def check(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results as JSON"),
    ] = False,
) -> None:
    """Validate external tool availability.

    Checks that graph2md and pssg are installed and an API key is configured.

    Exit codes:
        0: All required tools available
        1: One or more required tools missing
        2: Only optional tools missing (warnings)
    """
    from archdocs.utils.preflight import PreflightChecker

    config = apply_environment(_get_config())
    result = PreflightChecker().check_all(config)

    if json_output:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        typer.echo("\nPreflight Check Results\n")
        for check_result in result.checks:
            status = "OK " if check_result.available else "MISSING"
            version_str = f" ({check_result.version})" if check_result.version else ""
            required_str = " [required]" if check_result.required else " [optional]"
            typer.echo(f"  {status} {check_result.name}{version_str}{required_str}")
            if check_result.available and check_result.path:
                typer.echo(f"     └─ {check_result.path}")
            elif not check_result.available:
                typer.echo(f"     └─ {check_result.message}")
        typer.echo()

    if result.errors:
        if not json_output:
            typer.echo("Preflight check FAILED")
            for error in result.errors:
                typer.echo(f"   • {error}")
        raise typer.Exit(1)
    if result.warnings:
        if not json_output:
            typer.echo("Preflight check passed with WARNINGS")
            for warning in result.warnings:
                typer.echo(f"   • {warning}")
        raise typer.Exit(2)
    if not json_output:
        typer.echo("All preflight checks passed")
    raise typer.Exit(0)


# =============================================================================
# generate command
# =============================================================================


@app.command()
def generate(
    workspace: Annotated[
        Path | None,
        typer.Option(
            "--workspace",
            "-w",
            help="Repository to document (default: GITHUB_WORKSPACE or config)",
            exists=True,
            file_okay=False,
        ),
    ] = None,
    output_dir: Annotated[
        str | None,
        typer.Option("--output-dir", "-o", help="Site output directory (overrides config)"),
    ] = None,
    site_name: Annotated[
        str | None,
        typer.Option("--site-name", help="Site name (overrides config)"),
    ] = None,
    base_url: Annotated[
        str | None,
        typer.Option("--base-url", help="Public base URL (overrides config)"),
    ] = None,
    templates_dir: Annotated[
        str | None,
        typer.Option("--templates-dir", help="Site templates directory"),
    ] = None,
    work_dir: Annotated[
        Path | None,
        typer.Option("--work-dir", help="Keep intermediate files in this directory"),
    ] = None,
    skip_enrichment: Annotated[
        bool,
        typer.Option("--skip-enrichment", help="Do not merge optional analyses"),
    ] = False,
    skip_preflight: Annotated[
        bool,
        typer.Option("--skip-preflight", help="Skip external tool checks"),
    ] = False,
) -> None:
    """Generate the architecture documentation site.

    Exit codes:
        0: Site generated successfully
        1: Fatal error (required analysis, tool or configuration failure)
        2: Generated, but an optional analysis failed and ci.fail_on_warning is set
    """
    from archdocs.pipeline import DocsPipeline, PipelineError, PipelineOptions
    from archdocs.utils.preflight import PreflightChecker

    config = apply_environment(_get_config())
    if workspace is not None:
        config.workspace = str(workspace)
    overrides: dict[str, Any] = {
        "output_dir": output_dir,
        "name": site_name,
        "base_url": base_url,
        "templates_dir": templates_dir,
    }
    for attr, value in overrides.items():
        if value:
            setattr(config.site, attr, value)

    if not skip_preflight:
        preflight = PreflightChecker().check_all(config)
        if not preflight.success:
            _logger.error("Preflight checks failed: " + "; ".join(preflight.errors))
            raise typer.Exit(1)

    _logger.info(f"Documenting workspace: {config.workspace_path.resolve()}")

    options = PipelineOptions(
        skip_enrichment=skip_enrichment,
        work_dir=work_dir,
        github_outputs=_github,
        log_groups=_github,
    )

    try:
        result = DocsPipeline(config).run(options)
    except PipelineError as e:
        _logger.error(str(e))
        raise typer.Exit(1)

    typer.echo(f"site-path={result.site_path}")
    _logger.info(
        f"{result.entity_count} entities, {result.page_count} pages, "
        f"{result.enriched_count} enriched ({result.elapsed:.1f}s)"
    )

    if result.has_warnings() and config.ci.fail_on_warning:
        raise typer.Exit(2)
    raise typer.Exit(0)


# =============================================================================
# enrich command
# =============================================================================


def _read_analysis(path: Path | None) -> Any:
    if path is None:
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        _logger.warning(f"Ignoring {path}: {e}")
        return None


@app.command()
def enrich(
    content_dir: Annotated[
        Path,
        typer.Argument(
            help="Markdown tree produced by graph2md",
            exists=True,
            file_okay=False,
        ),
    ],
    impact: Annotated[
        Path | None,
        typer.Option("--impact", help="Impact analysis JSON", exists=True, dir_okay=False),
    ] = None,
    coverage: Annotated[
        Path | None,
        typer.Option("--coverage", help="Test coverage JSON", exists=True, dir_okay=False),
    ] = None,
    circular: Annotated[
        Path | None,
        typer.Option(
            "--circular", help="Circular dependency JSON", exists=True, dir_okay=False
        ),
    ] = None,
) -> None:
    """Enrich an existing markdown tree with saved analysis results."""
    from archdocs.enrichment import EnrichmentEngine
    from archdocs.models.bundle import CIRCULAR_DEPS, IMPACT, TEST_COVERAGE, AnalysisBundle

    bundle = AnalysisBundle()
    for name, path in ((IMPACT, impact), (TEST_COVERAGE, coverage), (CIRCULAR_DEPS, circular)):
        data = _read_analysis(path)
        if data is not None:
            bundle.add(name, data)

    if not bundle.has_enrichments:
        _logger.error("No analysis data given (use --impact, --coverage or --circular)")
        raise typer.Exit(1)

    engine = EnrichmentEngine.from_bundle(bundle)
    count = engine.enrich(content_dir)
    typer.echo(f"Enriched {count} documents in {content_dir}")
    raise typer.Exit(0)


# =============================================================================
# init command
# =============================================================================


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite existing config"),
    ] = False,
) -> None:
    """Initialize archdocs configuration.

    Creates .archdocs/config.yaml with commented defaults.
    """
    config_dir = Path(".archdocs")
    config_file = config_dir / "config.yaml"

    if config_file.exists() and not force:
        _logger.error(f"Config already exists: {config_file}")
        _logger.info("Use --force to overwrite")
        raise typer.Exit(1)

    config_dir.mkdir(exist_ok=True)
    config_file.write_text(create_default_config())
    _logger.info(f"Created config: {config_file}")

    typer.echo("\narchdocs configuration initialized")
    typer.echo(f"   Config: {config_file}")
    raise typer.Exit(0)


if __name__ == "__main__":
    app()
