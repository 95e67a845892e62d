"""archdocs configuration system.

Configuration is primarily YAML-based with GitHub Actions inputs layered on top.
Supports environment variable substitution (${VAR}) in config files.

Configuration file discovery (in priority order):
1. CLI --config argument
2. ./.archdocs/config.yaml
3. ./archdocs.yaml

GitHub Actions inputs (INPUT_SUPERMODEL-API-KEY, INPUT_SITE-NAME, ...) and the
GITHUB_REPOSITORY / GITHUB_WORKSPACE variables override file values when set.
"""

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_API_BASE = "https://api.supermodeltools.com"

# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class EndpointConfig:
    """One analysis source.

    Attributes:
        name: Endpoint identifier (supermodel, impact, test-coverage, circular-deps)
        url: Submission URL
        required: Whether the run fails when this endpoint fails
    """

    name: str
    url: str
    required: bool = False

    def __post_init__(self) -> None:
        """Validate endpoint configuration."""
        if not self.name:
            raise ValueError("Endpoint name is required")
        if not self.url.startswith(("http://", "https://")):
            raise ValueError(f"Invalid URL for endpoint {self.name}: {self.url}")


def default_endpoints(base_url: str = DEFAULT_API_BASE) -> list[EndpointConfig]:
    """Return the standard endpoint set for a Supermodel API base URL."""
    base = base_url.rstrip("/")
    return [
        EndpointConfig("supermodel", f"{base}/v1/graphs/supermodel", required=True),
        EndpointConfig("impact", f"{base}/v1/analysis/impact"),
        EndpointConfig("test-coverage", f"{base}/v1/analysis/test-coverage-map"),
        EndpointConfig("circular-deps", f"{base}/v1/analysis/circular-dependencies"),
    ]


@dataclass
class ApiConfig:
    """Analysis API configuration.

    Attributes:
        api_key: Credential sent as X-Api-Key
        base_url: API base URL used to build default endpoints
        endpoints: Analysis sources (exactly one required)
        poll_timeout: Seconds each job may take before timing out
        default_poll_interval: Poll delay when Retry-After is missing or invalid
        max_poll_interval: Upper bound applied to Retry-After
        request_timeout: Per-request HTTP timeout in seconds
    """

    api_key: str | None = None
    base_url: str = DEFAULT_API_BASE
    endpoints: list[EndpointConfig] = field(default_factory=default_endpoints)
    poll_timeout: float = 900.0
    default_poll_interval: float = 10.0
    max_poll_interval: float = 120.0
    request_timeout: float = 300.0

    def __post_init__(self) -> None:
        """Validate API configuration."""
        if self.poll_timeout <= 0:
            raise ValueError(f"poll_timeout must be positive (got {self.poll_timeout})")
        if self.default_poll_interval <= 0:
            raise ValueError(
                f"default_poll_interval must be positive (got {self.default_poll_interval})"
            )
        if self.max_poll_interval < self.default_poll_interval:
            raise ValueError("max_poll_interval must be >= default_poll_interval")

        required = [e.name for e in self.endpoints if e.required]
        if len(required) != 1:
            raise ValueError(
                f"Exactly one required endpoint must be configured (got {len(required)})"
            )

        names = [e.name for e in self.endpoints]
        if len(names) != len(set(names)):
            raise ValueError(f"Endpoint names must be unique: {names}")


@dataclass
class SiteConfig:
    """Published site configuration.

    Attributes:
        name: Site name (defaults to "<repo> Architecture Docs")
        base_url: Public base URL (defaults to the GitHub Pages URL)
        repo_url: Repository URL linked from the site
        repo_name: Repository name passed to graph2md
        output_dir: Directory the built site is written to
        templates_dir: Site templates (defaults to the bundled templates)
    """

    name: str = ""
    base_url: str = ""
    repo_url: str = ""
    repo_name: str = ""
    output_dir: str = "./arch-docs-output"
    templates_dir: str | None = None


@dataclass
class ToolsConfig:
    """External executables used around the core.

    Attributes:
        graph2md: Markdown generator command
        pssg: Static site builder command
        timeout: Timeout for external tools in seconds
    """

    graph2md: str = "graph2md"
    pssg: str = "pssg"
    timeout: int = 1800


@dataclass
class ArchiveConfig:
    """Workspace archive filtering.

    Attributes:
        skip_dirs: Directory names never descended into
        binary_extensions: File extensions excluded from the archive
        max_file_size: Files larger than this many bytes are skipped
    """

    skip_dirs: list[str] = field(
        default_factory=lambda: [
            ".git",
            "node_modules",
            ".next",
            "dist",
            "build",
            "vendor",
            "__pycache__",
            ".venv",
        ]
    )
    binary_extensions: list[str] = field(
        default_factory=lambda: [
            ".exe", ".dll", ".so", ".dylib", ".bin", ".obj", ".o", ".a",
            ".png", ".jpg", ".jpeg", ".gif", ".ico", ".svg", ".webp",
            ".mp3", ".mp4", ".avi", ".mov",
            ".zip", ".tar", ".gz", ".bz2", ".rar", ".7z",
            ".woff", ".woff2", ".ttf", ".eot",
            ".pdf", ".doc", ".docx",
        ]
    )
    max_file_size: int = 10 * 1024 * 1024


@dataclass
class CIConfig:
    """CI/CD-specific configuration.

    Attributes:
        fail_on_warning: Exit with error if optional analyses fail
        json_output: Use JSON log output
    """

    fail_on_warning: bool = False
    json_output: bool = False


@dataclass
class ArchDocsConfig:
    """Top-level archdocs configuration.

    Attributes:
        api: Analysis API settings
        site: Site settings
        tools: External tool commands
        archive: Workspace archive filtering
        ci: CI/CD settings
        workspace: Workspace directory to document
    """

    api: ApiConfig = field(default_factory=ApiConfig)
    site: SiteConfig = field(default_factory=SiteConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
    ci: CIConfig = field(default_factory=CIConfig)
    workspace: str = "."

    # Runtime overrides (set by CLI)
    _config_path: Path | None = field(default=None, repr=False)

    @property
    def config_path(self) -> Path | None:
        """Get the path to the config file that was loaded."""
        return self._config_path

    @property
    def workspace_path(self) -> Path:
        return Path(self.workspace)

    @property
    def output_path(self) -> Path:
        """Output directory resolved against the workspace."""
        output = Path(self.site.output_dir)
        if output.is_absolute():
            return output
        return self.workspace_path / output


# =============================================================================
# Environment Variable Substitution
# =============================================================================


def substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in config values.

    Supports ${VAR} syntax for environment variable substitution.
    Example: ${SUPERMODEL_API_KEY} -> value of SUPERMODEL_API_KEY

    Args:
        value: Config value (string, dict, list, or other)

    Returns:
        Value with environment variables substituted
    """
    if isinstance(value, str):
        pattern = re.compile(r"\$\{([^}]+)\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable not set: {var_name}")
            return env_value

        return pattern.sub(replace_var, value)

    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]

    return value


# =============================================================================
# Config File Discovery
# =============================================================================


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find configuration file in standard locations.

    Search order:
    1. ./.archdocs/config.yaml
    2. ./archdocs.yaml

    Args:
        start_path: Starting directory for search (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_path is None:
        start_path = Path.cwd()

    start_path = start_path.resolve()

    candidates = [
        start_path / ".archdocs" / "config.yaml",
        start_path / "archdocs.yaml",
    ]

    for candidate in candidates:
        if candidate.exists():
            return candidate

    return None


# =============================================================================
# Config Loading
# =============================================================================


def _load_endpoints(items: list[Any], base_url: str) -> list[EndpointConfig]:
    """Build endpoint configs from YAML list entries.

    Entries may omit ``url`` when the name is one of the standard endpoints;
    the URL is then derived from ``base_url``.
    """
    defaults = {e.name: e for e in default_endpoints(base_url)}
    endpoints: list[EndpointConfig] = []

    for item in items:
        if not isinstance(item, dict):
            raise ValueError(f"Invalid endpoint entry: {item!r}")
        name = item.get("name", "")
        default = defaults.get(name)
        url = item.get("url") or (default.url if default else "")
        required = item.get("required", default.required if default else False)
        endpoints.append(EndpointConfig(name=name, url=url, required=bool(required)))

    return endpoints


def load_config_from_dict(data: dict[str, Any]) -> ArchDocsConfig:
    """Load configuration from a dictionary.

    Args:
        data: Configuration dictionary

    Returns:
        ArchDocsConfig instance
    """
    data = substitute_env_vars(data)

    config = ArchDocsConfig()

    if "api" in data:
        api_data = data["api"] or {}
        base_url = api_data.get("base_url", DEFAULT_API_BASE)
        if "endpoints" in api_data:
            endpoints = _load_endpoints(api_data["endpoints"] or [], base_url)
        else:
            endpoints = default_endpoints(base_url)
        config.api = ApiConfig(
            api_key=api_data.get("api_key"),
            base_url=base_url,
            endpoints=endpoints,
            poll_timeout=float(api_data.get("poll_timeout", 900)),
            default_poll_interval=float(api_data.get("default_poll_interval", 10)),
            max_poll_interval=float(api_data.get("max_poll_interval", 120)),
            request_timeout=float(api_data.get("request_timeout", 300)),
        )

    if "site" in data:
        site_data = data["site"] or {}
        config.site = SiteConfig(
            name=site_data.get("name", ""),
            base_url=site_data.get("base_url", ""),
            repo_url=site_data.get("repo_url", ""),
            repo_name=site_data.get("repo_name", ""),
            output_dir=site_data.get("output_dir", config.site.output_dir),
            templates_dir=site_data.get("templates_dir"),
        )

    if "tools" in data:
        tools_data = data["tools"] or {}
        config.tools = ToolsConfig(
            graph2md=tools_data.get("graph2md", config.tools.graph2md),
            pssg=tools_data.get("pssg", config.tools.pssg),
            timeout=tools_data.get("timeout", config.tools.timeout),
        )

    if "archive" in data:
        archive_data = data["archive"] or {}
        defaults = ArchiveConfig()
        config.archive = ArchiveConfig(
            skip_dirs=archive_data.get("skip_dirs", defaults.skip_dirs),
            binary_extensions=archive_data.get(
                "binary_extensions", defaults.binary_extensions
            ),
            max_file_size=archive_data.get("max_file_size", defaults.max_file_size),
        )

    if "ci" in data:
        ci_data = data["ci"] or {}
        config.ci = CIConfig(
            fail_on_warning=ci_data.get("fail_on_warning", False),
            json_output=ci_data.get("json_output", False),
        )

    if "workspace" in data:
        config.workspace = str(data["workspace"])

    return config


def load_config(
    config_path: Path | None = None,
    auto_discover: bool = True,
) -> ArchDocsConfig:
    """Load configuration from file.

    Args:
        config_path: Explicit path to config file
        auto_discover: Whether to search for config file if not specified

    Returns:
        ArchDocsConfig instance

    Raises:
        FileNotFoundError: If config_path specified but doesn't exist
    """
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        found_path = config_path
    elif auto_discover:
        found_path = find_config_file()
    else:
        found_path = None

    if found_path is not None:
        with open(found_path) as f:
            data = yaml.safe_load(f) or {}
        config = load_config_from_dict(data)
        config._config_path = found_path
    else:
        config = ArchDocsConfig()

    return config


# =============================================================================
# GitHub Actions Environment
# =============================================================================


def get_input(name: str, env: Mapping[str, str] | None = None) -> str:
    """Read a GitHub Actions input.

    Docker actions receive inputs with hyphens preserved
    (INPUT_SUPERMODEL-API-KEY); the underscore form is accepted for local runs.

    Args:
        name: Input name as declared in action.yml
        env: Environment mapping (defaults to os.environ)

    Returns:
        Trimmed input value, or an empty string if unset
    """
    env = os.environ if env is None else env
    value = env.get("INPUT_" + name.upper(), "")
    if not value:
        value = env.get("INPUT_" + name.upper().replace("-", "_"), "")
    return value.strip()


def apply_environment(
    config: ArchDocsConfig,
    env: Mapping[str, str] | None = None,
) -> ArchDocsConfig:
    """Layer GitHub Actions inputs and repository defaults onto a config.

    Inputs override file values. Missing site values are derived from
    GITHUB_REPOSITORY ("owner/repo"):
    - site name: "<repo> Architecture Docs"
    - base URL: "https://<owner>.github.io/<repo>"
    - repo URL: "https://github.com/<owner>/<repo>"

    Args:
        config: Configuration to update in place
        env: Environment mapping (defaults to os.environ)

    Returns:
        The updated configuration
    """
    env = os.environ if env is None else env

    api_key = get_input("supermodel-api-key", env)
    if api_key:
        config.api.api_key = api_key
    elif not config.api.api_key and env.get("SUPERMODEL_API_KEY"):
        config.api.api_key = env["SUPERMODEL_API_KEY"].strip()

    for input_name, attr in (
        ("site-name", "name"),
        ("base-url", "base_url"),
        ("output-dir", "output_dir"),
        ("templates-dir", "templates_dir"),
    ):
        value = get_input(input_name, env)
        if value:
            setattr(config.site, attr, value)

    workspace = env.get("GITHUB_WORKSPACE", "")
    if workspace:
        config.workspace = workspace

    gh_repo = env.get("GITHUB_REPOSITORY", "")
    owner, _, repo = gh_repo.partition("/")
    if gh_repo:
        if not config.site.repo_name:
            config.site.repo_name = repo or gh_repo
        if not config.site.repo_url:
            config.site.repo_url = "https://github.com/" + gh_repo

    if not config.site.name:
        if config.site.repo_name:
            config.site.name = config.site.repo_name + " Architecture Docs"
        else:
            config.site.name = "Architecture Docs"

    if not config.site.base_url:
        if gh_repo and repo:
            config.site.base_url = f"https://{owner}.github.io/{repo}"
        elif config.site.repo_url:
            config.site.base_url = config.site.repo_url
        else:
            config.site.base_url = "https://example.com"

    return config


def create_default_config() -> str:
    """Create default configuration YAML content.

    Returns:
        YAML string with default configuration and comments
    """
    return '''# archdocs configuration

# Analysis API settings
api:
  # api_key: "${SUPERMODEL_API_KEY}"  # or set SUPERMODEL_API_KEY
  base_url: "https://api.supermodeltools.com"
  poll_timeout: 900            # seconds per job
  default_poll_interval: 10    # used when Retry-After is missing
  max_poll_interval: 120       # Retry-After is clamped to this
  request_timeout: 300
  # endpoints:
  #   - name: "supermodel"
  #     required: true
  #   - name: "impact"
  #   - name: "test-coverage"
  #   - name: "circular-deps"

# Site settings (derived from GITHUB_REPOSITORY when empty)
site:
  # name: "my-repo Architecture Docs"
  # base_url: "https://owner.github.io/my-repo"
  output_dir: "./arch-docs-output"

# External tools
tools:
  graph2md: "graph2md"
  pssg: "pssg"

# CI/CD settings
ci:
  fail_on_warning: false
  json_output: false
'''
