"""archdocs utility modules.

- logging: Standardized logging with human/verbose/JSON/GitHub modes
- github: GitHub Actions outputs and log groups
- preflight: External tool availability checks
"""

from archdocs.utils.github import in_github_actions, log_group, set_output
from archdocs.utils.logging import configure_from_cli, get_logger, setup_logging
from archdocs.utils.preflight import PreflightChecker, PreflightResult

__all__ = [
    "configure_from_cli",
    "get_logger",
    "in_github_actions",
    "log_group",
    "set_output",
    "setup_logging",
    "PreflightChecker",
    "PreflightResult",
]
