"""GitHub Actions integration helpers.

- Outputs are appended to the file named by GITHUB_OUTPUT
- Log groups fold console output in the workflow UI
"""

import logging
import os
import sys
import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import TextIO

logger = logging.getLogger(__name__)


def in_github_actions(env: Mapping[str, str] | None = None) -> bool:
    """Return True when running inside a GitHub Actions job."""
    env = os.environ if env is None else env
    return env.get("GITHUB_ACTIONS") == "true"


def set_output(
    name: str,
    value: object,
    env: Mapping[str, str] | None = None,
    stream: TextIO | None = None,
) -> None:
    """Publish a step output.

    Appends ``name=value`` to $GITHUB_OUTPUT, using the heredoc form for
    multi-line values. Without GITHUB_OUTPUT the legacy ``::set-output``
    command is printed instead.
    """
    env = os.environ if env is None else env
    text = str(value)
    output_file = env.get("GITHUB_OUTPUT")

    if not output_file:
        print(f"::set-output name={name}::{text}", file=stream or sys.stdout)
        return

    with Path(output_file).open("a", encoding="utf-8") as f:
        if "\n" in text:
            delimiter = f"ghadelimiter_{uuid.uuid4()}"
            f.write(f"{name}<<{delimiter}\n{text}\n{delimiter}\n")
        else:
            f.write(f"{name}={text}\n")
    logger.debug("Set output %s=%s", name, text)


@contextmanager
def log_group(title: str, enabled: bool | None = None, stream: TextIO | None = None) -> Iterator[None]:
    """Fold everything logged inside the block under ``title``.

    Outside GitHub Actions (or with enabled=False) the title is logged as a
    plain info line.
    """
    if enabled is None:
        enabled = in_github_actions()
    out = stream or sys.stderr

    if not enabled:
        logger.info(title)
        yield
        return

    print(f"::group::{title}", file=out, flush=True)
    try:
        yield
    finally:
        print("::endgroup::", file=out, flush=True)
