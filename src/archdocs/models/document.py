"""Entity documents produced by the external markdown generator.

Each document is a markdown file with a frontmatter block:

    ---
    title: "handler.go"
    file_path: "internal/api/handler.go"
    node_type: "File"
    ---
    body...

EntityDocument keeps the raw metadata lines so that an unmodified document
renders back byte-for-byte. Mutation is append-only: new metadata lines go
after the existing ones and new body sections go before the existing body.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DELIMITER = "---"

_TOP_LEVEL_KEY = re.compile(r"^([A-Za-z_][\w.-]*)\s*:(.*)$")


class DocumentFormatError(ValueError):
    """Raised when text does not start with a closed frontmatter block."""


def _trim_value(value: str) -> str:
    return value.strip().strip("\"'")


@dataclass
class EntityDocument:
    """One generated document representing a code entity.

    Attributes:
        metadata_lines: Raw frontmatter lines between the delimiters
        body: Everything after the closing delimiter
        path: File the document was loaded from, if any
    """

    metadata_lines: list[str] = field(default_factory=list)
    body: str = ""
    path: Path | None = None
    _appended: list[str] = field(default_factory=list, init=False, repr=False)
    _sections: list[str] = field(default_factory=list, init=False, repr=False)

    # -------------------------------------------------------------------------
    # Parsing and rendering
    # -------------------------------------------------------------------------

    @classmethod
    def parse(cls, text: str, path: Path | None = None) -> "EntityDocument":
        """Parse document text.

        Args:
            text: Full document text
            path: Optional source path

        Returns:
            EntityDocument

        Raises:
            DocumentFormatError: If the text has no opening or closing delimiter
        """
        opening = DELIMITER + "\n"
        if not text.startswith(opening):
            raise DocumentFormatError("document does not start with frontmatter")

        rest = text[len(opening):]
        if rest.startswith(opening):
            return cls(metadata_lines=[], body=rest[len(opening):], path=path)

        closing = "\n" + DELIMITER + "\n"
        end = rest.find(closing)
        if end < 0:
            raise DocumentFormatError("frontmatter is not closed")

        return cls(
            metadata_lines=rest[:end].split("\n"),
            body=rest[end + len(closing):],
            path=path,
        )

    @classmethod
    def load(cls, path: Path) -> "EntityDocument":
        """Read and parse a document file."""
        return cls.parse(path.read_text(encoding="utf-8"), path=path)

    def render(self) -> str:
        """Render the document, including any pending additions."""
        lines = self.metadata_lines + self._appended
        header = DELIMITER + "\n"
        if lines:
            header += "\n".join(lines) + "\n"
        header += DELIMITER + "\n"

        body = self.body
        if self._sections:
            body = "\n\n".join(self._sections) + "\n\n" + body
        return header + body

    def save(self, path: Path | None = None) -> Path:
        """Write the rendered document back to disk."""
        target = path or self.path
        if target is None:
            raise ValueError("No path to save document to")
        target.write_text(self.render(), encoding="utf-8")
        return target

    # -------------------------------------------------------------------------
    # Metadata access
    # -------------------------------------------------------------------------

    def get(self, key: str) -> str:
        """Return the first value for ``key`` with surrounding quotes trimmed.

        Lines are matched on a ``key:`` prefix after stripping whitespace, so
        key order does not matter and unrecognised keys are ignored.

        Returns:
            The value, or an empty string if the key is missing
        """
        prefix = key + ":"
        for line in self.metadata_lines + self._appended:
            stripped = line.strip()
            if stripped.startswith(prefix):
                return _trim_value(stripped[len(prefix):])
        return ""

    def has_key(self, key: str) -> bool:
        """Return True if ``key`` is a top-level metadata key."""
        return key in self.keys()

    def keys(self) -> list[str]:
        """Return top-level metadata keys in document order."""
        found: list[str] = []
        for line in self.metadata_lines + self._appended:
            match = _TOP_LEVEL_KEY.match(line)
            if match and match.group(1) not in found:
                found.append(match.group(1))
        return found

    @property
    def metadata(self) -> dict[str, str]:
        """Top-level scalar metadata as an ordered mapping (first value wins)."""
        values: dict[str, str] = {}
        for line in self.metadata_lines + self._appended:
            match = _TOP_LEVEL_KEY.match(line)
            if match and match.group(1) not in values:
                values[match.group(1)] = _trim_value(match.group(2))
        return values

    @property
    def file_path(self) -> str:
        return self.get("file_path")

    @property
    def function_name(self) -> str:
        return self.get("function_name")

    @property
    def node_type(self) -> str:
        return self.get("node_type")

    # -------------------------------------------------------------------------
    # Append-only mutation
    # -------------------------------------------------------------------------

    def add_metadata(self, key: str, value: str) -> bool:
        """Append a ``key: value`` line unless the key already exists.

        Args:
            key: Metadata key
            value: Value exactly as it should appear (quoted if a string)

        Returns:
            True if the line was appended
        """
        if self.has_key(key):
            logger.debug("Keeping existing %s in %s", key, self.path or "<document>")
            return False
        self._appended.append(f"{key}: {value}")
        return True

    def add_section(self, heading: str, content: str) -> None:
        """Queue a level-2 section to be placed ahead of the existing body."""
        self._sections.append(f"## {heading}\n\n{content}")

    @property
    def modified(self) -> bool:
        return bool(self._appended or self._sections)

    @property
    def added_metadata(self) -> list[str]:
        return list(self._appended)

    @property
    def added_sections(self) -> list[str]:
        return list(self._sections)


def iter_document_paths(root: Path, suffix: str = ".md") -> Iterator[Path]:
    """Yield document files below ``root`` in a stable order."""
    for path in sorted(root.rglob(f"*{suffix}")):
        if path.is_file():
            yield path
