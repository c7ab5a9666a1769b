"""Capability interface for per-ecosystem source extractors"""

import re
from abc import ABC, abstractmethod
from pathlib import PurePosixPath

from docsync.models.artifact import SourceItem

_SECTION_HEADER = re.compile(r"^\s*([A-Z][A-Za-z ]+):\s*$")
_SYMBOL_NAME = re.compile(r"^[A-Za-z_][\w.]*$")
_DEPRECATED_MARKER = re.compile(r"^\s*(\.\. deprecated::|deprecated:|@deprecated\b)", re.I)


class ExtractionError(Exception):
    """Raised when a source file cannot be parsed by its extractor"""

    def __init__(self, source_path: str, message: str, cause: Exception | None = None):
        self.source_path = source_path
        self.message = message
        self.cause = cause
        super().__init__(f"{source_path}: {message}")


class SourceExtractor(ABC):
    """Turns one source file's content into documented items

    The core never parses source itself; it only consumes this interface.
    """

    suffixes: tuple[str, ...] = ()

    def supports(self, source_path: str) -> bool:
        return PurePosixPath(source_path).suffix.lower() in self.suffixes

    @abstractmethod
    def list_public_items(self, content: str, source_path: str) -> list[SourceItem]:
        """
        Extract declared items with their doc comments

        Private items are returned too, with visibility set accordingly; the
        planner decides whether to document them.

        Raises:
            ExtractionError: If content cannot be parsed
        """


def module_path(source_path: str, strip_prefixes: tuple[str, ...] = ("src/", "lib/")) -> str:
    """Dotted module path for a source file (src/pkg/mod.py -> pkg.mod)"""
    path = source_path
    for prefix in strip_prefixes:
        if path.startswith(prefix):
            path = path[len(prefix) :]
            break
    pure = PurePosixPath(path)
    parts = list(pure.with_suffix("").parts)
    if parts and parts[-1] in ("__init__", "index", "mod"):
        parts = parts[:-1]
    return ".".join(parts) if parts else pure.stem


def doc_sections(doc: str) -> dict[str, list[str]]:
    """Split a Google-style doc comment into named sections ("" is the summary)"""
    sections: dict[str, list[str]] = {"": []}
    current = ""
    for line in doc.splitlines():
        header = _SECTION_HEADER.match(line)
        if header:
            current = header.group(1).strip().lower()
            sections.setdefault(current, [])
            continue
        sections[current].append(line)
    return sections


def section_names(lines: list[str]) -> list[str]:
    """Leading names of `Name: description` lines (Raises: / See Also: sections)"""
    names = []
    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue
        head = stripped.split(":", 1)[0] if ":" in stripped else stripped
        for name in head.split(","):
            name = name.strip().strip("`")
            if _SYMBOL_NAME.match(name):
                names.append(name)
    return names


def doctest_examples(doc: str) -> list[str]:
    """Contiguous `>>>` blocks (with their expected output) from a docstring"""
    examples = []
    block: list[str] = []
    for line in doc.splitlines():
        stripped = line.strip()
        if stripped.startswith(">>>") or (block and stripped):
            block.append(stripped)
            continue
        if block:
            examples.append("\n".join(block))
            block = []
    if block:
        examples.append("\n".join(block))
    return examples


def example_section(sections: dict[str, list[str]]) -> list[str]:
    """Body of an Example(s): section, dedented, as one example"""
    lines = sections.get("examples") or sections.get("example") or []
    text = "\n".join(line[4:] if line.startswith("    ") else line for line in lines).strip()
    return [text] if text else []


def is_deprecated_doc(doc: str) -> bool:
    return any(_DEPRECATED_MARKER.match(line) for line in doc.splitlines())
