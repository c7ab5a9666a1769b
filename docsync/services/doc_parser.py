"""Markdown artifact parser (front matter, links)"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from markdown_it import MarkdownIt
from mdit_py_plugins.front_matter import front_matter_plugin

logger = logging.getLogger(__name__)


@dataclass
class ParsedArtifact:
    """Structured content extracted from a generated markdown artifact"""

    front_matter: dict[str, Any] = field(default_factory=dict)
    links: list[str] = field(default_factory=list)


class DocParser:
    """Parse generated markdown artifacts"""

    def __init__(self):
        # Initialize markdown-it parser with plugins
        self.md = MarkdownIt("commonmark", {"html": True})
        self.md.use(front_matter_plugin)
        self.md.enable("table")

    def parse(self, source: Path | str) -> ParsedArtifact:
        """
        Parse a markdown artifact

        Args:
            source: Path to a markdown file or markdown content as string

        Returns:
            ParsedArtifact: Front matter and link targets
        """
        content = self._read_content(source)
        tokens = self.md.parse(content)

        parsed = ParsedArtifact()
        for token in tokens:
            if token.type == "front_matter":
                parsed.front_matter = self._parse_front_matter(token.content, source)
            elif token.type == "inline":
                parsed.links.extend(self._links(token))

        return parsed

    def _read_content(self, source: Path | str) -> str:
        """Read content from file path or return string directly"""
        if isinstance(source, Path):
            return source.read_text(encoding="utf-8")
        return source

    def _parse_front_matter(self, text: str, source: Path | str) -> dict[str, Any]:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            logger.warning(f"Invalid front matter in {source}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _links(self, inline_token) -> list[str]:
        links = []
        for child in inline_token.children or []:
            if child.type == "link_open":
                href = child.attrGet("href")
                if href:
                    links.append(str(href))
        return links
