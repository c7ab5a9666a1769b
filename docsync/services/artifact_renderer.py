"""Markdown rendering for artifacts, directory indexes and top-level pages"""

import logging
import posixpath
import re
from collections import Counter

import yaml

from docsync.models.artifact import (
    INDEX_STEM,
    ArtifactCategory,
    ArtifactRecord,
    ArtifactStatus,
    SourceItem,
    artifact_id_stem,
)
from docsync.models.configuration import Configuration, Stack
from docsync.services.artifact_registry import ArtifactRegistry
from docsync.services.extractors.base import doc_sections

logger = logging.getLogger(__name__)

DEPRECATION_BANNER = (
    "> **Deprecated:** this item is deprecated and will be removed from the "
    "documentation once it is removed from the source."
)

_FRONT_MATTER = re.compile(r"\A---\n(?P<yaml>.*?)\n---\n", re.S)

_CODE_LANGUAGES = {
    Stack.PYTHON: "python",
    Stack.GO: "go",
    Stack.TYPESCRIPT: "typescript",
    Stack.JAVASCRIPT: "javascript",
    Stack.RUST: "rust",
    Stack.JAVA: "java",
    Stack.KOTLIN: "kotlin",
    Stack.CSHARP: "csharp",
    Stack.RUBY: "ruby",
    Stack.PHP: "php",
    Stack.SWIFT: "swift",
}

_PARAM_DOC = re.compile(r"^\s*\*?\*?(?P<name>[\w*]+)\s*(?:\([^)]*\))?\s*:\s*(?P<desc>.*)$")


def render_front_matter(data: dict) -> str:
    body = yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f"---\n{body}---\n"


def split_front_matter(text: str) -> tuple[dict, str]:
    """Front matter mapping and the remaining body of a markdown document"""
    match = _FRONT_MATTER.match(text)
    if not match:
        return {}, text
    data = yaml.safe_load(match.group("yaml")) or {}
    return (data if isinstance(data, dict) else {}), text[match.end() :]


def relative_link(from_id: str, to_id: str) -> str:
    """Relative markdown link between two artifact ids"""
    from_dir = posixpath.dirname(from_id) or "."
    return posixpath.relpath(f"{to_id}.md", from_dir)


class ArtifactRenderer:
    """Render documentation markdown deterministically (no timestamps)"""

    def __init__(self, configuration: Configuration):
        self.configuration = configuration
        self.code_language = _CODE_LANGUAGES.get(configuration.stack, "")

    # ------------------------------------------------------------------
    # Item artifacts

    def render_item(
        self,
        artifact_id: str,
        item: SourceItem,
        registry: ArtifactRegistry,
        deprecated: bool = False,
        order: int | None = None,
        deprecated_at: str | None = None,
    ) -> str:
        """
        Render one item artifact

        Args:
            artifact_id: Target artifact id
            item: Extracted source item
            registry: Projected registry used to resolve related links
            deprecated: Force deprecated status (item flagged or removed)
            order: Ordering hint preserved from the existing artifact
            deprecated_at: Revision recorded with a deprecated status

        Returns:
            str: Full markdown document including front matter
        """
        is_deprecated = deprecated or item.deprecated
        status = ArtifactStatus.DEPRECATED if is_deprecated else ArtifactStatus.ACTIVE
        front_matter = {
            "id": artifact_id_stem(artifact_id),
            "title": item.name,
            "category": item.category.value,
            "visibility": item.visibility.value,
            "status": status.value,
            "source": item.source_path,
            "qualified_name": item.qualified_name,
        }
        if is_deprecated and deprecated_at:
            front_matter["deprecated_at"] = deprecated_at
        if order is not None:
            front_matter["order"] = order
        if item.related:
            front_matter["related"] = list(item.related)

        sections = doc_sections(item.doc)
        parts = [f"# {item.name}"]
        if status == ArtifactStatus.DEPRECATED:
            parts.append(DEPRECATION_BANNER)
        parts.append(f"```{self.code_language}\n{item.signature}\n```")
        parts.append(f"Defined in `{item.source_path}` (line {item.line}).")

        description = self._description(sections)
        if description:
            parts.append(description)

        parameters = self._parameters_section(item, sections)
        if parameters:
            parts.append(parameters)

        returns_doc = "\n".join(sections.get("returns", [])).strip()
        if item.returns or returns_doc:
            returns_line = f"`{item.returns}`" if item.returns else ""
            if returns_doc:
                returns_line = f"{returns_line} {returns_doc}".strip()
            parts.append(f"## Returns\n\n{returns_line}")

        errors = self._errors_section(item, sections)
        if errors:
            parts.append(errors)

        if self.configuration.include_inline_examples and item.examples:
            examples = "\n\n".join(
                f"```{self.code_language}\n{example}\n```" for example in item.examples
            )
            parts.append(f"## Examples\n\n{examples}")

        related = self._related_section(artifact_id, item, registry)
        if related:
            parts.append(related)

        return render_front_matter(front_matter) + "\n" + "\n\n".join(parts) + "\n"

    def render_deprecated(self, existing_text: str, revision: str | None = None) -> str:
        """Existing artifact with status flipped and the banner prepended

        An existing deprecated_at stamp is kept; otherwise revision is recorded.
        """
        front_matter, body = split_front_matter(existing_text)
        front_matter["status"] = ArtifactStatus.DEPRECATED.value
        if revision and not front_matter.get("deprecated_at"):
            front_matter["deprecated_at"] = revision
        body = body.lstrip("\n")
        if DEPRECATION_BANNER not in body:
            body = f"{DEPRECATION_BANNER}\n\n{body}"
        return render_front_matter(front_matter) + "\n" + body

    def _description(self, sections: dict[str, list[str]]) -> str:
        lines = []
        for line in sections.get("", []):
            if line.strip().startswith(">>>"):
                break
            lines.append(line)
        return "\n".join(lines).strip()

    def _parameters_section(self, item: SourceItem, sections: dict[str, list[str]]) -> str:
        if not item.parameters:
            return ""
        documented = {}
        for key in ("args", "arguments", "parameters", "params"):
            for line in sections.get(key, []):
                match = _PARAM_DOC.match(line)
                if match:
                    documented[match.group("name").lstrip("*")] = match.group("desc").strip()

        rows = ["| Name | Type | Default | Description |", "| --- | --- | --- | --- |"]
        for param in item.parameters:
            rows.append(
                "| `{}` | {} | {} | {} |".format(
                    param.name,
                    f"`{param.annotation}`" if param.annotation else "",
                    f"`{param.default}`" if param.default else "",
                    documented.get(param.name.lstrip("*"), "").replace("|", "\\|"),
                )
            )
        return "## Parameters\n\n" + "\n".join(rows)

    def _errors_section(self, item: SourceItem, sections: dict[str, list[str]]) -> str:
        if not item.raises:
            return ""
        descriptions = {}
        for line in sections.get("raises", []):
            name, _, desc = line.strip().partition(":")
            if desc:
                descriptions[name.strip()] = desc.strip()
        lines = [
            f"- `{name}`" + (f": {descriptions[name]}" if name in descriptions else "")
            for name in item.raises
        ]
        return "## Errors\n\n" + "\n".join(lines)

    def _related_section(
        self, artifact_id: str, item: SourceItem, registry: ArtifactRegistry
    ) -> str:
        if not item.related:
            return ""
        lines = []
        for reference in item.related:
            target = registry.resolve(reference)
            if target is None:
                logger.warning(f"Dangling related link in {artifact_id}: {reference}")
                lines.append(f"- `{reference}`")
            else:
                link = relative_link(artifact_id, target.artifact_id)
                lines.append(f"- [{target.title}]({link})")
        return "## Related\n\n" + "\n".join(lines)

    # ------------------------------------------------------------------
    # Indexes and top-level pages

    def render_index(self, directory_id: str, records: list[ArtifactRecord]) -> str:
        """Directory listing ordered by explicit order hints, then alphabetically"""
        title = self.directory_title(directory_id)
        ordered = sorted(
            records,
            key=lambda r: (r.order is None, r.order or 0, r.title.lower(), r.artifact_id),
        )
        front_matter = {
            "id": INDEX_STEM,
            "title": title,
            "category": ArtifactCategory.INDEX.value,
        }
        lines = [f"# {title}", ""]
        if ordered:
            for record in ordered:
                lines.append(f"- [{record.title}]({artifact_id_stem(record.artifact_id)}.md)")
        else:
            lines.append("_No documented items._")
        return render_front_matter(front_matter) + "\n" + "\n".join(lines) + "\n"

    @staticmethod
    def directory_title(directory_id: str) -> str:
        """public/functions -> Public functions"""
        head, *rest = directory_id.split("/")
        return " ".join([head.replace("_", " ").capitalize(), *rest])

    def render_overview(self, registry: ArtifactRegistry) -> str:
        lines = [
            "# Overview",
            "",
            f"Stack: `{self.configuration.stack.value}`",
            "",
            "| Section | Active | Deprecated |",
            "| --- | --- | --- |",
        ]
        directories = registry.directories()
        for directory_id in directories:
            statuses = Counter(r.status for r in registry.in_directory(directory_id))
            title = self.directory_title(directory_id)
            lines.append(
                f"| [{title}]({directory_id}/{INDEX_STEM}.md) "
                f"| {statuses[ArtifactStatus.ACTIVE]} | {statuses[ArtifactStatus.DEPRECATED]} |"
            )
        if not directories:
            lines.append("| _none_ | 0 | 0 |")
        lines.extend(["", "See [architecture](architecture.md) for the module layout."])
        front_matter = {"id": "overview", "title": "Overview", "category": "overview"}
        return render_front_matter(front_matter) + "\n" + "\n".join(lines) + "\n"

    def render_architecture(self, registry: ArtifactRegistry) -> str:
        modules: dict[str, Counter] = {}
        for record in registry:
            if not record.source_path:
                continue
            modules.setdefault(record.source_path, Counter())[record.category.value] += 1

        lines = [
            "# Architecture",
            "",
            "| Source file | Functions | Types | Errors |",
            "| --- | --- | --- | --- |",
        ]
        for source_path in sorted(modules):
            counter = modules[source_path]
            lines.append(
                f"| `{source_path}` | {counter['function']} "
                f"| {counter['type']} | {counter['error']} |"
            )

        if self.configuration.include_architecture_diagrams and modules:
            lines.extend(["", "```mermaid", "graph TD"])
            edges = set()
            for source_path in sorted(modules):
                directory = posixpath.dirname(source_path) or "."
                edges.add((directory, source_path))
            node_ids: dict[str, str] = {}
            for directory, source_path in sorted(edges):
                for name in (directory, source_path):
                    node_ids.setdefault(name, f"n{len(node_ids)}")
                lines.append(
                    f'    {node_ids[directory]}["{directory}"] --> '
                    f'{node_ids[source_path]}["{source_path}"]'
                )
            lines.append("```")

        front_matter = {"id": "architecture", "title": "Architecture", "category": "architecture"}
        return render_front_matter(front_matter) + "\n" + "\n".join(lines) + "\n"
