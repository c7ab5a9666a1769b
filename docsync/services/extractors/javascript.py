"""JavaScript / TypeScript extractor based on export declarations and JSDoc"""

import re

from docsync.models.artifact import ItemKind, Parameter, SourceItem, Visibility
from docsync.services.extractors.base import SourceExtractor, module_path

_DECLARATION = re.compile(
    r"^(?P<export>export\s+(?:default\s+)?)?(?:declare\s+)?"
    r"(?:(?P<async>async\s+)?function\*?\s+(?P<func>\w+)\s*(?:<[^>]*>)?\((?P<params>[^)]*)\)"
    r"(?:\s*:\s*(?P<returns>[^{=]+))?"
    r"|(?:abstract\s+)?class\s+(?P<cls>\w+)(?:<[^>]*>)?(?:\s+extends\s+(?P<base>[\w.]+))?"
    r"|interface\s+(?P<iface>\w+)"
    r"|type\s+(?P<alias>\w+)"
    r"|enum\s+(?P<enum>\w+)"
    r"|(?:const|let)\s+(?P<const>\w+)\s*(?::[^=]+)?=\s*(?:async\s+)?"
    r"(?:function\b|\((?P<arrow_params>[^)]*)\)\s*(?::\s*[^=]+)?=>))"
)
_JSDOC_TAG = re.compile(r"^@(\w+)\s*(.*)$")


class JavaScriptExtractor(SourceExtractor):
    """Extract top-level functions, classes, interfaces, type aliases and enums"""

    suffixes = (".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx", ".mts", ".cts")

    def list_public_items(self, content: str, source_path: str) -> list[SourceItem]:
        if source_path.endswith(".d.ts"):
            return []

        prefix = module_path(source_path)
        lines = content.splitlines()
        items: list[SourceItem] = []

        for index, line in enumerate(lines):
            match = _DECLARATION.match(line)
            if match is None:
                continue

            name, kind = self._name_and_kind(match)
            doc, tags = self._jsdoc(lines, index)
            params_text = match.group("params") or match.group("arrow_params") or ""
            returns = tags.get("returns", [None])[0] or (
                (match.group("returns") or "").strip() or None
            )

            items.append(
                SourceItem(
                    qualified_name=f"{prefix}.{name}",
                    name=name,
                    kind=kind,
                    signature=line.rstrip("{").strip(),
                    doc=doc,
                    visibility=Visibility.PUBLIC if match.group("export") else Visibility.PRIVATE,
                    deprecated="deprecated" in tags,
                    parameters=self._parameters(params_text, tags.get("param", [])),
                    returns=returns,
                    raises=[t.split()[0].strip("{}") for t in tags.get("throws", []) if t],
                    examples=[e for e in tags.get("example", []) if e],
                    related=[s.split()[0] for s in tags.get("see", []) if s],
                    source_path=source_path,
                    line=index + 1,
                )
            )

        return sorted(items, key=lambda item: item.qualified_name)

    def _name_and_kind(self, match: re.Match) -> tuple[str, ItemKind]:
        if match.group("func"):
            return match.group("func"), ItemKind.FUNCTION
        if match.group("const"):
            return match.group("const"), ItemKind.FUNCTION
        if match.group("cls"):
            base = match.group("base") or ""
            kind = ItemKind.ERROR if base.split(".")[-1].endswith("Error") else ItemKind.TYPE
            return match.group("cls"), kind
        name = match.group("iface") or match.group("alias") or match.group("enum")
        return name, ItemKind.TYPE

    def _jsdoc(self, lines: list[str], index: int) -> tuple[str, dict[str, list[str]]]:
        """Description text and @tags of the /** */ block ending right above index"""
        cursor = index - 1
        if cursor < 0 or not lines[cursor].strip().endswith("*/"):
            return "", {}

        block: list[str] = []
        while cursor >= 0:
            stripped = lines[cursor].strip()
            block.append(stripped)
            if stripped.startswith("/**"):
                break
            cursor -= 1
        else:
            return "", {}

        description: list[str] = []
        tags: dict[str, list[str]] = {}
        current_tag: str | None = None
        for raw in reversed(block):
            text = raw.removeprefix("/**").removesuffix("*/").strip()
            text = text[1:].strip() if text.startswith("*") else text
            tag = _JSDOC_TAG.match(text)
            if tag:
                current_tag = tag.group(1)
                tags.setdefault(current_tag, []).append(tag.group(2).strip())
            elif current_tag:
                if text:
                    tags[current_tag][-1] = f"{tags[current_tag][-1]}\n{text}".strip()
            else:
                description.append(text)

        return "\n".join(description).strip(), tags

    def _parameters(self, params: str, param_tags: list[str]) -> list[Parameter]:
        documented_types = {}
        for tag in param_tags:
            type_match = re.match(r"\{([^}]*)\}\s*\[?(\w+)", tag)
            if type_match:
                documented_types[type_match.group(2)] = type_match.group(1)

        parsed = []
        for part in params.split(","):
            part = part.strip()
            if not part:
                continue
            declared, _, default = part.partition("=")
            name, _, annotation = declared.partition(":")
            name = name.strip().rstrip("?")
            parsed.append(
                Parameter(
                    name=name,
                    annotation=annotation.strip() or documented_types.get(name.lstrip(".")),
                    default=default.strip() or None,
                )
            )
        return parsed
