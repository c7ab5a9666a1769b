"""Go source extractor based on declaration patterns and // doc comments"""

import re
from pathlib import PurePosixPath

from docsync.models.artifact import ItemKind, Parameter, SourceItem, Visibility
from docsync.services.extractors.base import ExtractionError, SourceExtractor

_PACKAGE = re.compile(r"^package\s+(\w+)", re.M)
_FUNC = re.compile(
    r"^func\s+(?:\((?P<recv>[^)]*)\)\s*)?(?P<name>\w+)\s*(?:\[[^\]]*\])?\((?P<params>[^)]*)\)"
    r"\s*(?P<returns>[^{]*)"
)
_TYPE = re.compile(r"^type\s+(?P<name>\w+)(?:\[[^\]]*\])?\s+(?P<body>.*)")
_TYPE_GROUP = re.compile(r"^type\s*\(\s*$")
_GROUPED_TYPE = re.compile(r"^(?P<name>[A-Za-z_]\w*)(?:\[[^\]]*\])?\s+(?P<body>\S.*)")
_ERROR_VAR = re.compile(r"^(?:var\s+)?(?P<name>Err\w*)\s*=\s*(?:errors\.New|fmt\.Errorf)\(")


class GoExtractor(SourceExtractor):
    """Extract top-level funcs, methods, types and sentinel errors"""

    suffixes = (".go",)

    def list_public_items(self, content: str, source_path: str) -> list[SourceItem]:
        package = _PACKAGE.search(content)
        if package is None:
            raise ExtractionError(source_path, "missing package clause")

        directory = PurePosixPath(source_path).parent.as_posix()
        prefix = directory if directory not in ("", ".") else package.group(1)
        lines = content.splitlines()
        items: list[SourceItem] = []
        in_type_group = False
        depth = 0

        for index, raw in enumerate(lines):
            line = raw.rstrip()
            stripped = line.strip()
            if in_type_group:
                if depth == 0 and stripped == ")":
                    in_type_group = False
                    continue
                member = _GROUPED_TYPE.match(stripped) if depth == 0 else None
                if member:
                    declaration = f"type {stripped}"
                    name = member.group("name")
                    items.append(
                        self._type_item(prefix, name, declaration, lines, index, source_path)
                    )
                depth += line.count("{") - line.count("}")
                continue
            if _TYPE_GROUP.match(line):
                in_type_group = True
                depth = 0
                continue

            # Sentinel errors may live inside a var ( ... ) block
            error_match = _ERROR_VAR.match(stripped)
            if error_match:
                items.append(
                    self._item(
                        prefix,
                        error_match.group("name"),
                        ItemKind.ERROR,
                        stripped,
                        lines,
                        index,
                        source_path,
                    )
                )
                continue

            func_match = _FUNC.match(line)
            if func_match:
                name = func_match.group("name")
                receiver = self._receiver_type(func_match.group("recv"))
                qualified_prefix = f"{prefix}.{receiver}" if receiver else prefix
                item = self._item(
                    qualified_prefix,
                    name,
                    ItemKind.FUNCTION,
                    line.rstrip("{").strip(),
                    lines,
                    index,
                    source_path,
                )
                item.parameters = self._parameters(func_match.group("params"))
                item.returns = func_match.group("returns").strip() or None
                if receiver and not receiver[0].isupper():
                    item.visibility = Visibility.PRIVATE
                items.append(item)
                continue

            type_match = _TYPE.match(line)
            if type_match:
                items.append(
                    self._type_item(
                        prefix, type_match.group("name"), line, lines, index, source_path
                    )
                )

        return sorted(items, key=lambda item: item.qualified_name)

    def _type_item(
        self,
        prefix: str,
        name: str,
        declaration: str,
        lines: list[str],
        index: int,
        source_path: str,
    ) -> SourceItem:
        kind = ItemKind.ERROR if name.endswith("Error") else ItemKind.TYPE
        signature = declaration.rstrip("{").strip()
        return self._item(prefix, name, kind, signature, lines, index, source_path)

    def _item(
        self,
        prefix: str,
        name: str,
        kind: ItemKind,
        signature: str,
        lines: list[str],
        index: int,
        source_path: str,
    ) -> SourceItem:
        doc = self._doc_comment(lines, index)
        return SourceItem(
            qualified_name=f"{prefix}.{name}",
            name=name,
            kind=kind,
            signature=signature,
            doc=doc,
            visibility=Visibility.PUBLIC if name[0].isupper() else Visibility.PRIVATE,
            deprecated=any(line.startswith("Deprecated:") for line in doc.splitlines()),
            related=self._see_also(doc),
            source_path=source_path,
            line=index + 1,
        )

    def _doc_comment(self, lines: list[str], index: int) -> str:
        doc_lines = []
        cursor = index - 1
        while cursor >= 0 and lines[cursor].strip().startswith("//"):
            doc_lines.append(lines[cursor].strip()[2:].strip())
            cursor -= 1
        return "\n".join(reversed(doc_lines))

    def _receiver_type(self, receiver: str | None) -> str | None:
        if not receiver:
            return None
        type_name = receiver.strip().split()[-1].lstrip("*")
        return type_name.split("[")[0]

    def _parameters(self, params: str) -> list[Parameter]:
        """Parse `a, b int, c string`; grouped names share the following type"""
        parts = [part.strip() for part in params.split(",") if part.strip()]
        parsed: list[Parameter] = []
        pending: list[str] = []
        for part in parts:
            tokens = part.split(None, 1)
            if len(tokens) == 1:
                pending.append(tokens[0])
                continue
            name, annotation = tokens
            for pending_name in pending:
                parsed.append(Parameter(name=pending_name, annotation=annotation))
            pending = []
            parsed.append(Parameter(name=name, annotation=annotation))
        # Unnamed parameters: only types were given
        for pending_type in pending:
            parsed.append(Parameter(name="_", annotation=pending_type))
        return parsed

    def _see_also(self, doc: str) -> list[str]:
        related = []
        for line in doc.splitlines():
            if line.lower().startswith("see also:"):
                related.extend(
                    name.strip() for name in line.split(":", 1)[1].split(",") if name.strip()
                )
        return related
