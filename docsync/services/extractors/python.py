"""Python source extractor based on the ast module"""

import ast
import logging

from docsync.models.artifact import ItemKind, Parameter, SourceItem, Visibility
from docsync.services.extractors.base import (
    ExtractionError,
    SourceExtractor,
    doc_sections,
    doctest_examples,
    example_section,
    is_deprecated_doc,
    module_path,
    section_names,
)

logger = logging.getLogger(__name__)

_ERROR_BASE_SUFFIXES = ("Error", "Exception", "Warning")

FunctionNode = ast.FunctionDef | ast.AsyncFunctionDef


class PythonExtractor(SourceExtractor):
    """Extract module-level functions, classes, exceptions and public methods"""

    suffixes = (".py", ".pyi")

    def list_public_items(self, content: str, source_path: str) -> list[SourceItem]:
        try:
            tree = ast.parse(content, filename=source_path)
        except SyntaxError as e:
            raise ExtractionError(source_path, f"syntax error at line {e.lineno}", e) from e

        module = module_path(source_path)
        exported = self._dunder_all(tree)
        items: list[SourceItem] = []

        for node in tree.body:
            if isinstance(node, FunctionNode):
                visibility = self._visibility(node.name, exported)
                items.append(self._function_item(node, module, source_path, visibility))
            elif isinstance(node, ast.ClassDef):
                visibility = self._visibility(node.name, exported)
                class_item = self._class_item(node, module, source_path, visibility)
                items.append(class_item)
                items.extend(
                    self._method_items(node, class_item.qualified_name, source_path, visibility)
                )

        return sorted(items, key=lambda item: item.qualified_name)

    def _dunder_all(self, tree: ast.Module) -> set[str] | None:
        for node in tree.body:
            if isinstance(node, ast.Assign) and any(
                isinstance(t, ast.Name) and t.id == "__all__" for t in node.targets
            ):
                try:
                    return set(ast.literal_eval(node.value))
                except ValueError:
                    return None
        return None

    def _visibility(self, name: str, exported: set[str] | None) -> Visibility:
        if name.startswith("_"):
            return Visibility.PRIVATE
        if exported is not None and name not in exported:
            return Visibility.PRIVATE
        return Visibility.PUBLIC

    def _function_item(
        self,
        node: FunctionNode,
        prefix: str,
        source_path: str,
        visibility: Visibility,
        is_method: bool = False,
    ) -> SourceItem:
        doc = ast.get_docstring(node) or ""
        sections = doc_sections(doc)
        keyword = "async def" if isinstance(node, ast.AsyncFunctionDef) else "def"
        signature = f"{keyword} {node.name}({ast.unparse(node.args)})"
        returns = ast.unparse(node.returns) if node.returns else None
        if returns:
            signature += f" -> {returns}"

        return SourceItem(
            qualified_name=f"{prefix}.{node.name}",
            name=node.name,
            kind=ItemKind.FUNCTION,
            signature=signature,
            doc=doc,
            visibility=visibility,
            deprecated=self._has_deprecated_decorator(node) or is_deprecated_doc(doc),
            parameters=self._parameters(node.args, skip_first=is_method),
            returns=returns,
            raises=section_names(sections.get("raises", [])),
            examples=doctest_examples(doc) or example_section(sections),
            related=section_names(sections.get("see also", [])),
            source_path=source_path,
            line=node.lineno,
        )

    def _class_item(
        self, node: ast.ClassDef, prefix: str, source_path: str, visibility: Visibility
    ) -> SourceItem:
        doc = ast.get_docstring(node) or ""
        sections = doc_sections(doc)
        bases = [ast.unparse(base) for base in node.bases]
        signature = f"class {node.name}({', '.join(bases)})" if bases else f"class {node.name}"
        is_error = any(base.split(".")[-1].endswith(_ERROR_BASE_SUFFIXES) for base in bases)

        init = next(
            (n for n in node.body if isinstance(n, FunctionNode) and n.name == "__init__"),
            None,
        )
        return SourceItem(
            qualified_name=f"{prefix}.{node.name}",
            name=node.name,
            kind=ItemKind.ERROR if is_error else ItemKind.TYPE,
            signature=signature,
            doc=doc,
            visibility=visibility,
            deprecated=self._has_deprecated_decorator(node) or is_deprecated_doc(doc),
            parameters=self._parameters(init.args, skip_first=True) if init else [],
            examples=doctest_examples(doc) or example_section(sections),
            related=section_names(sections.get("see also", [])),
            source_path=source_path,
            line=node.lineno,
        )

    def _method_items(
        self,
        node: ast.ClassDef,
        class_name: str,
        source_path: str,
        class_visibility: Visibility,
    ) -> list[SourceItem]:
        items = []
        for child in node.body:
            if not isinstance(child, FunctionNode) or child.name.startswith("_"):
                continue
            items.append(
                self._function_item(child, class_name, source_path, class_visibility, True)
            )
        return items

    def _parameters(self, args: ast.arguments, skip_first: bool = False) -> list[Parameter]:
        positional = [*args.posonlyargs, *args.args]
        defaults: list[ast.expr | None] = [None] * (len(positional) - len(args.defaults))
        defaults.extend(args.defaults)

        params = []
        for index, (arg, default) in enumerate(zip(positional, defaults, strict=True)):
            if skip_first and index == 0:
                continue
            params.append(self._parameter(arg.arg, arg, default))
        if args.vararg:
            params.append(self._parameter(f"*{args.vararg.arg}", args.vararg, None))
        for arg, default in zip(args.kwonlyargs, args.kw_defaults, strict=True):
            params.append(self._parameter(arg.arg, arg, default))
        if args.kwarg:
            params.append(self._parameter(f"**{args.kwarg.arg}", args.kwarg, None))
        return params

    def _parameter(self, name: str, arg: ast.arg, default: ast.expr | None) -> Parameter:
        return Parameter(
            name=name,
            annotation=ast.unparse(arg.annotation) if arg.annotation else None,
            default=ast.unparse(default) if default is not None else None,
        )

    def _has_deprecated_decorator(self, node: FunctionNode | ast.ClassDef) -> bool:
        for decorator in node.decorator_list:
            target = decorator.func if isinstance(decorator, ast.Call) else decorator
            if ast.unparse(target).split(".")[-1] == "deprecated":
                return True
        return False
