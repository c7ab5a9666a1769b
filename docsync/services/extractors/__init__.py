"""Per-ecosystem source extractors"""

from docsync.models.configuration import Stack
from docsync.services.extractors.base import ExtractionError, SourceExtractor
from docsync.services.extractors.golang import GoExtractor
from docsync.services.extractors.javascript import JavaScriptExtractor
from docsync.services.extractors.python import PythonExtractor

EXTRACTORS: dict[Stack, type[SourceExtractor]] = {
    Stack.PYTHON: PythonExtractor,
    Stack.GO: GoExtractor,
    Stack.JAVASCRIPT: JavaScriptExtractor,
    Stack.TYPESCRIPT: JavaScriptExtractor,
}


def get_extractor(stack: Stack) -> SourceExtractor | None:
    """Extractor for a stack, or None when the stack has no static extractor"""
    extractor_cls = EXTRACTORS.get(stack)
    return extractor_cls() if extractor_cls else None


__all__ = [
    "EXTRACTORS",
    "ExtractionError",
    "GoExtractor",
    "JavaScriptExtractor",
    "PythonExtractor",
    "SourceExtractor",
    "get_extractor",
]
