"""Project ecosystem detection from dependency-manifest marker files"""

import logging
from pathlib import Path

from docsync.models.configuration import Stack

logger = logging.getLogger(__name__)


class StackUndetected(Exception):
    """Raised when no marker file identifies the project's ecosystem"""

    def __init__(self, project_root: Path):
        self.project_root = project_root
        super().__init__(
            f"Could not detect the project stack in {project_root}; pass it explicitly"
        )


# Ordered: the first matching marker wins. tsconfig.json precedes package.json
# so TypeScript projects are not classified as plain JavaScript.
STACK_MARKERS: tuple[tuple[str, Stack], ...] = (
    ("go.mod", Stack.GO),
    ("Cargo.toml", Stack.RUST),
    ("tsconfig.json", Stack.TYPESCRIPT),
    ("package.json", Stack.JAVASCRIPT),
    ("pyproject.toml", Stack.PYTHON),
    ("setup.py", Stack.PYTHON),
    ("setup.cfg", Stack.PYTHON),
    ("requirements.txt", Stack.PYTHON),
    ("Pipfile", Stack.PYTHON),
    ("pom.xml", Stack.JAVA),
    ("build.gradle", Stack.JAVA),
    ("build.gradle.kts", Stack.KOTLIN),
    ("*.csproj", Stack.CSHARP),
    ("*.sln", Stack.CSHARP),
    ("Gemfile", Stack.RUBY),
    ("composer.json", Stack.PHP),
    ("Package.swift", Stack.SWIFT),
)


class StackDetector:
    """Classify a project by inspecting a fixed, ordered list of marker files"""

    def __init__(self, markers: tuple[tuple[str, Stack], ...] = STACK_MARKERS):
        self.markers = markers

    def detect(self, project_root: str | Path) -> Stack:
        """
        Return the ecosystem of the first matching marker

        Args:
            project_root: Directory to inspect (only its top level is read)

        Returns:
            Stack: Detected ecosystem

        Raises:
            StackUndetected: If no marker matches
        """
        root = Path(project_root)
        for marker, stack in self.markers:
            if self._marker_present(root, marker):
                logger.info(f"Detected stack '{stack.value}' from {marker}")
                return stack

        raise StackUndetected(root)

    def _marker_present(self, root: Path, marker: str) -> bool:
        if any(ch in marker for ch in "*?["):
            return any(path.is_file() for path in root.glob(marker))
        return (root / marker).is_file()
