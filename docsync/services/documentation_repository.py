"""Handle for the generated documentation tree"""

from pathlib import Path

from docsync.config import config
from docsync.models.artifact import INDEX_STEM, Visibility


class DocumentationRepository:
    """Resolves every documentation path relative to one explicit root"""

    def __init__(
        self,
        project_root: str | Path | None = None,
        documentation_dir: str | None = None,
    ):
        """
        Initialize documentation repository handle

        Args:
            project_root: Source repository root (defaults to config.project_root)
            documentation_dir: Documentation directory relative to project_root
        """
        self.project_root = Path(project_root or config.project_root).resolve()
        self.root = self.project_root / (documentation_dir or config.documentation_dir)

    @property
    def config_file(self) -> Path:
        return self.root / config.config_filename

    @property
    def state_file(self) -> Path:
        return self.root / config.state_filename

    @property
    def lock_file(self) -> Path:
        return self.root / config.lock_filename

    @property
    def overview_file(self) -> Path:
        return self.root / "overview.md"

    @property
    def architecture_file(self) -> Path:
        return self.root / "architecture.md"

    @property
    def relative_root(self) -> str:
        """Documentation directory relative to the project root (POSIX)"""
        try:
            return self.root.relative_to(self.project_root).as_posix()
        except ValueError:
            return self.root.as_posix()

    def artifact_path(self, artifact_id: str) -> Path:
        """Markdown file backing an artifact id"""
        return self.root / f"{artifact_id}.md"

    def artifact_id_for_path(self, path: Path) -> str:
        return path.relative_to(self.root).with_suffix("").as_posix()

    def index_path(self, directory_id: str) -> Path:
        return self.root / directory_id / f"{INDEX_STEM}.md"

    def artifact_files(self) -> list[Path]:
        """All artifact markdown files under the visibility subtrees, sorted"""
        files: list[Path] = []
        for visibility in Visibility:
            subtree = self.root / visibility.value
            if subtree.exists():
                files.extend(p for p in subtree.rglob("*.md") if p.is_file())
        return sorted(files)

    def ensure_exists(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
