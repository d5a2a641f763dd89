"""Workflow scanner module for discovering n8n workflow JSON files."""

import json
import logging
from pathlib import Path
from typing import List, Dict, Optional, Any, Iterable
from dataclasses import dataclass, field

from pydantic import BaseModel, ValidationError

from n8n_shots.naming import category_for, screenshot_filename

logger = logging.getLogger(__name__)

EXCLUDED_DIRS = frozenset({".git", "node_modules", "__pycache__", ".venv", "venv"})
EXCLUDED_FILE_PREFIXES = ("package",)


class WorkflowData(BaseModel):
    """Minimal shape a JSON file needs to count as a workflow."""

    name: str
    nodes: List[Dict[str, Any]]


@dataclass(frozen=True)
class WorkflowFile:
    """A discovered workflow file.

    ``definition`` holds the parsed JSON. Files that failed to parse keep
    ``definition=None`` and the reason in ``error``.
    """

    path: Path
    name: str
    definition: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)
    root: Optional[Path] = None

    @property
    def valid(self) -> bool:
        return self.definition is not None

    @property
    def label(self) -> str:
        """File name used in logs and reports."""
        return self.path.name

    @property
    def filename(self) -> str:
        return screenshot_filename(self.path)

    @property
    def relative_path(self) -> Path:
        """Path below the scanned folder, used for category lookup."""
        if self.root is not None:
            try:
                return self.path.relative_to(self.root)
            except ValueError:
                pass
        return self.path

    @property
    def category(self) -> str:
        return category_for(self.relative_path)


class WorkflowScanner:
    """Scanner for discovering n8n workflow files."""

    def __init__(
        self,
        input_folder: Path,
        recursive: bool = True,
        exclude: Iterable[Path] = (),
    ):
        """Initialize the workflow scanner.

        Args:
            input_folder: Path to folder containing workflow JSON files
            recursive: Whether to scan subdirectories recursively
            exclude: Extra files or directories to leave out, such as the
                screenshot backup folder or the results file
        """
        self.input_folder = Path(input_folder)
        self.recursive = recursive
        self.exclude = [Path(p).resolve() for p in exclude]
        self.workflows: List[WorkflowFile] = []
        self.ignored: List[Path] = []

        if not self.input_folder.exists():
            raise FileNotFoundError(f"Input folder not found: {self.input_folder}")

        if not self.input_folder.is_dir():
            raise NotADirectoryError(f"Input path is not a directory: {self.input_folder}")

    def scan(self) -> List[WorkflowFile]:
        """Scan for workflow JSON files.

        JSON files that parse but have no ``name`` or ``nodes`` are not
        workflows and are dropped. Files that fail to parse are kept as
        invalid entries so the run reports them.

        Returns:
            Discovered WorkflowFile objects, sorted by path
        """
        logger.info(f"Scanning for workflows in: {self.input_folder}")

        pattern = "**/*.json" if self.recursive else "*.json"
        json_files = sorted(p for p in self.input_folder.glob(pattern) if self._included(p))

        logger.info(f"Found {len(json_files)} JSON files")

        self.workflows = []
        self.ignored = []
        for json_file in json_files:
            workflow = self._process_file(json_file)
            if workflow is None:
                self.ignored.append(json_file)
            else:
                self.workflows.append(workflow)

        logger.info(
            f"Workflows: {len(self.get_valid_workflows())} valid, "
            f"{len(self.get_invalid_workflows())} unreadable, "
            f"{len(self.ignored)} other JSON files ignored"
        )

        return self.workflows

    def _included(self, path: Path) -> bool:
        if not path.is_file():
            return False

        relative = path.relative_to(self.input_folder)
        if any(part in EXCLUDED_DIRS for part in relative.parts[:-1]):
            return False
        if path.name.startswith(EXCLUDED_FILE_PREFIXES):
            return False

        resolved = path.resolve()
        for excluded in self.exclude:
            if resolved == excluded or excluded in resolved.parents:
                return False
        return True

    def _process_file(self, file_path: Path) -> Optional[WorkflowFile]:
        """Process a single JSON file.

        Returns:
            WorkflowFile, or None if the file is JSON but not a workflow
        """
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Invalid JSON in {file_path.name}: {e}")
            return WorkflowFile(
                path=file_path,
                name=file_path.stem,
                error=f"Invalid JSON: {e}",
                root=self.input_folder,
            )
        except OSError as e:
            logger.warning(f"Could not read {file_path.name}: {e}")
            return WorkflowFile(
                path=file_path,
                name=file_path.stem,
                error=f"Could not read file: {e}",
                root=self.input_folder,
            )

        if not isinstance(data, dict):
            return None

        try:
            workflow_data = WorkflowData(**data)
        except ValidationError:
            logger.debug(f"Not a workflow, ignoring: {file_path}")
            return None

        metadata = {
            "node_count": len(workflow_data.nodes),
            "connection_count": len(data.get("connections") or {}),
            "node_types": sorted({str(node.get("type", "")) for node in workflow_data.nodes}),
        }

        return WorkflowFile(
            path=file_path,
            name=workflow_data.name,
            definition=data,
            metadata=metadata,
            root=self.input_folder,
        )

    def get_valid_workflows(self) -> List[WorkflowFile]:
        return [w for w in self.workflows if w.valid]

    def get_invalid_workflows(self) -> List[WorkflowFile]:
        return [w for w in self.workflows if not w.valid]

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of the scan results.

        Returns:
            Dictionary containing scan statistics
        """
        valid = self.get_valid_workflows()
        categories: Dict[str, int] = {}
        for w in self.workflows:
            categories[w.category] = categories.get(w.category, 0) + 1

        return {
            "total_files": len(self.workflows),
            "valid_workflows": len(valid),
            "invalid_workflows": len(self.workflows) - len(valid),
            "ignored_files": len(self.ignored),
            "total_nodes": sum(w.metadata.get("node_count", 0) for w in valid),
            "categories": dict(sorted(categories.items())),
        }


def scan_workflows(
    input_folder: str | Path,
    recursive: bool = True,
    exclude: Iterable[Path] = (),
) -> List[WorkflowFile]:
    """Convenience function to scan workflows.

    Args:
        input_folder: Path to folder containing workflow JSON files
        recursive: Whether to scan subdirectories recursively
        exclude: Extra files or directories to leave out

    Returns:
        List of discovered WorkflowFile objects
    """
    scanner = WorkflowScanner(input_folder, recursive=recursive, exclude=exclude)
    return scanner.scan()
