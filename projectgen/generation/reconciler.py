"""
Structure reconciliation for update runs

``merge`` combines the structure read back from disk with the one the model
just generated. ``extract_existing_structure`` produces the on-disk snapshot
and ``diff_structures`` summarizes what an update changes.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from ..core.config import ScanConfig
from ..core.errors import ReconciliationError
from ..core.models import (
    ChangeType,
    Dependencies,
    FileChange,
    ProjectFile,
    ProjectStructure,
)
from ..utils.filesystem import list_directories, list_files, read_file

logger = logging.getLogger(__name__)


class StructureReconciler:
    """Merges an existing project structure with a freshly generated one"""

    def merge(self, existing: ProjectStructure, fresh: ProjectStructure) -> ProjectStructure:
        """Fresh content wins per file; untouched existing files are carried over.

        Files keep the existing order (fresh content substituted in place) with
        files only present in ``fresh`` appended in their own order. Neither
        input is modified.
        """
        directories: List[str] = []
        for directory in list(existing.directories) + list(fresh.directories):
            if directory not in directories:
                directories.append(directory)

        fresh_by_path: Dict[str, ProjectFile] = {f.path: f for f in fresh.files}
        files: List[ProjectFile] = []
        seen = set()
        for existing_file in existing.files:
            if existing_file.path in seen:
                continue
            seen.add(existing_file.path)
            chosen = fresh_by_path.get(existing_file.path, existing_file)
            files.append(ProjectFile(chosen.path, chosen.content))
        for fresh_file in fresh.files:
            if fresh_file.path in seen:
                continue
            seen.add(fresh_file.path)
            files.append(ProjectFile(fresh_file.path, fresh_file.content))

        dependencies = Dependencies(
            dependencies={**existing.dependencies.dependencies, **fresh.dependencies.dependencies},
            dev_dependencies={**existing.dependencies.dev_dependencies, **fresh.dependencies.dev_dependencies},
        )

        carried = len([f for f in existing.files if f.path not in fresh_by_path])
        logger.info(
            f"🔀 Merged structures: {len(files)} files ({len(fresh.files)} generated, {carried} carried over), "
            f"{len(directories)} directories"
        )
        return ProjectStructure(directories=directories, files=files, dependencies=dependencies)


def extract_existing_structure(project_dir, scan: Optional[ScanConfig] = None,
                               manifest_file: str = "package.json") -> ProjectStructure:
    """Snapshot of a project on disk, limited to the files worth showing a model.

    Key files are read first, then files with a snapshot extension until the
    file cap is reached. Raises ReconciliationError when the directory cannot
    be listed.
    """
    scan = scan or ScanConfig()
    root = Path(project_dir)
    if not root.is_dir():
        raise ReconciliationError(f"Project directory not found: {root}")

    try:
        directories = [d.relative_to(root).as_posix() for d in list_directories(root, scan.ignored_dirs)]
        file_paths = [f.relative_to(root).as_posix() for f in list_files(root, True, scan.ignored_dirs)]
    except OSError as e:
        raise ReconciliationError(f"Failed to extract project structure: {e}") from e

    files: List[ProjectFile] = []
    added = set()

    def _add(relative: str) -> None:
        try:
            files.append(ProjectFile(relative, read_file(root / relative)))
            added.add(relative)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"⚠️ Could not read file {relative}: {e}")

    for key_file in scan.key_files:
        match = next((p for p in file_paths if p == key_file or p.endswith("/" + key_file)), None)
        if match and match not in added:
            _add(match)

    for relative in file_paths:
        if len(files) >= scan.max_files:
            break
        if relative in added:
            continue
        if Path(relative).suffix in scan.snapshot_extensions:
            _add(relative)

    dependencies = Dependencies()
    manifest_path = root / manifest_file
    if manifest_path.is_file():
        try:
            manifest = json.loads(read_file(manifest_path))
            dependencies = Dependencies.from_dict(manifest)
        except (OSError, ValueError) as e:
            logger.warning(f"⚠️ Could not parse {manifest_file} for dependencies: {e}")

    logger.info(f"📂 Loaded existing structure: {len(directories)} directories, {len(files)} files")
    return ProjectStructure(directories=directories, files=files, dependencies=dependencies)


def diff_structures(existing: ProjectStructure, updated: ProjectStructure) -> List[FileChange]:
    """Classify every path as added, modified or deleted between two structures"""
    existing_by_path = {f.path: f.content for f in existing.files}
    updated_paths = set()
    changes: List[FileChange] = []

    for project_file in updated.files:
        updated_paths.add(project_file.path)
        if project_file.path not in existing_by_path:
            changes.append(FileChange(project_file.path, ChangeType.ADD, project_file.content))
        elif existing_by_path[project_file.path] != project_file.content:
            changes.append(FileChange(project_file.path, ChangeType.MODIFY, project_file.content))

    for path in existing_by_path:
        if path not in updated_paths:
            changes.append(FileChange(path, ChangeType.DELETE))

    return changes
