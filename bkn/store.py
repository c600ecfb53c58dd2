"""
File-based project store for BKN documents.

Layout:
    <root>/
        <project_id>/
            project.json    - id, name, description
            files/          - the project's documents, by relative path

A store is an explicit object handed to whoever needs it. Every change to a
project's files goes through :meth:`ProjectStore.update`, which applies a
mutation to the ``path -> content`` map and then syncs the directory.
"""

from __future__ import annotations

import json
import logging
import os
import re
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, List, Optional

from .models import Network
from .network import parse_files

logger = logging.getLogger(__name__)

PROJECT_FILE = "project.json"
FILES_DIR = "files"
DOCUMENT_SUFFIX = ".bkn"
PROJECT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]*$")


class StoreError(RuntimeError):
    """Base exception for project store errors."""
    pass


class ProjectNotFoundError(StoreError):
    pass


class DocumentNotFoundError(StoreError):
    pass


@dataclass
class Project:
    id: str
    name: str
    description: str = ""
    files: Dict[str, str] = field(default_factory=dict)


def normalize_path(path: str) -> str:
    """Validate a project-relative path and return it ``/`` separated.

    Raises:
        StoreError: For empty, absolute or escaping paths
    """
    cleaned = (path or "").replace("\\", "/").strip()
    parts = PurePosixPath(cleaned).parts
    if not cleaned or cleaned.startswith("/") or not parts or any(p in ("..", ".") for p in parts):
        raise StoreError(f"Invalid document path: {path!r}")
    return "/".join(parts)


class ProjectStore:
    """Stores projects and their documents under one root directory."""

    def __init__(self, root_dir: Path):
        """Initialize the store.

        Args:
            root_dir: Directory holding one sub-directory per project
        """
        self.root_dir = Path(root_dir)
        self.root_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def _project_dir(self, project_id: str) -> Path:
        if not PROJECT_ID_PATTERN.match(project_id or ""):
            raise StoreError(f"Invalid project id: {project_id!r}")
        return self.root_dir / project_id

    def _require_project(self, project_id: str) -> Path:
        project_dir = self._project_dir(project_id)
        if not (project_dir / PROJECT_FILE).exists():
            raise ProjectNotFoundError(f"Project '{project_id}' not found")
        return project_dir

    def _read_meta(self, project_dir: Path) -> Dict:
        return json.loads((project_dir / PROJECT_FILE).read_text(encoding='utf-8'))

    def list_projects(self) -> List[Project]:
        """All projects, without file contents, sorted by id."""
        projects = []
        for project_dir in sorted(self.root_dir.iterdir()):
            if not (project_dir / PROJECT_FILE).exists():
                continue
            meta = self._read_meta(project_dir)
            projects.append(Project(
                id=meta.get("id", project_dir.name),
                name=meta.get("name", project_dir.name),
                description=meta.get("description", ""),
            ))
        return projects

    def get_project(self, project_id: str) -> Project:
        """Project metadata plus its files.

        Raises:
            ProjectNotFoundError: If the project does not exist
        """
        project_dir = self._require_project(project_id)
        meta = self._read_meta(project_dir)
        return Project(
            id=project_id,
            name=meta.get("name", project_id),
            description=meta.get("description", ""),
            files=self.list_files(project_id),
        )

    def has_project(self, project_id: str) -> bool:
        try:
            self._require_project(project_id)
        except StoreError:
            return False
        return True

    def create_project(
        self,
        project_id: str,
        name: Optional[str] = None,
        description: str = "",
        files: Optional[Dict[str, str]] = None,
    ) -> Project:
        """Create a project, optionally seeded with files.

        Raises:
            StoreError: If the id is invalid or already taken
        """
        project_dir = self._project_dir(project_id)
        if (project_dir / PROJECT_FILE).exists():
            raise StoreError(f"Project '{project_id}' already exists")

        (project_dir / FILES_DIR).mkdir(parents=True, exist_ok=True)
        meta = {"id": project_id, "name": name or project_id, "description": description}
        (project_dir / PROJECT_FILE).write_text(
            json.dumps(meta, indent=2, ensure_ascii=False),
            encoding='utf-8'
        )
        logger.info(f"Created project '{project_id}'")

        if files:
            self.update(project_id, lambda current: {**current, **files})

        return self.get_project(project_id)

    def delete_project(self, project_id: str) -> None:
        project_dir = self._require_project(project_id)
        shutil.rmtree(project_dir)
        logger.info(f"Deleted project '{project_id}'")

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def list_files(self, project_id: str) -> Dict[str, str]:
        """``path -> content`` for every file of a project, sorted by path."""
        files_dir = self._require_project(project_id) / FILES_DIR
        if not files_dir.exists():
            return {}

        files = {}
        for file_path in sorted(p for p in files_dir.rglob("*") if p.is_file()):
            relative = file_path.relative_to(files_dir).as_posix()
            files[relative] = file_path.read_text(encoding='utf-8')
        return files

    def read_file(self, project_id: str, path: str) -> str:
        """Content of one document.

        Raises:
            DocumentNotFoundError: If the path does not exist in the project
        """
        path = normalize_path(path)
        file_path = self._require_project(project_id) / FILES_DIR / path
        if not file_path.is_file():
            raise DocumentNotFoundError(f"Document '{path}' not found in project '{project_id}'")
        return file_path.read_text(encoding='utf-8')

    def update(
        self,
        project_id: str,
        mutate: Callable[[Dict[str, str]], Optional[Dict[str, str]]],
    ) -> Dict[str, str]:
        """Apply ``mutate`` to the project's file map and persist the result.

        ``mutate`` receives a copy of the current map and returns the new one
        (or None after changing the copy in place). Files missing from the
        result are deleted, but only after every changed or new file has been
        written atomically, so a failed write leaves the old files in place.

        Returns:
            The resulting file map
        """
        files_dir = self._require_project(project_id) / FILES_DIR
        current = self.list_files(project_id)

        working = dict(current)
        result = mutate(working)
        if result is None:
            result = working
        result = {normalize_path(path): content for path, content in result.items()}

        for path, content in result.items():
            if current.get(path) != content:
                self._write_atomic(files_dir / path, content)

        for path in current:
            if path not in result:
                (files_dir / path).unlink()
                self._prune_empty_dirs(files_dir, (files_dir / path).parent)

        changed = sum(1 for p in result if current.get(p) != result[p])
        removed = sum(1 for p in current if p not in result)
        logger.info(f"Updated project '{project_id}': {changed} written, {removed} removed")
        return result

    def write_file(self, project_id: str, path: str, content: str) -> None:
        path = normalize_path(path)

        def _write(files: Dict[str, str]) -> None:
            files[path] = content

        self.update(project_id, _write)

    def delete_file(self, project_id: str, path: str) -> None:
        path = normalize_path(path)

        def _delete(files: Dict[str, str]) -> None:
            if path not in files:
                raise DocumentNotFoundError(f"Document '{path}' not found in project '{project_id}'")
            del files[path]

        self.update(project_id, _delete)

    def rename_file(self, project_id: str, old_path: str, new_path: str) -> None:
        old_path = normalize_path(old_path)
        new_path = normalize_path(new_path)

        def _rename(files: Dict[str, str]) -> None:
            if old_path not in files:
                raise DocumentNotFoundError(f"Document '{old_path}' not found in project '{project_id}'")
            if new_path in files and new_path != old_path:
                raise StoreError(f"Document '{new_path}' already exists in project '{project_id}'")
            files[new_path] = files.pop(old_path)

        self.update(project_id, _rename)

    def _write_atomic(self, target: Path, content: str) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".tmp-", suffix=target.suffix)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _prune_empty_dirs(self, files_dir: Path, directory: Path) -> None:
        while directory != files_dir and directory.exists() and not any(directory.iterdir()):
            directory.rmdir()
            directory = directory.parent

    # ------------------------------------------------------------------
    # Import / parse
    # ------------------------------------------------------------------

    def import_directory(
        self,
        source_dir: Path,
        project_id: Optional[str] = None,
        name: Optional[str] = None,
        description: str = "",
    ) -> Project:
        """Create a project from every ``.bkn`` file below ``source_dir``."""
        source_dir = Path(source_dir)
        if not source_dir.is_dir():
            raise StoreError(f"Directory not found: {source_dir}")

        files = {
            path.relative_to(source_dir).as_posix(): path.read_text(encoding='utf-8')
            for path in sorted(source_dir.rglob(f"*{DOCUMENT_SUFFIX}"))
            if path.is_file()
        }
        return self.create_project(project_id or source_dir.name, name, description, files)

    def import_examples(self, examples_dir: Path) -> List[Project]:
        """Seed example projects: one per sub-directory and per top-level ``.bkn`` file.

        Projects that already exist are left alone.
        """
        examples_dir = Path(examples_dir)
        if not examples_dir.is_dir():
            return []

        imported = []
        for entry in sorted(examples_dir.iterdir()):
            if entry.is_dir():
                if not self.has_project(entry.name):
                    imported.append(self.import_directory(entry))
            elif entry.suffix == DOCUMENT_SUFFIX and not self.has_project(entry.stem):
                imported.append(self.create_project(
                    entry.stem,
                    files={entry.name: entry.read_text(encoding='utf-8')},
                ))

        if imported:
            logger.info(f"Imported {len(imported)} example project(s) from {examples_dir}")
        return imported

    def load_network(self, project_id: str) -> Network:
        """Parse the project's files into a network."""
        return parse_files(self.list_files(project_id))
