"""In-memory registry of projects, their files and their source descriptors.

Each project's file list is an immutable tuple that is swapped as a whole on
every mutation (replace-on-write), so mutators firing in the same tick never
observe a half-updated list. A project and its SourceDescriptor are created
together and removed together.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from core.errors import ValidationError
from core.models import MemorySource, Project, ProjectFile, SourceDescriptor
from core.paths import validate_file_path, validate_project_name

logger = logging.getLogger(__name__)


def _dedupe(files: Iterable[ProjectFile]) -> Tuple[ProjectFile, ...]:
    # Last write wins; position is that of the first occurrence
    by_path: Dict[str, ProjectFile] = {}
    for f in files:
        by_path[validate_file_path(f.path)] = f
    return tuple(by_path.values())


class ProjectStore:
    def __init__(self) -> None:
        # dicts keep insertion order; that order drives active-project fallback
        self._files: Dict[str, Tuple[ProjectFile, ...]] = {}
        self._sources: Dict[str, SourceDescriptor] = {}
        self._active: Optional[str] = None

    # --- projects ---

    @property
    def active_project_name(self) -> Optional[str]:
        return self._active

    def project_names(self) -> List[str]:
        return list(self._files)

    def has_project(self, name: str) -> bool:
        return name in self._files

    def _require(self, name: str) -> None:
        if name not in self._files:
            raise ValidationError(f'Project "{name}" does not exist')

    def get_project(self, name: str) -> Project:
        self._require(name)
        return Project(name=name, files=self._files[name], source=self._sources[name])

    def get_files(self, name: str) -> Tuple[ProjectFile, ...]:
        self._require(name)
        return self._files[name]

    def get_source(self, name: str) -> SourceDescriptor:
        self._require(name)
        return self._sources[name]

    def dirty_files(self, name: str) -> Tuple[ProjectFile, ...]:
        return tuple(f for f in self.get_files(name) if f.dirty)

    def create_project(
        self,
        name: str,
        files: Optional[Sequence[ProjectFile]] = None,
        source: Optional[SourceDescriptor] = None,
    ) -> Project:
        clean = validate_project_name(name)
        if clean in self._files:
            raise ValidationError(f'Project "{clean}" already exists')

        new_files = _dedupe(files or ())
        self._files[clean] = new_files
        self._sources[clean] = source if source is not None else MemorySource()
        self._active = clean
        logger.info("Created project %r with %d file(s)", clean, len(new_files))
        return self.get_project(clean)

    def delete_project(self, name: str) -> None:
        self._require(name)
        del self._files[name]
        del self._sources[name]
        if self._active == name:
            self._active = next(iter(self._files), None)
        logger.info("Deleted project %r", name)

    def switch_project(self, name: str) -> Project:
        self._require(name)
        self._active = name
        return self.get_project(name)

    def update_source(self, name: str, source: SourceDescriptor) -> None:
        self._require(name)
        self._sources[name] = source

    # --- files ---

    def update_file(self, project: str, path: str, content: str) -> ProjectFile:
        self._require(project)
        clean = validate_file_path(path)
        current = self._files[project]

        updated = ProjectFile(path=clean, content=content, dirty=True)
        out: List[ProjectFile] = []
        found = False
        for f in current:
            if f.path == clean:
                if not found:
                    out.append(updated)
                    found = True
                continue
            out.append(f)
        if not found:
            out.append(updated)

        self._files[project] = tuple(out)
        return updated

    def add_file(self, project: str, path: str, content: str = "") -> ProjectFile:
        self._require(project)
        clean = validate_file_path(path)
        if any(f.path == clean for f in self._files[project]):
            raise ValidationError(f'File "{clean}" already exists in project "{project}"')
        new_file = ProjectFile(path=clean, content=content, dirty=True)
        self._files[project] = self._files[project] + (new_file,)
        return new_file

    def delete_file(self, project: str, path: str) -> None:
        self._require(project)
        current = self._files[project]
        remaining = tuple(f for f in current if f.path != path)
        if len(remaining) == len(current):
            raise ValidationError(f'File "{path}" does not exist in project "{project}"')
        self._files[project] = remaining

    def mark_clean(self, project: str, paths: Optional[Iterable[str]] = None) -> None:
        self._require(project)
        wanted = None if paths is None else set(paths)
        self._files[project] = tuple(
            replace(f, dirty=False) if f.dirty and (wanted is None or f.path in wanted) else f
            for f in self._files[project]
        )

    def replace_files(
        self,
        project: str,
        files: Sequence[ProjectFile],
        *,
        full: bool = False,
    ) -> Tuple[ProjectFile, ...]:
        """Merge ``files`` into the project by path, or replace everything.

        Merging overwrites existing entries in place, appends new paths and
        leaves paths absent from ``files`` untouched.
        """
        self._require(project)
        incoming = _dedupe(files)

        if full:
            self._files[project] = incoming
            return incoming

        merged: Dict[str, ProjectFile] = {f.path: f for f in self._files[project]}
        for f in incoming:
            merged[f.path] = f
        self._files[project] = tuple(merged.values())
        return self._files[project]
