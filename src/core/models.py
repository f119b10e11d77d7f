"""Immutable dataclasses for the project/source data model.

Includes the file record (ProjectFile), the closed SourceDescriptor union
(memory / local directory / remote repository) and the result records
returned by import, commit and save operations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Literal, Tuple, Union


@dataclass(frozen=True, slots=True)
class ProjectFile:
    """A text file inside a project.

    ``dirty`` means the content differs from the last state known to be
    persisted at the project's source.
    """

    path: str
    content: str
    dirty: bool = False

    @property
    def size_bytes(self) -> int:
        return len(self.content.encode("utf-8", errors="replace"))


@dataclass(frozen=True, slots=True)
class MemorySource:
    kind: Literal["memory"] = "memory"


@dataclass(frozen=True, slots=True)
class LocalSource:
    root: Path
    kind: Literal["local"] = "local"


@dataclass(frozen=True, slots=True)
class RemoteSource:
    """A GitHub branch; ``base_commit_sha`` anchors the next commit."""

    owner: str
    repo: str
    branch: str
    base_commit_sha: str
    kind: Literal["remote"] = "remote"


SourceDescriptor = Union[MemorySource, LocalSource, RemoteSource]


@dataclass(frozen=True, slots=True)
class Project:
    name: str
    files: Tuple[ProjectFile, ...]
    source: SourceDescriptor

    def dirty_files(self) -> Tuple[ProjectFile, ...]:
        return tuple(f for f in self.files if f.dirty)

    def get_file(self, path: str) -> ProjectFile | None:
        for f in self.files:
            if f.path == path:
                return f
        return None


@dataclass(frozen=True, slots=True)
class GitHubUser:
    name: str
    email: str


@dataclass(frozen=True, slots=True)
class ImportResult:
    files: Tuple[ProjectFile, ...]
    branch: str
    latest_commit_sha: str


@dataclass(frozen=True, slots=True)
class CommitResult:
    commit_sha: str
    committed_paths: Tuple[str, ...]
    skipped_paths: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class SaveResult:
    """Outcome of a save, whichever backend handled it."""

    project: str
    source_kind: str
    saved_paths: Tuple[str, ...] = ()
    skipped_paths: Tuple[str, ...] = ()
    commit_sha: str | None = None


class AssistantOperation(str, Enum):
    EXPLAIN = "explain"
    REFACTOR = "refactor"
    DEBUG = "debug"
    GENERATE = "generate"


@dataclass(frozen=True, slots=True)
class AssistantResult:
    operation: AssistantOperation
    text: str = ""
    files: Tuple[ProjectFile, ...] = field(default_factory=tuple)
