from __future__ import annotations

import asyncio
import logging
import mimetypes
from pathlib import Path
from typing import List, Sequence, Tuple

from core.errors import AccessDeniedError, StorageError, ValidationError
from core.interfaces import TextClassifier
from core.models import ProjectFile
from core.paths import validate_file_path
from core.text_files import is_likely_text


"""Local directory adapter.

Reads and mirrors project files into directories the user granted access
to. The grant is PROJECT_ROOT: every root and every written path must
resolve inside it, with containment checks against traversal and symlinks.
"""

logger = logging.getLogger(__name__)

_SKIPPED_DIRS = frozenset({".git", "node_modules", "__pycache__"})


class LocalDirectoryAdapter:
    def __init__(self, *, project_root: Path, max_file_bytes: int = 1024 * 1024) -> None:
        self._project_root = project_root.resolve()
        self._max_file_bytes = int(max_file_bytes)

    @property
    def project_root(self) -> Path:
        return self._project_root

    def _contain(self, p: Path, boundary: Path) -> Path:
        try:
            p.relative_to(boundary)
        except ValueError as e:
            raise AccessDeniedError("Access outside the granted directory is not allowed") from e
        return p

    def resolve_root(self, folder: str) -> Path:
        """Resolve a user-supplied folder into a granted root directory."""
        raw = (folder or "").strip()
        if not raw:
            raise ValidationError("Folder path is empty")

        p = Path(raw)
        p = (p if p.is_absolute() else self._project_root / p).resolve()
        self._contain(p, self._project_root)

        if not p.exists() or not p.is_dir():
            raise StorageError(f"Not a directory: {folder}")
        return p

    def _resolve_file(self, root: Path, path: str) -> Path:
        clean = validate_file_path(path)
        base = self._contain(root.resolve(), self._project_root)
        return self._contain((base / clean).resolve(), base)

    async def read_directory(
        self,
        root: Path,
        *,
        is_text: TextClassifier = is_likely_text,
    ) -> Tuple[ProjectFile, ...]:
        base = self._contain(root.resolve(), self._project_root)

        def _do() -> Tuple[ProjectFile, ...]:
            if not base.is_dir():
                raise StorageError(f"Not a directory: {root}")

            out: List[ProjectFile] = []
            for p in sorted(base.rglob("*")):
                rel = p.relative_to(base)
                if any(part in _SKIPPED_DIRS for part in rel.parts) or not p.is_file():
                    continue
                rel_path = rel.as_posix()
                try:
                    real = self._contain(p.resolve(), base)
                except AccessDeniedError:
                    logger.warning("Skipping %s - it links outside %s", rel_path, base)
                    continue
                try:
                    validate_file_path(rel_path)
                except ValidationError as e:
                    logger.warning("Skipping %r - %s", rel_path, e.message)
                    continue
                mime, _ = mimetypes.guess_type(p.name)
                if not is_text(rel_path, mime):
                    continue
                if real.stat().st_size > self._max_file_bytes:
                    logger.warning("Skipping %s - larger than %d bytes", rel_path, self._max_file_bytes)
                    continue
                out.append(
                    ProjectFile(
                        path=rel_path,
                        content=real.read_text(encoding="utf-8", errors="replace"),
                        dirty=False,
                    )
                )
            return tuple(out)

        try:
            return await asyncio.to_thread(_do)
        except OSError as e:
            raise StorageError(f"Failed to read directory {base.name}: {e}") from e

    async def write_file(self, root: Path, path: str, content: str) -> None:
        """Write full content, creating every missing directory on the way."""
        target = self._resolve_file(root, path)

        def _do() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")

        try:
            await asyncio.to_thread(_do)
        except OSError as e:
            raise StorageError(f"Failed to save file {path}: {e}") from e

    async def flush(self, root: Path, files: Sequence[ProjectFile]) -> List[str]:
        """Write files one after another; stops at the first failure.

        A failing write raises with ``context["written"]`` listing the paths
        that did reach the disk before it.
        """
        written: List[str] = []
        for f in files:
            try:
                if f.size_bytes > self._max_file_bytes:
                    raise ValidationError(
                        f"Invalid file content: {f.path} is larger than {self._max_file_bytes} bytes"
                    )
                await self.write_file(root, f.path, f.content)
            except (StorageError, ValidationError) as e:
                e.context["written"] = list(written)
                raise
            written.append(f.path)
        return written
