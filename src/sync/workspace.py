"""Save / commit / import orchestration across the three storage backends.

The Workspace is the single entry point used by the MCP tools. It owns the
ProjectStore and dispatches on a project's SourceDescriptor with an
exhaustive ``match``:

  - MemorySource -> nothing durable to write to
  - LocalSource  -> flush dirty files into the granted directory
  - RemoteSource -> replay dirty files as one commit on the branch

Only files whose content still equals what was persisted are marked clean,
so edits made while a save is in flight stay dirty.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence, assert_never

from clients.github.identity import IdentityVerifier
from clients.github.inputs import parse_repo_url, validate_token_format
from core.errors import AuthError, RemoteServiceError, SyncError, ValidationError
from core.models import (
    AssistantOperation,
    AssistantResult,
    GitHubUser,
    LocalSource,
    MemorySource,
    Project,
    ProjectFile,
    RemoteSource,
    SaveResult,
    SourceDescriptor,
)
from core.paths import validate_project_name
from sources.local_directory import LocalDirectoryAdapter
from sync.assistant import AssistantGateway, parse_assistant_payload
from sync.git_sync import GitSyncEngine
from sync.project_store import ProjectStore

logger = logging.getLogger(__name__)

_SIGNING_HINT = (
    "\n\nThis is often caused by a branch protection rule that requires signed "
    "commits. Commits created through the API cannot be signed; check the "
    "repository settings."
)


def generate_commit_message(files: Sequence[ProjectFile]) -> str:
    if not files:
        return "Update files"
    if len(files) == 1:
        return f"Update {files[0].path}"
    if len(files) <= 3:
        return "Update " + ", ".join(f.path for f in files)
    return f"Update {len(files)} files"


class Workspace:
    def __init__(
        self,
        *,
        store: ProjectStore,
        engine: GitSyncEngine,
        local: LocalDirectoryAdapter,
        identity: IdentityVerifier,
        assistant: Optional[AssistantGateway] = None,
        token: Optional[str] = None,
    ) -> None:
        self.store = store
        self._engine = engine
        self._local = local
        self._identity = identity
        self._assistant = assistant
        self._token = (token or "").strip() or None
        self._user: Optional[GitHubUser] = None

    # --- identity ---

    @property
    def github_user(self) -> Optional[GitHubUser]:
        return self._user

    def _require_token(self, token: Optional[str]) -> str:
        candidate = (token or self._token or "").strip()
        if not candidate:
            raise AuthError("GitHub token is missing. Set GITHUB_TOKEN or verify a token first.")
        return validate_token_format(candidate)

    async def verify_token(self, token: Optional[str] = None) -> GitHubUser:
        clean = self._require_token(token)
        user = await self._identity.verify(clean)
        self._token = clean
        self._user = user
        return user

    # --- project resolution ---

    def _resolve(self, project: Optional[str]) -> str:
        name = project or self.store.active_project_name
        if not name:
            raise ValidationError("No active project selected.")
        if not self.store.has_project(name):
            raise ValidationError(f'Project "{name}" does not exist')
        return name

    def _install(
        self,
        name: str,
        files: Sequence[ProjectFile],
        source: SourceDescriptor,
        *,
        overwrite: bool,
    ) -> Project:
        if self.store.has_project(name):
            if not overwrite:
                raise ValidationError(f'Project "{name}" already exists')
            self.store.replace_files(name, files, full=True)
            self.store.update_source(name, source)
            return self.store.switch_project(name)
        return self.store.create_project(name, files, source)

    def _mark_persisted(self, name: str, persisted: Iterable[ProjectFile]) -> None:
        if not self.store.has_project(name):
            return
        snapshot: Dict[str, str] = {f.path: f.content for f in persisted}
        unchanged = [
            f.path for f in self.store.get_files(name)
            if f.path in snapshot and f.content == snapshot[f.path]
        ]
        self.store.mark_clean(name, unchanged)

    # --- import ---

    async def open_folder(self, folder: str, *, overwrite: bool = False) -> Project:
        root = self._local.resolve_root(folder)
        name = validate_project_name(root.name)
        if self.store.has_project(name) and not overwrite:
            raise ValidationError(f'Project "{name}" already exists')

        files = await self._local.read_directory(root)
        project = self._install(name, files, LocalSource(root=root), overwrite=overwrite)
        logger.info("Loaded project %r with %d files", name, len(files))
        return project

    async def import_repository(
        self,
        repo_url: str,
        *,
        overwrite: bool = False,
        token: Optional[str] = None,
        project_name: Optional[str] = None,
    ) -> Project:
        """Import the default branch of 'repo_url' as a clean remote-backed project.

        The project is named 'owner/repo' unless 'project_name' is given. The
        name is checked before any request is made.
        """
        owner, repo = parse_repo_url(repo_url)
        clean_token = self._require_token(token)
        name = validate_project_name(project_name if project_name is not None else f"{owner}/{repo}")
        if self.store.has_project(name) and not overwrite:
            raise ValidationError(f'Project "{name}" already exists')

        result = await self._engine.import_repository(owner, repo, clean_token)
        source = RemoteSource(
            owner=owner,
            repo=repo,
            branch=result.branch,
            base_commit_sha=result.latest_commit_sha,
        )
        return self._install(name, result.files, source, overwrite=overwrite)

    # --- save / commit ---

    async def save(self, project: Optional[str] = None, *, message: Optional[str] = None) -> SaveResult:
        name = self._resolve(project)
        source = self.store.get_source(name)

        match source:
            case MemorySource():
                raise ValidationError(
                    f'Project "{name}" is in memory only; open a folder or import a repository to save it.'
                )
            case LocalSource(root=root):
                return await self._flush_local(name, root)
            case RemoteSource():
                return await self.commit(name, message=message)
            case _:
                assert_never(source)

    async def _flush_local(self, name: str, root: Path) -> SaveResult:
        dirty = self.store.dirty_files(name)
        if not dirty:
            return SaveResult(project=name, source_kind="local")

        try:
            written = await self._local.flush(root, dirty)
        except SyncError as e:
            done = set(e.context.get("written", ()))
            self._mark_persisted(name, [f for f in dirty if f.path in done])
            raise

        self._mark_persisted(name, [f for f in dirty if f.path in set(written)])
        logger.info("Saved %d file(s) of %r to disk", len(written), name)
        return SaveResult(project=name, source_kind="local", saved_paths=tuple(written))

    async def commit(self, project: Optional[str] = None, *, message: Optional[str] = None) -> SaveResult:
        name = self._resolve(project)
        source = self.store.get_source(name)
        if not isinstance(source, RemoteSource):
            raise ValidationError(f'Project "{name}" is not backed by a GitHub repository')
        if self._user is None:
            raise AuthError("GitHub identity missing. Verify your token before committing.")
        token = self._require_token(None)

        dirty = self.store.dirty_files(name)
        commit_message = message if message is not None else generate_commit_message(dirty)

        try:
            result = await self._engine.commit(
                source.owner,
                source.repo,
                source.branch,
                source.base_commit_sha,
                dirty,
                commit_message,
                token,
                self._user,
            )
        except RemoteServiceError as e:
            if "Repository rule violations" in e.message or "signature" in e.message.lower():
                e.message += _SIGNING_HINT
                e.args = (e.message,)
            raise

        if self.store.has_project(name):
            self.store.update_source(name, replace(source, base_commit_sha=result.commit_sha))
        committed = set(result.committed_paths)
        self._mark_persisted(name, [f for f in dirty if f.path in committed])
        return SaveResult(
            project=name,
            source_kind="remote",
            saved_paths=result.committed_paths,
            skipped_paths=result.skipped_paths,
            commit_sha=result.commit_sha,
        )

    # --- assistant ---

    async def apply_assistant_result(
        self,
        result: AssistantResult,
        *,
        project: Optional[str] = None,
        new_project_name: Optional[str] = None,
    ) -> AssistantResult:
        match result.operation:
            case AssistantOperation.EXPLAIN:
                return result
            case AssistantOperation.GENERATE:
                if not new_project_name:
                    raise ValidationError("A project name is required to generate a project")
                files = [replace(f, dirty=False) for f in result.files]
                self.store.create_project(new_project_name, files, MemorySource())
                return result
            case AssistantOperation.REFACTOR | AssistantOperation.DEBUG:
                if not result.files:
                    return result
                name = self._resolve(project)
                self.store.replace_files(name, [replace(f, dirty=True) for f in result.files])
                if isinstance(self.store.get_source(name), LocalSource):
                    await self.save(name)
                return result
            case _:
                assert_never(result.operation)

    async def apply_assistant_payload(
        self,
        operation: AssistantOperation,
        payload: str,
        *,
        project: Optional[str] = None,
        new_project_name: Optional[str] = None,
    ) -> AssistantResult:
        result = parse_assistant_payload(operation, payload)
        return await self.apply_assistant_result(result, project=project, new_project_name=new_project_name)

    async def run_assistant(
        self,
        operation: AssistantOperation,
        user_request: str,
        *,
        project: Optional[str] = None,
        new_project_name: Optional[str] = None,
    ) -> AssistantResult:
        if self._assistant is None:
            raise ValidationError("No assistant backend is configured")

        op = AssistantOperation(operation)
        if op is AssistantOperation.GENERATE:
            if not new_project_name:
                raise ValidationError("A project name is required to generate a project")
            if self.store.has_project(new_project_name):
                raise ValidationError(f'Project "{new_project_name}" already exists')
            files: Sequence[ProjectFile] = ()
        else:
            files = self.store.get_files(self._resolve(project))

        request = (user_request or "").strip() or "Perform the operation on the entire project."
        result = await self._assistant.run(op, files, request)
        return await self.apply_assistant_result(result, project=project, new_project_name=new_project_name)
