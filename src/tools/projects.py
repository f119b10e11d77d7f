"""MCP tools that manage projects and their files.

Registers project lifecycle tools (list/create/delete/switch) and file
tools (read/write/delete) on top of the shared Workspace.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, assert_never

from mcp.server.fastmcp import FastMCP

from core.errors import ValidationError
from core.models import LocalSource, MemorySource, Project, ProjectFile, RemoteSource, SourceDescriptor
from core.paths import normalize_posix_relpath
from sync.workspace import Workspace


def source_to_dict(source: SourceDescriptor) -> Dict[str, Any]:
    match source:
        case MemorySource():
            return {"kind": "memory"}
        case LocalSource(root=root):
            return {"kind": "local", "root": root.as_posix()}
        case RemoteSource():
            return {
                "kind": "remote",
                "owner": source.owner,
                "repo": source.repo,
                "branch": source.branch,
                "base_commit_sha": source.base_commit_sha,
            }
        case _:
            assert_never(source)


def project_to_dict(project: Project) -> Dict[str, Any]:
    return {
        "name": project.name,
        "source": source_to_dict(project.source),
        "files": [{"path": f.path, "dirty": f.dirty, "bytes": f.size_bytes} for f in project.files],
        "dirty_count": len(project.dirty_files()),
    }


def _file_to_dict(f: ProjectFile) -> Dict[str, Any]:
    return {"path": f.path, "content": f.content, "dirty": f.dirty}


def register(mcp: FastMCP, *, workspace: Workspace) -> None:
    store = workspace.store

    @mcp.tool(name="list_projects")
    async def list_projects() -> Dict[str, Any]:
        """List project names in creation order and the active project."""
        return {"projects": store.project_names(), "active": store.active_project_name}

    @mcp.tool(name="create_project")
    async def create_project(name: str) -> Dict[str, Any]:
        """Create an empty in-memory project and make it active.

        Params:
          - name: 1-50 characters from letters, digits, space, '-', '_', '.', '/'.

        Raises:
          ValidationError if the name is invalid or already used.
        """
        return project_to_dict(store.create_project(name))

    @mcp.tool(name="delete_project")
    async def delete_project(name: str) -> Dict[str, Any]:
        """Delete a project together with its source binding."""
        store.delete_project(name)
        return {"deleted": name, "active": store.active_project_name}

    @mcp.tool(name="switch_project")
    async def switch_project(name: str) -> Dict[str, Any]:
        """Make an existing project the active one."""
        return project_to_dict(store.switch_project(name))

    @mcp.tool(name="show_project")
    async def show_project(project: Optional[str] = None) -> Dict[str, Any]:
        """Describe a project (default: the active one): source, files, dirty flags."""
        return project_to_dict(store.get_project(workspace_project(workspace, project)))

    @mcp.tool(name="read_file")
    async def read_file(path: str, project: Optional[str] = None) -> Dict[str, Any]:
        """Return one file of a project with its dirty flag."""
        name = workspace_project(workspace, project)
        clean = normalize_posix_relpath(path)
        found = store.get_project(name).get_file(clean)
        if found is None:
            raise ValidationError(f'File "{clean}" does not exist in project "{name}"')
        return _file_to_dict(found)

    @mcp.tool(name="write_file")
    async def write_file(path: str, content: str, project: Optional[str] = None) -> Dict[str, Any]:
        """Create or overwrite a file; the file becomes dirty until saved or committed."""
        name = workspace_project(workspace, project)
        updated = store.update_file(name, normalize_posix_relpath(path), content)
        return {"path": updated.path, "dirty": updated.dirty}

    @mcp.tool(name="delete_file")
    async def delete_file(path: str, project: Optional[str] = None) -> Dict[str, Any]:
        """Remove a file from a project (the source is not touched until the next save)."""
        name = workspace_project(workspace, project)
        store.delete_file(name, normalize_posix_relpath(path))
        return {"deleted": path, "project": name}


def workspace_project(workspace: Workspace, project: Optional[str]) -> str:
    name = (project or "").strip() or workspace.store.active_project_name
    if not name:
        raise ValidationError("No active project selected.")
    return name
