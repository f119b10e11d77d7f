"""MCP tools for local directories and the generic save action.

Registers 'open_folder', which loads a directory under PROJECT_ROOT as a
project, and 'save_project', which persists dirty files to whatever source
backs the project (disk for local folders, a commit for GitHub).
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from sync.workspace import Workspace
from tools.projects import project_to_dict


def register(mcp: FastMCP, *, workspace: Workspace) -> None:
    @mcp.tool(name="open_folder")
    async def open_folder(folder: str, overwrite: bool = False) -> Dict[str, Any]:
        """Load the text files of a local folder as a project named after the folder.

        Params:
          - folder: path relative to PROJECT_ROOT (absolute paths must lie inside it).
          - overwrite: replace an existing project with the same name (default: False).

        Raises:
          AccessDeniedError if the folder is outside PROJECT_ROOT; StorageError
          if it is not a readable directory.
        """
        project = await workspace.open_folder(folder, overwrite=overwrite)
        return project_to_dict(project)

    @mcp.tool(name="save_project")
    async def save_project(project: Optional[str] = None, message: Optional[str] = None) -> Dict[str, Any]:
        """Persist dirty files to the project's source.

        Local folders are written file by file; GitHub projects get one
        commit (``message`` is used as the commit message). In-memory
        projects have nowhere to save to and raise ValidationError.
        """
        result = await workspace.save(project, message=message)
        return {
            "project": result.project,
            "source": result.source_kind,
            "saved": list(result.saved_paths),
            "skipped": list(result.skipped_paths),
            "commit_sha": result.commit_sha,
        }
