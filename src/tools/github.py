"""MCP tools that talk to GitHub: token verification, import and commit.

Registers 'verify_github_token', 'import_repository' and 'commit_project'.
All three go through the Workspace, so every request is rate limited and
every failure reaches the client as a classified error.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from sync.workspace import Workspace
from tools.projects import project_to_dict


def register(mcp: FastMCP, *, workspace: Workspace) -> None:
    @mcp.tool(name="verify_github_token")
    async def verify_github_token(token: Optional[str] = None) -> Dict[str, Any]:
        """Verify a GitHub token and remember the commit identity it belongs to.

        Params:
          - token: personal access token (default: GITHUB_TOKEN from the environment).

        Returns:
          The commit identity {name, email} (primary, verified e-mail).

        Raises:
          ValidationError for a malformed token; AuthError when the token is
          rejected, lacks the 'repo' scope or has no primary verified e-mail.
        """
        user = await workspace.verify_token(token)
        return {"name": user.name, "email": user.email}

    @mcp.tool(name="import_repository")
    async def import_repository(
        repo_url: str,
        overwrite: bool = False,
        token: Optional[str] = None,
        project_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Import the default branch of a GitHub repository as project 'owner/repo'.

        Params:
          - repo_url: 'https://github.com/owner/repo' or 'owner/repo'.
          - overwrite: replace an existing project with the same name (default: False).
          - token: optional token override.
          - project_name: name for the project instead of 'owner/repo'; needed
            when 'owner/repo' is longer than 50 characters.

        Returns:
          The imported project; only text files are included and files that
          could not be fetched are skipped.
        """
        project = await workspace.import_repository(
            repo_url, overwrite=overwrite, token=token, project_name=project_name
        )
        return project_to_dict(project)

    @mcp.tool(name="commit_project")
    async def commit_project(message: Optional[str] = None, project: Optional[str] = None) -> Dict[str, Any]:
        """Commit every dirty file of a GitHub-backed project as one new commit.

        Params:
          - message: commit message (default: generated from the changed paths).
          - project: project name (default: the active project).

        Returns:
          The new commit sha plus committed and skipped (oversized) paths.

        Raises:
          NonFastForwardError when the branch moved on GitHub since the import;
          re-import the repository and apply the changes again.
        """
        result = await workspace.commit(project, message=message)
        return {
            "project": result.project,
            "commit_sha": result.commit_sha,
            "committed": list(result.saved_paths),
            "skipped": list(result.skipped_paths),
        }
