"""Server bootstrap for the repo-sync MCP service.

Creates the FastMCP instance, wires the rate limiters, GitHub client, sync
engine, local directory adapter and project store into one Workspace,
registers tools and prompts, and starts the MCP server (stdio transport).
"""

import logging
import sys
from typing import Optional

from mcp.server.fastmcp import FastMCP

from clients.github import GitHubClient, IdentityVerifier
from config import (
    ASSISTANT_RATE_LIMIT_REQUESTS,
    ASSISTANT_RATE_LIMIT_WINDOW,
    GITHUB_API_URL,
    GITHUB_MAX_CONCURRENCY,
    GITHUB_RATE_LIMIT_REQUESTS,
    GITHUB_RATE_LIMIT_WINDOW,
    GITHUB_TIMEOUT,
    GITHUB_TOKEN,
    HTTP_VERIFY,
    IDENTITY_CACHE_TTL,
    LOG_LEVEL,
    MAX_FILE_BYTES,
    PROJECT_ROOT,
)
from core.interfaces import AssistantBackend
from core.rate_limiter import RateLimiter
from sources.local_directory import LocalDirectoryAdapter
from sync.assistant import AssistantGateway
from sync.git_sync import GitSyncEngine
from sync.project_store import ProjectStore
from sync.workspace import Workspace

from tools.assistant import register as register_assistant
from tools.github import register as register_github
from tools.local import register as register_local
from tools.projects import register as register_projects

from prompts.assistant_prompts import register_prompts

logger = logging.getLogger(__name__)

mcp = FastMCP("repo-sync-mcp")


def build_workspace(assistant_backend: Optional[AssistantBackend] = None) -> Workspace:
    """Wire config into one Workspace.

    The assistant gateway and its rate limiter exist only when an
    ``assistant_backend`` is passed. The stdio server below builds its
    workspace without one: the MCP client is the model, so the tools only
    cover the assistant prompts and 'apply_assistant_result', and
    ``Workspace.run_assistant`` is reachable for embedders that supply a
    backend.
    """
    github_limiter = RateLimiter(
        max_requests=GITHUB_RATE_LIMIT_REQUESTS,
        window_seconds=GITHUB_RATE_LIMIT_WINDOW,
    )
    client = GitHubClient(
        rate_limiter=github_limiter,
        base_url=GITHUB_API_URL,
        timeout=GITHUB_TIMEOUT,
        verify=HTTP_VERIFY,
        max_concurrency=GITHUB_MAX_CONCURRENCY,
    )
    assistant = None
    if assistant_backend is not None:
        assistant = AssistantGateway(
            backend=assistant_backend,
            rate_limiter=RateLimiter(
                max_requests=ASSISTANT_RATE_LIMIT_REQUESTS,
                window_seconds=ASSISTANT_RATE_LIMIT_WINDOW,
            ),
        )
    return Workspace(
        store=ProjectStore(),
        engine=GitSyncEngine(client=client, max_file_bytes=MAX_FILE_BYTES),
        local=LocalDirectoryAdapter(project_root=PROJECT_ROOT, max_file_bytes=MAX_FILE_BYTES),
        identity=IdentityVerifier(client=client, ttl_seconds=IDENTITY_CACHE_TTL),
        assistant=assistant,
        token=GITHUB_TOKEN,
    )


workspace = build_workspace()


def register_tools() -> None:
    register_projects(mcp, workspace=workspace)
    register_local(mcp, workspace=workspace)
    register_github(mcp, workspace=workspace)
    register_assistant(mcp, workspace=workspace)


def register_all() -> None:
    register_tools()
    register_prompts(mcp, workspace=workspace)


register_all()


def main() -> None:
    # stdout carries the MCP protocol
    logging.basicConfig(
        level=LOG_LEVEL,
        stream=sys.stderr,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Starting repo-sync MCP server (project root: %s)", PROJECT_ROOT)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
