"""MCP tool that applies an assistant answer to the project store.

The assistant runs on the MCP client side (see the prompts); this tool takes
its raw answer, validates it strictly for the operation kind and feeds the
resulting files into the store.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from core.errors import ValidationError
from core.models import AssistantOperation
from sync.workspace import Workspace


def register(mcp: FastMCP, *, workspace: Workspace) -> None:
    @mcp.tool(name="apply_assistant_result")
    async def apply_assistant_result(
        operation: str,
        payload: str,
        project: Optional[str] = None,
        new_project_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Validate an assistant answer and apply its files.

        Params:
          - operation: "explain", "refactor", "debug" or "generate".
          - payload: the raw answer (text for explain, JSON otherwise).
          - project: target project for refactor/debug (default: active).
          - new_project_name: name of the project to create for generate.

        Returns:
          The summary/diagnosis text and the paths that were written.

        Raises:
          AssistantServiceError when the payload does not match the expected
          shape; ValidationError for unknown operations or project names.
        """
        try:
            op = AssistantOperation((operation or "").strip().lower())
        except ValueError as e:
            raise ValidationError(f"Unknown AI operation: {operation}") from e

        result = await workspace.apply_assistant_payload(
            op,
            payload,
            project=project,
            new_project_name=new_project_name,
        )
        return {
            "operation": result.operation.value,
            "text": result.text,
            "paths": [f.path for f in result.files],
        }
