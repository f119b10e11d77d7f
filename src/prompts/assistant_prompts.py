"""MCP prompts for the four assistant operations.

Each prompt renders the selected project in the ``// FILE:`` block format
and states the exact JSON shape that ``apply_assistant_result`` accepts for
that operation.
"""

from __future__ import annotations

from typing import Sequence

from mcp.server.fastmcp import FastMCP

from core.models import AssistantOperation, ProjectFile
from sync.workspace import Workspace

_DEFAULT_REQUEST = "Perform the operation on the entire project."

_FILES_SHAPE = '[{"path": "<relative/path>", "content": "<full file content>"}]'


def format_project_for_prompt(files: Sequence[ProjectFile]) -> str:
    if not files:
        return "The project is currently empty."
    return "\n\n---\n\n".join(
        f"// FILE: {f.path}\n\n{f.content}\n\n// END OF FILE: {f.path}" for f in files
    )


def build_prompt(operation: AssistantOperation, files: Sequence[ProjectFile], user_request: str) -> str:
    op = AssistantOperation(operation)
    request = (user_request or "").strip() or _DEFAULT_REQUEST
    context = format_project_for_prompt(files)

    if op is AssistantOperation.EXPLAIN:
        return (
            "You are an expert software engineer. Your task is to explain the provided code.\n\n"
            "Please explain the following code project. Provide a high-level overview of the "
            "project's purpose and architecture, then give a file-by-file breakdown explaining "
            "the role of each file. Format your response in markdown.\n\n"
            f"Project Files:\n{context}"
        )
    if op is AssistantOperation.REFACTOR:
        return (
            "You are a world-class software engineer specializing in code refactoring. Improve "
            "code quality, performance and maintainability while preserving functionality.\n\n"
            "Refactor the following project. Provide a complete, updated version of any file "
            "that changes. Do not omit any code. Respond with a JSON object "
            f'{{"summary": "<what changed>", "files": {_FILES_SHAPE}}}. '
            "Unchanged files may be omitted.\n"
            f'The user\'s specific request is: "{request}"\n\n'
            f"Project Files:\n{context}"
        )
    if op is AssistantOperation.DEBUG:
        return (
            "You are a meticulous debugging expert.\n\n"
            "Analyze the following project for bugs, logic errors or performance issues based "
            "on the user's report. Respond with a JSON object "
            f'{{"diagnosis": "<the problem and the fix>", "files": {_FILES_SHAPE}}} '
            "containing the corrected code for every changed file.\n"
            f'The user reports: "{request}"\n\n'
            f"Project Files:\n{context}"
        )
    return (
        "You are a project generation engine. Create an entire multi-file project from a "
        f"single description. Respond with a JSON array {_FILES_SHAPE} and nothing else. "
        "Use logical file paths (e.g. a 'src' directory).\n"
        f'The user\'s request is: "{request}"'
    )


def register_prompts(mcp: FastMCP, *, workspace: Workspace) -> None:
    def _files(project: str) -> Sequence[ProjectFile]:
        name = project or workspace.store.active_project_name
        if not name or not workspace.store.has_project(name):
            return ()
        return workspace.store.get_files(name)

    @mcp.prompt(name="explain_project", description="Explain the architecture and files of a project.")
    def explain_project(project: str = "") -> str:
        return build_prompt(AssistantOperation.EXPLAIN, _files(project), "")

    @mcp.prompt(name="refactor_project", description="Refactor a project; answer with summary + files JSON.")
    def refactor_project(request: str = "", project: str = "") -> str:
        return build_prompt(AssistantOperation.REFACTOR, _files(project), request)

    @mcp.prompt(name="debug_project", description="Diagnose and fix a project; answer with diagnosis + files JSON.")
    def debug_project(request: str = "", project: str = "") -> str:
        return build_prompt(AssistantOperation.DEBUG, _files(project), request)

    @mcp.prompt(name="generate_project", description="Generate a new multi-file project; answer with a files JSON array.")
    def generate_project(request: str = "") -> str:
        return build_prompt(AssistantOperation.GENERATE, (), request)
