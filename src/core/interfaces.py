"""Core protocol and interface definitions.

Defines the collaborator contracts the sync engine depends on without
owning: the text classifier used to filter imports and the assistant
backend.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from core.models import AssistantOperation, ProjectFile


class TextClassifier(Protocol):
    """Decide whether a path (and optional MIME type) holds editable text."""

    def __call__(self, path: str, mime_type: Optional[str] = None) -> bool:
        ...


class AssistantBackend(Protocol):
    """Anything that turns (operation, files, request) into raw response text."""

    async def generate(
        self,
        operation: AssistantOperation,
        files: Sequence[ProjectFile],
        user_request: str,
    ) -> str:
        ...
