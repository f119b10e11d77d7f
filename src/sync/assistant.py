"""Assistant payload contract and the gateway around an assistant backend.

The assistant itself is an external collaborator. What lives here is the
strict shape check applied to whatever it returns, per operation kind:

  explain   -> free text
  refactor  -> {"summary": str, "files": [{"path", "content"}]}
  debug     -> {"diagnosis": str, "files": [{"path", "content"}]}
  generate  -> [{"path", "content"}]

Any mismatch raises AssistantServiceError instead of trusting field access.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Sequence

from core.error_classifier import classified
from core.errors import (
    AssistantServiceError,
    AuthError,
    RateLimitedError,
    SyncError,
    ValidationError,
)
from core.interfaces import AssistantBackend
from core.models import AssistantOperation, AssistantResult, ProjectFile
from core.paths import validate_file_path
from core.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*\n(.*)\n\s*```\s*$", re.DOTALL)

_SUMMARY_FIELD = {
    AssistantOperation.REFACTOR: "summary",
    AssistantOperation.DEBUG: "diagnosis",
}


def _load_json(raw: str) -> Any:
    text = raw or ""
    m = _FENCE_RE.match(text)
    if m:
        text = m.group(1)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        preview = (raw or "")[:200]
        raise AssistantServiceError(f"Failed to parse AI response as JSON: {preview}") from e


def _parse_files(items: Any) -> tuple[ProjectFile, ...]:
    if not isinstance(items, list):
        raise AssistantServiceError("AI response 'files' must be a list")

    out: List[ProjectFile] = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise AssistantServiceError(f"AI response file #{i} is not an object")
        path, content = item.get("path"), item.get("content")
        if not isinstance(path, str) or not isinstance(content, str):
            raise AssistantServiceError(f"AI response file #{i} needs string 'path' and 'content'")
        try:
            clean = validate_file_path(path)
        except ValidationError as e:
            raise AssistantServiceError(f"AI response file #{i}: {e.message}") from e
        out.append(ProjectFile(path=clean, content=content, dirty=True))
    return tuple(out)


def parse_assistant_payload(operation: AssistantOperation, raw: str) -> AssistantResult:
    op = AssistantOperation(operation)

    if op is AssistantOperation.EXPLAIN:
        if not (raw or "").strip():
            raise AssistantServiceError("Empty response from AI service")
        return AssistantResult(operation=op, text=raw)

    data = _load_json(raw)

    if op is AssistantOperation.GENERATE:
        files = _parse_files(data)
        return AssistantResult(operation=op, text=f"{len(files)} files created.", files=files)

    if not isinstance(data, dict):
        raise AssistantServiceError(f"AI response for {op.value} must be a JSON object")

    field = _SUMMARY_FIELD[op]
    summary = data.get(field, "")
    if not isinstance(summary, str):
        raise AssistantServiceError(f"AI response '{field}' must be a string")
    files = _parse_files(data.get("files", []))
    return AssistantResult(
        operation=op,
        text=summary or "No files were changed.",
        files=files,
    )


class AssistantGateway:
    """Rate-limited, classified access to an assistant backend."""

    def __init__(self, *, backend: AssistantBackend, rate_limiter: RateLimiter) -> None:
        self._backend = backend
        self._rate_limiter = rate_limiter

    @classified("AI Service")
    async def run(
        self,
        operation: AssistantOperation,
        files: Sequence[ProjectFile],
        user_request: str,
    ) -> AssistantResult:
        op = AssistantOperation(operation)
        if not self._rate_limiter.admit():
            raise RateLimitedError(retry_after=self._rate_limiter.time_until_next_slot())

        try:
            raw = await self._backend.generate(op, list(files), user_request)
        except SyncError:
            raise
        except Exception as e:
            message = str(e)
            lowered = message.lower()
            if "api key" in lowered:
                raise AuthError("Invalid or missing API key") from e
            if "quota" in lowered or "limit" in lowered:
                raise RateLimitedError() from e
            raise AssistantServiceError(f"AI service error: {message}") from e

        if not raw:
            raise AssistantServiceError("Empty response from AI service")
        return parse_assistant_payload(op, raw)
