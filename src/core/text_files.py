"""Default text-file heuristic used to filter imported entries.

A path counts as text when it ends with a known text extension or its
basename is a well-known extensionless text file. A text-like MIME type
wins over the path check.
"""

from __future__ import annotations

from typing import Optional

_TEXT_SUFFIXES = (
    ".txt", ".md", ".json", ".js", ".ts", ".tsx", ".jsx", ".html", ".css", ".scss",
    ".sass", ".less", ".py", ".rb", ".java", ".c", ".cpp", ".h", ".hpp", ".cs", ".go",
    ".php", ".rs", ".swift", ".kt", ".xml", ".yml", ".yaml", ".toml", ".ini", ".sql",
    ".sh", ".bash", ".zsh", ".fish", ".ps1", ".bat", ".cmd", ".vue", ".svelte", ".astro",
    ".env", ".gitignore", ".gitattributes", ".gitmodules", ".npmrc", ".yarnrc",
    ".pnpmrc", ".editorconfig", ".prettierrc", ".eslintrc", ".babelrc", ".nvmrc",
    ".tool-versions", ".prettierignore", ".npmignore", ".dockerignore", ".gitkeep",
    ".browserslistrc", ".dockerfile",
)

_TEXT_FILENAMES = frozenset({
    "dockerfile", "license", "readme", "changelog", "contributing", "code_of_conduct",
    "caddyfile", "makefile", "jest.config", "webpack.config", "tailwind.config",
    "vite.config", "next.config", "tsconfig", "jsconfig", "yarn.lock",
})

_TEXT_MIME_TYPES = frozenset({
    "application/json",
    "application/javascript",
    "application/typescript",
    "application/xml",
})


def is_likely_text(path: str, mime_type: Optional[str] = None) -> bool:
    mime = (mime_type or "").strip().lower()
    if mime.startswith("text/") or mime in _TEXT_MIME_TYPES:
        return True

    lower = (path or "").strip().lower()
    if not lower:
        return False
    if lower.endswith(_TEXT_SUFFIXES):
        return True
    return lower.rsplit("/", 1)[-1] in _TEXT_FILENAMES
