import pytest

from core.errors import ValidationError
from core.paths import (
    normalize_posix_relpath,
    strip_control_chars,
    validate_file_path,
    validate_project_name,
)


def test_normalize_posix_relpath():
    assert normalize_posix_relpath("/src//app.py") == "src/app.py"
    assert normalize_posix_relpath("./././a\\b.txt") == "a/b.txt"
    assert normalize_posix_relpath("docs/") == "docs"
    assert normalize_posix_relpath("") == ""


def test_normalize_posix_relpath_keeps_surrounding_spaces():
    assert normalize_posix_relpath("notes.txt ") == "notes.txt "


def test_strip_control_chars_keeps_newlines_and_tabs():
    assert strip_control_chars("a\x00b\tc\nd\x7f") == "ab\tc\nd"


@pytest.mark.parametrize(
    "path",
    ["README.md", "src/app.py", "a/b/c/d.txt", ".github/workflows/ci.yml", "notes.txt ", " lead.md"],
)
def test_validate_file_path_returns_path_unchanged(path):
    assert validate_file_path(path) == path


@pytest.mark.parametrize(
    "path",
    [
        "",
        "   ",
        "/etc/passwd",
        "a\\b.txt",
        "../secret",
        "a/../b",
        "a//b",
        "./a",
        "a/",
        "x" * 261,
        "a\x00b.txt",
        "tab\there.txt",
        "line\n.txt",
    ],
)
def test_validate_file_path_rejects(path):
    with pytest.raises(ValidationError):
        validate_file_path(path)


def test_validate_project_name():
    assert validate_project_name(" My Project_1.0 ") == "My Project_1.0"
    assert validate_project_name("octocat/Hello-World") == "octocat/Hello-World"

    for bad in ["", "   ", "a" * 51, "bad:name", "/lead", "trail/", "a//b", "emoji😀"]:
        with pytest.raises(ValidationError):
            validate_project_name(bad)
